"""Signature help sessions, one per document."""

from dataclasses import dataclass

from lsprotocol.types import Position, SignatureInformation

from objsig.documentation import DocumentationCache
from objsig.models import MacroContext, SignatureDetails


@dataclass
class SignatureSession:
    """The signature whose argument list is currently open in a document."""
    start: Position
    signature: SignatureInformation
    kind: str
    cache: DocumentationCache
    macro_context: MacroContext | None = None

    @classmethod
    def from_details(cls, details: SignatureDetails) -> "SignatureSession":
        return cls(
            start=details.start,
            signature=details.signature,
            kind=details.kind,
            cache=DocumentationCache(kind=details.kind, content=details.documentation),
            macro_context=details.macro_context,
        )

    @property
    def parameter_count(self) -> int:
        return len(self.signature.parameters or [])


class SessionStore:
    """Holds the active SignatureSession of each document, keyed by URI."""

    def __init__(self):
        self._sessions: dict[str, SignatureSession] = {}

    def get(self, uri: str) -> SignatureSession | None:
        return self._sessions.get(uri)

    def open(self, uri: str, details: SignatureDetails) -> SignatureSession:
        session = SignatureSession.from_details(details)
        self._sessions[uri] = session
        return session

    def close(self, uri: str) -> None:
        self._sessions.pop(uri, None)

    def clear(self) -> None:
        self._sessions.clear()

    def __contains__(self, uri: str) -> bool:
        return uri in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

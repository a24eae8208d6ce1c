from abc import ABC, abstractmethod
from dataclasses import dataclass

from lsprotocol.types import Position

from objsig.document import Document
from objsig.models import ClassifiedToken, SignatureDetails


@dataclass
class ResolveRequest:
    """An open paren whose callee should be resolved.

    Attributes:
        document: Document containing the call
        tokens: Classified tokens of the document, per line
        line: Line of the "(" token
        token: Index of the "(" token on that line
    """
    document: Document
    tokens: list[list[ClassifiedToken]]
    line: int
    token: int

    @property
    def paren(self) -> ClassifiedToken:
        return self.tokens[self.line][self.token]

    @property
    def callee(self) -> ClassifiedToken | None:
        if self.token < 1:
            return None
        return self.tokens[self.line][self.token - 1]

    @property
    def start(self) -> Position:
        """Position just after the "("."""
        return Position(line=self.line, character=self.paren.start + 1)

    def text_of(self, token: ClassifiedToken) -> str:
        return self.document.line(self.line)[token.start:token.end]


class SignatureResolver(ABC):
    """Abstract base class for resolving the signature of a callee."""

    kind: str = ""

    @abstractmethod
    def resolve(self, request: ResolveRequest) -> SignatureDetails | None:
        """Resolve the signature of the callee preceding request's open paren.

        Args:
            request: The open paren and its document

        Returns:
            SignatureDetails, or None if this resolver does not apply or the
            signature cannot be determined
        """
        pass

"""Signature help and parameter hover for ObjectScript documents.

SignatureEngine drives the signature help state machine of a document:

- Idle: no session. A typed "(" (or an invoked request, or a typed ",")
  tries the resolvers on the enclosing open paren.
- Active: a session holds the signature and its documentation cache. Each
  retrigger recomputes the active parameter and refreshes documentation.
- The session ends once the cursor is no longer inside its argument list,
  either because its ")" was typed or its "(" was deleted. Closing a
  nested call keeps the session.

Hover is stateless: it resolves the call around the cursor every time.
"""

import logging

from lsprotocol.types import (
    Hover,
    Position,
    Range,
    SignatureHelp,
    SignatureHelpParams,
    SignatureHelpTriggerKind,
)

from objsig.config import EngineConfig
from objsig.context import MacroContextProvider, MemberContextProvider
from objsig.document import Document
from objsig.documentation import HOVER, DocumentationRenderer, build_parameter_documentation, labels_for
from objsig.languages import Language
from objsig.models import ClassifiedToken, SignatureDetails
from objsig.params import active_parameter, clamp_active_param
from objsig.resolvers import ResolveRequest, SignatureResolver, default_resolvers, hover_resolvers
from objsig.services import RoutineSource, SymbolService
from objsig.session import SessionStore, SignatureSession
from objsig.tokens import NOT_FOUND, find_open_paren, find_token_at, inside_string, is_code_token

logger = logging.getLogger(__name__)


def _before(position: Position, other: Position) -> bool:
    return (position.line, position.character) < (other.line, other.character)


class SignatureEngine:
    """Resolves signatures for signature help and hover requests.

    Args:
        symbols: Compiled-symbol dictionary (server or offline)
        routines: Source of routine text for external routine calls
        config: Engine configuration (defaults if None)
        macro_contexts: Replacement for the document-based macro context
        member_contexts: Replacement for the document-based member context
        resolvers: Replacement signature help resolver chain
    """

    def __init__(
        self,
        symbols: SymbolService,
        routines: RoutineSource,
        config: EngineConfig | None = None,
        macro_contexts: MacroContextProvider | None = None,
        member_contexts: MemberContextProvider | None = None,
        resolvers: list[SignatureResolver] | None = None,
    ):
        self.config = config or EngineConfig()
        self.labels = labels_for(self.config.locale)
        self.sessions = SessionStore()
        self.renderer = DocumentationRenderer(symbols, self.labels)
        if resolvers is None:
            resolvers = default_resolvers(
                symbols,
                routines,
                macro_contexts,
                member_contexts,
                documentation=self.config.signature_help.documentation,
            )
        self.resolvers = resolvers
        self.hover_resolvers = hover_resolvers(symbols, routines, member_contexts)

    def signature_help(
        self,
        document: Document,
        tokens: list[list[ClassifiedToken]],
        params: SignatureHelpParams,
    ) -> SignatureHelp | None:
        """Answer a signature help request; None when there is nothing to show."""
        try:
            return self._signature_help(document, tokens, params)
        except Exception:
            logger.exception(f"Signature help failed for {document.uri}")
            return None

    def hover(
        self,
        document: Document,
        tokens: list[list[ClassifiedToken]],
        position: Position,
        token_index: int | None = None,
    ) -> Hover | None:
        """Describe the parameter under the cursor if it is inside a call's argument list."""
        try:
            return self._hover(document, tokens, position, token_index)
        except Exception:
            logger.exception(f"Hover failed for {document.uri}")
            return None

    def _signature_help(
        self,
        document: Document,
        tokens: list[list[ClassifiedToken]],
        params: SignatureHelpParams,
    ) -> SignatureHelp | None:
        context = params.context
        if context is None:
            return None
        position = params.position
        if position.line >= len(tokens):
            return None
        token_index = find_token_at(tokens[position.line], position.character)
        if token_index is None:
            return None

        invoked = context.trigger_kind == SignatureHelpTriggerKind.Invoked
        trigger = document.char_before(position) if invoked else (context.trigger_character or "")
        token = tokens[position.line][token_index]
        session = self.sessions.get(document.uri)
        previous = context.active_signature_help

        if token.language != Language.OBJECTSCRIPT or inside_string(document, position):
            return self._previous(previous, session)

        if context.is_retrigger and trigger != "(":
            if previous is not None and session is not None:
                return self._retrigger(document, tokens, position, token_index, previous, session)
            if trigger != ",":
                return None

        code = is_code_token(token)
        if trigger == "(" and code and token_index > 0:
            details = self._resolve(self.resolvers, document, tokens, position.line, token_index)
            if details is None:
                return self._previous(previous, session)
            return self._open(document, details, clamp_active_param(0, details.parameter_count))

        if code and (trigger == "," or invoked):
            line, paren = find_open_paren(document, tokens, position.line, token_index)
            if (line, paren) == NOT_FOUND:
                return None
            details = self._resolve(self.resolvers, document, tokens, line, paren)
            if details is None:
                return None
            return self._open(document, details, self._active_at(document, details, position))

        return None

    def _hover(
        self,
        document: Document,
        tokens: list[list[ClassifiedToken]],
        position: Position,
        token_index: int | None,
    ) -> Hover | None:
        if position.line >= len(tokens):
            return None
        if token_index is None:
            token_index = find_token_at(tokens[position.line], position.character)
        if token_index is None or not 0 <= token_index < len(tokens[position.line]):
            return None
        if not is_code_token(tokens[position.line][token_index]):
            return None

        line, paren = find_open_paren(document, tokens, position.line, token_index)
        if (line, paren) == NOT_FOUND:
            return None
        details = self._resolve(self.hover_resolvers, document, tokens, line, paren)
        if details is None:
            return None

        content = build_parameter_documentation(
            details.signature,
            self._active_at(document, details, position),
            HOVER,
            bold_parameter=self.config.hover.bold_parameter,
            show_header=self.config.hover.show_header,
            labels=self.labels,
        )
        return Hover(contents=content, range=Range(start=position, end=position))

    def _resolve(
        self,
        resolvers: list[SignatureResolver],
        document: Document,
        tokens: list[list[ClassifiedToken]],
        line: int,
        paren: int,
    ) -> SignatureDetails | None:
        request = ResolveRequest(document=document, tokens=tokens, line=line, token=paren)
        for resolver in resolvers:
            details = resolver.resolve(request)
            if details is not None:
                logger.debug(f"Resolved {resolver.kind} signature {details.signature.label!r} at {line}:{paren}")
                return details
        return None

    @staticmethod
    def _active_at(document: Document, details: SignatureDetails, position: Position) -> int | None:
        if _before(position, details.start):
            return clamp_active_param(0, details.parameter_count)
        typed = document.get_text(Range(start=details.start, end=position))
        return active_parameter(typed, details.parameter_count)

    def _open(self, document: Document, details: SignatureDetails, active: int | None) -> SignatureHelp:
        session = self.sessions.open(document.uri, details)
        details.signature.documentation = self.renderer.render(session, active)
        return SignatureHelp(signatures=[details.signature], active_signature=0, active_parameter=active)

    def _retrigger(
        self,
        document: Document,
        tokens: list[list[ClassifiedToken]],
        position: Position,
        token_index: int,
        previous: SignatureHelp,
        session: SignatureSession,
    ) -> SignatureHelp | None:
        line, paren = find_open_paren(document, tokens, position.line, token_index)
        enclosing = None
        if (line, paren) != NOT_FOUND:
            enclosing = Position(line=line, character=tokens[line][paren].start + 1)
        if enclosing != session.start:
            # The session's argument list was closed or its paren is gone
            self.sessions.close(document.uri)
            return None

        typed = document.get_text(Range(start=session.start, end=position))
        active = active_parameter(typed, session.parameter_count)
        previous.active_parameter = active
        documentation = self.renderer.render(session, active)
        if previous.signatures:
            previous.signatures[0].documentation = documentation
        return previous

    @staticmethod
    def _previous(previous: SignatureHelp | None, session: SignatureSession | None) -> SignatureHelp | None:
        """Keep showing the client's current signature, with the cached documentation."""
        if previous is None:
            return None
        if session is not None and previous.signatures:
            previous.signatures[0].documentation = session.cache.content
        return previous

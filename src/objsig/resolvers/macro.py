import logging

from lsprotocol.types import SignatureInformation

from objsig.context import DocumentMacroContext, MacroContextProvider
from objsig.errors import TransportFault
from objsig.languages import Attribute, Language
from objsig.models import SignatureDetails
from objsig.params import formal_spec_parameters, normalize_macro_signature
from objsig.resolvers.base import ResolveRequest, SignatureResolver
from objsig.services import SymbolService
from objsig.tokens import find_full_range

logger = logging.getLogger(__name__)

MACRO_PREFIX_LENGTH = len("$$$")


class MacroResolver(SignatureResolver):
    """Resolves $$$Macro( calls against the server's macro definitions."""

    kind = "macro"

    def __init__(self, symbols: SymbolService, macro_contexts: MacroContextProvider | None = None):
        self.symbols = symbols
        self.macro_contexts = macro_contexts or DocumentMacroContext()

    def resolve(self, request: ResolveRequest) -> SignatureDetails | None:
        callee = request.callee
        if callee is None or callee.language != Language.OBJECTSCRIPT or callee.attribute != Attribute.MACRO:
            return None

        macro_range = find_full_range(request.document, request.tokens, request.line, request.token - 1)
        macroname = request.document.get_text(macro_range)[MACRO_PREFIX_LENGTH:]
        context = self.macro_contexts(request.document, request.tokens, request.line)
        context.macroname = macroname
        context.arguments = ""

        try:
            signature = self.symbols.get_macro_signature(context)
        except TransportFault as e:
            logger.warning(f"Macro signature lookup for {macroname} failed: {e}")
            return None
        if not signature:
            logger.debug(f"No signature for macro {macroname}")
            return None

        label = normalize_macro_signature(signature)
        return SignatureDetails(
            signature=SignatureInformation(label=label, parameters=formal_spec_parameters(label)),
            start=request.start,
            kind=self.kind,
            macro_context=context.with_arguments(label),
        )

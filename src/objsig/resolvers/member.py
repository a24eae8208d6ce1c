import logging

from lsprotocol.types import MarkupContent, MarkupKind, SignatureInformation

from objsig.context import DocumentMemberContext, MemberContextProvider
from objsig.documentation import documatic_html_to_markdown
from objsig.errors import TransportFault
from objsig.languages import Attribute, Language
from objsig.models import MethodRow, SignatureDetails, StubReference
from objsig.params import beautify_formal_spec, formal_spec_parameters, quote_udl_identifier
from objsig.resolvers.base import ResolveRequest, SignatureResolver
from objsig.services import SymbolService

logger = logging.getLogger(__name__)

CONSTRUCTOR = "%New"
CONSTRUCTOR_HOOK = "%OnNew"
HOOK_DEFAULT_ORIGIN = "%Library.RegisteredObject"
# Members that return an instance of the class they are called on
INSTANCE_FACTORIES = ("%New", "%Open", "%OpenId")


class ClassMemberResolver(SignatureResolver):
    """Resolves method and multidimensional property calls from the class dictionary."""

    kind = "method"

    def __init__(
        self,
        symbols: SymbolService,
        member_contexts: MemberContextProvider | None = None,
        documentation: bool = True,
    ):
        self.symbols = symbols
        self.member_contexts = member_contexts or DocumentMemberContext()
        self.documentation = documentation

    def resolve(self, request: ResolveRequest) -> SignatureDetails | None:
        callee = request.callee
        if (
            callee is None
            or callee.language != Language.OBJECTSCRIPT
            or callee.attribute not in (Attribute.METHOD, Attribute.MEMBER)
        ):
            return None

        member = request.text_of(callee)
        name = quote_udl_identifier(member, 0)
        base_class = self.member_contexts(request.document, request.tokens, request.token - 2, request.line).base_class
        if not base_class:
            logger.debug(f"Could not determine the class of member {member}")
            return None

        try:
            if member == CONSTRUCTOR:
                return self._resolve_constructor(request, base_class)
            return self._resolve_member(request, member, name, base_class)
        except TransportFault as e:
            logger.warning(f"Lookup of {base_class}:{name} failed: {e}")
            return None

    def _resolve_constructor(self, request: ResolveRequest, base_class: str) -> SignatureDetails | None:
        rows = self.symbols.get_methods(base_class, [CONSTRUCTOR, CONSTRUCTOR_HOOK])
        if not rows:
            return None
        constructor = next((r for r in rows if r.name == CONSTRUCTOR), MethodRow())
        hook = next((r for r in rows if r.name == CONSTRUCTOR_HOOK), None)

        if hook is None or hook.origin == HOOK_DEFAULT_ORIGIN:
            # Without an overridden %OnNew, %New takes no arguments
            label = f"() As {base_class}"
            return SignatureDetails(
                signature=SignatureInformation(label=label, parameters=[]),
                start=request.start,
                kind=self.kind,
                documentation=self._describe(constructor.description),
            )

        raw = beautify_formal_spec(hook.formal_spec)
        description = hook.description if hook.description.strip() else constructor.description
        return SignatureDetails(
            signature=SignatureInformation(
                label=f"{raw} As {base_class}",
                parameters=formal_spec_parameters(raw),
            ),
            start=request.start,
            kind=self.kind,
            documentation=self._describe(description),
        )

    def _resolve_member(
        self, request: ResolveRequest, member: str, name: str, base_class: str
    ) -> SignatureDetails | None:
        rows = self.symbols.get_methods(base_class, [name])
        if not rows:
            logger.debug(f"No compiled method {base_class}:{name}")
            return None

        row = rows[0]
        if row.stub:
            stub = StubReference.parse(row.stub)
            if stub is not None:
                generated = self.symbols.get_stub_method(stub, base_class)
                if generated is not None:
                    row = generated

        if not row.formal_spec:
            return None

        raw = beautify_formal_spec(row.formal_spec)
        label = raw
        if member in INSTANCE_FACTORIES:
            label += f" As {base_class}"
        elif row.return_type:
            label += f" As {row.return_type}"
        return SignatureDetails(
            signature=SignatureInformation(label=label, parameters=formal_spec_parameters(raw)),
            start=request.start,
            kind=self.kind,
            documentation=self._describe(row.description),
        )

    def _describe(self, description: str) -> MarkupContent | None:
        if not self.documentation:
            return None
        return MarkupContent(kind=MarkupKind.Markdown, value=documatic_html_to_markdown(description))

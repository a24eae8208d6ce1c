from dataclasses import dataclass, field, replace

from lsprotocol.types import MarkupContent, Position, SignatureInformation


@dataclass(frozen=True)
class ClassifiedToken:
    """A classified token on a single line (offsets are 0-indexed characters)."""
    start: int
    length: int
    language: int
    attribute: int

    @property
    def end(self) -> int:
        return self.start + self.length


@dataclass
class MacroContext:
    """Compilation context needed to resolve a macro on the server.

    Attributes:
        docname: Name of the document containing the macro (e.g. "Pkg.Cls.cls").
        macroname: Macro name without the "$$$" prefix.
        superclasses: Superclasses of the containing class, in declaration order.
        includes: Include files in effect.
        include_generators: Include files in effect for generator methods.
        imports: Imported packages.
        mode: Compilation mode ("generator" inside generator methods, else "").
        arguments: Rendered formal argument list, possibly with one argument
            wrapped in emphasis markers.
    """
    docname: str
    macroname: str
    superclasses: list[str] = field(default_factory=list)
    includes: list[str] = field(default_factory=list)
    include_generators: list[str] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    mode: str = ""
    arguments: str = ""

    def with_arguments(self, arguments: str) -> "MacroContext":
        return replace(self, arguments=arguments)

    def payload(self) -> dict:
        """Request body understood by the macro signature/expansion actions."""
        body = {
            "docname": self.docname,
            "macroname": self.macroname,
            "superclasses": list(self.superclasses),
            "includes": list(self.includes),
            "includegenerators": list(self.include_generators),
            "imports": list(self.imports),
            "mode": self.mode,
        }
        if self.arguments:
            body["arguments"] = self.arguments
        return body


@dataclass
class MemberContext:
    """Class a member reference is resolved against ("" if unknown)."""
    base_class: str = ""


@dataclass
class MethodRow:
    """A compiled method (or generated method) as stored in the class dictionary."""
    name: str = ""
    formal_spec: str = ""
    return_type: str = ""
    description: str = ""
    stub: str = ""
    origin: str = ""


STUB_KINDS = {
    "i": "index",
    "q": "query",
    "a": "property",
    "n": "constraint",
}


@dataclass(frozen=True)
class StubReference:
    """Points at the member that generated a stub method.

    A stub string has the shape "<member>.<method>.<kind>", e.g.
    "NameIdx.Exists.i" for the Exists() method generated by index NameIdx.
    """
    member: str
    method: str
    kind: str

    @classmethod
    def parse(cls, stub: str) -> "StubReference | None":
        parts = stub.split(".")
        if len(parts) < 3 or parts[2] not in STUB_KINDS:
            return None
        return cls(member=parts[0], method=parts[1], kind=parts[2])


@dataclass
class RoutineIndexEntry:
    """Result of indexing a routine on the server."""
    name: str
    status: str = ""
    others: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RoutineCall:
    """Label and (possibly empty) routine name of an extrinsic or DO call."""
    label: str
    routine: str = ""


@dataclass
class SignatureDetails:
    """A resolved signature plus where its argument list starts.

    For routine signatures, parameters holds the split parameter strings.
    For macros, macro_context holds what is needed to request expansions.
    """
    signature: SignatureInformation
    start: Position
    kind: str
    parameters: list[str] = field(default_factory=list)
    documentation: MarkupContent | None = None
    macro_context: MacroContext | None = None

    @property
    def parameter_count(self) -> int:
        return len(self.signature.parameters or [])

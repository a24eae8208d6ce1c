from objsig.context import MacroContextProvider, MemberContextProvider
from objsig.resolvers.base import ResolveRequest, SignatureResolver
from objsig.resolvers.macro import MacroResolver
from objsig.resolvers.member import ClassMemberResolver
from objsig.resolvers.routine import RoutineResolver
from objsig.services import RoutineSource, SymbolService

__all__ = [
    "ClassMemberResolver",
    "MacroResolver",
    "ResolveRequest",
    "RoutineResolver",
    "SignatureResolver",
    "default_resolvers",
    "hover_resolvers",
]


def default_resolvers(
    symbols: SymbolService,
    routines: RoutineSource,
    macro_contexts: MacroContextProvider | None = None,
    member_contexts: MemberContextProvider | None = None,
    documentation: bool = True,
) -> list[SignatureResolver]:
    """Resolvers for signature help, in the order they are tried."""
    return [
        MacroResolver(symbols, macro_contexts),
        ClassMemberResolver(symbols, member_contexts, documentation),
        RoutineResolver(routines),
    ]


def hover_resolvers(
    symbols: SymbolService,
    routines: RoutineSource,
    member_contexts: MemberContextProvider | None = None,
) -> list[SignatureResolver]:
    """Resolvers for parameter hover, in the order they are tried."""
    return [
        ClassMemberResolver(symbols, member_contexts, documentation=False),
        RoutineResolver(routines),
    ]

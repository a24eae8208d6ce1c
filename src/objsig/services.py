"""Contracts for the symbol and routine sources the resolvers query.

Implementations raise TransportFault when a query cannot be answered because
of a failure; "not found" is reported with an empty result instead.
"""

from abc import ABC, abstractmethod

from objsig.models import MacroContext, MethodRow, RoutineIndexEntry, StubReference


class SymbolService(ABC):
    """Compiled-symbol dictionary of a namespace."""

    @abstractmethod
    def get_macro_signature(self, context: MacroContext) -> str:
        """Formal argument list of context.macroname ("" if not a macro with arguments)."""
        pass

    @abstractmethod
    def get_macro_expansion(self, context: MacroContext) -> list[str]:
        """Expansion of context.macroname called with context.arguments."""
        pass

    @abstractmethod
    def get_methods(self, parent: str, names: list[str]) -> list[MethodRow]:
        """Compiled methods of class parent whose name is in names."""
        pass

    @abstractmethod
    def get_stub_method(self, stub: StubReference, parent: str) -> MethodRow | None:
        """The generated method a stub points at, from the subtable of its kind."""
        pass


class RoutineSource(ABC):
    """Locates and reads routine source text."""

    @abstractmethod
    def index_routine(self, name: str) -> RoutineIndexEntry | None:
        """Index routine name; others lists the other available variants."""
        pass

    @abstractmethod
    def resolve_routine_uri(self, document_uri: str, name: str, extension: str) -> str:
        """URI of routine name with extension (".int" or ".mac"), or "" if unknown."""
        pass

    @abstractmethod
    def fetch_lines(self, uri: str) -> list[str]:
        """Lines of the document at uri ([] if it cannot be read)."""
        pass

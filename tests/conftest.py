"""Shared fakes and fixtures for objsig tests."""

import pytest

from objsig.document import Document
from objsig.errors import TransportFault
from objsig.models import RoutineIndexEntry
from objsig.services import RoutineSource, SymbolService
from objsig.tokenizer import classify


class FakeSymbols(SymbolService):
    """In-memory SymbolService that records every query.

    Macro expansions echo the arguments they were requested with, so tests
    can see which argument was emphasized.
    """

    def __init__(self, macros=None, methods=None, stubs=None, fail=False):
        self.macros = macros or {}
        self.methods = methods or {}
        self.stubs = stubs or {}
        self.fail = fail
        self.calls = []

    def _check(self):
        if self.fail:
            raise TransportFault("server unavailable")

    def get_macro_signature(self, context):
        self.calls.append(("signature", context.macroname, context.arguments))
        self._check()
        return self.macros.get(context.macroname, "")

    def get_macro_expansion(self, context):
        self.calls.append(("expansion", context.macroname, context.arguments))
        self._check()
        if context.macroname not in self.macros:
            return []
        return [f"Write {context.arguments}"]

    def get_methods(self, parent, names):
        self.calls.append(("methods", parent, tuple(names)))
        self._check()
        return [row for row in self.methods.get(parent, []) if row.name in names]

    def get_stub_method(self, stub, parent):
        self.calls.append(("stub", parent, stub.member, stub.method, stub.kind))
        self._check()
        return self.stubs.get((stub.kind, parent, stub.member, stub.method))

    def count(self, kind):
        return sum(1 for call in self.calls if call[0] == kind)


class FakeRoutines(RoutineSource):
    """RoutineSource over a dict of routine name -> lines."""

    def __init__(self, routines=None, fail=False):
        self.routines = routines or {}
        self.fail = fail
        self.fetched = []

    def index_routine(self, name):
        if self.fail:
            raise TransportFault("server unavailable")
        if name not in self.routines:
            return RoutineIndexEntry(name=f"{name}.int", status=f"{name}.int does not exist")
        return RoutineIndexEntry(name=f"{name}.int", others=[f"{name}.mac"])

    def resolve_routine_uri(self, document_uri, name, extension):
        return f"memory:///{name}{extension}"

    def fetch_lines(self, uri):
        self.fetched.append(uri)
        name = uri.rsplit("/", 1)[-1].rsplit(".", 1)[0]
        return list(self.routines.get(name, []))


@pytest.fixture
def symbols():
    return FakeSymbols()


@pytest.fixture
def routines():
    return FakeRoutines()


@pytest.fixture
def make_document():
    """Build a Document (and its classified tokens) from lines of text."""

    def _make(lines, language_id="objectscript", uri="file:///work/Demo.mac"):
        document = Document(uri, language_id, "\n".join(lines))
        return document, classify(document)

    return _make

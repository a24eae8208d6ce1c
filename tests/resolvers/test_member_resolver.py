"""Tests for ClassMemberResolver."""

import pytest

from objsig.languages import Attribute
from objsig.models import MemberContext, MethodRow
from objsig.resolvers import ClassMemberResolver, ResolveRequest

REGISTERED = "%Library.RegisteredObject"


def last_paren(document, tokens, line):
    index = max(
        i for i, t in enumerate(tokens[line])
        if t.attribute == Attribute.DELIMITER and document.line(line)[t.start:t.end] == "("
    )
    return ResolveRequest(document=document, tokens=tokens, line=line, token=index)


def parameter_texts(signature):
    return [signature.label[s:e] for s, e in (p.label for p in signature.parameters)]


@pytest.fixture
def new_call(make_document):
    return make_document(["ROUTINE Demo", " set p = ##class(Sample.Person).%New("])


class TestConstructor:
    """Tests for %New resolution."""

    def test_without_overridden_hook(self, symbols, new_call):
        """Without an overridden %OnNew, %New has no parameters."""
        symbols.methods["Sample.Person"] = [
            MethodRow("%New", "initvalue:%RawString", "Sample.Person", "Creates an instance.", origin=REGISTERED),
            MethodRow("%OnNew", "initvalue:%RawString", "%Status", "", origin=REGISTERED),
        ]
        document, tokens = new_call

        details = ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1))

        assert details.signature.label == "() As Sample.Person"
        assert details.signature.parameters == []
        assert details.documentation.value == "Creates an instance."
        assert symbols.calls == [("methods", "Sample.Person", ("%New", "%OnNew"))]

    def test_without_any_hook(self, symbols, new_call):
        """A class without %OnNew behaves like one with the inherited default."""
        symbols.methods["Sample.Person"] = [MethodRow("%New", "initvalue:%RawString", origin=REGISTERED)]
        document, tokens = new_call

        details = ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1))

        assert details.signature.label == "() As Sample.Person"

    def test_with_overridden_hook(self, symbols, new_call):
        """An overridden %OnNew supplies the parameters of %New."""
        symbols.methods["Sample.Person"] = [
            MethodRow("%New", "initvalue:%RawString", "Sample.Person", "Creates an instance.", origin=REGISTERED),
            MethodRow("%OnNew", "pName:%String,pAge:%Integer=0", "%Status", "Builds a person.", origin="Sample.Person"),
        ]
        document, tokens = new_call

        details = ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1))

        assert details.signature.label == "(pName As %String, pAge As %Integer = 0) As Sample.Person"
        assert parameter_texts(details.signature) == ["pName As %String", "pAge As %Integer = 0"]
        assert details.documentation.value == "Builds a person."

    def test_hook_without_description(self, symbols, new_call):
        """A blank hook description falls back to the description of %New."""
        symbols.methods["Sample.Person"] = [
            MethodRow("%New", "", "", "Creates an instance.", origin=REGISTERED),
            MethodRow("%OnNew", "pName:%String", "%Status", "  ", origin="Sample.Person"),
        ]
        document, tokens = new_call

        details = ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1))

        assert details.documentation.value == "Creates an instance."

    def test_unknown_class(self, symbols, new_call):
        """No rows means no signature."""
        document, tokens = new_call
        assert ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1)) is None


class TestMembers:
    """Tests for ordinary member resolution."""

    def test_typed_variable(self, symbols, make_document):
        """A #dim declaration types the receiver variable."""
        symbols.methods["Sample.Person"] = [
            MethodRow("Greet", "name:%String", "%Status", "Say <b>hello</b>.", origin="Sample.Person"),
        ]
        document, tokens = make_document(["ROUTINE Demo", " #dim p As Sample.Person", " do p.Greet("])

        details = ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 2))

        assert details.kind == "method"
        assert details.signature.label == "(name As %String) As %Status"
        assert parameter_texts(details.signature) == ["name As %String"]
        assert details.documentation.value == "Say **hello**."

    def test_relative_call_in_class(self, symbols, make_document):
        """.. calls resolve against the class being edited."""
        symbols.methods["Demo.Test"] = [MethodRow("Greet", "name", origin="Demo.Test")]
        document, tokens = make_document(
            ["Class Demo.Test", "{", "", "Method Run()", "{", "    do ..Greet(", "}", "", "}"],
            language_id="objectscript-class",
            uri="file:///work/Demo/Test.cls",
        )

        details = ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 5))

        assert details.signature.label == "(name)"

    def test_stub_method(self, symbols, make_document):
        """Generated methods are read from the subtable their stub points at."""
        symbols.methods["Sample.Person"] = [MethodRow("NameIdxExists", stub="NameIdx.Exists.i")]
        symbols.stubs[("i", "Sample.Person", "NameIdx", "Exists")] = MethodRow(
            "Exists", "val:%String", "%Boolean", "Checks the index."
        )
        document, tokens = make_document(["ROUTINE Demo", " set e = ##class(Sample.Person).NameIdxExists("])

        details = ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1))

        assert details.signature.label == "(val As %String) As %Boolean"
        assert ("stub", "Sample.Person", "NameIdx", "Exists", "i") in symbols.calls

    def test_open_returns_receiver_class(self, symbols, make_document):
        """%OpenId is labelled with the class it is called on."""
        symbols.methods["Sample.Person"] = [
            MethodRow("%OpenId", "id:%String,concurrency:%Integer=-1", "%ObjectHandle", origin="%Library.Persistent"),
        ]
        document, tokens = make_document(["ROUTINE Demo", " set p = ##class(Sample.Person).%OpenId("])

        details = ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1))

        assert details.signature.label == "(id As %String, concurrency As %Integer = -1) As Sample.Person"

    def test_short_class_name(self, symbols, make_document):
        """%Name class references are expanded to %Library."""
        symbols.methods["%Library.File"] = [MethodRow("Exists", "filename:%String", "%Boolean")]
        document, tokens = make_document(["ROUTINE Demo", " set x = ##class(%File).Exists("])

        details = ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1))

        assert details.signature.label == "(filename As %String) As %Boolean"

    def test_method_without_arguments(self, symbols, make_document):
        """Methods with an empty formal spec have no signature to show."""
        symbols.methods["Sample.Person"] = [MethodRow("Reset", "", "%Status")]
        document, tokens = make_document(["ROUTINE Demo", " do ##class(Sample.Person).Reset("])
        assert ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1)) is None

    def test_untyped_receiver(self, symbols, make_document):
        """An unknown receiver class stops resolution before any query."""
        document, tokens = make_document(["ROUTINE Demo", " do x.Greet("])
        assert ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1)) is None
        assert symbols.calls == []

    def test_transport_fault(self, symbols, make_document):
        """A failing server yields no signature."""
        symbols.fail = True
        document, tokens = make_document(["ROUTINE Demo", " do ##class(Sample.Person).Greet("])
        assert ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1)) is None

    def test_documentation_disabled(self, symbols, make_document):
        """Descriptions can be left out."""
        symbols.methods["Sample.Person"] = [MethodRow("Greet", "name", "", "Hello")]
        document, tokens = make_document(["ROUTINE Demo", " do ##class(Sample.Person).Greet("])

        details = ClassMemberResolver(symbols, documentation=False).resolve(last_paren(document, tokens, 1))

        assert details.documentation is None

    def test_custom_member_context(self, symbols, make_document):
        """An injected provider decides the receiver class."""
        symbols.methods["Other.Class"] = [MethodRow("Greet", "name")]
        document, tokens = make_document(["ROUTINE Demo", " do x.Greet("])

        def provider(document, tokens, token, line):
            return MemberContext(base_class="Other.Class")

        details = ClassMemberResolver(symbols, provider).resolve(last_paren(document, tokens, 1))

        assert details.signature.label == "(name)"

    def test_not_a_member(self, symbols, make_document):
        """Non-member callees are left to the next resolver."""
        document, tokens = make_document(["ROUTINE Demo", " do Fmt("])
        assert ClassMemberResolver(symbols).resolve(last_paren(document, tokens, 1)) is None

"""Tests for parameter list scanning and rendering."""

import pytest

from objsig.params import (
    EMPHASIZE_PREFIX,
    EMPHASIZE_SUFFIX,
    DelimiterScanner,
    ScanState,
    active_parameter,
    beautify_formal_spec,
    clamp_active_param,
    determine_active_param,
    emphasize_argument,
    formal_spec_parameters,
    normalize_macro_signature,
    quote_udl_identifier,
    routine_parameter_infos,
    split_formal_spec,
    split_routine_params,
)


class TestDelimiterScanner:
    """Tests for the quote/nesting state machine."""

    def test_starts_normal(self):
        """A fresh scanner is at top level."""
        assert DelimiterScanner().state is ScanState.NORMAL

    def test_quote_toggles_state(self):
        """A double quote enters and leaves the quoted state."""
        scanner = DelimiterScanner()
        scanner.feed('"')
        assert scanner.state is ScanState.IN_QUOTE
        scanner.feed('"')
        assert scanner.state is ScanState.NORMAL

    def test_nested_paren(self):
        """Commas inside nested parens are not top level."""
        scanner = DelimiterScanner()
        scanner.feed("(")
        assert scanner.state is ScanState.IN_NESTED
        assert scanner.feed(",") is False
        scanner.feed(")")
        assert scanner.feed(",") is True

    def test_close_paren_never_goes_negative(self):
        """Unbalanced closing parens do not push depth below zero."""
        scanner = DelimiterScanner()
        scanner.feed(")")
        scanner.feed(")")
        assert scanner.paren_depth == 0
        assert scanner.feed(",") is True

    def test_braces_ignored_when_not_tracked(self):
        """Braces only nest when track_braces is set."""
        scanner = DelimiterScanner(track_braces=False)
        scanner.feed("{")
        assert scanner.feed(",") is True

    def test_backslash_escaped_quote(self):
        """A backslash-escaped quote does not end the quoted value."""
        scanner = DelimiterScanner(backslash_escapes=True)
        for char in '"a\\"':
            scanner.feed(char)
        assert scanner.state is ScanState.IN_QUOTE


class TestSplitFormalSpec:
    """Tests for split_formal_spec."""

    def test_nested_and_quoted(self):
        """Commas in nested calls and strings do not split."""
        text = '(a, b(x,y), "c,d")'
        spans = split_formal_spec(text)
        assert spans == [(1, 2), (4, 10), (12, 17)]
        assert [text[s:e] for s, e in spans] == ["a", "b(x,y)", '"c,d"']

    def test_empty_lists(self):
        """Empty and whitespace-only lists have no parameters."""
        assert split_formal_spec("()") == []
        assert split_formal_spec("( )") == []
        assert split_formal_spec("") == []

    def test_single_parameter(self):
        """A single parameter spans between the parens."""
        assert split_formal_spec("(a)") == [(1, 2)]

    def test_bare_list(self):
        """An unparenthesised list is split as is."""
        text = "arg1, arg2"
        assert [text[s:e] for s, e in split_formal_spec(text)] == ["arg1", "arg2"]

    def test_braces_nest(self):
        """Commas inside braces do not split."""
        text = "(x, {a,b}, y)"
        assert [text[s:e] for s, e in split_formal_spec(text)] == ["x", "{a,b}", "y"]

    def test_spans_are_trimmed(self):
        """Surrounding whitespace is not part of a span."""
        text = "(  a ,   b  )"
        assert [text[s:e] for s, e in split_formal_spec(text)] == ["a", "b"]

    def test_label_with_return_type(self):
        """Parameters of a label followed by a return type come from the first list."""
        text = "(pName As %String, pAge As %Integer = 0)"
        assert [text[s:e] for s, e in split_formal_spec(text)] == ["pName As %String", "pAge As %Integer = 0"]

    def test_formal_spec_parameters(self):
        """ParameterInformation labels are offset pairs."""
        params = formal_spec_parameters("(a, b)")
        assert [p.label for p in params] == [(1, 2), (4, 5)]


class TestSplitRoutineParams:
    """Tests for split_routine_params."""

    def test_simple(self):
        """Parameters are trimmed."""
        assert split_routine_params("a, b ,c") == ["a", "b", "c"]

    def test_empty_text(self):
        """Blank parameter text has no parameters."""
        assert split_routine_params("") == []
        assert split_routine_params("   ") == []

    def test_empty_parameters_dropped(self):
        """Empty parameters between commas are dropped."""
        assert split_routine_params("a,,b,") == ["a", "b"]

    def test_quoted_comma(self):
        """Commas in quoted defaults do not split."""
        assert split_routine_params('sep=",", b') == ['sep=","', "b"]

    def test_backslash_escape(self):
        """A backslash-escaped quote keeps the value quoted."""
        assert split_routine_params('"a\\",b", c') == ['"a\\",b"', "c"]

    def test_newlines_become_spaces(self):
        """Joined continuation lines are split like one line."""
        assert split_routine_params("a,\nb") == ["a", "b"]

    def test_parameter_infos(self):
        """Spans point into the rendered Name(p1, p2) label."""
        label = "Fmt(val, sep)"
        infos = routine_parameter_infos(label, ["val", "sep"])
        assert [label[s:e] for s, e in (i.label for i in infos)] == ["val", "sep"]

    def test_parameter_infos_empty(self):
        """No parameters, no spans."""
        assert routine_parameter_infos("Fmt()", []) == []


class TestActiveParameter:
    """Tests for active parameter tracking."""

    def test_counts_top_level_commas(self):
        """Only top-level commas advance the parameter."""
        assert determine_active_param("a, b(1,2), ") == 2
        assert determine_active_param('"x,y"') == 0
        assert determine_active_param("") == 0

    @pytest.mark.parametrize(
        "index,count,expected",
        [
            (5, 2, 1),
            (None, 3, 0),
            (-1, 3, 0),
            (1, 3, 1),
            (0, 0, None),
        ],
    )
    def test_clamp(self, index, count, expected):
        """Indices are clamped into the parameter range."""
        assert clamp_active_param(index, count) == expected

    def test_active_parameter_clamps(self):
        """Extra commas stay on the last parameter."""
        assert active_parameter("a,b,c,d", 2) == 1
        assert active_parameter("a,b", 0) is None


class TestEmphasizeArgument:
    """Tests for emphasize_argument."""

    def test_second_argument(self):
        """The chosen argument is wrapped in markers, whitespace removed."""
        assert emphasize_argument("(x, y)", 2) == f"(x,{EMPHASIZE_PREFIX}y{EMPHASIZE_SUFFIX})"

    def test_trailing_comma_outside_markers(self):
        """The comma following an argument stays outside the markers."""
        assert emphasize_argument("(x, y)", 1) == f"({EMPHASIZE_PREFIX}x{EMPHASIZE_SUFFIX},y)"

    def test_space_delimited_words(self):
        """Arguments of a bare list are its space-delimited words."""
        assert emphasize_argument("A B C", 2) == f"A{EMPHASIZE_PREFIX}B{EMPHASIZE_SUFFIX}C"

    def test_out_of_range(self):
        """A missing argument leaves the list unmarked."""
        assert emphasize_argument("(x, y)", 3) == "(x,y)"
        assert emphasize_argument("(x, y)", 0) == "(x,y)"

    def test_non_breaking_space(self):
        """Non-breaking spaces separate arguments like spaces."""
        assert emphasize_argument("a,\u00a0b", 2) == f"a,{EMPHASIZE_PREFIX}b{EMPHASIZE_SUFFIX}"


class TestSignatureText:
    """Tests for signature text normalization."""

    def test_normalize_macro_signature(self):
        """Whitespace is collapsed and commas are followed by one space."""
        assert normalize_macro_signature("( x ,y )") == "(x, y)"
        assert normalize_macro_signature("(arg1,arg2)") == "(arg1, arg2)"

    def test_beautify_formal_spec(self):
        """Compiled formal specs are rendered as declared."""
        assert beautify_formal_spec('pName:%String="x",&pOut:%Integer,*sc:%Status') == (
            '(pName As %String = "x", ByRef pOut As %Integer, Output sc As %Status)'
        )

    def test_beautify_empty(self):
        """An empty formal spec renders as ()."""
        assert beautify_formal_spec("") == "()"
        assert beautify_formal_spec("()") == "()"

    def test_beautify_default_without_type(self):
        """A default value without a type."""
        assert beautify_formal_spec("pVal=5") == "(pVal = 5)"

    def test_beautify_untyped(self):
        """Names without type are kept."""
        assert beautify_formal_spec("a,b") == "(a, b)"

    def test_beautify_quoted_default_with_comma(self):
        """Commas inside a default value do not split arguments."""
        assert beautify_formal_spec('sep:%String=","') == '(sep As %String = ",")'

    def test_quote_udl_identifier(self):
        """Quoted identifiers round between forms."""
        assert quote_udl_identifier('"my""name"', 0) == 'my"name'
        assert quote_udl_identifier("Plain", 0) == "Plain"
        assert quote_udl_identifier("my name", 1) == '"my name"'
        assert quote_udl_identifier("%New", 1) == "%New"

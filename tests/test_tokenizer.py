"""Tests for the bundled ObjectScript token classifier."""

from objsig.document import Document
from objsig.languages import Attribute, Language
from objsig.tokenizer import classify, classify_class_line, classify_code_line


def described(text, tokens):
    return [(text[t.start:t.end], Attribute(t.attribute).name) for t in tokens]


def code(text):
    tokens, _ = classify_code_line(text)
    return described(text, tokens)


class TestCodeLines:
    """Tests for classify_code_line."""

    def test_macro_call(self):
        """Macros, commands, delimiters and spaced assignments."""
        assert code(" set x = $$$MyMacro(a, b)") == [
            ("set", "COMMAND"),
            ("x", "LOCAL_VARIABLE"),
            ("=", "OPERATOR"),
            ("$$$MyMacro", "MACRO"),
            ("(", "DELIMITER"),
            ("a", "LOCAL_VARIABLE"),
            (",", "DELIMITER"),
            ("b", "LOCAL_VARIABLE"),
            (")", "DELIMITER"),
        ]

    def test_class_method_call(self):
        """##class references yield a class name and a method."""
        assert code("    set obj = ##class(Sample.Person).%New(") == [
            ("set", "COMMAND"),
            ("obj", "LOCAL_VARIABLE"),
            ("=", "OPERATOR"),
            ("##class", "PREPROCESSOR"),
            ("(", "DELIMITER"),
            ("Sample.Person", "CLASS_NAME"),
            (")", "DELIMITER"),
            (".", "OPERATOR"),
            ("%New", "METHOD"),
            ("(", "DELIMITER"),
        ]

    def test_relative_method_and_property(self):
        """..Name( is a method call, obj.Name a property."""
        assert code(" do ..Greet(p.Name)") == [
            ("do", "COMMAND"),
            (".", "OPERATOR"),
            (".", "OPERATOR"),
            ("Greet", "METHOD"),
            ("(", "DELIMITER"),
            ("p", "LOCAL_VARIABLE"),
            (".", "OPERATOR"),
            ("Name", "PROPERTY"),
            (")", "DELIMITER"),
        ]

    def test_routine_references(self):
        """^Routine after DO or an extrinsic is a routine reference."""
        assert code(" do Fmt^Util(1)")[:3] == [
            ("do", "COMMAND"),
            ("Fmt", "LOCAL_VARIABLE"),
            ("^Util", "ROUTINE_REF"),
        ]
        assert code(" set x = $$Fmt^Util(1)")[3:5] == [
            ("$$Fmt", "EXTRINSIC"),
            ("^Util", "ROUTINE_REF"),
        ]

    def test_global(self):
        """^Name in an expression is a global."""
        assert ("^Data", "GLOBAL") in code(" set x = ^Data(1)")

    def test_label_and_comment(self):
        """Column 0 names are labels and ; starts a comment."""
        assert code("Fmt(val) quit val ; format") == [
            ("Fmt", "LABEL"),
            ("(", "DELIMITER"),
            ("val", "LOCAL_VARIABLE"),
            (")", "DELIMITER"),
            ("quit", "COMMAND"),
            ("val", "LOCAL_VARIABLE"),
            ("; format", "COMMENT"),
        ]

    def test_string_with_parens(self):
        """Strings are one token, including doubled quotes and parens."""
        assert code(' write "a(""b"")", x') == [
            ("write", "COMMAND"),
            ('"a(""b"")"', "STRING"),
            (",", "DELIMITER"),
            ("x", "LOCAL_VARIABLE"),
        ]

    def test_unterminated_string(self):
        """An unterminated string runs to the end of the line."""
        assert code(' write "a(b')[-1] == ('"a(b', "STRING")

    def test_variable_named_like_command(self):
        """A name after an operator is never a command."""
        assert code(" set x = i + 1")[3] == ("i", "LOCAL_VARIABLE")

    def test_two_commands(self):
        """A space after the arguments starts the next command."""
        assert [a for _, a in code(" set x=1 write x")] == [
            "COMMAND", "LOCAL_VARIABLE", "OPERATOR", "NUMBER", "COMMAND", "LOCAL_VARIABLE",
        ]

    def test_system_function_and_preprocessor(self):
        """$functions and #directives."""
        assert code(" #dim p As Sample.Person")[0] == ("#dim", "PREPROCESSOR")
        assert code(" set x = $Piece(y)")[3] == ("$Piece", "SYSTEM_FUNCTION")

    def test_block_comment_spans_lines(self):
        """An unterminated /* comment continues onto the next line."""
        tokens, open_comment = classify_code_line(" /* start")
        assert open_comment
        tokens, open_comment = classify_code_line(" end */ quit", in_comment=True)
        assert not open_comment
        assert described(" end */ quit", tokens) == [(" end */", "COMMENT"), ("quit", "COMMAND")]

    def test_embedded_sql(self):
        """Embedded SQL parens are not ObjectScript delimiters."""
        text = " &sql(SELECT a INTO :x FROM t WHERE b = (1))"
        tokens, _ = classify_code_line(text)
        assert tokens[-1].language == Language.SQL
        assert text[tokens[-1].start:tokens[-1].end] == "(SELECT a INTO :x FROM t WHERE b = (1))"


class TestClassify:
    """Tests for classify on whole documents."""

    def test_routine_header(self):
        """The routine name is the second token of line 0."""
        document = Document("file:///Demo.mac", "objectscript", "ROUTINE Demo [Type=MAC]\n quit")
        tokens = classify(document)
        assert described(document.line(0), tokens[0])[:2] == [("ROUTINE", "KEYWORD"), ("Demo", "ROUTINE_NAME")]
        assert len(tokens) == 2

    def test_class_regions(self):
        """Method bodies are ObjectScript, the rest of a class is class language."""
        lines = [
            "Class Demo.Test Extends %RegisteredObject",
            "{",
            "",
            "/// Run it",
            "ClassMethod Run() As %Status",
            "{",
            "    quit $$$OK",
            "}",
            "",
            "XData Config",
            "{",
            "<config/>",
            "}",
            "",
            "}",
        ]
        document = Document("file:///Demo/Test.cls", "objectscript-class", "\n".join(lines))
        tokens = classify(document)

        assert len(tokens) == len(lines)
        assert {t.language for t in tokens[0]} == {Language.CLASS}
        assert tokens[3][0].attribute == Attribute.DOC_COMMENT
        assert {t.language for t in tokens[6]} == {Language.OBJECTSCRIPT}
        assert tokens[7][0].language == Language.CLASS
        assert tokens[11][0].language == Language.XML
        assert tokens[14][0].language == Language.CLASS

    def test_class_line_names(self):
        """Keywords, class names and member names on class lines."""
        text = "Property Name As %String;"
        assert described(text, classify_class_line(text)) == [
            ("Property", "KEYWORD"),
            ("Name", "MEMBER"),
            ("As", "KEYWORD"),
            ("%String", "CLASS_NAME"),
            (";", "OPERATOR"),
        ]

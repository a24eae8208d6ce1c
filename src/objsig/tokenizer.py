"""Regex-based classification of ObjectScript source into tokens.

Editors with a semantic tokenizer of their own hand its tokens to the engine
directly. This classifier lets the command line and the MCP server work from
plain files. It recognizes what call resolution relies on: delimiters,
macros, extrinsics, member calls, class references, strings and comments.

Whitespace is never tokenized. Every "(" "," and ")" of ObjectScript code is
a single-character DELIMITER token.
"""

import re

from objsig.document import Document
from objsig.languages import Attribute, Language
from objsig.models import ClassifiedToken

COMMANDS = frozenset({
    "B", "BREAK", "C", "CATCH", "CLOSE", "CONTINUE", "D", "DO", "E", "ELSE", "ELSEIF",
    "F", "FOR", "G", "GOTO", "H", "HALT", "HANG", "I", "IF", "J", "JOB", "K", "KILL",
    "L", "LOCK", "M", "MERGE", "N", "NEW", "O", "OPEN", "Q", "QUIT", "R", "READ",
    "RET", "RETURN", "S", "SET", "TC", "TCOMMIT", "THROW", "TRO", "TROLLBACK", "TS",
    "TSTART", "TRY", "U", "USE", "V", "VIEW", "W", "WHILE", "WRITE", "X", "XECUTE",
    "ZK", "ZKILL", "ZN", "ZNSPACE", "ZW", "ZWRITE",
})
# Commands whose arguments may be label/routine references
ROUTINE_COMMANDS = frozenset({"D", "DO", "G", "GOTO", "J", "JOB"})

CLASS_KEYWORDS = frozenset({
    "as", "class", "classmethod", "clientmethod", "extends", "foreignkey", "import",
    "include", "includegenerator", "index", "method", "of", "on", "parameter",
    "projection", "property", "query", "relationship", "storage", "trigger", "xdata",
    "array", "list",
})

_CODE_MEMBER = re.compile(r"^(?:ClassMethod|Method|ClientMethod|Trigger)\s", re.IGNORECASE)
_XML_MEMBER = re.compile(r"^(?:XData|Storage)\s", re.IGNORECASE)
_ROUTINE_HEADER = re.compile(r"^(ROUTINE)\s+(%?[A-Za-z][\w%.]*)", re.IGNORECASE)

_NAME = re.compile(r"%?[A-Za-z][A-Za-z0-9]*")
_LABEL = re.compile(r"%?[A-Za-z0-9]+")
_CLASS_NAME = re.compile(r"%?[A-Za-z][A-Za-z0-9]*(?:\.%?[A-Za-z][A-Za-z0-9]*)*")
_NUMBER = re.compile(r"\d+(?:\.\d+)?(?:[Ee][+-]?\d+)?|\.\d+(?:[Ee][+-]?\d+)?")
_GLOBAL = re.compile(r"\^(?:\|\|)?%?[A-Za-z][A-Za-z0-9.]*")
_HEADER_PART = re.compile(r"[\w%.]+|\S")

DELIMITERS = "(),{}[]"


def _token(start: int, end: int, attribute: Attribute, language: Language = Language.OBJECTSCRIPT) -> ClassifiedToken:
    return ClassifiedToken(start=start, length=end - start, language=language, attribute=attribute)


def _string_end(text: str, start: int) -> int:
    """End offset of the string literal opening at start ("" escapes a quote)."""
    end = start + 1
    while True:
        quote = text.find('"', end)
        if quote == -1:
            return len(text)
        if text.startswith('""', quote):
            end = quote + 2
            continue
        return quote + 1


class _CodeLineScanner:
    """Classifies one line of ObjectScript code."""

    def __init__(self, text: str, in_comment: bool):
        self.text = text
        self.pos = 0
        self.tokens: list[ClassifiedToken] = []
        self.in_comment = in_comment
        self.depth = 0
        self.expect_command = True
        self.after_command = False
        self.in_args = False
        self.command = ""
        self.class_name_pending = False

    def emit(self, start: int, end: int, attribute: Attribute, language: Language = Language.OBJECTSCRIPT) -> None:
        if end > start:
            self.tokens.append(_token(start, end, attribute, language))
            if attribute != Attribute.COMMAND and self.expect_command:
                self.expect_command = False
                self.in_args = True
        self.pos = end

    def scan(self) -> tuple[list[ClassifiedToken], bool]:
        text = self.text
        if self.in_comment:
            close = text.find("*/")
            if close == -1:
                self.emit(0, len(text), Attribute.COMMENT)
                return self.tokens, True
            self.emit(0, close + 2, Attribute.COMMENT)
            self.in_comment = False
            self.expect_command = True
            self.in_args = False
        elif text.startswith("///"):
            self.emit(0, len(text), Attribute.DOC_COMMENT)
            return self.tokens, False
        else:
            label = _LABEL.match(text)
            if label:
                self.emit(0, label.end(), Attribute.LABEL)

        while self.pos < len(text):
            self.step()
        return self.tokens, self.in_comment

    def whitespace(self, start: int, end: int) -> None:
        self.pos = end
        if self.depth > 0:
            return
        if self.after_command:
            self.after_command = False
            # Two spaces (or the end of the line) follow an argumentless command
            if end - start >= 2 or end == len(self.text):
                self.expect_command = True
            else:
                self.in_args = True
        elif self.in_args and not self.after_operator():
            self.in_args = False
            self.expect_command = True

    def after_operator(self) -> bool:
        """True if the last token (an operator or a comma) expects more of the argument."""
        if not self.tokens:
            return False
        last = self.tokens[-1]
        if last.attribute == Attribute.OPERATOR:
            return True
        return last.attribute == Attribute.DELIMITER and self.text[last.start:last.end] == ","

    def routine_context(self) -> bool:
        previous = self.tokens[-1] if self.tokens else None
        if previous is not None and previous.attribute == Attribute.EXTRINSIC and previous.end == self.pos:
            return True
        return self.command in ROUTINE_COMMANDS and self.in_args and self.depth == 0

    def step(self) -> None:
        text, pos = self.text, self.pos
        ch = text[pos]
        rest = text[pos:]

        if ch in " \t":
            end = pos
            while end < len(text) and text[end] in " \t":
                end += 1
            self.whitespace(pos, end)
            return

        if self.class_name_pending:
            self.class_name_pending = False
            if ch == '"':
                self.emit(pos, _string_end(text, pos), Attribute.CLASS_NAME)
                return
            match = _CLASS_NAME.match(text, pos)
            if match:
                self.emit(pos, match.end(), Attribute.CLASS_NAME)
                return

        if ch == ";" or rest.startswith(("#;", "##;")) or (rest.startswith("//") and (pos == 0 or text[pos - 1] in " \t")):
            self.emit(pos, len(text), Attribute.COMMENT)
        elif rest.startswith("/*"):
            close = text.find("*/", pos + 2)
            if close == -1:
                self.emit(pos, len(text), Attribute.COMMENT)
                self.in_comment = True
            else:
                self.emit(pos, close + 2, Attribute.COMMENT)
        elif ch == '"':
            self.emit(pos, _string_end(text, pos), Attribute.STRING)
        elif rest.startswith("$$$"):
            self.named(pos, 3, Attribute.MACRO)
        elif rest.startswith("$$"):
            self.named(pos, 2, Attribute.EXTRINSIC)
        elif ch == "$":
            self.named(pos, 1, Attribute.SYSTEM_FUNCTION)
        elif rest.startswith("##"):
            match = _NAME.match(text, pos + 2)
            end = match.end() if match else pos + 2
            self.emit(pos, end, Attribute.PREPROCESSOR)
            if match and match.group().lower() == "class":
                self.class_name_pending = True
        elif ch == "#" and self.expect_command:
            self.named(pos, 1, Attribute.PREPROCESSOR)
        elif ch == "^":
            match = _GLOBAL.match(text, pos)
            end = match.end() if match else pos + 1
            if match is None:
                self.emit(pos, end, Attribute.OPERATOR)
            else:
                self.emit(pos, end, Attribute.ROUTINE_REF if self.routine_context() else Attribute.GLOBAL)
        elif ch == "&" and rest[1:5].lower() == "sql(":
            self.embedded_sql(pos)
        elif ch.isdigit() or (ch == "." and rest[1:2].isdigit()):
            self.emit(pos, _NUMBER.match(text, pos).end(), Attribute.NUMBER)
        elif ch == ".":
            self.emit(pos, pos + 1, Attribute.OPERATOR)
            member = _NAME.match(text, pos + 1)
            if member:
                called = text[member.end():member.end() + 1] == "("
                self.emit(member.start(), member.end(), Attribute.METHOD if called else Attribute.PROPERTY)
        elif ch == "%" or ch.isalpha():
            self.word(pos)
        elif ch in DELIMITERS:
            self.delimiter(pos, ch)
        else:
            self.emit(pos, pos + 1, Attribute.OPERATOR)

    def named(self, pos: int, prefix: int, attribute: Attribute) -> None:
        match = _NAME.match(self.text, pos + prefix)
        if match is None:
            self.emit(pos, pos + prefix, Attribute.OPERATOR)
            return
        self.emit(pos, match.end(), attribute)

    def word(self, pos: int) -> None:
        match = _NAME.match(self.text, pos)
        if match is None:
            self.emit(pos, pos + 1, Attribute.OPERATOR)
            return
        if self.expect_command and not self.after_operator() and match.group().upper() in COMMANDS:
            self.emit(pos, match.end(), Attribute.COMMAND)
            self.command = match.group().upper()
            self.expect_command = False
            self.after_command = True
            self.in_args = False
            return
        self.emit(pos, match.end(), Attribute.LOCAL_VARIABLE)

    def delimiter(self, pos: int, ch: str) -> None:
        self.emit(pos, pos + 1, Attribute.DELIMITER)
        if ch == "(":
            self.depth += 1
            # ##class( is followed by the class name
            previous = self.tokens[-2] if len(self.tokens) > 1 else None
            self.class_name_pending = (
                previous is not None
                and previous.attribute == Attribute.PREPROCESSOR
                and self.text[previous.start:previous.end].lower() == "##class"
            )
        elif ch == ")":
            self.depth = max(self.depth - 1, 0)
        elif ch in "{}":
            self.expect_command = True
            self.after_command = False
            self.in_args = False

    def embedded_sql(self, pos: int) -> None:
        self.emit(pos, pos + 4, Attribute.PREPROCESSOR)
        text = self.text
        depth = 0
        index = pos + 4
        while index < len(text):
            ch = text[index]
            if ch == '"':
                index = _string_end(text, index)
                continue
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    index += 1
                    break
            index += 1
        self.emit(pos + 4, index, Attribute.KEYWORD, Language.SQL)


def classify_code_line(text: str, in_comment: bool = False) -> tuple[list[ClassifiedToken], bool]:
    """Classify one line of ObjectScript code.

    Args:
        text: The line's text
        in_comment: Whether the line starts inside a /* */ comment

    Returns:
        The line's tokens, and whether a /* */ comment is still open at its end
    """
    return _CodeLineScanner(text, in_comment).scan()


def classify_class_line(text: str) -> list[ClassifiedToken]:
    """Classify a line of a class definition outside of member bodies."""
    if text.lstrip().startswith("///"):
        start = len(text) - len(text.lstrip())
        return [_token(start, len(text), Attribute.DOC_COMMENT, Language.CLASS)]

    tokens = []
    previous_word = ""
    pos = 0
    while pos < len(text):
        ch = text[pos]
        if ch in " \t":
            pos += 1
            continue
        if text.startswith("//", pos):
            tokens.append(_token(pos, len(text), Attribute.COMMENT, Language.CLASS))
            break
        if ch == '"':
            end = _string_end(text, pos)
            tokens.append(_token(pos, end, Attribute.STRING, Language.CLASS))
        elif ch == "%" or ch.isalpha():
            match = _CLASS_NAME.match(text, pos)
            if match is None:
                end = pos + 1
                tokens.append(_token(pos, end, Attribute.OPERATOR, Language.CLASS))
            else:
                end = match.end()
                word = match.group()
                if word.lower() in CLASS_KEYWORDS:
                    attribute = Attribute.KEYWORD
                elif "." in word or previous_word in ("as", "extends", "of"):
                    attribute = Attribute.CLASS_NAME
                else:
                    attribute = Attribute.MEMBER
                tokens.append(_token(pos, end, attribute, Language.CLASS))
                previous_word = word.lower()
        elif ch.isdigit():
            end = _NUMBER.match(text, pos).end()
            tokens.append(_token(pos, end, Attribute.NUMBER, Language.CLASS))
        else:
            end = pos + 1
            attribute = Attribute.DELIMITER if ch in DELIMITERS else Attribute.OPERATOR
            tokens.append(_token(pos, end, attribute, Language.CLASS))
        pos = end
    return tokens


def _routine_header(text: str, match: re.Match) -> list[ClassifiedToken]:
    tokens = [
        _token(match.start(1), match.end(1), Attribute.KEYWORD),
        _token(match.start(2), match.end(2), Attribute.ROUTINE_NAME),
    ]
    for part in _HEADER_PART.finditer(text, match.end()):
        value = part.group()
        if value in DELIMITERS:
            attribute = Attribute.DELIMITER
        elif len(value) == 1 and not value.isalnum():
            attribute = Attribute.OPERATOR
        else:
            attribute = Attribute.KEYWORD
        tokens.append(_token(part.start(), part.end(), attribute))
    return tokens


def _classify_class(lines: list[str]) -> list[list[ClassifiedToken]]:
    result = []
    region = "class"
    pending = ""
    for text in lines:
        if region == "class":
            result.append(classify_class_line(text))
            if _CODE_MEMBER.match(text):
                pending = "code"
            elif _XML_MEMBER.match(text):
                pending = "xml"
            if pending and text.rstrip().endswith("{"):
                region, pending = pending, ""
            continue

        if text.startswith("}"):
            # A closing brace in column 0 ends the member body
            result.append(classify_class_line(text))
            region = "class"
            continue

        if region == "xml":
            stripped = text.strip()
            start = len(text) - len(text.lstrip())
            result.append([_token(start, start + len(stripped), Attribute.KEYWORD, Language.XML)] if stripped else [])
            continue

        line_tokens, _ = classify_code_line(text)
        result.append(line_tokens)
    return result


def classify(document: Document) -> list[list[ClassifiedToken]]:
    """Classify a whole document into per-line token lists.

    Class definitions are classified as class language except inside method
    bodies, which are ObjectScript. XData and Storage blocks are XML.
    Routines and include files are ObjectScript throughout, with the
    ROUTINE header's name as the second token of line 0.

    Args:
        document: Document to classify

    Returns:
        One list of tokens per line, ordered by start offset
    """
    if document.language_id == "objectscript-class":
        return _classify_class(document.lines)

    tokens = []
    in_comment = False
    for number, text in enumerate(document.lines):
        header = _ROUTINE_HEADER.match(text) if number == 0 else None
        if header:
            tokens.append(_routine_header(text, header))
            continue
        line_tokens, in_comment = classify_code_line(text, in_comment)
        tokens.append(line_tokens)
    return tokens

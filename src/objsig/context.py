"""Document-derived context for macro and class member resolution.

The engine consumes these through two small callables so that an editor
integration with a richer model of the workspace can replace them. The
defaults here read the document text only.
"""

import re
from typing import Protocol

from objsig.document import Document
from objsig.models import ClassifiedToken, MacroContext, MemberContext

_CLASS_HEADER = re.compile(
    r"^Class\s+([%\w.]+)(?:\s+Extends\s+(\([^)]*\)|[%\w.]+))?", re.IGNORECASE
)
_ROUTINE_HEADER = re.compile(r"^ROUTINE\s+([%\w.]+)(?:\s*\[\s*Type\s*=\s*(\w+))?", re.IGNORECASE)
_HEADER_LIST = {
    "includes": re.compile(r"^Include\s+(\([^)]*\)|[%\w.]+)", re.IGNORECASE),
    "include_generators": re.compile(r"^IncludeGenerator\s+(\([^)]*\)|[%\w.]+)", re.IGNORECASE),
    "imports": re.compile(r"^Import\s+(\([^)]*\)|[%\w.]+)", re.IGNORECASE),
}
_POUND_INCLUDE = re.compile(r"^\s*#include\s+([%\w.]+)", re.IGNORECASE)
_METHOD_HEADER = re.compile(r"^(?:Class)?Method\s", re.IGNORECASE)
_GENERATOR = re.compile(r"CodeMode\s*=\s*\"?(?:object)?generator", re.IGNORECASE)

_CLASS_REFERENCE = re.compile(r"##class\(\s*([%\w.]+|\"[^\"]+\")\s*\)\s*\.$", re.IGNORECASE)
_THIS_REFERENCE = re.compile(r"\$this\.$", re.IGNORECASE)
_VARIABLE_REFERENCE = re.compile(r"([%A-Za-z][%\w]*)\.$")


class MacroContextProvider(Protocol):
    def __call__(self, document: Document, tokens: list[list[ClassifiedToken]], line: int) -> MacroContext:
        ...


class MemberContextProvider(Protocol):
    def __call__(
        self, document: Document, tokens: list[list[ClassifiedToken]], token: int, line: int
    ) -> MemberContext:
        ...


def _split_list(value: str) -> list[str]:
    value = value.strip()
    if value.startswith("(") and value.endswith(")"):
        value = value[1:-1]
    return [v.strip() for v in value.split(",") if v.strip()]


def current_class(document: Document) -> str:
    """Name of the class a class definition document defines ("" if none)."""
    for text in document.lines:
        match = _CLASS_HEADER.match(text)
        if match:
            return match.group(1)
    return ""


def normalize_class_name(name: str, document: Document | None = None) -> str:
    """Expand short class names: %Foo -> %Library.Foo, Foo -> <current package>.Foo."""
    name = name.strip('"')
    if "." in name or not name:
        return name
    if name.startswith("%"):
        return f"%Library.{name[1:]}"
    if document is not None:
        owner = current_class(document)
        if "." in owner:
            return f"{owner.rsplit('.', 1)[0]}.{name}"
    return name


class DocumentMacroContext:
    """Builds a MacroContext from the class or routine header of a document."""

    def __call__(self, document: Document, tokens: list[list[ClassifiedToken]], line: int) -> MacroContext:
        context = MacroContext(docname="", macroname="")
        for text in document.lines:
            class_match = _CLASS_HEADER.match(text)
            if class_match and not context.docname:
                context.docname = f"{class_match.group(1)}.cls"
                if class_match.group(2):
                    context.superclasses = _split_list(class_match.group(2))
                continue
            routine_match = _ROUTINE_HEADER.match(text)
            if routine_match and not context.docname:
                extension = (routine_match.group(2) or self._extension(document)).lower()
                context.docname = f"{routine_match.group(1)}.{extension}"
                continue
            for attribute, pattern in _HEADER_LIST.items():
                match = pattern.match(text)
                if match:
                    getattr(context, attribute).extend(_split_list(match.group(1)))
                    break
            else:
                include = _POUND_INCLUDE.match(text)
                if include and include.group(1) not in context.includes:
                    context.includes.append(include.group(1))

        context.mode = self._mode(document, line)
        return context

    @staticmethod
    def _extension(document: Document) -> str:
        return {"objectscript-int": "int", "objectscript-macros": "inc"}.get(document.language_id, "mac")

    @staticmethod
    def _mode(document: Document, line: int) -> str:
        if document.language_id != "objectscript-class":
            return ""
        for ln in range(min(line, document.line_count - 1), -1, -1):
            text = document.line(ln)
            if _METHOD_HEADER.match(text):
                return "generator" if _GENERATOR.search(text) else ""
        return ""


class DocumentMemberContext:
    """Determines the class a member call is made on from the text before it.

    Recognized receivers: ##class(Name). , .. , $this. , and local variables
    typed with #dim, assigned from ##class(Name).%New(), or declared as a
    method argument "var As Name".
    """

    def __call__(
        self, document: Document, tokens: list[list[ClassifiedToken]], token: int, line: int
    ) -> MemberContext:
        if token < 0 or line >= len(tokens) or token >= len(tokens[line]):
            return MemberContext()
        prefix = document.line(line)[:tokens[line][token].end].rstrip()

        match = _CLASS_REFERENCE.search(prefix)
        if match:
            return MemberContext(base_class=normalize_class_name(match.group(1), document))
        if prefix.endswith("..") or _THIS_REFERENCE.search(prefix):
            return MemberContext(base_class=current_class(document))
        match = _VARIABLE_REFERENCE.search(prefix)
        if match:
            declared = self._variable_type(document, match.group(1), line)
            if declared:
                return MemberContext(base_class=normalize_class_name(declared, document))
        return MemberContext()

    @staticmethod
    def _variable_type(document: Document, variable: str, line: int) -> str:
        name = re.escape(variable)
        patterns = [
            re.compile(
                rf"#dim\s+(?:[%\w]+\s*,\s*)*{name}(?:\s*,\s*[%\w]+)*\s+As\s+(?:(?:list|array)\s+of\s+)?([%\w.]+)",
                re.IGNORECASE,
            ),
            re.compile(rf"\bs(?:et)?\s+{name}\s*=\s*##class\(\s*([%\w.]+)\s*\)\s*\.\s*%New\b", re.IGNORECASE),
            re.compile(rf"[(,]\s*[&*]?{name}\s+As\s+([%\w.]+)", re.IGNORECASE),
        ]
        for ln in range(min(line, document.line_count - 1), -1, -1):
            text = document.line(ln)
            for pattern in patterns:
                match = pattern.search(text)
                if match:
                    return match.group(1)
            if _METHOD_HEADER.match(text):
                break
        return ""

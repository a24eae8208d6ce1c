"""Markdown documentation for the active parameter of a signature.

Three kinds of documentation are produced:

- macro: the macro expansion with the active argument emphasized, fetched
  from the symbol service whenever the active argument changes;
- method: the member's Documatic description, converted to Markdown once;
- routine: the signature label with the active parameter highlighted,
  rebuilt locally for every parameter change.
"""

import html
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lsprotocol.types import MarkupContent, MarkupKind, SignatureInformation

from objsig.errors import TransportFault
from objsig.models import MacroContext
from objsig.params import EMPHASIZE_PREFIX, EMPHASIZE_SUFFIX, emphasize_argument
from objsig.services import SymbolService

if TYPE_CHECKING:
    from objsig.session import SignatureSession

logger = logging.getLogger(__name__)

HOVER = "hover"
SIGNATURE = "signature"


@dataclass(frozen=True)
class DocumentationLabels:
    """Localized text used in parameter documentation."""
    parameter_at_source: str


LABELS = {
    "en": DocumentationLabels(parameter_at_source="Parameter at source:"),
    "pt": DocumentationLabels(parameter_at_source="Parâmetro na origem:"),
}


def labels_for(locale: str) -> DocumentationLabels:
    return LABELS.get(locale.split("-")[0].lower(), LABELS["en"])


def markdownify_expansion(expansion: list[str]) -> str:
    """Render macro expansion lines as a code block with the emphasized argument underlined."""
    body = "\n".join(line.rstrip() for line in expansion)
    body = body.replace(EMPHASIZE_PREFIX, "<b><i><u>").replace(EMPHASIZE_SUFFIX, "</u></i></b>")
    return "<pre>\n" + body + "\n</pre>"


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _parameter_text(signature: SignatureInformation, index: int) -> str:
    parameters = signature.parameters or []
    if not 0 <= index < len(parameters):
        return ""
    label = parameters[index].label
    if isinstance(label, str):
        return label
    start, end = label
    return signature.label[start:end] if start < end else ""


def _inline(text: str, bold: bool) -> str:
    return f"**`{text}`**" if bold else f"`{text}`"


def _signature_with_inline_parameter(signature: SignatureInformation, index: int, bold: bool) -> str:
    label = signature.label
    parameters = signature.parameters or []
    if not 0 <= index < len(parameters):
        return _escape(label)

    target = parameters[index].label
    if isinstance(target, str):
        if target:
            safe_label = _escape(label)
            needle = _escape(target)
            found = safe_label.find(needle)
            if found >= 0:
                return safe_label[:found] + _inline(needle, bold) + safe_label[found + len(needle):]
        return _escape(label)

    start, end = target
    if start >= end:
        return _escape(label)
    return _escape(label[:start]) + _inline(_escape(label[start:end]), bold) + _escape(label[end:])


def build_parameter_documentation(
    signature: SignatureInformation,
    active_index: int | None,
    context: str = SIGNATURE,
    bold_parameter: bool = False,
    show_header: bool = True,
    labels: DocumentationLabels = LABELS["en"],
) -> MarkupContent:
    """Build Markdown describing the active parameter of a signature.

    Args:
        signature: Signature whose parameter labels are spans or strings
        active_index: Active parameter, or None when there is none
        context: HOVER or SIGNATURE
        bold_parameter: Render the active parameter bold as well as inline code
        show_header: In hover context, prefix a code block with the raw label
        labels: Localized text

    Returns:
        MarkupContent in Markdown
    """
    parameters = signature.parameters or []
    index = min(max(active_index or 0, 0), len(parameters) - 1) if parameters else 0
    text = _parameter_text(signature, index)

    lines = []
    if context == HOVER and show_header:
        lines.extend(["```", signature.label, "```", ""])

    if context != SIGNATURE:
        lines.append(_signature_with_inline_parameter(signature, index, bold_parameter))
        lines.append("")

    if text:
        lines.append(f"{labels.parameter_at_source} {_inline(_escape(text), bold_parameter)}")
    else:
        lines.append(labels.parameter_at_source)

    return MarkupContent(kind=MarkupKind.Markdown, value="\n".join(lines))


_DOCUMATIC_INLINE = [
    (re.compile(r"<(?:b|strong)>(.*?)</(?:b|strong)>", re.I | re.S), r"**\1**"),
    (re.compile(r"<(?:i|em)>(.*?)</(?:i|em)>", re.I | re.S), r"*\1*"),
    (re.compile(r"<(?:var|class|method|property|parameter|query|index|tt|code)>(.*?)</(?:var|class|method|property|parameter|query|index|tt|code)>", re.I | re.S), r"`\1`"),
    (re.compile(r"<a\s+[^>]*href\s*=\s*[\"']([^\"']*)[\"'][^>]*>(.*?)</a>", re.I | re.S), r"[\2](\1)"),
]
_BLOCK = re.compile(r"<(example|pre)(?:\s[^>]*)?>(.*?)</\1>", re.I | re.S)
_LIST_ITEM = re.compile(r"\s*<li>\s*", re.I)
_LINE_BREAK = re.compile(r"<br\s*/?>", re.I)
_PARAGRAPH = re.compile(r"</?p(?:\s[^>]*)?>", re.I)
_ANY_TAG = re.compile(r"</?[A-Za-z][^>]*>")


def documatic_html_to_markdown(description: str) -> str:
    """Convert a Documatic HTML class member description to Markdown."""
    if not description:
        return ""

    blocks = []

    def stash(match: re.Match) -> str:
        blocks.append("```\n" + html.unescape(match.group(2).strip("\n")) + "\n```")
        return f"\x00{len(blocks) - 1}\x00"

    text = _BLOCK.sub(stash, description)
    text = _LINE_BREAK.sub("\n", text)
    text = _PARAGRAPH.sub("\n\n", text)
    text = _LIST_ITEM.sub("\n- ", text)
    for pattern, replacement in _DOCUMATIC_INLINE:
        text = pattern.sub(replacement, text)
    text = _ANY_TAG.sub("", text)
    text = html.unescape(text)
    text = "\n".join(line.strip() for line in text.splitlines())
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    return re.sub(r"\x00(\d+)\x00", lambda m: "\n" + blocks[int(m.group(1))] + "\n", text).strip()


@dataclass
class DocumentationCache:
    """Documentation computed for the active signature.

    active_parameter records which parameter the content was computed for,
    so a retrigger that does not change it can reuse the content as is.
    """
    kind: str
    content: MarkupContent | None = None
    active_parameter: int | None = None


class DocumentationRenderer:
    """Computes (and refreshes) the documentation shown alongside a signature."""

    def __init__(self, symbols: SymbolService, labels: DocumentationLabels = LABELS["en"]):
        self.symbols = symbols
        self.labels = labels

    def render(self, session: "SignatureSession", active: int | None) -> MarkupContent | None:
        """Return documentation for the session's signature at the active parameter.

        The session's cache is updated in place.
        """
        cache = session.cache
        if cache.kind == "macro":
            index = active or 0
            if index == cache.active_parameter:
                return cache.content
            content = self.expand_macro(session.macro_context, index)
            if content is not None:
                cache.content = content
            cache.active_parameter = index
            return cache.content

        if cache.kind == "routine":
            if cache.content is None or active != cache.active_parameter:
                cache.content = build_parameter_documentation(
                    session.signature, active, SIGNATURE, labels=self.labels
                )
                cache.active_parameter = active
            return cache.content

        cache.active_parameter = active
        return cache.content

    def expand_macro(self, macro_context: MacroContext | None, active: int) -> MarkupContent | None:
        """Fetch the macro expansion with argument active (0-indexed) emphasized."""
        if macro_context is None:
            return None
        request = macro_context.with_arguments(emphasize_argument(macro_context.arguments, active + 1))
        try:
            expansion = self.symbols.get_macro_expansion(request)
        except TransportFault as e:
            logger.warning(f"Macro expansion for {macro_context.macroname} failed: {e}")
            return None
        if not expansion:
            return None
        return MarkupContent(kind=MarkupKind.Markdown, value=markdownify_expansion(expansion))

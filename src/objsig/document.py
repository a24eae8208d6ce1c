"""In-memory text documents addressed with LSP positions."""

import re
from pathlib import Path
from urllib.parse import unquote, urlparse

from lsprotocol.types import Position, Range

from objsig.languages import LANGUAGE_IDS_BY_SUFFIX

_LINE_BREAK = re.compile(r"\r?\n")


def uri_to_path(uri: str) -> Path | None:
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return None
    return Path(unquote(parsed.path))


def path_to_uri(path: Path) -> str:
    return path.resolve().as_uri()


def language_id_for(path: Path) -> str:
    """Map a file suffix to its editor language id ("" if unknown)."""
    return LANGUAGE_IDS_BY_SUFFIX.get(path.suffix.lower(), "")


class Document:
    """A snapshot of a document's text."""

    def __init__(self, uri: str, language_id: str, text: str):
        self.uri = uri
        self.language_id = language_id
        self.text = text
        self.lines = _LINE_BREAK.split(text)

    @classmethod
    def from_path(cls, path: Path) -> "Document":
        """Load a document from disk.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return cls(path_to_uri(path), language_id_for(path), path.read_text())

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line(self, number: int) -> str:
        if 0 <= number < len(self.lines):
            return self.lines[number]
        return ""

    def _clamp(self, position: Position) -> tuple[int, int]:
        if position.line < 0:
            return 0, 0
        if position.line >= len(self.lines):
            last = len(self.lines) - 1
            return last, len(self.lines[last])
        text = self.lines[position.line]
        return position.line, max(0, min(position.character, len(text)))

    def get_text(self, range: Range | None = None) -> str:
        """Return the text inside range, or the whole document when range is None."""
        if range is None:
            return self.text
        start_line, start_char = self._clamp(range.start)
        end_line, end_char = self._clamp(range.end)
        if (end_line, end_char) <= (start_line, start_char):
            return ""
        if start_line == end_line:
            return self.lines[start_line][start_char:end_char]
        parts = [self.lines[start_line][start_char:]]
        parts.extend(self.lines[start_line + 1:end_line])
        parts.append(self.lines[end_line][:end_char])
        return "\n".join(parts)

    def char_before(self, position: Position) -> str:
        if position.character <= 0:
            return ""
        return self.get_text(Range(
            start=Position(line=position.line, character=position.character - 1),
            end=position,
        ))

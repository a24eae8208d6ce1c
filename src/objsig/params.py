"""Parameter list scanning for formal specs, routine labels and typed arguments.

Every splitter here is driven by DelimiterScanner, a single-pass state machine
that decides whether a comma separates two top-level parameters or belongs to
a quoted value or a nested call.
"""

import re
from enum import Enum

from lsprotocol.types import ParameterInformation

# Placeholders wrapped around the emphasized macro argument. They survive a
# round trip through the macro expander and are turned into HTML afterwards.
EMPHASIZE_PREFIX = "%%%%%"
EMPHASIZE_SUFFIX = "@@@@@"

_WHITESPACE = re.compile(r"\s+")
_IDENTIFIER = re.compile(r"%?[A-Za-z][A-Za-z0-9]*")


class ScanState(Enum):
    NORMAL = "normal"
    IN_QUOTE = "in_quote"
    IN_NESTED = "in_nested"


class DelimiterScanner:
    """Tracks quoting and nesting while a parameter list is read left to right.

    Args:
        base_depth: Paren depth at which commas separate parameters. Use 1
            when the text includes the enclosing "(" of the list.
        track_braces: Whether "{" and "}" nest.
        backslash_escapes: Whether a quote preceded by a backslash is literal.
    """

    def __init__(self, base_depth: int = 0, track_braces: bool = True, backslash_escapes: bool = False):
        self.base_depth = base_depth
        self.track_braces = track_braces
        self.backslash_escapes = backslash_escapes
        self.in_quote = False
        self.paren_depth = 0
        self.brace_depth = 0
        self._previous = ""

    @property
    def state(self) -> ScanState:
        if self.in_quote:
            return ScanState.IN_QUOTE
        if self.brace_depth > 0 or self.paren_depth != self.base_depth:
            return ScanState.IN_NESTED
        return ScanState.NORMAL

    def feed(self, char: str) -> bool:
        """Consume one character; return True if it is a top-level comma."""
        previous, self._previous = self._previous, char
        if char == '"':
            if not (self.backslash_escapes and previous == "\\"):
                self.in_quote = not self.in_quote
            return False
        if self.in_quote:
            return False
        if char == "(":
            self.paren_depth += 1
        elif char == ")":
            if self.paren_depth > 0:
                self.paren_depth -= 1
        elif char == "{" and self.track_braces:
            self.brace_depth += 1
        elif char == "}" and self.track_braces:
            if self.brace_depth > 0:
                self.brace_depth -= 1
        elif char == ",":
            return self.state is ScanState.NORMAL
        return False


def top_level_commas(text: str, **scanner_options) -> list[int]:
    """Offsets of the commas in text that separate top-level parameters."""
    scanner = DelimiterScanner(**scanner_options)
    return [i for i, char in enumerate(text) if scanner.feed(char)]


def _find_top_level(text: str, chars: str) -> int:
    """Offset of the first character from chars outside quotes and nesting, or -1."""
    scanner = DelimiterScanner()
    for i, char in enumerate(text):
        if char in chars and scanner.state is ScanState.NORMAL:
            return i
        scanner.feed(char)
    return -1


def _is_wrapped(text: str) -> bool:
    """True if text starts with "(" whose matching ")" is the last character."""
    if len(text) < 2 or text[0] != "(" or text[-1] != ")":
        return False
    scanner = DelimiterScanner()
    for i, char in enumerate(text):
        scanner.feed(char)
        if scanner.paren_depth == 0 and not scanner.in_quote:
            return i == len(text) - 1
    return False


def _segments(text: str, start: int, end: int, commas: list[int]) -> list[tuple[int, int]]:
    bounds = [start - 1] + [c for c in commas if start <= c < end] + [end]
    spans = []
    for left, right in zip(bounds, bounds[1:]):
        s, e = left + 1, right
        while s < e and text[s].isspace():
            s += 1
        while e > s and text[e - 1].isspace():
            e -= 1
        spans.append((s, e))
    return spans


def split_formal_spec(formal_spec: str) -> list[tuple[int, int]]:
    """Split a parameter list into half-open [start, end) spans.

    The list may be parenthesised ("(a, b(x,y))") or bare ("a, b"). Commas
    inside quotes, braces or nested parens do not split. Spans are trimmed of
    surrounding whitespace and index the original string.

    Examples:
        >>> split_formal_spec('(a, b(x,y), "c,d")')
        [(1, 2), (4, 10), (12, 17)]
        >>> split_formal_spec("()")
        []
    """
    if _WHITESPACE.sub("", formal_spec) in ("", "()"):
        return []
    stripped = formal_spec.strip()
    if _is_wrapped(stripped):
        start = formal_spec.index("(") + 1
        end = formal_spec.rindex(")")
        commas = top_level_commas(formal_spec, base_depth=1)
    else:
        start, end = 0, len(formal_spec)
        commas = top_level_commas(formal_spec)
    return _segments(formal_spec, start, end, commas)


def formal_spec_parameters(label: str) -> list[ParameterInformation]:
    """ParameterInformation entries (offset labels) for every parameter of label."""
    return [ParameterInformation(label=span) for span in split_formal_spec(label)]


def split_routine_params(param_text: str) -> list[str]:
    """Split a routine label's parameter text into trimmed parameter strings.

    Newlines left over from joined continuation lines are treated as spaces.
    Empty parameters are dropped.
    """
    normalized = re.sub(r"\r?\n", " ", param_text)
    if not normalized.strip():
        return []
    commas = top_level_commas(normalized, track_braces=False, backslash_escapes=True)
    params = [normalized[s:e] for s, e in _segments(normalized, 0, len(normalized), commas)]
    return [p for p in params if p]


def routine_parameter_infos(label: str, params: list[str]) -> list[ParameterInformation]:
    """Spans for the parameters of a label rendered as "Name(p1, p2)"."""
    if not params:
        return []
    result = []
    position = label.index("(") + 1
    for i, param in enumerate(params):
        text = param.strip()
        result.append(ParameterInformation(label=(position, position + len(text))))
        position += len(text)
        if i < len(params) - 1:
            position += 2  # ", "
    return result


def determine_active_param(typed: str) -> int:
    """Number of top-level commas typed since the argument list opened."""
    return len(top_level_commas(typed))


def clamp_active_param(index: int | None, parameter_count: int) -> int | None:
    """Clamp an index into [0, parameter_count - 1], or None for an empty list."""
    if parameter_count <= 0:
        return None
    return min(max(index or 0, 0), parameter_count - 1)


def active_parameter(typed: str, parameter_count: int) -> int | None:
    return clamp_active_param(determine_active_param(typed), parameter_count)


def emphasize_argument(arglist: str, argument: int) -> str:
    """Wrap the given argument (1-indexed) of a macro argument list in emphasis markers.

    Arguments are the space-delimited words of the list; a parenthesised
    list's outer parens and each argument's trailing comma are left outside
    the markers. All whitespace is removed from the result.

    If the argument does not exist, the list is returned with whitespace
    removed and no markers.
    """
    normalized = arglist.replace("\u00a0", " ")
    stripped = normalized.strip()
    if _is_wrapped(stripped):
        low = normalized.index("(") + 1
        high = normalized.rindex(")")
    else:
        low, high = 0, len(normalized)
    words = [(low + m.start(), low + m.end()) for m in re.finditer(r"\S+", normalized[low:high])]
    if argument < 1 or argument > len(words):
        return _WHITESPACE.sub("", normalized)

    start, end = words[argument - 1]
    if end - start > 1 and normalized[end - 1] == ",":
        end -= 1
    emphasized = (
        normalized[:start] + EMPHASIZE_PREFIX + normalized[start:end] + EMPHASIZE_SUFFIX + normalized[end:]
    )
    return _WHITESPACE.sub("", emphasized)


def normalize_macro_signature(signature: str) -> str:
    """Collapse all whitespace, then put a single space after every comma."""
    return _WHITESPACE.sub("", signature).replace(",", ", ")


def _beautify_argument(argument: str) -> str:
    prefix = ""
    if argument.startswith("&"):
        prefix, argument = "ByRef ", argument[1:]
    elif argument.startswith("*"):
        prefix, argument = "Output ", argument[1:]

    name_end = _find_top_level(argument, ":=")
    if name_end == -1:
        return prefix + argument.strip()

    name = argument[:name_end].strip()
    rest = argument[name_end:]
    type_name = default = ""
    if rest.startswith(":"):
        rest = rest[1:]
        equals = _find_top_level(rest, "=")
        if equals == -1:
            type_name = rest
        else:
            type_name, default = rest[:equals], rest[equals + 1:]
    else:
        default = rest[1:]

    text = prefix + name
    if type_name.strip():
        text += f" As {type_name.strip()}"
    if default.strip():
        text += f" = {default.strip()}"
    return text


def beautify_formal_spec(formal_spec: str) -> str:
    """Render a compiled formal spec the way it is declared in a class.

    Examples:
        >>> beautify_formal_spec('pName:%String="x",&pOut:%Integer,*sc:%Status')
        '(pName As %String = "x", ByRef pOut As %Integer, Output sc As %Status)'
    """
    text = formal_spec.strip()
    if _is_wrapped(text):
        text = text[1:-1]
    if not text.strip():
        return "()"
    spans = _segments(text, 0, len(text), top_level_commas(text))
    arguments = [_beautify_argument(text[s:e]) for s, e in spans if e > s]
    return "(" + ", ".join(arguments) + ")"


def quote_udl_identifier(name: str, direction: int = 0) -> str:
    """Convert a member name between its quoted and unquoted forms.

    Args:
        name: Member name, possibly delimited with double quotes
        direction: 0 to unquote, 1 to quote names that need it

    Examples:
        >>> quote_udl_identifier('"my""name"', 0)
        'my"name'
        >>> quote_udl_identifier("my name", 1)
        '"my name"'
    """
    if direction == 0:
        if len(name) >= 2 and name.startswith('"') and name.endswith('"'):
            return name[1:-1].replace('""', '"')
        return name
    if _IDENTIFIER.fullmatch(name):
        return name
    return '"' + name.replace('"', '""') + '"'

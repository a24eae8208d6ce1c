"""Navigation over classified token streams.

Tokens are produced per line by an external classifier (see objsig.tokenizer
for the bundled one). These helpers locate the token under the cursor and walk
the stream backwards to find the argument list the cursor is in.
"""

from lsprotocol.types import Position, Range

from objsig.document import Document
from objsig.languages import NON_CODE_ATTRIBUTES, Attribute, Language
from objsig.models import ClassifiedToken

NOT_FOUND = (-1, -1)


def find_token_at(line_tokens: list[ClassifiedToken], character: int) -> int | None:
    """Find the index of the token containing a character offset.

    A token contains the offset when start <= character <= start + length, so
    a cursor placed right after a token still belongs to it.

    Args:
        line_tokens: Ordered tokens of one line
        character: Cursor character offset

    Returns:
        Index of the first containing token, the index of the last token if
        none contains the offset, or None if the line has no tokens.
    """
    index = None
    for i, token in enumerate(line_tokens):
        index = i
        if token.start <= character <= token.end:
            break
    return index


def token_text(document: Document, tokens: list[list[ClassifiedToken]], line: int, token: int) -> str:
    t = tokens[line][token]
    return document.line(line)[t.start:t.end]


def is_code_token(token: ClassifiedToken) -> bool:
    """True for ObjectScript tokens outside of strings and comments."""
    return token.language == Language.OBJECTSCRIPT and token.attribute not in NON_CODE_ATTRIBUTES


def inside_string(document: Document, position: Position) -> bool:
    """True if an odd number of quotes precedes the cursor on its line."""
    prefix = document.line(position.line)[:position.character]
    return prefix.count('"') % 2 == 1


def find_open_paren(
    document: Document,
    tokens: list[list[ClassifiedToken]],
    line: int,
    token: int,
) -> tuple[int, int]:
    """Walk backwards from (line, token) to the nearest unmatched "(".

    The starting token itself is examined. Only ObjectScript delimiter tokens
    take part, so parentheses inside strings and comments never count.

    Returns:
        (line, token) of the open paren, or (-1, -1) if the start of the
        document is reached first.
    """
    closed = 0
    for ln in range(min(line, len(tokens) - 1), -1, -1):
        first = token if ln == line else len(tokens[ln]) - 1
        for tkn in range(min(first, len(tokens[ln]) - 1), -1, -1):
            t = tokens[ln][tkn]
            if t.language != Language.OBJECTSCRIPT or t.attribute != Attribute.DELIMITER:
                continue
            text = document.line(ln)[t.start:t.end]
            if text == "(":
                if closed == 0:
                    return ln, tkn
                closed -= 1
            elif text == ")":
                closed += 1
    return NOT_FOUND


def find_full_range(
    document: Document,
    tokens: list[list[ClassifiedToken]],
    line: int,
    token: int,
) -> Range:
    """Range covering a token and its contiguous neighbours of the same kind."""
    line_tokens = tokens[line]
    anchor = line_tokens[token]

    def same_kind(t: ClassifiedToken) -> bool:
        return t.language == anchor.language and t.attribute == anchor.attribute

    first = token
    while first > 0 and same_kind(line_tokens[first - 1]) and line_tokens[first - 1].end == line_tokens[first].start:
        first -= 1
    last = token
    while (
        last < len(line_tokens) - 1
        and same_kind(line_tokens[last + 1])
        and line_tokens[last].end == line_tokens[last + 1].start
    ):
        last += 1
    return Range(
        start=Position(line=line, character=line_tokens[first].start),
        end=Position(line=line, character=line_tokens[last].end),
    )

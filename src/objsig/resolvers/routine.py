import logging
import re

from lsprotocol.types import SignatureInformation

from objsig.errors import TransportFault
from objsig.languages import ROUTINE_LANGUAGE_IDS
from objsig.models import RoutineCall, SignatureDetails
from objsig.params import routine_parameter_infos, split_routine_params
from objsig.resolvers.base import ResolveRequest, SignatureResolver
from objsig.services import RoutineSource

logger = logging.getLogger(__name__)

_NAME = r"[%A-Za-z][\w%]*"
_EXTRINSIC_CALL = re.compile(rf"(?<!\$)\$\$({_NAME})(?:\s*\^\s*({_NAME}))?$")
_DO_LABEL = re.compile(rf"\b(?:DO|D)\b\s+({_NAME})(?:\s*\^\s*({_NAME}))?$", re.IGNORECASE)
_DO_ROUTINE = re.compile(rf"\b(?:DO|D)\b\s*\^\s*({_NAME})$", re.IGNORECASE)
# What may follow a label name on its definition line
_LABEL_TERMINATORS = (" ", "\t", "(", ";", "##;", "//", "/*")
# A continuation line starting like this begins a new label instead
_NEW_LABEL = re.compile(r"^[A-Za-z%]")
_LABEL_NAME = re.compile(r"[%\w]+")


def extract_routine_call(prefix: str) -> RoutineCall | None:
    """Find the routine call that ends the text preceding an open paren.

    Recognizes $$Label, $$Label^Routine, DO Label, DO Label^Routine and
    DO ^Routine (whose label is the routine name).

    Examples:
        >>> extract_routine_call(" set x = $$Fmt^Util")
        RoutineCall(label='Fmt', routine='Util')
        >>> extract_routine_call(" do ^Util")
        RoutineCall(label='Util', routine='Util')
    """
    prefix = prefix.rstrip()

    match = _EXTRINSIC_CALL.search(prefix)
    if match:
        return RoutineCall(label=match.group(1), routine=match.group(2) or "")

    match = _DO_LABEL.search(prefix)
    if match:
        return RoutineCall(label=match.group(1), routine=match.group(2) or "")

    match = _DO_ROUTINE.search(prefix)
    if match:
        return RoutineCall(label=match.group(1), routine=match.group(1))

    return None


def strip_routine_comment(line: str) -> str:
    """Remove everything from the first semicolon on."""
    index = line.find(";")
    return line if index == -1 else line[:index]


def find_label_line(lines: list[str], label: str) -> int:
    """Index of the line defining label, or -1.

    The label must be followed by the end of the line, whitespace, "(" or a
    comment, so "Get" does not match a line defining "GetAll".
    """
    for i, line in enumerate(lines):
        if not line.startswith(label):
            continue
        after = line[len(label):]
        if not line.rstrip()[len(label):] or after.startswith(_LABEL_TERMINATORS):
            return i
    return -1


def collect_parameter_text(lines: list[str], label_line: int) -> str:
    """Text between the parens of a label definition, joined across continuation lines.

    Lines are appended until the closing paren is seen. A line beginning with
    a letter or % starts a new label and ends the search; if the paren is
    never closed, everything gathered so far is used. A label whose name is
    not directly followed by "(" has no parameters.
    """
    definition = strip_routine_comment(lines[label_line])
    name = _LABEL_NAME.match(definition)
    if name is None or not definition[name.end():].startswith("("):
        return ""

    remainder = definition[name.end() + 1:]
    close_paren = remainder.find(")")
    index = label_line
    while close_paren == -1:
        index += 1
        if index >= len(lines):
            break
        raw = strip_routine_comment(lines[index])
        if raw and _NEW_LABEL.match(raw):
            break
        text = raw.strip()
        if text:
            if remainder and not remainder.endswith(" ") and not text.startswith(","):
                remainder += " "
            remainder += text
        close_paren = remainder.find(")")

    if close_paren != -1:
        return remainder[:close_paren]
    return remainder.strip()


class RoutineResolver(SignatureResolver):
    """Resolves extrinsic ($$) and DO calls from the routine's label definition."""

    kind = "routine"

    def __init__(self, routines: RoutineSource):
        self.routines = routines

    def resolve(self, request: ResolveRequest) -> SignatureDetails | None:
        prefix = request.document.line(request.line)[:request.paren.start]
        call = extract_routine_call(prefix)
        if call is None:
            return None

        current = self._current_routine(request)
        routine = call.routine or current
        if not routine:
            return None

        if routine == current:
            lines = request.document.lines
        else:
            lines = self._fetch_routine(request.document.uri, routine)
        if not lines:
            return None

        label_line = find_label_line(lines, call.label)
        if label_line == -1:
            logger.debug(f"Label {call.label} not found in routine {routine}")
            return None

        params = split_routine_params(collect_parameter_text(lines, label_line))
        label = f"{call.label}({', '.join(params)})"
        return SignatureDetails(
            signature=SignatureInformation(label=label, parameters=routine_parameter_infos(label, params)),
            start=request.start,
            kind=self.kind,
            parameters=params,
        )

    @staticmethod
    def _current_routine(request: ResolveRequest) -> str:
        """Name of the routine the document defines (token 1 of the header line)."""
        if request.document.language_id not in ROUTINE_LANGUAGE_IDS:
            return ""
        if not request.tokens or len(request.tokens[0]) < 2:
            return ""
        header = request.tokens[0][1]
        return request.document.line(0)[header.start:header.end]

    def _fetch_routine(self, document_uri: str, routine: str) -> list[str]:
        try:
            entry = self.routines.index_routine(routine)
            if entry is None or entry.status != "":
                return []
            extension = ".int"
            if any(other[-3:].lower() == "mac" for other in entry.others):
                extension = ".mac"
            uri = self.routines.resolve_routine_uri(document_uri, routine, extension)
            if not uri:
                return []
            return self.routines.fetch_lines(uri)
        except TransportFault as e:
            logger.warning(f"Could not fetch routine {routine}: {e}")
            return []

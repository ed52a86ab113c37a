"""
src/examblock/grammar.py

Line grammar shared by every entity reader. Each entity kind declares its
detail-line keys; the helpers here split, validate and convert them, and
raise FormatError with the offending line number.
"""

import re
from datetime import date, time
from typing import Dict, Iterable, Optional, Sequence, TextIO

from .errors import FormatError

_INDEXED = re.compile(r"^(\d+)\.\s+(.*)$")
_SECTION = re.compile(r"^\[(?P<label>[A-Za-z]+): (?P<count>\d+)\]$")

# Detail-line keys, in the order they are written.
SUBJECT_UNIT_PATTERN = re.compile(r"^(?P<subject>.+), Unit (?P<unit>\S): (?P<title>.*)$")
EXAM_FIELDS = ("Subject", "Exam Type", "Paper", "Subtitle", "Unit", "Exam Date", "Exam Time")
STUDENT_FIELDS = ("LUI", "Family Name", "Given Name(s)", "Date of Birth", "House", "AARA")
VENUE_FIELDS = ("Room Count", "Rooms", "Rows", "Columns", "Desks", "AARA")
VENUE_HEADER = re.compile(r"^(?P<id>\S+)(?: \((?P<desks>\d+)(?: (?:Non-AARA|AARA))? desks\))?$")
SESSION_FIELDS = ("Venue", "Session Number", "Day", "Start", "Exams")
SESSION_EXAM = re.compile(r"^(?P<title>.+) \((?P<count>\d+) students?\)$")
EXAM_SHORT_TITLE = re.compile(
    r"^Year \d+ (?P<type>Internal|External) Assessment (?P<subject>.+?)(?: Paper (?P<paper>\S+))?$"
)
DESK_LINE = re.compile(
    r"^Desk: (?P<number>\d+)"
    r"(?: (?P<family>[^,]+?)(?:, (?P<given>.+?))?)?"
    r"(?: - LUI: (?P<lui>\d+))?"
    r"(?: - Exam: (?P<exam>.+))?$"
)
SUBJECTS_PREFIX = "Subjects:"
DESKS_SECTION = "Desks"


class LineReader:
    """
    Reads the significant (non-blank) lines of a text stream, stripped,
    with one line of look-ahead and the current line number for errors.
    """

    def __init__(self, stream: TextIO):
        self._stream = stream
        self._pending: Optional[str] = None
        self._pending_number = 0
        self.line_number = 0

    def _fill(self) -> None:
        while self._pending is None:
            raw = self._stream.readline()
            if raw == "":
                return
            self._pending_number += 1
            stripped = raw.strip()
            if stripped:
                self._pending = stripped

    def peek(self) -> Optional[str]:
        self._fill()
        return self._pending

    def read_line(self) -> Optional[str]:
        self._fill()
        line, self._pending = self._pending, None
        if line is not None:
            self.line_number = self._pending_number
        return line

    def expect(self, what: str) -> str:
        """Like read_line, but the end of the stream is a format error."""
        line = self.read_line()
        if line is None:
            raise FormatError(f"unexpected end of file, expected {what}", self.line_number)
        return line

    def error(self, message: str) -> FormatError:
        return FormatError(message, self.line_number)


def parse_indexed(reader: LineReader, nth: int, kind: str) -> str:
    """Reads '<nth>. <text>' and returns the text."""
    line = reader.expect(f"{kind} {nth}")
    match = _INDEXED.match(line)
    if not match:
        raise reader.error(f"expected '{nth}. <{kind}>' but found '{line}'")
    index = int(match.group(1))
    if index != nth:
        raise reader.error(f"{kind} index {index} does not match expected {nth}")
    return match.group(2)


def parse_section(reader: LineReader, label: str) -> int:
    """Reads '[<label>: <count>]' and returns the count."""
    line = reader.expect(f"[{label}: <count>]")
    match = _SECTION.match(line)
    if not match or match.group("label") != label:
        raise reader.error(f"expected [{label}: <count>] but found '{line}'")
    return int(match.group("count"))


def expect_marker(reader: LineReader, marker: str) -> None:
    line = reader.expect(marker)
    if line != marker:
        raise reader.error(f"expected {marker} but found '{line}'")


def parse_value(reader: LineReader, key: str) -> str:
    """Reads a single 'Key: value' line."""
    line = reader.expect(f"{key}:")
    prefix = f"{key}:"
    if not line.startswith(prefix):
        raise reader.error(f"expected '{prefix}' but found '{line}'")
    return line[len(prefix):].strip()


def parse_fields(reader: LineReader, line: str, keys: Sequence[str],
                 required: Iterable[str] = ()) -> Dict[str, str]:
    """
    Splits a detail line 'Key: value, Key: value' on the known keys only,
    so values may themselves contain ', '. Unknown leading text, repeated
    keys and missing required keys are format errors.
    """
    alternatives = "|".join(re.escape(key) for key in keys)
    pieces = re.split(rf", (?=(?:{alternatives}): )", line)
    fields: Dict[str, str] = {}
    for piece in pieces:
        key, sep, value = piece.partition(": ")
        if not sep or key not in keys:
            raise reader.error(f"malformed field '{piece}' in '{line}'")
        if key in fields:
            raise reader.error(f"duplicate field '{key}' in '{line}'")
        fields[key] = value.strip()
    missing = [key for key in required if key not in fields]
    if missing:
        raise reader.error(f"missing {', '.join(missing)} in '{line}'")
    return fields


# --- Value converters ---

def to_int(reader: LineReader, value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise reader.error(f"{what} '{value}' is not a whole number") from None


def to_float(reader: LineReader, value: str, what: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise reader.error(f"{what} '{value}' is not a number") from None


def to_bool(reader: LineReader, value: str, what: str) -> bool:
    lowered = value.lower()
    if lowered not in ("true", "false"):
        raise reader.error(f"{what} '{value}' must be true or false")
    return lowered == "true"


def to_date(reader: LineReader, value: str, what: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise reader.error(f"{what} '{value}' is not a YYYY-MM-DD date") from None


def to_time(reader: LineReader, value: str, what: str) -> time:
    try:
        return time.fromisoformat(value)
    except ValueError:
        raise reader.error(f"{what} '{value}' is not a HH:MM time") from None


def format_time(value: time) -> str:
    return value.strftime("%H:%M")

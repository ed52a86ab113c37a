"""
src/examblock/models.py

Entity types of an exam block. Each entity registers itself with the
Registry it is constructed with, and knows how to write itself to, and
read itself back from, the .ebd line grammar.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import List, Optional, Protocol, TextIO, runtime_checkable

from . import grammar
from . import utils
from .grammar import LineReader
from .registry import Registry

logger = logging.getLogger(__name__)


class Entity:
    """Identity behaviour shared by all registered entities."""

    registry: Optional[Registry]

    @property
    def id(self) -> str:
        raise NotImplementedError

    def _register(self) -> None:
        if self.registry is not None:
            self.registry.add(self, type(self))

    def __eq__(self, other):
        return type(self) is type(other) and self.id == other.id

    def __hash__(self):
        return hash((type(self).__name__, self.id))


def _optional(value) -> Optional[str]:
    text = "" if value is None else str(value).strip()
    return text or None


def resolve_subject(registry: Registry, title: str) -> "Subject":
    """Finds a subject by title, creating a placeholder if it is unknown."""
    subject = registry.find(utils.sanitise_title(title), Subject)
    if subject is None:
        logger.warning("Subject '%s' not found; creating a placeholder", title)
        subject = Subject(title, registry=registry)
    return subject


def resolve_subject_titles(registry: Registry, text: str) -> List["Subject"]:
    """
    Splits a comma separated list of subject titles. Registered titles are
    matched longest first, so a title that itself holds a comma survives;
    anything else is cut at the next comma and resolved as a placeholder.
    """
    known = sorted((subject.title for subject in registry.get_all(Subject)), key=len, reverse=True)
    subjects = []
    remaining = text.strip()
    while remaining:
        title = next((t for t in known
                      if remaining == t or remaining.startswith(t + ",")), None)
        if title is None:
            title = remaining.split(",", 1)[0].strip()
        if title:
            subjects.append(resolve_subject(registry, title))
        remaining = remaining[len(title):].strip().lstrip(",").strip()
    return subjects


def resolve_room(registry: Registry, room_id: str) -> "Room":
    room = registry.find(room_id, Room)
    if room is None:
        logger.warning("Room '%s' not found; creating it", room_id)
        room = Room(room_id, registry=registry)
    return room


@dataclass(eq=False)
class Subject(Entity):
    """
    An academic subject, identified by its normalised title.
    """
    title: str
    description: str = ""
    registry: Optional[Registry] = field(default=None, repr=False)

    def __post_init__(self):
        self.title = utils.sanitise_title(self.title)
        self.description = utils.sanitise_description(self.description)
        self._register()

    @property
    def id(self) -> str:
        return self.title

    def stream_out(self, out: TextIO, nth: int) -> None:
        out.write(f"{nth}. {self.title.upper()}\n")
        out.write(f"{self.title}\n")
        out.write(f"\"{self.description}\"\n")

    @classmethod
    def stream_in(cls, reader: LineReader, registry: Registry, nth: int) -> "Subject":
        grammar.parse_indexed(reader, nth, "subject")
        title = reader.expect("subject title")
        description = reader.expect("subject description")
        return cls(title, description, registry=registry)


@dataclass(eq=False)
class Unit(Entity):
    """One semester unit of a subject, e.g. Mathematics Unit 3."""
    subject: Subject
    unit_id: str
    title: str
    description: str = ""
    registry: Optional[Registry] = field(default=None, repr=False)

    def __post_init__(self):
        self.unit_id = str(self.unit_id).strip()
        if len(self.unit_id) != 1:
            logger.warning("Unit id '%s' for %s should be a single character",
                           self.unit_id, self.subject.title)
            self.unit_id = self.unit_id[:1] or "?"
        self.title = utils.sanitise_title(self.title)
        self.description = utils.sanitise_description(self.description)
        self._register()

    @property
    def id(self) -> str:
        return f"{self.subject.title}-{self.unit_id}"

    def stream_out(self, out: TextIO, nth: int) -> None:
        out.write(f"{nth}. {self.subject.title.upper()}\n")
        out.write(f"{self.subject.title}, Unit {self.unit_id}: {self.title}\n")
        out.write(f"\"{self.description}\"\n")

    @classmethod
    def stream_in(cls, reader: LineReader, registry: Registry, nth: int) -> "Unit":
        grammar.parse_indexed(reader, nth, "unit")
        line = reader.expect("unit detail")
        match = grammar.SUBJECT_UNIT_PATTERN.match(line)
        if not match:
            raise reader.error(f"expected '<Subject>, Unit <id>: <title>' but found '{line}'")
        description = reader.expect("unit description")
        subject = resolve_subject(registry, match.group("subject"))
        return cls(subject, match.group("unit"), match.group("title"), description,
                   registry=registry)


class ExamType(Enum):
    INTERNAL = "Internal"
    EXTERNAL = "External"

    @property
    def abbreviation(self) -> str:
        return self.name[:3]


@dataclass(eq=False)
class Exam(Entity):
    """
    One assessment sitting. Two exams are the same exam when subject,
    type, date and start time agree.
    """
    subject: Subject
    exam_type: ExamType
    exam_date: date
    exam_time: time
    paper: Optional[str] = None
    subtitle: str = ""
    unit: Optional[str] = None
    registry: Optional[Registry] = field(default=None, repr=False)

    def __post_init__(self):
        self.paper = _optional(self.paper)
        self.unit = _optional(self.unit)
        self.subtitle = utils.collapse_spaces(self.subtitle)
        self._register()

    @property
    def id(self) -> str:
        return (f"{self.subject.title}_{self.exam_type.name}_"
                f"{self.exam_date.isoformat()}_{grammar.format_time(self.exam_time)}")

    @property
    def short_title(self) -> str:
        text = f"Year {utils.YEAR_LEVEL} {self.exam_type.value} Assessment {self.subject.title}"
        if self.paper:
            text += f" Paper {self.paper}"
        return text

    @property
    def title(self) -> str:
        if self.subtitle:
            return f"{self.short_title}\n{self.subtitle}"
        return self.short_title

    @property
    def abbreviation(self) -> str:
        return f"{self.subject.title} {self.exam_type.abbreviation}"

    def is_taken_by(self, student: "Student") -> bool:
        return student.takes(self.subject)

    def stream_out(self, out: TextIO, nth: int) -> None:
        header = self.short_title
        if self.subtitle:
            header += f" {self.subtitle}"
        parts = [f"Subject: {self.subject.title}", f"Exam Type: {self.exam_type.name}"]
        if self.paper:
            parts.append(f"Paper: {self.paper}")
        if self.subtitle:
            parts.append(f"Subtitle: {self.subtitle}")
        if self.unit:
            parts.append(f"Unit: {self.unit}")
        parts.append(f"Exam Date: {self.exam_date.isoformat()}")
        parts.append(f"Exam Time: {grammar.format_time(self.exam_time)}")
        out.write(f"{nth}. {header}\n")
        out.write(", ".join(parts) + "\n")

    @classmethod
    def stream_in(cls, reader: LineReader, registry: Registry, nth: int) -> "Exam":
        grammar.parse_indexed(reader, nth, "exam")
        fields = grammar.parse_fields(
            reader, reader.expect("exam detail"), grammar.EXAM_FIELDS,
            required=("Subject", "Exam Type", "Exam Date", "Exam Time"))
        try:
            exam_type = ExamType[fields["Exam Type"].upper()]
        except KeyError:
            raise reader.error(f"unknown exam type '{fields['Exam Type']}'") from None
        return cls(
            resolve_subject(registry, fields["Subject"]),
            exam_type,
            grammar.to_date(reader, fields["Exam Date"], "Exam Date"),
            grammar.to_time(reader, fields["Exam Time"], "Exam Time"),
            paper=fields.get("Paper"),
            subtitle=fields.get("Subtitle", ""),
            unit=fields.get("Unit"),
            registry=registry,
        )


@dataclass(eq=False)
class Student(Entity):
    """A Year 12 candidate, identified by a 10-digit learner id (lui)."""
    lui: int
    given_names: str
    family_name: str
    dob: date
    house: str
    aara: bool = False
    subjects: List[Subject] = field(default_factory=list)
    registry: Optional[Registry] = field(default=None, repr=False)

    def __post_init__(self):
        self.lui = int(self.lui)
        if len(str(self.lui)) != utils.LUI_DIGITS:
            logger.warning("LUI %s is not %d digits long", self.lui, utils.LUI_DIGITS)
        self.given_names = utils.sanitise_name(self.given_names)
        self.family_name = utils.sanitise_name(self.family_name)
        self.house = utils.collapse_spaces(self.house)
        self.subjects = list(self.subjects)
        self._register()

    @property
    def id(self) -> str:
        return str(self.lui)

    @property
    def first_name(self) -> str:
        return self.given_names.split(" ")[0]

    @property
    def short_name(self) -> str:
        return f"{self.first_name} {self.family_name}"

    @property
    def full_name(self) -> str:
        return f"{self.given_names} {self.family_name}"

    @property
    def given_and_init(self) -> str:
        return utils.given_and_init(self.given_names)

    def takes(self, subject: Subject) -> bool:
        return subject in self.subjects

    def add_subject(self, subject: Subject) -> None:
        if subject not in self.subjects:
            self.subjects.append(subject)

    def remove_subject(self, subject: Subject) -> None:
        if subject in self.subjects:
            self.subjects.remove(subject)

    def stream_out(self, out: TextIO, nth: int) -> None:
        out.write(f"{nth}. {self.full_name.upper()}\n")
        out.write(f"LUI: {self.lui}, Family Name: {self.family_name}, "
                  f"Given Name(s): {self.given_names}, Date of Birth: {self.dob.isoformat()}, "
                  f"House: {self.house}, AARA: {utils.format_bool(self.aara)}\n")
        if self.subjects:
            titles = ", ".join(subject.title for subject in self.subjects)
            out.write(f"{grammar.SUBJECTS_PREFIX} {titles}\n")

    @classmethod
    def stream_in(cls, reader: LineReader, registry: Registry, nth: int) -> "Student":
        grammar.parse_indexed(reader, nth, "student")
        fields = grammar.parse_fields(reader, reader.expect("student detail"),
                                      grammar.STUDENT_FIELDS, required=grammar.STUDENT_FIELDS)
        subjects = []
        following = reader.peek()
        if following is not None and following.startswith(grammar.SUBJECTS_PREFIX):
            titles = reader.read_line()[len(grammar.SUBJECTS_PREFIX):]
            subjects = resolve_subject_titles(registry, titles)
        return cls(
            grammar.to_int(reader, fields["LUI"], "LUI"),
            fields["Given Name(s)"],
            fields["Family Name"],
            grammar.to_date(reader, fields["Date of Birth"], "Date of Birth"),
            fields["House"],
            grammar.to_bool(reader, fields["AARA"], "AARA"),
            subjects,
            registry=registry,
        )


@runtime_checkable
class RoomLike(Protocol):
    """Anything exams can be sat in: a single Room or a combined Venue."""

    @property
    def room_id(self) -> str: ...

    @property
    def id(self) -> str: ...


@dataclass(eq=False)
class Room(Entity):
    room_id: str
    registry: Optional[Registry] = field(default=None, repr=False)

    def __post_init__(self):
        self.room_id = utils.collapse_spaces(self.room_id)
        self._register()

    @property
    def id(self) -> str:
        return self.room_id

    def stream_out(self, out: TextIO, nth: int) -> None:
        out.write(f"{nth}. {self.room_id}\n")

    @classmethod
    def stream_in(cls, reader: LineReader, registry: Registry, nth: int) -> "Room":
        return cls(grammar.parse_indexed(reader, nth, "room"), registry=registry)


@dataclass(eq=False)
class Venue(Entity):
    """
    One or more rooms combined into an exam space with a desk grid.

    A venue owns an (unregistered) Room as its identity rather than being
    a Room; both satisfy RoomLike. Inconsistent geometry is clamped with
    a warning rather than rejected.
    """
    venue_id: str
    room_count: int
    rooms: List[Room]
    rows: int
    columns: int
    total_desks: int
    aara: bool = False
    registry: Optional[Registry] = field(default=None, repr=False)
    identity: Room = field(init=False, repr=False)

    def __post_init__(self):
        self.identity = Room(self.venue_id)
        self.venue_id = self.identity.room_id
        self.rooms = list(self.rooms)
        self._clamp()
        self._register()

    def _clamp(self) -> None:
        if not self.rooms:
            if self.room_count or self.rows or self.columns or self.total_desks:
                logger.warning("Venue %s has no rooms; desk geometry reset to zero", self.venue_id)
            self.room_count = self.rows = self.columns = self.total_desks = 0
            return
        if self.room_count != len(self.rooms):
            logger.warning("Venue %s room count %d does not match %d rooms supplied",
                           self.venue_id, self.room_count, len(self.rooms))
            self.room_count = len(self.rooms)
        if self.rows < 0 or self.columns < 0 or self.total_desks < 0:
            logger.warning("Venue %s has negative geometry; clamped to zero", self.venue_id)
            self.rows, self.columns = max(self.rows, 0), max(self.columns, 0)
            self.total_desks = max(self.total_desks, 0)
        capacity = self.rows * self.columns
        if self.total_desks > capacity:
            logger.warning("Venue %s has %d desks but only %d grid positions; clamped",
                           self.venue_id, self.total_desks, capacity)
            self.total_desks = capacity

    @property
    def room_id(self) -> str:
        return self.identity.room_id

    @property
    def id(self) -> str:
        return self.venue_id

    @property
    def desk_label(self) -> str:
        return "AARA" if self.aara else "Non-AARA"

    def check_venue_type(self, aara: bool) -> bool:
        """True when this venue serves the requested AARA category."""
        if self.aara != aara:
            wanted = "AARA" if aara else "Non-AARA"
            logger.info("Venue %s is %s but %s students were requested",
                        self.venue_id, self.desk_label, wanted)
            return False
        return True

    def will_fit(self, student_count: int) -> bool:
        if student_count > self.total_desks:
            logger.info("Venue %s cannot seat %d students (%d desks)",
                        self.venue_id, student_count, self.total_desks)
            return False
        return True

    def stream_out(self, out: TextIO, nth: int) -> None:
        rooms = " ".join(room.room_id for room in self.rooms)
        out.write(f"{nth}. {self.venue_id} ({self.total_desks} {self.desk_label} desks)\n")
        out.write(f"Room Count: {self.room_count}, Rooms: {rooms}, Rows: {self.rows}, "
                  f"Columns: {self.columns}, Desks: {self.total_desks}, "
                  f"AARA: {utils.format_bool(self.aara)}\n")

    @classmethod
    def stream_in(cls, reader: LineReader, registry: Registry, nth: int) -> "Venue":
        header = grammar.parse_indexed(reader, nth, "venue")
        match = grammar.VENUE_HEADER.match(header)
        if not match:
            raise reader.error(f"malformed venue header '{header}'")
        fields = grammar.parse_fields(reader, reader.expect("venue detail"),
                                      grammar.VENUE_FIELDS, required=grammar.VENUE_FIELDS)
        desks = grammar.to_int(reader, fields["Desks"], "Desks")
        if match.group("desks") is not None and int(match.group("desks")) != desks:
            logger.warning("Venue %s header lists %s desks, detail lists %d; using detail",
                           match.group("id"), match.group("desks"), desks)
        rooms = [resolve_room(registry, room_id) for room_id in fields["Rooms"].split()]
        return cls(
            match.group("id"),
            grammar.to_int(reader, fields["Room Count"], "Room Count"),
            rooms,
            grammar.to_int(reader, fields["Rows"], "Rows"),
            grammar.to_int(reader, fields["Columns"], "Columns"),
            desks,
            grammar.to_bool(reader, fields["AARA"], "AARA"),
            registry=registry,
        )

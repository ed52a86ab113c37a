"""
src/examblock/lists.py

Managed collections. Each list is an ordered view of one entity kind in a
Registry, so an entity constructed against the registry is immediately a
member of its list.
"""

import logging
from typing import Dict, Generic, Iterator, List, Optional, TextIO, Tuple, Type, TypeVar

from . import grammar
from .errors import ItemNotFoundError
from .grammar import LineReader
from .models import Exam, Room, Student, Subject, Unit, Venue
from .registry import Registry
from .session import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ItemList(Generic[T]):
    """Ordered collection of one entity kind, backed by a Registry."""

    label: str = "Items"

    def __init__(self, registry: Registry, kind: Type[T]):
        self.registry = registry
        self.kind = kind

    def add(self, item: T) -> None:
        self.registry.add(item, self.kind)

    def remove(self, item: T) -> bool:
        return self.registry.remove(item, self.kind)

    def find(self, key: str) -> Optional[T]:
        return self.registry.find(key, self.kind)

    def get(self, key: str) -> T:
        item = self.find(key)
        if item is None:
            raise ItemNotFoundError(self.kind.__name__, key)
        return item

    def all(self) -> List[T]:
        return self.registry.get_all(self.kind)

    def clear(self) -> None:
        self.registry.remove_all(self.kind)

    def __iter__(self) -> Iterator[T]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self.all())

    def __contains__(self, item) -> bool:
        return isinstance(item, self.kind) and self.registry.contains(item.id, self.kind)

    def stream_out(self, out: TextIO) -> None:
        items = self.all()
        out.write(f"[{self.label}: {len(items)}]\n")
        for nth, item in enumerate(items, start=1):
            item.stream_out(out, nth)

    def stream_in(self, reader: LineReader) -> None:
        count = grammar.parse_section(reader, self.label)
        for nth in range(1, count + 1):
            self.kind.stream_in(reader, self.registry, nth)
        logger.debug("Read %d %s", count, self.label.lower())

    def __repr__(self):
        return f"{type(self).__name__}({len(self)} items)"


class SubjectList(ItemList[Subject]):
    label = "Subjects"

    def __init__(self, registry: Registry):
        super().__init__(registry, Subject)


class UnitList(ItemList[Unit]):
    label = "Units"

    def __init__(self, registry: Registry):
        super().__init__(registry, Unit)

    def for_subject(self, subject: Subject) -> List[Unit]:
        return [unit for unit in self if unit.subject == subject]


class ExamList(ItemList[Exam]):
    label = "Exams"

    def __init__(self, registry: Registry):
        super().__init__(registry, Exam)

    def for_student(self, student: Student) -> List[Exam]:
        """Exams a student sits, in timetable order."""
        exams = [exam for exam in self if exam.is_taken_by(student)]
        return sorted(exams, key=lambda e: (e.exam_date, e.exam_time))

    def by_short_title(self, short_title: str) -> List[Exam]:
        return [exam for exam in self if exam.short_title == short_title]


class StudentList(ItemList[Student]):
    label = "Students"

    def __init__(self, registry: Registry):
        super().__init__(registry, Student)

    def by_lui(self, lui: int) -> Optional[Student]:
        return self.find(str(lui))

    def count_students(self, subject: Subject, aara: bool) -> int:
        """Students of one AARA category enrolled in a subject."""
        return sum(1 for student in self if student.aara == aara and student.takes(subject))


class RoomList(ItemList[Room]):
    label = "Rooms"

    def __init__(self, registry: Registry):
        super().__init__(registry, Room)


class VenueList(ItemList[Venue]):
    label = "Venues"

    def __init__(self, registry: Registry):
        super().__init__(registry, Venue)

    def allocate_students(self, sessions: List[Session],
                          students: List[Student]) -> Dict[str, List[Tuple[Exam, Student]]]:
        """
        Runs desk allocation for every session held in one of these
        venues. Returns the students left without a desk, per session id.
        """
        unseated = {}
        for session in sessions:
            if session.venue not in self:
                logger.warning("Session %s is in unknown venue %s; skipped",
                               session, session.venue.venue_id)
                continue
            missed = session.allocate_students(students)
            if missed:
                unseated[session.id] = missed
        return unseated

"""
src/examblock/session.py

A Session is one venue occupied for one date and start time. It owns a
desk grid sized from its venue, the exams scheduled into it and, once
finalised, the students seated at each desk.
"""

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Dict, Iterable, List, Optional, TextIO, Tuple

from . import grammar
from . import utils
from .grammar import LineReader
from .models import Entity, Exam, ExamType, Student, Venue, resolve_subject
from .registry import Registry

logger = logging.getLogger(__name__)


@dataclass
class Desk:
    """One seat in a session's grid; numbered column by column from 1."""
    number: int
    row: int
    column: int
    family_name: str = ""
    given_and_init: str = ""
    lui: Optional[int] = None
    exam: Optional[Exam] = None

    @property
    def is_occupied(self) -> bool:
        return bool(self.family_name)

    def assign(self, student: Student, exam: Exam) -> None:
        self.family_name = student.family_name
        self.given_and_init = student.given_and_init
        self.lui = student.lui
        self.exam = exam

    def clear(self) -> None:
        self.family_name = ""
        self.given_and_init = ""
        self.lui = None
        self.exam = None

    def stream_line(self) -> str:
        text = f"Desk: {self.number} {self.family_name}, {self.given_and_init}"
        if self.lui is not None:
            text += f" - LUI: {self.lui}"
        if self.exam is not None:
            text += f" - Exam: {self.exam.short_title}"
        return text


def resolve_venue(registry: Registry, venue_id: str) -> Venue:
    venue = registry.find(venue_id, Venue)
    if venue is None:
        logger.warning("Venue '%s' not found; creating an empty placeholder", venue_id)
        venue = Venue(venue_id, 0, [], 0, 0, 0, registry=registry)
    return venue


def resolve_exam(registry: Registry, short_title: str, day: date, start: time) -> Exam:
    """Finds the exam with this short title sitting at day/start, or fakes one."""
    for exam in registry.get_all(Exam):
        if exam.short_title == short_title and exam.exam_date == day and exam.exam_time == start:
            return exam
    logger.warning("Exam '%s' at %s %s not found; creating a placeholder",
                   short_title, day, grammar.format_time(start))
    match = grammar.EXAM_SHORT_TITLE.match(short_title)
    if match:
        subject_title = match.group("subject")
        exam_type = ExamType(match.group("type"))
        paper = match.group("paper")
    else:
        subject_title, exam_type, paper = short_title, ExamType.INTERNAL, None
    return Exam(resolve_subject(registry, subject_title), exam_type, day, start,
                paper=paper, registry=registry)


class Session(Entity):
    """
    States are inferred from content: empty (no exams), scheduled (exams
    but no desks filled) and finalised (desks filled).
    """

    def __init__(self, venue: Venue, session_number: int, day: date, start: time,
                 registry: Optional[Registry] = None):
        self.venue = venue
        self.session_number = int(session_number)
        self.day = day
        self.start = start
        self.registry = registry
        # Fixed at creation; a later change to the venue does not resize the grid.
        self.rows = venue.rows
        self.columns = venue.columns
        self.total_desks = venue.total_desks
        self.desks: List[List[Desk]] = [
            [Desk(column * self.rows + row + 1, row, column) for column in range(self.columns)]
            for row in range(self.rows)
        ]
        self._exams: List[Exam] = []
        self._exam_counts: Dict[str, int] = {}
        self._register()

    @property
    def id(self) -> str:
        return f"{self.venue.venue_id}_{self.session_number}"

    # --- Exams ---

    @property
    def exams(self) -> List[Exam]:
        return list(self._exams)

    def has_exam(self, exam: Exam) -> bool:
        return exam in self._exams

    def is_empty(self) -> bool:
        return not self._exams

    def schedule_exam(self, exam: Exam, student_count: Optional[int] = None) -> None:
        """Attaches an exam, recording its eligible count unless one is supplied."""
        if exam in self._exams:
            return
        self._exams.append(exam)
        if student_count is None:
            student_count = len(self.eligible_students(exam))
        self._exam_counts[exam.id] = student_count

    def remove_exam(self, exam: Exam) -> bool:
        if exam not in self._exams:
            return False
        self._exams.remove(exam)
        self._exam_counts.pop(exam.id, None)
        for desk in self.all_desks():
            if desk.exam == exam:
                desk.clear()
        return True

    def exam_count(self, exam: Exam) -> int:
        return self._exam_counts.get(exam.id, 0)

    # --- Desks ---

    def all_desks(self) -> List[Desk]:
        """Usable desks in desk-number order."""
        ordered = [self.desks[row][column]
                   for column in range(self.columns) for row in range(self.rows)]
        return ordered[:self.total_desks]

    def desk(self, number: int) -> Optional[Desk]:
        if number < 1 or number > self.total_desks or not self.rows:
            return None
        column, row = divmod(number - 1, self.rows)
        if column >= self.columns:
            return None
        return self.desks[row][column]

    def filled_desks(self) -> List[Desk]:
        return [desk for desk in self.all_desks() if desk.is_occupied]

    def is_finalised(self) -> bool:
        return bool(self.filled_desks())

    def clear_desks(self) -> None:
        for desk in self.all_desks():
            desk.clear()

    # --- Students ---

    def _cohort(self, cohort: Optional[Iterable[Student]]) -> List[Student]:
        if cohort is not None:
            return list(cohort)
        if self.registry is None:
            return []
        return self.registry.get_all(Student)

    def eligible_students(self, exam: Exam,
                          cohort: Optional[Iterable[Student]] = None) -> List[Student]:
        """Students of the venue's AARA category taking the exam, by family name then given names."""
        students = [student for student in self._cohort(cohort)
                    if student.aara == self.venue.aara and exam.is_taken_by(student)]
        return sorted(students, key=lambda s: (s.family_name, s.given_names))

    def roster(self, cohort: Optional[Iterable[Student]] = None) -> List[Tuple[Exam, List[Student]]]:
        cohort = self._cohort(cohort)
        return [(exam, self.eligible_students(exam, cohort)) for exam in self._exams]

    def count_students(self) -> int:
        """Filled desks once finalised, otherwise the size of the eligible roster."""
        filled = len(self.filled_desks())
        if filled:
            return filled
        if self.registry is None:
            return sum(self._exam_counts.values())
        return sum(len(students) for _, students in self.roster())

    # --- Allocation ---

    def _layout_end(self, sizes: List[int], skip_columns: bool, gap: int) -> int:
        """Last desk number the walk would use for these block sizes."""
        next_desk, last = 1, 0
        for index, size in enumerate(sizes):
            if index:
                next_desk += gap
            for _ in range(size):
                last = next_desk
                if skip_columns and next_desk % self.rows == 0:
                    next_desk += self.rows
                next_desk += 1
        return last

    def _inter_exam_gap(self, sizes: List[int], skip_columns: bool) -> int:
        if len(sizes) < 2 or sum(sizes) > self.total_desks:
            return 0
        spare = self.total_desks - self._layout_end(sizes, skip_columns, 0)
        gap = spare // (len(sizes) - 1)
        while gap > 0 and self._layout_end(sizes, skip_columns, gap) > self.total_desks:
            gap -= 1
        return gap

    def allocate_students(self, cohort: Optional[Iterable[Student]] = None) -> List[Tuple[Exam, Student]]:
        """
        Seats the eligible roster exam by exam in column-major desk order
        and returns the (exam, student) pairs that found no desk.

        With fewer students than half the desks, a full empty column is
        left after each filled column. Spare desks are spread evenly
        between exam blocks.
        """
        self.clear_desks()
        blocks = [(exam, students) for exam, students in self.roster(cohort)]
        total_students = sum(len(students) for _, students in blocks)
        if not total_students:
            return []
        if total_students > self.total_desks:
            logger.warning("Session %s: %d students for %d desks; %d will not be seated",
                           self, total_students, self.total_desks,
                           total_students - self.total_desks)
        skip_columns = total_students < self.total_desks // 2
        sizes = [len(students) for _, students in blocks if students]
        gap = self._inter_exam_gap(sizes, skip_columns)

        unseated: List[Tuple[Exam, Student]] = []
        next_desk = 1
        placed_blocks = 0
        for exam, students in blocks:
            if not students:
                self._exam_counts[exam.id] = 0
                continue
            if placed_blocks:
                next_desk += gap
            placed_blocks += 1
            seated = 0
            for student in students:
                desk = self.desk(next_desk)
                if desk is None:
                    unseated.append((exam, student))
                    continue
                desk.assign(student, exam)
                seated += 1
                if skip_columns and next_desk % self.rows == 0:
                    next_desk += self.rows
                next_desk += 1
            self._exam_counts[exam.id] = seated
        logger.info("Session %s: seated %d of %d students", self,
                    total_students - len(unseated), total_students)
        return unseated

    def desk_layout(self) -> str:
        """The grid as rows of fixed-width cells: desk numbers, family names, given names."""
        width = utils.DESK_CELL_WIDTH
        lines = []
        for row in self.desks:
            usable = [desk for desk in row if desk.number <= self.total_desks]
            if not usable:
                continue
            lines.append("".join(f"{'Desk ' + str(d.number):<{width}}" for d in usable).rstrip())
            lines.append("".join(f"{d.family_name:<{width}}" for d in usable).rstrip())
            lines.append("".join(f"{d.given_and_init:<{width}}" for d in usable).rstrip())
            lines.append("")
        return "\n".join(lines)

    # --- Streaming ---

    def stream_out(self, out: TextIO, nth: int) -> None:
        out.write(f"{nth}. Venue: {self.venue.venue_id}, Session Number: {self.session_number}, "
                  f"Day: {self.day.isoformat()}, Start: {grammar.format_time(self.start)}, "
                  f"Exams: {len(self._exams)}\n")
        for exam in self._exams:
            out.write(f"    {exam.short_title} ({self.exam_count(exam)} students)\n")
            desks = [desk for desk in self.filled_desks() if desk.exam == exam]
            if desks:
                out.write(f"    [{grammar.DESKS_SECTION}: {len(desks)}]\n")
                for desk in desks:
                    out.write(f"    {desk.stream_line()}\n")

    @classmethod
    def stream_in(cls, reader: LineReader, registry: Registry, nth: int) -> "Session":
        header = grammar.parse_indexed(reader, nth, "session")
        fields = grammar.parse_fields(reader, header, grammar.SESSION_FIELDS,
                                      required=grammar.SESSION_FIELDS)
        day = grammar.to_date(reader, fields["Day"], "Day")
        start = grammar.to_time(reader, fields["Start"], "Start")
        session = cls(resolve_venue(registry, fields["Venue"]),
                      grammar.to_int(reader, fields["Session Number"], "Session Number"),
                      day, start)
        for _ in range(grammar.to_int(reader, fields["Exams"], "Exams")):
            line = reader.expect("session exam")
            match = grammar.SESSION_EXAM.match(line)
            if not match:
                raise reader.error(f"expected '<exam> (<n> students)' but found '{line}'")
            exam = resolve_exam(registry, match.group("title"), day, start)
            session.schedule_exam(exam, int(match.group("count")))
            following = reader.peek()
            if following is not None and following.startswith(f"[{grammar.DESKS_SECTION}:"):
                for _ in range(grammar.parse_section(reader, grammar.DESKS_SECTION)):
                    session._read_desk(reader, exam)
        session.registry = registry
        session._register()
        return session

    def _read_desk(self, reader: LineReader, exam: Exam) -> None:
        line = reader.expect("desk allocation")
        match = grammar.DESK_LINE.match(line)
        if not match:
            raise reader.error(f"malformed desk line '{line}'")
        desk = self.desk(int(match.group("number")))
        if desk is None:
            logger.warning("Session %s has no desk %s; allocation dropped", self, match.group("number"))
            return
        desk.family_name = match.group("family") or ""
        desk.given_and_init = match.group("given") or ""
        desk.lui = int(match.group("lui")) if match.group("lui") else None
        desk.exam = exam

    def __str__(self):
        return f"{self.venue.venue_id}: {self.session_number}: {self.day} {grammar.format_time(self.start)}"

    def __repr__(self):
        return f"Session({self.id}, {len(self._exams)} exams)"

"""
src/examblock/exam_block.py

The open exam block document and the operations a front end calls:
scheduling, finalisation, save and load. Views register a callback and
are told which property changed after every mutating operation.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from . import codec
from . import report
from . import utils
from .codec import Document
from .errors import ErrorCode, FormatError, OperationResult, ScheduleResult
from .lists import ExamList, RoomList, StudentList, SubjectList, UnitList, VenueList
from .models import Exam, Student, Venue
from .registry import Registry
from .session import Desk
from .session_list import SessionList

logger = logging.getLogger(__name__)

Observer = Callable[[str], None]

# Property names passed to observers.
TITLE = "title"
VERSION = "version"
NEW = "new"
SESSIONS = "sessions"
FINALISED = "finalised"
SAVED = "saved"
LOADED = "loaded"


@dataclass
class FinaliseResult:
    """Desks filled per session id, students left unseated, and the report text."""
    allocations: Dict[str, List[Desk]]
    unseated: Dict[str, List[Tuple[Exam, Student]]]
    report: str


class ExamBlockModel:
    """Holds one Document at a time; new and load replace it wholesale."""

    def __init__(self, title: str = utils.DEFAULT_TITLE, version: float = utils.DEFAULT_VERSION):
        self._document = Document(title, version)
        self._observers: List[Observer] = []
        self.filename: Optional[str] = None

    # --- Observers ---

    def add_observer(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def notify(self, property_name: str) -> None:
        for observer in list(self._observers):
            observer(property_name)

    # --- Document access ---

    @property
    def document(self) -> Document:
        return self._document

    @property
    def registry(self) -> Registry:
        return self._document.registry

    @property
    def title(self) -> str:
        return self._document.title

    @title.setter
    def title(self, value: str) -> None:
        self._document.title = value
        self.notify(TITLE)

    @property
    def version(self) -> float:
        return self._document.version

    @version.setter
    def version(self, value: float) -> None:
        self._document.version = float(value)
        self.notify(VERSION)

    @property
    def subjects(self) -> SubjectList:
        return self._document.subjects

    @property
    def units(self) -> UnitList:
        return self._document.units

    @property
    def students(self) -> StudentList:
        return self._document.students

    @property
    def exams(self) -> ExamList:
        return self._document.exams

    @property
    def rooms(self) -> RoomList:
        return self._document.rooms

    @property
    def venues(self) -> VenueList:
        return self._document.venues

    @property
    def sessions(self) -> SessionList:
        return self._document.sessions

    def new_document(self, title: str = utils.DEFAULT_TITLE,
                     version: float = utils.DEFAULT_VERSION) -> None:
        self._document.registry.clear()
        self._document = Document(title, version)
        self.filename = None
        self.notify(NEW)

    # --- Scheduling ---

    def _reject(self, code: ErrorCode, reason: str) -> ScheduleResult:
        logger.warning("Schedule request rejected: %s", reason)
        return ScheduleResult.rejected(code, reason)

    def schedule_exam(self, venue: Venue, exam: Exam, is_aara_request: bool) -> ScheduleResult:
        """
        Schedules an exam for the AARA or non-AARA students of its subject
        into the venue's session for the exam's date and time. A rejected
        request leaves every session as it was.
        """
        wanted = "AARA" if is_aara_request else "Non-AARA"
        if not venue.check_venue_type(is_aara_request):
            return self._reject(ErrorCode.WRONG_VENUE_TYPE,
                                f"{venue.venue_id} is a {venue.desk_label} venue, "
                                f"not suitable for {wanted} students")
        for session in self.sessions.sessions_with_exam(exam):
            if session.venue.aara == venue.aara:
                return self._reject(ErrorCode.ALREADY_SCHEDULED,
                                    f"{exam.short_title} is already scheduled for {wanted} "
                                    f"students in session {session}")
        count = self.students.count_students(exam.subject, venue.aara)
        if not count:
            return self._reject(ErrorCode.NO_STUDENTS,
                                f"No {wanted} students take {exam.subject.title}")

        existed = self.sessions.session_number_for(venue, exam.exam_date, exam.exam_time) != 0
        total = self.sessions.new_projected_total(venue, exam, count)
        if not venue.will_fit(total):
            if not existed:
                number = self.sessions.session_number_for(venue, exam.exam_date, exam.exam_time)
                self.sessions.remove(self.sessions.session_for(venue, number))
            return self._reject(ErrorCode.CAPACITY_EXCEEDED,
                                f"{total} students will not fit in {venue.venue_id} "
                                f"({venue.total_desks} desks)")

        session = self.sessions.schedule_exam(venue, exam, count)
        logger.info("Scheduled %s (%d students) in session %s", exam.short_title, count, session)
        self.notify(SESSIONS)
        return ScheduleResult.accepted(session)

    def remove_exam(self, venue: Venue, exam: Exam) -> bool:
        removed = self.sessions.remove_exam(venue, exam)
        if removed:
            self.notify(SESSIONS)
        return removed

    def clear_sessions(self) -> None:
        self.sessions.clear()
        self.notify(SESSIONS)

    # --- Finalisation ---

    def summary_report(self) -> str:
        return report.finalisation_report(self._document)

    def finalise_exam_block(self) -> FinaliseResult:
        sessions = self.sessions.all()
        unseated = self.venues.allocate_students(sessions, self.students.all())
        allocations = {session.id: session.filled_desks() for session in sessions}
        text = report.finalisation_report(self._document, unseated)
        logger.info("Finalised %d sessions, %d desks filled", len(sessions),
                    sum(len(desks) for desks in allocations.values()))
        self.notify(FINALISED)
        return FinaliseResult(allocations, unseated, text)

    # --- Persistence ---

    def save_to_file(self, path: str, title: Optional[str] = None,
                     version: Optional[float] = None) -> OperationResult:
        """
        Writes the document to a temporary file beside `path` and moves it
        into place, so an existing file survives a failed save.
        """
        title = self.title if title is None else title
        version = self.version if version is None else float(version)
        directory = os.path.dirname(os.path.abspath(path))
        temp_path = None
        replaced = False
        try:
            with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=directory, prefix=".",
                                             suffix=utils.FILE_EXTENSION, delete=False) as handle:
                temp_path = handle.name
                codec.stream_out(handle, self._document, title, version)
            os.replace(temp_path, path)
            replaced = True
        except OSError as exc:
            logger.error("Could not save %s: %s", path, exc)
            return OperationResult.failed(ErrorCode.IO_ERROR, str(exc))
        finally:
            if not replaced and temp_path and os.path.exists(temp_path):
                os.remove(temp_path)
        self._document.title = title
        self._document.version = version
        self.filename = path
        logger.info("Saved %s", path)
        self.notify(SAVED)
        return OperationResult.ok(path)

    def load_from_file(self, path: str) -> OperationResult:
        """
        Replaces the open document with the one in `path`. I/O problems are
        returned as a failed result; a malformed file raises FormatError.
        Either way the open document is untouched.
        """
        try:
            with open(path, encoding="utf-8") as handle:
                document = codec.stream_in(handle)
        except OSError as exc:
            logger.error("Could not read %s: %s", path, exc)
            return OperationResult.failed(ErrorCode.IO_ERROR, str(exc))
        except UnicodeDecodeError as exc:
            raise FormatError(f"{path} is not UTF-8 text ({exc.reason})") from exc
        except FormatError as exc:
            logger.error("Could not load %s: %s", path, exc)
            raise
        self._document.registry.clear()
        self._document = document
        self.filename = path
        logger.info("Loaded %s", path)
        self.notify(LOADED)
        return OperationResult.ok(path)

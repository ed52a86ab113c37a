"""
src/examblock/session_list.py

Session identity and the capacity projection used before an exam is
committed. A session is identified by its venue plus a session number
that is unique within that venue; at most one session exists for any
venue, date and start time.
"""

import logging
from datetime import date, time
from typing import List, Optional

from .errors import SessionNotFoundError
from .lists import ItemList
from .models import Exam, Venue
from .registry import Registry
from .session import Session

logger = logging.getLogger(__name__)


class SessionList(ItemList[Session]):
    label = "Sessions"

    def __init__(self, registry: Registry):
        super().__init__(registry, Session)

    def for_venue(self, venue: Venue) -> List[Session]:
        return [session for session in self if session.venue == venue]

    def _find_slot(self, venue: Venue, day: date, start: time) -> Optional[Session]:
        for session in self.for_venue(venue):
            if session.day == day and session.start == start:
                return session
        return None

    def session_number_for(self, venue: Venue, day: date, start: time) -> int:
        """The session number for this slot, or 0 when none exists yet."""
        session = self._find_slot(venue, day, start)
        return session.session_number if session else 0

    def session_for(self, venue: Venue, session_number: int) -> Session:
        for session in self.for_venue(venue):
            if session.session_number == session_number:
                return session
        raise SessionNotFoundError(venue.venue_id, f"numbered {session_number}")

    def session_for_exam(self, venue: Venue, exam: Exam) -> Session:
        session = self._find_slot(venue, exam.exam_date, exam.exam_time)
        if session is None or not session.has_exam(exam):
            raise SessionNotFoundError(venue.venue_id, f"holding {exam.short_title}")
        return session

    def sessions_with_exam(self, exam: Exam) -> List[Session]:
        return [session for session in self if session.has_exam(exam)]

    def next_session_number(self, venue: Venue) -> int:
        numbers = [session.session_number for session in self.for_venue(venue)]
        return max(numbers, default=0) + 1

    def _find_or_create(self, venue: Venue, exam: Exam) -> Session:
        session = self._find_slot(venue, exam.exam_date, exam.exam_time)
        if session is None:
            session = Session(venue, self.next_session_number(venue),
                              exam.exam_date, exam.exam_time, registry=self.registry)
            logger.info("Created session %s", session)
        return session

    def new_projected_total(self, venue: Venue, exam: Exam, additional_students: int) -> int:
        """
        Student count the exam's session in this venue would reach with
        `additional_students` more. Creates the (empty) session if the slot
        has none, but never attaches the exam.
        """
        session = self._find_or_create(venue, exam)
        return session.count_students() + additional_students

    def schedule_exam(self, venue: Venue, exam: Exam, student_count: Optional[int] = None) -> Session:
        session = self._find_or_create(venue, exam)
        session.schedule_exam(exam, student_count)
        return session

    def remove_exam(self, venue: Venue, exam: Exam) -> bool:
        """Detaches the exam; a session left without exams is removed."""
        session = self._find_slot(venue, exam.exam_date, exam.exam_time)
        if session is None or not session.remove_exam(exam):
            return False
        if session.is_empty():
            self.remove(session)
            logger.info("Removed empty session %s", session)
        return True

"""
src/examblock/report.py

Plain-text finalisation report: a summary of the document followed by
the desk layout of every session.
"""

import os
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from . import grammar
from . import utils
from .codec import Document
from .models import Exam, Student
from .session import Session


def write_allocations(sessions: Iterable[Session]) -> str:
    sessions = list(sessions)
    lines = ["Venue Allocations:", "=" * utils.RULE_WIDTH]
    if not sessions:
        lines.append("No sessions allocated.")
        return "\n".join(lines) + "\n"
    for session in sessions:
        lines.append(f"Venue: {session.venue.venue_id}, Session Number: {session.session_number}, "
                     f"Day: {session.day.isoformat()}, Start: {grammar.format_time(session.start)}")
        lines.append(session.desk_layout())
        lines.append("-" * utils.RULE_WIDTH)
    return "\n".join(lines) + "\n"


def _summary(document: Document) -> List[str]:
    lines = [
        f"Title: {document.title}",
        f"Version: {document.version}",
        "",
        f"Subjects: {len(document.subjects)}",
        f"Units: {len(document.units)}",
        f"Students: {len(document.students)} "
        f"({sum(1 for s in document.students if s.aara)} AARA)",
        f"Exams: {len(document.exams)}",
        f"Rooms: {len(document.rooms)}",
        f"Venues: {len(document.venues)}",
        f"Sessions: {len(document.sessions)}",
        "",
    ]
    for session in document.sessions:
        lines.append(f"Session {session}  [{session.venue.desk_label}, "
                     f"{session.count_students()}/{session.total_desks} desks]")
        for exam in session.exams:
            lines.append(f"    {exam.short_title} ({session.exam_count(exam)} students)")
    return lines


def finalisation_report(document: Document,
                        unseated: Optional[Dict[str, List[Tuple[Exam, Student]]]] = None) -> str:
    lines = _summary(document)
    if unseated:
        lines.append("")
        lines.append("Students without a desk:")
        for session_id, pairs in unseated.items():
            for exam, student in pairs:
                lines.append(f"    {session_id}: {student.full_name} ({student.lui}) - {exam.short_title}")
    lines.append("")
    return "\n".join(lines) + "\n" + write_allocations(document.sessions)


def report_filename(now: Optional[datetime] = None) -> str:
    """ExamBlockReport-YYYY-MM-DD_HH-MM-SS.efr"""
    stamp = (now or datetime.now()).strftime(utils.REPORT_TIMESTAMP_FORMAT)
    return f"{utils.REPORT_PREFIX}-{stamp}{utils.REPORT_EXTENSION}"


def save_report(text: str, directory: str, now: Optional[datetime] = None) -> str:
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, report_filename(now))
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(text)
    return path

"""
tests/test_codec.py

Tests for the .ebd document format: exact entity lines, placeholder
synthesis for unresolved references, and fatal format errors.
"""
import io
import logging
from datetime import date, time

import pytest

from examblock import codec
from examblock.codec import Document
from examblock.errors import FormatError
from examblock.grammar import LineReader
from examblock.models import Room, Student, Subject


def write(document: Document) -> str:
    out = io.StringIO()
    codec.stream_out(out, document)
    return out.getvalue()


def read(text: str) -> Document:
    return codec.stream_in(io.StringIO(text))


LABELS = ["Subjects", "Units", "Students", "Exams", "Rooms", "Venues", "Sessions"]


def wrap(**sections) -> str:
    """A whole document; sections not given (by lower-case label) are empty."""
    body = "".join(sections.get(label.lower(), f"[{label}: 0]\n") for label in LABELS)
    return "Title: Test\nVersion: 2.5\n[Begin]\n" + body + "[End]\n"


def test_document_layout(model):
    text = write(model.document)
    lines = text.splitlines()
    assert lines[:4] == ["Title: Exam Block", "Version: 1.0", "", "[Begin]"]
    assert lines[-1] == "[End]"
    labels = [line.split(":")[0] for line in lines if line.startswith("[") and ":" in line]
    assert labels == ["[Subjects", "[Units", "[Students", "[Exams", "[Rooms", "[Venues", "[Sessions"]


def test_entity_lines(model, v1, maths_exam):
    model.sessions.schedule_exam(v1, maths_exam)
    model.sessions.session_for(v1, 1).allocate_students()
    text = write(model.document)

    assert "1. MATHEMATICS\nMathematics\n\"The study of numbers and patterns.\"\n" in text
    assert "1. MATHEMATICS\nMathematics, Unit 3: Advanced Calculus\n\"Limits and integrals.\"\n" in text
    assert ("1. JOHN PAUL SMITH\nLUI: 9999111111, Family Name: Smith, Given Name(s): John Paul, "
            "Date of Birth: 2007-01-05, House: Blue, AARA: false\nSubjects: Mathematics\n") in text
    assert ("1. Year 12 Internal Assessment Mathematics Paper 1\nSubject: Mathematics, "
            "Exam Type: INTERNAL, Paper: 1, Exam Date: 2025-03-10, Exam Time: 08:30\n") in text
    assert ("2. Year 12 External Assessment Physics Technology Free\nSubject: Physics, "
            "Exam Type: EXTERNAL, Subtitle: Technology Free, Exam Date: 2025-03-10, "
            "Exam Time: 08:30\n") in text
    assert "[Rooms: 2]\n1. R1\n2. R2\n" in text
    assert ("1. V1 (25 Non-AARA desks)\nRoom Count: 1, Rooms: R1, Rows: 5, Columns: 5, "
            "Desks: 25, AARA: false\n") in text
    assert "2. A1 (4 AARA desks)\n" in text
    assert ("1. Venue: V1, Session Number: 1, Day: 2025-03-10, Start: 08:30, Exams: 1\n"
            "    Year 12 Internal Assessment Mathematics Paper 1 (2 students)\n"
            "    [Desks: 2]\n"
            "    Desk: 1 Doe, Jane - LUI: 9999222222 - Exam: Year 12 Internal Assessment Mathematics Paper 1\n"
            "    Desk: 2 Smith, John P. - LUI: 9999111111 - Exam: Year 12 Internal Assessment Mathematics Paper 1\n"
            ) in text


def test_round_trip(model, v1, a1, maths_exam, physics_exam):
    model.sessions.schedule_exam(v1, maths_exam)
    model.sessions.schedule_exam(v1, physics_exam)
    model.sessions.schedule_exam(a1, maths_exam)
    for session in model.sessions:
        session.allocate_students()

    loaded = read(write(model.document))
    assert (loaded.title, loaded.version) == ("Exam Block", 1.0)
    for original, restored in zip(model.document.collections, loaded.collections):
        assert [item.id for item in original] == [item.id for item in restored]

    student = loaded.students.by_lui(9999222222)
    assert [s.title for s in student.subjects] == ["Mathematics", "Physics"]
    assert student.dob == date(2007, 3, 2)
    venue = loaded.venues.get("A1")
    assert (venue.rows, venue.columns, venue.total_desks, venue.aara) == (2, 2, 4, True)
    assert venue.rooms == [loaded.rooms.get("R2")]
    exam = loaded.exams.get(physics_exam.id)
    assert exam.subtitle == "Technology Free"
    assert loaded.units.get("Mathematics-3").title == "Advanced Calculus"

    for original in model.sessions:
        restored = loaded.sessions.get(original.id)
        assert restored.exams == original.exams
        assert restored.venue is loaded.venues.get(original.venue.venue_id)
        assert [(d.number, d.family_name, d.given_and_init, d.lui, d.exam)
                for d in restored.filled_desks()] == \
               [(d.number, d.family_name, d.given_and_init, d.lui, d.exam)
                for d in original.filled_desks()]
        for exam in original.exams:
            assert restored.exam_count(exam) == original.exam_count(exam)


def test_student_without_subjects_line():
    text = wrap(students="[Students: 1]\n1. LIAM ALEXANDER SMITH\n"
                         "LUI: 9999365663, Family Name: Smith, Given Name(s): Liam Alexander, "
                         "Date of Birth: 2007-12-08, House: Blue, AARA: true\n")
    document = read(text)
    student = document.students.by_lui(9999365663)
    assert student.aara is True
    assert student.subjects == []
    assert (document.title, document.version) == ("Test", 2.5)


def test_subject_titles_holding_commas_survive_reload(caplog):
    document = Document()
    combined = Subject("Language, Literature", registry=document.registry)
    language = Subject("Language", registry=document.registry)
    maths = Subject("Mathematics", registry=document.registry)
    Student(9999111111, "John", "Smith", date(2007, 1, 5), "Blue", False,
            [combined, maths, language], registry=document.registry)

    with caplog.at_level(logging.WARNING):
        loaded = read(write(document))
    student = loaded.students.by_lui(9999111111)
    assert [s.title for s in student.subjects] == ["Language, Literature", "Mathematics", "Language"]
    assert len(loaded.subjects) == 3
    assert "placeholder" not in caplog.text


def test_unregistered_subject_in_list_is_cut_at_comma(caplog):
    text = wrap(subjects="[Subjects: 1]\n1. LANGUAGE, LITERATURE\nLanguage, Literature\n\"\"\n",
                students="[Students: 1]\n1. JOHN SMITH\n"
                         "LUI: 9999111111, Family Name: Smith, Given Name(s): John, "
                         "Date of Birth: 2007-01-05, House: Blue, AARA: false\n"
                         "Subjects: Chemistry, Language, Literature\n")
    with caplog.at_level(logging.WARNING):
        student = read(text).students.by_lui(9999111111)
    assert [s.title for s in student.subjects] == ["Chemistry", "Language, Literature"]
    assert "Subject 'Chemistry' not found" in caplog.text


def test_venue_header_without_category():
    text = wrap(rooms="[Rooms: 1]\n1. R1\n",
                venues="[Venues: 1]\n1. V1 (25 desks)\n"
                       "Room Count: 1, Rooms: R1, Rows: 5, Columns: 5, Desks: 25, AARA: false\n")
    venue = read(text).venues.get("V1")
    assert venue.total_desks == 25


def test_unknown_subject_becomes_placeholder(caplog):
    text = wrap(exams="[Exams: 1]\n1. Year 12 Internal Assessment Chemistry\n"
                      "Subject: Chemistry, Exam Type: INTERNAL, Exam Date: 2025-03-12, "
                      "Exam Time: 13:00\n")
    with caplog.at_level(logging.WARNING):
        document = read(text)
    assert document.subjects.get("Chemistry").description == ""
    assert document.exams.all()[0].exam_time == time(13, 0)
    assert "placeholder" in caplog.text


def test_unknown_venue_room_and_exam_are_synthesised(caplog):
    text = wrap(venues="[Venues: 1]\n1. V2 (4 Non-AARA desks)\n"
                       "Room Count: 1, Rooms: R7, Rows: 2, Columns: 2, Desks: 4, AARA: false\n",
                sessions="[Sessions: 2]\n"
                         "1. Venue: V2, Session Number: 4, Day: 2025-03-12, Start: 13:00, Exams: 1\n"
                         "    Year 12 External Assessment Physics Paper 2 (3 students)\n"
                         "2. Venue: V9, Session Number: 1, Day: 2025-03-12, Start: 13:00, Exams: 0\n")
    with caplog.at_level(logging.WARNING):
        document = read(text)
    assert document.rooms.get("R7").room_id == "R7"
    session = document.sessions.get("V2_4")
    exam = session.exams[0]
    assert (exam.subject.title, exam.paper, exam.exam_date) == ("Physics", "2", date(2025, 3, 12))
    assert session.exam_count(exam) == 3
    assert document.venues.get("V9").total_desks == 0
    assert "V9" in caplog.text


def test_desk_outside_grid_is_dropped(caplog):
    title = "Year 12 Internal Assessment Biology"
    text = wrap(
        subjects="[Subjects: 1]\n1. BIOLOGY\nBiology\n\"\"\n",
        exams=f"[Exams: 1]\n1. {title}\n"
              "Subject: Biology, Exam Type: INTERNAL, Exam Date: 2025-03-12, Exam Time: 13:00\n",
        rooms="[Rooms: 1]\n1. R1\n",
        venues="[Venues: 1]\n1. V1 (1 Non-AARA desks)\n"
               "Room Count: 1, Rooms: R1, Rows: 1, Columns: 1, Desks: 1, AARA: false\n",
        sessions="[Sessions: 1]\n"
                 "1. Venue: V1, Session Number: 1, Day: 2025-03-12, Start: 13:00, Exams: 1\n"
                 f"    {title} (2 students)\n"
                 "    [Desks: 2]\n"
                 f"    Desk: 1 Doe, Jane - LUI: 9999222222 - Exam: {title}\n"
                 f"    Desk: 9 Roe, Rick - LUI: 9999222223 - Exam: {title}\n",
    )
    with caplog.at_level(logging.WARNING):
        session = read(text).sessions.get("V1_1")
    assert [d.family_name for d in session.filled_desks()] == ["Doe"]
    assert session.filled_desks()[0].lui == 9999222222
    assert "no desk 9" in caplog.text


@pytest.mark.parametrize("text, fragment", [
    ("Title: T\nVersion: 1.0\n[Subjects: 0]\n", "[Begin]"),
    ("Version: 1.0\n[Begin]\n", "Title:"),
    ("Title: T\nVersion: one\n[Begin]\n", "Version"),
    ("Title: T\nVersion: 1.0\n[Begin]\n[Units: 0]\n", "[Subjects: <count>]"),
    ("Title: T\nVersion: 1.0\n[Begin]\n[Subjects: 1]\n2. MATHEMATICS\nMathematics\n\"\"\n",
     "does not match expected 1"),
    ("Title: T\nVersion: 1.0\n[Begin]\n[Subjects: 1]\n1. MATHEMATICS\nMathematics\n", "end of file"),
])
def test_format_errors_are_fatal(text, fragment):
    with pytest.raises(FormatError) as excinfo:
        read(text)
    assert fragment in str(excinfo.value)


def test_missing_end_marker_is_fatal():
    with pytest.raises(FormatError):
        read(wrap().replace("[End]\n", ""))


def test_malformed_student_line_is_fatal():
    text = wrap(students="[Students: 1]\n1. LIAM SMITH\nLUI: 9999365663, Family Name: Smith\n")
    with pytest.raises(FormatError) as excinfo:
        read(text)
    assert "Given Name(s)" in str(excinfo.value)


def test_entity_registered_once_read():
    reader = LineReader(io.StringIO("1. R1\n"))
    document = Document()
    room = Room.stream_in(reader, document.registry, 1)
    assert document.rooms.all() == [room]

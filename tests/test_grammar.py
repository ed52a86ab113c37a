"""
tests/test_grammar.py

Unit tests for the line reader and detail-line parsing.
"""
import io
from datetime import date, time

import pytest

from examblock import grammar
from examblock.errors import ErrorCode, FormatError
from examblock.grammar import LineReader


def reader_for(text: str) -> LineReader:
    return LineReader(io.StringIO(text))


def test_reader_skips_blank_lines_and_tracks_numbers():
    reader = reader_for("first\n\n   \n  second  \n")
    assert reader.peek() == "first"
    assert reader.read_line() == "first"
    assert reader.line_number == 1
    assert reader.read_line() == "second"
    assert reader.line_number == 4
    assert reader.read_line() is None


def test_expect_at_end_of_file_is_format_error():
    with pytest.raises(FormatError) as excinfo:
        reader_for("").expect("[Begin]")
    assert excinfo.value.code is ErrorCode.FORMAT_ERROR
    assert "[Begin]" in str(excinfo.value)


def test_parse_indexed_checks_position():
    assert grammar.parse_indexed(reader_for("2. MATHEMATICS\n"), 2, "subject") == "MATHEMATICS"
    with pytest.raises(FormatError) as excinfo:
        grammar.parse_indexed(reader_for("\n3. MATHEMATICS\n"), 2, "subject")
    assert excinfo.value.line_number == 2
    assert "does not match expected 2" in excinfo.value.message


def test_parse_indexed_rejects_missing_index():
    with pytest.raises(FormatError):
        grammar.parse_indexed(reader_for("MATHEMATICS\n"), 1, "subject")


def test_parse_section():
    assert grammar.parse_section(reader_for("[Subjects: 3]\n"), "Subjects") == 3
    with pytest.raises(FormatError):
        grammar.parse_section(reader_for("[Units: 3]\n"), "Subjects")
    with pytest.raises(FormatError):
        grammar.parse_section(reader_for("[Subjects: three]\n"), "Subjects")


def test_parse_fields_splits_only_on_known_keys():
    line = ("Subject: Mathematics, Exam Type: INTERNAL, Subtitle: Calculator, Graphs Allowed, "
            "Exam Date: 2025-03-10, Exam Time: 08:30")
    fields = grammar.parse_fields(reader_for(""), line, grammar.EXAM_FIELDS,
                                  required=("Subject", "Exam Date"))
    assert fields["Subtitle"] == "Calculator, Graphs Allowed"
    assert fields["Exam Time"] == "08:30"
    assert "Paper" not in fields


@pytest.mark.parametrize("line", [
    "Colour: Blue, Exam Type: INTERNAL",
    "Subject Mathematics",
    "Subject: Mathematics, Subject: Physics",
])
def test_parse_fields_rejects_malformed_lines(line):
    with pytest.raises(FormatError):
        grammar.parse_fields(reader_for(""), line, grammar.EXAM_FIELDS)


def test_parse_fields_requires_keys():
    with pytest.raises(FormatError) as excinfo:
        grammar.parse_fields(reader_for(""), "Subject: Mathematics", grammar.EXAM_FIELDS,
                             required=("Subject", "Exam Date"))
    assert "Exam Date" in excinfo.value.message


def test_converters():
    reader = reader_for("")
    assert grammar.to_int(reader, "12", "Rows") == 12
    assert grammar.to_bool(reader, "TRUE", "AARA") is True
    assert grammar.to_date(reader, "2025-03-10", "Day") == date(2025, 3, 10)
    assert grammar.to_time(reader, "08:30", "Start") == time(8, 30)
    assert grammar.format_time(time(8, 30)) == "08:30"
    for convert, value in [(grammar.to_int, "x"), (grammar.to_bool, "maybe"),
                           (grammar.to_date, "10/03/2025"), (grammar.to_time, "8.30am")]:
        with pytest.raises(FormatError):
            convert(reader, value, "field")


def test_desk_line_pattern():
    match = grammar.DESK_LINE.match(
        "Desk: 7 van der Berg, Anna M. - LUI: 9999111111 - Exam: Year 12 Internal Assessment Physics")
    assert match.group("number") == "7"
    assert match.group("family") == "van der Berg"
    assert match.group("given") == "Anna M."
    assert match.group("lui") == "9999111111"
    assert match.group("exam") == "Year 12 Internal Assessment Physics"

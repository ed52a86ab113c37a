"""
tests/conftest.py

Shared fixtures: a small exam block with two subjects, four students,
a 5x5 non-AARA venue and a 2x2 AARA venue.
"""
from datetime import date, time

import pytest

from examblock.exam_block import ExamBlockModel
from examblock.models import Exam, ExamType, Room, Student, Subject, Unit, Venue
from examblock.registry import Registry


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest.fixture
def model() -> ExamBlockModel:
    """Mathematics: Doe, Smith (non-AARA) and Brown (AARA). Physics: Doe, Lee."""
    m = ExamBlockModel()
    reg = m.registry
    maths = Subject("Mathematics", "the study of numbers and patterns", registry=reg)
    physics = Subject("Physics", "matter, energy and motion", registry=reg)
    Unit(maths, "3", "Advanced Calculus", "limits and integrals", registry=reg)

    Student(9999111111, "John Paul", "Smith", date(2007, 1, 5), "Blue", False, [maths], registry=reg)
    Student(9999222222, "Jane", "Doe", date(2007, 3, 2), "Red", False, [maths, physics], registry=reg)
    Student(9999333333, "Amy", "Brown", date(2007, 6, 9), "Green", True, [maths], registry=reg)
    Student(9999444444, "Tom", "Lee", date(2007, 8, 1), "Gold", False, [physics], registry=reg)

    r1 = Room("R1", registry=reg)
    r2 = Room("R2", registry=reg)
    Venue("V1", 1, [r1], 5, 5, 25, False, registry=reg)
    Venue("A1", 1, [r2], 2, 2, 4, True, registry=reg)

    Exam(maths, ExamType.INTERNAL, date(2025, 3, 10), time(8, 30), paper=1, registry=reg)
    Exam(physics, ExamType.EXTERNAL, date(2025, 3, 10), time(8, 30),
         subtitle="Technology Free", registry=reg)
    return m


@pytest.fixture
def v1(model) -> Venue:
    return model.venues.get("V1")


@pytest.fixture
def a1(model) -> Venue:
    return model.venues.get("A1")


@pytest.fixture
def maths_exam(model) -> Exam:
    return model.exams.all()[0]


@pytest.fixture
def physics_exam(model) -> Exam:
    return model.exams.all()[1]


@pytest.fixture
def make_students():
    """Registers one student per family name, all taking `subject`."""
    def _make(registry, subject, family_names, aara=False, start_lui=9990000001):
        return [
            Student(start_lui + i, "Test", name, date(2007, 1, 1), "Blue", aara, [subject],
                    registry=registry)
            for i, name in enumerate(family_names)
        ]
    return _make

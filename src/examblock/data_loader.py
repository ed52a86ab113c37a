"""
src/examblock/data_loader.py

Seeds a document from CSV files in a data directory:

    subjects.csv     title, description
    units.csv        subject, unit, title, description
    students.csv     lui, given_names, family_name, dob, house, aara, subjects
    venues.csv       venue_id, rooms, rows, columns, desks, aara
    exams.csv        subject, exam_type, date, time, paper, subtitle, unit
    exam_config.csv  parameter, value

Student subjects are separated by ';' and venue rooms by spaces. A
missing file is skipped with a warning.
"""

import logging
import os
from datetime import date, time
from typing import Dict

import pandas as pd

from . import utils
from .codec import Document
from .models import Exam, ExamType, Room, Student, Subject, Unit, Venue, resolve_subject

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "yes", "y", "1")


def _read(path: str) -> pd.DataFrame:
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = df.columns.str.strip()
    return df


def _flag(value: str) -> bool:
    return str(value).strip().lower() in TRUE_VALUES


def load_exam_config(data_dir: str = 'data') -> Dict[str, str]:
    """Configuration from exam_config.csv layered over utils.DEFAULT_CONFIG."""
    config = dict(utils.DEFAULT_CONFIG)
    try:
        df = _read(os.path.join(data_dir, 'exam_config.csv'))
    except FileNotFoundError:
        logger.warning("exam_config.csv not found in %s; using defaults", data_dir)
        return config
    for _, row in df.iterrows():
        config[str(row['parameter']).strip()] = str(row['value']).strip()
    return config


class ExamDataLoader:
    """Loads CSV seed data into a Document."""

    def __init__(self, document: Document, data_dir: str = 'data'):
        self.document = document
        self.data_dir = data_dir

    def _frame(self, name: str):
        path = os.path.join(self.data_dir, name)
        try:
            return _read(path)
        except FileNotFoundError:
            logger.warning("%s not found in %s", name, self.data_dir)
            return None

    def load_all_data(self) -> Dict[str, int]:
        """Loads every file in dependency order; returns the count read per kind."""
        return {
            'subjects': self.load_subjects(),
            'units': self.load_units(),
            'students': self.load_students(),
            'venues': self.load_venues(),
            'exams': self.load_exams(),
        }

    def load_subjects(self) -> int:
        df = self._frame('subjects.csv')
        if df is None:
            return 0
        for _, row in df.iterrows():
            Subject(row['title'], row.get('description', ''), registry=self.document.registry)
        return len(df)

    def load_units(self) -> int:
        df = self._frame('units.csv')
        if df is None:
            return 0
        registry = self.document.registry
        for _, row in df.iterrows():
            Unit(resolve_subject(registry, row['subject']), row['unit'], row['title'],
                 row.get('description', ''), registry=registry)
        return len(df)

    def load_students(self) -> int:
        df = self._frame('students.csv')
        if df is None:
            return 0
        registry = self.document.registry
        for _, row in df.iterrows():
            subjects = [resolve_subject(registry, title)
                        for title in str(row.get('subjects', '')).split(';') if title.strip()]
            Student(
                lui=int(row['lui']),
                given_names=row['given_names'],
                family_name=row['family_name'],
                dob=date.fromisoformat(row['dob'].strip()),
                house=row.get('house', ''),
                aara=_flag(row.get('aara', 'false')),
                subjects=subjects,
                registry=registry,
            )
        return len(df)

    def load_venues(self) -> int:
        """Rooms named by a venue are created on first mention."""
        df = self._frame('venues.csv')
        if df is None:
            return 0
        registry = self.document.registry
        for _, row in df.iterrows():
            rooms = [registry.find(room_id, Room) or Room(room_id, registry=registry)
                     for room_id in str(row['rooms']).split()]
            Venue(
                venue_id=row['venue_id'],
                room_count=len(rooms),
                rooms=rooms,
                rows=int(row['rows']),
                columns=int(row['columns']),
                total_desks=int(row['desks']),
                aara=_flag(row.get('aara', 'false')),
                registry=registry,
            )
        return len(df)

    def load_exams(self) -> int:
        df = self._frame('exams.csv')
        if df is None:
            return 0
        registry = self.document.registry
        for _, row in df.iterrows():
            Exam(
                resolve_subject(registry, row['subject']),
                ExamType[str(row['exam_type']).strip().upper()],
                date.fromisoformat(row['date'].strip()),
                time.fromisoformat(row['time'].strip()),
                paper=row.get('paper') or None,
                subtitle=row.get('subtitle', ''),
                unit=row.get('unit') or None,
                registry=registry,
            )
        return len(df)

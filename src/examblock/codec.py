"""
src/examblock/codec.py

Whole-document streaming for .ebd files. Collections are written and read
in a fixed order because later sections refer to earlier ones by id:
Subjects, Units, Students, Exams, Rooms, Venues, Sessions.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, TextIO

from . import grammar
from . import utils
from .grammar import LineReader
from .lists import ExamList, ItemList, RoomList, StudentList, SubjectList, UnitList, VenueList
from .registry import Registry
from .session_list import SessionList

logger = logging.getLogger(__name__)

BEGIN_MARKER = "[Begin]"
END_MARKER = "[End]"


@dataclass
class Document:
    """One exam block: a registry and the collections viewing it."""
    title: str = utils.DEFAULT_TITLE
    version: float = utils.DEFAULT_VERSION
    registry: Registry = field(default_factory=Registry)

    def __post_init__(self):
        self.subjects = SubjectList(self.registry)
        self.units = UnitList(self.registry)
        self.students = StudentList(self.registry)
        self.exams = ExamList(self.registry)
        self.rooms = RoomList(self.registry)
        self.venues = VenueList(self.registry)
        self.sessions = SessionList(self.registry)

    @property
    def collections(self) -> List[ItemList]:
        return [self.subjects, self.units, self.students, self.exams,
                self.rooms, self.venues, self.sessions]


def stream_out(out: TextIO, document: Document,
               title: Optional[str] = None, version: Optional[float] = None) -> None:
    """Writes the document; title and version default to the document's own."""
    out.write(f"Title: {document.title if title is None else title}\n")
    out.write(f"Version: {document.version if version is None else version}\n")
    out.write("\n")
    out.write(f"{BEGIN_MARKER}\n")
    for collection in document.collections:
        out.write("\n")
        collection.stream_out(out)
    out.write("\n")
    out.write(f"{END_MARKER}\n")


def stream_in(stream: TextIO) -> Document:
    """
    Reads a complete document into a fresh Registry. Any FormatError
    propagates; the caller's current document is never touched here.
    """
    reader = LineReader(stream)
    title = grammar.parse_value(reader, "Title")
    version = grammar.to_float(reader, grammar.parse_value(reader, "Version"), "Version")
    document = Document(title, version)
    grammar.expect_marker(reader, BEGIN_MARKER)
    for collection in document.collections:
        collection.stream_in(reader)
    grammar.expect_marker(reader, END_MARKER)
    logger.debug("Read %d entities from document '%s'", len(document.registry), title)
    return document

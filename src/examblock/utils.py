"""
src/examblock/utils.py
"""
import re
from typing import Dict

# --- File Constants ---
FILE_EXTENSION: str = ".ebd"
REPORT_EXTENSION: str = ".efr"
REPORT_PREFIX: str = "ExamBlockReport"
REPORT_TIMESTAMP_FORMAT: str = "%Y-%m-%d_%H-%M-%S"

# --- Document Defaults ---
DEFAULT_TITLE: str = "Exam Block"
DEFAULT_VERSION: float = 1.0

# --- Layout Constants ---
DESK_CELL_WIDTH: int = 15
RULE_WIDTH: int = 60
LUI_DIGITS: int = 10
YEAR_LEVEL: int = 12

# --- Configuration Defaults (overridden by exam_config.csv) ---
DEFAULT_CONFIG: Dict[str, str] = {
    'title': DEFAULT_TITLE,
    'version': str(DEFAULT_VERSION),
    'output_dir': 'output',
    'report_dir': 'output/reports',
}

_WHITESPACE = re.compile(r"\s+")
_NAME_NOISE = re.compile(r"[^A-Za-zÀ-ɏ'\- ]+")


def collapse_spaces(text: str) -> str:
    """Trims text and squeezes every run of whitespace to a single space."""
    return _WHITESPACE.sub(" ", text or "").strip()


def sanitise_title(text: str) -> str:
    """'  Biology   .' -> 'Biology'"""
    return collapse_spaces(text).rstrip(". ").strip()


def sanitise_description(text: str) -> str:
    """
    Normalises a free-text description: whitespace collapsed, surrounding
    quotes removed, first letter capitalised, ending in a full stop.
    An empty description stays empty.
    """
    cleaned = collapse_spaces(text).strip('"').strip()
    if not cleaned:
        return ""
    cleaned = cleaned[0].upper() + cleaned[1:]
    if not cleaned.endswith("."):
        cleaned += "."
    return cleaned


def sanitise_name(text: str) -> str:
    """'Test123Name456' -> 'Test Name'. Hyphens and apostrophes survive."""
    return collapse_spaces(_NAME_NOISE.sub(" ", text or ""))


def given_and_init(given_names: str) -> str:
    """'Liam Alexander' -> 'Liam A.'; a single given name is returned as is."""
    parts = collapse_spaces(given_names).split(" ")
    if len(parts) > 1 and parts[1]:
        return f"{parts[0]} {parts[1][0]}."
    return parts[0]


def format_bool(value: bool) -> str:
    return "true" if value else "false"

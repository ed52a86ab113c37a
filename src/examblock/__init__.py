"""
Exam block scheduling: sessions, desk allocation and .ebd persistence.
"""

from .exam_block import ExamBlockModel, FinaliseResult
from .registry import Registry

__version__ = "1.0.0"

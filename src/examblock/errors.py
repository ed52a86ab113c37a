"""Domain error codes and result values for the exam block core."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class ErrorCode(Enum):
    """Domain error codes."""

    FORMAT_ERROR = "FORMAT_ERROR"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    WRONG_VENUE_TYPE = "WRONG_VENUE_TYPE"
    ALREADY_SCHEDULED = "ALREADY_SCHEDULED"
    NO_STUDENTS = "NO_STUDENTS"
    IO_ERROR = "IO_ERROR"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class FormatError(DomainError):
    """Raised when an .ebd stream does not follow the document grammar."""

    def __init__(self, message: str, line_number: Optional[int] = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(code=ErrorCode.FORMAT_ERROR, message=message)
        self.line_number = line_number


class ItemNotFoundError(DomainError):
    """Raised when a managed collection has no item under the requested key."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(
            code=ErrorCode.ITEM_NOT_FOUND,
            message=f"No {kind} found for '{key}'",
        )
        self.kind = kind
        self.key = key


class SessionNotFoundError(DomainError):
    """Raised when a venue has no session matching the request."""

    def __init__(self, venue_id: str, detail: str) -> None:
        super().__init__(
            code=ErrorCode.SESSION_NOT_FOUND,
            message=f"No session for venue {venue_id} {detail}",
        )
        self.venue_id = venue_id


@dataclass
class OperationResult:
    """Outcome of a save or load."""

    success: bool
    message: str = ""
    code: Optional[ErrorCode] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, message: str = "") -> "OperationResult":
        return cls(True, message)

    @classmethod
    def failed(cls, code: ErrorCode, message: str) -> "OperationResult":
        return cls(False, message, code)


@dataclass
class ScheduleResult:
    """Outcome of a schedule request; `reason` explains a rejection."""

    success: bool
    reason: str = ""
    code: Optional[ErrorCode] = None
    session: Optional[Any] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def accepted(cls, session: Any) -> "ScheduleResult":
        return cls(True, "", None, session)

    @classmethod
    def rejected(cls, code: ErrorCode, reason: str) -> "ScheduleResult":
        return cls(False, reason, code)

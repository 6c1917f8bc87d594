"""Errors raised while validating operations and encoding the report file."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List


class ReportError(Exception):
    """Base exception for all report errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class FieldError:
    """One rejected field: which one and why."""

    field: str
    reason: str

    def as_dict(self) -> dict:
        return {"field": self.field, "reason": self.reason}


class ValidationError(ReportError):
    """
    Raised when an operation payload (or the exchange identity) fails validation.

    The operation is never appended to the report when this is raised.
    """

    def __init__(self, errors: Iterable[FieldError], kind: str | None = None) -> None:
        self.errors: List[FieldError] = list(errors)
        self.kind = kind
        fields = ", ".join(f"{e.field}: {e.reason}" for e in self.errors)
        prefix = f"Invalid {kind} operation" if kind else "Invalid payload"
        super().__init__(f"{prefix} ({fields})")

    def as_list(self) -> list[dict]:
        return [e.as_dict() for e in self.errors]


class EncodingWidthExceeded(ReportError):
    """Raised when a value does not fit its column; the whole export is aborted."""

    def __init__(self, field: str, max_width: int, actual_width: int) -> None:
        message = f"Field {field} needs {actual_width} characters but the layout allows {max_width}"
        super().__init__(message)
        self.field = field
        self.max_width = max_width
        self.actual_width = actual_width


class DateParseError(ReportError, ValueError):
    """Raised when a date matches none of the accepted input forms."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Unrecognized date: {value!r}")
        self.value = value

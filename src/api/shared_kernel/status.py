"""Status/result wrapper shared by every tenant administration operation.

A ``Status`` carries a success flag (derived from the error list), an ordered
list of human-readable errors and an optional typed payload. Operations
return a ``Status`` instead of raising for expected failures; helpers compose
statuses by short-circuiting on the first failure or by accumulating errors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")

SUCCESS_MESSAGE = "Success"


class ErrorCode(StrEnum):
    """Category of a status error."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONCURRENCY = "concurrency"
    STORE_OPERATION = "store_operation"
    CONFIGURATION = "configuration"


@dataclass(frozen=True)
class StatusError:
    """A single error recorded on a Status.

    Attributes:
        message: Human-readable description of the failure
        code: Category used by callers to map the failure (e.g. to HTTP)
    """

    message: str
    code: ErrorCode = ErrorCode.VALIDATION

    def __str__(self) -> str:
        """Return the error message."""
        return self.message


@dataclass
class Status(Generic[T]):
    """Result of an operation: errors in order of detection plus a payload.

    The payload is only meaningful when ``is_valid`` is True. Setting a
    payload on a failed status is allowed (composition may do it) but
    ``result`` always reads as None while errors are present.
    """

    errors: list[StatusError] = field(default_factory=list)
    _result: T | None = field(default=None, repr=False)
    _message: str = field(default=SUCCESS_MESSAGE, repr=False)

    @classmethod
    def ok(cls, result: T | None = None, message: str = SUCCESS_MESSAGE) -> Status[T]:
        """Create a successful status carrying ``result``."""
        return cls(_result=result, _message=message)

    @classmethod
    def fail(cls, message: str, code: ErrorCode = ErrorCode.VALIDATION) -> Status[T]:
        """Create a failed status with a single error."""
        status: Status[T] = cls()
        status.add_error(message, code)
        return status

    @property
    def is_valid(self) -> bool:
        """True when no errors were recorded."""
        return not self.errors

    @property
    def has_errors(self) -> bool:
        """True when at least one error was recorded."""
        return bool(self.errors)

    @property
    def result(self) -> T | None:
        """The payload, or None if the status has errors."""
        return self._result if self.is_valid else None

    @property
    def message(self) -> str:
        """Success message, or a summary of the failure."""
        if self.is_valid:
            return self._message
        count = len(self.errors)
        return f"Failed with {count} error{'s' if count > 1 else ''}"

    @message.setter
    def message(self, value: str) -> None:
        self._message = value

    @property
    def error_messages(self) -> list[str]:
        """Error messages in the order they were recorded."""
        return [error.message for error in self.errors]

    @property
    def first_error_code(self) -> ErrorCode | None:
        """Code of the first recorded error, if any."""
        return self.errors[0].code if self.errors else None

    def set_result(self, result: T | None) -> Status[T]:
        """Set the payload and return self for chaining."""
        self._result = result
        return self

    def add_error(
        self, message: str, code: ErrorCode = ErrorCode.VALIDATION
    ) -> Status[T]:
        """Append an error and return self for chaining."""
        self.errors.append(StatusError(message=message, code=code))
        return self

    def combine(self, other: Status) -> Status[T]:
        """Append all errors of ``other`` (payload is left untouched)."""
        self.errors.extend(other.errors)
        return self

    def get_all_errors(self, separator: str = "\n") -> str:
        """Join all error messages, or return an empty string if valid."""
        return separator.join(self.error_messages)


def first_failure(*statuses: Status) -> Status | None:
    """Return the first failed status, or None if all are valid.

    Used for short-circuit composition of sequential steps.
    """
    for status in statuses:
        if status.has_errors:
            return status
    return None

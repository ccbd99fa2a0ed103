"""Tagged success/failure results returned by listing operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, Literal, TypeVar

T = TypeVar("T")


class ErrorKind(StrEnum):
    """Why an operation failed."""

    NOT_FOUND = "not_found"
    NO_CHANGES = "no_changes"
    UPSTREAM_FAILURE = "upstream_failure"
    UPLOAD_FAILURE = "upload_failure"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T
    success: Literal[True] = True


@dataclass(frozen=True)
class Failure:
    """Failed outcome with a short caller-facing message."""

    kind: ErrorKind
    message: str
    success: Literal[False] = False


Result = Ok[T] | Failure


class PropertyNotFoundError(LookupError):
    """No listing exists with the given id."""

    def __init__(self, property_id: str) -> None:
        super().__init__(f"Property {property_id} not found")
        self.property_id = property_id


class MediaUploadError(Exception):
    """One or more media files could not be written."""

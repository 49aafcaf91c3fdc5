"""Exceptions raised by the record store and its services."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class DatabaseError(Exception):
    """Base class for every error raised by record_tables."""


class ConfigurationError(DatabaseError):
    """The schema source is missing, malformed, or lacks a table."""


class UniqueConstraintViolation(DatabaseError):
    """A write would duplicate a value in a uniquely-constrained field."""

    def __init__(self, field_name: str, value: Any) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name} {value} already exists")


class ConstraintViolation(DatabaseError):
    """A field value breaks a not_null, length, min or max constraint."""

    def __init__(self, field_name: str, message: str) -> None:
        self.field_name = field_name
        super().__init__(message)


class NotFound(DatabaseError):
    """No record exists with the requested id."""

    def __init__(self, record_id: int) -> None:
        self.record_id = record_id
        super().__init__(f"Record with ID {record_id} not found")


class MultipleMatches(DatabaseError):
    """A lookup expected to be unique matched more than one record."""

    def __init__(self, field_name: str, value: Any, count: int) -> None:
        self.field_name = field_name
        self.value = value
        self.count = count
        super().__init__(f"Multiple records ({count}) found with {field_name} {value!r}")


class PersistenceFailure(DatabaseError):
    """Reading or writing a persisted document failed."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"{message}: {path}")


class EnrollmentError(DatabaseError):
    """An enrollment workflow precondition does not hold."""

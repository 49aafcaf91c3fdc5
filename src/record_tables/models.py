"""Entity types stored by the record store.

The store never inspects entity objects directly. Every entity type
implements :class:`Entity`, converting itself to a plain field map and
back, so the same store logic works for any of them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, fields
from typing import Any, TypeVar

E = TypeVar("E", bound="Entity")

# Id carried by entities that have not been stored yet
UNASSIGNED_ID = 0


class Entity(ABC):
    """Capability contract every stored entity type implements."""

    id: int

    @abstractmethod
    def to_fields(self) -> dict[str, Any]:
        """Return the entity's fields, including ``id``."""

    @classmethod
    @abstractmethod
    def from_fields(cls: type[E], values: dict[str, Any]) -> E:
        """Build an entity from a stored field map."""


class DataclassEntity(Entity):
    """Entity implementation for dataclasses whose fields map one-to-one."""

    def to_fields(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def from_fields(cls: type[E], values: dict[str, Any]) -> E:
        names = {f.name for f in fields(cls)}  # type: ignore[arg-type]
        return cls(**{k: v for k, v in values.items() if k in names})


class GenericRecord(Entity):
    """Entity holding an arbitrary field map, for tables without a dedicated type."""

    def __init__(self, id: int = UNASSIGNED_ID, **values: Any) -> None:
        self.id = id
        self.values = values

    def to_fields(self) -> dict[str, Any]:
        return {"id": self.id, **self.values}

    @classmethod
    def from_fields(cls, values: dict[str, Any]) -> GenericRecord:
        values = dict(values)
        record_id = values.pop("id", UNASSIGNED_ID)
        return cls(record_id, **values)

    def __getitem__(self, field_name: str) -> Any:
        return self.values[field_name]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GenericRecord):
            return NotImplemented
        return self.id == other.id and self.values == other.values

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self.values.items())
        return f"GenericRecord(id={self.id}, {inner})" if inner else f"GenericRecord(id={self.id})"


@dataclass
class Student(DataclassEntity):
    id: int
    name: str
    email: str
    phone: str


@dataclass
class Course(DataclassEntity):
    id: int
    name: str


@dataclass
class CourseEnrollment(DataclassEntity):
    """Links a student to a course, with the grade earned (0-5)."""

    id: int
    student_id: int
    course_id: int
    grade: int = 0

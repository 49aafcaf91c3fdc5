"""Table and field definitions for the record store."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# Suffix appended to a field name to form its index name
INDEX_SUFFIX = "_id_idx"


def index_name_for(field_name: str) -> str:
    """Return the index name used for a field."""
    return f"{field_name}{INDEX_SUFFIX}"


def field_name_for(index_name: str) -> str:
    """Return the field name an index name refers to."""
    if index_name.endswith(INDEX_SUFFIX):
        return index_name[: -len(INDEX_SUFFIX)]
    return index_name


class FieldType(Enum):
    """Semantic types a field may declare."""

    STRING = "string"
    INTEGER = "int"
    FLOAT = "float"
    BOOLEAN = "bool"

    def coerce_key(self, key: str) -> Any:
        """Convert a persisted (string) index key back to a field value.

        JSON object keys are always strings, so index keys written for
        non-string fields have to be converted on load.
        """
        if self is FieldType.STRING:
            return key
        if self is FieldType.INTEGER:
            return int(key)
        if self is FieldType.FLOAT:
            return float(key)
        return key in ("true", "True", "1")

    def accepts(self, value: Any) -> bool:
        """Return True if a (non-None) value matches this type."""
        if self is FieldType.STRING:
            return isinstance(value, str)
        if self is FieldType.BOOLEAN:
            return isinstance(value, bool)
        if self is FieldType.INTEGER:
            return isinstance(value, int) and not isinstance(value, bool)
        return isinstance(value, (int, float)) and not isinstance(value, bool)


# Mapping from type names accepted in definitions to FieldType values
FIELD_TYPE_NAMES: dict[str, FieldType] = {
    "string": FieldType.STRING,
    "str": FieldType.STRING,
    "text": FieldType.STRING,
    "int": FieldType.INTEGER,
    "integer": FieldType.INTEGER,
    "float": FieldType.FLOAT,
    "number": FieldType.FLOAT,
    "bool": FieldType.BOOLEAN,
    "boolean": FieldType.BOOLEAN,
}


def resolve_field_type(name: str) -> FieldType:
    """Look up a field type by name, raising ValueError if unknown."""
    try:
        return FIELD_TYPE_NAMES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown field type '{name}'") from None


@dataclass(frozen=True)
class FieldConstraints:
    """Constraints declared for a single field."""

    unique: bool = False
    not_null: bool = False
    length: int | None = None
    min: int | None = None
    max: int | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any] | None) -> FieldConstraints:
        """Build constraints from a definition mapping.

        Raises:
            ValueError: If the mapping has unknown keys or values of the wrong type.
        """
        if raw is None:
            return cls()
        if not isinstance(raw, dict):
            raise ValueError(f"Constraints must be an object, got {raw!r}")
        unknown = set(raw) - {"unique", "not_null", "length", "min", "max"}
        if unknown:
            raise ValueError(f"Unknown constraints: {sorted(unknown)}")

        for key in ("unique", "not_null"):
            if key in raw and not isinstance(raw[key], bool):
                raise ValueError(f"Constraint '{key}' must be true or false, got {raw[key]!r}")
        for key in ("length", "min", "max"):
            value = raw.get(key)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ValueError(f"Constraint '{key}' must be an integer, got {value!r}")

        return cls(
            unique=raw.get("unique", False),
            not_null=raw.get("not_null", False),
            length=raw.get("length"),
            min=raw.get("min"),
            max=raw.get("max"),
        )


@dataclass(frozen=True)
class FieldDefinition:
    """A named, typed field of a table."""

    name: str
    field_type: FieldType = FieldType.STRING
    constraints: FieldConstraints = field(default_factory=FieldConstraints)
    indexed: bool = False

    def __post_init__(self) -> None:
        constraints = self.constraints
        if constraints.length is not None and self.field_type is not FieldType.STRING:
            raise ValueError(f"Field '{self.name}': length only applies to string fields")
        numeric = self.field_type in (FieldType.INTEGER, FieldType.FLOAT)
        if not numeric and (constraints.min is not None or constraints.max is not None):
            raise ValueError(f"Field '{self.name}': min and max only apply to numeric fields")

    @property
    def index_name(self) -> str:
        return index_name_for(self.name)

    @property
    def unique(self) -> bool:
        return self.constraints.unique

    def check(self, value: Any) -> str | None:
        """Return a message describing why a value is invalid, or None."""
        constraints = self.constraints
        if value is None:
            if constraints.not_null:
                return f"{self.name} cannot be null"
            return None

        if not self.field_type.accepts(value):
            return f"{self.name} must be of type {self.field_type.value}"

        if constraints.length is not None and isinstance(value, str):
            if len(value) != constraints.length:
                return f"{self.name} must be exactly {constraints.length} characters long"

        if constraints.min is not None and value < constraints.min:
            return f"{self.name} must be at least {constraints.min}"
        if constraints.max is not None and value > constraints.max:
            return f"{self.name} must be at most {constraints.max}"

        return None


@dataclass(frozen=True)
class TableDefinition:
    """Schema of one entity type: its name and ordered fields."""

    name: str
    fields: tuple[FieldDefinition, ...] = ()

    def get_field(self, name: str) -> FieldDefinition | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def unique_fields(self) -> list[FieldDefinition]:
        return [f for f in self.fields if f.unique]

    @property
    def indexed_fields(self) -> list[FieldDefinition]:
        return [f for f in self.fields if f.indexed]

    def is_unique(self, field_name: str) -> bool:
        """Return True if the field is declared unique."""
        f = self.get_field(field_name)
        return f is not None and f.unique

    def field_type(self, field_name: str) -> FieldType | None:
        f = self.get_field(field_name)
        return f.field_type if f is not None else None


class TableRegistry:
    """Registry of all defined tables, in definition order."""

    def __init__(self) -> None:
        self._tables: dict[str, TableDefinition] = {}

    def register(self, table: TableDefinition) -> None:
        """Register a table definition."""
        if table.name in self._tables:
            raise ValueError(f"Table '{table.name}' is already defined")
        self._tables[table.name] = table

    def get(self, name: str) -> TableDefinition | None:
        """Get a table by name."""
        return self._tables.get(name)

    def get_or_raise(self, name: str) -> TableDefinition:
        """Get a table by name, raising KeyError if not found."""
        table = self._tables.get(name)
        if table is None:
            raise KeyError(f"Table '{name}' not found")
        return table

    def list_tables(self) -> list[str]:
        """List all registered table names."""
        return list(self._tables)

    def __contains__(self, name: object) -> bool:
        return name in self._tables

    def __len__(self) -> int:
        return len(self._tables)

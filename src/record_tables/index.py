"""Secondary indices kept in step with the records of a table.

Each index maps a field value to record ids. Its shape is fixed when the
index is created: fields declared unique get a :class:`UniqueIndex`
(value -> id), every other field a :class:`BucketIndex` (value -> ordered ids).
Indices are derived data; the records in the document are authoritative.
"""

from __future__ import annotations

from typing import Any, Iterator, Union

from record_tables.types import (
    TableDefinition,
    field_name_for,
    index_name_for,
)


def _key_to_json(value: Any) -> str:
    """Render an index key as a JSON object key."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class UniqueIndex:
    """Index holding a single record id per value."""

    unique = True

    def __init__(self, field_name: str, entries: dict[Any, int] | None = None) -> None:
        self.field_name = field_name
        self.entries: dict[Any, int] = dict(entries or {})

    @property
    def name(self) -> str:
        return index_name_for(self.field_name)

    def insert(self, value: Any, record_id: int) -> None:
        self.entries[value] = record_id

    def remove(self, value: Any, record_id: int) -> None:
        if self.entries.get(value) == record_id:
            del self.entries[value]

    def lookup(self, value: Any) -> list[int]:
        record_id = self.entries.get(value)
        return [] if record_id is None else [record_id]

    def items(self) -> Iterator[tuple[Any, list[int]]]:
        for value, record_id in self.entries.items():
            yield value, [record_id]

    def to_json(self) -> dict[str, int]:
        return {_key_to_json(value): record_id for value, record_id in self.entries.items()}

    def __len__(self) -> int:
        return len(self.entries)


class BucketIndex:
    """Index holding an insertion-ordered list of record ids per value."""

    unique = False

    def __init__(self, field_name: str, entries: dict[Any, list[int]] | None = None) -> None:
        self.field_name = field_name
        self.entries: dict[Any, list[int]] = {
            value: list(ids) for value, ids in (entries or {}).items()
        }

    @property
    def name(self) -> str:
        return index_name_for(self.field_name)

    def insert(self, value: Any, record_id: int) -> None:
        bucket = self.entries.setdefault(value, [])
        if record_id not in bucket:
            bucket.append(record_id)

    def remove(self, value: Any, record_id: int) -> None:
        bucket = self.entries.get(value)
        if bucket is None:
            return
        if record_id in bucket:
            bucket.remove(record_id)
        if not bucket:
            del self.entries[value]

    def lookup(self, value: Any) -> list[int]:
        return list(self.entries.get(value, ()))

    def items(self) -> Iterator[tuple[Any, list[int]]]:
        for value, ids in self.entries.items():
            yield value, list(ids)

    def to_json(self) -> dict[str, list[int]]:
        return {_key_to_json(value): list(ids) for value, ids in self.entries.items()}

    def __len__(self) -> int:
        return len(self.entries)


Index = Union[UniqueIndex, BucketIndex]


class IndexMaintainer:
    """Owns the indices of one table and applies record changes to them."""

    def __init__(self, table: TableDefinition, indices: dict[str, Index] | None = None) -> None:
        self.table = table
        self._indices: dict[str, Index] = dict(indices or {})

    @classmethod
    def from_document(cls, table: TableDefinition, raw: dict[str, Any]) -> IndexMaintainer:
        """Rebuild indices from their persisted JSON form.

        Keys are coerced back to the field's declared type; fields the
        schema does not know keep their string keys.

        Raises:
            ValueError: If an index or one of its keys or ids is malformed.
        """
        indices: dict[str, Index] = {}
        for index_name, raw_entries in raw.items():
            field_name = field_name_for(index_name)
            field_type = table.field_type(field_name)
            index = cls._new_index(table, field_name)
            raw_entries = raw_entries or {}
            if not isinstance(raw_entries, dict):
                raise ValueError(f"Index {index_name} must be an object")
            for key, ids in raw_entries.items():
                value = field_type.coerce_key(key) if field_type is not None else key
                if isinstance(index, UniqueIndex):
                    if isinstance(ids, list):
                        if len(ids) != 1:
                            raise ValueError(f"Index {index_name}: {key!r} must hold one id")
                        ids = ids[0]
                    index.entries[value] = int(ids)
                else:
                    bucket = ids if isinstance(ids, list) else [ids]
                    index.entries[value] = [int(i) for i in bucket]
            indices[index.name] = index
        return cls(table, indices)

    @staticmethod
    def _new_index(table: TableDefinition, field_name: str) -> Index:
        if table.is_unique(field_name):
            return UniqueIndex(field_name)
        return BucketIndex(field_name)

    def has_index(self, field_name: str) -> bool:
        return index_name_for(field_name) in self._indices

    def get_index(self, field_name: str) -> Index | None:
        return self._indices.get(index_name_for(field_name))

    @property
    def index_names(self) -> list[str]:
        return list(self._indices)

    def indexes(self) -> list[Index]:
        return list(self._indices.values())

    def build(self, field_name: str, records: dict[int, dict[str, Any]]) -> Index:
        """Create the index for a field and fill it from existing records.

        Returns the existing index unchanged if there already is one.
        """
        existing = self.get_index(field_name)
        if existing is not None:
            return existing
        index = self._new_index(self.table, field_name)
        for record_id, fields in records.items():
            value = fields.get(field_name)
            if value is not None:
                index.insert(value, record_id)
        self._indices[index.name] = index
        return index

    def update_indices(self, fields: dict[str, Any], record_id: int) -> None:
        """Add a record's current field values to every existing index."""
        for field_name, value in fields.items():
            index = self._indices.get(index_name_for(field_name))
            if index is None or value is None:
                continue
            index.insert(value, record_id)

    def remove_from_indices(self, fields: dict[str, Any], record_id: int) -> None:
        """Strike a record from every index, given its stored field values."""
        for field_name, value in fields.items():
            index = self._indices.get(index_name_for(field_name))
            if index is None or value is None:
                continue
            index.remove(value, record_id)

    def find_conflict(
        self, fields: dict[str, Any], exclude_id: int | None = None
    ) -> tuple[str, Any] | None:
        """Return the first unique (field, value) already held by another record."""
        for field_def in self.table.unique_fields:
            index = self.get_index(field_def.name)
            value = fields.get(field_def.name)
            if index is None or value is None:
                continue
            for holder in index.lookup(value):
                if holder != exclude_id:
                    return field_def.name, value
        return None

    def lookup(self, field_name: str, value: Any) -> list[int]:
        index = self.get_index(field_name)
        if index is None:
            raise KeyError(f"No index for field '{field_name}'")
        return index.lookup(value)

    def verify(self, records: dict[int, dict[str, Any]]) -> list[str]:
        """Describe every disagreement between the indices and the records.

        Returns an empty list when every record is indexed under its current
        values and no index holds stale ids or empty buckets.
        """
        problems: list[str] = []
        for index_name, index in self._indices.items():
            field_name = index.field_name
            for record_id, fields in records.items():
                value = fields.get(field_name)
                if value is not None and record_id not in index.lookup(value):
                    problems.append(
                        f"{index_name}: record {record_id} missing under {value!r}"
                    )
            for value, ids in index.items():
                if not ids:
                    problems.append(f"{index_name}: empty bucket for {value!r}")
                if len(set(ids)) != len(ids):
                    problems.append(f"{index_name}: duplicate ids under {value!r}")
                for record_id in ids:
                    record = records.get(record_id)
                    if record is None:
                        problems.append(
                            f"{index_name}: {value!r} points at missing record {record_id}"
                        )
                    elif record.get(field_name) != value:
                        problems.append(
                            f"{index_name}: stale entry {value!r} for record {record_id}"
                        )
        return problems

    def to_document(self) -> dict[str, Any]:
        """Return the indices in their persisted JSON form."""
        return {name: index.to_json() for name, index in self._indices.items()}


__all__ = [
    "BucketIndex",
    "Index",
    "IndexMaintainer",
    "UniqueIndex",
]

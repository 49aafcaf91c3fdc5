"""Generic record store: CRUD, id assignment, constraints and indices for one table."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Generic, TypeVar

from record_tables.catalog import SchemaCatalog
from record_tables.document import RecordDocument
from record_tables.errors import (
    ConstraintViolation,
    MultipleMatches,
    NotFound,
    PersistenceFailure,
    UniqueConstraintViolation,
)
from record_tables.index import Index, IndexMaintainer
from record_tables.models import UNASSIGNED_ID, Entity
from record_tables.types import TableDefinition

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


class RecordStore(Generic[T]):
    """Stores the records of one entity type in ``<db_path>/<table>.json``.

    The document is loaded once, at construction, and rewritten in full
    after every mutating call. The table definition is resolved from the
    catalog once and reused for every operation.
    """

    def __init__(
        self,
        entity_class: type[T],
        table_name: str,
        db_path: Path | str,
        catalog: SchemaCatalog | Path | str | None = None,
    ) -> None:
        """Initialize a store.

        Args:
            entity_class: Entity type the records are converted to.
            table_name: Table whose definition and document the store uses.
            db_path: Directory holding the table documents; created if missing.
            catalog: Schema catalog, or a path to a definition source.
                Defaults to the definitions shipped with the package.

        Raises:
            ConfigurationError: If the table is not defined.
            PersistenceFailure: If an existing document cannot be read.
        """
        self.entity_class = entity_class
        self.table_name = table_name
        self.db_path = Path(db_path)
        self.db_path.mkdir(parents=True, exist_ok=True)

        if not isinstance(catalog, SchemaCatalog):
            catalog = SchemaCatalog(catalog)
        self.table: TableDefinition = catalog.load_definition(table_name)

        self.document = RecordDocument(self.db_path / f"{table_name}.json")
        data, raw_indices = self.document.load()
        try:
            self._records: dict[int, dict[str, Any]] = {}
            for record_id, fields in data.items():
                if not isinstance(fields, dict):
                    raise ValueError(f"Record {record_id!r} is not an object")
                self._records[int(record_id)] = dict(fields)
            self.indices = IndexMaintainer.from_document(self.table, raw_indices)
        except (ValueError, TypeError) as exc:
            raise PersistenceFailure(self.document.path, "Malformed document") from exc
        # Highest id this instance has assigned or loaded
        self._last_id = max(self._records, default=0)

        # Declared indices missing from the document are built from its records
        missing = [f for f in self.table.indexed_fields if not self.indices.has_index(f.name)]
        for field_def in missing:
            self.indices.build(field_def.name, self._records)
        if missing and self.document.exists:
            self._save()

    # ----------------------------------------------------------------- helpers

    def _save(self) -> None:
        data = {str(record_id): fields for record_id, fields in self._records.items()}
        self.document.save(data, self.indices.to_document())

    def _to_entity(self, fields: dict[str, Any]) -> T:
        return self.entity_class.from_fields(dict(fields))

    def _candidate_fields(self, record: T) -> dict[str, Any]:
        """Field map of an entity, without its id."""
        fields = dict(record.to_fields())
        fields.pop("id", None)
        return fields

    def next_id(self) -> int:
        """Return the id the next created record will get."""
        return max(self._last_id, max(self._records, default=0)) + 1

    def check_constraints(self, fields: dict[str, Any]) -> None:
        """Check not_null, type, length and range constraints of every field.

        Raises:
            ConstraintViolation: On the first field that breaks a constraint.
        """
        for field_def in self.table.fields:
            message = field_def.check(fields.get(field_def.name))
            if message is not None:
                raise ConstraintViolation(field_def.name, message)

    def validate_unique_constraints(
        self, fields: dict[str, Any], exclude_id: int | None = None
    ) -> None:
        """Raise UniqueConstraintViolation if a unique value is held by another record."""
        conflict = self.indices.find_conflict(fields, exclude_id)
        if conflict is not None:
            field_name, value = conflict
            raise UniqueConstraintViolation(field_name, value)

    def remove_from_indices(self, record_id: int) -> None:
        """Remove a stored record's entries from every index.

        Raises:
            NotFound: If no record is stored under the id.
        """
        stored = self._records.get(record_id)
        if stored is None:
            raise NotFound(record_id)
        self.indices.remove_from_indices(stored, record_id)

    # ------------------------------------------------------------------ public

    def create(self, record: T) -> T:
        """Store a new record and return it with its assigned id.

        Raises:
            ValueError: If the record already carries an id.
            ConstraintViolation: If a field breaks its constraints.
            UniqueConstraintViolation: If a unique value is already taken.
        """
        if record.id != UNASSIGNED_ID:
            raise ValueError(f"New records must have id {UNASSIGNED_ID}, got {record.id}")

        fields = self._candidate_fields(record)
        self.check_constraints(fields)
        self.validate_unique_constraints(fields)

        record_id = self.next_id()
        stored = {"id": record_id, **fields}
        self._last_id = record_id
        self._records[record_id] = stored
        self.indices.update_indices(stored, record_id)
        self._save()

        logger.debug("Created %s record %d", self.table_name, record_id)
        return self._to_entity(stored)

    def get_by_id(self, record_id: int) -> T:
        """Return a copy of the record stored under an id.

        Raises:
            NotFound: If there is no such record.
        """
        fields = self._records.get(record_id)
        if fields is None:
            raise NotFound(record_id)
        return self._to_entity(fields)

    def get_by_field(self, field_name: str, value: Any) -> list[T]:
        """Return every record whose field equals a value.

        Uses the field's index when there is one (ids whose record has gone
        missing are skipped); otherwise scans all records.
        """
        if value is not None and self.indices.has_index(field_name):
            results = []
            for record_id in self.indices.lookup(field_name, value):
                fields = self._records.get(record_id)
                if fields is None:
                    continue
                results.append(self._to_entity(fields))
            return results

        return [
            self._to_entity(fields)
            for fields in self._records.values()
            if fields.get(field_name) == value
        ]

    def get_unique_by_field(self, field_name: str, value: Any) -> T | None:
        """Return the single record matching a field value, or None.

        Raises:
            MultipleMatches: If more than one record matches.
        """
        matches = self.get_by_field(field_name, value)
        if not matches:
            return None
        if len(matches) > 1:
            raise MultipleMatches(field_name, value, len(matches))
        return matches[0]

    def get_all(self) -> list[T]:
        """Return every record, in storage order."""
        return [self._to_entity(fields) for fields in self._records.values()]

    def update(self, record: T) -> T:
        """Replace the stored fields of an existing record.

        Raises:
            NotFound: If no record has the record's id.
            ConstraintViolation: If a field breaks its constraints.
            UniqueConstraintViolation: If a unique value is held by another record.
        """
        record_id = record.id
        if record_id not in self._records:
            raise NotFound(record_id)

        fields = self._candidate_fields(record)
        self.check_constraints(fields)
        self.validate_unique_constraints(fields, exclude_id=record_id)

        self.remove_from_indices(record_id)
        stored = {"id": record_id, **fields}
        self._records[record_id] = stored
        self.indices.update_indices(stored, record_id)
        self._save()

        logger.debug("Updated %s record %d", self.table_name, record_id)
        return self._to_entity(stored)

    def delete(self, record_id: int) -> None:
        """Delete a record.

        Raises:
            NotFound: If there is no such record.
        """
        if record_id not in self._records:
            raise NotFound(record_id)

        self.remove_from_indices(record_id)
        del self._records[record_id]
        self._save()

        logger.debug("Deleted %s record %d", self.table_name, record_id)

    def ensure_index(self, field_name: str) -> Index:
        """Start maintaining an index for a field, filling it from current records."""
        if self.indices.has_index(field_name):
            return self.indices.get_index(field_name)  # type: ignore[return-value]
        index = self.indices.build(field_name, self._records)
        self._save()
        logger.debug("Built index %s on %s", index.name, self.table_name)
        return index

    def verify_indices(self) -> list[str]:
        """Describe any disagreement between the indices and the records."""
        return self.indices.verify(self._records)

    def count(self) -> int:
        return len(self._records)

    def __len__(self) -> int:
        return len(self._records)

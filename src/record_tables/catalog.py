"""Schema catalog: loads and caches table definitions from a definition source."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from record_tables.errors import ConfigurationError
from record_tables.parsing import DefinitionParser
from record_tables.types import (
    FieldConstraints,
    FieldDefinition,
    TableDefinition,
    TableRegistry,
    field_name_for,
    resolve_field_type,
)

logger = logging.getLogger(__name__)

# Definitions shipped with the package, used when no source is configured
DEFAULT_DEFINITIONS = Path(__file__).resolve().parent / "table_definitions.json"


def parse_json_definitions(content: str) -> TableRegistry:
    """Parse a JSON table listing into a TableRegistry.

    The listing has the shape ``{"tables": [{"name": ..., "definitions": {...},
    "indices": [...]}]}``. ``indices`` may be a list of field names or a
    mapping keyed by index name (``email_id_idx``).
    """
    root = json.loads(content)
    if not isinstance(root, dict) or not isinstance(root.get("tables"), list):
        raise ValueError("Definition listing must contain a 'tables' list")

    registry = TableRegistry()
    for entry in root["tables"]:
        registry.register(_table_from_json(entry))
    return registry


def _table_from_json(entry: dict[str, Any]) -> TableDefinition:
    if not isinstance(entry, dict):
        raise ValueError(f"Table entry must be an object, got {entry!r}")
    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError("Every table entry needs a 'name'")

    raw_indices = entry.get("indices") or []
    if not isinstance(raw_indices, (list, dict)):
        raise ValueError(f"Table '{name}': 'indices' must be a list or an object")
    for index in raw_indices:
        if not isinstance(index, str):
            raise ValueError(f"Table '{name}': index names must be strings, got {index!r}")
    indexed_names = {field_name_for(index) for index in raw_indices}

    definitions = entry.get("definitions") or {}
    if not isinstance(definitions, dict):
        raise ValueError(f"Table '{name}': 'definitions' must be an object")

    fields: list[FieldDefinition] = []
    for field_name, raw in definitions.items():
        raw = raw if raw is not None else {}
        if not isinstance(raw, dict):
            raise ValueError(f"Table '{name}': field '{field_name}' must be an object")
        type_name = raw.get("type", "string")
        if not isinstance(type_name, str):
            raise ValueError(f"Table '{name}': type of field '{field_name}' must be a string")
        indexed = raw.get("indexed", False)
        if not isinstance(indexed, bool):
            raise ValueError(f"Table '{name}': 'indexed' of field '{field_name}' must be true or false")
        try:
            fields.append(
                FieldDefinition(
                    name=field_name,
                    field_type=resolve_field_type(type_name),
                    constraints=FieldConstraints.from_dict(raw.get("constraints")),
                    indexed=indexed or field_name in indexed_names,
                )
            )
        except ValueError as exc:
            raise ValueError(f"Table '{name}', field '{field_name}': {exc}") from exc

    declared = {f.name for f in fields}
    unknown = indexed_names - declared
    if unknown:
        raise ValueError(f"Table '{name}': indices on undefined fields {sorted(unknown)}")

    return TableDefinition(name=name, fields=tuple(fields))


class SchemaCatalog:
    """Resolves table definitions from a JSON listing or a DSL file.

    The source is read at most once per catalog; later lookups are served
    from the cached registry.
    """

    def __init__(self, source: Path | str | None = None) -> None:
        self.source = Path(source) if source is not None else DEFAULT_DEFINITIONS
        self._registry: TableRegistry | None = None

    @property
    def registry(self) -> TableRegistry:
        if self._registry is None:
            self._registry = self._load_registry()
        return self._registry

    def _load_registry(self) -> TableRegistry:
        try:
            content = self.source.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(
                f"Could not load table definitions from {self.source}"
            ) from exc

        try:
            if self.source.suffix == ".json":
                registry = parse_json_definitions(content)
            else:
                registry = DefinitionParser().parse(content)
        except (ValueError, SyntaxError) as exc:
            raise ConfigurationError(f"Invalid table definitions in {self.source}: {exc}") from exc

        logger.info("Loaded %d table definitions from %s", len(registry), self.source)
        return registry

    def load_definition(self, table_name: str) -> TableDefinition:
        """Return the definition for a table.

        Raises:
            ConfigurationError: If the source is unreadable or has no such table.
        """
        table = self.registry.get(table_name)
        if table is None:
            raise ConfigurationError(f"Table definition not found: {table_name}")
        return table

    def list_tables(self) -> list[str]:
        """List the table names the source defines."""
        return self.registry.list_tables()

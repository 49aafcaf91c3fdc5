"""Dump utility for inspecting the table documents of a database directory."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from record_tables.catalog import SchemaCatalog
from record_tables.config import get_settings
from record_tables.errors import DatabaseError
from record_tables.models import GenericRecord
from record_tables.store import RecordStore


def open_table(data_dir: Path, table_name: str, catalog: SchemaCatalog) -> RecordStore[GenericRecord]:
    """Open a table generically, without a dedicated entity type."""
    return RecordStore(GenericRecord, table_name, data_dir, catalog)


def format_value(value: Any) -> str:
    """Format a field value for display."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return repr(value)
    return str(value)


def list_tables(data_dir: Path, catalog: SchemaCatalog) -> None:
    """List the defined tables that have a document in the directory."""
    print("Available tables:")
    print("-" * 40)

    for table_name in catalog.list_tables():
        if not (data_dir / f"{table_name}.json").exists():
            continue
        store = open_table(data_dir, table_name, catalog)
        print(f"  {table_name:<24} {store.count():>6} records")


def dump_table(store: RecordStore[GenericRecord], limit: int | None = None) -> None:
    """Print the records of a table, one per line."""
    records = store.get_all()
    if limit is not None:
        records = records[:limit]

    print(f"Table: {store.table_name} ({store.count()} records)")
    print("-" * 60)
    for record in records:
        fields = ", ".join(f"{k}={format_value(v)}" for k, v in record.values.items())
        print(f"[{record.id}] {fields}")


def dump_indices(store: RecordStore[GenericRecord]) -> None:
    """Print every index of a table."""
    for index in store.indices.indexes():
        kind = "unique" if index.unique else "bucket"
        print(f"\nIndex: {index.name} ({kind}, {len(index)} keys)")
        for value, ids in index.items():
            print(f"  {format_value(value):<32} -> {', '.join(str(i) for i in ids)}")


def dump_table_json(
    store: RecordStore[GenericRecord],
    limit: int | None = None,
    include_indices: bool = False,
) -> None:
    """Print the records (and optionally indices) of a table as JSON."""
    records = [r.to_fields() for r in store.get_all()]
    if limit is not None:
        records = records[:limit]
    output: dict[str, Any] = {"table": store.table_name, "records": records}
    if include_indices:
        output["indices"] = store.indices.to_document()
    print(json.dumps(output, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Dump record store documents to the console"
    )
    parser.add_argument(
        "data_dir",
        type=Path,
        help="Path to the database directory containing table documents",
    )
    parser.add_argument(
        "table",
        nargs="?",
        help="Name of the table to dump (omit to list tables)",
    )
    parser.add_argument(
        "--definitions",
        type=Path,
        default=None,
        help="Table definition source (default: configured definitions)",
    )
    parser.add_argument(
        "-i", "--indices",
        action="store_true",
        help="Also show index contents",
    )
    parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "-n", "--limit",
        type=int,
        default=None,
        help="Limit number of records to display",
    )

    args = parser.parse_args(argv)
    settings = get_settings().with_overrides(definitions_path=args.definitions)

    if not args.data_dir.exists():
        print(f"Error: Data directory not found: {args.data_dir}", file=sys.stderr)
        return 1

    catalog = SchemaCatalog(settings.definitions_path)
    try:
        if args.table is None:
            list_tables(args.data_dir, catalog)
            return 0

        if args.table not in catalog.list_tables():
            print(f"Error: Unknown table: {args.table}", file=sys.stderr)
            print("\nAvailable tables:")
            list_tables(args.data_dir, catalog)
            return 1

        store = open_table(args.data_dir, args.table, catalog)
    except DatabaseError as e:
        print(f"Error loading data: {e}", file=sys.stderr)
        return 1

    if args.json:
        dump_table_json(store, args.limit, args.indices)
    else:
        dump_table(store, args.limit)
        if args.indices:
            dump_indices(store)

    problems = store.verify_indices()
    for problem in problems:
        print(f"Index problem: {problem}", file=sys.stderr)
    return 1 if problems else 0


if __name__ == "__main__":
    sys.exit(main())

"""Tests for the generic record store."""

import json
import random
from pathlib import Path

import pytest

from record_tables import (
    BucketIndex,
    ConfigurationError,
    ConstraintViolation,
    GenericRecord,
    MultipleMatches,
    NotFound,
    PersistenceFailure,
    RecordStore,
    SchemaCatalog,
    UniqueConstraintViolation,
)


def open_items(db_path: Path, catalog: SchemaCatalog) -> RecordStore[GenericRecord]:
    return RecordStore(GenericRecord, "items", db_path, catalog)


def item(sku, tag=None, qty=None) -> GenericRecord:
    return GenericRecord(sku=sku, tag=tag, qty=qty)


class TestCreate:
    """Tests for creating records."""

    def test_create_assigns_ids(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that ids start at 1 and increase."""
        store = open_items(db_path, items_catalog)
        first = store.create(item("a"))
        second = store.create(item("b"))

        assert first.id == 1
        assert second.id == 2
        assert first["sku"] == "a"
        assert store.get_by_id(2) == second
        assert len(store) == 2

    def test_create_requires_unassigned_id(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test error when a new record already carries an id."""
        store = open_items(db_path, items_catalog)
        with pytest.raises(ValueError):
            store.create(GenericRecord(5, sku="a"))
        assert store.count() == 0

    def test_next_id_after_delete(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that ids continue from the largest stored id."""
        store = open_items(db_path, items_catalog)
        for sku in ("a", "b", "c"):
            store.create(item(sku))

        store.delete(2)
        assert store.create(item("d")).id == 4

    def test_ids_never_repeat(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that deleting the newest record does not free its id."""
        store = open_items(db_path, items_catalog)
        store.create(item("a"))
        store.create(item("b"))
        store.delete(2)
        assert store.create(item("c")).id == 3

    def test_reload_continues_from_largest_id(
        self, db_path: Path, items_catalog: SchemaCatalog
    ):
        """Test that a reopened store continues after the largest stored id."""
        store = open_items(db_path, items_catalog)
        store.create(item("a"))
        store.create(item("b"))
        store.create(item("c"))
        store.delete(2)
        assert open_items(db_path, items_catalog).next_id() == 4

    def test_unique_violation(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that a duplicate unique value is rejected and nothing changes."""
        store = open_items(db_path, items_catalog)
        store.create(item("a", "red"))

        with pytest.raises(UniqueConstraintViolation) as exc_info:
            store.create(item("a", "blue"))

        assert exc_info.value.field_name == "sku"
        assert exc_info.value.value == "a"
        assert str(exc_info.value) == "sku a already exists"
        assert store.count() == 1
        assert store.get_by_field("tag", "blue") == []
        assert store.verify_indices() == []

    def test_constraint_violations(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that not_null and range constraints are enforced."""
        store = open_items(db_path, items_catalog)

        with pytest.raises(ConstraintViolation) as exc_info:
            store.create(item(None))
        assert exc_info.value.field_name == "sku"

        with pytest.raises(ConstraintViolation, match="at most 10"):
            store.create(item("a", qty=11))

        with pytest.raises(ConstraintViolation, match="at least 0"):
            store.create(item("a", qty=-1))

        assert store.count() == 0
        assert store.create(item("a", qty=10)).id == 1


class TestRead:
    """Tests for reading records."""

    def test_get_by_id_missing(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test NotFound for an unknown id."""
        store = open_items(db_path, items_catalog)
        with pytest.raises(NotFound, match="Record with ID 3 not found"):
            store.get_by_id(3)

    def test_get_by_id_returns_copy(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that mutating a returned record does not change the store."""
        store = open_items(db_path, items_catalog)
        store.create(item("a", "red"))

        fetched = store.get_by_id(1)
        fetched.values["tag"] = "blue"
        assert store.get_by_id(1)["tag"] == "red"

    def test_get_by_field_indexed(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test lookups through a bucket index, in insertion order."""
        store = open_items(db_path, items_catalog)
        store.create(item("a", "red"))
        store.create(item("b", "blue"))
        store.create(item("c", "red"))

        assert [r.id for r in store.get_by_field("tag", "red")] == [1, 3]
        assert store.get_by_field("tag", "green") == []

    def test_get_by_field_scan(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test lookups on a field without an index."""
        store = open_items(db_path, items_catalog)
        store.create(item("a", qty=2))
        store.create(item("b", qty=3))
        store.create(item("c", qty=2))

        assert not store.indices.has_index("qty")
        assert [r["sku"] for r in store.get_by_field("qty", 2)] == ["a", "c"]

    def test_get_by_field_null(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that null values are found by scanning."""
        store = open_items(db_path, items_catalog)
        store.create(item("a"))
        store.create(item("b", "red"))

        assert [r["sku"] for r in store.get_by_field("tag", None)] == ["a"]

    def test_get_unique_by_field(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test single-result lookups."""
        store = open_items(db_path, items_catalog)
        store.create(item("a", "red"))
        store.create(item("b", "red"))

        assert store.get_unique_by_field("sku", "b").id == 2
        assert store.get_unique_by_field("sku", "z") is None
        with pytest.raises(MultipleMatches) as exc_info:
            store.get_unique_by_field("tag", "red")
        assert exc_info.value.count == 2

    def test_get_all_in_storage_order(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that get_all returns every record."""
        store = open_items(db_path, items_catalog)
        for sku in ("x", "y", "z"):
            store.create(item(sku))
        assert [r["sku"] for r in store.get_all()] == ["x", "y", "z"]


class TestUpdate:
    """Tests for updating records."""

    def test_update_moves_index_entries(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that old values leave the indices and new values enter them."""
        store = open_items(db_path, items_catalog)
        record = store.create(item("a", "red"))

        record.values["sku"] = "a2"
        record.values["tag"] = "blue"
        updated = store.update(record)

        assert updated["sku"] == "a2"
        assert store.get_by_field("sku", "a") == []
        assert store.get_by_field("tag", "red") == []
        assert [r.id for r in store.get_by_field("tag", "blue")] == [1]
        assert store.verify_indices() == []

    def test_update_keeps_own_unique_value(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that a record does not conflict with itself."""
        store = open_items(db_path, items_catalog)
        record = store.create(item("a", "red"))
        record.values["tag"] = "blue"
        assert store.update(record)["sku"] == "a"

    def test_update_unique_violation(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that taking another record's unique value is rejected."""
        store = open_items(db_path, items_catalog)
        store.create(item("a"))
        second = store.create(item("b"))

        second.values["sku"] = "a"
        with pytest.raises(UniqueConstraintViolation):
            store.update(second)
        assert store.get_by_id(2)["sku"] == "b"
        assert store.verify_indices() == []

    def test_update_missing(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test NotFound when updating an unknown record."""
        store = open_items(db_path, items_catalog)
        with pytest.raises(NotFound):
            store.update(GenericRecord(42, sku="z"))


class TestDelete:
    """Tests for deleting records."""

    def test_delete(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that a deleted record is gone from the records and indices."""
        store = open_items(db_path, items_catalog)
        store.create(item("a", "red"))
        store.create(item("b", "red"))

        store.delete(1)

        with pytest.raises(NotFound):
            store.get_by_id(1)
        assert [r.id for r in store.get_by_field("tag", "red")] == [2]
        assert store.get_unique_by_field("sku", "a") is None
        assert store.verify_indices() == []

    def test_delete_missing(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test NotFound when deleting an unknown record."""
        store = open_items(db_path, items_catalog)
        with pytest.raises(NotFound):
            store.delete(1)

    def test_remove_from_indices_missing(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test NotFound when striking an unknown record from the indices."""
        store = open_items(db_path, items_catalog)
        with pytest.raises(NotFound):
            store.remove_from_indices(99)


class TestPersistence:
    """Tests for the persisted document."""

    def test_reload(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that a new store sees the records and indices of an earlier one."""
        store = open_items(db_path, items_catalog)
        store.create(item("a", "red", 1))
        store.create(item("b", "red", 2))
        store.delete(1)

        reopened = open_items(db_path, items_catalog)
        assert reopened.count() == 1
        assert reopened.get_by_id(2)["qty"] == 2
        assert [r.id for r in reopened.get_by_field("tag", "red")] == [2]
        assert reopened.next_id() == 3
        assert reopened.verify_indices() == []

    def test_document_layout(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test the data and indices sections of the document."""
        store = open_items(db_path, items_catalog)
        store.create(item("a", "red"))

        raw = json.loads((db_path / "items.json").read_text(encoding="utf-8"))
        assert raw["data"] == {"1": {"id": 1, "sku": "a", "tag": "red", "qty": None}}
        assert raw["indices"] == {"sku_id_idx": {"a": 1}, "tag_id_idx": {"red": [1]}}

    def test_catalog_as_path(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that a definition path can be given instead of a catalog."""
        store = RecordStore(GenericRecord, "items", db_path, items_catalog.source)
        assert store.table.field_names == ["sku", "tag", "qty"]

    def test_unknown_table(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test ConfigurationError for a table that is not defined."""
        with pytest.raises(ConfigurationError):
            RecordStore(GenericRecord, "ghosts", db_path, items_catalog)

    def test_corrupt_document(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test PersistenceFailure when the document cannot be parsed."""
        db_path.mkdir(parents=True)
        (db_path / "items.json").write_text("{oops")
        with pytest.raises(PersistenceFailure):
            open_items(db_path, items_catalog)

    def test_malformed_records(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test PersistenceFailure when stored records cannot be decoded."""
        db_path.mkdir(parents=True)
        path = db_path / "items.json"

        path.write_text(json.dumps({"data": {"abc": {"id": 1, "sku": "a"}}, "indices": {}}))
        with pytest.raises(PersistenceFailure, match="Malformed document"):
            open_items(db_path, items_catalog)

        path.write_text(json.dumps({"data": {"1": "sku=a"}, "indices": {}}))
        with pytest.raises(PersistenceFailure, match="Malformed document"):
            open_items(db_path, items_catalog)

    def test_malformed_indices(self, tmp_path: Path, db_path: Path):
        """Test PersistenceFailure when stored indices cannot be decoded."""
        source = tmp_path / "counts.tdl"
        source.write_text("table counts { n: int indexed, code: string unique indexed }")
        catalog = SchemaCatalog(source)
        db_path.mkdir(parents=True)
        path = db_path / "counts.json"
        record = {"1": {"id": 1, "n": 1, "code": "a"}}

        for indices in (
            {"n_id_idx": {"x": [1]}, "code_id_idx": {"a": 1}},
            {"n_id_idx": [1], "code_id_idx": {"a": 1}},
            {"n_id_idx": {"1": [1]}, "code_id_idx": {"a": []}},
            {"n_id_idx": {"1": ["one"]}, "code_id_idx": {"a": 1}},
        ):
            path.write_text(json.dumps({"data": record, "indices": indices}))
            with pytest.raises(PersistenceFailure) as exc_info:
                RecordStore(GenericRecord, "counts", db_path, catalog)
            assert exc_info.value.path == path

    def test_save_failure(self, tmp_path: Path, db_path: Path, items_catalog: SchemaCatalog):
        """Test PersistenceFailure when the document cannot be written."""
        store = open_items(db_path, items_catalog)
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        store.document.path = blocker / "items.json"
        with pytest.raises(PersistenceFailure):
            store.create(item("a"))

    def test_missing_indices_are_built(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that declared indices absent from a document are built on load."""
        db_path.mkdir(parents=True)
        path = db_path / "items.json"
        path.write_text(
            json.dumps(
                {
                    "data": {
                        "1": {"id": 1, "sku": "a", "tag": "red", "qty": 1},
                        "2": {"id": 2, "sku": "b", "tag": "red", "qty": 2},
                    },
                    "indices": {},
                }
            )
        )

        store = open_items(db_path, items_catalog)

        assert [r.id for r in store.get_by_field("tag", "red")] == [1, 2]
        raw = json.loads(path.read_text())
        assert raw["indices"]["tag_id_idx"] == {"red": [1, 2]}
        assert raw["indices"]["sku_id_idx"] == {"a": 1, "b": 2}

    def test_dangling_index_ids_are_skipped(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that index lookups ignore ids with no stored record."""
        db_path.mkdir(parents=True)
        (db_path / "items.json").write_text(
            json.dumps(
                {
                    "data": {"1": {"id": 1, "sku": "a", "tag": "red", "qty": None}},
                    "indices": {
                        "sku_id_idx": {"a": 1},
                        "tag_id_idx": {"red": [1, 99]},
                    },
                }
            )
        )

        store = open_items(db_path, items_catalog)

        assert [r.id for r in store.get_by_field("tag", "red")] == [1]
        assert any("missing record 99" in p for p in store.verify_indices())


class TestEnsureIndex:
    """Tests for indices created on demand."""

    def test_ensure_index(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test building an index on an unindexed field and persisting it."""
        store = open_items(db_path, items_catalog)
        store.create(item("a", qty=2))
        store.create(item("b", qty=3))

        index = store.ensure_index("qty")

        assert isinstance(index, BucketIndex)
        assert index.lookup(2) == [1]
        assert store.ensure_index("qty") is index

        store.create(item("c", qty=2))
        assert [r["sku"] for r in store.get_by_field("qty", 2)] == ["a", "c"]

        reopened = open_items(db_path, items_catalog)
        assert reopened.indices.has_index("qty")
        assert reopened.indices.lookup("qty", 2) == [1, 3]
        assert reopened.verify_indices() == []


class TestConsistency:
    """Tests for index consistency across mixed operations."""

    def test_random_operations(self, db_path: Path, items_catalog: SchemaCatalog):
        """Test that indices match the records after every operation."""
        rng = random.Random(7)
        store = open_items(db_path, items_catalog)
        skus = [f"s{i}" for i in range(8)]
        tags = ["red", "blue", None]
        last_id = 0

        for _ in range(120):
            op = rng.choice(["create", "create", "update", "delete"])
            try:
                if op == "create":
                    created = store.create(
                        item(rng.choice(skus), rng.choice(tags), rng.randint(0, 10))
                    )
                    assert created.id > last_id
                    last_id = created.id
                elif op == "update" and store.count():
                    record = rng.choice(store.get_all())
                    record.values["sku"] = rng.choice(skus)
                    record.values["tag"] = rng.choice(tags)
                    store.update(record)
                elif op == "delete" and store.count():
                    store.delete(rng.choice(store.get_all()).id)
            except UniqueConstraintViolation:
                pass

            assert store.verify_indices() == []
            for tag in ("red", "blue"):
                scanned = [r.id for r in store.get_all() if r["tag"] == tag]
                assert sorted(r.id for r in store.get_by_field("tag", tag)) == sorted(scanned)

        ids = [r.id for r in store.get_all()]
        assert len(ids) == len(set(ids))
        assert all(i > 0 for i in ids)
        assert open_items(db_path, items_catalog).verify_indices() == []

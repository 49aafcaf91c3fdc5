"""Shared fixtures for the record store tests."""

from pathlib import Path

import pytest

from record_tables import (
    CourseEnrollmentService,
    CourseService,
    SchemaCatalog,
    StudentService,
)

ITEMS_SCHEMA = """
table items {
    sku: string unique not_null indexed,
    tag: string indexed,
    qty: int min=0 max=10,
}
"""


@pytest.fixture
def catalog() -> SchemaCatalog:
    return SchemaCatalog()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "db"


@pytest.fixture
def students(db_path: Path, catalog: SchemaCatalog) -> StudentService:
    return StudentService(db_path, catalog)


@pytest.fixture
def courses(db_path: Path, catalog: SchemaCatalog) -> CourseService:
    return CourseService(db_path, catalog)


@pytest.fixture
def enrollments(db_path: Path, catalog: SchemaCatalog) -> CourseEnrollmentService:
    return CourseEnrollmentService(db_path, catalog)


@pytest.fixture
def items_catalog(tmp_path: Path) -> SchemaCatalog:
    """Catalog with a single generic ``items`` table."""
    source = tmp_path / "items.tdl"
    source.write_text(ITEMS_SCHEMA)
    return SchemaCatalog(source)

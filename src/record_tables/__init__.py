"""Record Tables - a schema-driven, file-persisted record store."""

from record_tables.analytics import StudentAnalytics
from record_tables.catalog import SchemaCatalog
from record_tables.errors import (
    ConfigurationError,
    ConstraintViolation,
    DatabaseError,
    EnrollmentError,
    MultipleMatches,
    NotFound,
    PersistenceFailure,
    UniqueConstraintViolation,
)
from record_tables.index import BucketIndex, IndexMaintainer, UniqueIndex
from record_tables.models import (
    UNASSIGNED_ID,
    Course,
    CourseEnrollment,
    Entity,
    GenericRecord,
    Student,
)
from record_tables.services import CourseEnrollmentService, CourseService, StudentService
from record_tables.store import RecordStore
from record_tables.types import (
    FieldConstraints,
    FieldDefinition,
    FieldType,
    TableDefinition,
    TableRegistry,
)

__all__ = [
    # Main API
    "RecordStore",
    "SchemaCatalog",
    # Services
    "StudentService",
    "CourseService",
    "CourseEnrollmentService",
    "StudentAnalytics",
    # Entities
    "Entity",
    "GenericRecord",
    "Student",
    "Course",
    "CourseEnrollment",
    "UNASSIGNED_ID",
    # Schema
    "FieldConstraints",
    "FieldDefinition",
    "FieldType",
    "TableDefinition",
    "TableRegistry",
    # Indices
    "IndexMaintainer",
    "UniqueIndex",
    "BucketIndex",
    # Errors
    "DatabaseError",
    "ConfigurationError",
    "ConstraintViolation",
    "UniqueConstraintViolation",
    "NotFound",
    "MultipleMatches",
    "PersistenceFailure",
    "EnrollmentError",
]

__version__ = "0.1.0"

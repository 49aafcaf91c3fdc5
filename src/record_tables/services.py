"""Entity services: record stores bound to one table, with typed lookups."""

from __future__ import annotations

from pathlib import Path

from record_tables.catalog import SchemaCatalog
from record_tables.errors import EnrollmentError
from record_tables.models import UNASSIGNED_ID, Course, CourseEnrollment, Student
from record_tables.store import RecordStore

CatalogArg = SchemaCatalog | Path | str | None


class StudentService(RecordStore[Student]):
    """Students, looked up by email, phone or name."""

    TABLE_NAME = "students"

    def __init__(self, db_path: Path | str, catalog: CatalogArg = None) -> None:
        super().__init__(Student, self.TABLE_NAME, db_path, catalog)

    def get_by_email(self, email: str) -> Student | None:
        """Return the student with an email, or None.

        Raises:
            MultipleMatches: If several students share the email.
        """
        return self.get_unique_by_field("email", email)

    def get_by_phone(self, phone: str) -> Student | None:
        """Return the student with a phone number, or None.

        Raises:
            MultipleMatches: If several students share the number.
        """
        return self.get_unique_by_field("phone", phone)

    def get_by_name(self, name: str) -> list[Student]:
        return self.get_by_field("name", name)


class CourseService(RecordStore[Course]):
    """Courses, looked up by name."""

    TABLE_NAME = "courses"

    def __init__(self, db_path: Path | str, catalog: CatalogArg = None) -> None:
        super().__init__(Course, self.TABLE_NAME, db_path, catalog)

    def get_by_name(self, name: str) -> Course | None:
        """Return the course with a name, or None.

        Raises:
            MultipleMatches: If several courses share the name.
        """
        return self.get_unique_by_field("name", name)


class CourseEnrollmentService(RecordStore[CourseEnrollment]):
    """Enrollments of students in courses, with grades."""

    TABLE_NAME = "course_enrollments"

    def __init__(self, db_path: Path | str, catalog: CatalogArg = None) -> None:
        super().__init__(CourseEnrollment, self.TABLE_NAME, db_path, catalog)

    def get_by_student(self, student_id: int) -> list[CourseEnrollment]:
        return self.get_by_field("student_id", student_id)

    def get_by_course(self, course_id: int) -> list[CourseEnrollment]:
        return self.get_by_field("course_id", course_id)

    def get_enrollment(self, student_id: int, course_id: int) -> CourseEnrollment | None:
        """Return a student's enrollment in a course, or None."""
        for enrollment in self.get_by_student(student_id):
            if enrollment.course_id == course_id:
                return enrollment
        return None

    def enroll_student(self, student_id: int, course_id: int) -> CourseEnrollment:
        """Enroll a student in a course with grade 0.

        Raises:
            EnrollmentError: If the student is already enrolled in the course.
        """
        # The schema has no composite unique constraint, so check here
        if self.get_enrollment(student_id, course_id) is not None:
            raise EnrollmentError("Student is already enrolled in this course")
        return self.create(
            CourseEnrollment(id=UNASSIGNED_ID, student_id=student_id, course_id=course_id, grade=0)
        )

    def set_grade(self, student_id: int, course_id: int, grade: int) -> CourseEnrollment:
        """Set the grade of an existing enrollment.

        Raises:
            EnrollmentError: If the student is not enrolled in the course.
            ConstraintViolation: If the grade is out of range.
        """
        enrollment = self.get_enrollment(student_id, course_id)
        if enrollment is None:
            raise EnrollmentError(
                "Student is not enrolled in this course, enroll first using 'enrollment:add'"
            )
        enrollment.grade = grade
        return self.update(enrollment)

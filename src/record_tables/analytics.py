"""Read-only aggregations over students, courses and enrollments.

Built only on the public service contract; never touches indices or
documents directly.
"""

from __future__ import annotations

from record_tables.errors import DatabaseError, MultipleMatches, NotFound
from record_tables.models import Course, Student
from record_tables.services import CourseEnrollmentService, CourseService, StudentService

# Lower bound of each letter grade, best first
GRADE_THRESHOLDS = (
    (4.5, "A"),
    (3.5, "B"),
    (2.5, "C"),
    (1.5, "D"),
    (0.5, "E"),
)


def grade_letter(grade: float) -> str:
    """Map a numeric (average) grade to a letter from A to F."""
    for threshold, letter in GRADE_THRESHOLDS:
        if grade >= threshold:
            return letter
    return "F"


def _check_key(name_or_id: object, what: str) -> None:
    if isinstance(name_or_id, bool) or not isinstance(name_or_id, (str, int)):
        raise TypeError(f"{what} must be either a name (str) or an id (int)")


class StudentAnalytics:
    """Aggregations combining the three entity services."""

    def __init__(
        self,
        student_service: StudentService,
        course_service: CourseService,
        enrollment_service: CourseEnrollmentService,
    ) -> None:
        self.student_service = student_service
        self.course_service = course_service
        self.enrollment_service = enrollment_service

    def _find_student(self, name_or_id: str | int) -> Student | None:
        _check_key(name_or_id, "student_name_or_id")
        if isinstance(name_or_id, str):
            students = self.student_service.get_by_name(name_or_id)
            if not students:
                return None
            if len(students) > 1:
                raise MultipleMatches("name", name_or_id, len(students))
            return students[0]
        try:
            return self.student_service.get_by_id(name_or_id)
        except NotFound:
            return None

    def _find_course(self, name_or_id: str | int) -> Course | None:
        _check_key(name_or_id, "course_name_or_id")
        if isinstance(name_or_id, str):
            return self.course_service.get_by_name(name_or_id)
        try:
            return self.course_service.get_by_id(name_or_id)
        except NotFound:
            return None

    def student_average_grade(self, name_or_id: str | int) -> tuple[Student, float] | None:
        """Average grade over a student's own enrollments, rounded to 2 decimals.

        A student without enrollments averages 0.0. Returns None if the
        student does not exist.

        Raises:
            MultipleMatches: If a name matches several students.
            TypeError: If the key is neither a name nor an id.
        """
        student = self._find_student(name_or_id)
        if student is None:
            return None

        enrollments = self.enrollment_service.get_by_student(student.id)
        if not enrollments:
            return student, 0.0

        average = sum(e.grade for e in enrollments) / len(enrollments)
        return student, round(average, 2)

    def course_enrollment_count(self, name_or_id: str | int) -> tuple[Course, int] | None:
        """Number of students enrolled in a course, or None if it cannot be resolved."""
        try:
            course = self._find_course(name_or_id)
        except DatabaseError:
            return None
        if course is None:
            return None
        return course, len(self.enrollment_service.get_by_course(course.id))

    def course_with_most_students(self) -> tuple[Course, int] | None:
        """The course with the most enrollments; None if no course has any."""
        best: Course | None = None
        best_count = 0
        for course in self.course_service.get_all():
            count = len(self.enrollment_service.get_by_course(course.id))
            if count > best_count:
                best, best_count = course, count
        if best is None:
            return None
        return best, best_count

    def students_in_course(self, name_or_id: str | int) -> tuple[Course, list[Student]] | None:
        """Students enrolled in a course, sorted by name.

        Enrollments pointing at students that no longer exist are skipped.
        """
        course = self._find_course(name_or_id)
        if course is None:
            return None

        students = []
        for enrollment in self.enrollment_service.get_by_course(course.id):
            try:
                students.append(self.student_service.get_by_id(enrollment.student_id))
            except NotFound:
                continue
        students.sort(key=lambda s: s.name)
        return course, students

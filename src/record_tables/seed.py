"""Populate a database with demo students, courses and random enrollments."""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from record_tables.errors import DatabaseError
from record_tables.models import UNASSIGNED_ID, Course, CourseEnrollment, Student
from record_tables.services import CourseEnrollmentService, CourseService, StudentService

DEMO_STUDENTS = [
    ("Ole Hansen", "olehans@stud.ntnu.no", "91234567"),
    ("Ole Hansen", "olehans2@stud.ntnu.no", "91234566"),
    ("Ingrid Larsen", "ingridl@stud.ntnu.no", "92345678"),
    ("Magnus Andreassen", "magnusa@stud.ntnu.no", "93456789"),
    ("Sofia Nilsen", "sofian@stud.ntnu.no", "94567890"),
    ("Erik Johansen", "erikj@stud.ntnu.no", "95678901"),
]

DEMO_COURSES = [
    "IDATA2002 - Databaser",
    "IDATA2003 - Programmering 2",
    "IMAA2024 - Matematikk 2",
]

# Probability that a student is not enrolled in a given course
SKIP_PROBABILITY = 0.3


@dataclass
class SeedResult:
    students: list[Student] = field(default_factory=list)
    courses: list[Course] = field(default_factory=list)
    enrollments: list[CourseEnrollment] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def populate(
    students: StudentService,
    courses: CourseService,
    enrollments: CourseEnrollmentService,
    rng: random.Random | None = None,
    verbose: bool = True,
) -> SeedResult:
    """Create the demo records, reporting failures per record instead of aborting.

    Running it twice against the same database reports unique-constraint
    errors for the students, since their emails and phones are taken.
    """
    rng = rng or random.Random()
    result = SeedResult()

    def report(message: str) -> None:
        if verbose:
            print(message)

    for name, email, phone in DEMO_STUDENTS:
        try:
            created = students.create(Student(UNASSIGNED_ID, name, email, phone))
        except DatabaseError as e:
            result.errors.append(f"Error creating student {name}: {e}")
            report(result.errors[-1])
            continue
        result.students.append(created)
        report(f"Created student: {created}")

    for name in DEMO_COURSES:
        try:
            created_course = courses.create(Course(UNASSIGNED_ID, name))
        except DatabaseError as e:
            result.errors.append(f"Error creating course {name}: {e}")
            report(result.errors[-1])
            continue
        result.courses.append(created_course)
        report(f"Created course: {created_course}")

    for student in result.students:
        for course in result.courses:
            if rng.random() < SKIP_PROBABILITY:
                continue
            grade = rng.randint(0, 5)
            try:
                enrollment = enrollments.create(
                    CourseEnrollment(UNASSIGNED_ID, student.id, course.id, grade)
                )
            except DatabaseError as e:
                result.errors.append(f"Error creating enrollment: {e}")
                report(result.errors[-1])
                continue
            result.enrollments.append(enrollment)
            report(
                f"Created enrollment: Student {student.name} in {course.name} "
                f"with grade {grade}"
            )

    return result

"""Interactive REPL and one-shot CLI for the student manager."""

from __future__ import annotations

import argparse
import logging
import readline  # noqa: F401 - enables line editing in input()
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from record_tables.analytics import StudentAnalytics, grade_letter
from record_tables.catalog import SchemaCatalog
from record_tables.config import get_settings
from record_tables.errors import DatabaseError
from record_tables.models import UNASSIGNED_ID, Course, Student
from record_tables.seed import populate
from record_tables.services import CourseEnrollmentService, CourseService, StudentService


class Session:
    """The services and analytics a command operates on."""

    def __init__(self, db_path: Path, catalog: SchemaCatalog) -> None:
        self.db_path = db_path
        self.students = StudentService(db_path, catalog)
        self.courses = CourseService(db_path, catalog)
        self.enrollments = CourseEnrollmentService(db_path, catalog)
        self.analytics = StudentAnalytics(self.students, self.courses, self.enrollments)


# A handler returns False to end the session
Handler = Callable[[Session, list[str]], Optional[bool]]


@dataclass
class Command:
    name: str
    arguments: str
    description: str
    handler: Handler
    min_args: int = 0

    @property
    def usage(self) -> str:
        return f"{self.name} {self.arguments}".rstrip()


class CommandRegistry:
    """Maps command names (case-insensitive) to commands."""

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}

    def register(self, command: Command) -> None:
        key = command.name.lower()
        if key in self._commands:
            raise ValueError(f"Command '{command.name}' is already registered")
        self._commands[key] = command

    def get(self, name: str) -> Command | None:
        return self._commands.get(name.lower())

    def commands(self) -> list[Command]:
        return sorted(self._commands.values(), key=lambda c: c.name)

    def names(self) -> list[str]:
        return [c.name for c in self.commands()]


def _parse_int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{what} must be an integer, got '{value}'") from None


def _parse_key(value: str) -> str | int:
    """Treat all-digit arguments as ids and anything else as a name."""
    return int(value) if value.isdigit() else value


# ------------------------------------------------------------------ handlers

def _student_list(session: Session, args: list[str]) -> None:
    students = session.students.get_all()
    if not students:
        print("No students found.")
        return
    for s in students:
        print(f"ID: {s.id}, Name: {s.name}, Email: {s.email}, Phone: {s.phone}")


def _student_add(session: Session, args: list[str]) -> None:
    name, email, phone = args[:3]
    created = session.students.create(Student(UNASSIGNED_ID, name, email, phone))
    print(f"Created student: {created}")


def _course_list(session: Session, args: list[str]) -> None:
    courses = session.courses.get_all()
    if not courses:
        print("No courses found.")
        return
    for c in courses:
        print(f"ID: {c.id}, Name: {c.name}")


def _course_add(session: Session, args: list[str]) -> None:
    created = session.courses.create(Course(UNASSIGNED_ID, " ".join(args)))
    print(f"Created course: {created}")


def _enrollment_list(session: Session, args: list[str]) -> None:
    if args:
        student_id = _parse_int(args[0], "student_id")
        enrollments = session.enrollments.get_by_student(student_id)
    else:
        enrollments = session.enrollments.get_all()

    if not enrollments:
        print("No enrollments found.")
        return
    for e in enrollments:
        student = session.students.get_by_id(e.student_id)
        course = session.courses.get_by_id(e.course_id)
        print(
            f"ID: {e.id}, Student: {student.name} (ID: {student.id}), "
            f"Course: {course.name} (ID: {course.id}), Grade: {e.grade}"
        )


def _enrollment_add(session: Session, args: list[str]) -> None:
    student_id = _parse_int(args[0], "student_id")
    course_id = _parse_int(args[1], "course_id")
    # Both must exist; NotFound propagates to the dispatcher
    session.students.get_by_id(student_id)
    session.courses.get_by_id(course_id)
    session.enrollments.enroll_student(student_id, course_id)
    print("Enrolled student in course")


def _enrollment_get(session: Session, args: list[str]) -> None:
    enrollment = session.enrollments.get_by_id(_parse_int(args[0], "enrollment_id"))
    student = session.students.get_by_id(enrollment.student_id)
    course = session.courses.get_by_id(enrollment.course_id)
    print(f"Enrollment ID: {enrollment.id}")
    print(f"Student ID: {student.id}")
    print(f"Student Name: {student.name}")
    print(f"Course ID: {course.id}")
    print(f"Course Name: {course.name}")
    print(f"Grade: {enrollment.grade}")


def _grade_set(session: Session, args: list[str]) -> None:
    student_id = _parse_int(args[0], "student_id")
    course_id = _parse_int(args[1], "course_id")
    grade = _parse_int(args[2], "grade")
    session.enrollments.set_grade(student_id, course_id, grade)
    print("Set grade for student in course")


def _report_average(session: Session, args: list[str]) -> None:
    result = session.analytics.student_average_grade(_parse_key(" ".join(args)))
    if result is None:
        print("Student not found")
        return
    student, average = result
    print(f"Student: {student.name} (ID: {student.id})")
    print(f"Email: {student.email}")
    print(f"Average grade: {grade_letter(average)} ({average:.2f})")


def _report_course_count(session: Session, args: list[str]) -> None:
    result = session.analytics.course_enrollment_count(_parse_key(" ".join(args)))
    if result is None:
        print("Course not found")
        return
    course, count = result
    print(f"Course: {course.name} (ID: {course.id})")
    print(f"Number of enrolled students: {count}")


def _report_most_students(session: Session, args: list[str]) -> None:
    result = session.analytics.course_with_most_students()
    if result is None:
        print("No courses with enrolled students")
        return
    course, count = result
    print(f"Course with most students: {course.name} (ID: {course.id})")
    print(f"Number of enrolled students: {count}")


def _report_students_in_course(session: Session, args: list[str]) -> None:
    result = session.analytics.students_in_course(_parse_key(" ".join(args)))
    if result is None:
        print("Course not found")
        return
    course, students = result
    print(f"Students enrolled in {course.name}:")
    for s in students:
        print(f"- {s.name} ({s.email})")


def _seed(session: Session, args: list[str]) -> None:
    result = populate(session.students, session.courses, session.enrollments)
    print("Database population completed")
    print(f"Created {len(result.students)} students")
    print(f"Created {len(result.courses)} courses")
    print(f"Created {len(result.enrollments)} enrollments")


def _exit(session: Session, args: list[str]) -> bool:
    return False


def build_registry() -> CommandRegistry:
    """Create a registry holding every built-in command."""
    registry = CommandRegistry()

    def _help(session: Session, args: list[str]) -> None:
        if args:
            command = registry.get(args[0])
            if command is None:
                print(f"Unknown command: {args[0]}")
            else:
                print(f"{command.usage} - {command.description}")
            return
        print("Available commands:")
        for command in registry.commands():
            print(f"  {command.usage:<48} {command.description}")

    for command in [
        Command("help", "[command]", "Show available commands", _help),
        Command("exit", "", "Leave the REPL", _exit),
        Command("student:list", "", "List all students", _student_list),
        Command("student:add", "<name> <email> <phone>", "Add a new student", _student_add, 3),
        Command("course:list", "", "List all courses", _course_list),
        Command("course:add", "<name>", "Add a new course", _course_add, 1),
        Command("enrollment:list", "[student_id]", "List enrollments", _enrollment_list),
        Command("enrollment:add", "<student_id> <course_id>", "Enroll a student in a course", _enrollment_add, 2),
        Command("enrollment:get", "<enrollment_id>", "Get enrollment details", _enrollment_get, 1),
        Command("course:grade:set", "<student_id> <course_id> <grade>", "Set a grade for a student in a course", _grade_set, 3),
        Command("report:average", "<student name or id>", "Average grade of a student", _report_average, 1),
        Command("report:course-count", "<course name or id>", "Number of students in a course", _report_course_count, 1),
        Command("report:most-students", "", "Course with the most students", _report_most_students),
        Command("report:students", "<course name or id>", "Students enrolled in a course", _report_students_in_course, 1),
        Command("seed", "", "Populate the database with demo data", _seed),
    ]:
        registry.register(command)
    return registry


def run_command(session: Session, registry: CommandRegistry, line: str) -> bool:
    """Execute one input line. Returns False when the session should end."""
    try:
        parts = shlex.split(line)
    except ValueError as e:
        print(f"Error: {e}")
        return True
    if not parts:
        return True

    command = registry.get(parts[0])
    if command is None:
        print("Unknown command. Type 'help' for available commands.")
        return True

    args = parts[1:]
    if len(args) < command.min_args:
        print(f"Error: usage: {command.usage}")
        return True

    try:
        result = command.handler(session, args)
    except (DatabaseError, ValueError) as e:
        print(f"Error: {e}")
        return True
    return result is not False


def run_repl(session: Session, registry: CommandRegistry) -> int:
    """Run the interactive REPL."""
    print("Welcome to the Student Manager REPL!")
    print(f"Database: {session.db_path}")
    print("Type 'help' for available commands, 'exit' to quit.\n")

    while True:
        try:
            line = input("> ").strip()
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print()
            continue

        if not line:
            continue
        if not run_command(session, registry, line):
            break

    print("Goodbye!")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    settings = get_settings()
    arg_parser = argparse.ArgumentParser(
        description="Student manager over a schema-driven record store"
    )
    arg_parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help=f"Directory holding the table documents (default: {settings.db_path})",
    )
    arg_parser.add_argument(
        "--definitions",
        type=Path,
        default=None,
        help="Table definition source, .json or DSL (default: packaged definitions)",
    )
    arg_parser.add_argument(
        "-c", "--command",
        type=str,
        help="Execute a single command and exit",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log store activity to stderr",
    )

    args = arg_parser.parse_args(argv)
    settings = settings.with_overrides(args.db, args.definitions)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        session = Session(settings.db_path, SchemaCatalog(settings.definitions_path))
    except DatabaseError as e:
        print(f"Error loading database: {e}", file=sys.stderr)
        return 1

    registry = build_registry()
    if args.command:
        run_command(session, registry, args.command)
        return 0

    return run_repl(session, registry)


if __name__ == "__main__":
    sys.exit(main())

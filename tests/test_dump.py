"""Tests for the dump utility."""

import json
from pathlib import Path

from record_tables import UNASSIGNED_ID, Course, CourseService, Student, StudentService
from record_tables.dump import format_value, main


def populate(db: Path) -> None:
    students = StudentService(db)
    students.create(Student(UNASSIGNED_ID, "Ole", "ole@x.no", "11111111"))
    students.create(Student(UNASSIGNED_ID, "Kari", "kari@x.no", "22222222"))
    CourseService(db).create(Course(UNASSIGNED_ID, "Math"))


class TestFormatValue:
    """Tests for format_value."""

    def test_values(self):
        """Test display of each kind of value."""
        assert format_value(None) == "NULL"
        assert format_value(True) == "true"
        assert format_value("Ole") == "'Ole'"
        assert format_value(4) == "4"


class TestDump:
    """Tests for the dump entry point."""

    def test_list_tables(self, tmp_path: Path, capsys):
        """Test listing the tables that have documents."""
        db = tmp_path / "db"
        populate(db)

        assert main([str(db)]) == 0

        out = capsys.readouterr().out
        assert "students" in out
        assert "courses" in out
        assert "course_enrollments" not in out

    def test_dump_table(self, tmp_path: Path, capsys):
        """Test printing the records and indices of a table."""
        db = tmp_path / "db"
        populate(db)

        assert main([str(db), "students", "--indices"]) == 0

        out = capsys.readouterr().out
        assert "Table: students (2 records)" in out
        assert "[1] name='Ole', email='ole@x.no', phone='11111111'" in out
        assert "Index: email_id_idx (unique, 2 keys)" in out
        assert "Index: name_id_idx (bucket, 2 keys)" in out

    def test_dump_limit(self, tmp_path: Path, capsys):
        """Test limiting the number of records shown."""
        db = tmp_path / "db"
        populate(db)

        assert main([str(db), "students", "-n", "1"]) == 0

        out = capsys.readouterr().out
        assert "[1]" in out
        assert "[2]" not in out

    def test_dump_json(self, tmp_path: Path, capsys):
        """Test JSON output."""
        db = tmp_path / "db"
        populate(db)

        assert main([str(db), "courses", "--json", "--indices"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["table"] == "courses"
        assert output["records"] == [{"id": 1, "name": "Math"}]
        assert output["indices"] == {"name_id_idx": {"Math": [1]}}

    def test_missing_directory(self, tmp_path: Path, capsys):
        """Test error when the directory does not exist."""
        assert main([str(tmp_path / "missing")]) == 1
        assert "Data directory not found" in capsys.readouterr().err

    def test_unknown_table(self, tmp_path: Path, capsys):
        """Test error when the table is not defined."""
        db = tmp_path / "db"
        populate(db)

        assert main([str(db), "lecturers"]) == 1
        assert "Unknown table: lecturers" in capsys.readouterr().err

    def test_reports_index_problems(self, tmp_path: Path, capsys):
        """Test that disagreeing indices are reported and fail the dump."""
        db = tmp_path / "db"
        populate(db)
        path = db / "courses.json"
        document = json.loads(path.read_text())
        document["indices"]["name_id_idx"]["Math"] = [1, 5]
        path.write_text(json.dumps(document))

        assert main([str(db), "courses"]) == 1
        assert "points at missing record 5" in capsys.readouterr().err

"""Tests for timetable output formatters."""

from __future__ import annotations

import csv
import json
from io import StringIO

import pytest

from timetabler.data.models import ExamType, WeekDay
from timetabler.output.formatters import (
    ConsoleFormatter,
    CSVFormatter,
    EntityViewFormatter,
    format_class_view,
    format_console,
    format_csv,
    format_teacher_view,
    save_csv,
    save_json,
)
from timetabler.output.schema import Timetable, TimetableSlot


@pytest.fixture
def timetable() -> Timetable:
    slots = [
        TimetableSlot(
            slot_id="S0002", class_id="f1e", subject_id="mat", teacher_id="t2",
            day=WeekDay.TUESDAY, period_id="p1", start_time="08:00", end_time="08:40",
            class_name="Form 1 East", subject_name="Mathematics", teacher_name="Peter Otieno",
        ),
        TimetableSlot(
            slot_id="S0001", class_id="f1e", subject_id="eng", teacher_id="t1",
            day=WeekDay.MONDAY, period_id="p2", start_time="08:40", end_time="09:20",
            class_name="Form 1 East", subject_name="English", teacher_name="Jane Wanjiru",
            is_double_period=True,
        ),
        TimetableSlot(
            slot_id="S0003", class_id="f1w", subject_id="eng", teacher_id="t1",
            day=WeekDay.MONDAY, period_id="p1", start_time="08:00", end_time="08:40",
        ),
    ]
    timetable = Timetable(
        name="Teaching Timetable - Term 1 2024",
        academic_year="2024",
        term="Term 1",
        required_slots=3,
        slots=slots,
    )
    timetable.refresh()
    return timetable


def read_rows(text: str) -> list[list[str]]:
    return list(csv.reader(StringIO(text)))


class TestCSVFormatter:
    """Tests for CSVFormatter."""

    def test_header_and_rows(self, timetable):
        rows = read_rows(CSVFormatter().format(timetable))
        assert rows[0] == CSVFormatter.DEFAULT_COLUMNS
        assert len(rows) == 4

    def test_rows_sorted_by_day_and_time(self, timetable):
        rows = read_rows(CSVFormatter().format(timetable))
        assert [r[0] for r in rows[1:]] == ["S0003", "S0001", "S0002"]

    def test_flags_and_fallbacks(self, timetable):
        rows = read_rows(CSVFormatter().format(timetable))
        header = rows[0]
        double = dict(zip(header, rows[2]))
        plain = dict(zip(header, rows[1]))
        assert double["is_double_period"] == "yes"
        assert double["is_exam"] == ""
        assert plain["class_name"] == "f1w"
        assert plain["teacher_name"] == "t1"

    def test_exam_columns(self, timetable):
        exam = TimetableSlot(
            slot_id="E0001", class_id="f1e", subject_id="mat", day=WeekDay.FRIDAY,
            period_id="p1", start_time="08:00", end_time="08:40", is_exam=True,
            exam_type=ExamType.FINAL, notes="Exam duration: 120 minutes",
        )
        timetable.replace_slots([exam])
        row = dict(zip(CSVFormatter.DEFAULT_COLUMNS, read_rows(CSVFormatter().format(timetable))[1]))
        assert row["teacher_id"] == ""
        assert row["is_exam"] == "yes"
        assert row["exam_type"] == ExamType.FINAL.value
        assert row["notes"] == "Exam duration: 120 minutes"

    def test_custom_columns_and_delimiter(self, timetable):
        formatter = CSVFormatter(columns=["day", "subject_id", "unknown"], include_header=False, delimiter=";")
        lines = formatter.format(timetable).splitlines()
        assert lines[0] == "Monday;eng;"
        assert len(lines) == 3

    def test_minimal(self, timetable):
        rows = read_rows(format_csv(timetable, minimal=True))
        assert rows[0] == CSVFormatter.MINIMAL_COLUMNS
        assert rows[2] == ["Monday", "08:40", "09:20", "Form 1 East", "English", "Jane Wanjiru"]


class TestConsoleFormatter:
    """Tests for ConsoleFormatter."""

    def test_plain_summary(self, timetable):
        text = format_console(timetable, use_colors=False)
        assert "TEACHING TIMETABLE - TERM 1 2024 - Draft" in text
        assert "Slots: 3 / 3 required (100%)" in text
        assert "--- Monday ---" in text
        assert "08:40-09:20: English | Form 1 East | Jane Wanjiru" in text

    def test_plain_days_in_week_order(self, timetable):
        text = format_console(timetable, use_colors=False)
        assert text.index("--- Monday ---") < text.index("--- Tuesday ---")

    def test_rich_grid(self, timetable):
        text = format_console(timetable)
        assert "Weekly Schedule" in text
        assert "100% complete, 0 conflicts" in text
        assert "Mon" in text and "Tue" in text

    def test_print_to_file(self, timetable):
        buffer = StringIO()
        ConsoleFormatter(use_colors=False).print(timetable, file=buffer)
        assert buffer.getvalue().endswith("\n")
        assert "--- Tuesday ---" in buffer.getvalue()

    def test_print_rich_to_file(self, timetable):
        buffer = StringIO()
        ConsoleFormatter(width=120).print(timetable, file=buffer)
        assert "Weekly Schedule" in buffer.getvalue()


class TestEntityViews:
    """Tests for class and teacher views."""

    def test_class_view_plain(self, timetable):
        text = format_class_view(timetable, "f1e", use_colors=False)
        assert "CLASS: Form 1 East (f1e)" in text
        assert "08:40-09:20: English (Jane Wanjiru)" in text
        assert text.index("Monday:") < text.index("Tuesday:")

    def test_teacher_view_plain(self, timetable):
        text = format_teacher_view(timetable, "t1", use_colors=False)
        assert "TEACHER: t1 (t1)" in text
        assert "(f1w)" in text
        assert "(Form 1 East)" in text

    def test_teacher_view_rich(self, timetable):
        text = format_teacher_view(timetable, "t2")
        assert "Teacher Schedule" in text
        assert "Peter Otieno" in text
        assert "Mathematics" in text

    def test_missing_entity(self, timetable):
        assert format_class_view(timetable, "f4x") == "No schedule found for class: f4x"
        assert format_teacher_view(timetable, "t9") == "No schedule found for teacher: t9"

    def test_format_all(self, timetable):
        text = EntityViewFormatter("class", use_colors=False).format_all(timetable)
        assert text.index("(f1e)") < text.index("(f1w)")

    def test_unknown_entity(self):
        with pytest.raises(ValueError, match="Unknown entity type: room"):
            EntityViewFormatter("room")


class TestFileWriters:
    """Tests for save_json and save_csv."""

    def test_save_json(self, timetable, tmp_path):
        filepath = tmp_path / "out" / "timetable.json"
        save_json(timetable, filepath)
        data = json.loads(filepath.read_text())
        assert data["requiredSlots"] == 3
        assert Timetable.load(filepath) == timetable

    def test_save_csv(self, timetable, tmp_path):
        filepath = tmp_path / "out" / "timetable.csv"
        save_csv(timetable, filepath, minimal=True)
        with open(filepath, newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0] == CSVFormatter.MINIMAL_COLUMNS
        assert len(rows) == 4

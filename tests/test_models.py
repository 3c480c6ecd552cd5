"""Tests for catalog models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from timetabler.data.models import (
    CatalogSnapshot,
    ExamSettings,
    GenerationOptions,
    Period,
    PeriodType,
    PreferredTimeSlot,
    RecordStatus,
    SchoolClass,
    SchoolDay,
    Subject,
    Teacher,
    TimeOfDay,
    WeekDay,
    minutes_to_time,
    time_to_minutes,
    windows_overlap,
)


@pytest.fixture
def monday() -> SchoolDay:
    return SchoolDay(
        day=WeekDay.MONDAY,
        periods=[
            Period(id="P3", name="Period 3", start_time="09:40", end_time="10:20"),
            Period(id="P1", name="Period 1", start_time="08:00", end_time="08:40"),
            Period(id="BRK", name="Break", start_time="09:20", end_time="09:40", type=PeriodType.BREAK),
            Period(id="P2", name="Period 2", start_time="08:40", end_time="09:20"),
        ],
    )


@pytest.fixture
def catalog(monday) -> CatalogSnapshot:
    tuesday = SchoolDay(
        day=WeekDay.TUESDAY,
        periods=[Period(id="P1", name="Period 1", start_time="08:00", end_time="08:40")],
    )
    return CatalogSnapshot(
        academic_year="2024",
        term="Term 1",
        subjects=[
            Subject(id="mat", name="Mathematics", levels=["Form 1"]),
            Subject(id="art", name="Art", levels=["Form 1"], status=RecordStatus.INACTIVE),
        ],
        classes=[SchoolClass(id="c1", name="Form 1 East", level="Form 1")],
        teachers=[
            Teacher(id="t1", name="Jane Wanjiru", subjects=["mat"]),
            Teacher(id="t2", name="Peter Otieno", subjects=["mat"], status=RecordStatus.INACTIVE),
            Teacher(id="t3", name="Grace Mutua", subjects=["mat", "art"]),
        ],
        # Listed out of week order on purpose
        school_days=[tuesday, monday],
    )


class TestTimeHelpers:
    """Tests for time conversion helpers."""

    def test_minutes_to_time(self):
        assert minutes_to_time(0) == "00:00"
        assert minutes_to_time(480) == "08:00"
        assert minutes_to_time(750) == "12:30"
        assert minutes_to_time(1439) == "23:59"

    def test_time_to_minutes(self):
        assert time_to_minutes("00:00") == 0
        assert time_to_minutes("08:00") == 480
        assert time_to_minutes("12:30") == 750
        assert time_to_minutes("8:05") == 485

    def test_windows_overlap(self):
        assert windows_overlap(480, 520, 500, 540)
        assert not windows_overlap(480, 520, 520, 560)
        assert not windows_overlap(600, 640, 480, 520)


class TestWeekDay:
    """Tests for WeekDay parsing and ordering."""

    def test_position(self):
        assert WeekDay.MONDAY.position == 0
        assert WeekDay.FRIDAY.position == 4

    def test_parse_accepts_names_and_abbreviations(self):
        assert WeekDay.parse("monday") == WeekDay.MONDAY
        assert WeekDay.parse("TUE") == WeekDay.TUESDAY
        assert WeekDay.parse(" Friday ") == WeekDay.FRIDAY

    def test_parse_rejects_unknown(self):
        with pytest.raises(ValueError, match="Unknown day"):
            WeekDay.parse("someday")


class TestTimeOfDay:
    """Tests for time-of-day buckets."""

    def test_buckets(self):
        assert TimeOfDay.MORNING.contains(time_to_minutes("08:00"))
        assert TimeOfDay.MORNING.contains(time_to_minutes("11:59"))
        assert not TimeOfDay.MORNING.contains(time_to_minutes("12:00"))
        assert TimeOfDay.AFTERNOON.contains(time_to_minutes("12:00"))
        assert TimeOfDay.EVENING.contains(time_to_minutes("17:30"))

    def test_preferred_time_slot_matches(self):
        pref = PreferredTimeSlot(day=WeekDay.MONDAY, period=TimeOfDay.MORNING)
        assert pref.matches(WeekDay.MONDAY, 480)
        assert not pref.matches(WeekDay.TUESDAY, 480)
        assert not pref.matches(WeekDay.MONDAY, 800)

    def test_any_day_preference(self):
        pref = PreferredTimeSlot(period=TimeOfDay.AFTERNOON)
        assert pref.matches(WeekDay.WEDNESDAY, 780)


class TestPeriod:
    """Tests for Period model."""

    def test_properties(self):
        period = Period(id="P1", name="Period 1", start_time="08:00", end_time="08:40")
        assert period.start_minutes == 480
        assert period.end_minutes == 520
        assert period.duration_minutes == 40
        assert period.is_teaching
        assert period.time_of_day == TimeOfDay.MORNING

    def test_break_is_not_teaching(self):
        period = Period(id="B", name="Break", start_time="10:00", end_time="10:20", type=PeriodType.BREAK)
        assert not period.is_teaching

    def test_invalid_time_range(self):
        with pytest.raises(ValidationError, match="must be before end_time"):
            Period(id="P1", name="Period 1", start_time="09:00", end_time="08:00")

    def test_equal_start_end(self):
        with pytest.raises(ValidationError):
            Period(id="P1", name="Period 1", start_time="09:00", end_time="09:00")

    def test_invalid_clock_time(self):
        with pytest.raises(ValidationError):
            Period(id="P1", name="Period 1", start_time="25:00", end_time="26:00")


class TestSchoolDay:
    """Tests for SchoolDay grid helpers."""

    def test_ordered_periods(self, monday):
        assert [p.id for p in monday.ordered_periods()] == ["P1", "P2", "BRK", "P3"]

    def test_teaching_periods_skip_breaks(self, monday):
        assert [p.id for p in monday.teaching_periods()] == ["P1", "P2", "P3"]

    def test_find_overlaps(self):
        day = SchoolDay(
            day=WeekDay.MONDAY,
            periods=[
                Period(id="P1", name="Period 1", start_time="08:00", end_time="08:40"),
                Period(id="P2", name="Period 2", start_time="08:30", end_time="09:10"),
            ],
        )
        overlaps = day.find_overlaps()
        assert len(overlaps) == 1
        assert overlaps[0][0].id == "P1"
        assert overlaps[0][1].id == "P2"

    def test_back_to_back_periods_do_not_overlap(self, monday):
        assert monday.find_overlaps() == []


class TestEntities:
    """Tests for Subject, SchoolClass and Teacher."""

    def test_subject_defaults(self):
        subject = Subject(id="mat", name="Mathematics")
        assert subject.periods_per_week == 1
        assert subject.period_duration == 40
        assert subject.exam_duration == 60
        assert subject.is_active
        assert not subject.applies_to_level("Form 1")

    def test_subject_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            Subject(id="mat", name="Mathematics", colour="blue")

    def test_teacher_eligibility(self):
        teacher = Teacher(id="t1", name="Jane", subjects=["mat"])
        assert teacher.is_eligible_for("mat")
        assert not teacher.is_eligible_for("eng")

    def test_inactive_teacher_is_not_eligible(self):
        teacher = Teacher(id="t1", name="Jane", subjects=["mat"], status=RecordStatus.INACTIVE)
        assert not teacher.is_eligible_for("mat")

    def test_models_are_frozen(self):
        school_class = SchoolClass(id="c1", name="Form 1 East", level="Form 1")
        with pytest.raises(ValidationError):
            school_class.name = "Renamed"


class TestCatalogSnapshot:
    """Tests for CatalogSnapshot lookups and queries."""

    def test_lookups(self, catalog):
        assert catalog.get_subject("mat").name == "Mathematics"
        assert catalog.get_class("c1").level == "Form 1"
        assert catalog.get_teacher("t3").name == "Grace Mutua"
        assert catalog.get_teacher("missing") is None

    def test_active_filters(self, catalog):
        assert [s.id for s in catalog.active_subjects] == ["mat"]
        assert [t.id for t in catalog.active_teachers] == ["t1", "t3"]

    def test_active_days_in_week_order(self, catalog):
        assert [d.day for d in catalog.active_days] == [WeekDay.MONDAY, WeekDay.TUESDAY]

    def test_eligible_teachers_in_catalog_order(self, catalog):
        assert [t.id for t in catalog.eligible_teachers("mat")] == ["t1", "t3"]
        assert [t.id for t in catalog.eligible_teachers("art")] == ["t3"]

    def test_teaching_periods_order(self, catalog):
        grid = [(day, period.id) for day, period in catalog.teaching_periods()]
        assert grid == [
            (WeekDay.MONDAY, "P1"),
            (WeekDay.MONDAY, "P2"),
            (WeekDay.MONDAY, "P3"),
            (WeekDay.TUESDAY, "P1"),
        ]

    def test_adjacent_periods_use_full_grid(self, catalog):
        assert [p.id for p in catalog.adjacent_periods(WeekDay.MONDAY, "P2")] == ["P1", "BRK"]
        assert [p.id for p in catalog.adjacent_periods(WeekDay.MONDAY, "P3")] == ["BRK"]
        assert catalog.adjacent_periods(WeekDay.FRIDAY, "P1") == []

    def test_summary(self, catalog):
        summary = catalog.summary()
        assert summary["subjects"] == 1
        assert summary["teachers"] == 2
        assert summary["school_days"] == 2
        assert summary["teaching_periods"] == 4


class TestSettings:
    """Tests for GenerationOptions and ExamSettings."""

    def test_generation_defaults(self):
        options = GenerationOptions()
        assert options.max_periods_per_day_per_teacher == 6
        assert options.prefer_morning_for_difficult is True
        assert options.allow_back_to_back_difficult is False

    def test_generation_options_accept_camel_case(self):
        options = GenerationOptions.model_validate({"maxPeriodsPerDayPerTeacher": 4})
        assert options.max_periods_per_day_per_teacher == 4

    def test_max_periods_bounds(self):
        with pytest.raises(ValidationError):
            GenerationOptions(max_periods_per_day_per_teacher=0)
        with pytest.raises(ValidationError):
            GenerationOptions(max_periods_per_day_per_teacher=11)

    def test_exam_defaults(self):
        settings = ExamSettings()
        assert settings.exam_days[0] == WeekDay.MONDAY
        assert len(settings.exam_days) == 5
        assert settings.max_exams_per_day == 3
        assert settings.min_time_between_exams == 0
        assert settings.prioritize_core is True

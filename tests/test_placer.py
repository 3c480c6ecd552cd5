"""Tests for greedy placement."""

from __future__ import annotations

import pytest

from timetabler.constraints import (
    AvoidTimeSlotConstraint,
    Severity,
    TeacherUnavailableConstraint,
)
from timetabler.data.generator import generate_small_school
from timetabler.data.models import (
    CatalogSnapshot,
    Difficulty,
    GenerationOptions,
    Period,
    PeriodType,
    SchoolClass,
    SchoolDay,
    Subject,
    SubjectCategory,
    Teacher,
    WeekDay,
)
from timetabler.engine import GreedyPlacer, ScheduleBuilder, SlotScorer, derive_requirements
from timetabler.timetable_generator import TimetableGenerator


P1 = Period(id="P1", name="Period 1", start_time="08:00", end_time="08:40")
P2 = Period(id="P2", name="Period 2", start_time="08:40", end_time="09:20")
BREAK = Period(id="BRK", name="Break", start_time="09:20", end_time="09:40", type=PeriodType.BREAK)
P3 = Period(id="P3", name="Period 3", start_time="09:40", end_time="10:20")


def make_catalog(subjects, classes, teachers, days) -> CatalogSnapshot:
    return CatalogSnapshot(
        academic_year="2024",
        term="Term 1",
        subjects=subjects,
        classes=classes,
        teachers=teachers,
        school_days=days,
    )


def place(catalog, options=None, hard=(), soft=()):
    scorer = SlotScorer(catalog, options, hard_constraints=hard, soft_constraints=soft)
    return GreedyPlacer(catalog, scorer).place(derive_requirements(catalog))


@pytest.fixture
def simple_catalog() -> CatalogSnapshot:
    return make_catalog(
        subjects=[Subject(id="mat", name="Mathematics", levels=["Form 1"], periods_per_week=2)],
        classes=[SchoolClass(id="c1", name="Form 1 East", level="Form 1")],
        teachers=[Teacher(id="t1", name="Jane Wanjiru", subjects=["mat"])],
        days=[SchoolDay(day=WeekDay.MONDAY, periods=[P1, P2])],
    )


class TestGreedyPlacer:
    """Tests for GreedyPlacer.place."""

    def test_simple_placement(self, simple_catalog):
        result = place(simple_catalog)
        assert result.placed_count == 2
        assert result.unscheduled == []
        assert [(a.slot_id, a.day, a.period_id, a.teacher_id) for a in result.assignments] == [
            ("S0001", WeekDay.MONDAY, "P1", "t1"),
            ("S0002", WeekDay.MONDAY, "P2", "t1"),
        ]
        assert result.assignments[0].notes == "Auto-generated: Medium difficulty"

    def test_earliest_day_wins_ties(self):
        catalog = make_catalog(
            subjects=[Subject(id="eng", name="English", levels=["Form 1"])],
            classes=[SchoolClass(id="c1", name="Form 1 East", level="Form 1")],
            teachers=[Teacher(id="t1", name="Jane Wanjiru", subjects=["eng"])],
            # Listed out of week order
            days=[
                SchoolDay(day=WeekDay.TUESDAY, periods=[P1]),
                SchoolDay(day=WeekDay.MONDAY, periods=[P2]),
            ],
        )
        result = place(catalog)
        assert result.assignments[0].day == WeekDay.MONDAY
        assert result.assignments[0].period_id == "P2"

    def test_daily_cap_leaves_requirement_unscheduled(self):
        catalog = make_catalog(
            subjects=[Subject(id="eng", name="English", levels=["Form 1"])],
            classes=[
                SchoolClass(id="c1", name="Form 1 East", level="Form 1"),
                SchoolClass(id="c2", name="Form 1 West", level="Form 1"),
            ],
            teachers=[Teacher(id="t1", name="Jane Wanjiru", subjects=["eng"])],
            days=[SchoolDay(day=WeekDay.MONDAY, periods=[P1, P2])],
        )
        result = place(catalog, GenerationOptions(max_periods_per_day_per_teacher=1))
        assert result.placed_count == 1
        assert result.required_count == 2
        assert result.unscheduled[0].class_id == "c2"

    def test_teacher_never_double_booked(self):
        catalog = make_catalog(
            subjects=[Subject(id="eng", name="English", levels=["Form 1"])],
            classes=[
                SchoolClass(id="c1", name="Form 1 East", level="Form 1"),
                SchoolClass(id="c2", name="Form 1 West", level="Form 1"),
            ],
            teachers=[Teacher(id="t1", name="Jane Wanjiru", subjects=["eng"])],
            days=[SchoolDay(day=WeekDay.MONDAY, periods=[P1])],
        )
        result = place(catalog)
        assert result.placed_count == 1
        assert len(result.unscheduled) == 1

    def test_first_teacher_wins_ties(self):
        catalog = make_catalog(
            subjects=[Subject(id="eng", name="English", levels=["Form 1"])],
            classes=[SchoolClass(id="c1", name="Form 1 East", level="Form 1")],
            teachers=[
                Teacher(id="t1", name="Jane Wanjiru", subjects=["eng"]),
                Teacher(id="t2", name="Peter Otieno", subjects=["eng"]),
            ],
            days=[SchoolDay(day=WeekDay.MONDAY, periods=[P1])],
        )
        assert place(catalog).assignments[0].teacher_id == "t1"

    def test_class_teacher_preferred(self):
        catalog = make_catalog(
            subjects=[Subject(id="eng", name="English", levels=["Form 1"])],
            classes=[SchoolClass(id="c1", name="Form 1 East", level="Form 1", class_teacher_id="t2")],
            teachers=[
                Teacher(id="t1", name="Jane Wanjiru", subjects=["eng"]),
                Teacher(id="t2", name="Peter Otieno", subjects=["eng"]),
            ],
            days=[SchoolDay(day=WeekDay.MONDAY, periods=[P1])],
        )
        assert place(catalog).assignments[0].teacher_id == "t2"

    def test_priority_order(self):
        catalog = make_catalog(
            subjects=[
                Subject(id="art", name="Art", levels=["Form 1"], difficulty=Difficulty.LOW),
                Subject(id="eng", name="English", levels=["Form 1"], category=SubjectCategory.CORE),
            ],
            classes=[SchoolClass(id="c1", name="Form 1 East", level="Form 1")],
            teachers=[Teacher(id="t1", name="Jane Wanjiru", subjects=["art", "eng"])],
            days=[SchoolDay(day=WeekDay.MONDAY, periods=[P1, P2])],
        )
        result = place(catalog)
        assert [(a.subject_id, a.period_id) for a in result.assignments] == [("eng", "P1"), ("art", "P2")]


class TestDifficultSubjects:
    """Tests for back-to-back difficult subject handling."""

    @pytest.fixture
    def catalog(self) -> CatalogSnapshot:
        return make_catalog(
            subjects=[
                Subject(id="mat", name="Mathematics", levels=["Form 1"], difficulty=Difficulty.HIGH),
                Subject(id="phy", name="Physics", levels=["Form 1"], difficulty=Difficulty.HIGH),
            ],
            classes=[SchoolClass(id="c1", name="Form 1 East", level="Form 1")],
            teachers=[Teacher(id="t1", name="Jane Wanjiru", subjects=["mat", "phy"])],
            days=[SchoolDay(day=WeekDay.MONDAY, periods=[P1, P2, BREAK, P3])],
        )

    def test_second_difficult_subject_skips_adjacent_period(self, catalog):
        result = place(catalog)
        assert [(a.subject_id, a.period_id) for a in result.assignments] == [("mat", "P1"), ("phy", "P3")]

    def test_back_to_back_allowed(self, catalog):
        result = place(catalog, GenerationOptions(allow_back_to_back_difficult=True))
        assert [(a.subject_id, a.period_id) for a in result.assignments] == [("mat", "P1"), ("phy", "P2")]


class TestConstraintsInPlacement:
    """Tests for hard and soft constraints during placement."""

    def test_hard_constraint_moves_placement(self, simple_catalog):
        away = TeacherUnavailableConstraint(
            id="away", teacher_id="t1", severity=Severity.HARD,
            day=WeekDay.MONDAY, start_time="08:00", end_time="08:40",
        )
        result = place(simple_catalog, hard=[away])
        assert [a.period_id for a in result.assignments] == ["P2"]
        assert len(result.unscheduled) == 1

    def test_soft_constraint_shifts_preference(self):
        catalog = make_catalog(
            subjects=[Subject(id="eng", name="English", levels=["Form 1"])],
            classes=[SchoolClass(id="c1", name="Form 1 East", level="Form 1")],
            teachers=[Teacher(id="t1", name="Jane Wanjiru", subjects=["eng"])],
            days=[SchoolDay(day=WeekDay.MONDAY, periods=[P1, P2])],
        )
        avoid = AvoidTimeSlotConstraint(id="avoid", avoided_periods=["P1"], weight=5)
        result = place(catalog, soft=[avoid])
        assert result.assignments[0].period_id == "P2"

    def test_soft_violation_does_not_block(self, simple_catalog):
        avoid = AvoidTimeSlotConstraint(id="avoid", avoided_days=[WeekDay.MONDAY], weight=10)
        result = place(simple_catalog, soft=[avoid])
        assert result.placed_count == 2

    def test_non_positive_score_still_placed(self, simple_catalog):
        avoids = [
            AvoidTimeSlotConstraint(id=f"avoid-{n}", avoided_days=[WeekDay.MONDAY], weight=10)
            for n in range(6)
        ]
        scorer = SlotScorer(simple_catalog, soft_constraints=avoids)
        requirement = derive_requirements(simple_catalog)[0]
        scored = scorer.score_slot(requirement, WeekDay.MONDAY, P1, ScheduleBuilder(simple_catalog))
        assert scored.feasible
        assert scored.score <= 0
        assert place(simple_catalog, soft=avoids).placed_count == 2


class TestDoublePeriods:
    """Tests for double-period labelling."""

    def make(self, can_be_double, periods):
        return make_catalog(
            subjects=[Subject(id="eng", name="English", levels=["Form 1"], periods_per_week=2,
                              can_be_double_period=can_be_double)],
            classes=[SchoolClass(id="c1", name="Form 1 East", level="Form 1")],
            teachers=[Teacher(id="t1", name="Jane Wanjiru", subjects=["eng"])],
            days=[SchoolDay(day=WeekDay.MONDAY, periods=periods)],
        )

    def test_adjacent_slots_labelled(self):
        result = place(self.make(True, [P1, P2]))
        assert [a.is_double_period for a in result.assignments] == [True, True]

    def test_not_labelled_without_eligibility(self):
        result = place(self.make(False, [P1, P2]))
        assert [a.is_double_period for a in result.assignments] == [False, False]

    def test_break_separates_periods(self):
        result = place(self.make(True, [P2, BREAK, P3]))
        assert [a.period_id for a in result.assignments] == ["P2", "P3"]
        assert [a.is_double_period for a in result.assignments] == [False, False]


class TestSampleSchool:
    """Placement over a generated school."""

    @pytest.fixture(scope="class")
    def result(self):
        bundle = generate_small_school(seed=42)
        timetable = TimetableGenerator(bundle.catalog, bundle.constraints).generate_teaching_timetable()
        return bundle, timetable

    def test_no_conflicts(self, result):
        _, timetable = result
        assert timetable.conflicts == []
        assert timetable.statistics.total_conflicts == 0

    def test_every_slot_has_eligible_teacher(self, result):
        bundle, timetable = result
        for slot in timetable.slots:
            teacher = bundle.catalog.get_teacher(slot.teacher_id)
            assert teacher.is_eligible_for(slot.subject_id)

    def test_slots_in_teaching_periods(self, result):
        bundle, timetable = result
        teaching = {(day, period.id) for day, period in bundle.catalog.teaching_periods()}
        assert all((s.day, s.period_id) in teaching for s in timetable.slots)

    def test_daily_cap_respected(self, result):
        _, timetable = result
        loads: dict = {}
        for slot in timetable.slots:
            key = (slot.teacher_id, slot.day)
            loads[key] = loads.get(key, 0) + 1
        assert max(loads.values()) <= 6

    def test_placed_plus_unscheduled_equals_required(self, result):
        _, timetable = result
        assert len(timetable.slots) + len(timetable.unscheduled) == timetable.required_slots

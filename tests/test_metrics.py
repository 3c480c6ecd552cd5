"""Tests for timetable quality metrics."""

from __future__ import annotations

import pytest

from timetabler.data.models import CatalogSnapshot, Period, SchoolDay, WeekDay
from timetabler.output.metrics import (
    QualityMetricsCalculator,
    calculate_all_metrics,
    generate_report,
)
from timetabler.output.schema import Timetable, TimetableSlot, UnscheduledItem


MON, TUE = WeekDay.MONDAY, WeekDay.TUESDAY


def slot(n, subject_id, day, start, end, teacher_id="t1", class_id="c1", **kwargs) -> TimetableSlot:
    return TimetableSlot(
        slot_id=f"S{n:04d}",
        class_id=class_id,
        subject_id=subject_id,
        teacher_id=teacher_id,
        day=day,
        period_id=f"P{n}",
        start_time=start,
        end_time=end,
        **kwargs,
    )


def make_timetable(slots, required=None) -> Timetable:
    timetable = Timetable(
        name="Teaching Timetable - Term 1 2024",
        academic_year="2024",
        term="Term 1",
        required_slots=len(slots) if required is None else required,
        slots=slots,
    )
    timetable.refresh()
    return timetable


@pytest.fixture
def catalog() -> CatalogSnapshot:
    periods = [
        Period(id="P1", name="Period 1", start_time="08:00", end_time="08:40"),
        Period(id="P2", name="Period 2", start_time="08:40", end_time="09:20"),
    ]
    return CatalogSnapshot(
        academic_year="2024",
        term="Term 1",
        school_days=[SchoolDay(day=MON, periods=periods), SchoolDay(day=TUE, periods=periods)],
    )


@pytest.fixture
def compact_slots() -> list[TimetableSlot]:
    return [
        slot(1, "eng", MON, "08:00", "08:40"),
        slot(2, "mat", MON, "08:40", "09:20"),
        slot(3, "eng", TUE, "08:00", "08:40"),
    ]


class TestGapMetrics:
    """Tests for teacher idle time."""

    def test_back_to_back_has_no_gap(self, compact_slots):
        gaps = QualityMetricsCalculator().calculate_gap_metrics(make_timetable(compact_slots))
        assert gaps.average_gap_minutes == 0
        assert gaps.teacher_days_analyzed == 1
        assert gaps.score == 100

    def test_gaps_averaged_over_teacher_days(self):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40"),
            slot(2, "mat", MON, "10:00", "10:40"),
            slot(3, "eng", TUE, "08:00", "08:40"),
            slot(4, "mat", TUE, "09:20", "10:00"),
        ])
        gaps = QualityMetricsCalculator().calculate_gap_metrics(timetable)
        assert gaps.total_gap_minutes == 120
        assert gaps.max_gap_minutes == 80
        assert gaps.average_gap_minutes == 60
        assert gaps.gaps_by_teacher == {"t1": 60}
        assert gaps.score == 0

    def test_single_slot_days_skipped(self):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40"),
            slot(2, "mat", TUE, "13:00", "13:40"),
        ])
        gaps = QualityMetricsCalculator().calculate_gap_metrics(timetable)
        assert gaps.teacher_days_analyzed == 0
        assert gaps.score == 100

    def test_exam_slots_ignored(self):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40", teacher_id=None, is_exam=True),
            slot(2, "mat", MON, "13:00", "13:40", teacher_id=None, is_exam=True),
        ])
        gaps = QualityMetricsCalculator().calculate_gap_metrics(timetable)
        assert gaps.teacher_days_analyzed == 0


class TestDistributionMetrics:
    """Tests for how subjects spread across the week."""

    def test_spread_pair_is_well_distributed(self, compact_slots):
        dist = QualityMetricsCalculator().calculate_distribution_metrics(make_timetable(compact_slots))
        assert dist.total_multi_period_pairs == 1
        assert dist.well_distributed_count == 1
        assert dist.score == 100

    def test_same_day_pair_is_poorly_distributed(self):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40"),
            slot(2, "eng", MON, "08:40", "09:20"),
            slot(3, "mat", TUE, "08:00", "08:40"),
        ])
        dist = QualityMetricsCalculator().calculate_distribution_metrics(timetable)
        assert dist.well_distributed_count == 0
        assert dist.percentage_well_distributed == 0
        assert dist.poorly_distributed == ["eng for c1: 2 periods on 1 days"]

    def test_double_period_counts_as_one_sitting(self):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40", is_double_period=True),
            slot(2, "eng", MON, "08:40", "09:20", is_double_period=True),
            slot(3, "mat", TUE, "08:00", "08:40"),
        ])
        dist = QualityMetricsCalculator().calculate_distribution_metrics(timetable)
        assert dist.well_distributed_count == 1

    def test_one_day_week(self):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40"),
            slot(2, "eng", MON, "08:40", "09:20"),
        ])
        dist = QualityMetricsCalculator().calculate_distribution_metrics(timetable)
        assert dist.well_distributed_count == 1

    def test_exams_excluded(self):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40", teacher_id=None, is_exam=True),
            slot(2, "eng", MON, "10:00", "10:40", teacher_id=None, is_exam=True),
        ])
        dist = QualityMetricsCalculator().calculate_distribution_metrics(timetable)
        assert dist.total_multi_period_pairs == 0
        assert dist.score == 100


class TestBalanceMetrics:
    """Tests for daily workload balance."""

    def test_used_days_without_catalog(self, compact_slots):
        balance = QualityMetricsCalculator().calculate_daily_balance_metrics(make_timetable(compact_slots))
        assert balance.teacher_balance == {"t1": 0.5}
        assert balance.score == 83.33

    def test_catalog_days_count_empty_days(self, catalog):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40"),
            slot(2, "mat", MON, "08:40", "09:20"),
        ])
        calculator = QualityMetricsCalculator()
        assert calculator.calculate_daily_balance_metrics(timetable).average_std_dev == 0
        assert calculator.calculate_daily_balance_metrics(timetable, catalog).average_std_dev == 1.0

    def test_unbalanced_teacher_reported(self, catalog):
        timetable = make_timetable([
            slot(n, "eng", MON, start, end, class_id=f"c{n}")
            for n, (start, end) in enumerate(
                [("08:00", "08:40"), ("08:40", "09:20"), ("09:20", "10:00"), ("10:00", "10:40")],
                start=1,
            )
        ])
        balance = QualityMetricsCalculator().calculate_daily_balance_metrics(timetable, catalog)
        assert balance.max_std_dev == 2.0
        assert balance.unbalanced_teachers == ["t1: std_dev=2.00"]

    def test_no_teachers(self):
        balance = QualityMetricsCalculator().calculate_daily_balance_metrics(make_timetable([]))
        assert balance.average_std_dev == 0
        assert balance.score == 100


class TestCoverageMetrics:
    """Tests for placement coverage and grid utilization."""

    def test_utilization_against_grid(self, catalog, compact_slots):
        coverage = QualityMetricsCalculator().calculate_coverage_metrics(make_timetable(compact_slots), catalog)
        assert coverage.placed == 3
        assert coverage.required == 3
        assert coverage.completion_percentage == 100
        assert coverage.slot_utilization == 75.0

    def test_no_utilization_without_catalog(self, compact_slots):
        coverage = QualityMetricsCalculator().calculate_coverage_metrics(make_timetable(compact_slots))
        assert coverage.slot_utilization == 0

    def test_unscheduled_listed(self, compact_slots):
        timetable = make_timetable(compact_slots, required=4)
        timetable.unscheduled = [UnscheduledItem(subject_id="mat", class_id="c1", occurrence=1)]
        coverage = QualityMetricsCalculator().calculate_coverage_metrics(timetable)
        assert coverage.unscheduled == ["mat for c1"]
        assert coverage.completion_percentage == 75

    def test_unresolved_conflicts_counted(self):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40", class_id="c1"),
            slot(2, "eng", MON, "08:00", "08:40", class_id="c2"),
        ])
        coverage = QualityMetricsCalculator().calculate_coverage_metrics(timetable)
        assert coverage.unresolved_conflicts == timetable.statistics.total_conflicts
        assert coverage.unresolved_conflicts >= 1


class TestMetricsReport:
    """Tests for the combined report."""

    def test_overall_score_and_grade(self, compact_slots):
        report = calculate_all_metrics(make_timetable(compact_slots))
        assert report.overall_score == 96.7
        assert report.grade == "A"
        assert report.total_slots == 3
        assert report.total_teachers == 1
        assert report.total_days == 2
        assert report.improvement_areas == []

    def test_low_coverage_flagged(self, compact_slots):
        report = calculate_all_metrics(make_timetable(compact_slots, required=10))
        assert report.coverage_metrics.completion_percentage == 30
        assert report.overall_score == 72.2
        assert report.grade == "C"
        assert report.improvement_areas == ["Place more requirements: 30% placed is below target (95%)"]

    def test_custom_targets(self, compact_slots):
        report = calculate_all_metrics(make_timetable(compact_slots, required=10), targets={"coverage": 20})
        assert report.improvement_areas == []

    def test_gap_improvement(self):
        timetable = make_timetable([
            slot(1, "eng", MON, "08:00", "08:40"),
            slot(2, "mat", MON, "10:00", "10:40"),
        ])
        report = calculate_all_metrics(timetable)
        assert len(report.improvement_areas) == 1
        assert report.improvement_areas[0].startswith("Reduce teacher gaps")

    @pytest.mark.parametrize("score,grade", [
        (90, "A"), (89.9, "B"), (80, "B"), (70, "C"), (60, "D"), (59.9, "F"),
    ])
    def test_grade_boundaries(self, score, grade):
        assert QualityMetricsCalculator()._score_to_grade(score) == grade

    def test_to_dict_keys(self, compact_slots):
        data = calculate_all_metrics(make_timetable(compact_slots)).to_dict()
        assert data["overallScore"] == 96.7
        assert data["coverage"]["completionPercentage"] == 100
        assert set(data) >= {"gaps", "distribution", "balance", "coverage", "improvementAreas"}

    def test_text_report(self, catalog, compact_slots):
        report = generate_report(make_timetable(compact_slots), catalog)
        assert "TIMETABLE QUALITY REPORT" in report
        assert "Overall Score: 96.7/100 (Grade: A)" in report
        assert "Time Slot Utilization: 75.0%" in report

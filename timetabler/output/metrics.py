"""
Quality metrics calculator for generated timetables.

Evaluates a teaching timetable on teacher idle time, how subjects spread
across the week, how evenly teachers' days are loaded, and how much of the
requirement set was placed.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from timetabler.data.models import CatalogSnapshot, WeekDay, time_to_minutes

from .schema import Timetable, TimetableSlot


# =============================================================================
# Constants
# =============================================================================

# Target thresholds for quality assessment
DEFAULT_TARGETS = {
    "gap_score": 30.0,           # Max average gap in minutes
    "distribution_score": 80.0,   # Min % well-distributed
    "daily_balance": 1.5,         # Max std dev for balance
    "coverage": 95.0,             # Min completion percentage
}


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class GapMetrics:
    """Metrics for teacher gaps (idle time between slots)."""
    average_gap_minutes: float
    max_gap_minutes: float
    total_gap_minutes: float
    teacher_days_analyzed: int
    gaps_by_teacher: dict[str, float] = field(default_factory=dict)

    @property
    def score(self) -> float:
        # 0 gap = 100, 60+ min gap = 0
        normalized = max(0, 100 - (self.average_gap_minutes / 60) * 100)
        return round(normalized, 2)


@dataclass
class DistributionMetrics:
    """How well each (subject, class) pair with several periods spreads across days."""
    well_distributed_count: int
    total_multi_period_pairs: int
    percentage_well_distributed: float
    poorly_distributed: list[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        return round(self.percentage_well_distributed, 2)


@dataclass
class BalanceMetrics:
    """Metrics for daily teacher workload balance."""
    average_std_dev: float
    max_std_dev: float
    teacher_balance: dict[str, float] = field(default_factory=dict)
    unbalanced_teachers: list[str] = field(default_factory=list)

    @property
    def score(self) -> float:
        # 0 std dev = 100, 3+ std dev = 0
        normalized = max(0, 100 - (self.average_std_dev / 3) * 100)
        return round(normalized, 2)


@dataclass
class CoverageMetrics:
    """How much of the requirement set was placed, and how much of the grid is used."""
    placed: int
    required: int
    completion_percentage: int
    unresolved_conflicts: int
    slot_utilization: float
    unscheduled: list[str] = field(default_factory=list)


@dataclass
class MetricsReport:
    """Complete metrics report for a timetable."""
    gap_metrics: GapMetrics
    distribution_metrics: DistributionMetrics
    balance_metrics: BalanceMetrics
    coverage_metrics: CoverageMetrics

    overall_score: float
    grade: str

    total_slots: int
    total_teachers: int
    total_days: int

    improvement_areas: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "overallScore": self.overall_score,
            "grade": self.grade,
            "totalSlots": self.total_slots,
            "totalTeachers": self.total_teachers,
            "totalDays": self.total_days,
            "gaps": {
                "score": self.gap_metrics.score,
                "averageGapMinutes": self.gap_metrics.average_gap_minutes,
                "maxGapMinutes": self.gap_metrics.max_gap_minutes,
            },
            "distribution": {
                "score": self.distribution_metrics.score,
                "wellDistributedPercent": self.distribution_metrics.percentage_well_distributed,
                "poorlyDistributed": self.distribution_metrics.poorly_distributed,
            },
            "balance": {
                "score": self.balance_metrics.score,
                "averageStdDev": self.balance_metrics.average_std_dev,
                "unbalancedTeachers": self.balance_metrics.unbalanced_teachers,
            },
            "coverage": {
                "placed": self.coverage_metrics.placed,
                "required": self.coverage_metrics.required,
                "completionPercentage": self.coverage_metrics.completion_percentage,
                "unresolvedConflicts": self.coverage_metrics.unresolved_conflicts,
                "slotUtilization": self.coverage_metrics.slot_utilization,
                "unscheduled": self.coverage_metrics.unscheduled,
            },
            "improvementAreas": self.improvement_areas,
        }


# =============================================================================
# Quality Metrics Calculator
# =============================================================================

class QualityMetricsCalculator:
    """
    Calculator for timetable quality metrics.

    Usage:
        calculator = QualityMetricsCalculator()
        report = calculator.calculate_all(timetable, catalog)
        print(calculator.generate_report(report))

    The catalog is optional. Without it, balance is measured over the days
    the timetable uses and slot utilization is reported as 0.
    """

    def __init__(self, targets: Optional[dict[str, float]] = None):
        self.targets = {**DEFAULT_TARGETS, **(targets or {})}

    def calculate_all(
        self,
        timetable: Timetable,
        catalog: Optional[CatalogSnapshot] = None,
    ) -> MetricsReport:
        gap_metrics = self.calculate_gap_metrics(timetable)
        distribution_metrics = self.calculate_distribution_metrics(timetable)
        balance_metrics = self.calculate_daily_balance_metrics(timetable, catalog)
        coverage_metrics = self.calculate_coverage_metrics(timetable, catalog)

        overall_score = self._calculate_overall_score(
            gap_metrics, distribution_metrics, balance_metrics, coverage_metrics
        )

        return MetricsReport(
            gap_metrics=gap_metrics,
            distribution_metrics=distribution_metrics,
            balance_metrics=balance_metrics,
            coverage_metrics=coverage_metrics,
            overall_score=overall_score,
            grade=self._score_to_grade(overall_score),
            total_slots=len(timetable.slots),
            total_teachers=len(timetable.by_teacher()),
            total_days=len(timetable.by_day()),
            improvement_areas=self._identify_improvements(
                gap_metrics, distribution_metrics, balance_metrics, coverage_metrics
            ),
        )

    def calculate_gap_metrics(self, timetable: Timetable) -> GapMetrics:
        """
        Teacher idle time.

        For each teacher-day with 2+ slots, gap = (last end - first start)
        minus time spent teaching.
        """
        total_gap = 0.0
        max_gap = 0.0
        teacher_days = 0
        gaps_by_teacher: dict[str, float] = {}

        for teacher_id, slots in timetable.by_teacher().items():
            teacher_total_gap = 0.0
            teacher_day_count = 0

            for day_slots in _group_by_day(slots).values():
                if len(day_slots) < 2:
                    continue

                first_start = time_to_minutes(day_slots[0].start_time)
                last_end = max(time_to_minutes(s.end_time) for s in day_slots)
                teaching = sum(
                    time_to_minutes(s.end_time) - time_to_minutes(s.start_time)
                    for s in day_slots
                )
                day_gap = max(0, (last_end - first_start) - teaching)

                total_gap += day_gap
                max_gap = max(max_gap, day_gap)
                teacher_total_gap += day_gap
                teacher_day_count += 1
                teacher_days += 1

            if teacher_day_count > 0:
                gaps_by_teacher[teacher_id] = teacher_total_gap / teacher_day_count

        avg_gap = total_gap / teacher_days if teacher_days > 0 else 0.0

        return GapMetrics(
            average_gap_minutes=round(avg_gap, 2),
            max_gap_minutes=max_gap,
            total_gap_minutes=total_gap,
            teacher_days_analyzed=teacher_days,
            gaps_by_teacher=gaps_by_teacher,
        )

    def calculate_distribution_metrics(self, timetable: Timetable) -> DistributionMetrics:
        """
        A (subject, class) pair with several periods is well distributed when
        it is taught on as many distinct days as the week allows.

        Adjacent double periods count as one sitting.
        """
        pairs: dict[tuple[str, str], list[TimetableSlot]] = defaultdict(list)
        for slot in timetable.slots:
            if not slot.is_exam:
                pairs[(slot.subject_id, slot.class_id)].append(slot)

        week_days = len({s.day for s in timetable.slots}) or 1
        multi = {key: slots for key, slots in pairs.items() if len(slots) >= 2}

        well_distributed = 0
        poorly_distributed: list[str] = []
        for (subject_id, class_id), slots in multi.items():
            sittings = sum(1 for s in slots if not s.is_double_period)
            sittings += math.ceil(sum(1 for s in slots if s.is_double_period) / 2)
            days_used = len({s.day for s in slots})
            if days_used >= min(sittings, week_days):
                well_distributed += 1
            else:
                poorly_distributed.append(
                    f"{subject_id} for {class_id}: {len(slots)} periods on {days_used} days"
                )

        total_multi = len(multi)
        percentage = (well_distributed / total_multi * 100) if total_multi > 0 else 100.0

        return DistributionMetrics(
            well_distributed_count=well_distributed,
            total_multi_period_pairs=total_multi,
            percentage_well_distributed=round(percentage, 2),
            poorly_distributed=poorly_distributed,
        )

    def calculate_daily_balance_metrics(
        self,
        timetable: Timetable,
        catalog: Optional[CatalogSnapshot] = None,
    ) -> BalanceMetrics:
        """Standard deviation of each teacher's daily period counts."""
        if catalog is not None:
            days = [d.day for d in catalog.active_days]
        else:
            days = sorted({s.day for s in timetable.slots}, key=lambda d: d.position)

        teacher_std_devs: dict[str, float] = {}
        unbalanced: list[str] = []

        for teacher_id, slots in timetable.by_teacher().items():
            per_day = _group_by_day(slots)
            counts = [len(per_day.get(day, [])) for day in days]
            if not counts or sum(counts) == 0:
                continue

            std_dev = _std_dev(counts)
            teacher_std_devs[teacher_id] = std_dev
            if std_dev > self.targets["daily_balance"]:
                name = slots[0].teacher_name or teacher_id
                unbalanced.append(f"{name}: std_dev={std_dev:.2f}")

        if not teacher_std_devs:
            return BalanceMetrics(average_std_dev=0.0, max_std_dev=0.0)

        avg_std_dev = sum(teacher_std_devs.values()) / len(teacher_std_devs)
        return BalanceMetrics(
            average_std_dev=round(avg_std_dev, 2),
            max_std_dev=round(max(teacher_std_devs.values()), 2),
            teacher_balance=teacher_std_devs,
            unbalanced_teachers=unbalanced,
        )

    def calculate_coverage_metrics(
        self,
        timetable: Timetable,
        catalog: Optional[CatalogSnapshot] = None,
    ) -> CoverageMetrics:
        grid_size = len(catalog.teaching_periods()) if catalog is not None else 0
        used_times = {(s.day, s.start_time) for s in timetable.slots}
        slot_util = (len(used_times) / grid_size * 100) if grid_size > 0 else 0.0

        return CoverageMetrics(
            placed=len(timetable.slots),
            required=timetable.required_slots,
            completion_percentage=timetable.statistics.completion_percentage,
            unresolved_conflicts=timetable.statistics.total_conflicts,
            slot_utilization=round(slot_util, 2),
            unscheduled=[
                f"{item.subject_id} for {item.class_id}" for item in timetable.unscheduled
            ],
        )

    def generate_report(self, metrics: MetricsReport) -> str:
        """Generate a human-readable report with all metrics."""
        lines = []

        lines.append("=" * 70)
        lines.append("TIMETABLE QUALITY REPORT")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"Overall Score: {metrics.overall_score:.1f}/100 (Grade: {metrics.grade})")
        lines.append("")

        lines.append("-" * 40)
        lines.append("COVERAGE")
        lines.append("-" * 40)
        cov = metrics.coverage_metrics
        lines.append(f"Placed: {cov.placed}/{cov.required} ({cov.completion_percentage}%)")
        lines.append(f"Unresolved Conflicts: {cov.unresolved_conflicts}")
        lines.append(f"Time Slot Utilization: {cov.slot_utilization:.1f}%")
        if cov.unscheduled:
            lines.append("Unscheduled:")
            for item in cov.unscheduled[:5]:
                lines.append(f"  - {item}")
        lines.append("")

        lines.append("-" * 40)
        lines.append("GAP ANALYSIS (Teacher idle time)")
        lines.append("-" * 40)
        gap = metrics.gap_metrics
        lines.append(f"Score: {gap.score}/100")
        lines.append(f"Average Gap: {gap.average_gap_minutes:.1f} minutes")
        lines.append(f"Maximum Gap: {gap.max_gap_minutes:.0f} minutes")
        lines.append(f"Teacher-Days Analyzed: {gap.teacher_days_analyzed}")
        lines.append("")

        lines.append("-" * 40)
        lines.append("DISTRIBUTION (Subjects spread across days)")
        lines.append("-" * 40)
        dist = metrics.distribution_metrics
        lines.append(f"Score: {dist.score}/100")
        lines.append(f"Well-Distributed: {dist.well_distributed_count}/{dist.total_multi_period_pairs}")
        if dist.poorly_distributed:
            lines.append("Poorly distributed:")
            for item in dist.poorly_distributed[:5]:
                lines.append(f"  - {item}")
        lines.append("")

        lines.append("-" * 40)
        lines.append("DAILY BALANCE (Workload evenness)")
        lines.append("-" * 40)
        balance = metrics.balance_metrics
        lines.append(f"Score: {balance.score}/100")
        lines.append(f"Average Std Dev: {balance.average_std_dev:.2f}")
        lines.append(f"Maximum Std Dev: {balance.max_std_dev:.2f}")
        if balance.unbalanced_teachers:
            lines.append("Unbalanced teachers:")
            for item in balance.unbalanced_teachers[:5]:
                lines.append(f"  - {item}")
        lines.append("")

        if metrics.improvement_areas:
            lines.append("-" * 40)
            lines.append("AREAS FOR IMPROVEMENT")
            lines.append("-" * 40)
            for area in metrics.improvement_areas:
                lines.append(f"  * {area}")
            lines.append("")

        lines.append("=" * 70)
        return "\n".join(lines)

    # -------------------------------------------------------------------------
    # Private Helper Methods
    # -------------------------------------------------------------------------

    def _calculate_overall_score(
        self,
        gap: GapMetrics,
        dist: DistributionMetrics,
        balance: BalanceMetrics,
        coverage: CoverageMetrics,
    ) -> float:
        weights = {
            "gap": 0.20,
            "distribution": 0.25,
            "balance": 0.20,
            "coverage": 0.35,
        }
        coverage_score = min(100, coverage.completion_percentage)

        score = (
            weights["gap"] * gap.score +
            weights["distribution"] * dist.score +
            weights["balance"] * balance.score +
            weights["coverage"] * coverage_score
        )
        return round(score, 1)

    def _score_to_grade(self, score: float) -> str:
        if score >= 90:
            return "A"
        elif score >= 80:
            return "B"
        elif score >= 70:
            return "C"
        elif score >= 60:
            return "D"
        else:
            return "F"

    def _identify_improvements(
        self,
        gap: GapMetrics,
        dist: DistributionMetrics,
        balance: BalanceMetrics,
        coverage: CoverageMetrics,
    ) -> list[str]:
        improvements = []

        if coverage.completion_percentage < self.targets["coverage"]:
            improvements.append(
                f"Place more requirements: {coverage.completion_percentage}% placed "
                f"is below target ({self.targets['coverage']:.0f}%)"
            )

        if gap.average_gap_minutes > self.targets["gap_score"]:
            improvements.append(
                f"Reduce teacher gaps: Average gap ({gap.average_gap_minutes:.0f} min) "
                f"exceeds target ({self.targets['gap_score']:.0f} min)"
            )

        if dist.percentage_well_distributed < self.targets["distribution_score"]:
            improvements.append(
                f"Improve subject distribution: {dist.percentage_well_distributed:.0f}% well-distributed "
                f"is below target ({self.targets['distribution_score']:.0f}%)"
            )

        if balance.average_std_dev > self.targets["daily_balance"]:
            improvements.append(
                f"Balance daily workloads: Std dev ({balance.average_std_dev:.2f}) "
                f"exceeds target ({self.targets['daily_balance']:.1f})"
            )

        return improvements


def _group_by_day(slots: list[TimetableSlot]) -> dict[WeekDay, list[TimetableSlot]]:
    """Group slots by day, each day's slots sorted by start time."""
    groups: dict[WeekDay, list[TimetableSlot]] = defaultdict(list)
    for slot in sorted(slots, key=lambda s: s.sort_key):
        groups[slot.day].append(slot)
    return dict(groups)


def _std_dev(values: list[int]) -> float:
    n = len(values)
    mean = sum(values) / n
    variance = sum((x - mean) ** 2 for x in values) / n
    return math.sqrt(variance)


# =============================================================================
# Convenience Functions
# =============================================================================

def calculate_all_metrics(
    timetable: Timetable,
    catalog: Optional[CatalogSnapshot] = None,
    targets: Optional[dict[str, float]] = None,
) -> MetricsReport:
    return QualityMetricsCalculator(targets).calculate_all(timetable, catalog)


def generate_report(
    timetable: Timetable,
    catalog: Optional[CatalogSnapshot] = None,
    targets: Optional[dict[str, float]] = None,
) -> str:
    calculator = QualityMetricsCalculator(targets)
    return calculator.generate_report(calculator.calculate_all(timetable, catalog))

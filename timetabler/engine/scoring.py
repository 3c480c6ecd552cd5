"""
Slot and teacher scoring.

A slot is feasible when the class is free and at least one eligible teacher
is free, under the daily cap, and breaks no hard constraint there. Feasible
slots are then scored against soft preferences and the chosen teacher's load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from timetabler.constraints import Constraint, Violation
from timetabler.data.models import (
    MORNING_CUTOFF_MINUTES,
    CatalogSnapshot,
    GenerationOptions,
    Period,
    WeekDay,
)

from .requirements import Requirement
from .schedule import Candidate, ScheduleBuilder

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class ScoringWeights:
    """Score adjustments used by the slot and teacher scorers."""
    # Slot scoring
    slot_base: int = 100
    morning_bonus: int = 20  # High difficulty before 12:00
    afternoon_penalty: int = 10  # High difficulty from 12:00
    preferred_slot_bonus: int = 15
    non_preferred_slot_penalty: int = 5  # Only when the subject declares preferences
    back_to_back_penalty: int = 25
    high_load_penalty: int = 10
    high_load_ratio: float = 0.75  # Fraction of the daily cap
    soft_constraint_unit: int = 2  # Per unit of constraint weight

    # Teacher scoring
    teacher_base: int = 50
    teacher_per_period_penalty: int = 5
    class_teacher_bonus: int = 15


@dataclass
class SlotScore:
    """
    Outcome of scoring one (day, period) for a requirement.

    Only ``feasible`` rules a slot out. A feasible slot stays a candidate even
    when penalties take its score to zero or below, so heavy soft penalties
    never leave a requirement unplaced.
    """
    day: WeekDay
    period: Period
    feasible: bool
    score: int = 0
    teacher_id: Optional[str] = None
    soft_violations: list[Violation] = field(default_factory=list)
    reason: Optional[str] = None


# =============================================================================
# Scorer
# =============================================================================

class SlotScorer:
    """
    Scores candidate slots and teachers for requirements.

    Usage:
        scorer = SlotScorer(catalog, options, hard, soft)
        result = scorer.score_slot(requirement, day, period, schedule)
        if result.feasible:
            schedule.commit(Candidate(requirement, day, period, result.teacher_id))
    """

    def __init__(
        self,
        catalog: CatalogSnapshot,
        options: Optional[GenerationOptions] = None,
        hard_constraints: Sequence[Constraint] = (),
        soft_constraints: Sequence[Constraint] = (),
        weights: Optional[ScoringWeights] = None,
    ):
        self.catalog = catalog
        self.options = options or GenerationOptions()
        self.hard_constraints = list(hard_constraints)
        self.soft_constraints = list(soft_constraints)
        self.weights = weights or ScoringWeights()

    @property
    def daily_cap(self) -> int:
        return self.options.max_periods_per_day_per_teacher

    # -------------------------------------------------------------------------
    # Slot Scoring
    # -------------------------------------------------------------------------

    def score_slot(
        self,
        requirement: Requirement,
        day: WeekDay,
        period: Period,
        schedule: ScheduleBuilder,
    ) -> SlotScore:
        """Score one (day, period) for a requirement."""
        w = self.weights
        start = period.start_minutes

        if schedule.is_class_busy(requirement.class_id, day, start):
            return SlotScore(day, period, feasible=False, reason="class busy")

        teacher_id = self.select_teacher(requirement, day, period, schedule)
        if teacher_id is None:
            return SlotScore(day, period, feasible=False, reason="no available teacher")

        score = w.slot_base

        if self.options.prefer_morning_for_difficult and requirement.is_difficult:
            if start < MORNING_CUTOFF_MINUTES:
                score += w.morning_bonus
            else:
                score -= w.afternoon_penalty

        if requirement.preferred_time_slots:
            if any(pref.matches(day, start) for pref in requirement.preferred_time_slots):
                score += w.preferred_slot_bonus
            else:
                score -= w.non_preferred_slot_penalty

        if (
            not self.options.allow_back_to_back_difficult
            and requirement.is_difficult
            and schedule.has_adjacent_difficult(requirement.class_id, day, period.id)
        ):
            score -= w.back_to_back_penalty

        if schedule.teacher_daily_load(teacher_id, day) > self.daily_cap * w.high_load_ratio:
            score -= w.high_load_penalty

        candidate = Candidate(requirement, day, period, teacher_id)
        violations = self.soft_violations(candidate, schedule)
        for violation in violations:
            score -= violation.weight * w.soft_constraint_unit

        return SlotScore(
            day, period,
            feasible=True,
            score=score,
            teacher_id=teacher_id,
            soft_violations=violations,
        )

    def soft_violations(self, candidate: Candidate, schedule: ScheduleBuilder) -> list[Violation]:
        """Soft constraints a candidate breaks. Broken evaluations count as satisfied."""
        violations = []
        for constraint in self.soft_constraints:
            try:
                violation = constraint.evaluate(candidate, schedule)
            except (KeyError, ValueError) as e:
                logger.warning(
                    "Soft constraint %s failed to evaluate (%s); treating as satisfied",
                    constraint.id, e,
                )
                continue
            if violation is not None:
                violations.append(violation)
        return violations

    def hard_violation(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[Violation]:
        """The first hard constraint a candidate breaks, if any."""
        for constraint in self.hard_constraints:
            violation = constraint.evaluate(candidate, schedule)
            if violation is not None:
                return violation
        return None

    # -------------------------------------------------------------------------
    # Teacher Selection
    # -------------------------------------------------------------------------

    def is_teacher_available(
        self,
        teacher_id: str,
        requirement: Requirement,
        day: WeekDay,
        period: Period,
        schedule: ScheduleBuilder,
    ) -> bool:
        """Free at the time, under the daily cap, and not blocked by a hard constraint."""
        if schedule.is_teacher_busy(teacher_id, day, period.start_minutes):
            return False
        if schedule.teacher_daily_load(teacher_id, day) >= self.daily_cap:
            return False
        candidate = Candidate(requirement, day, period, teacher_id)
        return self.hard_violation(candidate, schedule) is None

    def score_teacher(
        self,
        teacher_id: str,
        requirement: Requirement,
        day: WeekDay,
        schedule: ScheduleBuilder,
    ) -> int:
        """Prefer lightly loaded teachers and the class's own class teacher."""
        w = self.weights
        score = w.teacher_base
        score -= schedule.teacher_daily_load(teacher_id, day) * w.teacher_per_period_penalty
        if self.is_class_teacher(teacher_id, requirement.class_id):
            score += w.class_teacher_bonus
        return score

    def is_class_teacher(self, teacher_id: str, class_id: str) -> bool:
        teacher = self.catalog.get_teacher(teacher_id)
        if teacher is not None and teacher.assigned_class_id == class_id:
            return True
        school_class = self.catalog.get_class(class_id)
        return school_class is not None and school_class.class_teacher_id == teacher_id

    def select_teacher(
        self,
        requirement: Requirement,
        day: WeekDay,
        period: Period,
        schedule: ScheduleBuilder,
    ) -> Optional[str]:
        """
        Best available eligible teacher for a slot.

        Ties go to the teacher listed first in the catalog.
        """
        best_teacher = None
        best_score = None
        for teacher_id in requirement.teacher_ids:
            if not self.is_teacher_available(teacher_id, requirement, day, period, schedule):
                continue
            score = self.score_teacher(teacher_id, requirement, day, schedule)
            if best_score is None or score > best_score:
                best_score = score
                best_teacher = teacher_id
        return best_teacher

"""
Greedy placement.

Requirements are placed one at a time in priority order. Each goes to the
highest-scoring feasible slot and is never revisited.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from timetabler.data.models import CatalogSnapshot

from .requirements import Requirement
from .schedule import Assignment, Candidate, ScheduleBuilder
from .scoring import SlotScore, SlotScorer

logger = logging.getLogger(__name__)


@dataclass
class PlacementResult:
    """Output of one greedy pass."""
    assignments: list[Assignment] = field(default_factory=list)
    unscheduled: list[Requirement] = field(default_factory=list)

    @property
    def placed_count(self) -> int:
        return len(self.assignments)

    @property
    def required_count(self) -> int:
        return len(self.assignments) + len(self.unscheduled)


class GreedyPlacer:
    """
    Places requirements into the term's grid without backtracking.

    Slots are enumerated day by day in week order, then by start time. The
    first slot with the highest score wins, so ties resolve to the earliest
    day and then the earliest period.
    """

    def __init__(self, catalog: CatalogSnapshot, scorer: SlotScorer):
        self.catalog = catalog
        self.scorer = scorer

    def place(
        self,
        requirements: Iterable[Requirement],
        schedule: Optional[ScheduleBuilder] = None,
    ) -> PlacementResult:
        schedule = schedule or ScheduleBuilder(self.catalog)
        grid = self.catalog.teaching_periods()
        result = PlacementResult()

        for requirement in requirements:
            best = self.find_best_slot(requirement, grid, schedule)
            if best is None:
                logger.debug(
                    "Unscheduled %s (%s for class %s)",
                    requirement.id, requirement.subject_id, requirement.class_id,
                )
                result.unscheduled.append(requirement)
                continue

            assignment = schedule.commit(
                Candidate(requirement, best.day, best.period, best.teacher_id),
                notes=f"Auto-generated: {requirement.difficulty.value} difficulty",
            )
            logger.debug(
                "Placed %s on %s %s with %s (score %d)",
                requirement.id, best.day.value, best.period.start_time,
                best.teacher_id, best.score,
            )
            result.assignments.append(assignment)

        return result

    def find_best_slot(self, requirement: Requirement, grid, schedule: ScheduleBuilder) -> Optional[SlotScore]:
        best = None
        for day, period in grid:
            scored = self.scorer.score_slot(requirement, day, period, schedule)
            if not scored.feasible:
                continue
            if best is None or scored.score > best.score:
                best = scored
        return best

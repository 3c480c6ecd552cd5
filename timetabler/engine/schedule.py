"""
In-progress schedule accumulator.

One ScheduleBuilder is owned by one generation run. The placer commits
assignments into it; constraints and the scorer only read from it.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Optional

from timetabler.data.models import (
    CatalogSnapshot,
    Difficulty,
    ExamType,
    Period,
    WeekDay,
    time_to_minutes,
)

from .requirements import Requirement


@dataclass
class Assignment:
    """A committed placement of one subject for one class in one period."""
    slot_id: str
    class_id: str
    subject_id: str
    teacher_id: Optional[str]
    day: WeekDay
    period_id: str
    start_time: str
    end_time: str
    difficulty: Difficulty = Difficulty.MEDIUM
    requires_lab: bool = False
    is_double_period: bool = False
    is_exam: bool = False
    exam_type: Optional[ExamType] = None
    requirement_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Candidate:
    """A (requirement, day, period, teacher) placement under consideration."""
    requirement: Requirement
    day: WeekDay
    period: Period
    teacher_id: str


class ScheduleBuilder:
    """
    Accumulates assignments for one run and indexes them for fast lookups.

    Attributes:
        catalog: The catalog snapshot being scheduled
        assignments: Committed assignments in commit order
    """

    def __init__(self, catalog: CatalogSnapshot, slot_prefix: str = "S"):
        self.catalog = catalog
        self.assignments: list[Assignment] = []
        self._slot_prefix = slot_prefix

        self._class_busy: set[tuple[str, WeekDay, int]] = set()
        self._teacher_busy: set[tuple[str, WeekDay, int]] = set()
        self._teacher_load: Counter[tuple[str, WeekDay]] = Counter()
        self._by_class_period: dict[tuple[str, WeekDay, str], Assignment] = {}
        self._by_time: dict[tuple[WeekDay, int], list[Assignment]] = defaultdict(list)

        self._grid: dict[WeekDay, list[Period]] = {
            school_day.day: school_day.ordered_periods()
            for school_day in catalog.active_days
        }

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def is_class_busy(self, class_id: str, day: WeekDay, start_minutes: int) -> bool:
        return (class_id, day, start_minutes) in self._class_busy

    def is_teacher_busy(self, teacher_id: str, day: WeekDay, start_minutes: int) -> bool:
        return (teacher_id, day, start_minutes) in self._teacher_busy

    def teacher_daily_load(self, teacher_id: str, day: WeekDay) -> int:
        """Periods the teacher already teaches on the day."""
        return self._teacher_load[(teacher_id, day)]

    def class_assignment_at(self, class_id: str, day: WeekDay, period_id: str) -> Optional[Assignment]:
        return self._by_class_period.get((class_id, day, period_id))

    def assignments_at(self, day: WeekDay, start_minutes: int) -> list[Assignment]:
        return list(self._by_time.get((day, start_minutes), []))

    def lab_sessions_at(self, day: WeekDay, start_minutes: int) -> int:
        """Lab-requiring assignments running at a time."""
        return sum(1 for a in self._by_time.get((day, start_minutes), []) if a.requires_lab)

    def adjacent_assignments(self, class_id: str, day: WeekDay, period_id: str) -> list[Assignment]:
        """The class's assignments in the periods either side of a period."""
        found = []
        for neighbour in self.catalog.adjacent_periods(day, period_id):
            assignment = self.class_assignment_at(class_id, day, neighbour.id)
            if assignment is not None:
                found.append(assignment)
        return found

    def has_adjacent_difficult(self, class_id: str, day: WeekDay, period_id: str) -> bool:
        return any(
            a.difficulty == Difficulty.HIGH
            for a in self.adjacent_assignments(class_id, day, period_id)
        )

    def difficult_run_length(self, class_id: str, day: WeekDay, period: Period) -> int:
        """
        Length of the High-difficulty run the class would have if a difficult
        subject were placed in ``period``.

        The run counts neighbours in the day's full grid, so a break ends it.
        """
        ordered = self._grid.get(day, [])
        ids = [p.id for p in ordered]
        if period.id not in ids:
            return 1
        index = ids.index(period.id)

        def is_difficult(i: int) -> bool:
            assignment = self.class_assignment_at(class_id, day, ids[i])
            return assignment is not None and assignment.difficulty == Difficulty.HIGH

        run = 1
        i = index - 1
        while i >= 0 and is_difficult(i):
            run += 1
            i -= 1
        i = index + 1
        while i < len(ids) and is_difficult(i):
            run += 1
            i += 1
        return run

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def commit(self, candidate: Candidate, notes: Optional[str] = None) -> Assignment:
        """Record a candidate as a committed assignment."""
        requirement = candidate.requirement
        assignment = Assignment(
            slot_id=self.next_slot_id(),
            class_id=requirement.class_id,
            subject_id=requirement.subject_id,
            teacher_id=candidate.teacher_id,
            day=candidate.day,
            period_id=candidate.period.id,
            start_time=candidate.period.start_time,
            end_time=candidate.period.end_time,
            difficulty=requirement.difficulty,
            requires_lab=requirement.requires_lab,
            requirement_id=requirement.id,
            notes=notes,
        )
        self.add(assignment)

        if requirement.can_be_double_period:
            for neighbour in self.adjacent_assignments(
                requirement.class_id, candidate.day, candidate.period.id
            ):
                if neighbour.subject_id == requirement.subject_id:
                    neighbour.is_double_period = True
                    assignment.is_double_period = True

        return assignment

    def add(self, assignment: Assignment) -> None:
        """Index an already-built assignment."""
        start = time_to_minutes(assignment.start_time)
        self.assignments.append(assignment)
        self._class_busy.add((assignment.class_id, assignment.day, start))
        self._by_class_period[(assignment.class_id, assignment.day, assignment.period_id)] = assignment
        self._by_time[(assignment.day, start)].append(assignment)
        if assignment.teacher_id is not None:
            self._teacher_busy.add((assignment.teacher_id, assignment.day, start))
            self._teacher_load[(assignment.teacher_id, assignment.day)] += 1

    def next_slot_id(self) -> str:
        return f"{self._slot_prefix}{len(self.assignments) + 1:04d}"

    def __len__(self) -> int:
        return len(self.assignments)

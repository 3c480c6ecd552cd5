"""
Exam scheduling.

Derives one exam per (subject, class) pair actually taught in a teaching
timetable and places them first-fit over the exam days' periods.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol

from timetabler.data.models import (
    CatalogSnapshot,
    ExamSettings,
    Period,
    SubjectCategory,
    WeekDay,
)

from .schedule import Assignment, ScheduleBuilder

logger = logging.getLogger(__name__)


class TaughtSlot(Protocol):
    subject_id: str
    class_id: str


@dataclass(frozen=True)
class ExamPair:
    """A (subject, class) pair that sits one exam."""
    subject_id: str
    class_id: str
    category: SubjectCategory
    exam_duration: int

    @property
    def is_core(self) -> bool:
        return self.category == SubjectCategory.CORE


@dataclass
class ExamResult:
    assignments: list[Assignment] = field(default_factory=list)
    unscheduled: list[ExamPair] = field(default_factory=list)

    @property
    def required_count(self) -> int:
        return len(self.assignments) + len(self.unscheduled)


def derive_exam_pairs(
    slots: Iterable[TaughtSlot],
    catalog: CatalogSnapshot,
    prioritize_core: bool = True,
) -> list[ExamPair]:
    """
    Distinct (subject, class) pairs in order of first appearance.

    Pairs whose subject or class is no longer in the catalog are skipped.
    With ``prioritize_core`` the Core-category pairs move to the front,
    keeping their relative order.
    """
    seen: set[tuple[str, str]] = set()
    pairs: list[ExamPair] = []
    for slot in slots:
        key = (slot.subject_id, slot.class_id)
        if key in seen:
            continue
        seen.add(key)
        subject = catalog.get_subject(slot.subject_id)
        if subject is None or catalog.get_class(slot.class_id) is None:
            logger.debug("Skipping exam for unknown subject/class %s/%s", *key)
            continue
        pairs.append(ExamPair(
            subject_id=subject.id,
            class_id=slot.class_id,
            category=subject.category,
            exam_duration=subject.exam_duration,
        ))

    if prioritize_core:
        pairs.sort(key=lambda p: not p.is_core)
    return pairs


class ExamScheduler:
    """
    First-fit exam placement.

    A period is usable for a pair when no other exam starts at that exact
    (day, time), the day is under ``max_exams_per_day``, and the class's other
    exams that day are at least ``min_time_between_exams`` minutes away.
    Exams carry no teacher.
    """

    def __init__(self, catalog: CatalogSnapshot, settings: Optional[ExamSettings] = None):
        self.catalog = catalog
        self.settings = settings or ExamSettings()

    def exam_periods(self) -> list[tuple[WeekDay, Period]]:
        """Teaching periods of the exam days, in ``exam_days`` order then by start."""
        periods = []
        seen_days = set()
        for day in self.settings.exam_days:
            if day in seen_days:
                continue
            seen_days.add(day)
            school_day = self.catalog.get_school_day(day)
            if school_day is None:
                continue
            periods.extend((day, period) for period in school_day.teaching_periods())
        return periods

    def schedule(self, pairs: Iterable[ExamPair]) -> ExamResult:
        builder = ScheduleBuilder(self.catalog, slot_prefix="E")
        periods = self.exam_periods()
        result = ExamResult()

        occupied: set[tuple[WeekDay, int]] = set()
        per_day: Counter[WeekDay] = Counter()
        class_exams: dict[tuple[str, WeekDay], list[Period]] = defaultdict(list)

        for pair in pairs:
            subject = self.catalog.get_subject(pair.subject_id)
            if subject is None:
                logger.debug("Unscheduled exam for unknown subject %s", pair.subject_id)
                result.unscheduled.append(pair)
                continue

            chosen = None
            for day, period in periods:
                if (day, period.start_minutes) in occupied:
                    continue
                if per_day[day] >= self.settings.max_exams_per_day:
                    continue
                if not self._gap_ok(period, class_exams[(pair.class_id, day)]):
                    continue
                chosen = (day, period)
                break

            if chosen is None:
                logger.debug("Unscheduled exam %s for class %s", pair.subject_id, pair.class_id)
                result.unscheduled.append(pair)
                continue

            day, period = chosen
            assignment = Assignment(
                slot_id=builder.next_slot_id(),
                class_id=pair.class_id,
                subject_id=pair.subject_id,
                teacher_id=None,
                day=day,
                period_id=period.id,
                start_time=period.start_time,
                end_time=period.end_time,
                difficulty=subject.difficulty,
                is_exam=True,
                exam_type=self.settings.exam_type,
                notes=f"Exam duration: {pair.exam_duration} minutes",
            )
            builder.add(assignment)
            occupied.add((day, period.start_minutes))
            per_day[day] += 1
            class_exams[(pair.class_id, day)].append(period)
            result.assignments.append(assignment)

        return result

    def _gap_ok(self, period: Period, same_day: list[Period]) -> bool:
        gap = self.settings.min_time_between_exams
        for other in same_day:
            if period.start_minutes >= other.end_minutes:
                distance = period.start_minutes - other.end_minutes
            elif other.start_minutes >= period.end_minutes:
                distance = other.start_minutes - period.end_minutes
            else:
                return False
            if distance < gap:
                return False
        return True

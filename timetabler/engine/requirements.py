"""
Requirement derivation.

A requirement is one atomic scheduling need: one period of one subject for
one class. Requirements are recomputed at the start of every run and never
persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from timetabler.data.models import (
    CatalogSnapshot,
    Difficulty,
    PreferredTimeSlot,
    SchoolClass,
    Subject,
    SubjectCategory,
)

logger = logging.getLogger(__name__)


# Priority weights
BASE_PRIORITY = 5
CORE_BONUS = 3
LAB_BONUS = 2
DIFFICULTY_BONUS = {
    Difficulty.LOW: 0,
    Difficulty.MEDIUM: 1,
    Difficulty.HIGH: 2,
}
CORE_CATEGORIES = frozenset({SubjectCategory.CORE, SubjectCategory.MATHEMATICS})


@dataclass(frozen=True)
class Requirement:
    """One period of a subject that a class must be taught."""
    id: str
    subject_id: str
    class_id: str
    occurrence: int
    teacher_ids: tuple[str, ...]
    duration: int
    difficulty: Difficulty
    category: SubjectCategory
    requires_lab: bool
    can_be_double_period: bool
    preferred_time_slots: tuple[PreferredTimeSlot, ...]
    priority: int

    @property
    def is_difficult(self) -> bool:
        return self.difficulty == Difficulty.HIGH


def calculate_priority(subject: Subject, school_class: Optional[SchoolClass] = None) -> int:
    """
    Placement priority for a subject's requirements.

    Core, difficult and lab subjects go first, while the grid is still open.
    The class does not currently affect priority.
    """
    priority = BASE_PRIORITY
    if subject.category in CORE_CATEGORIES:
        priority += CORE_BONUS
    priority += DIFFICULTY_BONUS[subject.difficulty]
    if subject.requires_lab:
        priority += LAB_BONUS
    return priority


def derive_requirements(catalog: CatalogSnapshot) -> list[Requirement]:
    """
    Expand the catalog into requirements, highest priority first.

    A (subject, class) pair yields ``periods_per_week`` requirements when the
    class's level takes the subject and at least one active teacher is
    qualified for it. Pairs with no qualified teacher are skipped; they only
    show up as reduced completion.

    The sort is stable, so equal priorities keep subject-then-class catalog
    order.
    """
    requirements: list[Requirement] = []

    for subject in catalog.active_subjects:
        teacher_ids = tuple(t.id for t in catalog.eligible_teachers(subject.id))
        for school_class in catalog.active_classes:
            if not subject.applies_to_level(school_class.level):
                continue
            if not teacher_ids:
                logger.debug(
                    "No qualified teacher for %s in class %s; skipping",
                    subject.id, school_class.id,
                )
                continue

            priority = calculate_priority(subject, school_class)
            for occurrence in range(subject.periods_per_week):
                requirements.append(Requirement(
                    id=f"{subject.id}-{school_class.id}-{occurrence}",
                    subject_id=subject.id,
                    class_id=school_class.id,
                    occurrence=occurrence,
                    teacher_ids=teacher_ids,
                    duration=subject.period_duration,
                    difficulty=subject.difficulty,
                    category=subject.category,
                    requires_lab=subject.requires_lab,
                    can_be_double_period=subject.can_be_double_period,
                    preferred_time_slots=tuple(subject.preferred_time_slots),
                    priority=priority,
                ))

    return sorted(requirements, key=lambda r: r.priority, reverse=True)


def count_required_slots(catalog: CatalogSnapshot) -> int:
    """Number of requirements the catalog derives."""
    return len(derive_requirements(catalog))

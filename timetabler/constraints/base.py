"""
Shared constraint machinery: severity, scope and the evaluation contract.

Every constraint kind is a frozen pydantic model with a literal ``kind``
discriminator. Evaluation takes a candidate placement and the schedule
committed so far and returns a Violation or None.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from timetabler.engine.schedule import Candidate, ScheduleBuilder


# =============================================================================
# Enums
# =============================================================================

class ConstraintKind(str, Enum):
    """Constraint kinds understood by the placer."""
    TEACHER_UNAVAILABLE = "TeacherUnavailable"
    CLASS_UNAVAILABLE = "ClassUnavailable"
    MAX_PERIODS_PER_DAY = "MaxPeriodsPerDay"
    PREFERRED_TIME_SLOT = "PreferredTimeSlot"
    AVOID_TIME_SLOT = "AvoidTimeSlot"
    NO_CONSECUTIVE_DIFFICULT = "NoConsecutiveDifficult"
    LAB_REQUIRED = "LabRequired"


class Severity(str, Enum):
    """Hard constraints make a slot infeasible; soft ones only cost score."""
    HARD = "Hard"
    SOFT = "Soft"


class AppliesTo(str, Enum):
    """Dimension a constraint's include/exclude id lists refer to."""
    ALL = "All"
    TEACHER = "Teacher"
    SUBJECT = "Subject"
    CLASS = "Class"
    ROOM = "Room"
    TIME = "Time"


# =============================================================================
# Scope
# =============================================================================

class ConstraintScope(BaseModel):
    """Which candidates a constraint applies to."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    applies_to: AppliesTo = Field(default=AppliesTo.ALL)
    specific_ids: list[str] = Field(default_factory=list)
    exclude_ids: list[str] = Field(default_factory=list)

    def matches(self, candidate: Candidate) -> bool:
        """Whether a candidate placement falls inside this scope."""
        ids = _candidate_ids(candidate, self.applies_to)
        if ids is None:
            # Rooms are not modelled; nothing can be included or excluded by room
            return True
        if any(i in self.exclude_ids for i in ids):
            return False
        if self.specific_ids and not any(i in self.specific_ids for i in ids):
            return False
        return True


def _candidate_ids(candidate: Candidate, applies_to: AppliesTo) -> Optional[list[str]]:
    requirement = candidate.requirement
    if applies_to == AppliesTo.TEACHER:
        return [candidate.teacher_id]
    if applies_to == AppliesTo.SUBJECT:
        return [requirement.subject_id]
    if applies_to == AppliesTo.CLASS:
        return [requirement.class_id]
    if applies_to == AppliesTo.TIME:
        return [candidate.period.id, candidate.day.value]
    if applies_to == AppliesTo.ALL:
        return [candidate.teacher_id, requirement.subject_id, requirement.class_id]
    return None


# =============================================================================
# Violation
# =============================================================================

@dataclass(frozen=True)
class Violation:
    """A constraint broken by a candidate placement."""
    constraint_id: str
    kind: str
    severity: Severity
    weight: int
    message: str


# =============================================================================
# Base Model
# =============================================================================

class ConstraintBase(BaseModel):
    """
    Fields shared by every constraint kind.

    A constraint is scoped to one (academic year, term). Once created it is
    immutable apart from ``is_active``, which the store toggles by copy.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(default="", description="Display name")
    description: Optional[str] = Field(default=None)
    severity: Severity = Field(default=Severity.SOFT)
    weight: int = Field(default=5, ge=1, le=10, description="Soft scoring weight")
    is_active: bool = Field(default=True)
    academic_year: Optional[str] = Field(default=None)
    term: Optional[str] = Field(default=None)
    scope: ConstraintScope = Field(default_factory=ConstraintScope)

    @property
    def is_hard(self) -> bool:
        return self.severity == Severity.HARD

    def applies_to_term(self, academic_year: str, term: str) -> bool:
        """Unset year/term fields match any run."""
        if self.academic_year is not None and self.academic_year != academic_year:
            return False
        if self.term is not None and self.term != term:
            return False
        return True

    def evaluate(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[Violation]:
        """Check a candidate against this constraint."""
        if not self.scope.matches(candidate):
            return None
        message = self.check(candidate, schedule)
        if message is None:
            return None
        return Violation(
            constraint_id=self.id,
            kind=self.kind,
            severity=self.severity,
            weight=self.weight,
            message=message,
        )

    def check(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[str]:
        """Kind-specific rule. Returns a violation message or None."""
        raise NotImplementedError

    def referenced_ids(self) -> dict[str, list[str]]:
        """Catalog ids this constraint points at, keyed by entity type."""
        return {}

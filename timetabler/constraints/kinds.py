"""
Constraint kinds.

Each kind carries its own typed parameters. The ``Constraint`` union is
discriminated on ``kind`` so documents parse straight into the right class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Literal, Optional, Union

from pydantic import Field, TypeAdapter, model_validator

from timetabler.data.models import (
    ClockTime,
    Difficulty,
    Period,
    WeekDay,
    time_to_minutes,
    windows_overlap,
)

from .base import ConstraintBase

if TYPE_CHECKING:
    from timetabler.engine.schedule import Candidate, ScheduleBuilder


def period_matches(period: Period, tokens: list[str]) -> bool:
    """A period matches a token by id, by name, or by its time-of-day bucket."""
    if period.id in tokens or period.name in tokens:
        return True
    bucket = period.time_of_day
    return bucket is not None and bucket.value in tokens


class _WindowedConstraint(ConstraintBase):
    """Optional day plus optional [start_time, end_time] window."""
    day: Optional[WeekDay] = Field(default=None, description="Day (None = every day)")
    start_time: Optional[ClockTime] = Field(default=None)
    end_time: Optional[ClockTime] = Field(default=None)

    @model_validator(mode="after")
    def validate_window(self):
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be given together")
        if self.start_time is not None and time_to_minutes(self.start_time) >= time_to_minutes(self.end_time):
            raise ValueError(
                f"start_time ({self.start_time}) must be before end_time ({self.end_time})"
            )
        return self

    def _window_hit(self, candidate: Candidate) -> bool:
        if self.day is not None and self.day != candidate.day:
            return False
        if self.start_time is None:
            return True
        return windows_overlap(
            candidate.period.start_minutes,
            candidate.period.end_minutes,
            time_to_minutes(self.start_time),
            time_to_minutes(self.end_time),
        )

    def _window_text(self) -> str:
        day = self.day.value if self.day else "every day"
        if self.start_time is None:
            return day
        return f"{day} {self.start_time}-{self.end_time}"


# =============================================================================
# Availability
# =============================================================================

class TeacherUnavailableConstraint(_WindowedConstraint):
    """The teacher cannot teach during the window."""
    kind: Literal["TeacherUnavailable"] = "TeacherUnavailable"
    teacher_id: str = Field(min_length=1)

    def check(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[str]:
        if candidate.teacher_id != self.teacher_id or not self._window_hit(candidate):
            return None
        return f"Teacher {self.teacher_id} is unavailable on {self._window_text()}"

    def referenced_ids(self) -> dict[str, list[str]]:
        return {"teacher": [self.teacher_id]}


class ClassUnavailableConstraint(_WindowedConstraint):
    """The class cannot be taught during the window."""
    kind: Literal["ClassUnavailable"] = "ClassUnavailable"
    class_id: str = Field(min_length=1)

    def check(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[str]:
        if candidate.requirement.class_id != self.class_id or not self._window_hit(candidate):
            return None
        return f"Class {self.class_id} is unavailable on {self._window_text()}"

    def referenced_ids(self) -> dict[str, list[str]]:
        return {"class": [self.class_id]}


# =============================================================================
# Workload
# =============================================================================

class MaxPeriodsPerDayConstraint(ConstraintBase):
    """A teacher may not exceed ``max_value`` periods in one day."""
    kind: Literal["MaxPeriodsPerDay"] = "MaxPeriodsPerDay"
    max_value: int = Field(ge=1, le=12)
    teacher_id: Optional[str] = Field(default=None, description="None = every teacher in scope")

    def check(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[str]:
        if self.teacher_id is not None and candidate.teacher_id != self.teacher_id:
            return None
        load = schedule.teacher_daily_load(candidate.teacher_id, candidate.day)
        if load < self.max_value:
            return None
        return (
            f"Teacher {candidate.teacher_id} would exceed {self.max_value} "
            f"periods on {candidate.day.value}"
        )

    def referenced_ids(self) -> dict[str, list[str]]:
        return {"teacher": [self.teacher_id]} if self.teacher_id else {}


# =============================================================================
# Time Preferences
# =============================================================================

class PreferredTimeSlotConstraint(ConstraintBase):
    """A subject should be taught on the preferred days and periods."""
    kind: Literal["PreferredTimeSlot"] = "PreferredTimeSlot"
    subject_id: Optional[str] = Field(default=None, description="None = every subject in scope")
    preferred_days: list[WeekDay] = Field(default_factory=list)
    preferred_periods: list[str] = Field(
        default_factory=list,
        description="Period ids, period names, or time-of-day buckets",
    )

    def check(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[str]:
        if self.subject_id is not None and candidate.requirement.subject_id != self.subject_id:
            return None
        if self.preferred_days and candidate.day not in self.preferred_days:
            days = ", ".join(d.value for d in self.preferred_days)
            return f"Subject scheduled outside preferred days: {days}"
        if self.preferred_periods and not period_matches(candidate.period, self.preferred_periods):
            return f"Subject scheduled outside preferred periods: {', '.join(self.preferred_periods)}"
        return None

    def referenced_ids(self) -> dict[str, list[str]]:
        return {"subject": [self.subject_id]} if self.subject_id else {}


class AvoidTimeSlotConstraint(ConstraintBase):
    """Matching placements should avoid the listed days and periods."""
    kind: Literal["AvoidTimeSlot"] = "AvoidTimeSlot"
    subject_id: Optional[str] = Field(default=None)
    teacher_id: Optional[str] = Field(default=None)
    class_id: Optional[str] = Field(default=None)
    avoided_days: list[WeekDay] = Field(default_factory=list)
    avoided_periods: list[str] = Field(default_factory=list)

    def check(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[str]:
        requirement = candidate.requirement
        if self.subject_id is not None and requirement.subject_id != self.subject_id:
            return None
        if self.teacher_id is not None and candidate.teacher_id != self.teacher_id:
            return None
        if self.class_id is not None and requirement.class_id != self.class_id:
            return None
        if candidate.day in self.avoided_days:
            return f"Slot scheduled on avoided day: {candidate.day.value}"
        if self.avoided_periods and period_matches(candidate.period, self.avoided_periods):
            return f"Slot scheduled in avoided period: {candidate.period.name}"
        return None

    def referenced_ids(self) -> dict[str, list[str]]:
        refs: dict[str, list[str]] = {}
        if self.subject_id:
            refs["subject"] = [self.subject_id]
        if self.teacher_id:
            refs["teacher"] = [self.teacher_id]
        if self.class_id:
            refs["class"] = [self.class_id]
        return refs


# =============================================================================
# Difficulty and Resources
# =============================================================================

class NoConsecutiveDifficultConstraint(ConstraintBase):
    """A class may not sit more than ``max_value`` High-difficulty periods in a row."""
    kind: Literal["NoConsecutiveDifficult"] = "NoConsecutiveDifficult"
    max_value: int = Field(default=1, ge=1, le=6)

    def check(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[str]:
        requirement = candidate.requirement
        if requirement.difficulty != Difficulty.HIGH:
            return None
        run = schedule.difficult_run_length(requirement.class_id, candidate.day, candidate.period)
        if run <= self.max_value:
            return None
        return (
            f"Class {requirement.class_id} would have {run} consecutive "
            f"difficult periods on {candidate.day.value}"
        )


class LabRequiredConstraint(ConstraintBase):
    """Lab sessions running at the same time may not exceed the number of labs."""
    kind: Literal["LabRequired"] = "LabRequired"
    subject_id: Optional[str] = Field(default=None, description="None = every lab subject")
    lab_count: int = Field(default=1, ge=1)

    def check(self, candidate: Candidate, schedule: ScheduleBuilder) -> Optional[str]:
        requirement = candidate.requirement
        if self.subject_id is not None:
            if requirement.subject_id != self.subject_id:
                return None
        elif not requirement.requires_lab:
            return None
        in_use = schedule.lab_sessions_at(candidate.day, candidate.period.start_minutes)
        if in_use < self.lab_count:
            return None
        return (
            f"All {self.lab_count} lab(s) in use on {candidate.day.value} "
            f"at {candidate.period.start_time}"
        )

    def referenced_ids(self) -> dict[str, list[str]]:
        return {"subject": [self.subject_id]} if self.subject_id else {}


# =============================================================================
# Union
# =============================================================================

CONSTRAINT_TYPES = (
    TeacherUnavailableConstraint,
    ClassUnavailableConstraint,
    MaxPeriodsPerDayConstraint,
    PreferredTimeSlotConstraint,
    AvoidTimeSlotConstraint,
    NoConsecutiveDifficultConstraint,
    LabRequiredConstraint,
)

Constraint = Annotated[
    Union[
        TeacherUnavailableConstraint,
        ClassUnavailableConstraint,
        MaxPeriodsPerDayConstraint,
        PreferredTimeSlotConstraint,
        AvoidTimeSlotConstraint,
        NoConsecutiveDifficultConstraint,
        LabRequiredConstraint,
    ],
    Field(discriminator="kind"),
]

constraint_adapter: TypeAdapter[Constraint] = TypeAdapter(Constraint)


def constraint_type_for(kind: str) -> Optional[type[ConstraintBase]]:
    """The constraint class for a kind name, or None if the kind is unknown."""
    for constraint_type in CONSTRAINT_TYPES:
        if constraint_type.model_fields["kind"].default == kind:
            return constraint_type
    return None


def parse_constraint(data: dict) -> Constraint:
    """Validate one constraint document into its typed kind."""
    return constraint_adapter.validate_python(data)

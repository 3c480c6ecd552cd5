"""
Scheduling constraints.

Constraints are typed by kind and evaluated against a candidate placement
and the schedule committed so far.
"""

from __future__ import annotations

from .base import (
    AppliesTo,
    ConstraintBase,
    ConstraintKind,
    ConstraintScope,
    Severity,
    Violation,
)
from .kinds import (
    AvoidTimeSlotConstraint,
    ClassUnavailableConstraint,
    Constraint,
    LabRequiredConstraint,
    MaxPeriodsPerDayConstraint,
    NoConsecutiveDifficultConstraint,
    PreferredTimeSlotConstraint,
    TeacherUnavailableConstraint,
    parse_constraint,
)
from .store import ConstraintStore

__all__ = [
    # Base
    "AppliesTo",
    "ConstraintBase",
    "ConstraintKind",
    "ConstraintScope",
    "Severity",
    "Violation",
    # Kinds
    "AvoidTimeSlotConstraint",
    "ClassUnavailableConstraint",
    "Constraint",
    "LabRequiredConstraint",
    "MaxPeriodsPerDayConstraint",
    "NoConsecutiveDifficultConstraint",
    "PreferredTimeSlotConstraint",
    "TeacherUnavailableConstraint",
    "parse_constraint",
    # Store
    "ConstraintStore",
]

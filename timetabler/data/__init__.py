"""
Catalog data models.

The loader and sample generator live in ``timetabler.data.loader`` and
``timetabler.data.generator``; they depend on the constraints package, which
itself imports these models, so they are not re-exported here.
"""

from .models import (
    CatalogSnapshot,
    Difficulty,
    ExamSettings,
    ExamType,
    GenerationOptions,
    OptimizationGoal,
    Period,
    PeriodType,
    PreferredTimeSlot,
    RecordStatus,
    SchoolClass,
    SchoolDay,
    Subject,
    SubjectCategory,
    Teacher,
    TimeOfDay,
    WeekDay,
    minutes_to_time,
    time_to_minutes,
)

__all__ = [
    "CatalogSnapshot",
    "Difficulty",
    "ExamSettings",
    "ExamType",
    "GenerationOptions",
    "OptimizationGoal",
    "Period",
    "PeriodType",
    "PreferredTimeSlot",
    "RecordStatus",
    "SchoolClass",
    "SchoolDay",
    "Subject",
    "SubjectCategory",
    "Teacher",
    "TimeOfDay",
    "WeekDay",
    "minutes_to_time",
    "time_to_minutes",
]

"""Greedy timetable engine: requirements, scoring, placement, conflicts, exams."""

from .conflicts import Conflict, ConflictSeverity, ConflictType, detect_conflicts
from .exams import ExamPair, ExamResult, ExamScheduler, derive_exam_pairs
from .placer import GreedyPlacer, PlacementResult
from .requirements import (
    Requirement,
    calculate_priority,
    count_required_slots,
    derive_requirements,
)
from .schedule import Assignment, Candidate, ScheduleBuilder
from .scoring import ScoringWeights, SlotScore, SlotScorer

__all__ = [
    # Requirements
    "Requirement",
    "calculate_priority",
    "count_required_slots",
    "derive_requirements",
    # Schedule
    "Assignment",
    "Candidate",
    "ScheduleBuilder",
    # Scoring and placement
    "ScoringWeights",
    "SlotScore",
    "SlotScorer",
    "GreedyPlacer",
    "PlacementResult",
    # Conflicts
    "Conflict",
    "ConflictSeverity",
    "ConflictType",
    "detect_conflicts",
    # Exams
    "ExamPair",
    "ExamResult",
    "ExamScheduler",
    "derive_exam_pairs",
]

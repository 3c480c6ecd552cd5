"""Timetabler - greedy school timetable and exam generation."""

from .exceptions import (
    DataValidationError,
    GenerationInProgressError,
    PersistenceError,
    TimetablerError,
)
from .timetable_generator import TimetableGenerator
from .service import GenerationService
from .cli import app as cli_app

__all__ = [
    # Errors
    "DataValidationError",
    "GenerationInProgressError",
    "PersistenceError",
    "TimetablerError",
    # Generation
    "TimetableGenerator",
    "GenerationService",
    # CLI
    "cli_app",
]

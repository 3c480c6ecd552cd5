"""
Timetable generation entry points.

TimetableGenerator takes immutable snapshots of the catalog and constraints
for one (academic year, term) and produces Timetable values. It never loads
or saves anything itself.

Example:
    generator = TimetableGenerator(bundle.catalog, bundle.constraints)
    teaching = generator.generate_teaching_timetable(GenerationOptions())
    exams = generator.generate_exam_timetable(teaching, ExamSettings())
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, Optional, Union

from timetabler.constraints import Constraint, ConstraintStore
from timetabler.data.loader import catalog_errors
from timetabler.data.models import CatalogSnapshot, ExamSettings, GenerationOptions
from timetabler.engine import (
    ExamScheduler,
    GreedyPlacer,
    ScoringWeights,
    SlotScorer,
    derive_exam_pairs,
    derive_requirements,
)
from timetabler.exceptions import DataValidationError
from timetabler.output.schema import (
    Timetable,
    TimetableSlot,
    TimetableType,
    UnscheduledItem,
)

logger = logging.getLogger(__name__)


class TimetableGenerator:
    """
    Generates teaching and exam timetables for one (academic year, term).

    Args:
        catalog: Catalog snapshot for the term
        constraints: Constraint store or iterable of constraints. Only active
            constraints for the catalog's term are used.
        weights: Scoring weights (defaults reproduce the standard scoring)
    """

    def __init__(
        self,
        catalog: CatalogSnapshot,
        constraints: Union[ConstraintStore, Iterable[Constraint], None] = None,
        weights: Optional[ScoringWeights] = None,
    ):
        self.catalog = catalog
        store = constraints if isinstance(constraints, ConstraintStore) else ConstraintStore(constraints)
        self.constraints = store.for_term(catalog.academic_year, catalog.term)
        self.weights = weights or ScoringWeights()

    @property
    def academic_year(self) -> str:
        return self.catalog.academic_year

    @property
    def term(self) -> str:
        return self.catalog.term

    def validate(self) -> list[str]:
        """
        Check the catalog and constraint references before any placement.

        Returns:
            Warnings for soft constraints dropped because of unknown references

        Raises:
            DataValidationError: If the catalog or a hard constraint is invalid
        """
        errors = catalog_errors(self.catalog)
        constraint_errors, warnings = self.constraints.check_references(self.catalog)
        errors.extend(constraint_errors)
        if errors:
            raise DataValidationError(errors)
        return warnings

    # -------------------------------------------------------------------------
    # Teaching Timetable
    # -------------------------------------------------------------------------

    def generate_teaching_timetable(self, options: Optional[GenerationOptions] = None) -> Timetable:
        """
        Run one greedy pass and return a Draft teaching timetable.

        Requirements that could not be placed are listed in
        ``timetable.unscheduled`` and lower the completion percentage.

        Raises:
            DataValidationError: If the input fails validation. Nothing is
                placed in that case.
        """
        options = options or GenerationOptions()
        self.validate()

        started = time.perf_counter()
        requirements = derive_requirements(self.catalog)
        logger.info(
            "Generating teaching timetable for %s %s: %d requirements, %d constraints",
            self.term, self.academic_year, len(requirements), len(self.constraints),
        )

        scorer = SlotScorer(
            self.catalog,
            options,
            hard_constraints=self.constraints.hard,
            soft_constraints=self.constraints.soft,
            weights=self.weights,
        )
        result = GreedyPlacer(self.catalog, scorer).place(requirements)

        timetable = Timetable(
            name=f"Teaching Timetable - {self.term} {self.academic_year}",
            academic_year=self.academic_year,
            term=self.term,
            type=TimetableType.TEACHING,
            generation_settings=options,
            required_slots=len(requirements),
            slots=[TimetableSlot.from_assignment(a, self.catalog) for a in result.assignments],
            unscheduled=[
                UnscheduledItem(
                    subject_id=r.subject_id,
                    class_id=r.class_id,
                    occurrence=r.occurrence,
                )
                for r in result.unscheduled
            ],
        )
        timetable.refresh()

        logger.info(
            "Placed %d/%d requirements (%d%%), %d conflicts in %.0f ms",
            result.placed_count, len(requirements),
            timetable.statistics.completion_percentage,
            timetable.statistics.total_conflicts,
            (time.perf_counter() - started) * 1000,
        )
        return timetable

    # -------------------------------------------------------------------------
    # Exam Timetable
    # -------------------------------------------------------------------------

    def generate_exam_timetable(
        self,
        teaching_timetable: Timetable,
        settings: Optional[ExamSettings] = None,
    ) -> Timetable:
        """
        Derive a Draft exam timetable from a teaching timetable.

        Every (subject, class) pair taught in the teaching timetable gets one
        exam. Pairs that fit nowhere are listed in ``timetable.unscheduled``.

        Raises:
            DataValidationError: If the teaching timetable belongs to another
                term or the catalog fails validation
        """
        settings = settings or ExamSettings()
        if (teaching_timetable.academic_year, teaching_timetable.term) != (self.academic_year, self.term):
            raise DataValidationError(
                f"Teaching timetable is for {teaching_timetable.term} "
                f"{teaching_timetable.academic_year}, not {self.term} {self.academic_year}"
            )
        errors = catalog_errors(self.catalog)
        if errors:
            raise DataValidationError(errors)

        started = time.perf_counter()
        taught = [s for s in teaching_timetable.slots if not s.is_exam]
        pairs = derive_exam_pairs(taught, self.catalog, prioritize_core=settings.prioritize_core)
        logger.info(
            "Generating exam timetable for %s %s: %d exams over %d days",
            self.term, self.academic_year, len(pairs), len(settings.exam_days),
        )

        result = ExamScheduler(self.catalog, settings).schedule(pairs)

        timetable = Timetable(
            name=f"Exam Timetable - {self.term} {self.academic_year}",
            academic_year=self.academic_year,
            term=self.term,
            type=TimetableType.EXAM,
            exam_settings=settings,
            required_slots=len(pairs),
            slots=[TimetableSlot.from_assignment(a, self.catalog) for a in result.assignments],
            unscheduled=[
                UnscheduledItem(subject_id=p.subject_id, class_id=p.class_id)
                for p in result.unscheduled
            ],
        )
        timetable.refresh()

        logger.info(
            "Scheduled %d/%d exams in %.0f ms",
            len(result.assignments), len(pairs), (time.perf_counter() - started) * 1000,
        )
        return timetable

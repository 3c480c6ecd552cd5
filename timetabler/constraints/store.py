"""
Constraint store.

Holds the constraints for one school keyed by id, and hands the placer the
active subset for a given (academic year, term).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Iterator, Optional

from .kinds import Constraint

if TYPE_CHECKING:
    from timetabler.data.models import CatalogSnapshot

logger = logging.getLogger(__name__)


class ConstraintStore:
    """
    Constraints keyed by id, in insertion order.

    Constraints are immutable; ``set_active`` swaps in a copy with the new
    activation state.
    """

    def __init__(self, constraints: Optional[Iterable[Constraint]] = None):
        self._constraints: dict[str, Constraint] = {}
        for constraint in constraints or []:
            self.add(constraint)

    def add(self, constraint: Constraint) -> None:
        if constraint.id in self._constraints:
            raise ValueError(f"Duplicate constraint ID: {constraint.id}")
        self._constraints[constraint.id] = constraint

    def get(self, constraint_id: str) -> Optional[Constraint]:
        return self._constraints.get(constraint_id)

    def set_active(self, constraint_id: str, active: bool) -> Constraint:
        """Toggle a constraint's activation state."""
        current = self._constraints.get(constraint_id)
        if current is None:
            raise KeyError(constraint_id)
        updated = current.model_copy(update={"is_active": active})
        self._constraints[constraint_id] = updated
        return updated

    def for_term(self, academic_year: str, term: str) -> "ConstraintStore":
        """Active constraints that apply to one (academic year, term)."""
        return ConstraintStore(
            c for c in self._constraints.values()
            if c.is_active and c.applies_to_term(academic_year, term)
        )

    @property
    def hard(self) -> list[Constraint]:
        return [c for c in self._constraints.values() if c.is_active and c.is_hard]

    @property
    def soft(self) -> list[Constraint]:
        return [c for c in self._constraints.values() if c.is_active and not c.is_hard]

    def check_references(self, catalog: CatalogSnapshot) -> tuple[list[str], list[str]]:
        """
        Find constraints pointing at ids the catalog does not contain.

        Hard offenders are returned as errors. Soft offenders are dropped from
        the store and returned as warnings.

        Returns:
            (errors, warnings)
        """
        lookups = {
            "teacher": catalog.get_teacher,
            "subject": catalog.get_subject,
            "class": catalog.get_class,
        }
        errors: list[str] = []
        warnings: list[str] = []

        for constraint in list(self._constraints.values()):
            missing = [
                f"{entity} {entity_id}"
                for entity, ids in constraint.referenced_ids().items()
                for entity_id in ids
                if lookups[entity](entity_id) is None
            ]
            if not missing:
                continue
            message = f"Constraint {constraint.id} references unknown {', '.join(missing)}"
            if constraint.is_hard:
                errors.append(message)
            else:
                warnings.append(message)
                logger.warning("%s; dropping soft constraint", message)
                del self._constraints[constraint.id]

        return errors, warnings

    def __iter__(self) -> Iterator[Constraint]:
        return iter(self._constraints.values())

    def __len__(self) -> int:
        return len(self._constraints)

    def __repr__(self) -> str:
        return f"ConstraintStore({len(self)} constraints, {len(self.hard)} hard)"

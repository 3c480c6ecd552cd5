"""Exception hierarchy for the timetable generator."""

from __future__ import annotations


class TimetablerError(Exception):
    """Base class for all timetabler errors."""
    pass


class DataValidationError(TimetablerError):
    """
    Raised when catalog or constraint data fails validation.

    Generation is rejected before any placement begins, so nothing is
    persisted when this is raised.
    """

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class PersistenceError(TimetablerError):
    """Raised when a timetable cannot be saved or loaded."""
    pass


class GenerationInProgressError(TimetablerError):
    """Raised when a non-blocking run finds another run holding the same key."""

    def __init__(self, tenant_id: str, academic_year: str, term: str):
        self.tenant_id = tenant_id
        self.academic_year = academic_year
        self.term = term
        super().__init__(
            f"Generation already in progress for tenant '{tenant_id}' "
            f"({academic_year}, {term})"
        )

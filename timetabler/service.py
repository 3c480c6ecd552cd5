"""
Generation service: the tenancy boundary around the engine.

The service loads snapshots for a tenant, runs the generator and persists the
result. At most one run per (tenant, academic year, term) is in flight at a
time; runs for different keys proceed in parallel.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Protocol, Union

from timetabler.constraints import ConstraintStore
from timetabler.data.loader import SchoolBundle, load_school_bundle
from timetabler.data.models import CatalogSnapshot, ExamSettings, GenerationOptions
from timetabler.exceptions import DataValidationError, GenerationInProgressError
from timetabler.output.schema import Timetable, TimetableType
from timetabler.persistence import TimetableStore
from timetabler.timetable_generator import TimetableGenerator

logger = logging.getLogger(__name__)

GenerationKey = tuple[str, str, str]


# =============================================================================
# Snapshot Providers
# =============================================================================

class SnapshotProvider(Protocol):
    """Supplies read-only catalog and constraint snapshots for a tenant's term."""

    def load_catalog(self, tenant_id: str, academic_year: str, term: str) -> CatalogSnapshot:
        ...

    def load_constraints(self, tenant_id: str, academic_year: str, term: str) -> ConstraintStore:
        ...


class StaticSnapshotProvider:
    """In-memory provider keyed by tenant id."""

    def __init__(self, bundles: Optional[dict[str, SchoolBundle]] = None):
        self.bundles: dict[str, SchoolBundle] = dict(bundles or {})

    def add(self, tenant_id: str, bundle: SchoolBundle) -> None:
        self.bundles[tenant_id] = bundle

    def _bundle(self, tenant_id: str, academic_year: str, term: str) -> SchoolBundle:
        bundle = self.bundles.get(tenant_id)
        if bundle is None:
            raise DataValidationError(f"Unknown tenant: {tenant_id}")
        _check_term(bundle, tenant_id, academic_year, term)
        return bundle

    def load_catalog(self, tenant_id: str, academic_year: str, term: str) -> CatalogSnapshot:
        return self._bundle(tenant_id, academic_year, term).catalog

    def load_constraints(self, tenant_id: str, academic_year: str, term: str) -> ConstraintStore:
        store = self._bundle(tenant_id, academic_year, term).constraints
        return store.for_term(academic_year, term)


class BundleDirectoryProvider:
    """Reads ``<root>/<tenant>.json`` school bundles on every call."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _bundle(self, tenant_id: str, academic_year: str, term: str) -> SchoolBundle:
        path = self.root / f"{tenant_id}.json"
        if not path.exists():
            raise DataValidationError(f"No school bundle for tenant {tenant_id} at {path}")
        bundle = load_school_bundle(path)
        _check_term(bundle, tenant_id, academic_year, term)
        return bundle

    def load_catalog(self, tenant_id: str, academic_year: str, term: str) -> CatalogSnapshot:
        return self._bundle(tenant_id, academic_year, term).catalog

    def load_constraints(self, tenant_id: str, academic_year: str, term: str) -> ConstraintStore:
        return self._bundle(tenant_id, academic_year, term).constraints.for_term(academic_year, term)


def _check_term(bundle: SchoolBundle, tenant_id: str, academic_year: str, term: str) -> None:
    catalog = bundle.catalog
    if (catalog.academic_year, catalog.term) != (academic_year, term):
        raise DataValidationError(
            f"Tenant {tenant_id} has no catalog for {term} {academic_year} "
            f"(found {catalog.term} {catalog.academic_year})"
        )


# =============================================================================
# Single-Flight Locks
# =============================================================================

class KeyedLockRegistry:
    """
    One lock per key, created on first use.

    A key's lock is dropped once no ``hold`` holds or waits on it, so the
    registry only grows with the number of keys in flight.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[GenerationKey, threading.Lock] = {}
        self._users: Counter[GenerationKey] = Counter()

    def lock_for(self, key: GenerationKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, key: GenerationKey, blocking: bool = True) -> Iterator[None]:
        """
        Hold the key's lock for the duration of the block.

        Raises:
            GenerationInProgressError: If ``blocking`` is False and the key is held
        """
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] += 1
        try:
            if not lock.acquire(blocking=blocking):
                raise GenerationInProgressError(*key)
            try:
                yield
            finally:
                lock.release()
        finally:
            with self._guard:
                self._users[key] -= 1
                if self._users[key] <= 0:
                    del self._users[key]
                    self._locks.pop(key, None)

    def is_locked(self, key: GenerationKey) -> bool:
        with self._guard:
            lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# =============================================================================
# Service
# =============================================================================

class GenerationService:
    """
    Loads snapshots, generates and persists timetables for tenants.

    Usage:
        service = GenerationService(BundleDirectoryProvider("schools"), JsonTimetableStore("out"))
        teaching = service.generate_teaching("greenfield", "2024", "Term 1")
        exams = service.generate_exams("greenfield", "2024", "Term 1")
    """

    def __init__(self, provider: SnapshotProvider, store: TimetableStore):
        self.provider = provider
        self.store = store
        self.locks = KeyedLockRegistry()

    def _generator(self, tenant_id: str, academic_year: str, term: str) -> TimetableGenerator:
        catalog = self.provider.load_catalog(tenant_id, academic_year, term)
        constraints = self.provider.load_constraints(tenant_id, academic_year, term)
        return TimetableGenerator(catalog, constraints)

    def generate_teaching(
        self,
        tenant_id: str,
        academic_year: str,
        term: str,
        options: Optional[GenerationOptions] = None,
        blocking: bool = True,
    ) -> Timetable:
        """
        Generate and save a teaching timetable.

        Raises:
            GenerationInProgressError: If non-blocking and a run holds the key
            DataValidationError: If the tenant's data is invalid (nothing is saved)
            PersistenceError: If saving fails
        """
        key = (tenant_id, academic_year, term)
        with self.locks.hold(key, blocking=blocking):
            logger.info("Teaching generation started for tenant %s", tenant_id)
            timetable = self._generator(*key).generate_teaching_timetable(options)
            self.store.save(tenant_id, timetable)
            return timetable

    def generate_exams(
        self,
        tenant_id: str,
        academic_year: str,
        term: str,
        settings: Optional[ExamSettings] = None,
        teaching_timetable: Optional[Timetable] = None,
        blocking: bool = True,
    ) -> Timetable:
        """
        Generate and save an exam timetable from the tenant's saved teaching
        timetable, or from ``teaching_timetable`` when given.

        Raises:
            DataValidationError: If no teaching timetable exists for the term
        """
        key = (tenant_id, academic_year, term)
        with self.locks.hold(key, blocking=blocking):
            teaching = teaching_timetable or self.store.load(
                tenant_id, academic_year, term, TimetableType.TEACHING
            )
            if teaching is None:
                raise DataValidationError(
                    f"No teaching timetable for tenant {tenant_id} ({term} {academic_year})"
                )
            logger.info("Exam generation started for tenant %s", tenant_id)
            timetable = self._generator(*key).generate_exam_timetable(teaching, settings)
            self.store.save(tenant_id, timetable)
            return timetable

"""
Timetable persistence.

A store keeps at most one timetable per (tenant, academic year, term, type);
saving replaces whatever was there. Failures surface as PersistenceError and
are never retried here.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol, Union
from urllib.parse import quote

from pydantic import ValidationError

from timetabler.exceptions import PersistenceError
from timetabler.output.schema import Timetable, TimetableType

logger = logging.getLogger(__name__)

StoreKey = tuple[str, str, str, TimetableType]


class TimetableStore(Protocol):
    """Where generated timetables are saved."""

    def save(self, tenant_id: str, timetable: Timetable) -> None:
        ...

    def load(
        self,
        tenant_id: str,
        academic_year: str,
        term: str,
        timetable_type: TimetableType = TimetableType.TEACHING,
    ) -> Optional[Timetable]:
        ...


def _key(tenant_id: str, timetable: Timetable) -> StoreKey:
    return tenant_id, timetable.academic_year, timetable.term, timetable.type


class InMemoryTimetableStore:
    """Dict-backed store; keeps copies so callers cannot mutate saved state."""

    def __init__(self):
        self._items: dict[StoreKey, Timetable] = {}
        self._lock = threading.Lock()

    def save(self, tenant_id: str, timetable: Timetable) -> None:
        with self._lock:
            self._items[_key(tenant_id, timetable)] = timetable.model_copy(deep=True)

    def load(
        self,
        tenant_id: str,
        academic_year: str,
        term: str,
        timetable_type: TimetableType = TimetableType.TEACHING,
    ) -> Optional[Timetable]:
        with self._lock:
            saved = self._items.get((tenant_id, academic_year, term, timetable_type))
        return saved.model_copy(deep=True) if saved is not None else None

    def __len__(self) -> int:
        return len(self._items)


class JsonTimetableStore:
    """
    One JSON file per timetable under ``<root>/<tenant>/``, with every key part
    percent-encoded.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so a reader never sees a half-written file.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path_for(
        self,
        tenant_id: str,
        academic_year: str,
        term: str,
        timetable_type: TimetableType = TimetableType.TEACHING,
    ) -> Path:
        name = f"{_safe(academic_year)}_{_safe(term)}_{timetable_type.value.lower()}.json"
        return self.root / _safe(tenant_id) / name

    def save(self, tenant_id: str, timetable: Timetable) -> None:
        path = self.path_for(tenant_id, timetable.academic_year, timetable.term, timetable.type)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=path.parent, suffix=".tmp", delete=False, encoding="utf-8"
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(timetable.to_json())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Could not save timetable to {path}: {e}") from e
        logger.debug("Saved %s to %s", timetable.name, path)

    def load(
        self,
        tenant_id: str,
        academic_year: str,
        term: str,
        timetable_type: TimetableType = TimetableType.TEACHING,
    ) -> Optional[Timetable]:
        path = self.path_for(tenant_id, academic_year, term, timetable_type)
        if not path.exists():
            return None
        try:
            return Timetable.from_json(path.read_text(encoding="utf-8"))
        except (OSError, ValueError, ValidationError) as e:
            raise PersistenceError(f"Could not load timetable from {path}: {e}") from e


def _safe(part: str) -> str:
    """Percent-encode a key part so distinct parts never share a path component."""
    if not part:
        return "_"
    # '_' separates parts in file names and '.' could form '..'
    return quote(part, safe="").replace("_", "%5F").replace(".", "%2E")

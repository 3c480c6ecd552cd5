"""Load and validate school bundles from JSON files."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from timetabler.constraints import ConstraintStore, parse_constraint
from timetabler.constraints.kinds import constraint_type_for
from timetabler.exceptions import DataValidationError

from .models import CatalogSnapshot

logger = logging.getLogger(__name__)


@dataclass
class SchoolBundle:
    """Everything one generation run reads: the catalog and its constraints."""
    catalog: CatalogSnapshot
    constraints: ConstraintStore = field(default_factory=ConstraintStore)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the document shape ``load_school_bundle`` reads."""
        data = self.catalog.model_dump(mode="json", exclude_none=True)
        data["constraints"] = [
            c.model_dump(mode="json", exclude_none=True) for c in self.constraints
        ]
        return data


# =============================================================================
# Loading
# =============================================================================

def load_school_bundle(path: Union[str, Path]) -> SchoolBundle:
    """
    Load a school bundle from a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        SchoolBundle with the catalog for the bundle's term and every
        constraint that parsed. Constraints for other terms stay in the store;
        ``ConstraintStore.for_term`` filters them out at generation time.

    Raises:
        FileNotFoundError: If the file doesn't exist
        json.JSONDecodeError: If the file isn't valid JSON
        DataValidationError: If required fields are missing or a hard
            constraint is malformed
        pydantic.ValidationError: If a catalog entity fails validation
    """
    path = Path(path)

    with open(path) as f:
        data = json.load(f)

    return parse_school_bundle(data)


def parse_school_bundle(data: dict[str, Any]) -> SchoolBundle:
    """Build a SchoolBundle from an already-decoded document."""
    converted = _convert_keys_to_snake_case(data)

    errors = [
        f"Missing required field: {name}"
        for name in ("academic_year", "term")
        if not converted.get(name)
    ]
    if errors:
        raise DataValidationError(errors)

    academic_year = str(converted["academic_year"])
    term = str(converted["term"])

    school_days = [
        day for day in converted.get("school_days", [])
        if day.get("is_active", True)
        and str(day.get("academic_year") or academic_year) == academic_year
        and str(day.get("term") or term) == term
    ]

    catalog = CatalogSnapshot.model_validate({
        "academic_year": academic_year,
        "term": term,
        "subjects": converted.get("subjects", []),
        "classes": converted.get("classes", []),
        "teachers": converted.get("teachers", []),
        "school_days": school_days,
    })

    constraints, warnings = parse_constraints(converted.get("constraints", []))
    return SchoolBundle(catalog=catalog, constraints=constraints, warnings=warnings)


def parse_constraints(documents: list[dict[str, Any]]) -> tuple[ConstraintStore, list[str]]:
    """
    Parse constraint documents into a store.

    A soft constraint that fails to parse is dropped and reported as a
    warning. A hard one is a data error.

    Returns:
        (store, warnings)

    Raises:
        DataValidationError: If any hard constraint is malformed
    """
    store = ConstraintStore()
    errors: list[str] = []
    warnings: list[str] = []

    for i, document in enumerate(documents):
        flat = flatten_constraint(document)
        label = flat.get("id") or f"#{i}"
        try:
            constraint = parse_constraint(flat)
            store.add(constraint)
        except (ValidationError, ValueError) as e:
            message = f"Constraint {label} is malformed: {_first_error(e)}"
            if flat.get("severity") == "Hard":
                errors.append(message)
            else:
                logger.warning("%s; dropping soft constraint", message)
                warnings.append(message)

    if errors:
        raise DataValidationError(errors)
    return store, warnings


def flatten_constraint(document: dict[str, Any]) -> dict[str, Any]:
    """
    Flatten the nested ``{type, params, conditions}`` constraint form.

    Documents already in flat form (with ``kind``) pass through. Parameters
    the constraint's kind does not take are ignored.
    """
    flat = {k: v for k, v in document.items() if k not in ("type", "params", "conditions")}
    if "kind" not in flat and "type" in document:
        flat["kind"] = document["type"]
    if "conditions" in document and "scope" not in flat:
        flat["scope"] = document["conditions"] or {}

    params = document.get("params") or {}
    constraint_type = constraint_type_for(flat.get("kind"))
    for key, value in params.items():
        if value is None:
            continue
        if constraint_type is not None and key not in constraint_type.model_fields:
            logger.debug("Ignoring parameter %r on %s constraint", key, flat.get("kind"))
            continue
        flat.setdefault(key, value)
    return flat


def _first_error(error: Exception) -> str:
    if isinstance(error, ValidationError):
        first = error.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        return f"{location}: {first['msg']}" if location else first["msg"]
    return str(error)


def _convert_keys_to_snake_case(obj: Any) -> Any:
    """Recursively convert dictionary keys from camelCase to snake_case."""

    def to_snake_case(name: str) -> str:
        name = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
        name = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', name)
        return name.lower()

    if isinstance(obj, dict):
        return {to_snake_case(k): _convert_keys_to_snake_case(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_convert_keys_to_snake_case(item) for item in obj]
    else:
        return obj


# =============================================================================
# Validation
# =============================================================================

def validate_catalog(catalog: CatalogSnapshot) -> None:
    """
    Validate catalog contents and references before generation.

    Raises:
        DataValidationError: If validation fails
    """
    errors = catalog_errors(catalog)
    if errors:
        raise DataValidationError(errors)


def validate_bundle(bundle: SchoolBundle) -> list[str]:
    """
    Validate the catalog and the constraints' references to it.

    Soft constraints with unknown references are dropped from the bundle.

    Returns:
        Warnings for dropped soft constraints

    Raises:
        DataValidationError: If the catalog or a hard constraint is invalid
    """
    errors = catalog_errors(bundle.catalog)
    constraint_errors, warnings = bundle.constraints.check_references(bundle.catalog)
    errors.extend(constraint_errors)
    if errors:
        raise DataValidationError(errors)
    return warnings


def catalog_errors(catalog: CatalogSnapshot) -> list[str]:
    """Collect every catalog problem that blocks generation."""
    errors: list[str] = []

    if not catalog.active_subjects:
        errors.append("No active subjects")
    if not catalog.active_classes:
        errors.append("No active classes")
    if not catalog.active_teachers:
        errors.append("No active teachers")

    active_days = [d for d in catalog.school_days if d.is_active]
    if not active_days:
        errors.append("No active school days")
    elif not catalog.teaching_periods():
        errors.append("No teaching periods in the school day grid")

    # Check for duplicate IDs
    def check_duplicates(ids: list[str], name: str) -> None:
        seen = set()
        for id_ in ids:
            if id_ in seen:
                errors.append(f"Duplicate {name} ID: {id_}")
            seen.add(id_)

    check_duplicates([s.id for s in catalog.subjects], "subject")
    check_duplicates([c.id for c in catalog.classes], "class")
    check_duplicates([t.id for t in catalog.teachers], "teacher")
    check_duplicates([d.day.value for d in active_days], "school day")

    for school_day in active_days:
        check_duplicates([p.id for p in school_day.periods], f"period on {school_day.day.value}")
        for current, following in school_day.find_overlaps():
            errors.append(
                f"Period overlap on {school_day.day.value}: {current.id} ends at "
                f"{current.end_time} but {following.id} starts at {following.start_time}"
            )

    subject_ids = {s.id for s in catalog.subjects}
    for teacher in catalog.teachers:
        for subject_id in teacher.subjects:
            if subject_id not in subject_ids:
                errors.append(f"Teacher {teacher.id} references unknown subject: {subject_id}")

    teacher_ids = {t.id for t in catalog.teachers}
    for school_class in catalog.classes:
        if school_class.class_teacher_id and school_class.class_teacher_id not in teacher_ids:
            errors.append(
                f"Class {school_class.id} references unknown class teacher: "
                f"{school_class.class_teacher_id}"
            )

    return errors

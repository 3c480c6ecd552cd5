"""Tests for requirement derivation and priority."""

from __future__ import annotations

import pytest

from timetabler.data.models import (
    CatalogSnapshot,
    Difficulty,
    Period,
    RecordStatus,
    SchoolClass,
    SchoolDay,
    Subject,
    SubjectCategory,
    Teacher,
    WeekDay,
)
from timetabler.engine import calculate_priority, count_required_slots, derive_requirements


@pytest.fixture
def catalog() -> CatalogSnapshot:
    return CatalogSnapshot(
        academic_year="2024",
        term="Term 1",
        subjects=[
            Subject(id="eng", name="English", levels=["Form 1", "Form 2"], periods_per_week=2),
            Subject(
                id="mat", name="Mathematics", levels=["Form 1"], periods_per_week=3,
                category=SubjectCategory.MATHEMATICS, difficulty=Difficulty.HIGH,
            ),
            Subject(
                id="phy", name="Physics", levels=["Form 2"], periods_per_week=1,
                category=SubjectCategory.SCIENCE, difficulty=Difficulty.HIGH, requires_lab=True,
            ),
            Subject(id="fre", name="French", levels=["Form 1"], periods_per_week=2),
            Subject(
                id="art", name="Art", levels=["Form 1"], periods_per_week=2,
                status=RecordStatus.INACTIVE,
            ),
        ],
        classes=[
            SchoolClass(id="f1e", name="Form 1 East", level="Form 1"),
            SchoolClass(id="f2e", name="Form 2 East", level="Form 2"),
        ],
        teachers=[
            Teacher(id="t1", name="Jane Wanjiru", subjects=["eng", "mat", "art"]),
            Teacher(id="t2", name="Peter Otieno", subjects=["eng", "phy"]),
            Teacher(id="t3", name="Grace Mutua", subjects=["fre"], status=RecordStatus.INACTIVE),
        ],
        school_days=[
            SchoolDay(
                day=WeekDay.MONDAY,
                periods=[Period(id="P1", name="Period 1", start_time="08:00", end_time="08:40")],
            ),
        ],
    )


class TestCalculatePriority:
    """Tests for calculate_priority."""

    def test_default_subject(self):
        assert calculate_priority(Subject(id="x", name="X")) == 6

    def test_core_categories(self):
        core = Subject(id="x", name="X", category=SubjectCategory.CORE, difficulty=Difficulty.LOW)
        maths = Subject(id="y", name="Y", category=SubjectCategory.MATHEMATICS, difficulty=Difficulty.LOW)
        assert calculate_priority(core) == 8
        assert calculate_priority(maths) == 8

    def test_difficult_lab_subject(self):
        subject = Subject(
            id="x", name="X", category=SubjectCategory.SCIENCE,
            difficulty=Difficulty.HIGH, requires_lab=True,
        )
        assert calculate_priority(subject) == 9

    def test_maximum(self):
        subject = Subject(
            id="x", name="X", category=SubjectCategory.CORE,
            difficulty=Difficulty.HIGH, requires_lab=True,
        )
        assert calculate_priority(subject) == 12


class TestDeriveRequirements:
    """Tests for derive_requirements."""

    def test_counts(self, catalog):
        requirements = derive_requirements(catalog)
        # eng 2 x 2 classes, mat 3 x f1e, phy 1 x f2e
        assert len(requirements) == 8
        assert count_required_slots(catalog) == 8

    def test_sorted_by_priority(self, catalog):
        requirements = derive_requirements(catalog)
        priorities = [r.priority for r in requirements]
        assert priorities == sorted(priorities, reverse=True)
        assert requirements[0].subject_id == "mat"
        assert requirements[3].subject_id == "phy"

    def test_equal_priority_keeps_catalog_order(self, catalog):
        english = [r for r in derive_requirements(catalog) if r.subject_id == "eng"]
        assert [r.id for r in english] == ["eng-f1e-0", "eng-f1e-1", "eng-f2e-0", "eng-f2e-1"]

    def test_level_filter(self, catalog):
        requirements = derive_requirements(catalog)
        assert {r.class_id for r in requirements if r.subject_id == "mat"} == {"f1e"}
        assert {r.class_id for r in requirements if r.subject_id == "phy"} == {"f2e"}

    def test_inactive_subject_skipped(self, catalog):
        assert not any(r.subject_id == "art" for r in derive_requirements(catalog))

    def test_subject_without_active_teacher_skipped(self, catalog):
        assert not any(r.subject_id == "fre" for r in derive_requirements(catalog))

    def test_requirement_fields(self, catalog):
        physics = next(r for r in derive_requirements(catalog) if r.subject_id == "phy")
        assert physics.id == "phy-f2e-0"
        assert physics.teacher_ids == ("t2",)
        assert physics.requires_lab
        assert physics.is_difficult
        assert physics.duration == 40
        assert physics.priority == 9

    def test_eligible_teachers_in_catalog_order(self, catalog):
        english = next(r for r in derive_requirements(catalog) if r.subject_id == "eng")
        assert english.teacher_ids == ("t1", "t2")

    def test_zero_periods_per_week(self, catalog):
        catalog = CatalogSnapshot(
            academic_year="2024",
            term="Term 1",
            subjects=[Subject(id="eng", name="English", levels=["Form 1"], periods_per_week=0)],
            classes=catalog.classes,
            teachers=catalog.teachers,
        )
        assert derive_requirements(catalog) == []

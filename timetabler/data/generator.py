"""
Sample data generator for testing the timetable engine.

This module generates realistic school bundles for testing purposes, with
configurable size and complexity.

Usage:
    from timetabler.data.generator import generate_sample_school, generate_small_school

    # Generate with custom config
    bundle = generate_sample_school(GeneratorConfig(num_teachers=30))

    # Quick test data
    small_bundle = generate_small_school()

    # Stress test data
    large_bundle = generate_large_school()
"""

from __future__ import annotations

import json
import random
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from timetabler.constraints import (
    ConstraintStore,
    LabRequiredConstraint,
    NoConsecutiveDifficultConstraint,
    Severity,
    TeacherUnavailableConstraint,
)

from .loader import SchoolBundle
from .models import (
    CatalogSnapshot,
    Difficulty,
    Period,
    PeriodType,
    PreferredTimeSlot,
    SchoolClass,
    SchoolDay,
    Subject,
    SubjectCategory,
    Teacher,
    TimeOfDay,
    WeekDay,
    minutes_to_time,
)


# =============================================================================
# Name Data
# =============================================================================

FIRST_NAMES = [
    "James", "John", "Robert", "Michael", "David", "William", "Richard", "Joseph",
    "Thomas", "Christopher", "Sarah", "Jessica", "Emily", "Ashley", "Amanda",
    "Elizabeth", "Jennifer", "Rachel", "Laura", "Nicole", "Emma", "Olivia",
    "Grace", "Faith", "Mercy", "Daniel", "Matthew", "Andrew", "Joshua",
    "Wanjiru", "Achieng", "Kamau", "Otieno", "Njeri", "Mwangi", "Akinyi",
    "Hannah", "Abigail", "Natalie", "Victoria", "Lucy", "Brian", "Kevin", "Peter",
]

LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
    "Wilson", "Anderson", "Taylor", "Moore", "Jackson", "Martin", "Lee", "Thompson",
    "Omondi", "Kariuki", "Mutua", "Wekesa", "Chebet", "Kiplagat", "Nyambura", "Odhiambo",
    "White", "Harris", "Clark", "Lewis", "Robinson", "Walker", "Young", "Allen",
    "King", "Wright", "Scott", "Hill", "Green", "Adams", "Baker", "Hall",
]


# =============================================================================
# Subject Definitions
# =============================================================================

CORE_SUBJECTS = [
    {"id": "eng", "name": "English", "code": "ENG", "category": SubjectCategory.CORE,
     "difficulty": Difficulty.MEDIUM, "periods_per_week": 5, "can_be_double_period": True},
    {"id": "mat", "name": "Mathematics", "code": "MAT", "category": SubjectCategory.MATHEMATICS,
     "difficulty": Difficulty.HIGH, "periods_per_week": 5,
     "preferred": [TimeOfDay.MORNING]},
    {"id": "kis", "name": "Kiswahili", "code": "KIS", "category": SubjectCategory.LANGUAGES,
     "difficulty": Difficulty.MEDIUM, "periods_per_week": 4},
    {"id": "bio", "name": "Biology", "code": "BIO", "category": SubjectCategory.SCIENCE,
     "difficulty": Difficulty.HIGH, "periods_per_week": 3, "requires_lab": True,
     "can_be_double_period": True},
    {"id": "che", "name": "Chemistry", "code": "CHE", "category": SubjectCategory.SCIENCE,
     "difficulty": Difficulty.HIGH, "periods_per_week": 3, "requires_lab": True,
     "can_be_double_period": True, "preferred": [TimeOfDay.MORNING]},
    {"id": "phy", "name": "Physics", "code": "PHY", "category": SubjectCategory.SCIENCE,
     "difficulty": Difficulty.HIGH, "periods_per_week": 3, "requires_lab": True},
]

SPECIALIST_SUBJECTS = [
    {"id": "his", "name": "History", "code": "HIS", "category": SubjectCategory.HUMANITIES,
     "difficulty": Difficulty.MEDIUM, "periods_per_week": 2},
    {"id": "geo", "name": "Geography", "code": "GEO", "category": SubjectCategory.HUMANITIES,
     "difficulty": Difficulty.MEDIUM, "periods_per_week": 2},
    {"id": "cre", "name": "Religious Education", "code": "CRE", "category": SubjectCategory.HUMANITIES,
     "difficulty": Difficulty.LOW, "periods_per_week": 2},
    {"id": "pe", "name": "Physical Education", "code": "PE", "category": SubjectCategory.PHYSICAL,
     "difficulty": Difficulty.LOW, "periods_per_week": 2, "preferred": [TimeOfDay.AFTERNOON]},
    {"id": "art", "name": "Art & Design", "code": "ART", "category": SubjectCategory.ARTS,
     "difficulty": Difficulty.LOW, "periods_per_week": 1, "can_be_double_period": True},
    {"id": "mus", "name": "Music", "code": "MUS", "category": SubjectCategory.ARTS,
     "difficulty": Difficulty.LOW, "periods_per_week": 1},
    {"id": "cmp", "name": "Computer Studies", "code": "CMP", "category": SubjectCategory.TECHNICAL,
     "difficulty": Difficulty.MEDIUM, "periods_per_week": 2, "requires_lab": True},
    {"id": "agr", "name": "Agriculture", "code": "AGR", "category": SubjectCategory.TECHNICAL,
     "difficulty": Difficulty.MEDIUM, "periods_per_week": 2},
    {"id": "bus", "name": "Business Studies", "code": "BUS", "category": SubjectCategory.ELECTIVE,
     "difficulty": Difficulty.MEDIUM, "periods_per_week": 2},
    {"id": "fre", "name": "French", "code": "FRE", "category": SubjectCategory.LANGUAGES,
     "difficulty": Difficulty.MEDIUM, "periods_per_week": 2},
]

# Unavailability reasons
UNAVAILABILITY_REASONS = [
    "Staff meeting",
    "Professional development",
    "Part-time schedule",
    "Administrative duties",
    "Department meeting",
    "Games duty",
]

STREAMS = ["East", "West", "North", "South", "Central", "Hill"]


# =============================================================================
# Generator Configuration
# =============================================================================

@dataclass
class GeneratorConfig:
    """Configuration for data generation.

    Note: The default configuration is designed to fit comfortably in the
    grid. Key points for completeness:
    - A class's weekly periods must not exceed teaching periods per week
    - Teachers need enough combined capacity (daily cap x days) for every
      class-subject period
    """
    # Entity counts
    num_teachers: int = 20
    levels: list[str] = field(default_factory=lambda: ["Form 1", "Form 2", "Form 3", "Form 4"])
    streams_per_level: int = 2

    # Teacher settings
    teacher_min_subjects: int = 1
    teacher_max_subjects: int = 3
    teacher_max_unavailability: int = 2
    class_teacher_share: float = 0.5

    # Class settings
    min_capacity: int = 35
    max_capacity: int = 45

    # Period settings
    days: list[WeekDay] = field(default_factory=lambda: [
        WeekDay.MONDAY, WeekDay.TUESDAY, WeekDay.WEDNESDAY, WeekDay.THURSDAY, WeekDay.FRIDAY,
    ])
    periods_per_day: int = 8
    day_start_minutes: int = 480  # 8:00 AM
    period_duration: int = 40
    break_after_period: int = 3
    break_duration: int = 20
    lunch_after_period: int = 6
    lunch_duration: int = 60

    # Subject selection
    include_specialist_subjects: bool = True
    num_specialist_subjects: int = 5

    # Constraints
    include_constraints: bool = True
    lab_count: int = 2

    # Term
    academic_year: str = "2024"
    term: str = "Term 1"

    # Randomization
    seed: Optional[int] = None


# =============================================================================
# Generator Functions
# =============================================================================

def generate_sample_school(config: GeneratorConfig | None = None) -> SchoolBundle:
    """
    Generate a sample school bundle.

    Args:
        config: Generator configuration (uses defaults if None)

    Returns:
        SchoolBundle with generated catalog and constraints
    """
    if config is None:
        config = GeneratorConfig()

    rng = random.Random(config.seed)

    subjects = _generate_subjects(config, rng)
    teachers = _generate_teachers(config, subjects, rng)
    classes, teachers = _generate_classes(config, teachers, rng)
    school_days = _generate_school_days(config)

    catalog = CatalogSnapshot(
        academic_year=config.academic_year,
        term=config.term,
        subjects=subjects,
        classes=classes,
        teachers=teachers,
        school_days=school_days,
    )
    constraints = _generate_constraints(config, catalog, rng) if config.include_constraints else ConstraintStore()
    return SchoolBundle(catalog=catalog, constraints=constraints)


def generate_small_school(seed: int | None = None) -> SchoolBundle:
    """
    Generate a small school for quick testing.

    - 10 teachers
    - 4 classes (Form 1 and Form 2, two streams each)
    - 6 core + 3 specialist subjects

    Args:
        seed: Random seed for reproducibility
    """
    config = GeneratorConfig(
        num_teachers=10,
        levels=["Form 1", "Form 2"],
        streams_per_level=2,
        num_specialist_subjects=3,
        seed=seed,
    )
    return generate_sample_school(config)


def generate_medium_school(seed: int | None = None) -> SchoolBundle:
    """
    Generate a medium-sized school for standard testing.

    - 24 teachers
    - 12 classes (3 streams per form)

    Args:
        seed: Random seed for reproducibility
    """
    config = GeneratorConfig(
        num_teachers=24,
        streams_per_level=3,
        num_specialist_subjects=5,
        seed=seed,
    )
    return generate_sample_school(config)


def generate_large_school(seed: int | None = None) -> SchoolBundle:
    """
    Generate a large school for stress testing.

    - 60 teachers
    - 24 classes (6 streams per form)

    Args:
        seed: Random seed for reproducibility
    """
    config = GeneratorConfig(
        num_teachers=60,
        streams_per_level=6,
        num_specialist_subjects=7,
        teacher_max_unavailability=1,
        lab_count=4,
        seed=seed,
    )
    return generate_sample_school(config)


# =============================================================================
# Private Generator Helpers
# =============================================================================

def _generate_subjects(config: GeneratorConfig, rng: random.Random) -> list[Subject]:
    """Generate subjects taught at every configured level."""
    selected = list(CORE_SUBJECTS)
    if config.include_specialist_subjects:
        selected += rng.sample(
            SPECIALIST_SUBJECTS,
            min(config.num_specialist_subjects, len(SPECIALIST_SUBJECTS)),
        )
    return [_create_subject(data, config) for data in selected]


def _create_subject(data: dict, config: GeneratorConfig) -> Subject:
    """Create a Subject from data dictionary."""
    return Subject(
        id=data["id"],
        name=data["name"],
        code=data["code"],
        category=data["category"],
        levels=list(config.levels),
        periods_per_week=data["periods_per_week"],
        period_duration=config.period_duration,
        difficulty=data["difficulty"],
        requires_lab=data.get("requires_lab", False),
        can_be_double_period=data.get("can_be_double_period", False),
        preferred_time_slots=[PreferredTimeSlot(period=p) for p in data.get("preferred", [])],
        exam_duration=120 if data["category"] in (SubjectCategory.CORE, SubjectCategory.MATHEMATICS) else 90,
    )


def _generate_teachers(
    config: GeneratorConfig,
    subjects: list[Subject],
    rng: random.Random,
) -> list[Teacher]:
    """Generate teachers; every subject gets at least one qualified teacher."""
    teachers = []
    used_names: set[str] = set()
    subject_ids = [s.id for s in subjects]

    for i in range(config.num_teachers):
        # Generate unique name
        while True:
            full_name = f"{rng.choice(FIRST_NAMES)} {rng.choice(LAST_NAMES)}"
            if full_name not in used_names or len(used_names) >= len(FIRST_NAMES) * len(LAST_NAMES):
                used_names.add(full_name)
                break

        num_subjects = rng.randint(config.teacher_min_subjects, config.teacher_max_subjects)
        # Round-robin a first subject so coverage never depends on chance
        first = subject_ids[i % len(subject_ids)]
        others = [s for s in subject_ids if s != first]
        teacher_subjects = [first] + rng.sample(others, min(num_subjects - 1, len(others)))

        teachers.append(Teacher(
            id=f"t{i + 1}",
            name=full_name,
            subjects=teacher_subjects,
        ))

    return teachers


def _generate_classes(
    config: GeneratorConfig,
    teachers: list[Teacher],
    rng: random.Random,
) -> tuple[list[SchoolClass], list[Teacher]]:
    """Generate classes per level and stream, and pick class teachers."""
    classes = []
    num_class_teachers = int(len(teachers) * config.class_teacher_share)
    homeroom: dict[str, str] = {}

    for level_index, level in enumerate(config.levels):
        for stream in STREAMS[:config.streams_per_level]:
            class_id = f"f{level_index + 1}{stream[0].lower()}"
            class_teacher_id = None
            if len(homeroom) < num_class_teachers:
                class_teacher_id = teachers[len(homeroom)].id
                homeroom[class_teacher_id] = class_id
            classes.append(SchoolClass(
                id=class_id,
                name=f"{level} {stream}",
                level=level,
                stream=stream,
                capacity=rng.randint(config.min_capacity, config.max_capacity),
                class_teacher_id=class_teacher_id,
            ))

    teachers = [
        t.model_copy(update={"assigned_class_id": homeroom[t.id]}) if t.id in homeroom else t
        for t in teachers
    ]
    return classes, teachers


def _generate_school_days(config: GeneratorConfig) -> list[SchoolDay]:
    """Generate the same period grid, with a break and lunch, for every day."""
    return [
        SchoolDay(
            day=day,
            periods=_generate_periods(config),
            academic_year=config.academic_year,
            term=config.term,
        )
        for day in config.days
    ]


def _generate_periods(config: GeneratorConfig) -> list[Period]:
    """Generate one day's period structure."""
    periods = []
    current_time = config.day_start_minutes

    for period_num in range(1, config.periods_per_day + 1):
        periods.append(Period(
            id=f"p{period_num}",
            name=f"Period {period_num}",
            start_time=minutes_to_time(current_time),
            end_time=minutes_to_time(current_time + config.period_duration),
        ))
        current_time += config.period_duration

        if period_num == config.break_after_period:
            periods.append(_pause("break", "Break", current_time, config.break_duration, PeriodType.BREAK))
            current_time += config.break_duration

        if period_num == config.lunch_after_period:
            periods.append(_pause("lunch", "Lunch", current_time, config.lunch_duration, PeriodType.LUNCH))
            current_time += config.lunch_duration

    return periods


def _pause(period_id: str, name: str, start: int, duration: int, period_type: PeriodType) -> Period:
    return Period(
        id=period_id,
        name=name,
        start_time=minutes_to_time(start),
        end_time=minutes_to_time(start + duration),
        type=period_type,
    )


def _generate_constraints(
    config: GeneratorConfig,
    catalog: CatalogSnapshot,
    rng: random.Random,
) -> ConstraintStore:
    """Generate a handful of soft constraints typical of a real school."""
    store = ConstraintStore()
    store.add(NoConsecutiveDifficultConstraint(
        id="c-no-consecutive-difficult",
        name="No back-to-back difficult subjects",
        weight=6,
        academic_year=config.academic_year,
        term=config.term,
    ))
    store.add(LabRequiredConstraint(
        id="c-lab-capacity",
        name="Laboratory capacity",
        severity=Severity.SOFT,
        weight=8,
        lab_count=config.lab_count,
        academic_year=config.academic_year,
        term=config.term,
    ))

    for teacher in catalog.teachers:
        for n in range(rng.randint(0, config.teacher_max_unavailability)):
            day = rng.choice(config.days)
            start = config.day_start_minutes + rng.randint(0, config.periods_per_day - 2) * config.period_duration
            store.add(TeacherUnavailableConstraint(
                id=f"c-{teacher.id}-away-{n + 1}",
                name=rng.choice(UNAVAILABILITY_REASONS),
                weight=rng.randint(3, 7),
                academic_year=config.academic_year,
                term=config.term,
                teacher_id=teacher.id,
                day=day,
                start_time=minutes_to_time(start),
                end_time=minutes_to_time(start + config.period_duration),
            ))

    return store


# =============================================================================
# Utility Functions
# =============================================================================

def save_generated_school(bundle: SchoolBundle, filepath: Union[str, Path]) -> None:
    """
    Save a generated school bundle to a JSON file ``load_school_bundle`` reads.

    Args:
        bundle: Generated SchoolBundle
        filepath: Path to save JSON file
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(bundle.to_dict(), f, indent=2)


def get_generation_stats(bundle: SchoolBundle) -> dict[str, Any]:
    """
    Get statistics about generated school data.

    Args:
        bundle: Generated SchoolBundle

    Returns:
        Dictionary with statistics
    """
    catalog = bundle.catalog
    teaching_periods = len(catalog.teaching_periods())

    class_loads = {
        c.id: sum(s.periods_per_week for s in catalog.active_subjects if s.applies_to_level(c.level))
        for c in catalog.active_classes
    }
    required_slots = sum(class_loads.values())
    max_class_load = max(class_loads.values()) if class_loads else 0

    # Upper bound at the default daily cap of six periods
    teacher_capacity = len(catalog.active_teachers) * 6 * len(catalog.active_days)
    utilization = required_slots / teacher_capacity * 100 if teacher_capacity > 0 else 0

    return {
        "teachers": len(catalog.teachers),
        "classes": len(catalog.classes),
        "subjects": len(catalog.subjects),
        "school_days": len(catalog.active_days),
        "teaching_periods": teaching_periods,
        "constraints": len(bundle.constraints),
        "required_slots": required_slots,
        "max_class_load": max_class_load,
        "teacher_utilization_percent": round(utilization, 1),
        "is_feasible": max_class_load <= teaching_periods and utilization <= 100,
    }

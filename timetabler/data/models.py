"""
Pydantic models for the school catalog and generation settings.

Time conventions:
- Times travel as 'HH:MM' strings (24-hour clock)
- Internally they are compared as minutes from midnight (0-1439)
- Days are named weekdays, Monday through Saturday

Example times:
- 8:00 AM = "08:00" = 480
- 12:30 PM = "12:30" = 750
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# Constants and Enums
# =============================================================================

class WeekDay(str, Enum):
    """School day of the week."""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"

    @property
    def position(self) -> int:
        """Position in the week (Monday = 0)."""
        return list(WeekDay).index(self)

    @classmethod
    def parse(cls, value: str) -> "WeekDay":
        """Parse a day name case-insensitively ('monday', 'MON', 'Monday')."""
        lowered = value.strip().lower()
        for day in cls:
            if day.value.lower() == lowered or day.value[:3].lower() == lowered:
                return day
        raise ValueError(f"Unknown day: {value!r}")


class PeriodType(str, Enum):
    """Kind of period in a day's grid. Only teaching periods are schedulable."""
    TEACHING = "Teaching"
    BREAK = "Break"
    LUNCH = "Lunch"
    ASSEMBLY = "Assembly"
    STUDY = "Study"


class Difficulty(str, Enum):
    """Difficulty tier of a subject."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class SubjectCategory(str, Enum):
    """Subject category."""
    CORE = "Core"
    MATHEMATICS = "Mathematics"
    SCIENCE = "Science"
    LANGUAGES = "Languages"
    HUMANITIES = "Humanities"
    ARTS = "Arts"
    TECHNICAL = "Technical"
    PHYSICAL = "Physical"
    ELECTIVE = "Elective"
    OTHER = "Other"


class TimeOfDay(str, Enum):
    """Coarse time-of-day bucket used by subject preferences."""
    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    EVENING = "Evening"

    @property
    def hours(self) -> tuple[int, int]:
        """Half-open hour range [start, end) covered by this bucket."""
        return {
            TimeOfDay.MORNING: (8, 12),
            TimeOfDay.AFTERNOON: (12, 17),
            TimeOfDay.EVENING: (17, 20),
        }[self]

    def contains(self, minutes: int) -> bool:
        """Whether a start time (minutes from midnight) falls in this bucket."""
        start, end = self.hours
        return start <= minutes // 60 < end


class RecordStatus(str, Enum):
    """Lifecycle status of a catalog record."""
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class OptimizationGoal(str, Enum):
    """Informational tag recorded with a generation run."""
    BALANCED_WORKLOAD = "BalancedWorkload"
    TEACHER_PREFERENCES = "TeacherPreferences"
    SUBJECT_DISTRIBUTION = "SubjectDistribution"
    MINIMIZE_CONFLICTS = "MinimizeConflicts"


class ExamType(str, Enum):
    """Kind of exam sitting."""
    MIDTERM = "Midterm"
    FINAL = "Final"
    QUIZ = "Quiz"
    PRACTICAL = "Practical"


# Type aliases for documentation
ClockTime = Annotated[
    str,
    Field(pattern=r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$", description="Time as HH:MM"),
]

MORNING_CUTOFF_MINUTES = 12 * 60


# =============================================================================
# Helper Functions
# =============================================================================

def minutes_to_time(minutes: int) -> str:
    """Convert minutes from midnight to HH:MM format."""
    h, m = divmod(minutes, 60)
    return f"{h:02d}:{m:02d}"


def time_to_minutes(time_str: str) -> int:
    """Convert HH:MM format to minutes from midnight."""
    h, m = map(int, time_str.split(":"))
    return h * 60 + m


def windows_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Whether two half-open minute ranges intersect."""
    return start_a < end_b and start_b < end_a


# =============================================================================
# Core Entity Models
# =============================================================================

class PreferredTimeSlot(BaseModel):
    """A subject's preferred placement: a time-of-day bucket, optionally on one day."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    day: Optional[WeekDay] = Field(default=None, description="Day (None = any day)")
    period: TimeOfDay = Field(description="Time-of-day bucket")

    def matches(self, day: WeekDay, start_minutes: int) -> bool:
        if self.day is not None and self.day != day:
            return False
        return self.period.contains(start_minutes)


class Subject(BaseModel):
    """Subject taught to one or more class levels."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Subject name")
    code: Optional[str] = Field(default=None, max_length=12, description="Short code")
    category: SubjectCategory = Field(default=SubjectCategory.OTHER, description="Subject category")
    levels: list[str] = Field(default_factory=list, description="Class levels this subject applies to")
    periods_per_week: int = Field(default=1, ge=0, le=20, description="Required periods per week")
    period_duration: int = Field(default=40, ge=5, le=180, description="Period length in minutes")
    difficulty: Difficulty = Field(default=Difficulty.MEDIUM, description="Difficulty tier")
    requires_lab: bool = Field(default=False, description="Needs a laboratory")
    can_be_double_period: bool = Field(default=False, description="May run as a double period")
    preferred_time_slots: list[PreferredTimeSlot] = Field(default_factory=list)
    exam_duration: int = Field(default=60, ge=5, le=300, description="Exam length in minutes")
    status: RecordStatus = Field(default=RecordStatus.ACTIVE)

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE

    def applies_to_level(self, level: str) -> bool:
        """Whether classes at this level take the subject."""
        return level in self.levels

    def __str__(self) -> str:
        return f"{self.name} ({self.code or self.id})"


class SchoolClass(BaseModel):
    """
    A class (student group).
    Named 'SchoolClass' to avoid collision with Python's 'class' keyword.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Class name (e.g., 'Form 1 East')")
    level: str = Field(min_length=1, description="Level (e.g., 'Form 1')")
    stream: Optional[str] = Field(default=None, description="Stream within the level")
    capacity: Optional[int] = Field(default=None, ge=1, description="Number of seats")
    class_teacher_id: Optional[str] = Field(default=None, description="Designated class teacher")
    status: RecordStatus = Field(default=RecordStatus.ACTIVE)

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE

    def __str__(self) -> str:
        return self.name


class Teacher(BaseModel):
    """Teacher entity."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1, description="Unique identifier")
    name: str = Field(min_length=1, description="Full name")
    status: RecordStatus = Field(default=RecordStatus.ACTIVE)
    subjects: list[str] = Field(default_factory=list, description="Subject IDs this teacher can teach")
    assigned_class_id: Optional[str] = Field(default=None, description="Home class, if a class teacher")

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE

    def is_eligible_for(self, subject_id: str) -> bool:
        """Active and qualified for the subject."""
        return self.is_active and subject_id in self.subjects

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"


class Period(BaseModel):
    """Period in one day's grid."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1, description="Identifier, unique within the day")
    name: str = Field(min_length=1, description="Display name (e.g., 'Period 1')")
    start_time: ClockTime
    end_time: ClockTime
    type: PeriodType = Field(default=PeriodType.TEACHING)

    @model_validator(mode="after")
    def validate_time_range(self) -> "Period":
        """Ensure start time is before end time."""
        if self.start_minutes >= self.end_minutes:
            raise ValueError(
                f"start_time ({self.start_time}) must be before end_time ({self.end_time})"
            )
        return self

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    @property
    def is_teaching(self) -> bool:
        """Whether lessons can be scheduled in this period."""
        return self.type == PeriodType.TEACHING

    @property
    def time_of_day(self) -> Optional[TimeOfDay]:
        for bucket in TimeOfDay:
            if bucket.contains(self.start_minutes):
                return bucket
        return None

    def __str__(self) -> str:
        return f"{self.name} ({self.start_time}-{self.end_time})"


class SchoolDay(BaseModel):
    """The ordered period grid for one weekday of a term."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    day: WeekDay
    periods: list[Period] = Field(default_factory=list)
    is_active: bool = Field(default=True)
    academic_year: Optional[str] = Field(default=None)
    term: Optional[str] = Field(default=None)

    def ordered_periods(self) -> list[Period]:
        """All periods sorted by start time."""
        return sorted(self.periods, key=lambda p: (p.start_minutes, p.end_minutes))

    def teaching_periods(self) -> list[Period]:
        return [p for p in self.ordered_periods() if p.is_teaching]

    def find_overlaps(self) -> list[tuple[Period, Period]]:
        """Pairs of consecutive periods where the first ends after the next starts."""
        ordered = self.ordered_periods()
        return [
            (current, following)
            for current, following in zip(ordered, ordered[1:])
            if current.end_minutes > following.start_minutes
        ]


# =============================================================================
# Configuration Models
# =============================================================================

class GenerationOptions(BaseModel):
    """Options for a teaching-timetable generation run."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    optimize_for: OptimizationGoal = Field(
        default=OptimizationGoal.BALANCED_WORKLOAD,
        alias="optimizeFor",
    )
    allow_back_to_back_difficult: bool = Field(default=False, alias="allowBackToBackDifficult")
    max_periods_per_day_per_teacher: int = Field(
        default=6, ge=1, le=10, alias="maxPeriodsPerDayPerTeacher"
    )
    prefer_morning_for_difficult: bool = Field(default=True, alias="preferMorningForDifficult")


def _default_exam_days() -> list[WeekDay]:
    return [
        WeekDay.MONDAY,
        WeekDay.TUESDAY,
        WeekDay.WEDNESDAY,
        WeekDay.THURSDAY,
        WeekDay.FRIDAY,
    ]


class ExamSettings(BaseModel):
    """Settings for deriving an exam timetable."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    exam_days: list[WeekDay] = Field(default_factory=_default_exam_days, alias="examDays")
    max_exams_per_day: int = Field(default=3, ge=1, alias="maxExamsPerDay")
    min_time_between_exams: int = Field(
        default=0, ge=0, alias="minTimeBetweenExams",
        description="Minimum minutes between two exams of the same class on one day (0 disables, 60 is typical)",
    )
    prioritize_core: bool = Field(default=True, alias="prioritizeCore")
    exam_type: ExamType = Field(default=ExamType.FINAL, alias="examType")


# =============================================================================
# Catalog Snapshot
# =============================================================================

class CatalogSnapshot(BaseModel):
    """
    Read-only reference data for one (academic year, term) generation run.

    Built once by the caller and handed to the generator; the engine never
    fetches catalog data on its own.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)

    academic_year: str = Field(min_length=1)
    term: str = Field(min_length=1)
    subjects: list[Subject] = Field(default_factory=list)
    classes: list[SchoolClass] = Field(default_factory=list)
    teachers: list[Teacher] = Field(default_factory=list)
    school_days: list[SchoolDay] = Field(default_factory=list)

    # Lookup caches (populated after validation)
    _subject_map: dict[str, Subject] = {}
    _class_map: dict[str, SchoolClass] = {}
    _teacher_map: dict[str, Teacher] = {}
    _day_map: dict[WeekDay, SchoolDay] = {}

    def model_post_init(self, __context: Any) -> None:
        """Build lookup maps after model initialization."""
        self._subject_map = {s.id: s for s in self.subjects}
        self._class_map = {c.id: c for c in self.classes}
        self._teacher_map = {t.id: t for t in self.teachers}
        self._day_map = {d.day: d for d in self.school_days if d.is_active}

    # -------------------------------------------------------------------------
    # Lookup Methods
    # -------------------------------------------------------------------------

    def get_subject(self, subject_id: str) -> Optional[Subject]:
        return self._subject_map.get(subject_id)

    def get_class(self, class_id: str) -> Optional[SchoolClass]:
        return self._class_map.get(class_id)

    def get_teacher(self, teacher_id: str) -> Optional[Teacher]:
        return self._teacher_map.get(teacher_id)

    def get_school_day(self, day: WeekDay) -> Optional[SchoolDay]:
        return self._day_map.get(day)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def active_subjects(self) -> list[Subject]:
        return [s for s in self.subjects if s.is_active]

    @property
    def active_classes(self) -> list[SchoolClass]:
        return [c for c in self.classes if c.is_active]

    @property
    def active_teachers(self) -> list[Teacher]:
        return [t for t in self.teachers if t.is_active]

    @property
    def active_days(self) -> list[SchoolDay]:
        """Active school days in week order."""
        return sorted(self._day_map.values(), key=lambda d: d.day.position)

    def eligible_teachers(self, subject_id: str) -> list[Teacher]:
        """Active teachers qualified for a subject, in catalog order."""
        return [t for t in self.teachers if t.is_eligible_for(subject_id)]

    def teaching_periods(self) -> list[tuple[WeekDay, Period]]:
        """Every schedulable (day, period) pair, earliest day then earliest start."""
        return [
            (school_day.day, period)
            for school_day in self.active_days
            for period in school_day.teaching_periods()
        ]

    def adjacent_periods(self, day: WeekDay, period_id: str) -> list[Period]:
        """
        Neighbours of a period in the day's full ordered grid.

        A break or lunch between two teaching periods separates them, since the
        neighbour returned is then the break itself.
        """
        school_day = self._day_map.get(day)
        if school_day is None:
            return []
        ordered = school_day.ordered_periods()
        for i, period in enumerate(ordered):
            if period.id == period_id:
                neighbours = []
                if i > 0:
                    neighbours.append(ordered[i - 1])
                if i + 1 < len(ordered):
                    neighbours.append(ordered[i + 1])
                return neighbours
        return []

    def summary(self) -> dict[str, Any]:
        """Get a summary of the catalog."""
        return {
            "academic_year": self.academic_year,
            "term": self.term,
            "subjects": len(self.active_subjects),
            "classes": len(self.active_classes),
            "teachers": len(self.active_teachers),
            "school_days": len(self.active_days),
            "teaching_periods": len(self.teaching_periods()),
        }

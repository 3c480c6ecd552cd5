"""
Output schema for generated timetables.

A Timetable owns its slots, the conflicts detected among them and derived
statistics. Any change to the slot list re-runs conflict detection and
recomputes statistics. JSON uses camelCase keys.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from timetabler.data.models import (
    CatalogSnapshot,
    ExamSettings,
    ExamType,
    GenerationOptions,
    WeekDay,
    time_to_minutes,
)
from timetabler.engine.conflicts import Conflict, detect_conflicts
from timetabler.engine.schedule import Assignment


# =============================================================================
# Enums
# =============================================================================

class TimetableType(str, Enum):
    TEACHING = "Teaching"
    EXAM = "Exam"


class TimetableStatus(str, Enum):
    DRAFT = "Draft"
    ACTIVE = "Active"
    ARCHIVED = "Archived"


class GeneratedBy(str, Enum):
    MANUAL = "Manual"
    AUTO = "Auto"


# =============================================================================
# Slot
# =============================================================================

class TimetableSlot(BaseModel):
    """A single committed slot in the output."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    slot_id: str = Field(alias="slotId")
    class_id: str = Field(alias="classId")
    subject_id: str = Field(alias="subjectId")
    teacher_id: Optional[str] = Field(default=None, alias="teacherId")
    day: WeekDay
    period_id: str = Field(alias="periodId")
    start_time: str = Field(alias="startTime")  # 'HH:MM'
    end_time: str = Field(alias="endTime")  # 'HH:MM'
    is_double_period: bool = Field(default=False, alias="isDoublePeriod")
    is_exam: bool = Field(default=False, alias="isExam")
    exam_type: Optional[ExamType] = Field(default=None, alias="examType")
    notes: Optional[str] = None

    # Optional enriched data
    class_name: Optional[str] = Field(default=None, alias="className")
    subject_name: Optional[str] = Field(default=None, alias="subjectName")
    teacher_name: Optional[str] = Field(default=None, alias="teacherName")

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def sort_key(self) -> tuple[int, int]:
        return self.day.position, self.start_minutes

    @classmethod
    def from_assignment(
        cls,
        assignment: Assignment,
        catalog: Optional[CatalogSnapshot] = None,
    ) -> TimetableSlot:
        """Create from an engine Assignment, naming entities when a catalog is given."""
        class_name = subject_name = teacher_name = None
        if catalog is not None:
            school_class = catalog.get_class(assignment.class_id)
            subject = catalog.get_subject(assignment.subject_id)
            teacher = catalog.get_teacher(assignment.teacher_id) if assignment.teacher_id else None
            class_name = school_class.name if school_class else None
            subject_name = subject.name if subject else None
            teacher_name = teacher.name if teacher else None

        return cls(
            slot_id=assignment.slot_id,
            class_id=assignment.class_id,
            subject_id=assignment.subject_id,
            teacher_id=assignment.teacher_id,
            day=assignment.day,
            period_id=assignment.period_id,
            start_time=assignment.start_time,
            end_time=assignment.end_time,
            is_double_period=assignment.is_double_period,
            is_exam=assignment.is_exam,
            exam_type=assignment.exam_type,
            notes=assignment.notes,
            class_name=class_name,
            subject_name=subject_name,
            teacher_name=teacher_name,
        )


# =============================================================================
# Statistics
# =============================================================================

class TimetableStatistics(BaseModel):
    """Derived counts, recomputed whenever slots change."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    total_slots: int = Field(default=0, alias="totalSlots")
    total_conflicts: int = Field(default=0, alias="totalConflicts")
    completion_percentage: int = Field(default=0, alias="completionPercentage")
    average_teacher_load: float = Field(default=0.0, alias="averageTeacherLoad")


def completion_percentage(placed: int, required: int) -> int:
    """round(100 * placed / required), halves rounding up; 0 when nothing is required."""
    if required <= 0:
        return 0
    return (200 * placed + required) // (2 * required)


def compute_statistics(
    slots: list[TimetableSlot],
    conflicts: list[Conflict],
    required_slots: int,
) -> TimetableStatistics:
    teacher_slots = [s.teacher_id for s in slots if s.teacher_id is not None]
    distinct_teachers = len(set(teacher_slots))
    average_load = round(len(teacher_slots) / distinct_teachers, 2) if distinct_teachers else 0.0

    return TimetableStatistics(
        total_slots=len(slots),
        total_conflicts=sum(1 for c in conflicts if not c.resolved),
        completion_percentage=completion_percentage(len(slots), required_slots),
        average_teacher_load=average_load,
    )


# =============================================================================
# Unscheduled Report
# =============================================================================

class UnscheduledItem(BaseModel):
    """A requirement or exam pair the engine could not place."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    subject_id: str = Field(alias="subjectId")
    class_id: str = Field(alias="classId")
    occurrence: Optional[int] = None


# =============================================================================
# Timetable
# =============================================================================

class Timetable(BaseModel):
    """A generated teaching or exam timetable."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str
    academic_year: str = Field(alias="academicYear")
    term: str
    type: TimetableType = TimetableType.TEACHING
    status: TimetableStatus = TimetableStatus.DRAFT
    generated_by: GeneratedBy = Field(default=GeneratedBy.AUTO, alias="generatedBy")
    generation_settings: Optional[GenerationOptions] = Field(default=None, alias="generationSettings")
    exam_settings: Optional[ExamSettings] = Field(default=None, alias="examSettings")
    required_slots: int = Field(default=0, ge=0, alias="requiredSlots")
    slots: list[TimetableSlot] = Field(default_factory=list)
    conflicts: list[Conflict] = Field(default_factory=list)
    statistics: TimetableStatistics = Field(default_factory=TimetableStatistics)
    unscheduled: list[UnscheduledItem] = Field(default_factory=list)

    # -------------------------------------------------------------------------
    # Aggregate Maintenance
    # -------------------------------------------------------------------------

    def refresh(self) -> None:
        """
        Re-detect conflicts and recompute statistics.

        A conflict that was marked resolved stays resolved if the same clash
        (type and slots) is detected again.
        """
        resolved = {c.key for c in self.conflicts if c.resolved}
        conflicts = detect_conflicts(self.slots)
        for conflict in conflicts:
            if conflict.key in resolved:
                conflict.resolved = True
        self.conflicts = conflicts
        self.statistics = compute_statistics(self.slots, self.conflicts, self.required_slots)

    def add_slot(self, slot: TimetableSlot) -> TimetableSlot:
        if self.get_slot(slot.slot_id) is not None:
            raise ValueError(f"Duplicate slot ID: {slot.slot_id}")
        self.slots.append(slot)
        self.refresh()
        return slot

    def remove_slot(self, slot_id: str) -> TimetableSlot:
        slot = self.get_slot(slot_id)
        if slot is None:
            raise KeyError(slot_id)
        self.slots = [s for s in self.slots if s.slot_id != slot_id]
        self.refresh()
        return slot

    def replace_slots(self, slots: list[TimetableSlot]) -> None:
        self.slots = list(slots)
        self.refresh()

    def mark_conflict_resolved(self, index: int, resolved: bool = True) -> Conflict:
        """Flag a conflict as resolved. Only the statistics change."""
        conflict = self.conflicts[index]
        conflict.resolved = resolved
        self.statistics = compute_statistics(self.slots, self.conflicts, self.required_slots)
        return conflict

    # -------------------------------------------------------------------------
    # Lookups and Views
    # -------------------------------------------------------------------------

    def get_slot(self, slot_id: str) -> Optional[TimetableSlot]:
        for slot in self.slots:
            if slot.slot_id == slot_id:
                return slot
        return None

    @property
    def unresolved_conflicts(self) -> list[Conflict]:
        return [c for c in self.conflicts if not c.resolved]

    def sorted_slots(self) -> list[TimetableSlot]:
        return sorted(self.slots, key=lambda s: s.sort_key)

    def by_class(self) -> dict[str, list[TimetableSlot]]:
        return self._group(lambda s: s.class_id)

    def by_teacher(self) -> dict[str, list[TimetableSlot]]:
        """Teacher-bearing slots grouped by teacher."""
        return self._group(lambda s: s.teacher_id, skip_none=True)

    def by_day(self) -> dict[WeekDay, list[TimetableSlot]]:
        return self._group(lambda s: s.day)

    def _group(self, key, skip_none: bool = False) -> dict:
        groups: dict = {}
        for slot in self.sorted_slots():
            value = key(slot)
            if value is None and skip_none:
                continue
            groups.setdefault(value, []).append(slot)
        return groups

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return self.model_dump_json(by_alias=True, indent=indent)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_json(cls, text: str) -> Timetable:
        return cls.model_validate(json.loads(text))

    @classmethod
    def load(cls, path: Union[str, Path]) -> Timetable:
        with open(path) as f:
            return cls.model_validate(json.load(f))

    def summary(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "slots": self.statistics.total_slots,
            "required": self.required_slots,
            "completion": self.statistics.completion_percentage,
            "conflicts": self.statistics.total_conflicts,
            "unscheduled": len(self.unscheduled),
        }

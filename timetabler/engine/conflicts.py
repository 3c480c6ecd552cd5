"""
Conflict detection.

A post-hoc scan over committed slots. Detection is pure: it reads the slot
list and returns a fresh conflict list every time.
"""

from __future__ import annotations

from collections import defaultdict
from enum import Enum
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from timetabler.data.models import WeekDay, time_to_minutes


class ConflictType(str, Enum):
    TEACHER_DOUBLE_BOOKED = "TeacherDoubleBooked"
    CLASS_DOUBLE_BOOKED = "ClassDoubleBooked"


class ConflictSeverity(str, Enum):
    CRITICAL = "Critical"
    WARNING = "Warning"
    INFO = "Info"


class Conflict(BaseModel):
    """A residual clash between committed slots."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    type: ConflictType
    description: str
    severity: ConflictSeverity = ConflictSeverity.CRITICAL
    slot_ids: list[str] = Field(default_factory=list, alias="slotIds")
    resolved: bool = False

    @property
    def key(self) -> tuple[str, tuple[str, ...]]:
        """Identity used to carry resolution across re-detection."""
        return self.type.value, tuple(sorted(self.slot_ids))


class SlotLike(Protocol):
    slot_id: str
    day: WeekDay
    start_time: str
    teacher_id: Optional[str]
    class_id: str


def detect_conflicts(slots: Iterable[SlotLike]) -> list[Conflict]:
    """
    Find double-booked teachers and classes.

    Slots are grouped by (day, start time). Within a group, every teacher id
    or class id that appears more than once yields one Critical conflict
    listing the slots involved. Slots without a teacher (exams) never clash
    on teacher.
    """
    groups: dict[tuple[WeekDay, int], list[SlotLike]] = defaultdict(list)
    for slot in slots:
        groups[(slot.day, time_to_minutes(slot.start_time))].append(slot)

    conflicts: list[Conflict] = []
    for (day, _), group in groups.items():
        if len(group) < 2:
            continue
        when = f"{day.value} {group[0].start_time}"

        by_teacher: dict[str, list[str]] = defaultdict(list)
        by_class: dict[str, list[str]] = defaultdict(list)
        for slot in group:
            if slot.teacher_id is not None:
                by_teacher[slot.teacher_id].append(slot.slot_id)
            by_class[slot.class_id].append(slot.slot_id)

        for teacher_id, slot_ids in by_teacher.items():
            if len(slot_ids) > 1:
                conflicts.append(Conflict(
                    type=ConflictType.TEACHER_DOUBLE_BOOKED,
                    description=f"Teacher {teacher_id} is scheduled for multiple classes at {when}",
                    slot_ids=slot_ids,
                ))
        for class_id, slot_ids in by_class.items():
            if len(slot_ids) > 1:
                conflicts.append(Conflict(
                    type=ConflictType.CLASS_DOUBLE_BOOKED,
                    description=f"Class {class_id} is scheduled for multiple subjects at {when}",
                    slot_ids=slot_ids,
                ))

    return conflicts

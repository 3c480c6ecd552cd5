"""
Output formatters for generated timetables.

This module provides formatters for different output formats:
- CSV: Flat format for spreadsheets
- Console: Plain or rich-rendered summary and weekly grid
- Class/Teacher views: Individual timetables
"""

from __future__ import annotations

import csv
import sys
from io import StringIO
from pathlib import Path
from typing import Optional, TextIO, Union

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from timetabler.data.models import time_to_minutes

from .schema import Timetable, TimetableSlot


# =============================================================================
# CSV Formatter
# =============================================================================

class CSVFormatter:
    """Formats timetable slots as CSV."""

    DEFAULT_COLUMNS = [
        'slot_id', 'day', 'period_id', 'start_time', 'end_time',
        'class_id', 'class_name', 'subject_id', 'subject_name',
        'teacher_id', 'teacher_name', 'is_double_period', 'is_exam',
        'exam_type', 'notes',
    ]

    MINIMAL_COLUMNS = [
        'day', 'start_time', 'end_time', 'class_name', 'subject_name', 'teacher_name',
    ]

    def __init__(
        self,
        columns: Optional[list[str]] = None,
        include_header: bool = True,
        delimiter: str = ',',
    ):
        self.columns = columns or self.DEFAULT_COLUMNS
        self.include_header = include_header
        self.delimiter = delimiter

    def format(self, timetable: Timetable) -> str:
        buffer = StringIO()
        self.write(timetable, buffer)
        return buffer.getvalue()

    def write(self, timetable: Timetable, file: TextIO) -> None:
        """Write CSV rows, sorted by day then start time, to a file-like object."""
        writer = csv.writer(file, delimiter=self.delimiter)

        if self.include_header:
            writer.writerow(self.columns)

        for slot in timetable.sorted_slots():
            writer.writerow(self._slot_to_row(slot))

    def _slot_to_row(self, slot: TimetableSlot) -> list[str]:
        field_map = {
            'slot_id': slot.slot_id,
            'day': slot.day.value,
            'period_id': slot.period_id,
            'start_time': slot.start_time,
            'end_time': slot.end_time,
            'class_id': slot.class_id,
            'class_name': slot.class_name or slot.class_id,
            'subject_id': slot.subject_id,
            'subject_name': slot.subject_name or slot.subject_id,
            'teacher_id': slot.teacher_id or '',
            'teacher_name': slot.teacher_name or slot.teacher_id or '',
            'is_double_period': 'yes' if slot.is_double_period else '',
            'is_exam': 'yes' if slot.is_exam else '',
            'exam_type': slot.exam_type.value if slot.exam_type else '',
            'notes': slot.notes or '',
        }
        return [field_map.get(col, '') for col in self.columns]


def format_csv(timetable: Timetable, columns: Optional[list[str]] = None, minimal: bool = False) -> str:
    """Convenience function for CSV formatting."""
    if minimal:
        columns = CSVFormatter.MINIMAL_COLUMNS
    return CSVFormatter(columns=columns).format(timetable)


# =============================================================================
# Console Formatter
# =============================================================================

def _slot_label(slot: TimetableSlot) -> str:
    return slot.subject_name or slot.subject_id


class ConsoleFormatter:
    """Formats a timetable summary and its slots for console display."""

    def __init__(self, use_colors: bool = True, width: Optional[int] = None):
        self.use_colors = use_colors
        self.width = width

    def format(self, timetable: Timetable) -> str:
        if self.use_colors:
            console = Console(record=True, width=self.width or 100)
            self._print_rich(timetable, console)
            return console.export_text()
        return self._format_plain(timetable)

    def print(self, timetable: Timetable, file: Optional[TextIO] = None) -> None:
        if file is None:
            file = sys.stdout

        if self.use_colors:
            self._print_rich(timetable, Console(file=file, width=self.width))
        else:
            file.write(self._format_plain(timetable))
            file.write('\n')

    def _format_plain(self, timetable: Timetable) -> str:
        stats = timetable.statistics
        lines = [
            "=" * 60,
            f"{timetable.name.upper()} - {timetable.status.value}",
            "=" * 60,
            "",
            f"Slots: {stats.total_slots} / {timetable.required_slots} required "
            f"({stats.completion_percentage}%)",
            f"Unresolved conflicts: {stats.total_conflicts}",
            f"Average teacher load: {stats.average_teacher_load:.2f}",
            "",
        ]

        for day, slots in timetable.by_day().items():
            lines.append(f"--- {day.value} ---")
            for slot in slots:
                who = slot.teacher_name or slot.teacher_id or "-"
                lines.append(
                    f"  {slot.start_time}-{slot.end_time}: {_slot_label(slot)} | "
                    f"{slot.class_name or slot.class_id} | {who}"
                )
            lines.append("")

        return '\n'.join(lines)

    def _print_rich(self, timetable: Timetable, console: Console) -> None:
        stats = timetable.statistics
        complete = stats.completion_percentage >= 100 and stats.total_conflicts == 0
        status_text = Text(
            f"{stats.completion_percentage}% complete, {stats.total_conflicts} conflicts",
            style=f"bold {'green' if complete else 'yellow'}",
        )
        console.print(Panel(status_text, title=timetable.name, subtitle=timetable.status.value))

        by_day = timetable.by_day()
        table = Table(title="Weekly Schedule", show_header=True, header_style="bold cyan")
        table.add_column("Time", style="dim")
        for day in by_day:
            table.add_column(day.value[:3], justify="center")

        times = sorted({s.start_time for s in timetable.slots}, key=time_to_minutes)
        for start in times:
            row = [start]
            for slots in by_day.values():
                matching = [s for s in slots if s.start_time == start]
                row.append("\n".join(
                    f"{_slot_label(s)} ({s.class_name or s.class_id})" for s in matching
                ) or "-")
            table.add_row(*row)

        console.print(table)


def format_console(timetable: Timetable, use_colors: bool = True) -> str:
    return ConsoleFormatter(use_colors=use_colors).format(timetable)


def print_console(timetable: Timetable, use_colors: bool = True) -> None:
    ConsoleFormatter(use_colors=use_colors).print(timetable)


# =============================================================================
# Class and Teacher Views
# =============================================================================

class EntityViewFormatter:
    """Formats the timetable of one class or one teacher."""

    def __init__(self, entity: str, use_colors: bool = True):
        if entity not in ("class", "teacher"):
            raise ValueError(f"Unknown entity type: {entity}")
        self.entity = entity
        self.use_colors = use_colors

    def format(self, timetable: Timetable, entity_id: str) -> str:
        groups = timetable.by_class() if self.entity == "class" else timetable.by_teacher()
        slots = groups.get(entity_id)
        if not slots:
            return f"No schedule found for {self.entity}: {entity_id}"

        if self.entity == "class":
            name = slots[0].class_name or entity_id
        else:
            name = slots[0].teacher_name or entity_id

        if self.use_colors:
            return self._format_rich(name, entity_id, slots)
        return self._format_plain(name, entity_id, slots)

    def format_all(self, timetable: Timetable) -> str:
        groups = timetable.by_class() if self.entity == "class" else timetable.by_teacher()
        return '\n\n'.join(self.format(timetable, entity_id) for entity_id in sorted(groups))

    def _other(self, slot: TimetableSlot) -> str:
        if self.entity == "class":
            return slot.teacher_name or slot.teacher_id or "-"
        return slot.class_name or slot.class_id

    def _format_plain(self, name: str, entity_id: str, slots: list[TimetableSlot]) -> str:
        lines = [
            "=" * 50,
            f"{self.entity.upper()}: {name} ({entity_id})",
            "=" * 50,
        ]
        current_day = None
        for slot in slots:
            if slot.day != current_day:
                current_day = slot.day
                lines.append(f"\n{current_day.value}:")
            lines.append(
                f"  {slot.start_time}-{slot.end_time}: {_slot_label(slot)} ({self._other(slot)})"
            )
        return '\n'.join(lines)

    def _format_rich(self, name: str, entity_id: str, slots: list[TimetableSlot]) -> str:
        console = Console(record=True, width=100)
        console.print(Panel(
            f"[bold]{name}[/bold] ({entity_id})",
            title=f"{self.entity.title()} Schedule",
        ))

        table = Table(show_header=True, header_style="bold")
        table.add_column("Day", style="cyan")
        table.add_column("Time")
        table.add_column("Subject")
        table.add_column("Teacher" if self.entity == "class" else "Class")

        for slot in slots:
            table.add_row(
                slot.day.value,
                f"{slot.start_time}-{slot.end_time}",
                _slot_label(slot),
                self._other(slot),
            )

        console.print(table)
        return console.export_text()


def format_class_view(timetable: Timetable, class_id: str, use_colors: bool = True) -> str:
    return EntityViewFormatter("class", use_colors).format(timetable, class_id)


def format_teacher_view(timetable: Timetable, teacher_id: str, use_colors: bool = True) -> str:
    return EntityViewFormatter("teacher", use_colors).format(timetable, teacher_id)


# =============================================================================
# File Writing Utilities
# =============================================================================

def save_json(timetable: Timetable, filepath: Union[str, Path], indent: int = 2) -> None:
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(timetable.to_json(indent=indent), encoding='utf-8')


def save_csv(
    timetable: Timetable,
    filepath: Union[str, Path],
    columns: Optional[list[str]] = None,
    minimal: bool = False,
) -> None:
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    if minimal:
        columns = CSVFormatter.MINIMAL_COLUMNS

    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        CSVFormatter(columns=columns).write(timetable, f)

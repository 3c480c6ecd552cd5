"""
Timetable output: the Timetable aggregate, formatters and quality metrics.
"""

from .schema import (
    GeneratedBy,
    Timetable,
    TimetableSlot,
    TimetableStatistics,
    TimetableStatus,
    TimetableType,
    UnscheduledItem,
    completion_percentage,
    compute_statistics,
)
from .formatters import (
    CSVFormatter,
    ConsoleFormatter,
    EntityViewFormatter,
    format_class_view,
    format_console,
    format_csv,
    format_teacher_view,
    print_console,
    save_csv,
    save_json,
)
from .metrics import (
    QualityMetricsCalculator,
    MetricsReport,
    calculate_all_metrics,
    generate_report,
)

__all__ = [
    # Schema
    "GeneratedBy",
    "Timetable",
    "TimetableSlot",
    "TimetableStatistics",
    "TimetableStatus",
    "TimetableType",
    "UnscheduledItem",
    "completion_percentage",
    "compute_statistics",
    # Formatters
    "CSVFormatter",
    "ConsoleFormatter",
    "EntityViewFormatter",
    "format_class_view",
    "format_console",
    "format_csv",
    "format_teacher_view",
    "print_console",
    "save_csv",
    "save_json",
    # Metrics
    "QualityMetricsCalculator",
    "MetricsReport",
    "calculate_all_metrics",
    "generate_report",
]

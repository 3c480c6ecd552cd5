"""
Command-line interface for the timetable generator.

Usage:
    python -m timetabler generate school.json -o teaching.json
    python -m timetabler exams teaching.json --input school.json -o exams.json
    python -m timetabler validate school.json
    python -m timetabler view teaching.json --class f1e
    python -m timetabler metrics teaching.json --input school.json
    python -m timetabler sample -o school.json --size small --seed 42
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .data.generator import (
    generate_large_school,
    generate_medium_school,
    generate_small_school,
    get_generation_stats,
    save_generated_school,
)
from .data.loader import SchoolBundle, load_school_bundle, validate_bundle
from .data.models import ExamSettings, ExamType, GenerationOptions, OptimizationGoal, WeekDay
from .engine import count_required_slots
from .exceptions import DataValidationError
from .output.formatters import (
    EntityViewFormatter,
    print_console,
    save_json,
)
from .output.metrics import QualityMetricsCalculator, generate_report
from .output.schema import Timetable
from .timetable_generator import TimetableGenerator

# Create Typer app
app = typer.Typer(
    name="timetabler",
    help="School timetable generator using greedy slot scoring.",
    add_completion=False,
)

# Rich console for pretty output
console = Console()

SAMPLE_SIZES = {
    "small": generate_small_school,
    "medium": generate_medium_school,
    "large": generate_large_school,
}


# =============================================================================
# Helper Functions
# =============================================================================

def configure_logging(verbose: bool = False) -> None:
    """Route library logging through rich; DEBUG when verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_bundle(input_path: Path) -> SchoolBundle:
    """Load a school bundle, exiting with code 1 on any data problem."""
    if not input_path.exists():
        console.print(f"[red]Error:[/red] Input file not found: {input_path}")
        raise typer.Exit(code=1)

    try:
        bundle = load_school_bundle(input_path)
    except DataValidationError as e:
        _print_errors("Invalid school data", e.errors)
        raise typer.Exit(code=1)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading input:[/red] {e}")
        raise typer.Exit(code=1)

    for warning in bundle.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    return bundle


def load_timetable(path: Path) -> Timetable:
    """Load a timetable JSON file."""
    if not path.exists():
        console.print(f"[red]Error:[/red] Timetable file not found: {path}")
        raise typer.Exit(code=1)

    try:
        return Timetable.load(path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading timetable:[/red] {e}")
        raise typer.Exit(code=1)


def _print_errors(title: str, errors: list[str]) -> None:
    console.print(f"[red]{title}:[/red]")
    for error in errors:
        console.print(f"   - {error}")


def print_summary(timetable: Timetable) -> None:
    """Print a generation summary to the console."""
    stats = timetable.statistics
    complete = stats.completion_percentage >= 100 and stats.total_conflicts == 0
    status_text = Text(
        f"{stats.completion_percentage}% COMPLETE",
        style=f"bold {'green' if complete else 'yellow'}",
    )
    console.print(Panel(status_text, title=timetable.name, subtitle=timetable.status.value))

    table = Table(title="Summary", show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Slots", str(stats.total_slots))
    table.add_row("Required", str(timetable.required_slots))
    table.add_row("Unscheduled", str(len(timetable.unscheduled)))
    table.add_row("Conflicts", str(stats.total_conflicts))
    table.add_row("Classes", str(len(timetable.by_class())))
    table.add_row("Teachers", str(len(timetable.by_teacher())))
    table.add_row("Average Teacher Load", f"{stats.average_teacher_load:.2f}")

    console.print(table)


def _print_unscheduled(timetable: Timetable) -> None:
    if not timetable.unscheduled:
        return
    console.print("\n[bold yellow]Unscheduled:[/bold yellow]")
    for item in timetable.unscheduled:
        suffix = f" #{item.occurrence}" if item.occurrence else ""
        console.print(f"  [yellow]*[/yellow] {item.subject_id} for {item.class_id}{suffix}")


def _parse_days(days: list[str]) -> list[WeekDay]:
    try:
        return [WeekDay.parse(d) for d in days]
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        console.print(f"Valid days: {', '.join(d.value for d in WeekDay)}")
        raise typer.Exit(code=1)


# =============================================================================
# Commands
# =============================================================================

@app.command()
def generate(
    input_file: Path = typer.Argument(
        ...,
        help="Path to school bundle JSON file",
        exists=True,
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Path to write the timetable JSON file",
    ),
    options_file: Optional[Path] = typer.Option(
        None,
        "--options",
        help="JSON file with generation options (flags override it)",
        exists=True,
    ),
    max_periods: Optional[int] = typer.Option(
        None,
        "--max-periods",
        help="Maximum periods per day per teacher",
        min=1,
        max=10,
    ),
    allow_back_to_back: bool = typer.Option(
        False,
        "--allow-back-to-back",
        help="Allow back-to-back difficult subjects without penalty",
    ),
    no_morning_preference: bool = typer.Option(
        False,
        "--no-morning-preference",
        help="Do not prefer mornings for difficult subjects",
    ),
    optimize_for: Optional[OptimizationGoal] = typer.Option(
        None,
        "--optimize-for",
        help="Optimization goal recorded with the run",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
) -> None:
    """
    Generate a teaching timetable.

    Loads the school bundle, places every weekly period it can and prints a
    summary. Unplaceable periods are listed, not treated as errors.

    Example:
        python -m timetabler generate school.json -o teaching.json --max-periods 5
    """
    configure_logging(verbose)
    bundle = load_bundle(input_file)

    options = GenerationOptions()
    if options_file:
        try:
            options = GenerationOptions.model_validate_json(options_file.read_text())
        except ValidationError as e:
            console.print(f"[red]Invalid options file:[/red] {e}")
            raise typer.Exit(code=1)

    overrides = {}
    if max_periods is not None:
        overrides["max_periods_per_day_per_teacher"] = max_periods
    if allow_back_to_back:
        overrides["allow_back_to_back_difficult"] = True
    if no_morning_preference:
        overrides["prefer_morning_for_difficult"] = False
    if optimize_for is not None:
        overrides["optimize_for"] = optimize_for
    if overrides:
        options = options.model_copy(update=overrides)

    catalog = bundle.catalog
    console.print(f"\n[bold]Loaded:[/bold] {len(catalog.subjects)} subjects, "
                  f"{len(catalog.classes)} classes, {len(catalog.teachers)} teachers, "
                  f"{len(bundle.constraints)} constraints")

    generator = TimetableGenerator(catalog, bundle.constraints)
    try:
        timetable = generator.generate_teaching_timetable(options)
    except DataValidationError as e:
        _print_errors("Validation failed", e.errors)
        raise typer.Exit(code=1)

    console.print()
    print_summary(timetable)
    if verbose:
        _print_unscheduled(timetable)

    if output:
        save_json(timetable, output)
        console.print(f"\n[green]Timetable saved to:[/green] {output}")

    console.print()


@app.command()
def exams(
    teaching_file: Path = typer.Argument(
        ...,
        help="Path to a generated teaching timetable JSON file",
        exists=True,
    ),
    input_file: Path = typer.Option(
        ...,
        "--input", "-i",
        help="Path to the school bundle the teaching timetable was generated from",
    ),
    day: Optional[list[str]] = typer.Option(
        None,
        "--day", "-d",
        help="Exam day (repeat for several, in order)",
    ),
    max_per_day: int = typer.Option(
        3,
        "--max-per-day",
        help="Maximum exams per day",
        min=1,
    ),
    min_gap: int = typer.Option(
        0,
        "--min-gap",
        help="Minimum minutes between two exams of one class on the same day (0 disables)",
        min=0,
    ),
    no_core_first: bool = typer.Option(
        False,
        "--no-core-first",
        help="Do not schedule core subjects first",
    ),
    exam_type: ExamType = typer.Option(
        ExamType.FINAL,
        "--exam-type",
        help="Kind of exam sitting",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Path to write the exam timetable JSON file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
) -> None:
    """
    Derive an exam timetable from a teaching timetable.

    Example:
        python -m timetabler exams teaching.json -i school.json --day mon --day tue
    """
    configure_logging(verbose)
    bundle = load_bundle(input_file)
    teaching = load_timetable(teaching_file)

    settings = ExamSettings(
        max_exams_per_day=max_per_day,
        min_time_between_exams=min_gap,
        prioritize_core=not no_core_first,
        exam_type=exam_type,
    )
    if day:
        settings = settings.model_copy(update={"exam_days": _parse_days(day)})

    generator = TimetableGenerator(bundle.catalog, bundle.constraints)
    try:
        timetable = generator.generate_exam_timetable(teaching, settings)
    except DataValidationError as e:
        _print_errors("Validation failed", e.errors)
        raise typer.Exit(code=1)

    console.print()
    print_summary(timetable)
    if verbose:
        _print_unscheduled(timetable)

    if output:
        save_json(timetable, output)
        console.print(f"\n[green]Exam timetable saved to:[/green] {output}")

    console.print()


@app.command()
def validate(
    input_file: Path = typer.Argument(
        ...,
        help="Path to school bundle JSON file to validate",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show detailed validation results",
    ),
) -> None:
    """
    Validate a school bundle.

    Checks for:
    - Valid JSON structure
    - Schema compliance
    - Catalog integrity (duplicates, overlapping periods, unknown references)
    - Constraint references

    Example:
        python -m timetabler validate school.json
    """
    configure_logging(verbose)
    console.print(f"\n[bold]Validating:[/bold] {input_file}\n")

    if not input_file.exists():
        console.print(f"[red]Error:[/red] File not found: {input_file}")
        raise typer.Exit(code=1)

    # Step 1: JSON parsing
    console.print("[cyan]1. Checking JSON syntax...[/cyan]")
    try:
        with open(input_file) as f:
            json.load(f)
        console.print("   [green]JSON syntax is valid[/green]")
    except json.JSONDecodeError as e:
        console.print(f"   [red]Invalid JSON:[/red] {e}")
        raise typer.Exit(code=1)

    # Step 2: Schema validation
    console.print("[cyan]2. Validating against schema...[/cyan]")
    try:
        bundle = load_school_bundle(input_file)
        console.print("   [green]Schema validation passed[/green]")
    except DataValidationError as e:
        _print_errors("   Schema validation failed", e.errors)
        raise typer.Exit(code=1)
    except ValidationError as e:
        console.print("   [red]Schema validation failed:[/red]")
        for line in str(e).split("\n"):
            console.print(f"   {line}")
        raise typer.Exit(code=1)

    # Step 3: Catalog and constraint integrity
    console.print("[cyan]3. Checking catalog integrity...[/cyan]")
    try:
        warnings = bundle.warnings + validate_bundle(bundle)
    except DataValidationError as e:
        _print_errors("   Integrity check failed", e.errors)
        raise typer.Exit(code=1)

    if warnings:
        console.print("   [yellow]Warnings found:[/yellow]")
        for w in warnings:
            console.print(f"   - {w}")
    else:
        console.print("   [green]No integrity issues[/green]")

    # Summary
    catalog = bundle.catalog
    console.print("\n[bold]Summary:[/bold]")
    table = Table(show_header=False, box=None)
    table.add_column("Entity", style="cyan")
    table.add_column("Count", style="white")

    table.add_row("Subjects", str(len(catalog.subjects)))
    table.add_row("Classes", str(len(catalog.classes)))
    table.add_row("Teachers", str(len(catalog.teachers)))
    table.add_row("School days", str(len(catalog.active_days)))
    table.add_row("Teaching periods", str(len(catalog.teaching_periods())))
    table.add_row("Constraints", str(len(bundle.constraints)))
    table.add_row("Required slots", str(count_required_slots(catalog)))

    console.print(table)

    if verbose:
        console.print("\n[bold]Constraints:[/bold]")
        for constraint in bundle.constraints:
            console.print(f"  {constraint.id}: {constraint.kind} ({constraint.severity.value})")

    console.print("\n[green]Validation complete.[/green]\n")


@app.command()
def view(
    output_file: Path = typer.Argument(
        ...,
        help="Path to timetable JSON file",
        exists=True,
    ),
    teacher: Optional[str] = typer.Option(
        None,
        "--teacher", "-T",
        help="Show schedule for specific teacher ID",
    ),
    class_id: Optional[str] = typer.Option(
        None,
        "--class", "-C",
        help="Show schedule for specific class ID",
    ),
    day: Optional[str] = typer.Option(
        None,
        "--day", "-D",
        help="Show schedule for specific day (monday, tue, etc.)",
    ),
    all_teachers: bool = typer.Option(
        False,
        "--all-teachers",
        help="Show schedules for all teachers",
    ),
    all_classes: bool = typer.Option(
        False,
        "--all-classes",
        help="Show schedules for all classes",
    ),
) -> None:
    """
    Display specific views of a timetable.

    Examples:
        python -m timetabler view teaching.json --teacher t1
        python -m timetabler view teaching.json --class f1e
        python -m timetabler view teaching.json --day monday
    """
    timetable = load_timetable(output_file)

    if teacher:
        _show_entity_view(timetable, "teacher", teacher, timetable.by_teacher())
    elif class_id:
        _show_entity_view(timetable, "class", class_id, timetable.by_class())
    elif day:
        _show_day_view(timetable, day)
    elif all_teachers:
        console.print(EntityViewFormatter("teacher").format_all(timetable))
    elif all_classes:
        console.print(EntityViewFormatter("class").format_all(timetable))
    else:
        print_console(timetable)


def _show_entity_view(timetable: Timetable, entity: str, entity_id: str, groups: dict) -> None:
    if entity_id not in groups:
        console.print(f"[red]Error:[/red] {entity.title()} '{entity_id}' not found")
        console.print(f"Available {entity} IDs: {', '.join(sorted(groups))}")
        raise typer.Exit(code=1)
    console.print(EntityViewFormatter(entity).format(timetable, entity_id))


def _show_day_view(timetable: Timetable, day_name: str) -> None:
    """Show schedule for a specific day."""
    day = _parse_days([day_name])[0]
    slots = timetable.by_day().get(day)
    if not slots:
        console.print(f"[yellow]No slots scheduled for {day.value}[/yellow]")
        return

    console.print(Panel(f"[bold]{day.value}[/bold]", title="Daily Schedule"))

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Time")
    table.add_column("Subject")
    table.add_column("Class")
    table.add_column("Teacher")

    for slot in slots:
        table.add_row(
            f"{slot.start_time}-{slot.end_time}",
            slot.subject_name or slot.subject_id,
            slot.class_name or slot.class_id,
            slot.teacher_name or slot.teacher_id or "-",
        )

    console.print(table)


@app.command()
def metrics(
    output_file: Path = typer.Argument(
        ...,
        help="Path to timetable JSON file",
        exists=True,
    ),
    input_file: Optional[Path] = typer.Option(
        None,
        "--input", "-i",
        help="Path to school bundle JSON file (for slot utilization)",
    ),
    format: str = typer.Option(
        "table",
        "--format", "-f",
        help="Output format: table, report, or json",
    ),
) -> None:
    """
    Calculate and display quality metrics for a timetable.

    Analyzes:
    - Gap score (teacher idle time)
    - Distribution score (subject spread across days)
    - Daily balance (teacher workload evenness)
    - Coverage (placed vs required)

    Examples:
        python -m timetabler metrics teaching.json
        python -m timetabler metrics teaching.json --input school.json --format report
    """
    timetable = load_timetable(output_file)
    catalog = load_bundle(input_file).catalog if input_file else None

    if format == "json":
        report = QualityMetricsCalculator().calculate_all(timetable, catalog)
        console.print_json(json.dumps(report.to_dict(), indent=2))
    elif format == "report":
        console.print(generate_report(timetable, catalog))
    else:
        _show_metrics_table(timetable, catalog)


def _score_color(score: float) -> str:
    return "green" if score >= 80 else "yellow" if score >= 60 else "red"


def _show_metrics_table(timetable: Timetable, catalog) -> None:
    """Show metrics as a table."""
    console.print(Panel("[bold]Timetable Quality Metrics[/bold]"))
    report = QualityMetricsCalculator().calculate_all(timetable, catalog)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Metric")
    table.add_column("Score")
    table.add_column("Details")

    gap = report.gap_metrics
    table.add_row(
        "Gap Score",
        f"[{_score_color(gap.score)}]{gap.score}/100[/{_score_color(gap.score)}]",
        f"Avg gap: {gap.average_gap_minutes:.0f} min",
    )

    dist = report.distribution_metrics
    table.add_row(
        "Distribution",
        f"[{_score_color(dist.score)}]{dist.score}/100[/{_score_color(dist.score)}]",
        f"{dist.well_distributed_count}/{dist.total_multi_period_pairs} well-distributed",
    )

    balance = report.balance_metrics
    table.add_row(
        "Daily Balance",
        f"[{_score_color(balance.score)}]{balance.score}/100[/{_score_color(balance.score)}]",
        f"Avg std dev: {balance.average_std_dev:.2f}",
    )

    coverage = report.coverage_metrics
    pct = coverage.completion_percentage
    table.add_row(
        "Coverage",
        f"[{_score_color(pct)}]{pct}%[/{_score_color(pct)}]",
        f"{coverage.placed}/{coverage.required} placed, "
        f"{coverage.unresolved_conflicts} unresolved conflicts",
    )

    overall_color = _score_color(report.overall_score)
    table.add_row(
        "[bold]Overall Score[/bold]",
        f"[bold {overall_color}]{report.overall_score}/100 ({report.grade})[/bold {overall_color}]",
        "",
    )

    console.print(table)

    if report.improvement_areas:
        console.print("\n[bold yellow]Areas for Improvement:[/bold yellow]")
        for area in report.improvement_areas:
            console.print(f"  [yellow]*[/yellow] {area}")


@app.command()
def sample(
    output: Path = typer.Option(
        Path("sample_school.json"),
        "--output", "-o",
        help="Path to write the sample school bundle",
    ),
    size: str = typer.Option(
        "small",
        "--size", "-s",
        help="School size: small, medium, or large",
    ),
    seed: Optional[int] = typer.Option(
        None,
        "--seed",
        help="Random seed for reproducible data",
    ),
) -> None:
    """
    Write a generated sample school bundle.

    Example:
        python -m timetabler sample -o school.json --size medium --seed 7
    """
    factory = SAMPLE_SIZES.get(size.lower())
    if factory is None:
        console.print(f"[red]Error:[/red] Unknown size '{size}'")
        console.print(f"Valid sizes: {', '.join(SAMPLE_SIZES)}")
        raise typer.Exit(code=1)

    bundle = factory(seed=seed)
    save_generated_school(bundle, output)

    stats = get_generation_stats(bundle)
    table = Table(title="Generated School", show_header=False, box=None)
    table.add_column("Entity", style="cyan")
    table.add_column("Count", style="white")
    for key, value in stats.items():
        table.add_row(key.replace("_", " ").capitalize(), str(value))

    console.print(table)
    console.print(f"\n[green]Sample school saved to:[/green] {output}\n")


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

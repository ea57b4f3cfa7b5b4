"""Console script for homework_pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .config.loader import ConfigLoader
from .config.models import ConfigError, PipelineConfig
from .grading.grader import GradingError, LLMGrader
from .output.report import (
    ReportError,
    fill_grade_template,
    grades_by_student,
    write_summary_report,
)
from .pipeline import BatchError, BatchPipeline, SubmissionResult
from .utils.logging import setup_logging

app = typer.Typer(help="Normalize, analyze and grade notebook homework submissions.")
console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="YAML file overriding the default settings")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")
LogFileOption = typer.Option(None, "--log-file", help="Also write logs to this file")


def _prepare(config_file: Path | None, verbose: bool, log_file: Path | None) -> PipelineConfig:
    """Load .env, configure logging and read the configuration."""
    load_dotenv()
    setup_logging(level=logging.DEBUG if verbose else logging.INFO, log_file=log_file)
    try:
        return ConfigLoader().load(config_file)
    except (FileNotFoundError, ConfigError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1)


def _yes_no(value: bool) -> str:
    return "[green]yes[/green]" if value else "[red]no[/red]"


def print_results(results: list[SubmissionResult]) -> None:
    """Show a summary table of the batch."""
    table = Table(title="Submission summary")
    table.add_column("Student")
    table.add_column("Notebooks", justify="right")
    table.add_column("Code cells", justify="right")
    table.add_column("All output")
    table.add_column("Errors")
    table.add_column("Images")
    table.add_column("Py files", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Status")

    for result in results:
        summary = result.summary
        table.add_row(
            result.student.label,
            str(summary.total_notebooks),
            str(summary.total_code_blocks),
            _yes_no(summary.all_blocks_have_output),
            _yes_no(summary.has_error),
            _yes_no(summary.has_image),
            str(summary.secondary_file_count),
            str(result.grade.score) if result.grade else "-",
            result.status,
        )

    console.print(table)
    failed = sum(1 for r in results if not r.ok)
    console.print(f"Total: {len(results)} students, {len(results) - failed} ok, {failed} failed")


def _write_report(results: list[SubmissionResult], report: Path | None) -> None:
    if report is None:
        return
    try:
        write_summary_report(results, report)
    except (OSError, ReportError) as e:
        console.print(f"[red]Could not write report:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"Report: {report}")


@app.command()
def normalize(
    source: Path = typer.Argument(..., help="Directory of <id>-<name>.<ext> student archives"),
    output: Path = typer.Argument(..., help="Directory receiving one flat folder per student"),
    report: Optional[Path] = typer.Option(None, "--report", "-r", help="Write statistics to .xlsx/.csv"),
    config: Optional[Path] = ConfigOption,
    verbose: bool = VerboseOption,
    log_file: Optional[Path] = LogFileOption,
):
    """Extract nested student archives and flatten each student to their notebooks."""
    pipeline = BatchPipeline(_prepare(config, verbose, log_file))
    try:
        results = pipeline.normalize(source, output)
    except BatchError as e:
        console.print(f"[red]Batch failed:[/red] {e}")
        raise typer.Exit(code=1)

    if results:
        print_results(results)
    _write_report(results, report)


@app.command()
def analyze(
    source: Path = typer.Argument(..., help="Directory of <id>-<name> student folders"),
    report: Optional[Path] = typer.Option(None, "--report", "-r", help="Statistics file (default: SOURCE/summary.xlsx)"),
    config: Optional[Path] = ConfigOption,
    verbose: bool = VerboseOption,
    log_file: Optional[Path] = LogFileOption,
):
    """Collect notebook statistics for already normalized student folders."""
    pipeline = BatchPipeline(_prepare(config, verbose, log_file))
    try:
        results = pipeline.analyze(source)
    except BatchError as e:
        console.print(f"[red]Batch failed:[/red] {e}")
        raise typer.Exit(code=1)

    if not results:
        return
    print_results(results)
    _write_report(results, report or source / "summary.xlsx")


@app.command()
def grade(
    source: Path = typer.Argument(..., help="Directory of <id>-<name> student folders"),
    report: Optional[Path] = typer.Option(None, "--report", "-r", help="Statistics and grades file (default: SOURCE/grades.xlsx)"),
    template: Optional[Path] = typer.Option(None, "--template", "-t", help="Grade import template (.xlsx) to fill"),
    template_output: Optional[Path] = typer.Option(None, "--output", "-o", help="Filled template path (default: <template>_filled.xlsx)"),
    config: Optional[Path] = ConfigOption,
    verbose: bool = VerboseOption,
    log_file: Optional[Path] = LogFileOption,
):
    """Analyze student folders and grade each submission with Claude."""
    settings = _prepare(config, verbose, log_file)
    pipeline = BatchPipeline(settings)
    try:
        grader = LLMGrader(settings.grading)
        results = pipeline.analyze(source)
    except (BatchError, GradingError) as e:
        console.print(f"[red]Batch failed:[/red] {e}")
        raise typer.Exit(code=1)

    if not results:
        return
    pipeline.grade(results, grader)
    print_results(results)
    _write_report(results, report or source / "grades.xlsx")

    if template is not None:
        destination = template_output or template.with_name(f"{template.stem}_filled.xlsx")
        try:
            updated = fill_grade_template(template, destination, grades_by_student(results), settings.report)
        except (OSError, ReportError) as e:
            console.print(f"[red]Could not fill template:[/red] {e}")
            raise typer.Exit(code=1)
        console.print(f"Template: {destination} ({updated} rows updated)")


if __name__ == "__main__":
    app()

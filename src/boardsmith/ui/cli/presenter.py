"""Rich-aware presenters for CLI output and diagnostics."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text
import typer

from boardsmith.api.service import ExportResponse, InspectionReport
from boardsmith.core.models import Artifact, ArtifactKind, Issue, Severity

from .state import CLIState


_KIND_STYLES = {
    ArtifactKind.PRIMARY: "bright_cyan",
    ArtifactKind.SATELLITE: "cyan",
    ArtifactKind.ASSET: "magenta",
    ArtifactKind.REPORT: "yellow",
}


def _get_console(state: CLIState) -> Console | None:
    """Return the stdout console when it is attached to a terminal."""
    console = state.console
    return console if console.is_terminal else None


def _format_path(path: Path) -> str:
    """Format a path relative to the current working directory for display."""
    resolved = path.resolve()
    try:
        return str(resolved.relative_to(Path.cwd()))
    except ValueError:
        return str(resolved)


def format_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f"{size / (1024 * 1024):.2f} MiB"
    if size >= 1024:
        return f"{size / 1024:.1f} KiB"
    return f"{size} B"


def _artifact_rows(
    artifacts: Sequence[Artifact], output_dir: Path | None
) -> list[tuple[ArtifactKind, str, str]]:
    rows: list[tuple[ArtifactKind, str, str]] = []
    for artifact in artifacts:
        location = artifact.relative_path
        if output_dir is not None:
            location = _format_path(output_dir / artifact.relative_path)
        rows.append((artifact.kind, location, format_size(artifact.size)))
    return rows


def present_export_summary(state: CLIState, response: ExportResponse, *, dry_run: bool) -> None:
    """Display the artifacts produced by an export."""
    result = response.result
    title = "Planned files" if dry_run else "Exported files"
    rows = _artifact_rows(result.artifacts, None if dry_run else result.output_dir)

    console = _get_console(state)
    if console is not None:
        table = Table(title=title, box=box.SQUARE, header_style="bold cyan")
        table.add_column("Artifact", style="cyan")
        table.add_column("Location")
        table.add_column("Filesize", style="magenta", justify="right", no_wrap=True)
        for kind, location, size in rows:
            table.add_row(kind.value, Text(location, style=_KIND_STYLES.get(kind)), size)
        console.print(table)
    else:
        typer.echo(f"{title}:")
        for kind, location, size in rows:
            typer.echo(f"  * {kind.value}: {location} ({size})")

    present_issues(state, [*result.errors, *result.warnings])


def present_issues(state: CLIState, issues: Sequence[Issue]) -> None:
    """Render the problems collected by a pipeline run."""
    if not issues:
        return

    console = _get_console(state)
    if console is not None:
        table = Table(title="Issues", box=box.SQUARE, header_style="bold cyan")
        table.add_column("Severity")
        table.add_column("Code", style="cyan")
        table.add_column("Reference")
        table.add_column("Message")
        for issue in issues:
            style = "red" if issue.severity is Severity.ERROR else "yellow"
            table.add_row(
                Text(issue.severity.value, style=style),
                issue.code,
                issue.reference or "",
                issue.message,
            )
        console.print(table)
        return

    typer.echo("Issues:")
    for issue in issues:
        reference = f" [{issue.reference}]" if issue.reference else ""
        typer.echo(f"  - {issue.severity.value} {issue.code}{reference}: {issue.message}")


def present_inspection(state: CLIState, report: InspectionReport) -> None:
    """Render the outcome of ``boardsmith inspect``."""
    rows = [
        ("Source", _format_path(report.source)),
        ("Format", report.format.value),
        ("Sections", str(report.section_count)),
        ("Items", str(report.item_count)),
        ("Includes", str(len(report.directives))),
        ("Assets", str(report.asset_count)),
    ]
    missing = [("missing include", ref) for ref in report.missing_includes]
    missing.extend(("missing asset", ref) for ref in report.missing_assets)

    console = _get_console(state)
    if console is not None:
        table = Table(box=box.SQUARE, show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        for name, value in rows:
            table.add_row(name, value)
        for label, ref in missing:
            table.add_row(Text(label, style="yellow"), ref)
        console.print(table)
        return

    for name, value in rows:
        typer.echo(f"{name}: {value}")
    for label, ref in missing:
        typer.echo(f"  - {label}: {ref}")


__all__ = ["format_size", "present_export_summary", "present_inspection", "present_issues"]

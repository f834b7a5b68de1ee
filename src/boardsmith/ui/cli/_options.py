"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from boardsmith.core.models import AssetStrategy, FormatStrategy, IncludeStrategy, SurfaceFormat
from boardsmith.core.tags import TagVisibility


INPUTS_PANEL = "Input Handling"
CONTENT_PANEL = "Content"
OUTPUT_PANEL = "Output"

SourceArgument = Annotated[
    Path,
    typer.Argument(
        metavar="SOURCE",
        help="Kanban or presentation Markdown file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
        rich_help_panel=INPUTS_PANEL,
    ),
]

SourceFormatOption = Annotated[
    SurfaceFormat | None,
    typer.Option(
        "--source-format",
        case_sensitive=False,
        help="Override the surface syntax detected from the front matter.",
        rich_help_panel=INPUTS_PANEL,
    ),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        readable=True,
        help="YAML file holding export defaults.",
        rich_help_panel=INPUTS_PANEL,
    ),
]

ScopeOption = Annotated[
    str,
    typer.Option(
        "--scope",
        "-s",
        help="Part of the board to export: full, row:N, stack:N:K, section:I or item:S.I.",
        rich_help_panel=CONTENT_PANEL,
    ),
]

FormatOption = Annotated[
    FormatStrategy | None,
    typer.Option(
        "--format",
        "-f",
        case_sensitive=False,
        help="Surface syntax of the exported files.",
        rich_help_panel=CONTENT_PANEL,
    ),
]

IncludeOption = Annotated[
    IncludeStrategy | None,
    typer.Option(
        "--includes",
        case_sensitive=False,
        help="Merge included files, emit them separately, or leave directives untouched.",
        rich_help_panel=CONTENT_PANEL,
    ),
]

AssetOption = Annotated[
    AssetStrategy | None,
    typer.Option(
        "--assets",
        case_sensitive=False,
        help="How referenced media are bundled.",
        rich_help_panel=CONTENT_PANEL,
    ),
]

TagVisibilityOption = Annotated[
    TagVisibility | None,
    typer.Option(
        "--tags",
        case_sensitive=False,
        help="Which tags survive the export.",
        rich_help_panel=CONTENT_PANEL,
    ),
]

MaxDepthOption = Annotated[
    int | None,
    typer.Option(
        "--max-depth",
        min=1,
        help="Maximum include nesting depth.",
        rich_help_panel=CONTENT_PANEL,
    ),
]

OutputDirOption = Annotated[
    Path | None,
    typer.Option(
        "--output-dir",
        "-o",
        file_okay=False,
        help="Directory receiving the exported files (defaults to <stem>-YYYYMMDD-HHmm).",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

TargetNameOption = Annotated[
    str | None,
    typer.Option(
        "--name",
        help="File name of the primary export.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="Report the files that would be written without touching the disk.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

OutputFileOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        dir_okay=False,
        help="Write the converted document to this file instead of stdout.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]

NoMarkerOption = Annotated[
    bool,
    typer.Option(
        "--no-marker",
        help="Do not insert the kanban front matter marker.",
        rich_help_panel=OUTPUT_PANEL,
    ),
]


__all__ = [
    "AssetOption",
    "ConfigOption",
    "DryRunOption",
    "FormatOption",
    "IncludeOption",
    "MaxDepthOption",
    "NoMarkerOption",
    "OutputDirOption",
    "OutputFileOption",
    "ScopeOption",
    "SourceArgument",
    "SourceFormatOption",
    "TagVisibilityOption",
    "TargetNameOption",
]

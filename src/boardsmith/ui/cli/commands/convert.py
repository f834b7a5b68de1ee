"""Implementation of the `boardsmith convert` command."""

from __future__ import annotations

from typing import Annotated

import typer

from boardsmith.api.service import ExportService
from boardsmith.core.exceptions import BoardsmithError, exception_hint
from boardsmith.core.models import SurfaceFormat

from .._options import NoMarkerOption, OutputFileOption, SourceArgument, SourceFormatOption
from ..state import debug_enabled, emit_error, emit_warning


def convert(
    source: SourceArgument,
    target: Annotated[
        SurfaceFormat,
        typer.Argument(
            metavar="TARGET",
            case_sensitive=False,
            help="Surface syntax to convert to: kanban or presentation.",
        ),
    ],
    output: OutputFileOption = None,
    source_format: SourceFormatOption = None,
    no_marker: NoMarkerOption = False,
) -> None:
    """Convert a single file between the kanban and presentation syntaxes."""
    if target is SurfaceFormat.OPAQUE:
        raise typer.BadParameter("Conversion target must be kanban or presentation.")

    service = ExportService()
    try:
        converted = service.convert_file(
            source, target, source_format=source_format, insert_marker=not no_marker
        )
    except BoardsmithError as exc:
        if debug_enabled():
            raise
        emit_error(exception_hint(exc) or str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    if converted.format is not target:
        emit_warning(f"'{source.name}' has no convertible structure; content left unchanged.")

    if output is None:
        typer.echo(converted.text, nl=False)
        return

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(converted.text, encoding="utf-8")
    except OSError as exc:
        emit_error(f"Failed to write '{output}': {exc}", exception=exc)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Wrote {output}")


__all__ = ["convert"]

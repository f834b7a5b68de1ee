"""Implementation of the `boardsmith inspect` command."""

from __future__ import annotations

import typer

from boardsmith.api.service import ExportService
from boardsmith.core.exceptions import BoardsmithError, exception_hint

from .._options import SourceArgument, SourceFormatOption
from ..presenter import present_inspection
from ..state import emit_error, emit_warning, get_cli_state


def inspect(
    source: SourceArgument,
    source_format: SourceFormatOption = None,
) -> None:
    """Validate a file: detected format, layout, include targets and assets."""
    state = get_cli_state()
    try:
        report = ExportService().inspect(source, source_format)
    except BoardsmithError as exc:
        emit_error(exception_hint(exc) or str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    present_inspection(state, report)
    if not report.valid:
        emit_warning(", ".join(report.issues))
        raise typer.Exit(code=1)


__all__ = ["inspect"]

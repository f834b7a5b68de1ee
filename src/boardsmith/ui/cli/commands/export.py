"""Implementation of the `boardsmith export` command."""

from __future__ import annotations

from pathlib import Path

import typer

from boardsmith.api.service import ExportRequest, ExportService, default_export_folder
from boardsmith.core.config import load_config
from boardsmith.core.exceptions import BoardsmithError, ScopeError, exception_hint
from boardsmith.core.scope import parse_scope

from .._options import (
    AssetOption,
    ConfigOption,
    DryRunOption,
    FormatOption,
    IncludeOption,
    MaxDepthOption,
    OutputDirOption,
    ScopeOption,
    SourceArgument,
    SourceFormatOption,
    TagVisibilityOption,
    TargetNameOption,
)
from ..diagnostics import CliEmitter
from ..presenter import present_export_summary
from ..state import debug_enabled, emit_error, get_cli_state


def export(
    source: SourceArgument,
    scope: ScopeOption = "full",
    format_strategy: FormatOption = None,
    include_strategy: IncludeOption = None,
    asset_strategy: AssetOption = None,
    tag_visibility: TagVisibilityOption = None,
    max_depth: MaxDepthOption = None,
    source_format: SourceFormatOption = None,
    config_path: ConfigOption = None,
    output_dir: OutputDirOption = None,
    target_name: TargetNameOption = None,
    dry_run: DryRunOption = False,
) -> None:
    """Export a board or presentation, resolving includes and bundling assets."""
    state = get_cli_state()

    try:
        parsed_scope = parse_scope(scope)
    except ScopeError as exc:
        raise typer.BadParameter(str(exc), param_hint="--scope") from exc

    try:
        config = load_config(config_path)
    except BoardsmithError as exc:
        emit_error(exception_hint(exc) or str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    destination: Path | None = None
    if not dry_run:
        destination = output_dir or config.export_folder or default_export_folder(source)
    config = config.model_copy(update={"export_folder": None})

    request = ExportRequest(
        source=source,
        scope=parsed_scope,
        output_dir=destination,
        source_format=source_format,
        config=config,
        format_strategy=format_strategy,
        include_strategy=include_strategy,
        asset_strategy=asset_strategy,
        tag_visibility=tag_visibility,
        max_depth=max_depth,
        target_name=target_name,
        emitter=CliEmitter(state),
    )

    try:
        response = ExportService().export(request)
    except BoardsmithError as exc:
        if debug_enabled():
            raise
        emit_error(exception_hint(exc) or str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    present_export_summary(state, response, dry_run=dry_run)
    if not response.ok:
        raise typer.Exit(code=1)


__all__ = ["export"]

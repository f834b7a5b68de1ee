"""High-level service wrapping file loading and pipeline execution."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from boardsmith.core.assets import AssetCollector
from boardsmith.core.config import BoardsmithConfig
from boardsmith.core.context import CancellationToken
from boardsmith.core.conversion import convert, declared_format, to_board
from boardsmith.core.diagnostics import DiagnosticEmitter, ensure_emitter
from boardsmith.core.exceptions import BoardsmithError
from boardsmith.core.includes import find_directives
from boardsmith.core.models import (
    AssetStrategy,
    ContentUnit,
    Directive,
    FormatStrategy,
    FullScope,
    IncludeStrategy,
    PipelineResult,
    Scope,
    SurfaceFormat,
    TagVisibility,
)
from boardsmith.core.pipeline import ContentPipeline


__all__ = [
    "ExportRequest",
    "ExportResponse",
    "ExportService",
    "InspectionReport",
    "default_export_folder",
]


def default_export_folder(source: Path, *, now: datetime | None = None) -> Path:
    """Return ``<dir>/<stem>-YYYYMMDD-HHmm`` next to ``source``."""
    moment = now or datetime.now()
    return source.parent / f"{source.stem}-{moment:%Y%m%d-%H%M}"


@dataclass(slots=True)
class ExportRequest:
    """Description of one export run."""

    source: Path
    scope: Scope = FullScope()
    output_dir: Path | None = None
    source_format: SurfaceFormat | None = None
    config: BoardsmithConfig = field(default_factory=BoardsmithConfig)

    format_strategy: FormatStrategy | None = None
    include_strategy: IncludeStrategy | None = None
    asset_strategy: AssetStrategy | None = None
    tag_visibility: TagVisibility | None = None
    max_depth: int | None = None
    target_name: str | None = None

    emitter: DiagnosticEmitter | None = None
    cancel: CancellationToken | None = None


@dataclass(slots=True)
class ExportResponse:
    """Captured outcome of :class:`ExportService` execution."""

    request: ExportRequest
    unit: ContentUnit
    result: PipelineResult

    @property
    def ok(self) -> bool:
        return self.result.ok


@dataclass(slots=True)
class InspectionReport:
    """Summary of a content file before exporting it."""

    source: Path
    format: SurfaceFormat
    directives: list[Directive] = field(default_factory=list)
    missing_includes: list[str] = field(default_factory=list)
    asset_count: int = 0
    missing_assets: list[str] = field(default_factory=list)
    section_count: int = 0
    item_count: int = 0

    @property
    def issues(self) -> list[str]:
        problems: list[str] = []
        if self.missing_assets:
            problems.append(f"{len(self.missing_assets)} missing assets")
        if self.missing_includes:
            problems.append(f"{len(self.missing_includes)} missing includes")
        return problems

    @property
    def valid(self) -> bool:
        return not self.issues


class ExportService:
    """Load content files and drive :class:`ContentPipeline` on them."""

    def __init__(self, *, emitter: DiagnosticEmitter | None = None) -> None:
        self.emitter = emitter

    def load_unit(self, source: Path, source_format: SurfaceFormat | None = None) -> ContentUnit:
        """Read ``source`` and tag it with its declared or requested format."""
        path = Path(source)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise BoardsmithError(f"Failed to read content file '{path}': {exc}") from exc
        fmt = source_format or declared_format(text)
        return ContentUnit.create(path.absolute(), fmt, text)

    def export(self, request: ExportRequest) -> ExportResponse:
        """Run the pipeline for ``request``."""
        emitter = request.emitter or self.emitter
        unit = self.load_unit(request.source, request.source_format)
        options = request.config.to_options(
            scope=request.scope,
            output_dir=request.output_dir,
            target_name=request.target_name,
            format_strategy=request.format_strategy,
            include_strategy=request.include_strategy,
            asset_strategy=request.asset_strategy,
            tag_visibility=request.tag_visibility,
            max_depth=request.max_depth,
        )
        pipeline = ContentPipeline(emitter=emitter)
        result = pipeline.execute(unit, options, cancel=request.cancel)
        return ExportResponse(request=request, unit=unit, result=result)

    def convert_file(
        self,
        source: Path,
        target: SurfaceFormat,
        *,
        source_format: SurfaceFormat | None = None,
        insert_marker: bool = True,
    ) -> ContentUnit:
        """Convert one file to another surface syntax without resolving includes."""
        unit = self.load_unit(source, source_format)
        return convert(unit, target, insert_marker=insert_marker)

    def inspect(self, source: Path, source_format: SurfaceFormat | None = None) -> InspectionReport:
        """Validate a content file: format, include targets, assets and layout."""
        unit = self.load_unit(source, source_format)
        directives = find_directives(unit.text, unit.base_dir)
        collector = AssetCollector(emitter=ensure_emitter(self.emitter))
        records = collector.collect(unit.text, unit.base_dir)
        board = to_board(unit)
        return InspectionReport(
            source=unit.source_path,
            format=unit.format,
            directives=directives,
            missing_includes=[
                directive.raw_argument
                for directive in directives
                if not directive.resolved_path.is_file()
            ],
            asset_count=len(records),
            missing_assets=[record.original_reference for record in records if not record.exists],
            section_count=len(board.sections),
            item_count=sum(len(section.items) for section in board.sections),
        )

    @staticmethod
    def default_export_folder(source: Path, *, now: datetime | None = None) -> Path:
        return default_export_folder(Path(source), now=now)

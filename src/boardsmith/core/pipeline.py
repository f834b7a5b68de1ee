"""Orchestration of scope extraction, includes, conversion, tags and assets.

Every invocation returns a :class:`PipelineResult`; document problems are
collected in its report. Only an output root that cannot be prepared
(:class:`WriteError`) and cancellation (:class:`PipelineCancelled`) raise.

Artifacts are staged in a temporary directory inside the output root and
moved into place once every one of them was staged.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
import os
from pathlib import Path
import shutil
import tempfile

from slugify import slugify

from .assets import NOT_INCLUDED_REPORT, AssetCollector, render_exclusion_report, rewrite
from .board import render_board, split_front_matter
from .context import CancellationToken
from .conversion import convert, from_board, render_item, to_board
from .diagnostics import DiagnosticEmitter, ensure_emitter, record_event
from .exceptions import PipelineCancelled, ScopeError, WriteError
from .includes import IncludeResolver
from .models import (
    Artifact,
    ArtifactKind,
    AssetRecord,
    AssetStrategy,
    Board,
    ContentUnit,
    FullScope,
    Issue,
    ItemScope,
    OperationOptions,
    PipelineResult,
    RowScope,
    SectionScope,
    Severity,
    StackScope,
    SurfaceFormat,
)
from .registry import OutputRegistry
from .scope import extract
from .tags import filter_tags


logger = logging.getLogger(__name__)


def _ensure_markdown_name(name: str) -> str:
    return name if name.lower().endswith(".md") else f"{name}.md"


def output_name(stem: str, options: OperationOptions, board: Board | None = None) -> str:
    """Return the primary artifact name for a scope."""
    if options.target_name:
        return _ensure_markdown_name(options.target_name)

    scope = options.scope
    if isinstance(scope, RowScope):
        return f"{stem}-row{scope.row}.md"
    if isinstance(scope, StackScope):
        return f"{stem}-row{scope.row}-stack{scope.stack}.md"
    if isinstance(scope, (SectionScope, ItemScope)) and board is not None and board.sections:
        section = board.sections[0]
        title = section.items[0].title if isinstance(scope, ItemScope) else section.title
        slug = slugify(title, separator="-")
        return f"{stem}-{slug or scope.label}.md"
    if isinstance(scope, (SectionScope, ItemScope)):
        return f"{stem}-{scope.label}.md"
    return f"{stem}.md"


def media_directory(primary_name: str) -> str:
    return f"{Path(primary_name).stem}-Media"


class ContentPipeline:
    """Compose every pipeline stage into a single operation."""

    def __init__(
        self,
        *,
        emitter: DiagnosticEmitter | None = None,
        loader: Callable[[Path], str] | None = None,
    ) -> None:
        self.emitter = ensure_emitter(emitter)
        self.loader = loader

    def execute(
        self,
        root_unit: ContentUnit,
        options: OperationOptions,
        *,
        cancel: CancellationToken | None = None,
    ) -> PipelineResult:
        """Run the pipeline for ``root_unit`` and write artifacts when an output root is set."""
        result = PipelineResult(output_dir=options.output_dir)

        scoped, board = self._scope(root_unit, options, result)
        if scoped is None:
            return result

        primary_name = output_name(root_unit.stem, options, board)
        registry = OutputRegistry()
        registry.reserve(primary_name)
        registry.reserve(NOT_INCLUDED_REPORT)

        if cancel is not None:
            cancel.raise_if_cancelled()

        resolver = IncludeResolver(
            registry=registry, emitter=self.emitter, cancel=cancel, loader=self.loader
        )
        resolved = resolver.resolve_all(scoped, options.include_strategy, options.max_depth)
        for issue in resolved.issues:
            result.add_issue(issue)

        units: list[tuple[str, ArtifactKind, ContentUnit]] = [
            (primary_name, ArtifactKind.PRIMARY, resolved.primary)
        ]
        units.extend(
            (satellite.relative_path, ArtifactKind.SATELLITE, satellite.unit)
            for satellite in resolved.satellites
        )

        units = [(name, kind, self._finalize(unit, options)) for name, kind, unit in units]

        collector = AssetCollector(
            registry=registry,
            asset_kinds=options.asset_kinds,
            size_limit=options.size_limit,
            embed_limit=options.embed_limit,
            emitter=self.emitter,
            on_decode_error=lambda exc: result.add_issue(
                Issue.from_exception(exc, Severity.WARNING)
            ),
        )
        media_dir = media_directory(primary_name)
        records: list[AssetRecord] = []
        artifacts: list[Artifact] = []
        for name, kind, unit in units:
            if cancel is not None:
                cancel.raise_if_cancelled()
            text = unit.text
            if options.asset_strategy is not AssetStrategy.IGNORE:
                found = collector.collect(text, unit.base_dir)
                processed = collector.process(found, options.asset_strategy, media_dir)
                records.extend(processed)
                text = rewrite(text, processed)
            artifacts.append(Artifact(relative_path=name, kind=kind, content=text.encode("utf-8")))
        for issue in collector.issues:
            result.add_issue(issue)

        artifacts.extend(self._asset_artifacts(records))
        if options.asset_strategy in (AssetStrategy.COPY, AssetStrategy.EMBED):
            report = render_exclusion_report(records)
            if report is not None:
                artifacts.append(
                    Artifact(
                        relative_path=NOT_INCLUDED_REPORT,
                        kind=ArtifactKind.REPORT,
                        content=report.encode("utf-8"),
                    )
                )

        result.artifacts = artifacts
        if options.output_dir is None:
            return result
        return self._write(result, Path(options.output_dir), cancel)

    # Stages -------------------------------------------------------------

    def _scope(
        self, root_unit: ContentUnit, options: OperationOptions, result: PipelineResult
    ) -> tuple[ContentUnit | None, Board | None]:
        scope = options.scope
        if isinstance(scope, FullScope):
            return root_unit, None

        board = to_board(root_unit)
        try:
            selected = extract(board, scope)
        except ScopeError as exc:
            self.emitter.error(str(exc), exc)
            result.add_issue(
                Issue.from_exception(
                    exc, Severity.ERROR, reference=scope.label, source=root_unit.source_path
                )
            )
            return None, None

        if not selected.sections:
            logger.info("Scope %s selected nothing in %s", scope.label, root_unit.source_path)
            return None, selected

        if isinstance(scope, ItemScope):
            item = selected.sections[0].items[0]
            text = render_item(item, SurfaceFormat.PRESENTATION)
            return root_unit.with_format(SurfaceFormat.OPAQUE, text), selected

        if root_unit.format is SurfaceFormat.KANBAN:
            return root_unit.with_text(render_board(selected)), selected
        front_matter, _, _ = split_front_matter(root_unit.text)
        text = from_board(selected, root_unit.format, front_matter=front_matter)
        return root_unit.with_text(text), selected

    def _finalize(self, unit: ContentUnit, options: OperationOptions) -> ContentUnit:
        unit = convert(unit, options.format_strategy, insert_marker=options.insert_format_marker)
        filtered = filter_tags(unit.text, options.tag_visibility, options.configured_tags)
        if filtered == unit.text:
            return unit
        return unit.with_text(filtered)

    def _asset_artifacts(self, records: list[AssetRecord]) -> list[Artifact]:
        artifacts: list[Artifact] = []
        emitted: set[str] = set()
        for record in records:
            if record.strategy is not AssetStrategy.COPY or record.output_relative_path is None:
                continue
            if record.output_relative_path in emitted:
                continue
            emitted.add(record.output_relative_path)
            artifacts.append(
                Artifact(
                    relative_path=record.output_relative_path,
                    kind=ArtifactKind.ASSET,
                    source_path=record.absolute_path,
                )
            )
        return artifacts

    # Writing ------------------------------------------------------------

    def _write(
        self,
        result: PipelineResult,
        output_dir: Path,
        cancel: CancellationToken | None,
    ) -> PipelineResult:
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteError(f"Cannot create output directory {output_dir}: {exc}") from exc

        try:
            staging_root = tempfile.TemporaryDirectory(prefix=".boardsmith-", dir=output_dir)
        except OSError as exc:
            raise WriteError(f"Cannot stage artifacts in {output_dir}: {exc}") from exc

        moved: list[tuple[Path, Path | None]] = []
        with staging_root as staging_name:
            staging = Path(staging_name)
            previous = staging / ".previous"
            try:
                for artifact in result.artifacts:
                    if cancel is not None:
                        cancel.raise_if_cancelled()
                    self._stage(artifact, staging)
                if cancel is not None:
                    cancel.raise_if_cancelled()
                for artifact in result.artifacts:
                    target = output_dir / artifact.relative_path
                    target.parent.mkdir(parents=True, exist_ok=True)
                    backup: Path | None = None
                    if target.is_file():
                        backup = previous / artifact.relative_path
                        backup.parent.mkdir(parents=True, exist_ok=True)
                        os.replace(target, backup)
                    moved.append((target, backup))
                    os.replace(staging / artifact.relative_path, target)
                    record_event(
                        self.emitter,
                        "artifact_written",
                        {"path": str(target), "kind": artifact.kind.value},
                    )
            except PipelineCancelled:
                logger.info("Pipeline cancelled; discarding staged artifacts in %s", staging)
                raise
            except OSError as exc:
                self._rollback(moved)
                error = WriteError(f"Failed to write artifacts to {output_dir}: {exc}")
                self.emitter.error(str(error), exc)
                return PipelineResult(
                    errors=[Issue.from_exception(error, Severity.ERROR)],
                    output_dir=output_dir,
                )
        return result

    def _rollback(self, moved: list[tuple[Path, Path | None]]) -> None:
        """Remove the artifacts moved so far and put back the files they replaced."""
        for target, backup in reversed(moved):
            try:
                target.unlink(missing_ok=True)
                if backup is not None:
                    os.replace(backup, target)
            except OSError as exc:
                logger.warning("Could not restore %s: %s", target, exc)

    def _stage(self, artifact: Artifact, staging: Path) -> None:
        target = staging / artifact.relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        if artifact.content is not None:
            target.write_bytes(artifact.content)
        elif artifact.source_path is not None:
            shutil.copy2(artifact.source_path, target)


def execute(
    root_unit: ContentUnit,
    options: OperationOptions,
    *,
    emitter: DiagnosticEmitter | None = None,
    cancel: CancellationToken | None = None,
) -> PipelineResult:
    """Run :class:`ContentPipeline` once with default collaborators."""
    return ContentPipeline(emitter=emitter).execute(root_unit, options, cancel=cancel)


__all__ = ["ContentPipeline", "execute", "media_directory", "output_name"]

"""Resolution of include directives across a graph of content units.

Three marker forms are recognised::

    !!!include(path)!!!          content spliced verbatim
    !!!columninclude(path)!!!    target turned into a section
    !!!taskinclude(path)!!!      target turned into exactly one item

The graph is walked with an explicit stack of frames. A target already on
the visiting stack, or one beyond the depth limit, is replaced by an inert
comment and reported; resolution then carries on with the next directive.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
import logging
from pathlib import Path
import re

from .assets import rebase_references
from .board import normalize_newlines, render_item as render_board_item, split_front_matter
from .context import CancellationToken, ResolutionContext, ResolvedEntry
from .conversion import declared_format, item_from_text, section_items, slide_segments
from .diagnostics import DiagnosticEmitter, record_event
from .exceptions import (
    CycleDetectedError,
    DepthExceededError,
    IncludeError,
    MissingIncludeError,
    PathDecodeError,
)
from .models import (
    DEFAULT_MAX_DEPTH,
    ContentUnit,
    Directive,
    DirectiveKind,
    IncludeStrategy,
    Issue,
    Item,
    ResolvedSet,
    Satellite,
    Severity,
    SurfaceFormat,
)
from .paths import DecodeErrorCallback, path_key, resolve
from .registry import OutputRegistry, hash_text
from .slides import SLIDE_DELIMITER, Span


logger = logging.getLogger(__name__)

DIRECTIVE_PATTERN = re.compile(
    r"!!!(?P<kind>include|columninclude|taskinclude)\(\s*(?P<argument>[^)\n]*?)\s*\)!!!"
)
LINE_MARKER_PATTERN = re.compile(r"^[ \t]*(?:#{1,6}[ \t]+|[-*+][ \t]+(?:\[[ xX]\][ \t]*)?)?")


def _collapse(text: str) -> str:
    return " ".join(text.split())


def placeholder(reason: str, reference: str) -> str:
    """Return the inert marker substituted for a skipped directive."""
    return f"<!-- include skipped ({reason}): {reference} -->"


def find_directives(
    text: str,
    base_dir: Path,
    *,
    on_error: DecodeErrorCallback | None = None,
) -> list[Directive]:
    """Scan ``text`` for include markers and resolve their targets."""
    directives: list[Directive] = []
    for match in DIRECTIVE_PATTERN.finditer(text):
        start, end = match.span()
        line_start = text.rfind("\n", 0, start) + 1
        line_end = text.find("\n", end)
        if line_end == -1:
            line_end = len(text)
        line = text[line_start:line_end]
        marker = LINE_MARKER_PATTERN.match(line).group(0)
        if len(marker) > start - line_start:
            marker = ""
        argument = match.group("argument")
        directives.append(
            Directive(
                kind=DirectiveKind(match.group("kind")),
                raw_argument=argument,
                resolved_path=resolve(base_dir, argument, on_error=on_error),
                surrounding_prefix=text[line_start + len(marker) : start],
                surrounding_suffix=text[end:line_end],
                start=start,
                end=end,
                line_start=line_start,
                line_end=line_end,
                line_marker=marker,
            )
        )
    return directives


Replacement = tuple[int, int, str, tuple[Span, ...]]


@dataclass(slots=True)
class _Frame:
    unit: ContentUnit
    key: str
    depth: int
    directives: list[Directive]
    issue_mark: int
    index: int = 0
    height: int = 0
    replacements: list[Replacement] = field(default_factory=list)

    @property
    def current(self) -> Directive:
        return self.directives[self.index]


def _splice(text: str, replacements: list[Replacement]) -> tuple[str, tuple[Span, ...]]:
    """Apply ``replacements`` and return the new text with the item spans they carry."""
    pieces: list[str] = []
    spans: list[Span] = []
    cursor = 0
    length = 0
    for start, end, value, inner in sorted(replacements, key=lambda item: item[0]):
        if start < cursor:
            continue
        gap = text[cursor:start]
        pieces.append(gap)
        length += len(gap)
        spans.extend((length + a, length + b) for a, b in inner)
        pieces.append(value)
        length += len(value)
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces), tuple(spans)


def _map_pieces(
    text: str, spans: tuple[Span, ...], transform: Callable[[str], str]
) -> tuple[str, tuple[Span, ...]]:
    """Transform ``text`` piece by piece so that ``spans`` still frame the same pieces."""
    if not spans:
        return transform(text), ()
    replacements: list[Replacement] = []
    cursor = 0
    for start, end in sorted(spans):
        if cursor < start:
            replacements.append((cursor, start, transform(text[cursor:start]), ()))
        piece = transform(text[start:end])
        replacements.append((start, end, piece, ((0, len(piece)),)))
        cursor = end
    replacements.append((cursor, len(text), transform(text[cursor:]), ()))
    return _splice(text, replacements)


def _strip_front_matter(text: str, spans: tuple[Span, ...]) -> tuple[str, tuple[Span, ...]]:
    raw_block, _, body = split_front_matter(text)
    if raw_block is None:
        return text, spans
    body = body.lstrip("\n")
    shift = len(text) - len(body)
    return body, tuple((a - shift, b - shift) for a, b in spans if a >= shift)


def _strip_final_newline(text: str, spans: tuple[Span, ...]) -> tuple[str, tuple[Span, ...]]:
    if text.endswith("\r\n"):
        text = text[:-2]
    elif text.endswith("\n"):
        text = text[:-1]
    return text, tuple((a, min(b, len(text))) for a, b in spans if a < len(text))


class IncludeResolver:
    """Walk include directives and apply the merge or separate strategy."""

    def __init__(
        self,
        *,
        registry: OutputRegistry | None = None,
        emitter: DiagnosticEmitter | None = None,
        cancel: CancellationToken | None = None,
        loader: Callable[[Path], str] | None = None,
    ) -> None:
        self.registry = registry
        self.emitter = emitter
        self.cancel = cancel
        self.loader = loader

    def new_context(
        self, strategy: IncludeStrategy, max_depth: int = DEFAULT_MAX_DEPTH
    ) -> ResolutionContext:
        context = ResolutionContext(
            strategy=strategy,
            max_depth=max_depth,
            registry=self.registry if self.registry is not None else OutputRegistry(),
            cancel=self.cancel,
            emitter=self.emitter,
        )
        if self.loader is not None:
            context.loader = self.loader
        return context

    def resolve_all(
        self,
        unit: ContentUnit,
        strategy: IncludeStrategy,
        max_depth: int = DEFAULT_MAX_DEPTH,
        *,
        context: ResolutionContext | None = None,
    ) -> ResolvedSet:
        """Resolve every directive reachable from ``unit``."""
        if context is None:
            context = self.new_context(strategy, max_depth)
        if strategy is IncludeStrategy.IGNORE:
            return ResolvedSet(primary=unit)

        if "\r" in unit.text:
            unit = unit.with_text(normalize_newlines(unit.text))
        primary = self._walk(unit, context)
        return ResolvedSet(
            primary=primary,
            satellites=tuple(context.satellites),
            issues=tuple(context.issues),
        )

    # Walk ---------------------------------------------------------------

    def _decode_reporter(self, context: ResolutionContext, source: Path):
        def report(exc: PathDecodeError) -> None:
            context.issues.append(Issue.from_exception(exc, Severity.WARNING, source=source))

        return report

    def _frame(self, unit: ContentUnit, depth: int, context: ResolutionContext) -> _Frame:
        directives = find_directives(
            unit.text,
            unit.base_dir,
            on_error=self._decode_reporter(context, unit.source_path),
        )
        return _Frame(
            unit=unit,
            key=path_key(unit.source_path),
            depth=depth,
            directives=directives,
            issue_mark=len(context.issues),
        )

    def _finish(self, frame: _Frame, context: ResolutionContext) -> ContentUnit:
        if frame.replacements:
            text, spans = _splice(frame.unit.text, frame.replacements)
            finished = ContentUnit.create(
                frame.unit.source_path, frame.unit.format, text, spans
            )
        else:
            finished = frame.unit
        if len(context.issues) == frame.issue_mark:
            context.resolved[frame.key] = ResolvedEntry(
                finished.text, finished.item_spans, frame.height
            )
        return finished

    def _walk(self, root: ContentUnit, context: ResolutionContext) -> ContentUnit:
        stack = [self._frame(root, 0, context)]
        context.visiting.append(stack[0].key)

        while True:
            frame = stack[-1]
            if frame.index >= len(frame.directives):
                stack.pop()
                context.visiting.pop()
                finished = self._finish(frame, context)
                if not stack:
                    return finished
                parent = stack[-1]
                parent.height = max(parent.height, frame.height + 1)
                self._complete(parent, finished, context)
                parent.index += 1
                continue

            context.check_cancelled()
            child = self._enter(frame, context)
            if child is None:
                frame.index += 1
                continue
            if not child.directives:
                finished = self._finish(child, context)
                frame.height = max(frame.height, child.height + 1)
                self._complete(frame, finished, context)
                frame.index += 1
                continue
            stack.append(child)
            context.visiting.append(child.key)

    def _skip(
        self,
        frame: _Frame,
        exc: IncludeError,
        reason: str,
        severity: Severity,
        context: ResolutionContext,
    ) -> None:
        directive = frame.current
        logger.debug("Skipping include: %s", exc)
        if context.emitter is not None:
            if severity is Severity.ERROR:
                context.emitter.error(str(exc), exc)
            else:
                context.emitter.warning(str(exc), exc)
        context.issues.append(
            Issue.from_exception(exc, severity, source=frame.unit.source_path)
        )
        frame.replacements.append(
            (directive.start, directive.end, placeholder(reason, directive.raw_argument), ())
        )

    def _enter(self, frame: _Frame, context: ResolutionContext) -> _Frame | None:
        directive = frame.current
        target = directive.resolved_path
        key = path_key(target)

        if key in context.visiting:
            exc = CycleDetectedError(
                f"Include cycle detected: '{directive.raw_argument}' is already being resolved",
                reference=directive.raw_argument,
                path=target,
            )
            self._skip(frame, exc, "cycle", Severity.ERROR, context)
            return None

        depth = frame.depth + 1
        if depth > context.max_depth:
            exc = DepthExceededError(
                f"Include depth limit of {context.max_depth} exceeded "
                f"at '{directive.raw_argument}'",
                reference=directive.raw_argument,
                path=target,
            )
            self._skip(frame, exc, "depth", Severity.ERROR, context)
            return None

        cached = context.resolved.get(key)
        if cached is not None and depth + cached.height > context.max_depth:
            cached = None
        if cached is not None:
            text, spans = cached.text, cached.item_spans
        else:
            try:
                text = normalize_newlines(context.loader(target))
            except (OSError, UnicodeDecodeError) as exc:
                missing = MissingIncludeError(
                    f"Cannot read include '{directive.raw_argument}' ({target})",
                    reference=directive.raw_argument,
                    path=target,
                )
                missing.__cause__ = exc
                self._skip(frame, missing, "missing", Severity.WARNING, context)
                return None
            spans = ()

        if directive.kind is DirectiveKind.ITEM:
            fmt = SurfaceFormat.OPAQUE
        else:
            fmt = declared_format(text)
        unit = ContentUnit.create(target, fmt, text, spans)
        record_event(
            context.emitter,
            "include_resolved",
            {"kind": directive.kind.value, "path": str(target), "depth": depth},
        )
        if cached is not None:
            return _Frame(
                unit=unit,
                key=key,
                depth=depth,
                directives=[],
                issue_mark=len(context.issues),
                height=cached.height,
            )
        return self._frame(unit, depth, context)

    # Strategies ---------------------------------------------------------

    def _complete(self, frame: _Frame, child: ContentUnit, context: ResolutionContext) -> None:
        directive = frame.current
        if context.strategy is IncludeStrategy.SEPARATE:
            frame.replacements.append(self._separate(directive, child, context))
        else:
            frame.replacements.append(self._merge(frame.unit, directive, child))

    def _separate(
        self, directive: Directive, child: ContentUnit, context: ResolutionContext
    ) -> Replacement:
        digest = hash_text(child.text)
        relative, reused = context.registry.claim(digest, child.source_path.name)
        if not reused:
            context.satellites.append(
                Satellite(unit=child, relative_path=relative, content_hash=digest)
            )
        record_event(
            context.emitter,
            "satellite_emitted",
            {"output": relative, "source": str(child.source_path), "reused": reused},
        )
        marker = replace(directive, raw_argument=relative).marker
        return directive.start, directive.end, marker, ()

    def _merge(self, host: ContentUnit, directive: Directive, child: ContentUnit) -> Replacement:
        text, spans = child.text, child.item_spans
        if directive.kind is not DirectiveKind.SECTION:
            # Only section includes read the target's front matter.
            text, spans = _strip_front_matter(text, spans)
        text, spans = _map_pieces(
            text, spans, lambda piece: rebase_references(piece, child.base_dir, host.base_dir)
        )

        if directive.kind is DirectiveKind.CONTENT:
            text, spans = _strip_final_newline(text, spans)
            return directive.start, directive.end, text, spans

        if directive.kind is DirectiveKind.SECTION:
            rebased = ContentUnit.create(child.source_path, child.format, text, spans)
            header = _collapse(
                directive.surrounding_prefix
                + directive.resolved_path.name
                + directive.surrounding_suffix
            )
            if host.format is SurfaceFormat.KANBAN:
                lines = [f"## {header}"]
                lines.extend(render_board_item(item) for item in section_items(rebased))
                return directive.line_start, directive.line_end, "\n".join(lines), ()
            return (directive.line_start, directive.line_end, *_join_section(header, rebased))

        if host.format is SurfaceFormat.KANBAN:
            item = item_from_text(text)
            title = _collapse(
                directive.surrounding_prefix + item.title + directive.surrounding_suffix
            )
            line = host.text[directive.line_start : directive.line_end]
            indent = line[: len(line) - len(line.lstrip(" \t"))]
            checked = "[x]" in directive.line_marker.lower()
            rendered = render_board_item(
                Item(title=title, body=item.body, checked=checked)
            )
            value = "\n".join(
                f"{indent}{row}" if row else "" for row in rendered.split("\n")
            )
            return directive.line_start, directive.line_end, value, ()

        value, _ = _strip_final_newline(text, ())
        return directive.start, directive.end, value, ((0, len(value)),) if value else ()


def _join_section(header: str, unit: ContentUnit) -> tuple[str, tuple[Span, ...]]:
    """Render a section include as heading slide plus slides, tracking item slides."""
    separator = f"\n\n{SLIDE_DELIMITER}\n\n"
    value = f"## {header}"
    spans: list[Span] = []
    for segment, holds_item in slide_segments(unit):
        value += separator
        if holds_item:
            spans.append((len(value), len(value) + len(segment)))
        value += segment
    return value, tuple(spans)


def resolve_all(
    unit: ContentUnit,
    strategy: IncludeStrategy,
    max_depth: int = DEFAULT_MAX_DEPTH,
    *,
    registry: OutputRegistry | None = None,
    emitter: DiagnosticEmitter | None = None,
    cancel: CancellationToken | None = None,
) -> ResolvedSet:
    """Convenience wrapper around :class:`IncludeResolver`."""
    resolver = IncludeResolver(registry=registry, emitter=emitter, cancel=cancel)
    return resolver.resolve_all(unit, strategy, max_depth)


__all__ = [
    "DIRECTIVE_PATTERN",
    "IncludeResolver",
    "find_directives",
    "placeholder",
    "resolve_all",
]

"""Immutable data model shared by every pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from .exceptions import BoardsmithError
from .tags import DEFAULT_CONFIGURED_TAGS, TagVisibility, extract_tags, is_stacked, row_of


LARGE_FILE_THRESHOLD = 1024 * 1024
HASH_WINDOW = 100 * 1024
EMBED_LIMIT = 100 * 1024
DEFAULT_SIZE_LIMIT = 100 * 1024 * 1024
DEFAULT_MAX_DEPTH = 10


class SurfaceFormat(str, Enum):
    """Surface syntax carried by every content unit."""

    KANBAN = "kanban"
    PRESENTATION = "presentation"
    OPAQUE = "opaque"


class DirectiveKind(str, Enum):
    """Include granularity, valued by the marker keyword."""

    CONTENT = "include"
    SECTION = "columninclude"
    ITEM = "taskinclude"


class FormatStrategy(str, Enum):
    """Surface syntax requested for the exported units."""

    KEEP = "keep"
    KANBAN = "kanban"
    PRESENTATION = "presentation"

    @property
    def target(self) -> SurfaceFormat | None:
        """Return the surface format requested by the strategy."""
        if self is FormatStrategy.KEEP:
            return None
        return SurfaceFormat(self.value)


class IncludeStrategy(str, Enum):
    """Whether include targets are inlined, emitted as satellites or left alone."""

    MERGE = "merge"
    SEPARATE = "separate"
    IGNORE = "ignore"


class AssetStrategy(str, Enum):
    """Treatment of the media files referenced by a unit."""

    EMBED = "embed"
    COPY = "copy"
    REFERENCE = "reference"
    IGNORE = "ignore"


class AssetKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    FILE = "file"


class ExclusionReason(str, Enum):
    """Reason an asset was left out of the bundle."""

    MISSING = "missing"
    TOO_LARGE = "too_large"
    EXCLUDED_TYPE = "excluded_type"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class ArtifactKind(str, Enum):
    PRIMARY = "primary"
    SATELLITE = "satellite"
    ASSET = "asset"
    REPORT = "report"


@dataclass(frozen=True, slots=True)
class ContentUnit:
    """One resolved document or sub-document tagged with its surface format.

    ``item_spans`` are ``(start, end)`` ranges of ``text`` that each hold one
    merged item include; slide splitting never cuts inside them.
    """

    source_path: Path
    format: SurfaceFormat
    text: str
    tags: frozenset[str] = frozenset()
    item_spans: tuple[tuple[int, int], ...] = ()

    @classmethod
    def create(
        cls,
        source_path: Path | str,
        format: SurfaceFormat,
        text: str,
        item_spans: tuple[tuple[int, int], ...] = (),
    ) -> ContentUnit:
        """Build a unit and derive its tag set from ``text``."""
        return cls(Path(source_path), format, text, extract_tags(text), tuple(item_spans))

    @property
    def base_dir(self) -> Path:
        """Directory against which relative references are resolved."""
        return self.source_path.parent

    @property
    def stem(self) -> str:
        return self.source_path.stem

    def with_text(self, text: str) -> ContentUnit:
        return ContentUnit.create(self.source_path, self.format, text)

    def with_format(self, format: SurfaceFormat, text: str | None = None) -> ContentUnit:
        return ContentUnit.create(
            self.source_path, format, self.text if text is None else text
        )


@dataclass(frozen=True, slots=True)
class Directive:
    """An include marker found in a unit's text.

    ``start``/``end`` delimit the marker itself. ``line_start``/``line_end``
    delimit the whole line holding it, without the trailing newline.
    ``line_marker`` is the heading mark or list checkbox that opens the line.
    """

    kind: DirectiveKind
    raw_argument: str
    resolved_path: Path
    surrounding_prefix: str
    surrounding_suffix: str
    start: int
    end: int
    line_start: int
    line_end: int
    line_marker: str = ""

    @property
    def marker(self) -> str:
        return f"!!!{self.kind.value}({self.raw_argument})!!!"


@dataclass(frozen=True, slots=True)
class AssetRecord:
    """A binary reference discovered in unit text and its processing outcome."""

    original_reference: str
    absolute_path: Path
    kind: AssetKind
    exists: bool
    size: int = 0
    content_hash: str | None = None
    strategy: AssetStrategy | None = None
    output_relative_path: str | None = None
    rewritten_reference: str | None = None
    excluded_reason: ExclusionReason | None = None

    def evolve(self, **changes) -> AssetRecord:
        return replace(self, **changes)


@dataclass(frozen=True, slots=True)
class Item:
    """Leaf content of a board."""

    title: str
    body: str = ""
    checked: bool = False
    id: str = ""


@dataclass(frozen=True, slots=True)
class Section:
    """Ordered group of items; row and stack placement live in the title tags."""

    title: str
    items: tuple[Item, ...] = ()

    @property
    def row(self) -> int:
        return row_of(self.title)

    @property
    def stacked(self) -> bool:
        return is_stacked(self.title)


@dataclass(frozen=True, slots=True)
class Board:
    """Logical document tree parsed from the kanban surface syntax."""

    sections: tuple[Section, ...] = ()
    title: str = ""
    front_matter: str | None = None
    preamble: str = ""
    footer: str | None = None

    def find_item(self, item_id: str) -> tuple[Section, Item] | None:
        for section in self.sections:
            for item in section.items:
                if item.id == item_id:
                    return section, item
        return None


@dataclass(frozen=True, slots=True)
class FullScope:
    @property
    def label(self) -> str:
        return "full"


@dataclass(frozen=True, slots=True)
class RowScope:
    row: int

    @property
    def label(self) -> str:
        return f"row{self.row}"


@dataclass(frozen=True, slots=True)
class StackScope:
    row: int
    stack: int

    @property
    def label(self) -> str:
        return f"row{self.row}-stack{self.stack}"


@dataclass(frozen=True, slots=True)
class SectionScope:
    index: int

    @property
    def label(self) -> str:
        return f"section{self.index}"


@dataclass(frozen=True, slots=True)
class ItemScope:
    item_id: str

    @property
    def label(self) -> str:
        return f"item{self.item_id}"


Scope = FullScope | RowScope | StackScope | SectionScope | ItemScope


@dataclass(frozen=True, slots=True)
class OperationOptions:
    """Declarative options consumed by a single pipeline invocation."""

    scope: Scope = FullScope()
    format_strategy: FormatStrategy = FormatStrategy.KEEP
    include_strategy: IncludeStrategy = IncludeStrategy.MERGE
    asset_strategy: AssetStrategy = AssetStrategy.REFERENCE
    tag_visibility: TagVisibility = TagVisibility.ALL
    output_dir: Path | None = None
    max_depth: int = DEFAULT_MAX_DEPTH
    insert_format_marker: bool = True
    target_name: str | None = None
    asset_kinds: frozenset[AssetKind] = frozenset(AssetKind)
    size_limit: int | None = DEFAULT_SIZE_LIMIT
    embed_limit: int = EMBED_LIMIT
    configured_tags: tuple[str, ...] = DEFAULT_CONFIGURED_TAGS


@dataclass(frozen=True, slots=True)
class Issue:
    """A recoverable problem recorded in the pipeline report."""

    code: str
    message: str
    severity: Severity
    reference: str | None = None
    source: Path | None = None

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        severity: Severity,
        *,
        reference: str | None = None,
        source: Path | None = None,
    ) -> Issue:
        if reference is None:
            reference = getattr(exc, "reference", None)
        return cls(
            code=type(exc).__name__,
            message=str(exc),
            severity=severity,
            reference=reference,
            source=source,
        )


@dataclass(frozen=True, slots=True)
class Satellite:
    """A unit emitted as its own artifact under the separate strategy."""

    unit: ContentUnit
    relative_path: str
    content_hash: str


@dataclass(frozen=True, slots=True)
class ResolvedSet:
    primary: ContentUnit
    satellites: tuple[Satellite, ...] = ()
    issues: tuple[Issue, ...] = ()


@dataclass(frozen=True, slots=True)
class Artifact:
    """An output file with a deterministic path relative to the output root."""

    relative_path: str
    kind: ArtifactKind
    content: bytes | None = None
    source_path: Path | None = None

    @property
    def size(self) -> int:
        if self.content is not None:
            return len(self.content)
        if self.source_path is not None and self.source_path.exists():
            return self.source_path.stat().st_size
        return 0

    def text(self) -> str:
        if self.content is None:
            raise BoardsmithError(f"Artifact '{self.relative_path}' carries no inline content")
        return self.content.decode("utf-8")


@dataclass(slots=True)
class PipelineResult:
    """Artifact set and report returned by every pipeline invocation."""

    artifacts: list[Artifact] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)
    errors: list[Issue] = field(default_factory=list)
    output_dir: Path | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def primary(self) -> Artifact | None:
        for artifact in self.artifacts:
            if artifact.kind is ArtifactKind.PRIMARY:
                return artifact
        return None

    def add_issue(self, issue: Issue) -> None:
        if issue.severity is Severity.ERROR:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)


__all__ = [
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_SIZE_LIMIT",
    "EMBED_LIMIT",
    "HASH_WINDOW",
    "LARGE_FILE_THRESHOLD",
    "Artifact",
    "ArtifactKind",
    "AssetKind",
    "AssetRecord",
    "AssetStrategy",
    "Board",
    "ContentUnit",
    "Directive",
    "DirectiveKind",
    "ExclusionReason",
    "FormatStrategy",
    "FullScope",
    "IncludeStrategy",
    "Issue",
    "Item",
    "ItemScope",
    "OperationOptions",
    "PipelineResult",
    "ResolvedSet",
    "RowScope",
    "Satellite",
    "Scope",
    "Section",
    "SectionScope",
    "Severity",
    "StackScope",
    "SurfaceFormat",
    "TagVisibility",
]

"""Bidirectional conversion between the kanban and presentation surfaces.

Whole-document conversion from presentation to kanban derives sections
with a fixed policy: a slide whose only content is a heading line opens a
new section titled with that heading, and every other slide becomes one
item of the current section. Slides that appear before any heading slide
are gathered in a section named after the source file stem.

Item-level conversion never splits: a text always becomes exactly one item
whose body keeps every delimiter line verbatim.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence

from .board import (
    KANBAN_MARKER_KEY,
    declares_kanban,
    normalize_newlines,
    parse_board,
    render_board,
    render_front_matter,
    render_item as render_board_item,
    split_front_matter,
)
from .models import Board, ContentUnit, FormatStrategy, Item, Section, SurfaceFormat
from .slides import (
    Span,
    heading_only,
    heading_text,
    join_slides,
    slide_chunks,
    split_slides,
    trim_blank_lines,
)


def declared_format(text: str) -> SurfaceFormat:
    """Return the surface format a file declares through its front matter."""
    return SurfaceFormat.KANBAN if declares_kanban(text) else SurfaceFormat.PRESENTATION


def _target_format(target: FormatStrategy | SurfaceFormat) -> SurfaceFormat | None:
    if isinstance(target, FormatStrategy):
        return target.target
    return target


def item_from_text(text: str, *, item_id: str = "") -> Item:
    """Turn arbitrary text into exactly one item.

    The first non-blank line, stripped of heading marks, is the title; the
    remainder is the body, delimiter lines included.
    """
    lines = normalize_newlines(text).split("\n")
    for index, line in enumerate(lines):
        if not line.strip():
            continue
        title = heading_text(line)
        if title is None:
            title = line.strip()
        body = trim_blank_lines("\n".join(lines[index + 1 :]))
        return Item(title=title, body=body, id=item_id)
    return Item(title="", body="", id=item_id)


def render_item(item: Item, format: SurfaceFormat) -> str:
    """Render a single item in the requested surface syntax."""
    if format is SurfaceFormat.KANBAN:
        return render_board_item(item) + "\n"
    parts = [part for part in (item.title, item.body) if part.strip()]
    return "\n\n".join(parts) + "\n"


def _item_segment(item: Item) -> str:
    return render_item(item, SurfaceFormat.PRESENTATION).rstrip("\n")


def board_to_slides(board: Board) -> list[str]:
    """Flatten a board into slide segments: one per section header and per item."""
    segments: list[str] = []
    for section in board.sections:
        segments.append(f"## {section.title}".rstrip())
        segments.extend(_item_segment(item) for item in section.items)
    return segments


def board_from_slides(
    segments: list[str], default_title: str, *, item_segments: Collection[int] = ()
) -> Board:
    """Rebuild a board from slide segments using the heading-slide policy.

    Segments whose index is in ``item_segments`` always become items.
    """
    sections: list[Section] = []
    title: str | None = None
    items: list[Item] = []

    def flush() -> None:
        if title is None and not items:
            return
        section_index = len(sections)
        numbered = tuple(
            Item(title=item.title, body=item.body, checked=item.checked, id=f"{section_index}.{i}")
            for i, item in enumerate(items)
        )
        sections.append(Section(title=default_title if title is None else title, items=numbered))

    for index, segment in enumerate(segments):
        heading = None if index in item_segments else heading_only(segment)
        if heading is not None:
            flush()
            title = heading
            items = []
            continue
        items.append(item_from_text(segment))
    flush()
    return Board(sections=tuple(sections))


def kanban_to_presentation(text: str) -> str:
    board = parse_board(text)
    _, metadata, _ = split_front_matter(normalize_newlines(text))
    remaining = {key: value for key, value in metadata.items() if key != KANBAN_MARKER_KEY}
    return join_slides(board_to_slides(board), render_front_matter(remaining))


def _slides_board(text: str, default_title: str, item_spans: Sequence[Span]) -> Board:
    _, chunks = slide_chunks(text, item_spans)
    segments = [segment for segment, _ in chunks]
    pinned = {index for index, (_, holds_item) in enumerate(chunks) if holds_item}
    return board_from_slides(segments, default_title, item_segments=pinned)


def presentation_to_kanban(
    text: str,
    default_title: str,
    *,
    insert_marker: bool = True,
    item_spans: Sequence[Span] = (),
) -> str:
    front_matter, metadata, _ = split_front_matter(normalize_newlines(text))
    if insert_marker:
        front_matter = render_front_matter({KANBAN_MARKER_KEY: "board", **metadata})
    board = _slides_board(text, default_title, item_spans)
    return render_board(Board(sections=board.sections, front_matter=front_matter))


def to_board(unit: ContentUnit) -> Board:
    """Return the board view of a unit in any surface format."""
    if unit.format is SurfaceFormat.KANBAN:
        return parse_board(unit.text)
    if unit.format is SurfaceFormat.PRESENTATION:
        return _slides_board(unit.text, unit.stem, unit.item_spans)
    item = item_from_text(unit.text, item_id="0.0")
    return Board(sections=(Section(title=unit.stem, items=(item,)),))


def from_board(board: Board, format: SurfaceFormat, *, front_matter: str | None = None) -> str:
    """Render a board in the requested surface syntax."""
    if format is SurfaceFormat.KANBAN:
        return render_board(board)
    return join_slides(board_to_slides(board), front_matter)


def section_items(unit: ContentUnit) -> tuple[Item, ...]:
    """Return the items a section include contributes from ``unit``."""
    if unit.format is SurfaceFormat.KANBAN:
        return tuple(item for section in parse_board(unit.text).sections for item in section.items)
    if unit.format is SurfaceFormat.PRESENTATION:
        _, segments = split_slides(unit.text, unit.item_spans)
        return tuple(item_from_text(segment) for segment in segments)
    return (item_from_text(unit.text),)


def slide_segments(unit: ContentUnit) -> list[tuple[str, bool]]:
    """Return the slides a section include contributes to a presentation host.

    Each slide is paired with whether it holds a merged item include.
    """
    if unit.format is SurfaceFormat.KANBAN:
        return [(segment, False) for segment in board_to_slides(parse_board(unit.text))]
    if unit.format is SurfaceFormat.PRESENTATION:
        return slide_chunks(unit.text, unit.item_spans)[1]
    segment = trim_blank_lines(normalize_newlines(unit.text))
    return [(segment, False)] if segment else []


def convert(
    unit: ContentUnit,
    target: FormatStrategy | SurfaceFormat,
    *,
    insert_marker: bool = True,
) -> ContentUnit:
    """Convert ``unit`` to ``target``.

    ``KEEP``, an unchanged format and opaque units return the very same
    object.
    """
    fmt = _target_format(target)
    if fmt is None or fmt is SurfaceFormat.OPAQUE:
        return unit
    if unit.format is SurfaceFormat.OPAQUE or unit.format is fmt:
        return unit
    if fmt is SurfaceFormat.PRESENTATION:
        text = kanban_to_presentation(unit.text)
    else:
        text = presentation_to_kanban(
            unit.text, unit.stem, insert_marker=insert_marker, item_spans=unit.item_spans
        )
    return unit.with_format(fmt, text)


__all__ = [
    "board_from_slides",
    "board_to_slides",
    "convert",
    "declared_format",
    "from_board",
    "item_from_text",
    "kanban_to_presentation",
    "presentation_to_kanban",
    "render_item",
    "section_items",
    "slide_segments",
    "to_board",
]

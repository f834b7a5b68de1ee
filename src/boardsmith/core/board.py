"""Reader and writer for the kanban board surface syntax.

A board file looks like::

    ---

    kanban-plugin: board

    ---

    # Board title

    ## Section #row2 #stack
    - [ ] Item title
      Indented item body

    %% kanban:settings
"""

from __future__ import annotations

import re
from typing import Any

import yaml

from .models import Board, Item, Section


KANBAN_MARKER_KEY = "kanban-plugin"
KANBAN_MARKER_VALUE = "board"
KANBAN_FRONT_MATTER = "---\n\nkanban-plugin: board\n\n---"

_CHECKBOX_PATTERN = re.compile(r"^\[([ xX])\]\s?")


def split_front_matter(text: str) -> tuple[str | None, dict[str, Any], str]:
    """Split a leading YAML block from ``text``.

    Returns the raw block (delimiters included), its parsed mapping and the
    remaining body. Blocks that do not parse to a mapping are left in place.
    """
    candidate = text.lstrip("\ufeff")
    lines = candidate.split("\n")
    if not lines or lines[0].strip() != "---":
        return None, {}, text

    closing_index: int | None = None
    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() in {"---", "..."}:
            closing_index = idx
            break
    if closing_index is None:
        return None, {}, text

    try:
        metadata = yaml.safe_load("\n".join(lines[1:closing_index]))
    except yaml.YAMLError:
        return None, {}, text
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        return None, {}, text

    raw_block = "\n".join(lines[: closing_index + 1])
    body = "\n".join(lines[closing_index + 1 :])
    return raw_block, metadata, body


def declares_kanban(text: str) -> bool:
    """Return whether ``text`` opens with the kanban front-matter marker."""
    _, metadata, _ = split_front_matter(normalize_newlines(text))
    return str(metadata.get(KANBAN_MARKER_KEY, "")).strip() == KANBAN_MARKER_VALUE


def render_front_matter(metadata: dict[str, Any]) -> str | None:
    """Serialise a metadata mapping back to a delimited YAML block."""
    if not metadata:
        return None
    if set(metadata) == {KANBAN_MARKER_KEY}:
        return KANBAN_FRONT_MATTER
    dumped = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True).rstrip("\n")
    return f"---\n{dumped}\n---"


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _strip_indent(line: str) -> str:
    if line.startswith("\t"):
        return line[1:]
    if line.startswith("  "):
        return line[2:]
    return line.lstrip(" ")


def _trim_blank_lines(lines: list[str]) -> list[str]:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def parse_board(text: str) -> Board:
    """Parse kanban text into a :class:`Board`.

    Text that sits inside a section but before its first item has no place
    in the model and is dropped.
    """
    raw_front_matter, _, body = split_front_matter(normalize_newlines(text))

    title = ""
    preamble: list[str] = []
    footer: list[str] = []
    sections: list[Section] = []
    section_title: str | None = None
    items: list[Item] = []
    item_title: str | None = None
    item_checked = False
    item_lines: list[str] = []

    def flush_item() -> None:
        nonlocal item_title, item_lines
        if item_title is None:
            return
        item_id = f"{len(sections)}.{len(items)}"
        body_text = "\n".join(_trim_blank_lines(item_lines))
        items.append(Item(title=item_title, body=body_text, checked=item_checked, id=item_id))
        item_title = None
        item_lines = []

    def flush_section() -> None:
        nonlocal section_title, items
        flush_item()
        if section_title is None:
            return
        sections.append(Section(title=section_title, items=tuple(items)))
        section_title = None
        items = []

    lines = body.split("\n")
    for index, line in enumerate(lines):
        if line.startswith("%%"):
            flush_section()
            footer = lines[index:]
            break

        if line.startswith("# ") and not title and section_title is None:
            title = line[2:].strip()
            continue

        if line.startswith("## "):
            flush_section()
            section_title = line[3:].strip()
            continue

        if section_title is None:
            preamble.append(line)
            continue

        if line.startswith("- "):
            flush_item()
            rest = line[2:].strip()
            checkbox = _CHECKBOX_PATTERN.match(rest)
            item_checked = bool(checkbox and checkbox.group(1) in "xX")
            if checkbox:
                rest = rest[checkbox.end() :].strip()
            item_title = rest
            continue

        if item_title is not None:
            item_lines.append(_strip_indent(line))
    else:
        flush_section()

    footer_text = "\n".join(footer).rstrip("\n") if footer else None
    return Board(
        sections=tuple(sections),
        title=title,
        front_matter=raw_front_matter,
        preamble="\n".join(_trim_blank_lines(preamble)),
        footer=footer_text,
    )


def render_item(item: Item) -> str:
    """Render one item as a checkbox line followed by its indented body."""
    mark = "x" if item.checked else " "
    lines = [f"- [{mark}] {item.title}".rstrip()]
    if item.body.strip():
        lines.extend(f"  {line}" if line.strip() else "" for line in item.body.split("\n"))
    return "\n".join(lines)


def render_board(board: Board) -> str:
    """Render a :class:`Board` as kanban text ending with one newline."""
    parts: list[str] = []
    if board.front_matter:
        parts.append(board.front_matter)
    if board.title:
        parts.append(f"# {board.title}")
    if board.preamble.strip():
        parts.append(board.preamble.strip("\n"))
    for section in board.sections:
        block = [f"## {section.title}".rstrip()]
        block.extend(render_item(item) for item in section.items)
        parts.append("\n".join(block))
    if board.footer:
        parts.append(board.footer.rstrip("\n"))
    return "\n\n".join(parts).rstrip() + "\n"


__all__ = [
    "KANBAN_FRONT_MATTER",
    "KANBAN_MARKER_KEY",
    "declares_kanban",
    "normalize_newlines",
    "parse_board",
    "render_board",
    "render_front_matter",
    "render_item",
    "split_front_matter",
]

"""Selection of a sub-tree of a board for scoped exports."""

from __future__ import annotations

from dataclasses import replace

from .exceptions import ScopeError
from .models import (
    Board,
    FullScope,
    ItemScope,
    RowScope,
    Scope,
    Section,
    SectionScope,
    StackScope,
)


def parse_scope(value: str | None) -> Scope:
    """Parse a textual scope descriptor.

    Accepted forms are ``full``, ``row:N``, ``stack:N:K``, ``section:I`` and
    ``item:S.I``.
    """
    if value is None:
        return FullScope()
    text = value.strip().lower()
    if text in {"", "full"}:
        return FullScope()

    kind, _, argument = text.partition(":")
    try:
        if kind == "row":
            return RowScope(int(argument))
        if kind == "stack":
            row, _, stack = argument.partition(":")
            return StackScope(int(row), int(stack))
        if kind == "section":
            return SectionScope(int(argument))
    except ValueError as exc:
        raise ScopeError(f"Invalid scope descriptor '{value}'") from exc
    if kind == "item" and argument:
        return ItemScope(argument)
    raise ScopeError(f"Unknown scope descriptor '{value}'")


def stack_runs(board: Board, row: int) -> list[tuple[Section, ...]]:
    """Return the maximal runs of adjacent stacked sections within ``row``."""
    runs: list[tuple[Section, ...]] = []
    current: list[Section] = []
    for section in board.sections:
        if section.row != row:
            continue
        if section.stacked:
            current.append(section)
            continue
        if current:
            runs.append(tuple(current))
            current = []
    if current:
        runs.append(tuple(current))
    return runs


def extract(board: Board, scope: Scope) -> Board:
    """Return the part of ``board`` selected by ``scope``.

    The source board is never modified; new containers share the original
    items.
    """
    if isinstance(scope, FullScope):
        return board

    if isinstance(scope, RowScope):
        if scope.row < 1:
            raise ScopeError(f"Row {scope.row} is out of range; rows start at 1")
        sections = tuple(section for section in board.sections if section.row == scope.row)
        return replace(board, sections=sections)

    if isinstance(scope, StackScope):
        runs = stack_runs(board, scope.row)
        if not 0 <= scope.stack < len(runs):
            raise ScopeError(
                f"Stack {scope.stack} is out of range for row {scope.row} "
                f"({len(runs)} stack(s) available)"
            )
        return replace(board, sections=runs[scope.stack])

    if isinstance(scope, SectionScope):
        if not 0 <= scope.index < len(board.sections):
            raise ScopeError(
                f"Section {scope.index} is out of range "
                f"({len(board.sections)} section(s) available)"
            )
        section = board.sections[scope.index]
        return replace(board, sections=(Section(title=section.title, items=section.items),))

    if isinstance(scope, ItemScope):
        found = board.find_item(scope.item_id)
        if found is None:
            raise ScopeError(f"Item '{scope.item_id}' does not exist")
        section, item = found
        return replace(board, sections=(Section(title=section.title, items=(item,)),))

    raise ScopeError(f"Unsupported scope {scope!r}")


__all__ = ["extract", "parse_scope", "stack_runs"]

from __future__ import annotations

import pytest

from boardsmith.core.board import parse_board
from boardsmith.core.exceptions import ScopeError
from boardsmith.core.models import FullScope, ItemScope, RowScope, SectionScope, StackScope
from boardsmith.core.scope import extract, parse_scope, stack_runs


BOARD = parse_board(
    """## A #row1
- [ ] a1
## B #row1 #stack
- [ ] b1
## C #row1 #stack
- [ ] c1
## D #row1
## E #row1 #stack
- [ ] e1
## F #row2
- [ ] f1
"""
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (None, FullScope()),
        ("full", FullScope()),
        ("row:2", RowScope(2)),
        ("stack:1:0", StackScope(1, 0)),
        ("section:3", SectionScope(3)),
        ("item:1.0", ItemScope("1.0")),
    ],
)
def test_parse_scope(text: str | None, expected: object) -> None:
    assert parse_scope(text) == expected


@pytest.mark.parametrize("text", ["row:x", "stack:1", "column:2", "item:"])
def test_parse_scope_rejects_garbage(text: str) -> None:
    with pytest.raises(ScopeError):
        parse_scope(text)


def test_full_scope_returns_board() -> None:
    assert extract(BOARD, FullScope()) is BOARD


def test_row_scope() -> None:
    assert [s.title for s in extract(BOARD, RowScope(2)).sections] == ["F #row2"]
    assert len(extract(BOARD, RowScope(1)).sections) == 5
    assert extract(BOARD, RowScope(3)).sections == ()


def test_row_scope_below_one_is_rejected() -> None:
    with pytest.raises(ScopeError):
        extract(BOARD, RowScope(0))


def test_stack_runs_group_adjacent_sections() -> None:
    runs = stack_runs(BOARD, 1)
    assert [[s.title for s in run] for run in runs] == [
        ["B #row1 #stack", "C #row1 #stack"],
        ["E #row1 #stack"],
    ]


def test_stack_scope() -> None:
    selected = extract(BOARD, StackScope(1, 1))
    assert [s.title for s in selected.sections] == ["E #row1 #stack"]
    with pytest.raises(ScopeError):
        extract(BOARD, StackScope(1, 2))


def test_section_scope_equals_source_section() -> None:
    selected = extract(BOARD, SectionScope(5))
    assert selected.sections == (BOARD.sections[5],)
    with pytest.raises(ScopeError):
        extract(BOARD, SectionScope(6))


def test_item_scope() -> None:
    selected = extract(BOARD, ItemScope("4.0"))
    assert selected.sections[0].title == "E #row1 #stack"
    assert [item.title for item in selected.sections[0].items] == ["e1"]
    with pytest.raises(ScopeError):
        extract(BOARD, ItemScope("9.9"))


def test_extract_leaves_source_untouched() -> None:
    before = BOARD.sections
    extract(BOARD, SectionScope(0))
    assert BOARD.sections is before

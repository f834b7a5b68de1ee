from __future__ import annotations

from boardsmith.core.board import (
    KANBAN_FRONT_MATTER,
    declares_kanban,
    parse_board,
    render_board,
    split_front_matter,
)
from boardsmith.core.slides import heading_only, join_slides, slide_chunks, split_slides


BOARD = """---

kanban-plugin: board

---

# Sprint

## Todo #row1
- [ ] Write notes
  Details line

- [x] Done thing

## Doing #row2 #stack
- [ ] Code

%% kanban:settings
"""


def test_front_matter_split() -> None:
    raw, metadata, body = split_front_matter(BOARD)
    assert raw == KANBAN_FRONT_MATTER
    assert metadata == {"kanban-plugin": "board"}
    assert body.lstrip().startswith("# Sprint")


def test_declares_kanban() -> None:
    assert declares_kanban(BOARD)
    assert not declares_kanban("# Just notes\n")


def test_parse_board_structure() -> None:
    board = parse_board(BOARD)
    assert board.title == "Sprint"
    assert [section.title for section in board.sections] == ["Todo #row1", "Doing #row2 #stack"]

    todo, doing = board.sections
    assert todo.row == 1 and not todo.stacked
    assert doing.row == 2 and doing.stacked

    first, second = todo.items
    assert (first.title, first.body, first.checked, first.id) == (
        "Write notes",
        "Details line",
        False,
        "0.0",
    )
    assert second.checked is True
    assert doing.items[0].id == "1.0"
    assert board.footer == "%% kanban:settings"


def test_render_board_round_trips_structure() -> None:
    board = parse_board(BOARD)
    rendered = render_board(board)
    assert rendered.endswith("%% kanban:settings\n")
    assert not rendered.endswith("\n\n")
    assert parse_board(rendered) == board


def test_crlf_input_is_accepted() -> None:
    board = parse_board(BOARD.replace("\n", "\r\n"))
    assert len(board.sections) == 2


def test_split_slides_discards_front_matter_and_blank_slides() -> None:
    text = "---\ntitle: Deck\n---\n\n# Intro\n\n---\n\nSlide two\nmore\n\n---\n\n---\n\n## Part\n"
    front_matter, segments = split_slides(text)
    assert front_matter == "---\ntitle: Deck\n---"
    assert segments == ["# Intro", "Slide two\nmore", "## Part"]


def test_slide_chunks_do_not_split_inside_item_spans() -> None:
    text = "---\ntitle: Deck\n---\n\nA\n\n---\n\nB\n\n---\n\nC\n"
    span = (text.index("B"), len(text) - 1)

    front_matter, chunks = slide_chunks(text, [span])

    assert front_matter == "---\ntitle: Deck\n---"
    assert chunks == [("A", False), ("B\n\n---\n\nC", True)]
    assert split_slides(text)[1] == ["A", "B", "C"]


def test_join_slides_ends_with_single_newline() -> None:
    joined = join_slides(["# A", "Body"], "---\ntitle: Deck\n---")
    assert joined == "---\ntitle: Deck\n---\n\n# A\n\n---\n\nBody\n"


def test_heading_only() -> None:
    assert heading_only("## Part two") == "Part two"
    assert heading_only("## Closed ##") == "Closed"
    assert heading_only("## Part\nbody") is None
    assert heading_only("#hashtag") is None

from __future__ import annotations

import os
from pathlib import Path

import pytest

from boardsmith.core.assets import NOT_INCLUDED_REPORT
from boardsmith.core.board import KANBAN_FRONT_MATTER, parse_board
from boardsmith.core.context import CancellationToken
from boardsmith.core.conversion import declared_format
from boardsmith.core.exceptions import PipelineCancelled, WriteError
from boardsmith.core.models import (
    ArtifactKind,
    AssetStrategy,
    ContentUnit,
    FormatStrategy,
    IncludeStrategy,
    ItemScope,
    OperationOptions,
    RowScope,
    SectionScope,
    SurfaceFormat,
)
from boardsmith.core.pipeline import ContentPipeline, execute, media_directory, output_name
from boardsmith.core.tags import TagVisibility


BOARD = f"""{KANBAN_FRONT_MATTER}

## Todo #row1
- [ ] Write notes #bug
  ![shot](img/shot.png)

## Later #row2
- [ ] Plan @dana
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _unit(path: Path) -> ContentUnit:
    text = path.read_text(encoding="utf-8")
    return ContentUnit.create(path, declared_format(text), text)


@pytest.fixture
def board_path(tmp_path: Path) -> Path:
    (tmp_path / "img").mkdir()
    (tmp_path / "img" / "shot.png").write_bytes(b"PNGDATA")
    return _write(tmp_path / "board.md", BOARD)


def test_output_names() -> None:
    assert output_name("board", OperationOptions()) == "board.md"
    assert output_name("board", OperationOptions(scope=RowScope(2))) == "board-row2.md"
    assert output_name("board", OperationOptions(target_name="custom")) == "custom.md"
    assert media_directory("board-row2.md") == "board-row2-Media"


def test_in_memory_run_returns_primary_only(board_path: Path) -> None:
    result = execute(_unit(board_path), OperationOptions())

    assert result.ok
    assert [artifact.relative_path for artifact in result.artifacts] == ["board.md"]
    assert result.primary.text() == BOARD


def test_row_scope_exports_selected_sections(board_path: Path) -> None:
    result = execute(_unit(board_path), OperationOptions(scope=RowScope(2)))

    assert result.primary.relative_path == "board-row2.md"
    board = parse_board(result.primary.text())
    assert [section.title for section in board.sections] == ["Later #row2"]
    assert result.primary.text().startswith(KANBAN_FRONT_MATTER)


def test_empty_scope_yields_empty_result(board_path: Path) -> None:
    result = execute(_unit(board_path), OperationOptions(scope=RowScope(7)))
    assert result.ok
    assert result.artifacts == []


def test_invalid_scope_is_reported(board_path: Path) -> None:
    result = execute(_unit(board_path), OperationOptions(scope=SectionScope(9)))
    assert not result.ok
    assert result.artifacts == []
    assert result.errors[0].code == "ScopeError"


def test_item_scope_names_file_after_item(board_path: Path) -> None:
    result = execute(_unit(board_path), OperationOptions(scope=ItemScope("1.0")))
    assert result.primary.relative_path == "board-plan-dana.md"
    assert result.primary.text().startswith("Plan @dana")


def test_format_and_tag_filtering(board_path: Path) -> None:
    options = OperationOptions(
        format_strategy=FormatStrategy.PRESENTATION,
        tag_visibility=TagVisibility.NONE,
    )
    text = execute(_unit(board_path), options).primary.text()

    assert "kanban-plugin" not in text
    assert "#bug" not in text
    assert "@dana" not in text
    assert "\n---\n" in text


def test_copy_assets_and_write(board_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    options = OperationOptions(asset_strategy=AssetStrategy.COPY, output_dir=out)

    result = execute(_unit(board_path), options)

    assert result.ok
    kinds = {artifact.relative_path: artifact.kind for artifact in result.artifacts}
    assert kinds == {
        "board.md": ArtifactKind.PRIMARY,
        "board-Media/shot.png": ArtifactKind.ASSET,
    }
    assert (out / "board-Media" / "shot.png").read_bytes() == b"PNGDATA"
    assert "![shot](board-Media/shot.png)" in (out / "board.md").read_text(encoding="utf-8")
    assert not any(path.name.startswith(".boardsmith-") for path in out.iterdir())


def test_missing_assets_produce_report(tmp_path: Path) -> None:
    source = _write(tmp_path / "deck.md", "# Deck\n\n![gone](gone.png)\n")
    result = execute(_unit(source), OperationOptions(asset_strategy=AssetStrategy.COPY))

    assert result.ok
    assert [issue.code for issue in result.warnings] == ["AssetMissingError"]
    report = next(a for a in result.artifacts if a.kind is ArtifactKind.REPORT)
    assert report.relative_path == NOT_INCLUDED_REPORT
    assert "## Missing Files" in report.text()


def test_separate_strategy_emits_satellites(tmp_path: Path) -> None:
    _write(tmp_path / "parts" / "part.md", "Part\n")
    source = _write(tmp_path / "deck.md", "!!!include(parts/part.md)!!!\n")
    options = OperationOptions(include_strategy=IncludeStrategy.SEPARATE)

    result = execute(_unit(source), options)

    assert [(a.relative_path, a.kind) for a in result.artifacts] == [
        ("deck.md", ArtifactKind.PRIMARY),
        ("part.md", ArtifactKind.SATELLITE),
    ]
    assert result.primary.text() == "!!!include(part.md)!!!\n"


def test_satellite_never_overwrites_primary(tmp_path: Path) -> None:
    _write(tmp_path / "other" / "deck.md", "Other\n")
    source = _write(tmp_path / "deck.md", "!!!include(other/deck.md)!!!\n")
    options = OperationOptions(include_strategy=IncludeStrategy.SEPARATE)

    result = execute(_unit(source), options)

    assert [a.relative_path for a in result.artifacts] == ["deck.md", "deck-1.md"]


def test_include_errors_do_not_abort(tmp_path: Path) -> None:
    source = _write(tmp_path / "deck.md", "!!!include(deck.md)!!!\nrest\n")
    result = execute(_unit(source), OperationOptions())

    assert not result.ok
    assert result.errors[0].code == "CycleDetectedError"
    assert result.primary is not None


def test_cancelled_pipeline_writes_nothing(board_path: Path, tmp_path: Path) -> None:
    token = CancellationToken()
    token.cancel()
    out = tmp_path / "out"

    with pytest.raises(PipelineCancelled):
        ContentPipeline().execute(_unit(board_path), OperationOptions(output_dir=out), cancel=token)
    assert not out.exists() or not any(out.iterdir())


def test_unwritable_output_root_raises(board_path: Path, tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file", encoding="utf-8")

    with pytest.raises(WriteError):
        execute(_unit(board_path), OperationOptions(output_dir=blocker / "out"))


def test_presentation_to_kanban_conversion(tmp_path: Path) -> None:
    source = _write(tmp_path / "deck.md", "Alpha\n\n---\n\n# Ideas\n\n---\n\nBeta\n")
    result = execute(_unit(source), OperationOptions(format_strategy=FormatStrategy.KANBAN))

    text = result.primary.text()
    assert declared_format(text) is SurfaceFormat.KANBAN
    assert [s.title for s in parse_board(text).sections] == ["deck", "Ideas"]


def test_item_include_survives_conversion_to_kanban(tmp_path: Path) -> None:
    _write(tmp_path / "task.md", "# Fix login\n\nSteps\n\n---\n\nMore")
    source = _write(tmp_path / "deck.md", "Intro\n\n---\n\n!!!taskinclude(task.md)!!!")
    options = OperationOptions(
        include_strategy=IncludeStrategy.MERGE, format_strategy=FormatStrategy.KANBAN
    )

    result = execute(_unit(source), options)

    [section] = parse_board(result.primary.text()).sections
    assert [item.title for item in section.items] == ["Intro", "Fix login"]
    assert section.items[1].body == "Steps\n\n---\n\nMore"


def _tree(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def test_separate_export_is_idempotent(tmp_path: Path) -> None:
    src = tmp_path / "src"
    (src / "img").mkdir(parents=True)
    (src / "img" / "logo.png").write_bytes(b"LOGO")
    (src / "parts" / "nested").mkdir(parents=True)
    (src / "parts" / "pic.png").write_bytes(b"PIC")
    _write(src / "parts" / "nested" / "leaf.md", "Leaf\n")
    _write(src / "parts" / "part.md", "Part ![pic](pic.png)\n\n!!!include(nested/leaf.md)!!!\n")
    source = _write(
        src / "main.md", "# Deck\n\n!!!include(parts/part.md)!!!\n\n![logo](img/logo.png)\n"
    )

    def run(unit: ContentUnit, out: Path) -> dict[str, bytes]:
        options = OperationOptions(
            include_strategy=IncludeStrategy.SEPARATE,
            format_strategy=FormatStrategy.KEEP,
            asset_strategy=AssetStrategy.COPY,
            output_dir=out,
        )
        assert execute(unit, options).ok
        return _tree(out)

    first = run(_unit(source), tmp_path / "out1")
    second = run(_unit(tmp_path / "out1" / "main.md"), tmp_path / "out2")

    assert sorted(first) == [
        "leaf.md",
        "main-Media/logo.png",
        "main-Media/pic.png",
        "main.md",
        "part.md",
    ]
    assert second == first


def test_failed_move_restores_previous_export(
    board_path: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    out = tmp_path / "out"
    _write(out / "board.md", "previous export\n")
    real_replace = os.replace

    def failing_replace(src: str | os.PathLike[str], dst: str | os.PathLike[str]) -> None:
        if Path(dst) == out / "board-Media" / "shot.png":
            raise OSError("disk full")
        real_replace(src, dst)

    monkeypatch.setattr(os, "replace", failing_replace)
    options = OperationOptions(asset_strategy=AssetStrategy.COPY, output_dir=out)

    result = execute(_unit(board_path), options)

    assert [issue.code for issue in result.errors] == ["WriteError"]
    assert result.artifacts == []
    assert (out / "board.md").read_text(encoding="utf-8") == "previous export\n"
    assert not (out / "board-Media" / "shot.png").exists()


def test_strategy_enums_are_documented() -> None:
    for enum in (FormatStrategy, IncludeStrategy, AssetStrategy):
        assert enum.__doc__ and enum.__doc__.strip()

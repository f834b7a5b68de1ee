from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from boardsmith.ui.cli import app
import boardsmith.ui.cli.state as cli_state


BOARD = """---

kanban-plugin: board

---

## Todo #row1
- [ ] Write #bug

## Later #row2
- [ ] Plan
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def board_path(tmp_path: Path) -> Path:
    path = tmp_path / "board.md"
    path.write_text(BOARD, encoding="utf-8")
    return path


def test_help_lists_commands(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("export", "convert", "inspect"):
        assert command in result.output


def test_export_writes_scoped_board(runner: CliRunner, board_path: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    result = runner.invoke(
        app,
        ["export", str(board_path), "--scope", "row:2", "--output-dir", str(out), "--tags", "none"],
    )

    assert result.exit_code == 0, result.output
    written = (out / "board-row2.md").read_text(encoding="utf-8")
    assert "## Later" in written
    assert "#row2" not in written
    assert "board-row2.md" in result.output


def test_export_dry_run_writes_nothing(
    runner: CliRunner, board_path: Path, tmp_path: Path
) -> None:
    result = runner.invoke(app, ["export", str(board_path), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "Planned files" in result.output
    assert sorted(p.name for p in tmp_path.iterdir()) == ["board.md"]


def test_export_rejects_bad_scope(runner: CliRunner, board_path: Path) -> None:
    result = runner.invoke(app, ["export", str(board_path), "--scope", "diagonal:1"])
    assert result.exit_code != 0


def test_export_fails_on_pipeline_errors(
    runner: CliRunner, board_path: Path, tmp_path: Path
) -> None:
    result = runner.invoke(
        app, ["export", str(board_path), "--scope", "section:9", "-o", str(tmp_path / "out")]
    )
    assert result.exit_code == 1
    assert "ScopeError" in result.output


def test_export_with_config_file(runner: CliRunner, board_path: Path, tmp_path: Path) -> None:
    config = tmp_path / "boardsmith.yml"
    config.write_text("format_strategy: presentation\n", encoding="utf-8")

    result = runner.invoke(
        app,
        ["export", str(board_path), "--config", str(config), "-o", str(tmp_path / "out")],
    )

    assert result.exit_code == 0, result.output
    text = (tmp_path / "out" / "board.md").read_text(encoding="utf-8")
    assert "kanban-plugin" not in text
    assert "\n---\n" in text


def test_export_with_invalid_config(runner: CliRunner, board_path: Path, tmp_path: Path) -> None:
    config = tmp_path / "broken.yml"
    config.write_text("unknown_key: 1\n", encoding="utf-8")

    result = runner.invoke(app, ["export", str(board_path), "--config", str(config)])
    assert result.exit_code == 1


def test_convert_prints_to_stdout(runner: CliRunner, tmp_path: Path) -> None:
    deck = tmp_path / "deck.md"
    deck.write_text("# Part\n\n---\n\nTask\n", encoding="utf-8")

    result = runner.invoke(app, ["convert", str(deck), "kanban", "--no-marker"])

    assert result.exit_code == 0, result.output
    assert result.stdout == "## Part\n- [ ] Task\n"


def test_convert_writes_output_file(runner: CliRunner, board_path: Path, tmp_path: Path) -> None:
    target = tmp_path / "slides" / "deck.md"
    result = runner.invoke(app, ["convert", str(board_path), "presentation", "-o", str(target)])

    assert result.exit_code == 0, result.output
    assert target.read_text(encoding="utf-8").startswith("## Todo #row1")


def test_inspect_reports_layout(runner: CliRunner, board_path: Path) -> None:
    result = runner.invoke(app, ["inspect", str(board_path)])

    assert result.exit_code == 0, result.output
    assert "Format: kanban" in result.output
    assert "Sections: 2" in result.output


def test_inspect_flags_missing_includes(runner: CliRunner, tmp_path: Path) -> None:
    deck = tmp_path / "deck.md"
    deck.write_text("!!!include(nowhere.md)!!!\n", encoding="utf-8")

    result = runner.invoke(app, ["inspect", str(deck)])

    assert result.exit_code == 1
    assert "nowhere.md" in result.output


def test_verbose_flag_updates_state(runner: CliRunner, board_path: Path) -> None:
    result = runner.invoke(app, ["-vv", "--debug", "inspect", str(board_path)])
    assert result.exit_code == 0, result.output
    state = cli_state.get_cli_state()
    assert state.verbosity == 2
    assert state.show_tracebacks is True

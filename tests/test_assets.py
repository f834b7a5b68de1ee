from __future__ import annotations

from pathlib import Path

from boardsmith.core.assets import (
    AssetCollector,
    classify,
    content_hash,
    rebase_references,
    render_exclusion_report,
    rewrite,
)
from boardsmith.core.models import (
    HASH_WINDOW,
    LARGE_FILE_THRESHOLD,
    AssetKind,
    AssetStrategy,
    ExclusionReason,
)
from boardsmith.core.registry import OutputRegistry, numbered_candidate


def _binary(path: Path, payload: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
    return path


def test_classify_by_extension() -> None:
    assert classify("a/b.PNG") is AssetKind.IMAGE
    assert classify("clip.webm") is AssetKind.VIDEO
    assert classify("song.flac") is AssetKind.AUDIO
    assert classify("paper.pdf") is AssetKind.DOCUMENT
    assert classify("archive.zip") is AssetKind.FILE


def test_collect_finds_markdown_and_html_references(tmp_path: Path) -> None:
    _binary(tmp_path / "img" / "a.png", b"A")
    _binary(tmp_path / "clip.mp4", b"V")
    text = (
        "![a](img/a.png)\n"
        '<video src="clip.mp4"></video>\n'
        "[remote](https://example.com/x.png)\n"
        "[anchor](#top)\n"
        "![a again](img/a.png)\n"
    )
    records = AssetCollector().collect(text, tmp_path)

    assert [record.original_reference for record in records] == ["img/a.png", "clip.mp4"]
    assert records[0].kind is AssetKind.IMAGE and records[0].exists
    assert records[1].kind is AssetKind.VIDEO


def test_collect_skips_directories(tmp_path: Path) -> None:
    (tmp_path / "folder").mkdir()
    assert AssetCollector().collect("[dir](folder)", tmp_path) == []


def test_content_hash_depends_on_size_and_bytes(tmp_path: Path) -> None:
    a = _binary(tmp_path / "a.bin", b"same")
    b = _binary(tmp_path / "b.bin", b"same")
    c = _binary(tmp_path / "c.bin", b"diff")
    assert content_hash(a) == content_hash(b)
    assert content_hash(a) != content_hash(c)


def test_large_files_hash_only_the_leading_window(tmp_path: Path) -> None:
    size = LARGE_FILE_THRESHOLD + 10
    head = b"x" * HASH_WINDOW
    a = _binary(tmp_path / "a.bin", head + b"a" * (size - HASH_WINDOW))
    b = _binary(tmp_path / "b.bin", head + b"b" * (size - HASH_WINDOW))
    assert content_hash(a) == content_hash(b)


def test_copy_dedups_identical_content(tmp_path: Path) -> None:
    _binary(tmp_path / "a.png", b"PIXELS")
    _binary(tmp_path / "b.png", b"PIXELS")
    collector = AssetCollector()
    records = collector.collect("![a](a.png) ![b](b.png)", tmp_path)

    processed = collector.process(records, AssetStrategy.COPY, "board-Media")

    assert [record.output_relative_path for record in processed] == [
        "board-Media/a.png",
        "board-Media/a.png",
    ]


def test_copy_renames_distinct_content_with_same_name(tmp_path: Path) -> None:
    _binary(tmp_path / "x" / "pic.png", b"ONE")
    _binary(tmp_path / "y" / "pic.png", b"TWO")
    collector = AssetCollector()
    records = collector.collect("![](x/pic.png) ![](y/pic.png)", tmp_path)

    processed = collector.process(records, AssetStrategy.COPY, "m")

    assert [record.output_relative_path for record in processed] == ["m/pic.png", "m/pic-1.png"]
    text = rewrite("![](x/pic.png) ![](y/pic.png)", processed)
    assert text == "![](m/pic.png) ![](m/pic-1.png)"


def test_embed_small_files_as_data_uri(tmp_path: Path) -> None:
    _binary(tmp_path / "dot.png", b"\x89PNG")
    collector = AssetCollector(embed_limit=1024)
    processed = collector.process(collector.collect("![](dot.png)", tmp_path), AssetStrategy.EMBED)

    assert processed[0].strategy is AssetStrategy.EMBED
    assert processed[0].rewritten_reference.startswith("data:image/png;base64,")


def test_embed_falls_back_to_copy_above_limit(tmp_path: Path) -> None:
    _binary(tmp_path / "big.png", b"0" * 64)
    collector = AssetCollector(embed_limit=16)
    processed = collector.process(
        collector.collect("![](big.png)", tmp_path), AssetStrategy.EMBED, "media"
    )
    assert processed[0].strategy is AssetStrategy.COPY
    assert processed[0].output_relative_path == "media/big.png"


def test_missing_asset_is_reported(tmp_path: Path) -> None:
    collector = AssetCollector()
    processed = collector.process(collector.collect("![](gone.png)", tmp_path), AssetStrategy.COPY)

    assert processed[0].excluded_reason is ExclusionReason.MISSING
    assert [issue.code for issue in collector.issues] == ["AssetMissingError"]


def test_excluded_kind_and_size(tmp_path: Path) -> None:
    _binary(tmp_path / "clip.mp4", b"V")
    _binary(tmp_path / "huge.png", b"0" * 32)
    collector = AssetCollector(asset_kinds={AssetKind.IMAGE}, size_limit=8)
    processed = collector.process(
        collector.collect("![](clip.mp4) ![](huge.png)", tmp_path), AssetStrategy.COPY
    )

    assert [record.excluded_reason for record in processed] == [
        ExclusionReason.EXCLUDED_TYPE,
        ExclusionReason.TOO_LARGE,
    ]
    report = render_exclusion_report(processed)
    assert report is not None
    assert "## Files Too Large" in report
    assert "## Excluded by Type" in report
    assert "- [clip.mp4](clip.mp4) - video" in report


def test_reference_strategy_leaves_text_alone(tmp_path: Path) -> None:
    _binary(tmp_path / "a.png", b"A")
    collector = AssetCollector()
    records = collector.collect("![](a.png)", tmp_path)
    processed = collector.process(records, AssetStrategy.REFERENCE)
    assert rewrite("![](a.png)", processed) == "![](a.png)"
    assert render_exclusion_report(processed) is None


def test_rebase_references_keeps_remote_and_absolute(tmp_path: Path) -> None:
    text = "![](pic.png) ![](https://x.org/a.png) ![](/abs/a.png) [s](notes.md#part)"
    rebased = rebase_references(text, tmp_path / "sub", tmp_path)
    assert rebased == (
        "![](sub/pic.png) ![](https://x.org/a.png) ![](/abs/a.png) [s](sub/notes.md#part)"
    )


def test_bracketed_targets_with_spaces(tmp_path: Path) -> None:
    text = "![](<my pic.png>)"
    assert rebase_references(text, tmp_path / "sub", tmp_path) == "![](<sub/my pic.png>)"


def test_numbered_candidate() -> None:
    assert numbered_candidate("media/pic.png", 2) == "media/pic-2.png"
    assert numbered_candidate("README", 1) == "README-1"


def test_registry_is_case_insensitive() -> None:
    registry = OutputRegistry()
    registry.reserve("Board.md")
    path, reused = registry.claim("h1", "board.md")
    assert (path, reused) == ("board-1.md", False)
    assert registry.claim("h1", "other.md") == ("board-1.md", True)

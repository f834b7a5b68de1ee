from __future__ import annotations

from pathlib import Path

import pytest

from boardsmith.core.config import BoardsmithConfig, PackConfig, load_config
from boardsmith.core.exceptions import ConfigError
from boardsmith.core.models import (
    AssetKind,
    AssetStrategy,
    FormatStrategy,
    IncludeStrategy,
    RowScope,
)
from boardsmith.core.tags import TagVisibility


def test_defaults() -> None:
    config = load_config(None)
    assert config.format_strategy is FormatStrategy.KEEP
    assert config.include_strategy is IncludeStrategy.MERGE
    assert config.pack.asset_kinds == frozenset(AssetKind)
    assert config.pack.size_limit == 100 * 1024 * 1024


def test_load_yaml(tmp_path: Path) -> None:
    path = tmp_path / "boardsmith.yml"
    path.write_text(
        """
format_strategy: presentation
asset_strategy: copy
tag_visibility: none
max_depth: 3
configured_tags: [urgent, "#low"]
pack:
  include_videos: false
  file_size_limit_mb: 0.5
""",
        encoding="utf-8",
    )
    config = load_config(path)

    assert config.format_strategy is FormatStrategy.PRESENTATION
    assert config.asset_strategy is AssetStrategy.COPY
    assert config.tag_visibility is TagVisibility.NONE
    assert config.max_depth == 3
    assert config.configured_tags == ["#urgent", "#low"]
    assert AssetKind.VIDEO not in config.pack.asset_kinds
    assert config.pack.size_limit == 512 * 1024


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "bad.yml"
    path.write_text("colour: red\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "bad.yml"
    path.write_text("format_strategy: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


def test_non_mapping_payload(tmp_path: Path) -> None:
    path = tmp_path / "list.yml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(path)


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yml")


def test_to_options_applies_overrides(tmp_path: Path) -> None:
    config = BoardsmithConfig(export_folder=tmp_path, pack=PackConfig(file_size_limit_mb=None))
    options = config.to_options(
        scope=RowScope(2),
        asset_strategy=AssetStrategy.EMBED,
        max_depth=None,
    )
    assert options.scope == RowScope(2)
    assert options.asset_strategy is AssetStrategy.EMBED
    assert options.max_depth == config.max_depth
    assert options.output_dir == tmp_path
    assert options.size_limit is None
    assert options.embed_limit == config.embed_limit_kb * 1024

"""Configuration models for content pipeline operations.

BoardsmithConfig

`format_strategy` (`FormatStrategy`)
: Surface syntax of the exported units: `keep`, `kanban` or `presentation`.

`include_strategy` (`IncludeStrategy`)
: `merge` inlines included files, `separate` emits them as satellite files,
  `ignore` leaves the directives untouched.

`asset_strategy` (`AssetStrategy`)
: `embed` inlines small binaries as data URIs, `copy` bundles them in the
  media directory, `reference` and `ignore` leave references unchanged.

`tag_visibility` (`TagVisibility`)
: Which tags survive the export (`all`, `allexcludinglayout`, `customonly`,
  `mentionsonly`, `none`).

`max_depth` (`int`)
: Maximum include nesting depth before a branch is abandoned.

`insert_format_marker` (`bool`)
: Insert the `kanban-plugin: board` front matter when converting to the
  kanban syntax.

`embed_limit_kb` (`int`)
: Largest file embedded as a data URI; bigger files are copied instead.

`configured_tags` (`list[str]`)
: Tags removed by the `customonly` visibility mode.

`export_folder` (`Path | None`)
: Default output root used when the caller does not provide one.

PackConfig

`include_images`, `include_videos`, `include_other_media`,
`include_documents`, `include_files` (`bool`)
: Asset kinds bundled by the `copy` and `embed` strategies. Other media
  covers audio files.

`file_size_limit_mb` (`float | None`)
: Assets above this size are left out and listed in `_not_included.md`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
import yaml

from .exceptions import ConfigError
from .models import (
    DEFAULT_MAX_DEPTH,
    EMBED_LIMIT,
    AssetKind,
    AssetStrategy,
    FormatStrategy,
    FullScope,
    IncludeStrategy,
    OperationOptions,
    Scope,
)
from .tags import DEFAULT_CONFIGURED_TAGS, TagVisibility


class PackConfig(BaseModel):
    """Asset bundling filters."""

    model_config = ConfigDict(extra="forbid")

    include_images: bool = True
    include_videos: bool = True
    include_other_media: bool = True
    include_documents: bool = True
    include_files: bool = True
    file_size_limit_mb: float | None = 100

    @property
    def asset_kinds(self) -> frozenset[AssetKind]:
        toggles = {
            AssetKind.IMAGE: self.include_images,
            AssetKind.VIDEO: self.include_videos,
            AssetKind.AUDIO: self.include_other_media,
            AssetKind.DOCUMENT: self.include_documents,
            AssetKind.FILE: self.include_files,
        }
        return frozenset(kind for kind, enabled in toggles.items() if enabled)

    @property
    def size_limit(self) -> int | None:
        if self.file_size_limit_mb is None:
            return None
        return int(self.file_size_limit_mb * 1024 * 1024)


class BoardsmithConfig(BaseModel):
    """Defaults applied to every export."""

    model_config = ConfigDict(extra="forbid")

    format_strategy: FormatStrategy = FormatStrategy.KEEP
    include_strategy: IncludeStrategy = IncludeStrategy.MERGE
    asset_strategy: AssetStrategy = AssetStrategy.REFERENCE
    tag_visibility: TagVisibility = TagVisibility.ALL
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1)
    insert_format_marker: bool = True
    embed_limit_kb: int = Field(default=EMBED_LIMIT // 1024, ge=0)
    configured_tags: list[str] = Field(default_factory=lambda: list(DEFAULT_CONFIGURED_TAGS))
    export_folder: Path | None = None
    pack: PackConfig = Field(default_factory=PackConfig)

    @field_validator("configured_tags")
    @classmethod
    def _prefix_tags(cls, value: list[str]) -> list[str]:
        return [tag if tag.startswith("#") else f"#{tag}" for tag in value]

    def to_options(
        self,
        *,
        scope: Scope | None = None,
        output_dir: Path | None = None,
        target_name: str | None = None,
        **overrides: Any,
    ) -> OperationOptions:
        """Build the immutable options of one invocation."""
        values: dict[str, Any] = {
            "scope": scope if scope is not None else FullScope(),
            "format_strategy": self.format_strategy,
            "include_strategy": self.include_strategy,
            "asset_strategy": self.asset_strategy,
            "tag_visibility": self.tag_visibility,
            "output_dir": output_dir if output_dir is not None else self.export_folder,
            "max_depth": self.max_depth,
            "insert_format_marker": self.insert_format_marker,
            "target_name": target_name,
            "asset_kinds": self.pack.asset_kinds,
            "size_limit": self.pack.size_limit,
            "embed_limit": self.embed_limit_kb * 1024,
            "configured_tags": tuple(self.configured_tags),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return OperationOptions(**values)


def load_config(path: Path | str | None = None) -> BoardsmithConfig:
    """Load configuration from a YAML file; missing paths yield defaults."""
    if path is None:
        return BoardsmithConfig()

    config_path = Path(path)
    try:
        payload = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration '{config_path}': {exc}") from exc

    try:
        data = yaml.safe_load(payload) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in configuration '{config_path}': {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration '{config_path}' must contain a mapping.")

    try:
        return BoardsmithConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration '{config_path}': {exc}") from exc


__all__ = ["BoardsmithConfig", "PackConfig", "load_config"]

"""Primary public API for boardsmith."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

from boardsmith.api import (
    ExportRequest,
    ExportResponse,
    ExportService,
    InspectionReport,
    default_export_folder,
)
from boardsmith.core.config import BoardsmithConfig, PackConfig, load_config
from boardsmith.core.context import CancellationToken
from boardsmith.core.conversion import convert, declared_format
from boardsmith.core.diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from boardsmith.core.exceptions import (
    AssetMissingError,
    BoardsmithError,
    ConfigError,
    CycleDetectedError,
    DepthExceededError,
    MissingIncludeError,
    PathDecodeError,
    PipelineCancelled,
    ScopeError,
    WriteError,
)
from boardsmith.core.models import (
    AssetStrategy,
    ContentUnit,
    FormatStrategy,
    FullScope,
    IncludeStrategy,
    ItemScope,
    OperationOptions,
    PipelineResult,
    RowScope,
    SectionScope,
    StackScope,
    SurfaceFormat,
    TagVisibility,
)
from boardsmith.core.pipeline import ContentPipeline
from boardsmith.core.scope import parse_scope


try:
    __version__ = _pkg_version("boardsmith")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "AssetMissingError",
    "AssetStrategy",
    "BoardsmithConfig",
    "BoardsmithError",
    "CancellationToken",
    "ConfigError",
    "ContentPipeline",
    "ContentUnit",
    "CycleDetectedError",
    "DepthExceededError",
    "DiagnosticEmitter",
    "ExportRequest",
    "ExportResponse",
    "ExportService",
    "FormatStrategy",
    "FullScope",
    "IncludeStrategy",
    "InspectionReport",
    "ItemScope",
    "LoggingEmitter",
    "MissingIncludeError",
    "NullEmitter",
    "OperationOptions",
    "PackConfig",
    "PathDecodeError",
    "PipelineCancelled",
    "PipelineResult",
    "RowScope",
    "ScopeError",
    "SectionScope",
    "StackScope",
    "SurfaceFormat",
    "TagVisibility",
    "WriteError",
    "__version__",
    "convert",
    "declared_format",
    "default_export_folder",
    "load_config",
    "parse_scope",
]

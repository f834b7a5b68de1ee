"""Facade for embedding the boardsmith content pipeline.

Usage Example
:
    >>> from pathlib import Path
    >>> from tempfile import TemporaryDirectory
    >>> from boardsmith.api import ExportRequest, ExportService
    >>> with TemporaryDirectory() as tmpdir:
    ...     path = Path(tmpdir) / "board.md"
    ...     _ = path.write_text("## Todo\\n- [ ] Write docs\\n")
    ...     response = ExportService().export(ExportRequest(source=path))
    ...     [artifact.relative_path for artifact in response.result.artifacts]
    ['board.md']
"""

from __future__ import annotations

from .service import (
    ExportRequest,
    ExportResponse,
    ExportService,
    InspectionReport,
    default_export_folder,
)


__all__ = [
    "ExportRequest",
    "ExportResponse",
    "ExportService",
    "InspectionReport",
    "default_export_folder",
]

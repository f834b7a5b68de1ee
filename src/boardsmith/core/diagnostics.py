"""Diagnostic abstractions shared across the content pipeline."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that ignores every diagnostic."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter that forwards diagnostics to the standard logging module."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None and self.debug_enabled:
            self._logger.warning(message, exc_info=exc)
        else:
            self._logger.warning(message)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        if exc is not None and self.debug_enabled:
            self._logger.error(message, exc_info=exc)
        else:
            self._logger.error(message)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            self._logger.info(message)
            return
        self._logger.debug("diagnostic event %s: %s", name, dict(payload))


def ensure_emitter(emitter: DiagnosticEmitter | None) -> DiagnosticEmitter:
    """Return a usable emitter, defaulting to the null implementation."""
    return emitter if emitter is not None else NullEmitter()


def record_event(
    emitter: DiagnosticEmitter | None,
    event: str,
    payload: Mapping[str, Any],
) -> None:
    """Forward a structured diagnostic event."""
    ensure_emitter(emitter).event(event, payload)


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a human-friendly summary for selected diagnostic events."""
    data = dict(payload)

    if name == "include_resolved":
        kind = data.get("kind") or "include"
        target = data.get("path") or "<unknown>"
        depth = data.get("depth")
        suffix = f" (depth {depth})" if depth is not None else ""
        return f"Resolved {kind}: {target}{suffix}"

    if name == "satellite_emitted":
        target = data.get("output") or "<unknown>"
        source = data.get("source")
        reused = data.get("reused")
        if reused:
            return f"Reusing satellite {target}"
        return f"Emitting satellite {target}" + (f" from {source}" if source else "")

    if name == "asset_copied":
        source = data.get("source") or "<unknown>"
        target = data.get("output") or "<unknown>"
        if data.get("reused"):
            return f"Reusing copied asset {target} for {source}"
        return f"Copying asset {source} -> {target}"

    if name == "asset_embedded":
        source = data.get("source") or "<unknown>"
        size = data.get("size")
        details = f" ({size} bytes)" if size is not None else ""
        return f"Embedding asset {source}{details}"

    if name == "artifact_written":
        target = data.get("path") or "<unknown>"
        kind = data.get("kind")
        return f"Wrote {kind} {target}" if kind else f"Wrote {target}"

    return None


__all__ = [
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "ensure_emitter",
    "format_event_message",
    "record_event",
]

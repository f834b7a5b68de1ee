"""Diagnostic emitter bridging the content pipeline with CLI rendering."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from boardsmith.core.diagnostics import DiagnosticEmitter, format_event_message

from .state import CLIState, emit_error, emit_warning, get_cli_state, render_message


class CliEmitter(DiagnosticEmitter):
    """Emit pipeline diagnostics on the rich consoles of the CLI.

    Identical warnings raised by several include branches are printed once;
    ``warning_count`` and ``error_count`` still count every occurrence.
    """

    def __init__(self, state: CLIState | None = None, *, debug_enabled: bool | None = None) -> None:
        self._state = state or get_cli_state()
        if debug_enabled is None:
            debug_enabled = self._state.show_tracebacks
        self.debug_enabled = bool(debug_enabled)
        self.warning_count = 0
        self.error_count = 0
        self._seen: set[tuple[str, str]] = set()

    def _first_time(self, level: str, message: str) -> bool:
        key = (level, message)
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self.warning_count += 1
        if self._first_time("warning", message):
            emit_warning(message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self.error_count += 1
        if self._first_time("error", message):
            emit_error(message, exception=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message:
            render_message("info", message)


__all__ = ["CliEmitter"]

"""Verbosity, debug flag and rich consoles shared by the CLI commands."""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
import sys
from typing import TextIO

import click
from rich.console import Console
from rich.text import Text
import typer


_LEVEL_STYLES = {"warning": "yellow", "error": "red"}


def _bound_console(current: Console | None, stream: TextIO, **options: bool) -> Console:
    # CliRunner and pytest swap the standard streams between invocations.
    if current is not None and current.file is stream:
        return current
    return Console(file=stream, **options)


@dataclass(slots=True)
class CLIState:
    """Options of the root command that every subcommand honours."""

    verbosity: int = 0
    show_tracebacks: bool = False
    _console: Console | None = field(default=None, init=False, repr=False)
    _err_console: Console | None = field(default=None, init=False, repr=False)

    @property
    def console(self) -> Console:
        self._console = _bound_console(self._console, sys.stdout)
        return self._console

    @property
    def err_console(self) -> Console:
        self._err_console = _bound_console(self._err_console, sys.stderr, highlight=False)
        return self._err_console


_CURRENT: ContextVar[CLIState | None] = ContextVar("boardsmith_cli_state", default=None)


def get_cli_state(
    ctx: typer.Context | click.Context | None = None,
    *,
    create: bool = True,
) -> CLIState:
    """Return the state attached to ``ctx`` or one of its parents."""
    if ctx is None:
        ctx = click.get_current_context(silent=True)
    node = ctx
    while node is not None:
        if isinstance(node.obj, CLIState):
            _CURRENT.set(node.obj)
            return node.obj
        node = node.parent

    state = _CURRENT.get()
    if state is None:
        if not create:
            raise RuntimeError("CLI state is not initialised for this context.")
        state = CLIState()
        _CURRENT.set(state)
    if ctx is not None and ctx.obj is None:
        ctx.obj = state
    return state


def set_cli_state(
    *,
    ctx: typer.Context | None = None,
    verbosity: int | None = None,
    debug: bool | None = None,
) -> CLIState:
    state = get_cli_state(ctx)
    if verbosity is not None:
        state.verbosity = max(0, verbosity)
    if debug is not None:
        state.show_tracebacks = debug
    return state


def debug_enabled() -> bool:
    """Return whether ``--debug`` asked for raw tracebacks."""
    try:
        return get_cli_state(create=False).show_tracebacks
    except RuntimeError:
        return False


def _causes(exc: BaseException) -> list[str]:
    causes: list[str] = []
    seen: set[int] = set()
    current = exc.__cause__ or exc.__context__
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        causes.append(f"{type(current).__name__}: {current}")
        current = current.__cause__ or current.__context__
    return causes


def _details(message: str, exc: BaseException, verbosity: int) -> list[str]:
    """Extra lines shown under a diagnostic: ``-v`` adds the type, ``-vv`` the causes."""
    if verbosity < 1:
        return []
    lines: list[str] = []
    detail = str(exc).strip()
    if detail and detail not in message:
        lines.append(detail)
    lines.append(f"type: {type(exc).__name__}")
    if verbosity >= 2:
        causes = _causes(exc)
        if causes:
            lines.append("caused by:")
            lines.extend(f"  {cause}" for cause in causes)
    return lines


def render_message(
    level: str,
    message: str,
    *,
    exception: BaseException | None = None,
) -> None:
    """Print a diagnostic on stderr; ``info`` messages need at least ``-v``."""
    state = get_cli_state()
    if level == "info":
        if state.verbosity >= 1:
            state.err_console.log(message)
        return

    style = _LEVEL_STYLES.get(level, "yellow")
    text = Text.assemble((f"{level}: ", f"bold {style}"), (message, style))
    if exception is not None:
        extra = _details(message, exception, state.verbosity)
        if extra:
            text.append("\n" + "\n".join(extra), style=style)
    state.err_console.print(text)


def emit_warning(message: str, *, exception: BaseException | None = None) -> None:
    render_message("warning", message, exception=exception)


def emit_error(message: str, *, exception: BaseException | None = None) -> None:
    render_message("error", message, exception=exception)


__all__ = [
    "CLIState",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "render_message",
    "set_cli_state",
]

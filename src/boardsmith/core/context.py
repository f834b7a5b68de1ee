"""Call-scoped state threaded through a single pipeline invocation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
import threading

from .diagnostics import DiagnosticEmitter
from .exceptions import PipelineCancelled
from .models import DEFAULT_MAX_DEPTH, IncludeStrategy, Issue, Satellite
from .registry import OutputRegistry


def read_unit_text(path: Path) -> str:
    """Default loader used to read include targets."""
    return path.read_text(encoding="utf-8")


class CancellationToken:
    """Cooperative cancellation flag checked between units of work."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelled("Operation cancelled")


@dataclass(frozen=True, slots=True)
class ResolvedEntry:
    """Finished text of a unit whose subtree resolved without issues.

    ``height`` is the depth of the deepest include below the unit; the entry
    is only reused where that subtree still fits under the depth limit.
    """

    text: str
    item_spans: tuple[tuple[int, int], ...] = ()
    height: int = 0


@dataclass(slots=True)
class ResolutionContext:
    """State for one include resolution pass.

    ``visiting`` holds the path keys of the units currently being resolved,
    ``resolved`` maps path keys to :class:`ResolvedEntry` records.
    """

    strategy: IncludeStrategy
    max_depth: int = DEFAULT_MAX_DEPTH
    registry: OutputRegistry = field(default_factory=OutputRegistry)
    cancel: CancellationToken | None = None
    emitter: DiagnosticEmitter | None = None
    loader: Callable[[Path], str] = read_unit_text
    visiting: list[str] = field(default_factory=list)
    resolved: dict[str, ResolvedEntry] = field(default_factory=dict)
    satellites: list[Satellite] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)

    def check_cancelled(self) -> None:
        if self.cancel is not None:
            self.cancel.raise_if_cancelled()


__all__ = ["CancellationToken", "ResolutionContext", "ResolvedEntry", "read_unit_text"]

"""Custom exception hierarchy for the content pipeline."""

from __future__ import annotations

from pathlib import Path


class BoardsmithError(RuntimeError):
    """Base exception for pipeline failures."""


class PathDecodeError(BoardsmithError):
    """Raised when a percent-encoded reference cannot be decoded."""

    def __init__(self, reference: str, reason: str | None = None) -> None:
        message = f"Cannot decode path reference '{reference}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.reference = reference


class IncludeError(BoardsmithError):
    """Base class for failures attached to a single include directive."""

    def __init__(self, message: str, *, reference: str | None = None, path: Path | None = None):
        super().__init__(message)
        self.reference = reference
        self.path = path


class CycleDetectedError(IncludeError):
    """Raised when an include target is already on the visiting stack."""


class DepthExceededError(IncludeError):
    """Raised when an include chain grows beyond the configured depth."""


class MissingIncludeError(IncludeError):
    """Raised when an include target cannot be located or read."""


class AssetMissingError(BoardsmithError):
    """Raised when a referenced asset cannot be located on disk."""

    def __init__(self, message: str, *, reference: str | None = None, path: Path | None = None):
        super().__init__(message)
        self.reference = reference
        self.path = path


class ConfigError(BoardsmithError):
    """Raised when a configuration file cannot be loaded or validated."""


class ScopeError(ValueError):
    """Raised when a scope descriptor does not match the document tree."""


class WriteError(BoardsmithError):
    """Raised when output artifacts cannot be persisted."""


class PipelineCancelled(BoardsmithError):
    """Raised when the caller cancels a running pipeline."""


def exception_messages(exc: BaseException) -> list[str]:
    """Return the collected message chain for an exception and its causes."""
    messages: list[str] = []
    visited: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in visited:
        visited.add(id(current))
        text = str(current).strip()
        if text:
            first_line = text.splitlines()[0].strip()
            if first_line:
                messages.append(first_line)
        current = current.__cause__ or current.__context__
    return messages


def exception_hint(exc: BaseException) -> str | None:
    """Return the most specific message available for an exception chain."""
    messages = exception_messages(exc)
    return messages[-1] if messages else None


__all__ = [
    "AssetMissingError",
    "BoardsmithError",
    "ConfigError",
    "CycleDetectedError",
    "DepthExceededError",
    "IncludeError",
    "MissingIncludeError",
    "PathDecodeError",
    "PipelineCancelled",
    "ScopeError",
    "WriteError",
    "exception_hint",
    "exception_messages",
]

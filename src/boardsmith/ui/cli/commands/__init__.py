"""Typer command implementations exposed by `boardsmith.ui.cli`."""

from __future__ import annotations

from .convert import convert
from .export import export
from .inspect import inspect


__all__ = ["convert", "export", "inspect"]

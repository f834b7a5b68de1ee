"""Canonicalisation and decoding of path references found in content units.

Every comparison between two path references goes through :func:`equal`;
visiting stacks and caches key absolute paths with :func:`path_key`.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
import os
from pathlib import Path
import posixpath
import re
from urllib.parse import unquote

from .exceptions import PathDecodeError


logger = logging.getLogger(__name__)

DecodeErrorCallback = Callable[[PathDecodeError], None]

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]+:")
_DRIVE_PATTERN = re.compile(r"^[A-Za-z]:[\\/]")
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_reference(ref: str, *, on_error: DecodeErrorCallback | None = None) -> str:
    """Percent-decode ``ref`` when it carries an escape marker.

    Decoding failures fall back to the raw string; they are logged and
    forwarded to ``on_error`` but never raised.
    """
    if "%" not in ref:
        return ref
    try:
        if _MALFORMED_ESCAPE.search(ref):
            raise PathDecodeError(ref, "malformed percent escape")
        try:
            return unquote(ref, errors="strict")
        except UnicodeDecodeError as exc:
            raise PathDecodeError(ref, "invalid UTF-8 sequence") from exc
    except PathDecodeError as exc:
        logger.warning("%s; using the raw reference.", exc)
        if on_error is not None:
            on_error(exc)
        return ref


def _is_absolute(ref: str) -> bool:
    return ref.startswith("/") or bool(_DRIVE_PATTERN.match(ref))


def normalize(ref: str, *, on_error: DecodeErrorCallback | None = None) -> str:
    """Return the canonical spelling of a path reference.

    Relative references always carry an explicit ``./`` prefix, backslashes
    become forward slashes and redundant segments collapse.
    """
    decoded = decode_reference(ref.strip(), on_error=on_error).replace("\\", "/")
    if not decoded:
        return "./"
    collapsed = posixpath.normpath(decoded)
    if _is_absolute(decoded):
        return collapsed
    if collapsed == ".":
        return "./"
    return f"./{collapsed}"


def equal(a: str, b: str) -> bool:
    """Return whether two references point to the same logical file."""
    return normalize(a) == normalize(b)


def resolve(
    base_dir: Path | str,
    ref: str,
    *,
    on_error: DecodeErrorCallback | None = None,
) -> Path:
    """Resolve ``ref`` against ``base_dir`` into an absolute, collapsed path."""
    canonical = normalize(ref, on_error=on_error)
    if _is_absolute(canonical):
        return Path(os.path.normpath(canonical))
    base = Path(os.path.abspath(base_dir))
    return Path(os.path.normpath(base / canonical))


def is_remote(ref: str) -> bool:
    """Return whether ``ref`` targets a network location or a URI scheme."""
    candidate = ref.strip()
    if candidate.startswith("//"):
        return True
    if _DRIVE_PATTERN.match(candidate):
        return False
    return bool(_SCHEME_PATTERN.match(candidate))


def path_key(path: Path | str) -> str:
    """Return the key identifying an absolute path in stacks and caches."""
    return os.path.normcase(os.path.normpath(os.path.abspath(path)))


def relative_reference(target: Path | str, start: Path | str) -> str:
    """Return ``target`` relative to the ``start`` directory in POSIX form."""
    try:
        relative = os.path.relpath(os.path.abspath(target), os.path.abspath(start))
    except ValueError:
        return Path(target).as_posix()
    return Path(relative).as_posix()


__all__ = [
    "DecodeErrorCallback",
    "decode_reference",
    "equal",
    "is_remote",
    "normalize",
    "path_key",
    "relative_reference",
    "resolve",
]

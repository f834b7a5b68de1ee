"""Tag helpers for board layout metadata and export-time tag filtering."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
import re


ROW_TAG_PATTERN = re.compile(r"#row(\d+)\b", re.IGNORECASE)
STACK_TAG_PATTERN = re.compile(r"#stack\b", re.IGNORECASE)
TOKEN_PATTERN = re.compile(r"(?<!\S)([#@])([\w-]+)")
LAYOUT_TAG_PATTERN = re.compile(r"(?:row|span|stack)\d*", re.IGNORECASE)
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")
_SPACE_RUN = re.compile(r"[ \t]{2,}")

DEFAULT_CONFIGURED_TAGS: tuple[str, ...] = (
    "#urgent",
    "#high",
    "#medium",
    "#low",
    "#todo",
    "#doing",
    "#done",
    "#blocked",
    "#bug",
    "#feature",
    "#enhancement",
    "#red",
    "#green",
    "#blue",
    "#yellow",
    "#orange",
    "#row",
    "#span",
    "#stack",
)


class TagVisibility(str, Enum):
    """Which tags survive an export."""

    ALL = "all"
    ALL_EXCLUDING_LAYOUT = "allexcludinglayout"
    CUSTOM_ONLY = "customonly"
    MENTIONS_ONLY = "mentionsonly"
    NONE = "none"


def row_of(title: str) -> int:
    """Return the row number declared in a section title, defaulting to 1."""
    matches = ROW_TAG_PATTERN.findall(title or "")
    if not matches:
        return 1
    return int(matches[-1])


def is_stacked(title: str) -> bool:
    """Return whether a section title carries the stack membership tag."""
    return bool(STACK_TAG_PATTERN.search(title or ""))


def extract_tags(text: str) -> frozenset[str]:
    """Collect the hash tags and mentions present in ``text``."""
    return frozenset(
        f"{match.group(1)}{match.group(2)}".lower() for match in TOKEN_PATTERN.finditer(text)
    )


def _bare_name(tag: str) -> str:
    return re.sub(r"\d+$", "", tag.lstrip("#@")).lower()


def _removal_predicate(visibility: TagVisibility, configured: Iterable[str]):
    configured_names = {_bare_name(tag) for tag in configured}

    def remove(sigil: str, name: str) -> bool:
        if visibility is TagVisibility.NONE:
            return True
        if sigil != "#":
            return False
        if visibility is TagVisibility.MENTIONS_ONLY:
            return True
        if visibility is TagVisibility.ALL_EXCLUDING_LAYOUT:
            return bool(LAYOUT_TAG_PATTERN.fullmatch(name))
        if visibility is TagVisibility.CUSTOM_ONLY:
            return _bare_name(name) in configured_names
        return False

    return remove


def _filter_line(line: str, remove) -> str:
    changed = False

    def substitute(match: re.Match[str]) -> str:
        nonlocal changed
        if remove(match.group(1), match.group(2)):
            changed = True
            return ""
        return match.group(0)

    filtered = TOKEN_PATTERN.sub(substitute, line)
    if not changed:
        return line

    stripped = filtered.lstrip(" \t")
    indent = filtered[: len(filtered) - len(stripped)]
    if not stripped.strip():
        return ""
    return indent + _SPACE_RUN.sub(" ", stripped).rstrip()


def filter_tags(
    text: str,
    visibility: TagVisibility,
    configured_tags: Iterable[str] = DEFAULT_CONFIGURED_TAGS,
) -> str:
    """Strip tags from ``text`` according to ``visibility``.

    Fenced code blocks are left untouched and line indentation is preserved.
    """
    if visibility is TagVisibility.ALL or not text:
        return text

    remove = _removal_predicate(visibility, tuple(configured_tags))
    lines = text.split("\n")
    in_fence = False
    fence_marker = ""
    for index, line in enumerate(lines):
        fence = FENCE_PATTERN.match(line)
        if fence:
            if not in_fence:
                in_fence = True
                fence_marker = fence.group(1)
            elif fence.group(1) == fence_marker:
                in_fence = False
            continue
        if in_fence:
            continue
        lines[index] = _filter_line(line, remove)
    return "\n".join(lines)


__all__ = [
    "DEFAULT_CONFIGURED_TAGS",
    "TagVisibility",
    "extract_tags",
    "filter_tags",
    "is_stacked",
    "row_of",
]

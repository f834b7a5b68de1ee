"""Reader and writer for the presentation surface syntax (``---`` separated slides)."""

from __future__ import annotations

from collections.abc import Sequence
import re

from .board import normalize_newlines, split_front_matter


SLIDE_DELIMITER = "---"
SLIDE_DELIMITER_PATTERN = re.compile(r"^---[ \t]*$", re.MULTILINE)
HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")


def trim_blank_lines(text: str) -> str:
    """Drop leading and trailing whitespace-only lines, keeping the rest verbatim."""
    lines = text.split("\n")
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return "\n".join(lines[start:end])


Span = tuple[int, int]


def slide_chunks(
    text: str, item_spans: Sequence[Span] = ()
) -> tuple[str | None, list[tuple[str, bool]]]:
    """Split presentation text into its front matter block and slide segments.

    Each segment is paired with whether it overlaps one of ``item_spans``.
    A delimiter line inside a span does not end the slide. Spans index into
    ``text`` and are ignored when its newlines are not normalised.
    """
    normalized = normalize_newlines(text)
    raw_front_matter, _, body = split_front_matter(normalized)
    offset = len(normalized) - len(body)
    spans = tuple(item_spans) if normalized == text else ()

    def overlaps(start: int, end: int) -> bool:
        return any(a < offset + end and offset + start < b for a, b in spans)

    chunks: list[tuple[str, bool]] = []

    def append(start: int, end: int) -> None:
        segment = trim_blank_lines(body[start:end])
        if segment:
            chunks.append((segment, overlaps(start, end)))

    cursor = 0
    for match in SLIDE_DELIMITER_PATTERN.finditer(body):
        if overlaps(match.start(), match.start() + 1):
            continue
        append(cursor, match.start())
        cursor = match.end()
    append(cursor, len(body))
    return raw_front_matter, chunks


def split_slides(text: str, item_spans: Sequence[Span] = ()) -> tuple[str | None, list[str]]:
    """Split presentation text into its front matter block and slide segments.

    Blank segments are discarded; retained segments keep their inner text
    verbatim.
    """
    raw_front_matter, chunks = slide_chunks(text, item_spans)
    return raw_front_matter, [segment for segment, _ in chunks]


def join_slides(segments: list[str], front_matter: str | None = None) -> str:
    """Join slide segments with delimiter lines; the result ends with one newline."""
    parts = [segment for segment in (trim_blank_lines(s) for s in segments) if segment]
    body = f"\n\n{SLIDE_DELIMITER}\n\n".join(parts)
    if front_matter:
        body = f"{front_matter}\n\n{body}" if body else front_matter
    return body.rstrip() + "\n"


def heading_text(line: str) -> str | None:
    """Return the text of a markdown ATX heading line, if ``line`` is one."""
    match = HEADING_PATTERN.match(line.strip())
    if not match:
        return None
    return match.group(2)


def heading_only(segment: str) -> str | None:
    """Return the heading text when ``segment`` holds nothing but one heading."""
    lines = [line for line in segment.split("\n") if line.strip()]
    if len(lines) != 1:
        return None
    return heading_text(lines[0])


__all__ = [
    "HEADING_PATTERN",
    "SLIDE_DELIMITER",
    "SLIDE_DELIMITER_PATTERN",
    "Span",
    "heading_only",
    "heading_text",
    "join_slides",
    "slide_chunks",
    "split_slides",
    "trim_blank_lines",
]

"""Discovery, hashing, deduplication and relocation of binary references."""

from __future__ import annotations

import base64
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
import hashlib
import logging
import mimetypes
from pathlib import Path
import posixpath
import re

from .diagnostics import DiagnosticEmitter, ensure_emitter, record_event
from .exceptions import AssetMissingError
from .models import (
    DEFAULT_SIZE_LIMIT,
    EMBED_LIMIT,
    HASH_WINDOW,
    LARGE_FILE_THRESHOLD,
    AssetKind,
    AssetRecord,
    AssetStrategy,
    ExclusionReason,
    Issue,
    Severity,
)
from .paths import DecodeErrorCallback, is_remote, path_key, relative_reference, resolve
from .registry import OutputRegistry


logger = logging.getLogger(__name__)

NOT_INCLUDED_REPORT = "_not_included.md"

_TARGET = r"(?P<target><[^>\n]+>|[^)\s]+)"
_TITLE = r"(?:\s+(?:\"[^\"\n]*\"|'[^'\n]*'|\([^)\n]*\)))?"
_MARKDOWN_IMAGE = re.compile(r"!\[[^\]\n]*\]\(\s*" + _TARGET + _TITLE + r"\s*\)")
_MARKDOWN_LINK = re.compile(r"(?<!!)\[[^\]\n]*\]\(\s*" + _TARGET + _TITLE + r"\s*\)")
_HTML_SOURCE = re.compile(
    r"<(?:img|video|audio|source)\b[^>]*?\bsrc\s*=\s*(?P<quote>[\"'])(?P<target>.*?)(?P=quote)",
    re.IGNORECASE | re.DOTALL,
)
REFERENCE_PATTERNS = (_MARKDOWN_IMAGE, _MARKDOWN_LINK, _HTML_SOURCE)

_KIND_SUFFIXES: dict[AssetKind, frozenset[str]] = {
    AssetKind.IMAGE: frozenset({".jpg", ".jpeg", ".png", ".gif", ".bmp", ".svg", ".webp"}),
    AssetKind.VIDEO: frozenset({".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv"}),
    AssetKind.AUDIO: frozenset({".mp3", ".wav", ".flac", ".aac", ".ogg", ".m4a"}),
    AssetKind.DOCUMENT: frozenset({".pdf", ".epub", ".doc", ".docx", ".txt"}),
}


@dataclass(frozen=True, slots=True)
class _Reference:
    target: str
    start: int
    end: int
    bracketed: bool


def classify(path: Path | str) -> AssetKind:
    """Return the asset kind implied by a file extension."""
    suffix = Path(path).suffix.lower()
    for kind, suffixes in _KIND_SUFFIXES.items():
        if suffix in suffixes:
            return kind
    return AssetKind.FILE


def split_target(reference: str) -> tuple[str, str]:
    """Split a reference into its path and its ``?query``/``#fragment`` tail."""
    cut = len(reference)
    for marker in ("?", "#"):
        index = reference.find(marker)
        if index != -1:
            cut = min(cut, index)
    return reference[:cut], reference[cut:]


def is_local_reference(reference: str) -> bool:
    candidate = reference.strip()
    if not candidate or candidate.startswith("#"):
        return False
    if is_remote(candidate):
        return False
    path_part, _ = split_target(candidate)
    return bool(path_part)


def _iter_references(text: str) -> Iterator[_Reference]:
    seen: set[int] = set()
    found: list[_Reference] = []
    for pattern in REFERENCE_PATTERNS:
        for match in pattern.finditer(text):
            start, end = match.span("target")
            if start in seen:
                continue
            seen.add(start)
            raw = match.group("target")
            bracketed = raw.startswith("<") and raw.endswith(">")
            target = raw[1:-1] if bracketed else raw
            found.append(_Reference(target=target, start=start, end=end, bracketed=bracketed))
    found.sort(key=lambda ref: ref.start)
    yield from found


def content_hash(path: Path, size: int | None = None) -> str:
    """Hash the file size plus a bounded window of the file content.

    Files up to ``LARGE_FILE_THRESHOLD`` are hashed in full; larger files
    only contribute their first ``HASH_WINDOW`` bytes.
    """
    if size is None:
        size = path.stat().st_size
    digest = hashlib.sha256()
    digest.update(f"{size}:".encode("ascii"))
    remaining = size if size <= LARGE_FILE_THRESHOLD else HASH_WINDOW
    with path.open("rb") as handle:
        while remaining > 0:
            chunk = handle.read(min(65536, remaining))
            if not chunk:
                break
            digest.update(chunk)
            remaining -= len(chunk)
    return digest.hexdigest()


def data_uri(path: Path) -> str:
    mime, _ = mimetypes.guess_type(path.name)
    payload = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime or 'application/octet-stream'};base64,{payload}"


def _format_target(target: str, bracketed: bool) -> str:
    if bracketed or any(char.isspace() for char in target):
        return f"<{target}>"
    return target


def rewrite(text: str, records: Iterable[AssetRecord]) -> str:
    """Substitute every processed reference in ``text`` with its new target."""
    replacements = {
        record.original_reference: record.rewritten_reference
        for record in records
        if record.rewritten_reference is not None
        and record.rewritten_reference != record.original_reference
    }
    if not replacements:
        return text

    pieces: list[str] = []
    cursor = 0
    for ref in _iter_references(text):
        replacement = replacements.get(ref.target)
        if replacement is None:
            continue
        pieces.append(text[cursor : ref.start])
        pieces.append(_format_target(replacement, ref.bracketed))
        cursor = ref.end
    pieces.append(text[cursor:])
    return "".join(pieces)


def rebase_references(
    text: str,
    from_dir: Path,
    to_dir: Path,
    *,
    on_error: DecodeErrorCallback | None = None,
) -> str:
    """Rewrite relative references written for ``from_dir`` so they work from ``to_dir``."""
    if path_key(from_dir) == path_key(to_dir):
        return text

    pieces: list[str] = []
    cursor = 0
    for ref in _iter_references(text):
        if not is_local_reference(ref.target):
            continue
        path_part, tail = split_target(ref.target)
        if path_part.startswith("/"):
            continue
        absolute = resolve(from_dir, path_part, on_error=on_error)
        rebased = relative_reference(absolute, to_dir) + tail
        pieces.append(text[cursor : ref.start])
        pieces.append(_format_target(rebased, ref.bracketed))
        cursor = ref.end
    pieces.append(text[cursor:])
    return "".join(pieces)


def render_exclusion_report(records: Iterable[AssetRecord]) -> str | None:
    """Render the markdown listing of assets left out of the bundle."""
    groups: dict[ExclusionReason, list[AssetRecord]] = {reason: [] for reason in ExclusionReason}
    for record in records:
        if record.excluded_reason is not None:
            groups[record.excluded_reason].append(record)
    if not any(groups.values()):
        return None

    lines = [
        "# Assets Not Included in Export",
        "",
        "The following assets were not included in this export:",
        "",
    ]
    headings = {
        ExclusionReason.MISSING: "Missing Files",
        ExclusionReason.TOO_LARGE: "Files Too Large",
        ExclusionReason.EXCLUDED_TYPE: "Excluded by Type",
    }
    for reason, heading in headings.items():
        entries = groups[reason]
        if not entries:
            continue
        lines.extend([f"## {heading}", ""])
        for record in entries:
            name = posixpath.basename(split_target(record.original_reference)[0])
            link = f"[{name}]({_format_target(record.original_reference, False)})"
            if reason is ExclusionReason.MISSING:
                detail = "File not found"
            elif reason is ExclusionReason.TOO_LARGE:
                detail = f"{round(record.size / (1024 * 1024), 2)} MB"
            else:
                detail = record.kind.value
            lines.append(f"- {link} - {detail}")
        lines.append("")
    return "\n".join(lines)


class AssetCollector:
    """Discover binary references and decide how each one is bundled.

    Processing never touches the output tree: copied assets are returned as
    records carrying their output path, and the pipeline stages the files.
    """

    def __init__(
        self,
        *,
        registry: OutputRegistry | None = None,
        asset_kinds: Iterable[AssetKind] = tuple(AssetKind),
        size_limit: int | None = DEFAULT_SIZE_LIMIT,
        embed_limit: int = EMBED_LIMIT,
        emitter: DiagnosticEmitter | None = None,
        on_decode_error: DecodeErrorCallback | None = None,
    ) -> None:
        self.registry = registry if registry is not None else OutputRegistry()
        self.asset_kinds = frozenset(asset_kinds)
        self.size_limit = size_limit
        self.embed_limit = embed_limit
        self.emitter = ensure_emitter(emitter)
        self.on_decode_error = on_decode_error
        self.issues: list[Issue] = []
        self._hashes: dict[str, str] = {}

    def _hash(self, path: Path, size: int) -> str:
        key = path_key(path)
        cached = self._hashes.get(key)
        if cached is None:
            cached = content_hash(path, size)
            self._hashes[key] = cached
        return cached

    def collect(self, text: str, base_dir: Path) -> list[AssetRecord]:
        """Return one record per distinct local reference found in ``text``."""
        records: list[AssetRecord] = []
        seen: set[str] = set()
        for ref in _iter_references(text):
            if ref.target in seen or not is_local_reference(ref.target):
                continue
            seen.add(ref.target)
            path_part, _ = split_target(ref.target)
            absolute = resolve(base_dir, path_part, on_error=self.on_decode_error)
            if absolute.is_dir():
                continue
            exists = absolute.is_file()
            size = absolute.stat().st_size if exists else 0
            records.append(
                AssetRecord(
                    original_reference=ref.target,
                    absolute_path=absolute,
                    kind=classify(absolute),
                    exists=exists,
                    size=size,
                    content_hash=self._hash(absolute, size) if exists else None,
                )
            )
        return records

    def _exclude(self, record: AssetRecord, reason: ExclusionReason, message: str) -> AssetRecord:
        logger.debug("Excluding asset: %s", message)
        self.emitter.warning(message)
        self.issues.append(
            Issue(
                code="AssetExcluded",
                message=message,
                severity=Severity.WARNING,
                reference=record.original_reference,
                source=record.absolute_path,
            )
        )
        return record.evolve(excluded_reason=reason)

    def _missing(self, record: AssetRecord, strategy: AssetStrategy) -> AssetRecord:
        exc = AssetMissingError(
            f"Asset '{record.original_reference}' not found at {record.absolute_path}",
            reference=record.original_reference,
            path=record.absolute_path,
        )
        logger.debug("%s", exc)
        self.emitter.warning(str(exc), exc)
        self.issues.append(Issue.from_exception(exc, Severity.WARNING, source=record.absolute_path))
        return record.evolve(strategy=strategy, excluded_reason=ExclusionReason.MISSING)

    def _copy(self, record: AssetRecord, output_dir: str) -> AssetRecord:
        name = record.absolute_path.name
        preferred = posixpath.join(output_dir, name) if output_dir else name
        digest = record.content_hash or self._hash(record.absolute_path, record.size)
        relative, reused = self.registry.claim(digest, preferred)
        record_event(
            self.emitter,
            "asset_copied",
            {"source": str(record.absolute_path), "output": relative, "reused": reused},
        )
        return record.evolve(
            strategy=AssetStrategy.COPY,
            output_relative_path=relative,
            rewritten_reference=relative,
        )

    def process(
        self,
        records: Iterable[AssetRecord],
        strategy: AssetStrategy,
        output_dir: str = "",
    ) -> list[AssetRecord]:
        """Apply ``strategy`` to ``records`` and return the updated records.

        ``output_dir`` is the media directory relative to the output root.
        """
        processed: list[AssetRecord] = []
        for record in records:
            if strategy is AssetStrategy.IGNORE:
                processed.append(record.evolve(strategy=strategy))
                continue
            if not record.exists:
                processed.append(self._missing(record, strategy))
                continue
            if strategy is AssetStrategy.REFERENCE:
                processed.append(record.evolve(strategy=strategy))
                continue
            if record.kind not in self.asset_kinds:
                processed.append(
                    self._exclude(
                        record,
                        ExclusionReason.EXCLUDED_TYPE,
                        f"Asset '{record.original_reference}' excluded by type "
                        f"({record.kind.value})",
                    )
                )
                continue
            if self.size_limit is not None and record.size > self.size_limit:
                processed.append(
                    self._exclude(
                        record,
                        ExclusionReason.TOO_LARGE,
                        f"Asset '{record.original_reference}' exceeds the size limit "
                        f"({record.size} > {self.size_limit} bytes)",
                    )
                )
                continue
            if strategy is AssetStrategy.EMBED and record.size <= self.embed_limit:
                uri = data_uri(record.absolute_path)
                record_event(
                    self.emitter,
                    "asset_embedded",
                    {"source": str(record.absolute_path), "size": record.size},
                )
                processed.append(
                    record.evolve(strategy=AssetStrategy.EMBED, rewritten_reference=uri)
                )
                continue
            processed.append(self._copy(record, output_dir))
        return processed


__all__ = [
    "NOT_INCLUDED_REPORT",
    "AssetCollector",
    "classify",
    "content_hash",
    "data_uri",
    "is_local_reference",
    "rebase_references",
    "render_exclusion_report",
    "rewrite",
    "split_target",
]

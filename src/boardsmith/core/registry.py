"""Content-hash registry deciding the output path of every emitted file."""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
import posixpath


def hash_text(text: str) -> str:
    """Return the SHA-256 digest of UTF-8 encoded text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def numbered_candidate(relative_path: str, index: int) -> str:
    """Return ``name-<index>.ext`` for ``name.ext`` within the same directory."""
    directory, filename = posixpath.split(relative_path)
    stem, suffix = posixpath.splitext(filename)
    if not stem:
        stem, suffix = filename, ""
    candidate = f"{stem}-{index}{suffix}"
    return posixpath.join(directory, candidate) if directory else candidate


@dataclass(slots=True)
class OutputRegistry:
    """Single dedup map shared by satellites and assets during one operation.

    Identical content is mapped to the first path claimed for it; different
    content competing for the same path receives a numeric suffix.
    """

    paths_by_hash: dict[str, str] = field(default_factory=dict)
    taken: set[str] = field(default_factory=set)

    def reserve(self, relative_path: str) -> None:
        """Mark a path as used without binding it to any content."""
        self.taken.add(relative_path.lower())

    def claim(self, content_hash: str, preferred: str) -> tuple[str, bool]:
        """Return the output path for content and whether it was already claimed."""
        existing = self.paths_by_hash.get(content_hash)
        if existing is not None:
            return existing, True

        candidate = preferred
        index = 0
        while candidate.lower() in self.taken:
            index += 1
            candidate = numbered_candidate(preferred, index)

        self.taken.add(candidate.lower())
        self.paths_by_hash[content_hash] = candidate
        return candidate, False


__all__ = ["OutputRegistry", "hash_text", "numbered_candidate"]

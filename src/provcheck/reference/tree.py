"""Read-only reference tree resolvers."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Protocol

from provcheck.errors import ReferenceFileUnreadable, ReferenceTreeUnavailable


class ReferenceResolver(Protocol):
    """Capability the engine needs from a reference tree."""

    def resolve(self, path: str) -> str | None:
        """Return the content stored at a logical path, or None when absent.

        Raises:
            ReferenceFileUnreadable: If the path exists but cannot be read
        """
        ...


def _safe_parts(path: str) -> tuple[str, ...] | None:
    """Split a logical bundle path, refusing absolute paths and parent references."""
    normalized = path.replace("\\", "/")
    pure = PurePosixPath(normalized)
    if pure.is_absolute() or not pure.parts:
        return None
    if any(part == ".." for part in pure.parts):
        return None
    return tuple(part for part in pure.parts if part != ".")


class DirectoryReferenceTree:
    """Reference tree materialized on disk, addressed by repository-relative paths."""

    def __init__(self, root: Path) -> None:
        resolved = root.expanduser().resolve()
        if not resolved.exists():
            raise ReferenceTreeUnavailable(f"Reference tree does not exist: {resolved}")
        if not resolved.is_dir():
            raise ReferenceTreeUnavailable(f"Reference tree is not a directory: {resolved}")
        try:
            next(resolved.iterdir(), None)
        except OSError as exc:
            raise ReferenceTreeUnavailable(f"Reference tree is not readable: {resolved}: {exc}") from exc
        self.root = resolved

    def resolve(self, path: str) -> str | None:
        parts = _safe_parts(path)
        if parts is None:
            return None
        candidate = self.root.joinpath(*parts).resolve()
        if not candidate.is_relative_to(self.root) or not candidate.is_file():
            return None
        try:
            return candidate.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise ReferenceFileUnreadable(path, str(exc)) from exc

    def __repr__(self) -> str:
        return f"DirectoryReferenceTree({str(self.root)!r})"


class MappingReferenceTree:
    """In-memory reference tree."""

    def __init__(self, files: Mapping[str, str]) -> None:
        self._files = MappingProxyType(dict(files))

    def resolve(self, path: str) -> str | None:
        return self._files.get(path)

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from navdoc.errors import InvalidPathError


def _normalize_rel(path: str) -> str:
    """Normalize a user path to a clean, POSIX-like relative form."""
    cleaned = (path or "").strip().replace("\\", "/")
    cleaned = re.sub(r"/+", "/", cleaned).lstrip("/")
    parts = [part for part in cleaned.split("/") if part not in ("", ".")]
    return "/".join(parts)


class PathResolver:
    """Validates document paths against allowed directories and extensions."""

    def __init__(self, root: Path, allowed_dirs: Iterable[str], allowed_extensions: Iterable[str]) -> None:
        self.root = root
        self.allowed_dirs = tuple(allowed_dirs)
        self.allowed_extensions = tuple(ext.lower() for ext in allowed_extensions)

    def _clean(self, raw: str) -> str:
        if not isinstance(raw, str):
            raise InvalidPathError("Path must be a string.")
        if ".." in raw:
            raise InvalidPathError(f"Invalid path: {raw!r} must not contain '..'.")
        cleaned = _normalize_rel(raw)
        if not cleaned:
            raise InvalidPathError("Path is required.")
        return cleaned

    def _in_allowed_dir(self, cleaned: str) -> bool:
        candidate = f"{cleaned}/"
        return any(candidate.startswith(prefix) for prefix in self.allowed_dirs)

    def resolve(self, raw: str) -> str:
        cleaned = self._clean(raw)
        if not self._in_allowed_dir(cleaned):
            raise InvalidPathError("Invalid directory. Document must be in an allowed directory.")
        if Path(cleaned).suffix.lower() not in self.allowed_extensions:
            allowed = ", ".join(self.allowed_extensions)
            raise InvalidPathError(f"Invalid file type. Allowed types: {allowed}")
        return cleaned

    def resolve_dir(self, raw: str) -> str:
        cleaned = self._clean(raw)
        if not self._in_allowed_dir(cleaned):
            raise InvalidPathError(f"Invalid directory path: {cleaned}")
        return cleaned

    def absolute(self, cleaned: str) -> Path:
        path = (self.root / cleaned).resolve()
        root = self.root.resolve()
        if root not in path.parents and path != root:
            raise InvalidPathError("Path escapes content root.")
        return path

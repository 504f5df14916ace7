"""
Read-only in-memory view of a repository snapshot.
"""

import posixpath
from collections.abc import Iterable, Iterator, Mapping
from typing import Optional


def normalize_path(path: str) -> str:
    """Normalize a repository path: forward slashes, no ./ or edge slashes, ".." collapsed.

    A path that climbs above the root keeps its leading ".." segments.
    """
    path = posixpath.normpath(path.replace("\\", "/")).lstrip("/")
    return "" if path == "." else path


def is_outside_root(path: str) -> bool:
    """True if a normalized path climbs above the tree root."""
    return path == ".." or path.startswith("../")


def join_path(base: Optional[str], path: str) -> str:
    """Join a plugin-relative path onto a base directory ("" or None = root)."""
    return normalize_path(f"{base}/{path}" if base else path)


class VirtualFileTree(Mapping[str, bytes]):
    """Ordered mapping of repository-relative path to file bytes.

    Iteration follows insertion order, which is the archive order of the
    snapshot the tree was built from.
    """

    def __init__(self, entries: Iterable[tuple[str, bytes]] = ()):
        self._files: dict[str, bytes] = {}
        for path, data in entries:
            self._files[normalize_path(path)] = bytes(data)

    def __getitem__(self, path: str) -> bytes:
        return self._files[normalize_path(path)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and normalize_path(path) in self._files

    def __repr__(self) -> str:
        return f"VirtualFileTree({len(self._files)} files)"

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self[path].decode(encoding)

    def is_dir(self, prefix: str) -> bool:
        """True if any file lives under ``prefix/``."""
        prefix = normalize_path(prefix)
        if not prefix:
            return bool(self._files)
        return any(p.startswith(prefix + "/") for p in self._files)

    def files_under(self, prefix: Optional[str]) -> list[str]:
        """All paths under a directory, in tree order."""
        prefix = normalize_path(prefix or "")
        if not prefix:
            return list(self._files)
        return [p for p in self._files if p.startswith(prefix + "/")]

    def subtree(self, prefix: str) -> "VirtualFileTree":
        """Entries under ``prefix/``, re-rooted so the prefix is stripped."""
        prefix = normalize_path(prefix)
        if not prefix:
            return self
        cut = len(prefix) + 1
        return VirtualFileTree((p[cut:], self._files[p]) for p in self.files_under(prefix))

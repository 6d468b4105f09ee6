"""In-memory file system backend.

Used for dry runs and tests.  Files live in a flat ``path -> entry`` map;
directories are tracked separately so empty directories exist too.  Paths
are normalised to relative POSIX form, so ``/lib/a.dart`` and
``lib/a.dart`` name the same file.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from flutter_pwa_builder.filesystem.base import FileInfo, FileSystem
from flutter_pwa_builder.utils import glob_match


@dataclass
class MemoryFile:
    content: str
    modified_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _key(path: str) -> str:
    cleaned = path.replace("\\", "/").strip().strip("/")
    if not cleaned:
        return ""
    normalized = posixpath.normpath(cleaned)
    if normalized == ".":
        return ""
    if normalized == ".." or normalized.startswith("../"):
        raise ValueError(f"Path escapes the file system root: {path}")
    return normalized


def _parents(key: str) -> list[str]:
    parents = []
    parent = posixpath.dirname(key)
    while parent:
        parents.append(parent)
        parent = posixpath.dirname(parent)
    return parents


def _is_under(key: str, directory: str) -> bool:
    return not directory or key.startswith(directory + "/")


class MemoryFileSystem(FileSystem):
    def __init__(self) -> None:
        self.files: dict[str, MemoryFile] = {}
        self.dirs: set[str] = set()

    def snapshot(self) -> dict[str, str]:
        """Return a plain ``path -> content`` copy of every file."""
        return {path: entry.content for path, entry in sorted(self.files.items())}

    def _is_dir(self, key: str) -> bool:
        return key == "" or key in self.dirs

    # -- Files -------------------------------------------------------------

    async def read(self, path: str) -> str:
        key = _key(path)
        if self._is_dir(key):
            raise IsADirectoryError(path)
        entry = self.files.get(key)
        if entry is None:
            raise FileNotFoundError(path)
        return entry.content

    async def write(self, path: str, content: str) -> None:
        key = _key(path)
        if self._is_dir(key):
            raise IsADirectoryError(path)
        for parent in _parents(key):
            if parent in self.files:
                raise NotADirectoryError(parent)
        self.dirs.update(_parents(key))
        self.files[key] = MemoryFile(content)

    async def exists(self, path: str) -> bool:
        key = _key(path)
        return self._is_dir(key) or key in self.files

    async def delete(self, path: str) -> None:
        key = _key(path)
        if key in self.files:
            del self.files[key]
        elif self._is_dir(key):
            await self.rmdir(path, recursive=True)
        else:
            raise FileNotFoundError(path)

    async def stat(self, path: str) -> FileInfo:
        key = _key(path)
        name = posixpath.basename(key)
        if self._is_dir(key):
            return FileInfo(
                path=key,
                name=name,
                is_directory=True,
                size=0,
                modified_at=datetime.now(timezone.utc),
            )
        entry = self.files.get(key)
        if entry is None:
            raise FileNotFoundError(path)
        return FileInfo(
            path=key,
            name=name,
            is_directory=False,
            size=len(entry.content.encode("utf-8")),
            modified_at=entry.modified_at,
        )

    async def copy(self, src: str, dest: str) -> None:
        source, target = _key(src), _key(dest)
        if source in self.files:
            await self.write(target, self.files[source].content)
            return
        if not self._is_dir(source):
            raise FileNotFoundError(src)
        await self.mkdir(target)
        for directory in [d for d in self.dirs if _is_under(d, source)]:
            self.dirs.add(_rebase(directory, source, target))
        for path, entry in list(self.files.items()):
            if _is_under(path, source):
                await self.write(_rebase(path, source, target), entry.content)

    async def move(self, src: str, dest: str) -> None:
        await self.copy(src, dest)
        await self.delete(src)

    # -- Directories -------------------------------------------------------

    async def mkdir(self, path: str, recursive: bool = True) -> None:
        key = _key(path)
        if not key:
            return
        if key in self.files:
            raise FileExistsError(path)
        parents = _parents(key)
        for parent in parents:
            if parent in self.files:
                raise NotADirectoryError(parent)
        if not recursive and parents and parents[0] not in self.dirs:
            raise FileNotFoundError(parents[0])
        self.dirs.update(parents)
        self.dirs.add(key)

    async def rmdir(self, path: str, recursive: bool = False) -> None:
        key = _key(path)
        if not key:
            raise OSError("Cannot remove the root directory")
        if key not in self.dirs:
            raise FileNotFoundError(path)
        children_files = [p for p in self.files if _is_under(p, key)]
        children_dirs = [d for d in self.dirs if _is_under(d, key)]
        if (children_files or children_dirs) and not recursive:
            raise OSError(f"Directory not empty: {path}")
        for child in children_files:
            del self.files[child]
        self.dirs.difference_update(children_dirs)
        self.dirs.discard(key)

    async def list(self, path: str, pattern: Optional[str] = None) -> list[str]:
        key = _key(path)
        if not self._is_dir(key):
            raise NotADirectoryError(path)
        entries = [p for p in (*self.files, *self.dirs) if _is_under(p, key)]
        if pattern is None:
            depth = key.count("/") + 1 if key else 0
            return sorted(p for p in entries if p.count("/") == depth)
        prefix = len(key) + 1 if key else 0
        return sorted(p for p in entries if glob_match(pattern, p[prefix:]))


def _rebase(path: str, source: str, target: str) -> str:
    relative = path[len(source) :].lstrip("/") if source else path
    return posixpath.join(target, relative) if target else relative

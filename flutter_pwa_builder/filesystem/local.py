"""Local-disk file system backend.

Blocking disk I/O runs in worker threads via :func:`asyncio.to_thread` so
the event loop is never blocked.  Relative paths resolve against
``base_path``; absolute paths are used as given.
"""

from __future__ import annotations

import asyncio
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from flutter_pwa_builder.filesystem.base import FileInfo, FileSystem
from flutter_pwa_builder.utils import glob_match


class LocalFileSystem(FileSystem):
    def __init__(self, base_path: str | Path | None = None) -> None:
        self.base_path = Path(base_path) if base_path is not None else Path.cwd()

    def resolve(self, path: str | Path) -> Path:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.base_path / candidate

    # -- Files -------------------------------------------------------------

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(self.resolve(path).read_text, encoding="utf-8")

    async def write(self, path: str, content: str) -> None:
        await asyncio.to_thread(_write_file, self.resolve(path), content)

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).exists)

    async def delete(self, path: str) -> None:
        await asyncio.to_thread(_remove, self.resolve(path))

    async def stat(self, path: str) -> FileInfo:
        resolved = self.resolve(path)
        result = await asyncio.to_thread(resolved.stat)
        return FileInfo(
            path=str(resolved),
            name=resolved.name,
            is_directory=resolved.is_dir(),
            size=result.st_size,
            modified_at=datetime.fromtimestamp(result.st_mtime, tz=timezone.utc),
        )

    async def copy(self, src: str, dest: str) -> None:
        await asyncio.to_thread(_copy, self.resolve(src), self.resolve(dest))

    async def move(self, src: str, dest: str) -> None:
        destination = self.resolve(dest)
        await asyncio.to_thread(destination.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.move, str(self.resolve(src)), str(destination))

    # -- Directories -------------------------------------------------------

    async def mkdir(self, path: str, recursive: bool = True) -> None:
        await asyncio.to_thread(self.resolve(path).mkdir, parents=recursive, exist_ok=True)

    async def rmdir(self, path: str, recursive: bool = False) -> None:
        resolved = self.resolve(path)
        if recursive:
            await asyncio.to_thread(shutil.rmtree, resolved)
        else:
            await asyncio.to_thread(resolved.rmdir)

    async def list(self, path: str, pattern: Optional[str] = None) -> list[str]:
        return await asyncio.to_thread(_list_dir, self.resolve(path), pattern)


# ---------------------------------------------------------------------------
# Blocking helpers (run in threads)
# ---------------------------------------------------------------------------


def _write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _remove(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path)
    else:
        path.unlink()


def _copy(src: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    if src.is_dir():
        shutil.copytree(src, dest, dirs_exist_ok=True)
    else:
        shutil.copy2(src, dest)


def _list_dir(root: Path, pattern: Optional[str]) -> list[str]:
    if pattern is None:
        return sorted(str(child) for child in root.iterdir())
    matches = []
    for child in sorted(root.rglob("*")):
        relative = child.relative_to(root).as_posix()
        if glob_match(pattern, relative):
            matches.append(str(child))
    return matches

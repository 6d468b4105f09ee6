"""Abstract file system and transactions.

Every backend implements the asynchronous :class:`FileSystem` interface.
Batches of writes and deletes go through a :class:`Transaction`: operations
are staged in memory and applied on :meth:`Transaction.commit`, which either
applies all of them or restores every touched path to its prior state.
"""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flutter_pwa_builder.errors import TransactionError


@dataclass(frozen=True)
class FileInfo:
    path: str
    name: str
    is_directory: bool
    size: int
    modified_at: datetime


@dataclass(frozen=True)
class FileOperation:
    kind: str  # "write" or "delete"
    path: str
    content: Optional[str] = None


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


class Transaction(ABC):
    """A scoped batch of writes and deletes, applied all-or-nothing."""

    @abstractmethod
    def write(self, path: str, content: str) -> None:
        """Stage a write of *content* to *path*."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Stage the removal of *path*."""

    @abstractmethod
    async def commit(self) -> None:
        """Apply every staged operation, or none of them."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard every staged operation."""


class StagedTransaction(Transaction):
    """Transaction that applies its operations through a :class:`FileSystem`.

    On commit the prior content of every touched path is backed up first.
    If any operation fails, backed-up files are restored, files that did not
    exist are removed again, and directories created by the commit are
    removed when they are left empty.  The failure is then raised as a
    :class:`TransactionError`.
    """

    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"

    def __init__(self, file_system: "FileSystem") -> None:
        self._fs = file_system
        self._operations: list[FileOperation] = []
        self.state = self.OPEN

    @property
    def operations(self) -> tuple[FileOperation, ...]:
        return tuple(self._operations)

    def _ensure_open(self) -> None:
        if self.state != self.OPEN:
            raise TransactionError(f"Transaction already {self.state.replace('_', ' ')}")

    def write(self, path: str, content: str) -> None:
        self._ensure_open()
        self._operations.append(FileOperation("write", path, content))

    def delete(self, path: str) -> None:
        self._ensure_open()
        self._operations.append(FileOperation("delete", path))

    def rollback(self) -> None:
        if self.state == self.COMMITTED:
            raise TransactionError("Cannot roll back a committed transaction")
        self._operations.clear()
        self.state = self.ROLLED_BACK

    async def commit(self) -> None:
        self._ensure_open()

        backups: dict[str, Optional[str]] = {}
        try:
            for op in self._operations:
                if op.path in backups:
                    continue
                if await self._fs.exists(op.path):
                    backups[op.path] = await self._fs.read(op.path)
                else:
                    backups[op.path] = None
            created_dirs = await self._missing_parents(
                op.path for op in self._operations if op.kind == "write"
            )
        except OSError as exc:
            self.state = self.ROLLED_BACK
            raise TransactionError(f"Cannot back up {op.path}: {exc}", path=op.path) from exc

        current: Optional[str] = None
        try:
            for op in self._operations:
                current = op.path
                if op.kind == "write":
                    await self._fs.write(op.path, op.content or "")
                elif await self._fs.exists(op.path):
                    await self._fs.delete(op.path)
        except Exception as exc:
            await self._restore(backups, created_dirs)
            self.state = self.ROLLED_BACK
            raise TransactionError(
                f"Commit failed at {current}: {exc}", path=current
            ) from exc

        self.state = self.COMMITTED

    async def _missing_parents(self, paths: Iterable[str]) -> list[str]:
        missing: list[str] = []
        seen: set[str] = set()
        for path in paths:
            parent = posixpath.dirname(path.replace("\\", "/"))
            while parent and parent not in seen and parent != "/":
                seen.add(parent)
                if await self._fs.exists(parent):
                    break
                missing.append(parent)
                parent = posixpath.dirname(parent)
        # Deepest first so children are removed before their parents.
        return sorted(missing, key=lambda d: d.count("/"), reverse=True)

    async def _restore(self, backups: dict[str, Optional[str]], created_dirs: list[str]) -> None:
        for path, content in backups.items():
            if content is None:
                if await self._fs.exists(path):
                    await self._fs.delete(path)
            else:
                await self._fs.write(path, content)
        for directory in created_dirs:
            if await self._fs.exists(directory) and not await self._fs.list(directory):
                await self._fs.rmdir(directory)


# ---------------------------------------------------------------------------
# FileSystem
# ---------------------------------------------------------------------------


class FileSystem(ABC):
    """Asynchronous file system interface shared by all backends.

    Reads of missing paths raise :class:`FileNotFoundError`; the built-in
    ``OSError`` family is used for every other failure so both backends
    behave alike.
    """

    @abstractmethod
    async def read(self, path: str) -> str: ...

    @abstractmethod
    async def write(self, path: str, content: str) -> None:
        """Write *content*, creating parent directories as needed."""

    @abstractmethod
    async def exists(self, path: str) -> bool: ...

    @abstractmethod
    async def mkdir(self, path: str, recursive: bool = True) -> None: ...

    @abstractmethod
    async def rmdir(self, path: str, recursive: bool = False) -> None: ...

    @abstractmethod
    async def delete(self, path: str) -> None: ...

    @abstractmethod
    async def list(self, path: str, pattern: Optional[str] = None) -> list[str]:
        """List the entries of directory *path*.

        Without *pattern* the direct children are returned; with a glob
        *pattern* (``*`` stays within a segment, ``**`` crosses them) every
        matching descendant is returned.
        """

    @abstractmethod
    async def stat(self, path: str) -> FileInfo: ...

    @abstractmethod
    async def copy(self, src: str, dest: str) -> None: ...

    @abstractmethod
    async def move(self, src: str, dest: str) -> None: ...

    def begin_transaction(self) -> Transaction:
        return StagedTransaction(self)

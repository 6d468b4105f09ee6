"""File system abstraction with local-disk and in-memory backends."""

from flutter_pwa_builder.filesystem.base import (
    FileInfo,
    FileOperation,
    FileSystem,
    StagedTransaction,
    Transaction,
)
from flutter_pwa_builder.filesystem.local import LocalFileSystem
from flutter_pwa_builder.filesystem.memory import MemoryFileSystem

__all__ = [
    "FileInfo",
    "FileOperation",
    "FileSystem",
    "LocalFileSystem",
    "MemoryFileSystem",
    "StagedTransaction",
    "Transaction",
]

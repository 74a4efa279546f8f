"""Shared fixtures: an in-memory file store for engine and coordinator tests."""

from __future__ import annotations

import threading
from typing import Dict, List, Set, Tuple

import pytest

from vaultindexer.errors import NotFoundError, StorageError
from vaultindexer.models import ConversionConfig, FileRecord


class MemoryStore:
    """Dict-backed FileStore with explicit modification times."""

    def __init__(self) -> None:
        self.files: Dict[str, Tuple[str, float]] = {}
        self.folders: Set[str] = set()
        self.deleted: List[str] = []
        self.written: List[str] = []
        self.fail_delete: Set[str] = set()
        self.fail_write: Set[str] = set()
        self.clock = 1000.0
        self._lock = threading.Lock()

    def add(self, path: str, text: str = "", mtime: float = 0.0) -> None:
        self.files[path] = (text, mtime)

    def list_files(self) -> List[FileRecord]:
        return [
            FileRecord(path=path, name=path.rsplit("/", 1)[-1], mtime=mtime, size=len(text))
            for path, (text, mtime) in self.files.items()
        ]

    def create_folder(self, path: str) -> None:
        self.folders.add(path)

    def read(self, path: str) -> str:
        if path not in self.files:
            raise NotFoundError(path)
        return self.files[path][0]

    def read_binary(self, path: str) -> bytes:
        return self.read(path).encode("utf-8")

    def create(self, path: str, text: str) -> None:
        if path in self.files:
            raise StorageError(f"File already exists: {path}")
        self.create_or_update(path, text)

    def create_or_update(self, path: str, text: str) -> None:
        if path in self.fail_write:
            raise StorageError(f"Unable to write {path}")
        with self._lock:
            self.clock += 1
            self.files[path] = (text, self.clock)
            self.written.append(path)

    def delete(self, path: str) -> None:
        if path in self.fail_delete:
            raise StorageError(f"Unable to delete {path}")
        if path not in self.files:
            raise NotFoundError(path)
        with self._lock:
            del self.files[path]
            self.deleted.append(path)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def png_config() -> ConversionConfig:
    return ConversionConfig(index_folder="index", source_extension=".png", target_extension=".png.md")

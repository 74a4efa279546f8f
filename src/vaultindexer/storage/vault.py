"""Filesystem-backed vault storage."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Iterator, List

from vaultindexer.errors import NotFoundError, StorageError
from vaultindexer.models import FileRecord

LOGGER = logging.getLogger(__name__)


def iter_vault_files(root: Path) -> Iterator[Path]:
    """Yield regular files under ``root``, skipping hidden files and directories."""
    for item in sorted(root.rglob("*")):
        relative = item.relative_to(root)
        if any(part.startswith(".") for part in relative.parts):
            continue
        if item.is_file():
            yield item


class VaultStore:
    """File store rooted at a vault directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root).expanduser().resolve()

    def _resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts:
            raise StorageError(f"Path escapes the vault: {path}")
        return self.root.joinpath(*relative.parts)

    def _record(self, item: Path) -> FileRecord:
        stat = item.stat()
        return FileRecord(
            path=item.relative_to(self.root).as_posix(),
            name=item.name,
            mtime=stat.st_mtime,
            size=stat.st_size,
        )

    def list_files(self) -> List[FileRecord]:
        if not self.root.is_dir():
            raise StorageError(f"Vault not found: {self.root}")
        records = [self._record(item) for item in iter_vault_files(self.root)]
        LOGGER.debug("Listed %d files under %s", len(records), self.root)
        return records

    def create_folder(self, path: str) -> None:
        target = self._resolve(path)
        if target.is_dir():
            LOGGER.debug("Folder already exists: %s", path)
            return
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Unable to create folder {path}: {exc}") from exc
        LOGGER.info("Created folder %s", path)

    def _existing_file(self, path: str) -> Path:
        target = self._resolve(path)
        if not target.is_file():
            raise NotFoundError(path)
        return target

    def read(self, path: str) -> str:
        return self._existing_file(path).read_text(encoding="utf-8")

    def read_binary(self, path: str) -> bytes:
        return self._existing_file(path).read_bytes()

    def create(self, path: str, text: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("x", encoding="utf-8") as handle:
                handle.write(text)
        except FileExistsError as exc:
            raise StorageError(f"File already exists: {path}") from exc
        except OSError as exc:
            raise StorageError(f"Unable to create {path}: {exc}") from exc

    def create_or_update(self, path: str, text: str) -> None:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Unable to write {path}: {exc}") from exc

    def delete(self, path: str) -> None:
        target = self._resolve(path)
        if not target.exists():
            raise NotFoundError(path)
        try:
            target.unlink()
        except OSError as exc:
            raise StorageError(f"Unable to delete {path}: {exc}") from exc

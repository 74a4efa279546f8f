"""Storage contract consumed by the reconciliation engine."""

from __future__ import annotations

from typing import List, Protocol

from vaultindexer.models import FileRecord


class FileStore(Protocol):
    """Hierarchical file namespace addressed by vault-relative POSIX paths.

    ``read``, ``read_binary`` and ``delete`` raise ``NotFoundError`` when the
    path is missing; write failures raise ``StorageError``.
    """

    def list_files(self) -> List[FileRecord]: ...

    def create_folder(self, path: str) -> None: ...

    def read(self, path: str) -> str: ...

    def read_binary(self, path: str) -> bytes: ...

    def create(self, path: str, text: str) -> None: ...

    def create_or_update(self, path: str, text: str) -> None: ...

    def delete(self, path: str) -> None: ...

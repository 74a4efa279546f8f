"""
VaultIndexer exceptions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from vaultindexer.models import RunOutcome


class VaultIndexerError(RuntimeError):
    """Base class for VaultIndexer errors."""


class NotFoundError(VaultIndexerError):
    """Raised when a storage path is missing or is not a plain file."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File not found: {path}")


class StorageError(VaultIndexerError):
    """Raised when a create, write or delete operation fails."""


class ExtractionError(VaultIndexerError):
    """Base class for content extraction failures."""

    def __init__(
        self,
        detail: str,
        *,
        path: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.path = path
        self.status_code = status_code
        status_hint = f" (status={status_code})" if status_code is not None else ""
        path_hint = f" [{path}]" if path else ""
        super().__init__(f"{detail}{status_hint}{path_hint}")


class RecoverableExtractionError(ExtractionError):
    """Extraction failed for a single attachment; it is retried on the next run."""


class FatalExtractionError(ExtractionError):
    """Extraction cannot continue at all; the whole run must stop."""

    outcome: Optional["RunOutcome"] = None

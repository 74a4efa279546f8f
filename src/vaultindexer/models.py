"""Core VaultIndexer data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath

INDEX_SUFFIX = ".md"


def normalize_index_folder(folder: str) -> str:
    """Return ``folder`` as a clean vault-relative path such as ``index`` or ``notes/index``.

    Raises ``ValueError`` for folders that do not name a sub-folder of the vault.
    """
    normalized = PurePosixPath(folder.strip().replace("\\", "/")).as_posix().strip("/")
    parts = PurePosixPath(normalized).parts
    if not parts or normalized == "." or ".." in parts:
        raise ValueError(f"index folder {folder!r} must name a folder inside the vault")
    return normalized


@dataclass(slots=True)
class FileRecord:
    """A file observed in the vault, either a source attachment or an index document."""

    path: str
    name: str
    mtime: float
    size: int

    @property
    def size_mb(self) -> float:
        return self.size / (1024 * 1024)


@dataclass(frozen=True, slots=True)
class ConversionConfig:
    """Naming rules for one attachment type."""

    index_folder: str
    source_extension: str
    target_extension: str

    def __post_init__(self) -> None:
        if self.target_extension != self.source_extension + INDEX_SUFFIX:
            raise ValueError(
                f"target extension {self.target_extension!r} must be "
                f"{self.source_extension!r} followed by {INDEX_SUFFIX!r}"
            )

    @classmethod
    def for_extension(cls, index_folder: str, source_extension: str) -> ConversionConfig:
        return cls(
            index_folder=normalize_index_folder(index_folder),
            source_extension=source_extension,
            target_extension=source_extension + INDEX_SUFFIX,
        )


@dataclass(slots=True)
class RunOutcome:
    """Result of a single reconciliation run for one attachment type.

    ``failed_names`` holds attachment names that could not be indexed and
    ``failed_removal_paths`` the index documents that could not be deleted.
    """

    created_names: list[str] = field(default_factory=list)
    modified_names: list[str] = field(default_factory=list)
    removed_paths: list[str] = field(default_factory=list)
    failed_names: list[str] = field(default_factory=list)
    failed_removal_paths: list[str] = field(default_factory=list)
    source_count: int = 0
    fatal_error: Exception | None = None

    @property
    def created_count(self) -> int:
        return len(self.created_names)

    @property
    def modified_count(self) -> int:
        return len(self.modified_names)

    @property
    def removed_count(self) -> int:
        return len(self.removed_paths)

    @property
    def failed_count(self) -> int:
        return len(self.failed_names) + len(self.failed_removal_paths)

    @property
    def processed_count(self) -> int:
        return self.created_count + self.modified_count + self.removed_count

    @property
    def is_fatal(self) -> bool:
        return self.fatal_error is not None

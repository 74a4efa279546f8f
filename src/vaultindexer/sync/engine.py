"""Reconciliation of index documents against source attachments."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Sequence

from vaultindexer.errors import FatalExtractionError
from vaultindexer.models import ConversionConfig, FileRecord, RunOutcome
from vaultindexer.storage.base import FileStore
from vaultindexer.sync.naming import (
    derivative_path,
    derivative_source_name,
    is_derivative,
    is_source,
)

LOGGER = logging.getLogger(__name__)

ContentProducer = Callable[[FileRecord], str]


@dataclass(slots=True)
class PhaseResult:
    names: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    fatal_error: FatalExtractionError | None = None


class Reconciler:
    """Converges the index documents of one attachment type onto its sources.

    Removal, creation and modification touch disjoint sets of files, so the
    three phases run concurrently. Creation and modification each walk their
    sources sequentially in path order because the content producer usually
    wraps a rate-limited service.
    """

    def __init__(self, store: FileStore) -> None:
        self.store = store

    def synchronize(self, config: ConversionConfig, content_producer: ContentProducer) -> RunOutcome:
        """Run one reconciliation pass.

        Raises ``FatalExtractionError`` (with ``outcome`` attached) after all
        phases have settled when content production hit a fatal failure.
        """
        LOGGER.info(
            "Synchronizing %s files into %s/", config.source_extension, config.index_folder
        )
        self.store.create_folder(config.index_folder)

        all_files = self.store.list_files()
        sources = sorted(
            (record for record in all_files if is_source(record.path, config)),
            key=lambda record: record.path,
        )
        derivatives = [record for record in all_files if is_derivative(record.path, config)]
        LOGGER.info(
            "Found %d %s sources and %d index documents",
            len(sources),
            config.source_extension,
            len(derivatives),
        )
        LOGGER.debug("Source paths: %s", [record.path for record in sources])

        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="reconcile") as pool:
            removal = pool.submit(self.remove_orphans, derivatives, sources, config)
            creation = pool.submit(
                self.create_missing, sources, derivatives, config, content_producer
            )
            modification = pool.submit(
                self.update_stale, sources, derivatives, config, content_producer
            )
            removed = removal.result()
            created = creation.result()
            modified = modification.result()

        outcome = RunOutcome(
            created_names=created.names,
            modified_names=modified.names,
            removed_paths=removed.names,
            failed_names=created.failed + modified.failed,
            failed_removal_paths=removed.failed,
            source_count=len(sources),
            fatal_error=created.fatal_error or modified.fatal_error,
        )
        self._log_outcome(outcome, config)

        if outcome.fatal_error is not None:
            fatal = outcome.fatal_error
            fatal.outcome = outcome
            raise fatal
        return outcome

    def remove_orphans(
        self,
        derivatives: Sequence[FileRecord],
        sources: Sequence[FileRecord],
        config: ConversionConfig,
    ) -> PhaseResult:
        """Delete index documents whose source attachment no longer exists."""
        source_names = {record.name for record in sources}
        result = PhaseResult()
        for derivative in derivatives:
            if derivative_source_name(derivative.name, config) in source_names:
                continue
            try:
                self.store.delete(derivative.path)
            except Exception as exc:
                LOGGER.error("Failed to remove index document %s: %s", derivative.path, exc)
                result.failed.append(derivative.path)
                continue
            LOGGER.info("Removed orphaned index document %s", derivative.path)
            result.names.append(derivative.path)
        return result

    def create_missing(
        self,
        sources: Sequence[FileRecord],
        derivatives: Sequence[FileRecord],
        config: ConversionConfig,
        content_producer: ContentProducer,
    ) -> PhaseResult:
        """Produce index documents for sources that have none."""
        indexed_names = {derivative_source_name(record.name, config) for record in derivatives}
        pending = [source for source in sources if source.name not in indexed_names]
        LOGGER.info("%d new %s files to index", len(pending), config.source_extension)
        return self._convert_all(pending, config, content_producer, action="create")

    def update_stale(
        self,
        sources: Sequence[FileRecord],
        derivatives: Sequence[FileRecord],
        config: ConversionConfig,
        content_producer: ContentProducer,
    ) -> PhaseResult:
        """Regenerate index documents not newer than their source.

        Equal timestamps count as stale so coarse filesystem clocks never hide
        an update.
        """
        by_source_name: dict[str, FileRecord] = {
            derivative_source_name(record.name, config): record for record in derivatives
        }
        stale = [
            source
            for source in sources
            if source.name in by_source_name
            and source.mtime >= by_source_name[source.name].mtime
        ]
        LOGGER.info("%d %s index documents out of date", len(stale), config.source_extension)
        return self._convert_all(stale, config, content_producer, action="update")

    def _convert_all(
        self,
        sources: Sequence[FileRecord],
        config: ConversionConfig,
        content_producer: ContentProducer,
        *,
        action: str,
    ) -> PhaseResult:
        result = PhaseResult()
        for source in sources:
            target = derivative_path(source.name, config)
            try:
                LOGGER.info("Indexing (%s): %s -> %s", action, source.path, target)
                content = content_producer(source)
                self.store.create_or_update(target, content)
            except FatalExtractionError as exc:
                LOGGER.error("Fatal error while indexing %s, stopping: %s", source.path, exc)
                result.fatal_error = exc
                break
            except Exception as exc:
                LOGGER.error("Failed to %s index for %s: %s", action, source.path, exc)
                result.failed.append(source.name)
                continue
            result.names.append(source.name)
        return result

    def _log_outcome(self, outcome: RunOutcome, config: ConversionConfig) -> None:
        lines = [
            f"Indexing {config.source_extension} finished"
            + (" (aborted)" if outcome.is_fatal else ""),
            f"Total files processed {outcome.processed_count}/{outcome.source_count}",
            f"Created files {outcome.created_count}",
        ]
        lines.extend(f"  - {name}" for name in outcome.created_names)
        lines.append(f"Modified files {outcome.modified_count}")
        lines.extend(f"  - {name}" for name in outcome.modified_names)
        lines.append(f"Deleted files {outcome.removed_count}")
        lines.extend(f"  - {path}" for path in outcome.removed_paths)
        if outcome.failed_count:
            lines.append(f"Failed files {outcome.failed_count}")
            lines.extend(f"  - {name}" for name in outcome.failed_names)
            lines.extend(f"  - {path}" for path in outcome.failed_removal_paths)
        LOGGER.info("\n".join(lines))

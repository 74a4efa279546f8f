"""Sequencing of reconciliation runs across attachment types."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Sequence

from vaultindexer.errors import FatalExtractionError
from vaultindexer.models import ConversionConfig, RunOutcome
from vaultindexer.storage.base import FileStore
from vaultindexer.sync.engine import ContentProducer, Reconciler

LOGGER = logging.getLogger(__name__)

SUCCESS_MESSAGE = "All attachments have been processed successfully"
FATAL_MESSAGE = "Processing stopped due to extraction service errors. Please try again later."
PARTIAL_MESSAGE = "An error occurred during processing"
ALREADY_RUNNING_MESSAGE = "Synchronization is already in progress. Please wait."


class RunStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FATAL = "fatal"
    ALREADY_RUNNING = "already_running"


class TypeStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    FATAL = "fatal"
    NOT_ATTEMPTED = "not_attempted"


@dataclass(slots=True)
class AttachmentType:
    """One attachment type to keep indexed.

    ``precondition`` gates the whole type; when it returns False the type is
    skipped without error.
    """

    name: str
    config: ConversionConfig
    content_producer: ContentProducer
    precondition: Callable[[], bool] | None = None
    skip_reason: str = ""


@dataclass(slots=True)
class TypeResult:
    name: str
    status: TypeStatus
    outcome: RunOutcome | None = None
    detail: str = ""


@dataclass(slots=True)
class RunReport:
    status: RunStatus
    results: list[TypeResult] = field(default_factory=list)
    failed_type: str | None = None

    @property
    def message(self) -> str:
        if self.status is RunStatus.SUCCESS:
            return SUCCESS_MESSAGE
        if self.status is RunStatus.FATAL:
            return FATAL_MESSAGE
        if self.status is RunStatus.ALREADY_RUNNING:
            return ALREADY_RUNNING_MESSAGE
        return PARTIAL_MESSAGE


class RunGuard:
    """Single-flight guard: at most one synchronization at a time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self) -> Iterator[bool]:
        """Yield True when the guard was acquired, False if a run is in progress."""
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()


class SyncCoordinator:
    """Runs one reconciliation per attachment type, in priority order."""

    def __init__(
        self,
        store: FileStore,
        attachment_types: Sequence[AttachmentType],
        *,
        guard: RunGuard | None = None,
    ) -> None:
        self.reconciler = Reconciler(store)
        self.attachment_types = list(attachment_types)
        self.guard = guard or RunGuard()
        self.last_report: RunReport | None = None

    @property
    def running(self) -> bool:
        return self.guard.running

    def run(self) -> RunReport:
        with self.guard.hold() as acquired:
            if not acquired:
                LOGGER.info("Synchronization already in progress, request rejected")
                return RunReport(status=RunStatus.ALREADY_RUNNING)

            LOGGER.info("========== Starting synchronization ==========")
            try:
                report = self._run_all()
            finally:
                LOGGER.info("========== Synchronization ended ==========")
            self.last_report = report
            return report

    def _run_all(self) -> RunReport:
        report = RunReport(status=RunStatus.SUCCESS)
        pending = list(self.attachment_types)

        while pending:
            attachment_type = pending.pop(0)
            result = self._run_type(attachment_type)
            report.results.append(result)

            if result.status is TypeStatus.FATAL:
                report.status = RunStatus.FATAL
                report.failed_type = attachment_type.name
                report.results.extend(
                    TypeResult(name=remaining.name, status=TypeStatus.NOT_ATTEMPTED)
                    for remaining in pending
                )
                break
            if result.status is TypeStatus.FAILED:
                report.status = RunStatus.PARTIAL
                report.failed_type = report.failed_type or attachment_type.name
            elif result.outcome is not None and result.outcome.failed_count:
                report.status = RunStatus.PARTIAL

        LOGGER.info("Synchronization finished: %s", report.status.value)
        return report

    def _run_type(self, attachment_type: AttachmentType) -> TypeResult:
        try:
            if attachment_type.precondition is not None and not attachment_type.precondition():
                LOGGER.warning(
                    "Skipping %s files: %s",
                    attachment_type.name,
                    attachment_type.skip_reason or "precondition not met",
                )
                return TypeResult(
                    name=attachment_type.name,
                    status=TypeStatus.SKIPPED,
                    detail=attachment_type.skip_reason,
                )

            LOGGER.info("Running %s converter...", attachment_type.name)
            outcome = self.reconciler.synchronize(
                attachment_type.config, attachment_type.content_producer
            )
        except FatalExtractionError as exc:
            LOGGER.error("Fatal processing error in %s: %s", attachment_type.name, exc)
            return TypeResult(
                name=attachment_type.name,
                status=TypeStatus.FATAL,
                outcome=exc.outcome,
                detail=str(exc),
            )
        except Exception as exc:
            LOGGER.exception("Synchronization of %s failed: %s", attachment_type.name, exc)
            return TypeResult(name=attachment_type.name, status=TypeStatus.FAILED, detail=str(exc))

        return TypeResult(name=attachment_type.name, status=TypeStatus.COMPLETED, outcome=outcome)

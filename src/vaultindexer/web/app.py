"""FastAPI application exposing vault synchronization over HTTP."""

from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from vaultindexer import __version__
from vaultindexer.config import Settings, SettingsStore
from vaultindexer.converters import build_coordinator
from vaultindexer.sync.coordinator import RunReport, RunStatus, SyncCoordinator

LOGGER = logging.getLogger(__name__)


class TypeResultPayload(BaseModel):
    name: str
    status: str
    created: List[str] = []
    modified: List[str] = []
    removed: List[str] = []
    failed: List[str] = []
    failed_removals: List[str] = []
    detail: str = ""


class ReportPayload(BaseModel):
    status: str
    message: str
    failed_type: Optional[str] = None
    results: List[TypeResultPayload] = []


def report_payload(report: RunReport) -> ReportPayload:
    results = []
    for result in report.results:
        outcome = result.outcome
        results.append(
            TypeResultPayload(
                name=result.name,
                status=result.status.value,
                created=list(outcome.created_names) if outcome else [],
                modified=list(outcome.modified_names) if outcome else [],
                removed=list(outcome.removed_paths) if outcome else [],
                failed=list(outcome.failed_names) if outcome else [],
                failed_removals=list(outcome.failed_removal_paths) if outcome else [],
                detail=result.detail,
            )
        )
    return ReportPayload(
        status=report.status.value,
        message=report.message,
        failed_type=report.failed_type,
        results=results,
    )


def _start_background_run(coordinator: SyncCoordinator) -> threading.Thread:
    thread = threading.Thread(target=coordinator.run, name="startup-sync", daemon=True)
    thread.start()
    return thread


def create_app(
    vault: Path,
    *,
    settings: Optional[Settings] = None,
    coordinator: Optional[SyncCoordinator] = None,
) -> FastAPI:
    """Build the HTTP app for one vault."""
    settings = settings or SettingsStore(vault).load()
    coordinator = coordinator or build_coordinator(vault, settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
        if settings.should_run_on_start:
            LOGGER.info("Run on start enabled, starting synchronization")
            _start_background_run(coordinator)
        yield

    app = FastAPI(title="VaultIndexer", version=__version__, lifespan=lifespan)
    app.state.vault = Path(vault)
    app.state.coordinator = coordinator

    @app.post("/sync", response_model=ReportPayload)
    async def run_sync() -> ReportPayload:
        report = await asyncio.to_thread(coordinator.run)
        if report.status is RunStatus.ALREADY_RUNNING:
            raise HTTPException(status_code=409, detail=report.message)
        return report_payload(report)

    @app.get("/status")
    async def status() -> Dict[str, Any]:
        last = coordinator.last_report
        return {
            "running": coordinator.running,
            "last_report": report_payload(last).model_dump() if last else None,
        }

    @app.get("/settings")
    async def read_settings() -> Dict[str, Any]:
        return settings.masked()

    return app

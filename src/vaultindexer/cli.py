"""Command line interface for VaultIndexer."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from vaultindexer.config import SettingsStore
from vaultindexer.converters import build_coordinator
from vaultindexer.errors import StorageError
from vaultindexer.sync.coordinator import RunReport, RunStatus


console = Console()
app = typer.Typer(help="VaultIndexer - searchable markdown indexes for vault attachments")
config_app = typer.Typer(help="Show or change the settings stored in a vault")
app.add_typer(config_app, name="config")

EXIT_CODES = {
    RunStatus.SUCCESS: 0,
    RunStatus.PARTIAL: 1,
    RunStatus.FATAL: 2,
    RunStatus.ALREADY_RUNNING: 3,
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_vault(vault: Path) -> Path:
    if not vault.is_dir():
        raise typer.BadParameter(f"Vault not found: {vault}")
    return vault


def _load_store(vault: Path) -> SettingsStore:
    store = SettingsStore(_ensure_vault(vault))
    try:
        store.load()
    except StorageError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return store


def _print_report(report: RunReport) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Created")
    table.add_column("Modified")
    table.add_column("Removed")
    table.add_column("Failed")

    for result in report.results:
        outcome = result.outcome
        if outcome is None:
            table.add_row(result.name, result.status.value, "-", "-", "-", "-")
            continue
        table.add_row(
            result.name,
            result.status.value,
            str(outcome.created_count),
            str(outcome.modified_count),
            str(outcome.removed_count),
            str(outcome.failed_count),
        )

    console.print(table)
    style = {
        RunStatus.SUCCESS: "green",
        RunStatus.PARTIAL: "yellow",
        RunStatus.FATAL: "red",
        RunStatus.ALREADY_RUNNING: "yellow",
    }[report.status]
    console.print(f"[{style}]{report.message}[/{style}]")


@app.command()
def sync(
    vault: Path = typer.Argument(..., help="Vault directory to index.", resolve_path=True),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Synchronize the index documents of a vault now."""
    _setup_logging(verbose)
    settings = _load_store(vault).settings

    console.print(f"Synchronizing [bold]{vault}[/bold] into {settings.index_folder}/...")
    coordinator = build_coordinator(vault, settings)
    report = coordinator.run()
    _print_report(report)
    raise typer.Exit(code=EXIT_CODES[report.status])


@config_app.command("show")
def config_show(
    vault: Path = typer.Argument(..., help="Vault directory.", resolve_path=True),
) -> None:
    """Print the current settings (API key masked)."""
    settings = _load_store(vault).settings

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in settings.masked().items():
        table.add_row(key, str(value))
    console.print(table)


@config_app.command("set")
def config_set(
    vault: Path = typer.Argument(..., help="Vault directory.", resolve_path=True),
    key: str = typer.Argument(..., help="Setting name"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Change one setting and save it."""
    store = _load_store(vault)
    try:
        store.update(**{key: value})
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    console.print(f"Updated [bold]{key}[/bold].")


@config_app.command("reset")
def config_reset(
    vault: Path = typer.Argument(..., help="Vault directory.", resolve_path=True),
) -> None:
    """Restore the default settings."""
    store = SettingsStore(_ensure_vault(vault))
    store.restore_defaults()
    console.print("Settings restored to defaults.")


@app.command()
def web(
    vault: Path = typer.Argument(..., help="Vault directory to serve.", resolve_path=True),
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP interface."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from vaultindexer.web.app import create_app

    _load_store(vault)
    console.print(f"Starting web interface on http://{host}:{port} (vault: {vault})")
    uvicorn.run(
        create_app(vault),
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )


def main() -> None:
    app()

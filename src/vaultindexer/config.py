"""Application settings persisted inside the vault."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from vaultindexer.errors import StorageError
from vaultindexer.models import normalize_index_folder

LOGGER = logging.getLogger(__name__)

SETTINGS_DIR = ".vaultindexer"
SETTINGS_FILE = "settings.json"
DEFAULT_TEMPLATE_PATH = "Templates/Visual Note.md"
CONSTRAINED_ENV_VAR = "VAULTINDEXER_CONSTRAINED"


def is_constrained_environment() -> bool:
    """Return True on mobile-class hosts where startup runs are opt-in."""
    flag = os.environ.get(CONSTRAINED_ENV_VAR, "").strip().lower()
    if flag in {"1", "true", "yes", "on"}:
        return True
    return hasattr(sys, "getandroidapilevel")


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    run_on_start: bool = True
    run_on_start_constrained: bool = False
    index_folder: str = "index"
    google_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    request_interval: float = 4.0
    pdf_backend: Literal["gemini", "local"] = "gemini"
    png_template_path: str = DEFAULT_TEMPLATE_PATH
    jpg_template_path: str = DEFAULT_TEMPLATE_PATH
    jpeg_template_path: str = DEFAULT_TEMPLATE_PATH
    pdf_template_path: str = DEFAULT_TEMPLATE_PATH

    @field_validator("index_folder")
    @classmethod
    def _clean_index_folder(cls, value: str) -> str:
        return normalize_index_folder(value)

    @property
    def api_key(self) -> str:
        return self.google_api_key or os.environ.get("GOOGLE_API_KEY", "")

    @property
    def should_run_on_start(self) -> bool:
        if is_constrained_environment():
            return self.run_on_start_constrained
        return self.run_on_start

    def masked(self) -> dict[str, Any]:
        data = self.model_dump()
        if data["google_api_key"]:
            data["google_api_key"] = "*" * 8
        return data


class SettingsStore:
    """Loads and saves ``Settings`` as JSON under the vault's settings folder."""

    def __init__(self, vault: Path) -> None:
        self.path = Path(vault) / SETTINGS_DIR / SETTINGS_FILE
        self.settings = Settings()

    def load(self) -> Settings:
        if not self.path.exists():
            LOGGER.debug("No settings at %s, using defaults", self.path)
            self.settings = Settings()
            return self.settings
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            self.settings = Settings.model_validate(data or {})
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StorageError(f"Invalid settings file {self.path}: {exc}") from exc
        return self.settings

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(self.settings.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Unable to save settings to {self.path}: {exc}") from exc

    def update(self, **changes: Any) -> Settings:
        unknown = set(changes) - set(Settings.model_fields)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        merged = {**self.settings.model_dump(), **changes}
        self.settings = Settings.model_validate(merged)
        self.save()
        return self.settings

    def restore_defaults(self) -> Settings:
        self.settings = Settings()
        self.save()
        return self.settings

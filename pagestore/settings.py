"""Settings for the document store, from environment variables and an optional YAML file."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

WELCOME_CONTENT = """<h1>Welcome to Pagie</h1>
<p>This document is saved locally on this machine.</p>
<p>Try editing it or creating a new one!</p>"""


class StoreSettings(BaseSettings):
    """Storage locations and session behaviour."""

    model_config = SettingsConfigDict(env_prefix="PAGESTORE_")

    base_path: Path = Field(
        Path("."),
        description="Base directory for storage and log paths.",
    )

    storage_path: Path = Field(
        Path("data"),
        description="Directory containing the node database.",
    )

    database_name: str = Field(
        "pagestore.db",
        description="File name of the node database inside storage_path.",
    )

    breadcrumb_max_depth: int = Field(
        100,
        ge=1,
        description="Maximum number of ancestors walked when building breadcrumbs.",
    )

    autosave_delay_seconds: float = Field(
        1.0,
        ge=0,
        description="Debounce delay before editor changes are written.",
    )

    seed_welcome_file: bool = Field(
        True,
        description="Create a welcome document when a session starts on an empty store.",
    )

    welcome_file_name: str = "Welcome to Pagie"
    welcome_file_content: str = WELCOME_CONTENT

    default_folder_name: str = "New Folder"
    default_file_name: str = "Untitled"

    log_file_prefix: str = "pagestore"

    @model_validator(mode="after")
    def _apply_base_path(self) -> "StoreSettings":
        self.storage_path = self._resolve_under_base(self.storage_path)
        return self

    def _resolve_under_base(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return self.base_path / path

    @property
    def database_path(self) -> Path:
        return self.storage_path / self.database_name


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must be a mapping: {path}")
    return data


def load_settings(config_path: Path | None = None, **overrides: Any) -> StoreSettings:
    """Load settings, layering a YAML file and explicit overrides over the environment.

    A missing config file falls back to environment/default settings.
    """
    values: dict[str, Any] = {}
    if config_path is not None:
        if config_path.exists():
            values = _load_yaml(config_path)
        else:
            logger.warning(f"Config file not found at {config_path}, using default settings.")
    values.update({key: value for key, value in overrides.items() if value is not None})
    return StoreSettings(**values)

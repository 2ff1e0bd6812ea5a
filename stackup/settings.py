"""Reading the optional operator settings file."""
from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .constants import DEFAULT_COMPOSE_FILE, SETTINGS_FILENAME
from .errors import SettingsError
from .models import StackSettings

log = logging.getLogger(__name__)

ROOT_MARKERS = (SETTINGS_FILENAME, DEFAULT_COMPOSE_FILE)


def find_project_root(start: Path) -> Path:
    """Nearest ancestor of ``start`` holding a settings or compose file."""
    start = start.resolve()
    for candidate in (start, *start.parents):
        if any((candidate / marker).exists() for marker in ROOT_MARKERS):
            return candidate
    return start


class SettingsRepository:
    """File-backed settings rooted at the project directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.settings_path = root / SETTINGS_FILENAME

    def load(self) -> StackSettings:
        if not self.settings_path.exists():
            log.debug("no %s in %s; using defaults", SETTINGS_FILENAME, self.root)
            return StackSettings()
        try:
            data = yaml.safe_load(self.settings_path.read_text())
        except (OSError, yaml.YAMLError) as exc:
            raise SettingsError(f"Cannot read {self.settings_path}: {exc}") from exc
        if data is None:
            return StackSettings()
        if not isinstance(data, dict):
            raise SettingsError(f"{self.settings_path} must contain a mapping")
        try:
            return StackSettings.model_validate(data)
        except ValidationError as exc:
            raise SettingsError(f"Invalid settings in {self.settings_path}: {exc}") from exc

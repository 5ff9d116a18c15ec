# rsbootstrap/state_manager.py
# -*- coding: utf-8 -*-
"""
Manages the state record that survives container restarts.

A single YAML file replaces the loose marker files the shell entrypoint
used to touch. It holds the bootstrap state and the time each roster file
was last processed::

    state: initialized
    updated: '2024-05-01T10:00:00+00:00'
    stamps:
      instructors: 1714557600.0

A missing file means ``uninitialized``. A file that exists but holds no
mapping (an empty marker left by an older entrypoint) means
``initialized`` with no stamps.
"""

import datetime
import enum
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from common.command_utils import get_symbols, log_bootstrap
from common.file_utils import atomic_write_text

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

STATE_FILE_MODE = 0o640


class BootstrapState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    READY = "ready"


class StateStore:
    """Reads and writes the persisted bootstrap state."""

    def __init__(
        self,
        state_file: Path,
        app_settings: Optional[AppSettings] = None,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.state_file = Path(state_file)
        self.app_settings = app_settings
        self.logger = current_logger if current_logger else module_logger
        self._record: Optional[Dict[str, Any]] = None

    @classmethod
    def from_settings(
        cls,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ) -> "StateStore":
        return cls(app_settings.state_file, app_settings, current_logger)

    def _load(self) -> Dict[str, Any]:
        if self._record is not None:
            return self._record

        if not self.state_file.exists():
            self._record = {"state": BootstrapState.UNINITIALIZED.value, "stamps": {}}
            return self._record

        try:
            with open(self.state_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            log_bootstrap(
                f"{get_symbols(self.app_settings).get('warning', '!')} State file {self.state_file} is not valid YAML ({e}); treating it as a bare initialization marker.",
                "warning",
                self.logger,
                self.app_settings,
            )
            data = None

        if not isinstance(data, dict):
            data = {"state": BootstrapState.INITIALIZED.value}
        data.setdefault("state", BootstrapState.INITIALIZED.value)
        if not isinstance(data.get("stamps"), dict):
            data["stamps"] = {}
        self._record = data
        return self._record

    def _save(self) -> None:
        record = self._load()
        record["updated"] = datetime.datetime.now(datetime.timezone.utc).isoformat()
        atomic_write_text(
            self.state_file,
            yaml.safe_dump(record, default_flow_style=False, sort_keys=True),
            STATE_FILE_MODE,
        )

    @property
    def state(self) -> BootstrapState:
        raw = self._load().get("state")
        try:
            return BootstrapState(raw)
        except ValueError:
            log_bootstrap(
                f"{get_symbols(self.app_settings).get('warning', '!')} Unknown state '{raw}' in {self.state_file}; assuming initialized.",
                "warning",
                self.logger,
                self.app_settings,
            )
            return BootstrapState.INITIALIZED

    def is_initialized(self) -> bool:
        return self.state is not BootstrapState.UNINITIALIZED

    def set_state(self, new_state: BootstrapState) -> None:
        previous = self.state
        self._load()["state"] = new_state.value
        self._save()
        if previous is not new_state:
            log_bootstrap(
                f"State changed: {previous.value} -> {new_state.value}",
                "info",
                self.logger,
                self.app_settings,
            )

    def get_stamp(self, feature: str) -> Optional[float]:
        value = self._load()["stamps"].get(feature)
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    def set_stamp(self, feature: str, timestamp: float) -> None:
        self._load()["stamps"][feature] = float(timestamp)
        self._save()

    def needs_processing(self, feature: str, input_file: Path) -> bool:
        """True when ``input_file`` exists and changed after its stamp."""
        if not input_file.is_file():
            return False
        stamp = self.get_stamp(feature)
        return stamp is None or input_file.stat().st_mtime > stamp

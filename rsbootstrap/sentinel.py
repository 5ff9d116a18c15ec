# rsbootstrap/sentinel.py
# -*- coding: utf-8 -*-
"""
Keeps the container in the foreground by following the uWSGI log.

While ``tail -F`` streams the log to the container output, the sentinel
polls the supervisor so crashed services get restarted. SIGTERM and SIGINT
stop the tail and every supervised service before ``run`` returns.
"""

import logging
import signal
import subprocess
import threading
from pathlib import Path
from typing import Optional

from common.command_utils import log_bootstrap
from common.process_supervisor import ProcessSupervisor

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)


class ForegroundSentinel:
    """Blocks until a termination signal arrives."""

    def __init__(
        self,
        app_settings: AppSettings,
        supervisor: Optional[ProcessSupervisor],
        log_file: Optional[Path] = None,
        poll_interval: Optional[float] = None,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.supervisor = supervisor
        self.log_file = log_file or app_settings.uwsgi_log_file
        self.poll_interval = (
            poll_interval if poll_interval is not None else app_settings.services.poll_interval
        )
        self.logger = current_logger if current_logger else module_logger
        self._stop_event = threading.Event()
        self._tail: Optional[subprocess.Popen] = None
        self.received_signal: Optional[int] = None

    def _handle_signal(self, signum: int, _frame: object) -> None:
        self.received_signal = signum
        self._stop_event.set()

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)

    def stop(self) -> None:
        self._stop_event.set()

    def _start_tail(self) -> None:
        self._tail = subprocess.Popen(["tail", "-F", str(self.log_file)])

    def _stop_tail(self) -> None:
        if self._tail is not None and self._tail.poll() is None:
            self._tail.terminate()
            try:
                self._tail.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self._tail.kill()
                self._tail.wait()

    def run(self) -> int:
        """Follow the log until stopped; returns the process exit status."""
        self.install_signal_handlers()
        log_bootstrap(
            f"Following {self.log_file}",
            "info",
            self.logger,
            self.app_settings,
        )
        self._start_tail()
        try:
            while not self._stop_event.wait(self.poll_interval):
                if self._tail.poll() is not None:
                    log_bootstrap(
                        f"tail exited with status {self._tail.returncode}; shutting down.",
                        "warning",
                        self.logger,
                        self.app_settings,
                    )
                    break
                if self.supervisor is not None:
                    self.supervisor.poll()
        finally:
            if self.received_signal is not None:
                log_bootstrap(
                    f"Received signal {self.received_signal}, shutting down...",
                    "info",
                    self.logger,
                    self.app_settings,
                )
            self._stop_tail()
            if self.supervisor is not None:
                self.supervisor.stop_all()
        return 0

# common/process_supervisor.py
# -*- coding: utf-8 -*-
"""
A small supervisor for long-running child processes.

Services are started in registration order and keep running in the
background. ``poll`` restarts a service whose process has exited, up to
``max_restarts`` times per service. ``stop_all`` stops every running
service in reverse start order. A service is stopped as a process tree:
the service and all of its workers receive the service's stop signal
(SIGTERM unless registered otherwise), and anything still alive after
``stop_timeout`` seconds is killed.
"""

import logging
import signal
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Dict, List, Optional

import psutil

from rsbootstrap.config_models import AppSettings

from .command_utils import get_symbols, log_bootstrap

module_logger = logging.getLogger(__name__)


@dataclass
class ManagedProcess:
    name: str
    command: List[str]
    cwd: Optional[Path] = None
    log_file: Optional[Path] = None
    env: Optional[Dict[str, str]] = None
    stop_signal: int = signal.SIGTERM
    process: Optional[subprocess.Popen] = None
    handle: Optional[psutil.Process] = None
    restarts: int = 0
    gave_up: bool = False
    _log_handle: Optional[IO] = field(default=None, repr=False)

    @property
    def is_running(self) -> bool:
        # Popen.poll reaps the child, which psutil does not.
        return self.process is not None and self.process.poll() is None

    @property
    def stop_signal_name(self) -> str:
        try:
            return signal.Signals(self.stop_signal).name
        except ValueError:
            return str(self.stop_signal)


class ProcessSupervisor:
    """Owns the service processes started by the bootstrap."""

    def __init__(
        self,
        app_settings: Optional[AppSettings],
        max_restarts: int = 3,
        stop_timeout: float = 10.0,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.max_restarts = max_restarts
        self.stop_timeout = stop_timeout
        self.logger = current_logger if current_logger else module_logger
        self.symbols = get_symbols(app_settings)
        self._services: Dict[str, ManagedProcess] = {}
        self._start_order: List[str] = []

    @property
    def services(self) -> List[ManagedProcess]:
        return [self._services[name] for name in self._start_order]

    def add(
        self,
        name: str,
        command: List[str],
        cwd: Optional[Path] = None,
        log_file: Optional[Path] = None,
        env: Optional[Dict[str, str]] = None,
        stop_signal: int = signal.SIGTERM,
    ) -> ManagedProcess:
        if name in self._services:
            raise ValueError(f"Service '{name}' is already registered")
        service = ManagedProcess(
            name=name,
            command=[str(part) for part in command],
            cwd=cwd,
            log_file=log_file,
            env=env,
            stop_signal=stop_signal,
        )
        self._services[name] = service
        self._start_order.append(name)
        return service

    def get(self, name: str) -> ManagedProcess:
        return self._services[name]

    def _spawn(self, service: ManagedProcess) -> None:
        stdout = None
        if service.log_file is not None:
            if service._log_handle is None or service._log_handle.closed:
                service.log_file.parent.mkdir(parents=True, exist_ok=True)
                service._log_handle = open(service.log_file, "a", encoding="utf-8")
            stdout = service._log_handle
        service.process = subprocess.Popen(
            service.command,
            cwd=str(service.cwd) if service.cwd else None,
            env=service.env,
            stdout=stdout,
            stderr=subprocess.STDOUT if stdout is not None else None,
        )
        service.handle = psutil.Process(service.process.pid)
        log_bootstrap(
            f"{self.symbols.get('rocket', '🚀')} Started {service.name} (pid {service.process.pid}): {subprocess.list2cmdline(service.command)}",
            "info",
            self.logger,
            self.app_settings,
        )

    def start(self, name: str) -> ManagedProcess:
        """Start one registered service. Launch errors propagate."""
        service = self._services[name]
        log_bootstrap(
            f"Starting {name}",
            "info",
            self.logger,
            self.app_settings,
        )
        self._spawn(service)
        return service

    def start_all(self) -> None:
        for name in self._start_order:
            self.start(name)

    def poll(self) -> List[str]:
        """
        Restart services whose process has exited.

        Returns:
            Names of the services restarted by this call.
        """
        restarted: List[str] = []
        for service in self.services:
            if service.process is None or service.gave_up or service.is_running:
                continue
            returncode = service.process.returncode
            if service.restarts >= self.max_restarts:
                service.gave_up = True
                log_bootstrap(
                    f"{self.symbols.get('error', '❌')} {service.name} exited (rc {returncode}) and was restarted {service.restarts} times; giving up.",
                    "error",
                    self.logger,
                    self.app_settings,
                )
                continue
            service.restarts += 1
            log_bootstrap(
                f"{self.symbols.get('warning', '!')} {service.name} exited (rc {returncode}); restart {service.restarts}/{self.max_restarts}.",
                "warning",
                self.logger,
                self.app_settings,
            )
            try:
                self._spawn(service)
            except OSError as e:
                log_bootstrap(
                    f"{self.symbols.get('error', '❌')} Could not restart {service.name}: {e}",
                    "error",
                    self.logger,
                    self.app_settings,
                )
                continue
            restarted.append(service.name)
        return restarted

    def _process_tree(self, service: ManagedProcess) -> List[psutil.Process]:
        """The service process followed by all of its descendants."""
        if service.handle is None:
            return []
        procs = [service.handle]
        try:
            # Collected before signalling: orphaned workers are reparented.
            procs.extend(service.handle.children(recursive=True))
        except psutil.NoSuchProcess:
            log_bootstrap(
                f"{service.name} (pid {service.handle.pid}) is gone; no workers to stop.",
                "debug",
                self.logger,
                self.app_settings,
            )
        return procs

    def stop(self, service: ManagedProcess) -> None:
        """Signal a service and its workers, then kill the ones that stay up."""
        procs = self._process_tree(service)
        log_bootstrap(
            f"Stopping {service.name} (pid {service.process.pid}, {len(procs)} process(es)) with {service.stop_signal_name}",
            "info",
            self.logger,
            self.app_settings,
        )
        for proc in procs:
            try:
                proc.send_signal(service.stop_signal)
            except psutil.NoSuchProcess:
                continue

        _, alive = psutil.wait_procs(procs, timeout=self.stop_timeout)
        if not alive:
            return

        log_bootstrap(
            f"{self.symbols.get('warning', '!')} {service.name}: {len(alive)} process(es) ignored {service.stop_signal_name} for {self.stop_timeout}s; killing them.",
            "warning",
            self.logger,
            self.app_settings,
        )
        for proc in alive:
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                continue
        psutil.wait_procs(alive, timeout=self.stop_timeout)

    def stop_all(self) -> None:
        """Stop every running service, newest first."""
        for service in reversed(self.services):
            if service.is_running:
                self.stop(service)
            if service._log_handle is not None and not service._log_handle.closed:
                service._log_handle.close()

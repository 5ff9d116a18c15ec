# rsbootstrap/pipeline.py
# -*- coding: utf-8 -*-
"""
Wires the bootstrap steps into one ordered pipeline.

Order matters: nothing touches the disk before the required configuration
is verified, the database is classified only after it answers, and the
services start only after their directories exist. The database check
leaves ``build_all`` in the shared context for the book builder, and the
service launch leaves the supervisor there for the foreground sentinel.
"""

import logging
import signal
from typing import Optional

from common.command_utils import log_bootstrap
from common.orchestrator import Orchestrator

from .book_builder import build_books_task
from .config_models import AppSettings
from .db_migrator import migrate_database_task
from .db_readiness import wait_for_database_task
from .filesystem import prepare_filesystem, relax_permissions_for_development
from .first_run import first_run_task
from .preconditions import verify_preconditions
from .rosters import instructors_task, students_task
from .sentinel import ForegroundSentinel
from .services import install_dev_components, launch_services
from .state_manager import StateStore

module_logger = logging.getLogger(__name__)


def build_orchestrator(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> Orchestrator:
    logger_to_use = current_logger if current_logger else module_logger
    orchestrator = Orchestrator(app_settings, logger_to_use)
    orchestrator.context["state_store"] = StateStore.from_settings(app_settings, logger_to_use)
    orchestrator.context["build_all"] = False

    common_kwargs = {"current_logger": logger_to_use}
    steps = [
        ("Check required configuration", verify_preconditions, True),
        ("First-run initialization", first_run_task, True),
        ("Wait for database", wait_for_database_task, True),
        ("Check database state", migrate_database_task, True),
        ("Prepare filesystem", prepare_filesystem, True),
        ("Install development components", install_dev_components, False),
        ("Relax development permissions", relax_permissions_for_development, False),
        ("Register instructors", instructors_task, False),
        ("Register students", students_task, False),
        ("Launch services", launch_services, True),
        ("Build books", build_books_task, False),
    ]
    for name, func, fatal in steps:
        orchestrator.add_task(name, func, kwargs=common_kwargs, fatal=fatal)
    return orchestrator


def install_interrupt_handlers() -> None:
    """Make SIGTERM interrupt the bootstrap steps the way Ctrl-C does."""
    signal.signal(signal.SIGTERM, signal.default_int_handler)
    signal.signal(signal.SIGINT, signal.default_int_handler)


def run_bootstrap(
    app_settings: AppSettings,
    follow: bool = True,
    current_logger: Optional[logging.Logger] = None,
) -> int:
    """
    Run the whole bootstrap.

    A SIGTERM or SIGINT that arrives before the sentinel takes over (a long
    book build, say) stops the services that already started.

    Returns:
        0 after an orderly shutdown (or straight away when ``follow`` is off).

    Raises:
        SystemExit: With status 1 when a fatal step fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    orchestrator = build_orchestrator(app_settings, logger_to_use)
    install_interrupt_handlers()
    try:
        orchestrator.run()
    except KeyboardInterrupt:
        log_bootstrap(
            "Interrupted during bootstrap, shutting down...",
            "warning",
            logger_to_use,
            app_settings,
        )
        _stop_services(orchestrator)
        return 0
    except SystemExit:
        _stop_services(orchestrator)
        raise

    if not follow:
        return 0
    sentinel = ForegroundSentinel(
        app_settings,
        orchestrator.context.get("supervisor"),
        current_logger=logger_to_use,
    )
    return sentinel.run()


def _stop_services(orchestrator: Orchestrator) -> None:
    supervisor = orchestrator.context.get("supervisor")
    if supervisor is not None:
        supervisor.stop_all()

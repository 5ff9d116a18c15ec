# rsbootstrap/services.py
# -*- coding: utf-8 -*-
"""
Starts the long-running services: nginx, uWSGI (web2py) and BookServer.

All three run under a ``ProcessSupervisor`` that is stored in the pipeline
context, so the foreground sentinel can keep them alive and stop them on
shutdown.
"""

import logging
import signal
import subprocess
from typing import Any, Dict, List, Optional

from common.command_utils import get_symbols, log_bootstrap, pip_install, run_command
from common.process_supervisor import ProcessSupervisor

from . import config as static_config
from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

PROXY_SERVICE = "nginx"
UWSGI_SERVICE = "uwsgi"
BOOKSERVER_SERVICE = "bookserver"


def build_bookserver_command(app_settings: AppSettings) -> List[str]:
    services = app_settings.services
    command = [
        services.bookserver_executable,
        "--book_path",
        str(app_settings.books_dir),
        "--root",
        services.bookserver_root,
        "--bks_config",
        services.bookserver_config,
    ]
    if app_settings.async_dev_dburl:
        command.extend(["--dburl", app_settings.async_dev_dburl])
    command.extend(
        [
            "--error_path",
            services.bookserver_error_path,
            "--gconfig",
            services.gunicorn_config,
            "--bind",
            services.gunicorn_bind,
        ]
    )
    return command


def install_dev_components(
    app_settings: AppSettings,
    context: Optional[Dict[str, Any]] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Install a mounted RunestoneComponents checkout in editable mode, then
    log the installed ``runestone`` version.

    Returns:
        True if a development checkout was installed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    dev_path = app_settings.components_dev_path
    installed = False
    if (dev_path / static_config.COMPONENTS_README).is_file():
        log_bootstrap(
            "Installing Development Version of Runestone",
            "info",
            logger_to_use,
            app_settings,
        )
        pip_install(["--upgrade", "-e", str(dev_path)], app_settings, logger_to_use)
        log_bootstrap(
            "Make sure you execute the command npm run build to update runestone.js",
            "info",
            logger_to_use,
            app_settings,
        )
        installed = True

    try:
        run_command(
            ["runestone", "--version"],
            app_settings,
            capture_output=True,
            current_logger=logger_to_use,
        )
    except (subprocess.CalledProcessError, OSError):
        log_bootstrap(
            f"{get_symbols(app_settings).get('warning', '!')} Could not determine the runestone version.",
            "warning",
            logger_to_use,
            app_settings,
        )
    return installed


def build_supervisor(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> ProcessSupervisor:
    """Register nginx, uWSGI and BookServer, in that start order."""
    services = app_settings.services
    supervisor = ProcessSupervisor(
        app_settings,
        max_restarts=services.max_restarts,
        stop_timeout=services.stop_timeout,
        current_logger=current_logger,
    )
    supervisor.add(PROXY_SERVICE, services.proxy_command, cwd=app_settings.web2py_path)
    # uWSGI reloads on SIGTERM unless its ini sets die-on-term.
    supervisor.add(
        UWSGI_SERVICE,
        services.uwsgi_command,
        cwd=app_settings.web2py_path,
        stop_signal=signal.SIGINT,
    )
    supervisor.add(
        BOOKSERVER_SERVICE,
        build_bookserver_command(app_settings),
        cwd=app_settings.web2py_path,
        log_file=app_settings.asgi_log_file,
    )
    return supervisor


def launch_services(
    app_settings: AppSettings,
    context: Dict[str, Any],
    current_logger: Optional[logging.Logger] = None,
) -> ProcessSupervisor:
    """
    Pipeline task: start every service without waiting for it.

    The supervisor is stored in ``context["supervisor"]`` before anything
    is started, so services that did start can still be stopped if a later
    launch fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    if not app_settings.async_dev_dburl:
        log_bootstrap(
            f"{get_symbols(app_settings).get('warning', '!')} ASYNC_DEV_DBURL is not set; BookServer will use its own default database URL.",
            "warning",
            logger_to_use,
            app_settings,
        )
    supervisor = build_supervisor(app_settings, logger_to_use)
    context["supervisor"] = supervisor
    log_bootstrap("Starting the server", "info", logger_to_use, app_settings)
    supervisor.start_all()
    return supervisor

# rsbootstrap/filesystem.py
# -*- coding: utf-8 -*-
"""
Creates the runtime directories and hands them to the web server user.
"""

import logging
from typing import Any, Dict, Optional

from common.command_utils import log_bootstrap
from common.file_utils import add_group_write, change_owner, ensure_directory, ensure_file

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)


def prepare_filesystem(
    app_settings: AppSettings,
    context: Optional[Dict[str, Any]] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Ensure log, socket and database directories exist and are owned by
    ``www_user``. Safe to run on every start.
    """
    logger_to_use = current_logger if current_logger else module_logger
    owner = app_settings.www_user
    databases_dir = app_settings.runestone_path / "databases"

    log_bootstrap("Updating file ownership", "info", logger_to_use, app_settings)
    ensure_directory(app_settings.log_dir, app_settings, logger_to_use)
    ensure_file(app_settings.uwsgi_log_file, app_settings, logger_to_use)
    ensure_directory(app_settings.uwsgi_socket_dir, app_settings, logger_to_use)
    ensure_directory(databases_dir, app_settings, logger_to_use)

    change_owner(app_settings.web2py_path, owner, app_settings, recursive=True, current_logger=logger_to_use)
    change_owner(databases_dir, owner, app_settings, current_logger=logger_to_use)
    change_owner(app_settings.uwsgi_socket_dir, owner, app_settings, recursive=True, current_logger=logger_to_use)


def relax_permissions_for_development(
    app_settings: AppSettings,
    context: Optional[Dict[str, Any]] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """In development mode make the application tree group-writable."""
    logger_to_use = current_logger if current_logger else module_logger
    if not app_settings.is_development:
        return False
    log_bootstrap(
        f"Development mode: making {app_settings.runestone_path} group-writable",
        "info",
        logger_to_use,
        app_settings,
    )
    add_group_write(app_settings.runestone_path, app_settings, logger_to_use)
    return True

# rsbootstrap/preconditions.py
# -*- coding: utf-8 -*-
"""
Checks that must pass before the bootstrap touches anything.
"""

import logging
from typing import Any, Dict, List, Optional

from common.command_utils import get_symbols, log_bootstrap

from .config_models import AppSettings
from .errors import MissingConfigurationError

module_logger = logging.getLogger(__name__)


def check_preconditions(app_settings: AppSettings) -> List[str]:
    """
    Return the environment variable names of the missing required settings.

    Blank (whitespace-only) values count as missing.
    """
    required = {
        "POSTGRES_PASSWORD": app_settings.pg.password,
        "RUNESTONE_HOST": app_settings.runestone_host,
    }
    return [name for name, value in required.items() if not (value or "").strip()]


def verify_preconditions(
    app_settings: AppSettings,
    context: Optional[Dict[str, Any]] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Pipeline task: abort when a required setting is missing.

    Raises:
        MissingConfigurationError: Listing every missing setting.
    """
    logger_to_use = current_logger if current_logger else module_logger
    missing = check_preconditions(app_settings)
    if not missing:
        log_bootstrap(
            f"{get_symbols(app_settings).get('success', '✅')} Required configuration present for host {app_settings.runestone_host}.",
            "info",
            logger_to_use,
            app_settings,
        )
        return
    for name in missing:
        log_bootstrap(
            f"{get_symbols(app_settings).get('error', '❌')} Please export ${{{name}}}",
            "error",
            logger_to_use,
            app_settings,
        )
    raise MissingConfigurationError(missing)

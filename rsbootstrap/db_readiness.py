# rsbootstrap/db_readiness.py
# -*- coding: utf-8 -*-
"""
Waits for PostgreSQL to accept connections.

The probe returns a ``ProbeResult`` instead of deciding what exhaustion
means; the pipeline task turns an unsuccessful result into a fatal error
when ``db_wait.fatal_on_exhaustion`` is set.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import psycopg

from common.command_utils import get_symbols, log_bootstrap
from common.db_utils import ping_database

from .config_models import AppSettings
from .errors import DatabaseUnavailableError

module_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    ready: bool
    attempts: int
    last_error: Optional[str] = None


def wait_for_database(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ProbeResult:
    """
    Try ``SELECT 1`` up to ``db_wait.attempts`` times.

    Sleeps ``db_wait.interval_seconds`` between failed attempts and stops at
    the first success. There is no sleep after the last attempt.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    max_attempts = app_settings.db_wait.attempts
    last_error: Optional[str] = None

    for attempt in range(1, max_attempts + 1):
        try:
            ping_database(app_settings, logger_to_use)
        except psycopg.Error as e:
            last_error = str(e).strip() or e.__class__.__name__
            remaining = max_attempts - attempt
            log_bootstrap(
                f"Waiting for postgres server, {remaining} remaining attempts...",
                "info",
                logger_to_use,
                app_settings,
            )
            log_bootstrap(f"   last error: {last_error}", "debug", logger_to_use, app_settings)
            if remaining:
                sleep(app_settings.db_wait.interval_seconds)
            continue

        log_bootstrap(
            f"{symbols.get('success', '✅')} Database is reachable (attempt {attempt}/{max_attempts}).",
            "info",
            logger_to_use,
            app_settings,
        )
        return ProbeResult(ready=True, attempts=attempt)

    log_bootstrap(
        f"{symbols.get('error', '❌')} Database still unreachable after {max_attempts} attempts.",
        "error",
        logger_to_use,
        app_settings,
    )
    return ProbeResult(ready=False, attempts=max_attempts, last_error=last_error)


def wait_for_database_task(
    app_settings: AppSettings,
    context: Dict[str, Any],
    current_logger: Optional[logging.Logger] = None,
) -> ProbeResult:
    """
    Pipeline task: probe the database and enforce the exhaustion policy.

    Raises:
        DatabaseUnavailableError: If the probe failed and exhaustion is fatal.
    """
    logger_to_use = current_logger if current_logger else module_logger
    result = wait_for_database(app_settings, logger_to_use)
    context["db_probe"] = result
    if not result.ready:
        if app_settings.db_wait.fatal_on_exhaustion:
            raise DatabaseUnavailableError(result.attempts, result.last_error)
        log_bootstrap(
            f"{get_symbols(app_settings).get('warning', '!')} Continuing without a reachable database; the state check will most likely fail.",
            "warning",
            logger_to_use,
            app_settings,
        )
    return result

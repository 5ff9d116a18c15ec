# rsbootstrap/db_migrator.py
# -*- coding: utf-8 -*-
"""
Classifies the database with ``rsmanage env --checkdb`` and applies the
matching remedial action.

| Code | Meaning                                      | Action                          |
|------|----------------------------------------------|---------------------------------|
| 0    | database not initialized                     | rsmanage initdb                 |
| 1    | initialized, databases/ directory missing    | rsmanage initdb --reset --force |
| 2    | directories present, migration info stale    | rsmanage migrate --fake         |
| 3    | consistent                                   | nothing                         |

Codes 0 and 1 create a fresh database, so every book must then be rebuilt
from scratch (``build_all``); otherwise an already built book directory
would deploy without its questions in the new database.
"""

import enum
import logging
from typing import Any, Dict, List, Optional

from common.command_utils import get_symbols, log_bootstrap, run_command

from .config_models import AppSettings
from .errors import UnexpectedDbStateError
from .state_manager import BootstrapState

module_logger = logging.getLogger(__name__)


class DbState(enum.IntEnum):
    UNINITIALIZED = 0
    MISSING_DATABASES_DIR = 1
    SCHEMA_STALE = 2
    CONSISTENT = 3


# state -> (log message, rsmanage arguments or None, build_all)
_DISPATCH = {
    DbState.UNINITIALIZED: (
        "Initializing DB and databases",
        ["initdb"],
        True,
    ),
    DbState.MISSING_DATABASES_DIR: (
        "Removing databases folder and initializing",
        ["initdb", "--reset", "--force"],
        True,
    ),
    DbState.SCHEMA_STALE: (
        "Warning -- Database initialized but migration info is stale. Trying a fake migration",
        ["migrate", "--fake"],
        False,
    ),
    DbState.CONSISTENT: (
        "All is good, no initialization needed",
        None,
        False,
    ),
}

RSMANAGE = "rsmanage"


def check_database_state(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> int:
    """Run ``rsmanage env --checkdb`` and return its raw exit status."""
    logger_to_use = current_logger if current_logger else module_logger
    log_bootstrap(
        "Checking the State of Database and Migration Info",
        "info",
        logger_to_use,
        app_settings,
    )
    result = run_command(
        [RSMANAGE, "env", "--checkdb"],
        app_settings,
        check=False,
        current_logger=logger_to_use,
    )
    log_bootstrap(f"Got result of {result.returncode}", "info", logger_to_use, app_settings)
    return result.returncode


def classify(code: int) -> DbState:
    """
    Raises:
        UnexpectedDbStateError: If ``code`` is not a known state.
    """
    try:
        return DbState(code)
    except ValueError:
        raise UnexpectedDbStateError(code) from None


def remedial_command(state: DbState) -> Optional[List[str]]:
    rsmanage_args = _DISPATCH[state][1]
    return [RSMANAGE, *rsmanage_args] if rsmanage_args else None


def apply_database_state(
    code: int,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Run the action for ``code``.

    Returns:
        The build_all flag: True when a fresh database was created.

    Raises:
        UnexpectedDbStateError: For an unknown code; nothing is run.
        subprocess.CalledProcessError: If the remedial command fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    try:
        state = classify(code)
    except UnexpectedDbStateError:
        log_bootstrap(
            f"{get_symbols(app_settings).get('critical', '🔥')} Unexpected result from checkdb: {code}",
            "critical",
            logger_to_use,
            app_settings,
        )
        raise

    message, _, build_all = _DISPATCH[state]
    log_bootstrap(message, "info", logger_to_use, app_settings)
    command = remedial_command(state)
    if command:
        run_command(command, app_settings, current_logger=logger_to_use)
    return build_all


def migrate_database(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> bool:
    """Check the database state and apply the remedy; return build_all."""
    code = check_database_state(app_settings, current_logger)
    return apply_database_state(code, app_settings, current_logger)


def migrate_database_task(
    app_settings: AppSettings,
    context: Dict[str, Any],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Pipeline task: store build_all in the context and mark the state ready."""
    build_all = migrate_database(app_settings, current_logger)
    context["build_all"] = build_all
    context["state_store"].set_state(BootstrapState.READY)
    return build_all

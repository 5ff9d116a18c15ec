# rsbootstrap/rosters.py
# -*- coding: utf-8 -*-
"""
Registers instructors and students from CSV rosters in ``configs/``.

A roster is processed when it changed after its stamp in the state record.
The stamp is written only after the roster was processed, so a failed run
is retried on the next start.
"""

import csv
import logging
import subprocess
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from common.command_utils import get_symbols, log_bootstrap, run_command

from . import config as static_config
from .config_models import AppSettings
from .db_migrator import RSMANAGE
from .state_manager import StateStore

module_logger = logging.getLogger(__name__)

INSTRUCTORS_FEATURE = "instructors"
STUDENTS_FEATURE = "students"


def instructors_file(app_settings: AppSettings) -> Path:
    return app_settings.runestone_path / "configs" / "instructors.csv"


def students_file(app_settings: AppSettings) -> Path:
    return app_settings.runestone_path / "configs" / "students.csv"


def read_instructor_courses(
    roster: Path,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> List[Tuple[str, str]]:
    """Return (username, course) pairs; short rows are logged and skipped."""
    username_idx = static_config.INSTRUCTOR_USERNAME_FIELD
    course_idx = static_config.INSTRUCTOR_COURSE_FIELD
    pairs: List[Tuple[str, str]] = []
    with open(roster, "r", encoding="utf-8-sig", newline="") as f:
        for line_no, row in enumerate(csv.reader(f), start=1):
            if not row or not any(cell.strip() for cell in row):
                continue
            if len(row) <= course_idx:
                log_bootstrap(
                    f"{roster}:{line_no}: expected at least {course_idx + 1} fields, got {len(row)}; skipping",
                    "warning",
                    current_logger,
                    app_settings,
                )
                continue
            pairs.append((row[username_idx].strip(), row[course_idx].strip()))
    return pairs


def _inituser(roster: Path, app_settings: AppSettings, logger: logging.Logger) -> None:
    run_command(
        [RSMANAGE, "inituser", "--fromfile", str(roster)],
        app_settings,
        current_logger=logger,
    )


def setup_instructors(
    app_settings: AppSettings,
    state_store: StateStore,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Create the instructor accounts and attach each to its course.

    Returns:
        True if the roster was processed, False if there was nothing to do.

    Raises:
        subprocess.CalledProcessError: If ``rsmanage inituser`` fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    roster = instructors_file(app_settings)
    if not state_store.needs_processing(INSTRUCTORS_FEATURE, roster):
        return False

    started = time.time()
    log_bootstrap("Setting up instructors", "info", logger_to_use, app_settings)
    _inituser(roster, app_settings, logger_to_use)
    for username, course in read_instructor_courses(roster, app_settings, logger_to_use):
        try:
            run_command(
                [RSMANAGE, "addinstructor", "--username", username, "--course", course],
                app_settings,
                current_logger=logger_to_use,
            )
        except (subprocess.CalledProcessError, OSError):
            log_bootstrap(
                f"{get_symbols(app_settings).get('warning', '!')} unable to add instructor {username} to {course}",
                "warning",
                logger_to_use,
                app_settings,
            )
    state_store.set_stamp(INSTRUCTORS_FEATURE, started)
    return True


def disable_signup(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> bool:
    """Append the register-disabling line to models/db.py once."""
    db_model = app_settings.web2py_path / "applications" / "runestone" / "models" / "db.py"
    line = static_config.DISABLE_SIGNUP_LINE
    existing = db_model.read_text(encoding="utf-8") if db_model.is_file() else ""
    if line in existing.splitlines():
        return False
    db_model.parent.mkdir(parents=True, exist_ok=True)
    with open(db_model, "a", encoding="utf-8") as f:
        f.write(f"\n{line}\n")
    log_bootstrap(
        "Students were provided -- disabling signup!",
        "info",
        current_logger,
        app_settings,
    )
    return True


def setup_students(
    app_settings: AppSettings,
    state_store: StateStore,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Create the student accounts and close self sign-up.

    Raises:
        subprocess.CalledProcessError: If ``rsmanage inituser`` fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    roster = students_file(app_settings)
    if not state_store.needs_processing(STUDENTS_FEATURE, roster):
        return False

    started = time.time()
    log_bootstrap("Setting up students", "info", logger_to_use, app_settings)
    _inituser(roster, app_settings, logger_to_use)
    disable_signup(app_settings, logger_to_use)
    state_store.set_stamp(STUDENTS_FEATURE, started)
    return True


def instructors_task(
    app_settings: AppSettings,
    context: Dict[str, Any],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    return setup_instructors(app_settings, context["state_store"], current_logger)


def students_task(
    app_settings: AppSettings,
    context: Dict[str, Any],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    return setup_students(app_settings, context["state_store"], current_logger)

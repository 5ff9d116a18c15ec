# rsbootstrap/first_run.py
# -*- coding: utf-8 -*-
"""
One-time setup performed on the first boot of a container volume.

Each step is safe to repeat, so a first boot that died half way simply
runs the whole block again on the next start. The state record only moves
to ``initialized`` once every step has succeeded.
"""

import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from common.command_utils import get_symbols, log_bootstrap, pip_install
from common.file_utils import atomic_write_text
from common.pgpass_utils import setup_pgpass

from . import config as static_config
from .certbot_configurator import run_certbot_nginx
from .config_models import AppSettings
from .state_manager import BootstrapState, StateStore

module_logger = logging.getLogger(__name__)

AUTH_KEY_MODE = 0o600


def install_rsmanage(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """Install the local ``rsmanage`` package in editable mode."""
    log_bootstrap("Install rsmanage local module", "info", current_logger, app_settings)
    pip_install(
        ["-e", str(app_settings.runestone_path / "rsmanage")],
        app_settings,
        current_logger=current_logger,
    )


def generate_auth_key() -> str:
    # uuid4 draws from os.urandom.
    return f"{static_config.AUTH_KEY_PREFIX}{uuid.uuid4()}"


def create_auth_key(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> Path:
    """Write ``private/auth.key`` unless one already exists."""
    key_file = app_settings.runestone_path / "private" / "auth.key"
    if key_file.is_file() and key_file.read_text(encoding="utf-8").strip():
        log_bootstrap(
            f"Keeping existing auth key at {key_file}",
            "info",
            current_logger,
            app_settings,
        )
        return key_file
    log_bootstrap("Creating auth key", "info", current_logger, app_settings)
    atomic_write_text(key_file, generate_auth_key() + "\n", AUTH_KEY_MODE)
    return key_file


def create_institution_override(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> Optional[Path]:
    """
    Create ``models/1.py`` enabling institution mode, if it is absent.

    Institution mode lets a school run its own server on top of a base book.
    An existing file is never touched.
    """
    override_file = app_settings.runestone_path / "models" / "1.py"
    if override_file.exists():
        log_bootstrap(
            f"Institution override {override_file} already present",
            "debug",
            current_logger,
            app_settings,
        )
        return None
    log_bootstrap(
        f"Creating institution override {override_file}",
        "info",
        current_logger,
        app_settings,
    )
    atomic_write_text(
        override_file,
        static_config.INSTITUTION_OVERRIDE_TEMPLATE.format(
            jobe_key=app_settings.jobe_key,
            jobe_server=app_settings.jobe_server,
        ),
    )
    return override_file


def run_first_time_setup(
    app_settings: AppSettings,
    state_store: StateStore,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Perform first-run setup unless the state record says it was done.

    Returns:
        True if the setup ran, False if it was skipped.

    Raises:
        subprocess.CalledProcessError: If installing rsmanage fails.
        OSError: If a file cannot be written.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    if state_store.is_initialized():
        log_bootstrap("Already initialized", "info", logger_to_use, app_settings)
        return False

    install_rsmanage(app_settings, logger_to_use)
    create_auth_key(app_settings, logger_to_use)
    log_bootstrap("Creating pgpass file", "info", logger_to_use, app_settings)
    setup_pgpass(app_settings, logger_to_use)
    create_institution_override(app_settings, logger_to_use)
    run_certbot_nginx(app_settings, logger_to_use)

    state_store.set_state(BootstrapState.INITIALIZED)
    log_bootstrap(
        f"{symbols.get('success', '✅')} First-run initialization complete.",
        "success",
        logger_to_use,
        app_settings,
    )
    return True


def first_run_task(
    app_settings: AppSettings,
    context: Dict[str, Any],
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Pipeline task wrapper around ``run_first_time_setup``."""
    return run_first_time_setup(app_settings, context["state_store"], current_logger)

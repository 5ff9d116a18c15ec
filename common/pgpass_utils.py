# common/pgpass_utils.py
# -*- coding: utf-8 -*-
"""
Utility function for writing the PostgreSQL password file (.pgpass).
"""

import logging
from pathlib import Path
from typing import List, Optional

from rsbootstrap.config_models import AppSettings

from .command_utils import get_symbols, log_bootstrap
from .file_utils import atomic_write_text

module_logger = logging.getLogger(__name__)

PGPASS_MODE = 0o600


def _escape(value: str) -> str:
    # .pgpass fields are colon separated; backslash escapes ':' and '\'.
    return value.replace("\\", "\\\\").replace(":", "\\:")


def build_pgpass_entry(app_settings: AppSettings) -> str:
    """Return ``host:port:*:user:password`` for the configured server."""
    pg = app_settings.pg
    return ":".join(
        [
            _escape(pg.host),
            str(pg.port),
            "*",
            _escape(pg.user),
            _escape(pg.password),
        ]
    )


def setup_pgpass(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> Path:
    """
    Write the pgpass file so command-line clients can reach the database.

    Any existing entry for the same host, port and user is replaced, other
    entries are kept. The file ends up with mode 0600.

    Returns:
        The path of the pgpass file.

    Raises:
        ValueError: If no PostgreSQL password is configured.
        OSError: If the file cannot be written.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    pg = app_settings.pg
    if not pg.password:
        raise ValueError("PostgreSQL password is empty; refusing to write .pgpass")

    pgpass_file_path = Path(app_settings.pgpass_path)
    entry = build_pgpass_entry(app_settings)
    prefix_to_filter = f"{_escape(pg.host)}:{pg.port}:*:{_escape(pg.user)}:"

    current_lines: List[str] = []
    if pgpass_file_path.is_file():
        try:
            with open(pgpass_file_path, "r", encoding="utf-8") as f_read:
                current_lines = [line.strip() for line in f_read if line.strip()]
        except OSError as e_read:
            log_bootstrap(
                f"{symbols.get('warning', '!')} Could not read existing .pgpass file at {pgpass_file_path}: {e_read}",
                "warning",
                logger_to_use,
                app_settings,
            )

    updated_lines = [
        line for line in current_lines if not line.startswith(prefix_to_filter)
    ]
    updated_lines.append(entry)

    atomic_write_text(
        pgpass_file_path, "".join(f"{line}\n" for line in updated_lines), PGPASS_MODE
    )
    log_bootstrap(
        f"{symbols.get('success', '✅')} .pgpass file configured at {pgpass_file_path}.",
        "success",
        logger_to_use,
        app_settings,
    )
    return pgpass_file_path

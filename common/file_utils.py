# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system helpers: idempotent directory/file creation, ownership and
permission changes, and atomic text writes.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from rsbootstrap.config_models import AppSettings

from .command_utils import get_symbols, log_bootstrap, run_command

module_logger = logging.getLogger(__name__)


def ensure_directory(
    dir_path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Create ``dir_path`` and its parents; an existing directory is left alone."""
    logger_to_use = current_logger if current_logger else module_logger
    if dir_path.is_dir():
        log_bootstrap(
            f"Directory already exists: {dir_path}",
            "debug",
            logger_to_use,
            app_settings,
        )
        return
    dir_path.mkdir(parents=True, exist_ok=True)
    log_bootstrap(
        f"{get_symbols(app_settings).get('success', '✅')} Created directory: {dir_path}",
        "info",
        logger_to_use,
        app_settings,
    )


def ensure_file(
    file_path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Create an empty ``file_path`` (and its directory) unless it exists."""
    logger_to_use = current_logger if current_logger else module_logger
    ensure_directory(file_path.parent, app_settings, logger_to_use)
    if not file_path.exists():
        file_path.touch()
        log_bootstrap(
            f"Created empty file: {file_path}",
            "debug",
            logger_to_use,
            app_settings,
        )


def change_owner(
    path: Path,
    owner: str,
    app_settings: Optional[AppSettings],
    recursive: bool = False,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Hand ``path`` over to ``owner`` with ``chown``.

    Raises:
        subprocess.CalledProcessError: If chown fails (e.g. unknown user).
    """
    command = ["chown"]
    if recursive:
        command.append("-R")
    command.extend([owner, str(path)])
    run_command(command, app_settings, current_logger=current_logger)


def add_group_write(
    path: Path,
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """Recursively make everything under ``path`` group-writable."""
    run_command(
        ["chmod", "-R", "g+w", str(path)],
        app_settings,
        current_logger=current_logger,
    )


def atomic_write_text(
    file_path: Path, content: str, mode: Optional[int] = None
) -> None:
    """
    Replace ``file_path`` with ``content`` in one rename.

    The temporary file lives next to the target so the rename never
    crosses file systems. ``mode`` is applied before the rename, so the
    content is never visible with looser permissions.
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(
        dir=str(file_path.parent), prefix=f".{file_path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as temp_f:
            temp_f.write(content)
        if mode is not None:
            os.chmod(temp_name, mode)
        os.replace(temp_name, file_path)
    finally:
        if os.path.exists(temp_name):
            os.unlink(temp_name)

# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Utilities for executing external commands and logging their output.
"""

import logging
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional, Union

from rsbootstrap.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def get_symbols(app_settings: Optional[AppSettings]) -> Dict[str, str]:
    """Return the log symbols from the settings, or the defaults."""
    if app_settings is not None and getattr(app_settings, "symbols", None):
        return app_settings.symbols
    return SYMBOLS_DEFAULT


def log_bootstrap(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs a bootstrap message at the given level.

    Args:
        message (str): The log message to be recorded.
        level (str): One of "debug", "info", "success", "warning", "error"
            or "critical". "success" and unknown levels log at INFO.
        current_logger (Optional[logging.Logger]): A logger instance to use.
            If not provided, the module-level logger is used.
        app_settings (Optional[AppSettings]): Optional application settings.
        exc_info (bool): Whether to attach exception information.
    """
    effective_logger = current_logger if current_logger else module_logger

    if level == "warning":
        effective_logger.warning(message, exc_info=exc_info)
    elif level == "error":
        effective_logger.error(message, exc_info=exc_info)
    elif level == "critical":
        effective_logger.critical(message, exc_info=exc_info)
    elif level == "debug":
        effective_logger.debug(message, exc_info=exc_info)
    else:
        effective_logger.info(message, exc_info=exc_info)


def _command_to_str(command: Union[List[str], str]) -> str:
    if isinstance(command, list):
        return subprocess.list2cmdline([str(part) for part in command])
    return str(command)


def run_command(
    command: List[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    text: bool = True,
    cmd_input: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[PathLike] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """
    Executes an external command and logs the invocation and its result.

    Commands are always passed as an argument list and never through a
    shell.

    Args:
        command (List[str]): The command and its arguments.
        app_settings (Optional[AppSettings]): Settings providing log symbols.
        check (bool): Raise CalledProcessError on a non-zero exit status.
        capture_output (bool): Capture stdout and stderr.
        text (bool): Decode the output streams as text.
        cmd_input (Optional[str]): Data written to the command's stdin.
        current_logger (Optional[logging.Logger]): Logger to use.
        cwd (Optional[PathLike]): Working directory for the command.
        env (Optional[Dict[str, str]]): Environment for the command.

    Returns:
        subprocess.CompletedProcess: The finished process.

    Raises:
        subprocess.CalledProcessError: If ``check`` is set and the command fails.
        FileNotFoundError: If the executable cannot be found.
    """
    effective_logger = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    command_to_run = [str(part) for part in command]
    command_to_log_str = _command_to_str(command_to_run)

    log_bootstrap(
        f"{symbols.get('gear', '⚙️')} Executing: {command_to_log_str} {f'(in {cwd})' if cwd else ''}".rstrip(),
        "info",
        effective_logger,
        app_settings,
    )
    try:
        result = subprocess.run(
            command_to_run,
            check=check,
            capture_output=capture_output,
            text=text,
            input=cmd_input,
            cwd=str(cwd) if cwd else None,
            env=env,
        )
        if capture_output:
            if result.stdout and result.stdout.strip():
                log_bootstrap(
                    f"   stdout: {result.stdout.strip()}",
                    "info",
                    effective_logger,
                    app_settings,
                )
            if result.stderr and result.stderr.strip():
                log_bootstrap(
                    f"   stderr: {result.stderr.strip()}",
                    "info",
                    effective_logger,
                    app_settings,
                )
        return result
    except subprocess.CalledProcessError as e:
        log_bootstrap(
            f"{symbols.get('error', '❌')} Command `{_command_to_str(e.cmd)}` failed (rc {e.returncode}).",
            "error",
            effective_logger,
            app_settings,
        )
        if e.stdout and hasattr(e.stdout, "strip") and e.stdout.strip():
            log_bootstrap(
                f"   stdout: {e.stdout.strip()}",
                "error",
                effective_logger,
                app_settings,
            )
        if e.stderr and hasattr(e.stderr, "strip") and e.stderr.strip():
            log_bootstrap(
                f"   stderr: {e.stderr.strip()}",
                "error",
                effective_logger,
                app_settings,
            )
        raise
    except FileNotFoundError as e:
        log_bootstrap(
            f"{symbols.get('error', '❌')} Command not found: {e.filename}. Ensure it's installed and in PATH.",
            "error",
            effective_logger,
            app_settings,
        )
        raise


def pip_install(
    pip_args: List[str],
    app_settings: Optional[AppSettings],
    current_logger: Optional[logging.Logger] = None,
    cwd: Optional[PathLike] = None,
) -> subprocess.CompletedProcess:
    """Run ``pip install`` with the interpreter running the bootstrap."""
    return run_command(
        [sys.executable, "-m", "pip", "install", *pip_args],
        app_settings,
        current_logger=current_logger,
        cwd=cwd,
    )

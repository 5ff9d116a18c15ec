# rsbootstrap/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the bootstrap.

Handles loading settings from Pydantic model defaults, environment
variables, an optional YAML file and command-line arguments, applying this
order of precedence (later wins):
1. Pydantic Model Defaults
2. Environment Variables (loaded by Pydantic's BaseSettings)
3. YAML Configuration File
4. Command-Line Arguments
"""

import argparse
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from rsbootstrap import config as static_config

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

# CLI destinations that map straight onto top-level AppSettings fields.
_CLI_TO_SETTINGS = {
    "build_books": "build_books",
}


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates a dictionary `source` with values from `overrides`.

    Nested dictionaries are merged key by key; any other value in
    `overrides` replaces the one in `source`. ``None`` values in
    `overrides` never clobber an existing value.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def resolve_config_path(cli_args: Optional[argparse.Namespace] = None) -> Path:
    """Pick the YAML file: CLI flag, then environment variable, then default."""
    cli_path = getattr(cli_args, "config_file", None) if cli_args else None
    if cli_path:
        return Path(cli_path)
    env_path = os.environ.get(static_config.CONFIG_FILE_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path(static_config.DEFAULT_CONFIG_FILE)


def _load_yaml_overrides(
    yaml_config_path: Path, logger_to_use: logging.Logger
) -> Dict[str, Any]:
    if not yaml_config_path.is_file():
        logger_to_use.debug(
            f"Configuration file '{yaml_config_path}' not found. Using defaults, environment variables, and CLI args."
        )
        return {}
    try:
        with open(yaml_config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        logger_to_use.warning(
            f"Could not read config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        logger_to_use.warning(
            f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}
    logger_to_use.info(f"Loaded configuration from {yaml_config_path}")
    return yaml_data


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: Optional[Path] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads the bootstrap settings.

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file. When omitted
            it is resolved with ``resolve_config_path``.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        SystemExit: If the merged configuration does not validate.
    """
    logger_to_use = current_logger if current_logger else module_logger

    try:
        # Model defaults < environment variables. Only values that were
        # actually provided are carried forward so nested settings keep
        # reading their own environment on re-validation.
        settings_after_env = AppSettings()
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e
    current_values_dict = settings_after_env.model_dump(exclude_unset=True)
    # A nested BaseSettings validated from a dict does not read the
    # environment again, so POSTGRES_* values must travel in the dict.
    current_values_dict["pg"] = settings_after_env.pg.model_dump()

    yaml_path = config_file_path or resolve_config_path(cli_args)
    current_values_dict = _deep_update(
        current_values_dict, _load_yaml_overrides(yaml_path, logger_to_use)
    )

    if cli_args:
        mapped_cli_values: Dict[str, Any] = {}
        for cli_key, cli_value in vars(cli_args).items():
            if cli_value is None or cli_key not in _CLI_TO_SETTINGS:
                continue
            mapped_cli_values[_CLI_TO_SETTINGS[cli_key]] = cli_value
        current_values_dict = _deep_update(
            current_values_dict, mapped_cli_values
        )

    try:
        final_settings = AppSettings(**current_values_dict)
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    return final_settings

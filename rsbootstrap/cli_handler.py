# rsbootstrap/cli_handler.py
# -*- coding: utf-8 -*-
"""
Command line interface of the container entrypoint.
"""

import argparse
import logging
import sys
from typing import List, Optional

from common.logging_config import setup_logging

from . import config as static_config
from .config_loader import load_app_settings
from .config_models import LOG_PREFIX_DEFAULT
from .pipeline import run_bootstrap

SERVICE_NAME = "runestone-bootstrap"


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog=SERVICE_NAME,
        description="Provision and start a Runestone server inside its container.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--config-file",
        dest="config_file",
        default=None,
        help=f"YAML configuration file (default: ${static_config.CONFIG_FILE_ENV_VAR} or {static_config.DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "--build-books",
        dest="build_books",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Build and deploy all books after the services start (overrides $BUILD_BOOKS)",
    )
    parser.add_argument(
        "--no-follow",
        dest="follow",
        action="store_false",
        help="Exit after starting the services instead of following the uWSGI log",
    )
    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the container bootstrap."""
    parsed_args = parse_args(args)
    log_level = "DEBUG" if parsed_args.verbose else None

    logger = setup_logging(SERVICE_NAME, log_level=log_level, prefix=LOG_PREFIX_DEFAULT)
    app_settings = load_app_settings(parsed_args, current_logger=logger)
    if app_settings.log_prefix != LOG_PREFIX_DEFAULT:
        logger = setup_logging(SERVICE_NAME, log_level=log_level, prefix=app_settings.log_prefix)

    logger.info(f"Runestone bootstrap v{static_config.SCRIPT_VERSION}")
    return run_bootstrap(app_settings, follow=parsed_args.follow, current_logger=logger)


if __name__ == "__main__":
    logging.captureWarnings(True)
    sys.exit(main())

# rsbootstrap/book_builder.py
# -*- coding: utf-8 -*-
"""
Builds and deploys every book found in the books directory.

Books are processed one after another. All real work happens in child
processes started with an explicit working directory, and every book runs
inside its own error boundary, so one broken book never stops the others.
"""

import enum
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.command_utils import get_symbols, log_bootstrap, pip_install, run_command

from . import config as static_config
from .config_models import AppSettings
from .db_migrator import RSMANAGE

module_logger = logging.getLogger(__name__)


class BuildStatus(str, enum.Enum):
    BUILT = "built"
    SKIPPED_NOBUILD = "skipped_nobuild"
    SKIPPED_UNREGISTERED = "skipped_unregistered"
    FAILED = "failed"


@dataclass
class BookBuildResult:
    book: str
    status: BuildStatus
    error: Optional[str] = None


@dataclass
class BuildSummary:
    results: List[BookBuildResult] = field(default_factory=list)

    def by_status(self, status: BuildStatus) -> List[str]:
        return [r.book for r in self.results if r.status is status]

    @property
    def built(self) -> List[str]:
        return self.by_status(BuildStatus.BUILT)

    @property
    def failed(self) -> List[str]:
        return self.by_status(BuildStatus.FAILED)

    @property
    def skipped(self) -> List[str]:
        return [
            r.book
            for r in self.results
            if r.status in (BuildStatus.SKIPPED_NOBUILD, BuildStatus.SKIPPED_UNREGISTERED)
        ]


def build_command(build_all: bool) -> List[str]:
    command = ["runestone", "build"]
    if build_all:
        command.append("--all")
    command.append("deploy")
    return command


def is_registered(
    book: str, app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> bool:
    """Ask ``rsmanage courseinfo`` whether the book has a database entry."""
    result = run_command(
        [RSMANAGE, "courseinfo", "--name", book],
        app_settings,
        check=False,
        capture_output=True,
        current_logger=current_logger,
    )
    return result.returncode == 0


def build_book(
    book_dir: Path,
    app_settings: AppSettings,
    build_all: bool = False,
    current_logger: Optional[logging.Logger] = None,
) -> BookBuildResult:
    """
    Build and deploy one book. Never raises for an ordinary build failure;
    the failure is returned as a ``FAILED`` result.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    book = book_dir.name

    try:
        if not is_registered(book, app_settings, logger_to_use):
            log_bootstrap(
                f"There is no database info for {book} -- skipping",
                "info",
                logger_to_use,
                app_settings,
            )
            log_bootstrap(
                "You should add a new book to the database before building.",
                "info",
                logger_to_use,
                app_settings,
            )
            return BookBuildResult(book, BuildStatus.SKIPPED_UNREGISTERED)

        if (book_dir / static_config.NOBUILD_MARKER).exists():
            log_bootstrap(
                f"skipping {book} due to {static_config.NOBUILD_MARKER} file",
                "info",
                logger_to_use,
                app_settings,
            )
            return BookBuildResult(book, BuildStatus.SKIPPED_NOBUILD)

        requirements = book_dir / static_config.BOOK_REQUIREMENTS_FILE
        if requirements.is_file():
            pip_install(["-r", str(requirements)], app_settings, logger_to_use, cwd=book_dir)

        run_command(build_command(build_all), app_settings, current_logger=logger_to_use, cwd=book_dir)
    except (subprocess.CalledProcessError, OSError) as e:
        log_bootstrap(
            f"{symbols.get('error', '❌')} Building {book} failed: {e}",
            "error",
            logger_to_use,
            app_settings,
        )
        return BookBuildResult(book, BuildStatus.FAILED, str(e))

    log_bootstrap(
        f"{symbols.get('success', '✅')} Built and deployed {book}",
        "success",
        logger_to_use,
        app_settings,
    )
    return BookBuildResult(book, BuildStatus.BUILT)


def build_books(
    app_settings: AppSettings,
    build_all: bool = False,
    current_logger: Optional[logging.Logger] = None,
) -> BuildSummary:
    """Build every book directory under ``books_dir``, sorted by name."""
    logger_to_use = current_logger if current_logger else module_logger
    summary = BuildSummary()
    books_dir = app_settings.books_dir
    if not books_dir.is_dir():
        log_bootstrap(
            f"{get_symbols(app_settings).get('warning', '!')} Books directory {books_dir} does not exist; nothing to build.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return summary

    log_bootstrap("Building & Deploying books", "info", logger_to_use, app_settings)
    for book_dir in sorted(p for p in books_dir.iterdir() if p.is_dir()):
        try:
            result = build_book(book_dir, app_settings, build_all, logger_to_use)
        except Exception as e:
            # Anything unexpected still only costs this one book.
            log_bootstrap(
                f"{get_symbols(app_settings).get('error', '❌')} Unexpected error while building {book_dir.name}: {e}",
                "error",
                logger_to_use,
                app_settings,
                exc_info=True,
            )
            result = BookBuildResult(book_dir.name, BuildStatus.FAILED, str(e))
        summary.results.append(result)

    log_bootstrap(
        f"Book build finished: {len(summary.built)} built, {len(summary.skipped)} skipped, {len(summary.failed)} failed.",
        "warning" if summary.failed else "info",
        logger_to_use,
        app_settings,
    )
    return summary


def build_books_task(
    app_settings: AppSettings,
    context: Dict[str, Any],
    current_logger: Optional[logging.Logger] = None,
) -> Optional[BuildSummary]:
    """Pipeline task: build books when BUILD_BOOKS is enabled."""
    if not app_settings.build_books:
        log_bootstrap("Book building disabled", "debug", current_logger, app_settings)
        return None
    return build_books(app_settings, context.get("build_all", False), current_logger)

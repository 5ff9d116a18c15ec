# rsbootstrap/errors.py
# -*- coding: utf-8 -*-
"""Exceptions raised by the bootstrap steps."""

from typing import List, Optional


class BootstrapError(Exception):
    """Base class for failures that stop or degrade the bootstrap."""


class MissingConfigurationError(BootstrapError):
    """One or more required settings are absent or empty."""

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(
            f"Missing required configuration: {', '.join(self.missing)}"
        )


class DatabaseUnavailableError(BootstrapError):
    """The database did not answer within the allowed attempts."""

    def __init__(self, attempts: int, last_error: Optional[str] = None):
        self.attempts = attempts
        self.last_error = last_error
        detail = f": {last_error}" if last_error else ""
        super().__init__(
            f"Database unreachable after {attempts} attempts{detail}"
        )


class UnexpectedDbStateError(BootstrapError):
    """`rsmanage env --checkdb` returned a status outside 0-3."""

    def __init__(self, code: int):
        self.code = code
        super().__init__(f"Unexpected result from checkdb: {code}")

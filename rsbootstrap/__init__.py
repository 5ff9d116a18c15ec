# rsbootstrap/__init__.py
# -*- coding: utf-8 -*-
"""Container entrypoint that provisions and starts a Runestone server."""

from rsbootstrap.config import SCRIPT_VERSION

__version__ = SCRIPT_VERSION

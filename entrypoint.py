#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Container entrypoint for the Runestone server.

Typical Dockerfile usage::

    ENTRYPOINT ["python3", "/srv/bootstrap/entrypoint.py"]
"""

import sys

from rsbootstrap.cli_handler import main

if __name__ == "__main__":
    sys.exit(main())

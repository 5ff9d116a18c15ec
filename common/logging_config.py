# -*- coding: utf-8 -*-
"""
Centralized logging configuration for the Runestone container bootstrap.

Every diagnostic the bootstrap emits goes through the root logger configured
here. Locally the lines are human readable and carry a uniform prefix; under
Kubernetes they are JSON objects so that the cluster log stack can parse
them.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else came in through `extra`.
_STANDARD_RECORD_KEYS = frozenset(
    [
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "exc_info",
        "exc_text",
        "stack_info",
    ]
)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Formats log records as JSON with timestamp, level, service name,
    message, source location, host/pod metadata and any `extra` fields.
    """

    def __init__(self, service_name: str = "runestone-bootstrap"):
        super().__init__()
        self.service_name = service_name
        self.hostname = os.environ.get("HOSTNAME", "unknown")
        self.pod_name = os.environ.get("POD_NAME", "unknown")
        self.namespace = os.environ.get("POD_NAMESPACE", "default")

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
            "hostname": self.hostname,
            "pod_name": self.pod_name,
            "namespace": self.namespace,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def build_console_formatter(prefix: str) -> logging.Formatter:
    """Human-readable formatter; every line carries ``prefix``."""
    return logging.Formatter(
        f"%(asctime)s - {prefix} %(levelname)s - %(message)s"
    )


def setup_logging(
    service_name: str,
    log_level: Optional[str] = None,
    prefix: str = "[RS-BOOTSTRAP]",
    enable_console: bool = True,
    enable_file: bool = False,
    log_file_path: Optional[str] = None,
) -> logging.Logger:
    """
    Set up logging for the bootstrap.

    Args:
        service_name: Name of the service, used as the logger name.
        log_level: Logging level name. Defaults to $LOG_LEVEL or INFO.
        prefix: Marker put on every human-readable line.
        enable_console: Whether to log to stdout.
        enable_file: Whether to also log (as JSON) to ``log_file_path``.
        log_file_path: Path of the log file.

    Returns:
        The service logger.
    """
    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "INFO")
    log_level = log_level.upper()

    numeric_level = getattr(logging, log_level, None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level = "INFO"

    json_formatter = JSONFormatter(service_name)
    console_formatter = build_console_formatter(prefix)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)

        # JSON in Kubernetes, human-readable format locally
        if os.environ.get("KUBERNETES_SERVICE_HOST"):
            console_handler.setFormatter(json_formatter)
        else:
            console_handler.setFormatter(console_formatter)

        root_logger.addHandler(console_handler)

    if enable_file and log_file_path:
        file_handler = logging.FileHandler(log_file_path)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(json_formatter)
        root_logger.addHandler(file_handler)

    logger = logging.getLogger(service_name)
    logger.debug(
        "Logging initialized",
        extra={
            "log_level": log_level,
            "console_enabled": enable_console,
            "file_enabled": enable_file,
            "kubernetes": bool(os.environ.get("KUBERNETES_SERVICE_HOST")),
        },
    )
    return logger

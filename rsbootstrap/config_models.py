# rsbootstrap/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for the bootstrap configuration.

This module defines the structured settings for the container entrypoint,
including defaults, type annotations, and descriptions. Field names match
the container environment variables (case-insensitive), so a plain
``AppSettings()`` picks up ``RUNESTONE_HOST``, ``BUILD_BOOKS``, ``DBURL``
and friends, and ``PostgresSettings`` picks up ``POSTGRES_*``.
"""

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rsbootstrap import config as static_config

# --- Default Static Values (can be overridden by config file/env/cli) ---
LOG_PREFIX_DEFAULT: str = "[RS-BOOTSTRAP]"

RUNESTONE_PATH_DEFAULT: str = "/srv/web2py/applications/runestone"
WEB2PY_PATH_DEFAULT: str = "/srv/web2py"
COMPONENTS_DEV_PATH_DEFAULT: str = "/srv/RunestoneComponents"
UWSGI_SOCKET_DIR_DEFAULT: str = "/run/uwsgi"
WWW_USER_DEFAULT: str = "www-data"
WEB2PY_CONFIG_DEFAULT: str = "production"

PGHOST_DEFAULT: str = "db"
PGPORT_DEFAULT: int = 5432
PGUSER_DEFAULT: str = "runestone"
PGDATABASE_DEFAULT: str = "runestone"

JOBE_SERVER_DEFAULT: str = "http://jobe"

DB_WAIT_ATTEMPTS_DEFAULT: int = 10
DB_WAIT_INTERVAL_DEFAULT: float = 2.0

SYMBOLS_DEFAULT: Dict[str, str] = dict(static_config.SYMBOLS)


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_", extra="ignore", env_ignore_empty=True
    )

    host: str = Field(default=PGHOST_DEFAULT, description="PostgreSQL host.")
    port: int = Field(default=PGPORT_DEFAULT, description="PostgreSQL port.")
    database: str = Field(
        default=PGDATABASE_DEFAULT, description="PostgreSQL database name."
    )
    user: str = Field(default=PGUSER_DEFAULT, description="PostgreSQL username.")
    password: str = Field(
        default="", description="PostgreSQL password.", repr=False
    )


class DbWaitSettings(BaseModel):
    """How long to wait for PostgreSQL before giving up."""

    attempts: int = Field(default=DB_WAIT_ATTEMPTS_DEFAULT, ge=1)
    interval_seconds: float = Field(default=DB_WAIT_INTERVAL_DEFAULT, ge=0)
    connect_timeout: int = Field(
        default=5, ge=1, description="Per-attempt connection timeout (seconds)."
    )
    fatal_on_exhaustion: bool = Field(
        default=True,
        description="Abort startup when the database never became reachable.",
    )


class ServiceSettings(BaseModel):
    """Commands and policies for the long-running services."""

    proxy_command: List[str] = Field(
        default_factory=lambda: ["nginx", "-g", "daemon off;"],
        description="Reverse proxy, run in the foreground so it can be supervised.",
    )
    uwsgi_command: List[str] = Field(
        default_factory=lambda: [
            "/usr/local/bin/uwsgi",
            "--ini",
            "/etc/uwsgi/sites/runestone.ini",
        ]
    )
    bookserver_executable: str = "bookserver"
    bookserver_root: str = "/ns"
    bookserver_config: str = "development"
    bookserver_error_path: str = "/tmp"
    gunicorn_config: str = "/etc/gunicorn/gunicorn.conf.py"
    gunicorn_bind: str = "unix:/run/gunicorn.sock"

    max_restarts: int = Field(
        default=3, ge=0, description="Restarts allowed per service before giving up."
    )
    stop_timeout: float = Field(
        default=10.0, ge=0, description="Seconds to wait after the stop signal before SIGKILL."
    )
    poll_interval: float = Field(
        default=5.0, gt=0, description="Seconds between supervisor health polls."
    )


class AppSettings(BaseSettings):
    """Main bootstrap settings."""

    model_config = SettingsConfigDict(
        extra="ignore", env_ignore_empty=True, env_nested_delimiter="__"
    )

    runestone_host: str = Field(
        default="", description="Public host name of this server (required)."
    )
    certbot_email: Optional[str] = Field(
        default=None,
        description="Contact e-mail for certbot; no certificate is requested without it.",
    )
    web2py_config: str = Field(
        default=WEB2PY_CONFIG_DEFAULT,
        description="web2py configuration name; 'development' relaxes permissions.",
    )
    build_books: bool = Field(
        default=False, description="Build and deploy every book on startup."
    )
    dburl: Optional[str] = Field(
        default=None, description="Connection URL used for the readiness probe."
    )
    async_dev_dburl: Optional[str] = Field(
        default=None, description="Async connection URL handed to BookServer."
    )

    runestone_path: Path = Path(RUNESTONE_PATH_DEFAULT)
    web2py_path: Path = Path(WEB2PY_PATH_DEFAULT)
    books_path: Optional[Path] = Field(
        default=None, description="Defaults to <runestone_path>/books."
    )
    components_dev_path: Path = Path(COMPONENTS_DEV_PATH_DEFAULT)
    uwsgi_socket_dir: Path = Path(UWSGI_SOCKET_DIR_DEFAULT)
    state_file: Path = static_config.STATE_FILE_PATH
    pgpass_path: Path = Field(default_factory=lambda: Path.home() / ".pgpass")
    www_user: str = WWW_USER_DEFAULT

    jobe_server: str = JOBE_SERVER_DEFAULT
    jobe_key: str = ""

    log_prefix: str = Field(
        default=LOG_PREFIX_DEFAULT,
        description="Prefix for every log line written by the bootstrap.",
    )

    pg: PostgresSettings = Field(default_factory=PostgresSettings)
    db_wait: DbWaitSettings = Field(default_factory=DbWaitSettings)
    services: ServiceSettings = Field(default_factory=ServiceSettings)

    symbols: Dict[str, str] = Field(
        default_factory=lambda: dict(SYMBOLS_DEFAULT)
    )

    @property
    def is_development(self) -> bool:
        return self.web2py_config == "development"

    @property
    def books_dir(self) -> Path:
        return self.books_path or self.runestone_path / "books"

    @property
    def log_dir(self) -> Path:
        return self.web2py_path / "logs"

    @property
    def uwsgi_log_file(self) -> Path:
        return self.log_dir / "uwsgi.log"

    @property
    def asgi_log_file(self) -> Path:
        return self.log_dir / "asgi.log"

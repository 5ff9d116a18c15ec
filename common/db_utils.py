import logging
from typing import Optional

import psycopg
from psycopg.conninfo import make_conninfo

from rsbootstrap.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def build_conninfo(app_settings: AppSettings) -> str:
    """
    Return the connection string for the Runestone database.

    ``DBURL`` wins when it is set; otherwise the string is assembled from the
    ``POSTGRES_*`` settings.
    """
    if app_settings.dburl:
        return app_settings.dburl
    pg = app_settings.pg
    return make_conninfo(
        host=pg.host,
        port=str(pg.port),
        dbname=pg.database,
        user=pg.user,
        password=pg.password or None,
    )


def ping_database(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Open a connection and run ``SELECT 1``.

    Raises:
        psycopg.Error: If the server cannot be reached or the query fails.
    """
    logger_to_use = current_logger if current_logger else module_logger
    conninfo = build_conninfo(app_settings)
    with psycopg.connect(
        conninfo, connect_timeout=app_settings.db_wait.connect_timeout
    ) as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
    logger_to_use.debug("Database answered SELECT 1.")

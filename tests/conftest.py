# tests/conftest.py
import logging
from types import SimpleNamespace
from unittest.mock import MagicMock

import psutil
import pytest

from rsbootstrap.config_models import AppSettings, DbWaitSettings, PostgresSettings

# Variables the container normally sets; tests must not inherit them.
_CONTAINER_ENV = [
    "POSTGRES_PASSWORD",
    "POSTGRES_USER",
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_DATABASE",
    "RUNESTONE_HOST",
    "CERTBOT_EMAIL",
    "WEB2PY_CONFIG",
    "BUILD_BOOKS",
    "DBURL",
    "ASYNC_DEV_DBURL",
    "RUNESTONE_PATH",
    "WEB2PY_PATH",
    "BOOKS_PATH",
    "RS_BOOTSTRAP_CONFIG",
    "KUBERNETES_SERVICE_HOST",
]


@pytest.fixture(autouse=True)
def clean_container_env(monkeypatch):
    for name in _CONTAINER_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mock_logger():
    """A mock logger for asserting on log calls."""
    return MagicMock(spec=logging.Logger)


PSUTIL_PROCESS = psutil.Process


def make_psutil_process(pid, children=()):
    process = MagicMock(spec=PSUTIL_PROCESS)
    process.pid = pid
    process.children.return_value = list(children)
    return process


@pytest.fixture
def mock_psutil(mocker):
    """
    psutil stand-ins for supervised processes started through a mocked Popen.

    Every process exits within the stop timeout unless a test changes
    ``wait_procs``.
    """
    process = mocker.patch(
        "common.process_supervisor.psutil.Process",
        side_effect=lambda pid: make_psutil_process(pid),
    )
    wait_procs = mocker.patch(
        "common.process_supervisor.psutil.wait_procs",
        side_effect=lambda procs, timeout=None: (list(procs), []),
    )
    return SimpleNamespace(Process=process, wait_procs=wait_procs, make=make_psutil_process)


@pytest.fixture
def app_settings(tmp_path):
    """Settings whose every path lives under tmp_path."""
    web2py = tmp_path / "web2py"
    runestone = web2py / "applications" / "runestone"
    return AppSettings(
        runestone_host="runestone.example.edu",
        certbot_email=None,
        web2py_config="production",
        build_books=False,
        dburl="postgresql://runestone:secret@db/runestone",
        async_dev_dburl="postgresql+asyncpg://runestone:secret@db/runestone",
        runestone_path=runestone,
        web2py_path=web2py,
        components_dev_path=tmp_path / "RunestoneComponents",
        uwsgi_socket_dir=tmp_path / "run" / "uwsgi",
        state_file=tmp_path / "state" / "initialized.stamp",
        pgpass_path=tmp_path / "home" / ".pgpass",
        pg=PostgresSettings(
            host="db", port=5432, database="runestone", user="runestone", password="secret"
        ),
        db_wait=DbWaitSettings(attempts=3, interval_seconds=0),
        symbols={
            "info": "ℹ️",
            "warning": "!",
            "error": "❌",
            "success": "✅",
            "gear": "⚙️",
            "critical": "🔥",
            "rocket": "🚀",
            "step": "➡️",
        },
    )

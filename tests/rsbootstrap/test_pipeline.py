# tests/rsbootstrap/test_pipeline.py
# -*- coding: utf-8 -*-
"""
End-to-end tests of the bootstrap pipeline with every external command
replaced by a fake.
"""

import signal
import subprocess
from unittest.mock import MagicMock

import psycopg
import pytest

from rsbootstrap.config_models import PostgresSettings
from rsbootstrap.pipeline import build_orchestrator, run_bootstrap
from rsbootstrap.state_manager import BootstrapState, StateStore


class FakeCommands:
    """Stands in for subprocess.run and records every command line."""

    def __init__(self, checkdb_code=3):
        self.checkdb_code = checkdb_code
        self.commands = []

    def __call__(self, command, **kwargs):
        self.commands.append(list(command))
        returncode = 0
        if command[:3] == ["rsmanage", "env", "--checkdb"]:
            returncode = self.checkdb_code
        return subprocess.CompletedProcess(command, returncode, stdout="", stderr="")

    def ran(self, *prefix):
        return [c for c in self.commands if c[: len(prefix)] == list(prefix)]


@pytest.fixture(autouse=True)
def mock_signal(mocker):
    return mocker.patch("rsbootstrap.pipeline.signal.signal")


@pytest.fixture
def fake_commands(mocker):
    fake = FakeCommands()
    mocker.patch("common.command_utils.subprocess.run", side_effect=fake)
    return fake


@pytest.fixture
def mock_ping(mocker):
    return mocker.patch("rsbootstrap.db_readiness.ping_database")


@pytest.fixture
def mock_popen(mocker, mock_psutil):
    popen = mocker.patch("common.process_supervisor.subprocess.Popen")
    popen.return_value.poll.return_value = None
    return popen


def test_pipeline_order(app_settings, mock_logger):
    orchestrator = build_orchestrator(app_settings, mock_logger)

    assert [(t.name, t.fatal) for t in orchestrator.tasks] == [
        ("Check required configuration", True),
        ("First-run initialization", True),
        ("Wait for database", True),
        ("Check database state", True),
        ("Prepare filesystem", True),
        ("Install development components", False),
        ("Relax development permissions", False),
        ("Register instructors", False),
        ("Register students", False),
        ("Launch services", True),
        ("Build books", False),
    ]
    assert isinstance(orchestrator.context["state_store"], StateStore)
    assert orchestrator.context["build_all"] is False


def test_fresh_volume_end_to_end(app_settings, fake_commands, mock_ping, mock_popen, mock_logger):
    fake_commands.checkdb_code = 0
    app_settings.build_books = True
    book = app_settings.books_dir / "thinkcspy"
    book.mkdir(parents=True)

    assert run_bootstrap(app_settings, follow=False, current_logger=mock_logger) == 0

    assert fake_commands.ran("rsmanage", "initdb") == [["rsmanage", "initdb"]]
    assert fake_commands.ran("runestone", "build") == [["runestone", "build", "--all", "deploy"]]
    assert fake_commands.ran("chown")
    assert (app_settings.runestone_path / "private" / "auth.key").is_file()
    assert (app_settings.runestone_path / "models" / "1.py").is_file()
    assert app_settings.pgpass_path.is_file()
    assert StateStore.from_settings(app_settings).state is BootstrapState.READY
    assert [c.args[0][0] for c in mock_popen.call_args_list] == [
        "nginx",
        "/usr/local/bin/uwsgi",
        "bookserver",
    ]


def test_restart_of_consistent_volume(app_settings, fake_commands, mock_ping, mock_popen, mock_logger):
    store = StateStore.from_settings(app_settings)
    store.set_state(BootstrapState.READY)
    app_settings.build_books = True
    (app_settings.books_dir / "fopp").mkdir(parents=True)

    assert run_bootstrap(app_settings, follow=False, current_logger=mock_logger) == 0

    # No first-run work and no remedial database command.
    assert not fake_commands.ran("rsmanage", "initdb")
    assert not fake_commands.ran("rsmanage", "migrate")
    assert not app_settings.pgpass_path.exists()
    assert fake_commands.ran("runestone", "build") == [["runestone", "build", "deploy"]]
    assert mock_popen.call_count == 3


def test_unexpected_checkdb_code_exits_before_filesystem(app_settings, fake_commands, mock_ping, mock_popen, mock_logger):
    fake_commands.checkdb_code = 4

    with pytest.raises(SystemExit) as excinfo:
        run_bootstrap(app_settings, follow=False, current_logger=mock_logger)

    assert excinfo.value.code == 1
    assert not fake_commands.ran("chown")
    mock_popen.assert_not_called()
    mock_logger.critical.assert_any_call(
        "🔥 Unexpected result from checkdb: 4", exc_info=False
    )


def test_missing_configuration_touches_nothing(app_settings, fake_commands, mock_ping, mock_popen, mock_logger):
    app_settings.pg = PostgresSettings(password="")

    with pytest.raises(SystemExit) as excinfo:
        run_bootstrap(app_settings, follow=False, current_logger=mock_logger)

    assert excinfo.value.code == 1
    assert fake_commands.commands == []
    assert not app_settings.state_file.exists()
    assert not app_settings.pgpass_path.exists()
    mock_ping.assert_not_called()


def test_unreachable_database_is_fatal(app_settings, fake_commands, mock_ping, mock_popen, mock_logger, mocker):
    StateStore.from_settings(app_settings).set_state(BootstrapState.READY)
    mock_ping.side_effect = psycopg.OperationalError("refused")
    mocker.patch("rsbootstrap.db_readiness.time.sleep")

    with pytest.raises(SystemExit):
        run_bootstrap(app_settings, follow=False, current_logger=mock_logger)

    assert not fake_commands.ran("rsmanage", "env", "--checkdb")
    mock_popen.assert_not_called()


def test_failed_launch_stops_started_services(app_settings, fake_commands, mock_ping, mock_psutil, mocker, mock_logger):
    StateStore.from_settings(app_settings).set_state(BootstrapState.READY)
    nginx = MagicMock()
    nginx.poll.return_value = None
    nginx_handle = mock_psutil.make(1)
    mock_psutil.Process.side_effect = None
    mock_psutil.Process.return_value = nginx_handle
    mocker.patch(
        "common.process_supervisor.subprocess.Popen",
        side_effect=[nginx, FileNotFoundError(2, "No such file", "/usr/local/bin/uwsgi")],
    )

    with pytest.raises(SystemExit):
        run_bootstrap(app_settings, follow=False, current_logger=mock_logger)

    nginx_handle.send_signal.assert_called_once_with(signal.SIGTERM)


def test_non_fatal_roster_failure_still_launches(app_settings, fake_commands, mock_ping, mock_popen, mock_logger, mocker):
    StateStore.from_settings(app_settings).set_state(BootstrapState.READY)
    mocker.patch("rsbootstrap.pipeline.instructors_task", side_effect=RuntimeError("bad csv"))

    assert run_bootstrap(app_settings, follow=False, current_logger=mock_logger) == 0
    assert mock_popen.call_count == 3


def test_follow_hands_supervisor_to_sentinel(app_settings, fake_commands, mock_ping, mock_popen, mock_logger, mocker):
    StateStore.from_settings(app_settings).set_state(BootstrapState.READY)
    sentinel_cls = mocker.patch("rsbootstrap.pipeline.ForegroundSentinel")
    sentinel_cls.return_value.run.return_value = 0

    assert run_bootstrap(app_settings, current_logger=mock_logger) == 0

    supervisor = sentinel_cls.call_args.args[1]
    assert [s.name for s in supervisor.services] == ["nginx", "uwsgi", "bookserver"]
    sentinel_cls.return_value.run.assert_called_once()


def test_interrupt_handlers_installed_before_steps(app_settings, mock_signal, mocker, mock_logger):
    mocker.patch("rsbootstrap.pipeline.verify_preconditions", side_effect=SystemExit(1))

    with pytest.raises(SystemExit):
        run_bootstrap(app_settings, follow=False, current_logger=mock_logger)

    mock_signal.assert_any_call(signal.SIGTERM, signal.default_int_handler)
    mock_signal.assert_any_call(signal.SIGINT, signal.default_int_handler)


def test_interrupt_during_book_build_stops_services(app_settings, fake_commands, mock_ping, mock_popen, mock_logger, mocker):
    StateStore.from_settings(app_settings).set_state(BootstrapState.READY)
    mocker.patch("rsbootstrap.pipeline.build_books_task", side_effect=KeyboardInterrupt)
    sentinel_cls = mocker.patch("rsbootstrap.pipeline.ForegroundSentinel")
    stop_all = mocker.patch("common.process_supervisor.ProcessSupervisor.stop_all")

    assert run_bootstrap(app_settings, current_logger=mock_logger) == 0

    assert mock_popen.call_count == 3
    stop_all.assert_called_once()
    sentinel_cls.assert_not_called()
    mock_logger.warning.assert_any_call(
        "Interrupted during bootstrap, shutting down...", exc_info=False
    )

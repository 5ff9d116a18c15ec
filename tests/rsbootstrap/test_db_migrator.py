# tests/rsbootstrap/test_db_migrator.py
# -*- coding: utf-8 -*-
"""
Tests for the checkdb state dispatch.
"""

import subprocess

import pytest

from rsbootstrap.db_migrator import (
    DbState,
    apply_database_state,
    check_database_state,
    classify,
    migrate_database_task,
    remedial_command,
)
from rsbootstrap.errors import UnexpectedDbStateError
from rsbootstrap.state_manager import BootstrapState, StateStore


@pytest.fixture
def mock_run_command(mocker):
    return mocker.patch("rsbootstrap.db_migrator.run_command")


@pytest.mark.parametrize(
    "code, command, build_all",
    [
        (0, ["rsmanage", "initdb"], True),
        (1, ["rsmanage", "initdb", "--reset", "--force"], True),
        (2, ["rsmanage", "migrate", "--fake"], False),
    ],
)
def test_apply_runs_remedy(app_settings, mock_run_command, code, command, build_all):
    assert apply_database_state(code, app_settings) is build_all

    mock_run_command.assert_called_once()
    assert mock_run_command.call_args.args[0] == command


def test_apply_consistent_runs_nothing(app_settings, mock_run_command, mock_logger):
    assert apply_database_state(3, app_settings, mock_logger) is False

    mock_run_command.assert_not_called()
    mock_logger.info.assert_called_once_with(
        "All is good, no initialization needed", exc_info=False
    )


@pytest.mark.parametrize("code", [-1, 4, 127])
def test_apply_unexpected_code(app_settings, mock_run_command, mock_logger, code):
    with pytest.raises(UnexpectedDbStateError) as excinfo:
        apply_database_state(code, app_settings, mock_logger)

    assert excinfo.value.code == code
    mock_run_command.assert_not_called()
    mock_logger.critical.assert_called_once_with(
        f"🔥 Unexpected result from checkdb: {code}", exc_info=False
    )


def test_apply_remedy_failure_propagates(app_settings, mock_run_command):
    mock_run_command.side_effect = subprocess.CalledProcessError(1, ["rsmanage", "initdb"])

    with pytest.raises(subprocess.CalledProcessError):
        apply_database_state(0, app_settings)


def test_classify_and_remedial_command():
    assert classify(2) is DbState.SCHEMA_STALE
    assert remedial_command(DbState.CONSISTENT) is None
    assert remedial_command(DbState.UNINITIALIZED) == ["rsmanage", "initdb"]


def test_check_database_state_returns_exit_status(app_settings, mock_run_command, mock_logger):
    mock_run_command.return_value = subprocess.CompletedProcess([], 2)

    assert check_database_state(app_settings, mock_logger) == 2

    mock_run_command.assert_called_once_with(
        ["rsmanage", "env", "--checkdb"],
        app_settings,
        check=False,
        current_logger=mock_logger,
    )
    mock_logger.info.assert_any_call("Got result of 2", exc_info=False)


class TestMigrateDatabaseTask:
    def test_fresh_database_sets_build_all(self, app_settings, mock_run_command):
        mock_run_command.side_effect = [subprocess.CompletedProcess([], 0), None]
        store = StateStore.from_settings(app_settings)
        context = {"state_store": store, "build_all": False}

        assert migrate_database_task(app_settings, context) is True

        assert context["build_all"] is True
        assert store.state is BootstrapState.READY
        assert mock_run_command.call_args_list[1].args[0] == ["rsmanage", "initdb"]

    def test_unexpected_code_leaves_state_alone(self, app_settings, mock_run_command):
        mock_run_command.return_value = subprocess.CompletedProcess([], 4)
        store = StateStore.from_settings(app_settings)
        store.set_state(BootstrapState.INITIALIZED)
        context = {"state_store": store, "build_all": False}

        with pytest.raises(UnexpectedDbStateError):
            migrate_database_task(app_settings, context)

        assert context["build_all"] is False
        assert StateStore.from_settings(app_settings).state is BootstrapState.INITIALIZED

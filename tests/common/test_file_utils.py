import stat

import pytest
from pytest_mock import MockerFixture

from common.file_utils import (
    add_group_write,
    atomic_write_text,
    change_owner,
    ensure_directory,
    ensure_file,
)


def test_ensure_directory_creates_parents(tmp_path, app_settings, mock_logger):
    """Test that missing directories are created with their parents."""
    target = tmp_path / "a" / "b" / "c"

    ensure_directory(target, app_settings, mock_logger)

    assert target.is_dir()
    mock_logger.info.assert_called_once_with(
        f"✅ Created directory: {target}", exc_info=False
    )


def test_ensure_directory_existing_is_noop(tmp_path, app_settings, mock_logger):
    ensure_directory(tmp_path, app_settings, mock_logger)

    mock_logger.info.assert_not_called()


def test_ensure_file_creates_empty_file(tmp_path, app_settings):
    target = tmp_path / "logs" / "uwsgi.log"

    ensure_file(target, app_settings)

    assert target.is_file()
    assert target.read_text() == ""


def test_ensure_file_keeps_existing_content(tmp_path, app_settings):
    target = tmp_path / "uwsgi.log"
    target.write_text("old lines\n")

    ensure_file(target, app_settings)

    assert target.read_text() == "old lines\n"


def test_change_owner(mocker: MockerFixture, tmp_path, app_settings):
    """Test chown with and without recursion."""
    mock_run_command = mocker.patch("common.file_utils.run_command")

    change_owner(tmp_path, "www-data", app_settings)
    change_owner(tmp_path, "www-data", app_settings, recursive=True)

    assert mock_run_command.call_args_list[0].args[0] == ["chown", "www-data", str(tmp_path)]
    assert mock_run_command.call_args_list[1].args[0] == [
        "chown",
        "-R",
        "www-data",
        str(tmp_path),
    ]


def test_add_group_write(mocker: MockerFixture, tmp_path, app_settings):
    mock_run_command = mocker.patch("common.file_utils.run_command")

    add_group_write(tmp_path, app_settings)

    mock_run_command.assert_called_once_with(
        ["chmod", "-R", "g+w", str(tmp_path)],
        app_settings,
        current_logger=None,
    )


def test_atomic_write_text(tmp_path):
    target = tmp_path / "nested" / "state.yaml"

    atomic_write_text(target, "state: ready\n", mode=0o640)

    assert target.read_text(encoding="utf-8") == "state: ready\n"
    assert stat.S_IMODE(target.stat().st_mode) == 0o640
    assert [p.name for p in target.parent.iterdir()] == ["state.yaml"]


def test_atomic_write_text_replaces_existing(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("before")

    atomic_write_text(target, "after")

    assert target.read_text(encoding="utf-8") == "after"


def test_atomic_write_text_cleans_up_on_failure(mocker: MockerFixture, tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("before")
    mocker.patch("common.file_utils.os.replace", side_effect=OSError("disk full"))

    with pytest.raises(OSError):
        atomic_write_text(target, "after")

    assert target.read_text() == "before"
    assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

from pytest_mock import MockerFixture

from rsbootstrap.filesystem import prepare_filesystem, relax_permissions_for_development


def test_prepare_filesystem_creates_and_chowns(mocker: MockerFixture, app_settings):
    mock_run_command = mocker.patch("common.file_utils.run_command")

    prepare_filesystem(app_settings)

    assert app_settings.log_dir.is_dir()
    assert app_settings.uwsgi_log_file.is_file()
    assert app_settings.uwsgi_socket_dir.is_dir()
    assert (app_settings.runestone_path / "databases").is_dir()
    assert [c.args[0] for c in mock_run_command.call_args_list] == [
        ["chown", "-R", "www-data", str(app_settings.web2py_path)],
        ["chown", "www-data", str(app_settings.runestone_path / "databases")],
        ["chown", "-R", "www-data", str(app_settings.uwsgi_socket_dir)],
    ]


def test_prepare_filesystem_is_idempotent(mocker: MockerFixture, app_settings):
    mocker.patch("common.file_utils.run_command")
    app_settings.log_dir.mkdir(parents=True)
    app_settings.uwsgi_log_file.write_text("previous run\n")

    prepare_filesystem(app_settings)
    prepare_filesystem(app_settings)

    assert app_settings.uwsgi_log_file.read_text() == "previous run\n"


def test_relax_permissions_production_is_noop(mocker: MockerFixture, app_settings):
    mock_run_command = mocker.patch("common.file_utils.run_command")

    assert relax_permissions_for_development(app_settings) is False
    mock_run_command.assert_not_called()


def test_relax_permissions_development(mocker: MockerFixture, app_settings):
    mock_run_command = mocker.patch("common.file_utils.run_command")
    app_settings.web2py_config = "development"

    assert relax_permissions_for_development(app_settings) is True
    mock_run_command.assert_called_once()
    assert mock_run_command.call_args.args[0] == [
        "chmod",
        "-R",
        "g+w",
        str(app_settings.runestone_path),
    ]

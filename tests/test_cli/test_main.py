"""Tests for CLI main module."""

import pytest
from unittest.mock import MagicMock, patch

import typer
from typer.testing import CliRunner

from bootapp.cli.main import _prompter, _run_cli_command, app
from bootapp.errors import NetworkConflict
from bootapp.prompt import InteractivePrompter, PolicyPrompter


@patch("bootapp.cli.main.BootappEngine")
@patch("bootapp.cli.main.console")
def test_run_cli_command_success(mock_console, mock_engine):
    """Test the CLI command runner on a successful execution."""
    mock_handler = MagicMock()

    _run_cli_command(mock_handler, attach=True)

    mock_engine.assert_called_once()
    mock_handler.assert_called_once_with(mock_engine.return_value, attach=True)
    mock_console.print.assert_not_called()


@patch("bootapp.cli.main.BootappEngine")
@patch("bootapp.cli.main.console")
def test_run_cli_command_bootapp_error(mock_console, mock_engine):
    """A domain error is printed and turned into exit code 1."""
    mock_handler = MagicMock(side_effect=NetworkConflict("default[shop]", "legacy", "10.9.0.0/16"))

    with pytest.raises(typer.Exit) as exc_info:
        _run_cli_command(mock_handler)

    mock_console.print.assert_called_once_with(
        "[red]Error:[/red] default[shop] conflicts with network legacy, subnet 10.9.0.0/16"
    )
    assert exc_info.value.exit_code == 1


@patch("bootapp.cli.main.BootappEngine")
@patch("bootapp.cli.main.console")
def test_run_cli_command_passes_prompter(mock_console, mock_engine):
    _run_cli_command(MagicMock(), yes=True)

    prompter = mock_engine.call_args.kwargs["prompter"]
    assert isinstance(prompter, PolicyPrompter)
    assert prompter.allow is True


def test_prompter_selection():
    assert _prompter(False, False).__class__ is InteractivePrompter
    assert _prompter(False, True).allow is False


@patch("bootapp.cli.main.up_project")
@patch("bootapp.cli.main.BootappEngine")
def test_up_options(mock_engine, mock_up):
    result = CliRunner().invoke(app, ["up", "-a", "--pull"])

    assert result.exit_code == 0
    mock_up.assert_called_once_with(mock_engine.return_value, attach=True, pull=True)


@patch("bootapp.cli.main.BootappEngine")
def test_up_yes_and_no_input_conflict(mock_engine):
    result = CliRunner().invoke(app, ["up", "--yes", "--no-input"])

    assert result.exit_code == 1
    mock_engine.assert_not_called()


@patch("bootapp.cli.main.list_project")
@patch("bootapp.cli.main.BootappEngine")
def test_ls_all(mock_engine, mock_list):
    result = CliRunner().invoke(app, ["ls", "--all"])

    assert result.exit_code == 0
    mock_list.assert_called_once_with(mock_engine.return_value, show_all=True)


@patch("bootapp.cli.main.down_project")
@patch("bootapp.cli.main.BootappEngine")
def test_down(mock_engine, mock_down):
    result = CliRunner().invoke(app, ["down"])

    assert result.exit_code == 0
    mock_down.assert_called_once_with(mock_engine.return_value)

"""Basic tests for CLI functionality."""

import pytest

from flashdeck.cli.app import __version__


def test_help_command(cli_runner, cli_app):
    """Help lists every top-level command."""
    result = cli_runner.invoke(cli_app, ["--help"])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    for command in ("ports", "firmware", "flash", "config"):
        assert command in result.output


def test_version_flag(cli_runner, cli_app):
    result = cli_runner.invoke(cli_app, ["--version"])

    assert result.exit_code == 0
    assert f"Flashdeck v{__version__}" in result.output


@pytest.mark.parametrize(
    ("command", "subcommands"),
    [
        (["firmware"], ["roles", "versions", "list", "select"]),
        (["config"], ["show"]),
    ],
)
def test_group_help_shows_subcommands(cli_runner, cli_app, clean_env, command, subcommands):
    result = cli_runner.invoke(cli_app, [*command, "--help"])

    assert result.exit_code == 0
    for name in subcommands:
        assert name in result.output


def test_missing_config_file_exits_with_error(cli_runner, cli_app, clean_env):
    result = cli_runner.invoke(cli_app, ["-c", "nope.yaml", "config", "show"])

    assert result.exit_code == 1

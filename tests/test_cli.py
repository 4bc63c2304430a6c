"""Tests for the connwatch command-line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from connwatch import __version__
from connwatch.cli import main
from connwatch.core.errors import RegistrationError
from connwatch.core.status import Status
from connwatch.notifiers.simulated import SimulatedNotifier

runner = CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"log_file": None, "notifier": {"backend": "simulated"}}))
    return path


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("connwatch.cli.setup_logging") as mock_setup:
        yield mock_setup


def _lines(result):
    return [line for line in result.output.splitlines() if line]


class TestCLI:
    def test_version(self, config_file):
        """Test --version output."""
        result = runner.invoke(main, ["-c", str(config_file), "--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_verbose_sets_debug_logging(self, config_file, no_logging_setup):
        """Test --verbose configures debug logging."""
        runner.invoke(main, ["-c", str(config_file), "-v", "config", "show"])
        no_logging_setup.assert_called_once_with("debug", None)

    def test_watch_replay_deduplicates(self, config_file):
        """Test watch prints each distinct transition once."""
        result = runner.invoke(
            main,
            ["-c", str(config_file), "watch", "--replay", "available,available,losing,lost,lost,available"],
        )

        assert result.exit_code == 0
        assert _lines(result) == [
            "Network Status Unavailable",
            "Network Status Available",
            "Network Status Losing",
            "Network Status Lost",
            "Network Status Available",
        ]

    def test_watch_count_stops_early(self, config_file):
        """Test --count limits the number of printed transitions."""
        result = runner.invoke(
            main,
            ["-c", str(config_file), "watch", "--count", "2", "--replay", "available,lost,available"],
        )

        assert result.exit_code == 0
        assert _lines(result)[1:] == ["Network Status Available", "Network Status Lost"]

    def test_watch_replay_rejects_unknown_event(self, config_file):
        """Test an unknown replay event is a usage error."""
        result = runner.invoke(main, ["-c", str(config_file), "watch", "--replay", "available,flaky"])
        assert result.exit_code == 2
        assert "flaky" in result.output

    def test_watch_replay_requires_simulated_backend(self, config_file):
        """Test --replay is refused for real backends."""
        result = runner.invoke(
            main, ["-c", str(config_file), "watch", "--backend", "interface", "--replay", "available"]
        )
        assert result.exit_code == 1
        assert "simulated backend" in result.output

    @patch("connwatch.cli.create_notifier")
    def test_watch_registration_error(self, mock_create, config_file):
        """Test a refused registration is reported as an error, not a status."""
        mock_create.return_value = SimulatedNotifier(refuse_with=RegistrationError("permission denied"))

        result = runner.invoke(main, ["-c", str(config_file), "watch"])

        assert result.exit_code == 1
        assert "Cannot observe network: permission denied" in result.output
        assert "Network Status Available" not in result.output

    def test_watch_invalid_backend_config(self, tmp_path):
        """Test an unknown configured backend fails cleanly."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"log_file": None, "notifier": {"backend": "carrier-pigeon"}}))

        result = runner.invoke(main, ["-c", str(path), "watch"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    @patch("connwatch.cli.InterfaceNotifier.snapshot", return_value=Status.AVAILABLE)
    def test_status(self, mock_snapshot, config_file):
        """Test status prints the current classification."""
        result = runner.invoke(main, ["-c", str(config_file), "status"])

        assert result.exit_code == 0
        assert "Network Status Available" in result.output
        mock_snapshot.assert_called_once()

    @patch("connwatch.cli.InterfaceNotifier.snapshot", side_effect=OSError("no netlink"))
    def test_status_error(self, mock_snapshot, config_file):
        """Test status reports interface read failures."""
        result = runner.invoke(main, ["-c", str(config_file), "status"])

        assert result.exit_code == 1
        assert "no netlink" in result.output

    def test_config_show(self, config_file):
        """Test config show lists the effective settings."""
        result = runner.invoke(main, ["-c", str(config_file), "config", "show"])

        assert result.exit_code == 0
        assert "Backend: simulated" in result.output
        assert "Stream buffer size: 16" in result.output

    def test_config_export_import(self, config_file, tmp_path):
        """Test exporting then importing configuration through the CLI."""
        exported = tmp_path / "exported.yaml"

        result = runner.invoke(main, ["-c", str(config_file), "config", "export", str(exported), "--format", "yaml"])
        assert result.exit_code == 0
        assert exported.exists()

        target = tmp_path / "target.json"
        result = runner.invoke(main, ["-c", str(target), "config", "import", str(exported), "--format", "yaml"])
        assert result.exit_code == 0
        assert json.loads(target.read_text())["notifier"]["backend"] == "simulated"

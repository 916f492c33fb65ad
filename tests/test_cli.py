"""Tests for ptyshell.cli (typer commands)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from ptyshell.cli import app
from ptyshell.pty import PtySession

runner = CliRunner()


class TestCredentialsCommand:
    def test_root_is_rejected(self) -> None:
        result = runner.invoke(app, ["credentials", "--user", "root"])
        assert result.exit_code == 1
        assert "invalid uid and gid" in result.output

    def test_missing_user(self) -> None:
        result = runner.invoke(app, ["credentials", "--user", "ptyshell-no-such-user-8d1f"])
        assert result.exit_code == 1
        assert "uid lookup failed" in result.output


class TestExecCommand:
    def test_runs_command_in_pty(self) -> None:
        result = runner.invoke(app, ["exec", "echo cli-exec-ok"])
        assert result.exit_code == 0
        assert "cli-exec-ok" in result.output

    def test_propagates_exit_code(self) -> None:
        result = runner.invoke(app, ["exec", "exit 4"])
        assert result.exit_code == 4

    def test_command_is_required(self) -> None:
        result = runner.invoke(app, ["exec"])
        assert result.exit_code == 2

    def test_blank_command_rejected(self) -> None:
        result = runner.invoke(app, ["exec", "   "])
        assert result.exit_code == 2
        assert "must not be blank" in result.output

    def test_resize_failure_closes_session(self) -> None:
        original_close = PtySession.close
        with patch.object(
            PtySession, "close", autospec=True, side_effect=original_close
        ) as close:
            result = runner.invoke(app, ["exec", "true", "--cols", "70000"])
        assert result.exit_code == 1
        assert "set pty size failed" in result.output
        close.assert_called_once()

    def test_missing_shell(self, tmp_path: Path) -> None:
        config = tmp_path / "ptyshell.json"
        config.write_text(json.dumps({"shell": {"shell": "/nonexistent/ptyshell-sh"}}))
        result = runner.invoke(app, ["exec", "true", "--config", str(config)])
        assert result.exit_code == 1
        assert "Failed to start pty" in result.output


class TestRecordCommand:
    def test_records_transcript(self, tmp_path: Path) -> None:
        config = tmp_path / "ptyshell.json"
        config.write_text(
            json.dumps(
                {
                    "recorder": {
                        "screen_command": "sh",
                        "record_command": "sh",
                        "logger_command": "echo replayed {ipc_file} > {log_file}",
                        "probe_interval": 0.3,
                        "flush_timeout": 1.0,
                    }
                }
            )
        )
        log_file = tmp_path / "session.log"
        result = runner.invoke(
            app,
            [
                "record",
                "--log-file",
                str(log_file),
                "--ipc-file",
                str(tmp_path / "ipc"),
                "--config",
                str(config),
            ],
        )
        assert result.exit_code == 0, result.output
        assert f"Transcript: {log_file}" in result.output
        assert "replayed" in log_file.read_text()

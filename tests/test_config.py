"""Tests for ptyshell.config (PtyShellConfig.load and defaults)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from ptyshell.config import PtyShellConfig, RecorderConfig, ShellConfig


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "PTYSHELL_SHELL",
        "PTYSHELL_RUN_AS_USER",
        "PTYSHELL_IDENTITY_BACKEND",
        "PTYSHELL_SCREEN_BUFFER_SIZE",
        "PTYSHELL_SESSION_LOGGER",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep load_dotenv() from picking up a stray .env in the repo
    monkeypatch.chdir(tmp_path)


class TestDefaults:
    def test_shell_defaults(self) -> None:
        config = ShellConfig()
        assert config.shell == "sh"
        assert config.command_args == ["-c"]
        assert config.term == "xterm-256color"
        assert config.default_lang == "C.UTF-8"
        assert config.identity_backend == "native"

    def test_home_dir_follows_user(self) -> None:
        assert ShellConfig(run_as_user="alice").home_dir == "/home/alice"

    def test_recorder_defaults(self) -> None:
        config = RecorderConfig()
        assert config.screen_buffer_size == 30_000
        assert config.exit_command == "exit"
        assert config.logger_timeout > config.ready_timeout

    def test_bad_backend_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ShellConfig(identity_backend="ldap")  # type: ignore[arg-type]


class TestLoad:
    def test_no_file(self) -> None:
        config = PtyShellConfig.load(None)
        assert config.shell.run_as_user == "session-user"

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = PtyShellConfig.load(str(tmp_path / "nope.json"))
        assert config.recorder.screen_buffer_size == 30_000

    def test_from_file(self, tmp_path: Path) -> None:
        path = tmp_path / "ptyshell.json"
        path.write_text(
            json.dumps(
                {
                    "shell": {"shell": "bash", "run_as_user": "alice"},
                    "recorder": {"screen_buffer_size": 1000},
                }
            )
        )
        config = PtyShellConfig.load(str(path))
        assert config.shell.shell == "bash"
        assert config.shell.run_as_user == "alice"
        assert config.recorder.screen_buffer_size == 1000

    def test_env_beats_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "ptyshell.json"
        path.write_text(json.dumps({"shell": {"run_as_user": "alice"}}))
        monkeypatch.setenv("PTYSHELL_RUN_AS_USER", "bob")
        monkeypatch.setenv("PTYSHELL_IDENTITY_BACKEND", "COMMAND")
        monkeypatch.setenv("PTYSHELL_SCREEN_BUFFER_SIZE", "42")
        monkeypatch.setenv("PTYSHELL_SESSION_LOGGER", "/usr/bin/replay")
        config = PtyShellConfig.load(str(path))
        assert config.shell.run_as_user == "bob"
        assert config.shell.identity_backend == "command"
        assert config.recorder.screen_buffer_size == 42
        assert config.recorder.session_logger == "/usr/bin/replay"

    def test_dotenv(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        # Registers the variable so teardown removes what load_dotenv sets
        monkeypatch.setenv("PTYSHELL_SHELL", "placeholder")
        monkeypatch.delenv("PTYSHELL_SHELL")
        (tmp_path / ".env").write_text("PTYSHELL_SHELL=/bin/dash\n")
        config = PtyShellConfig.load(None)
        assert config.shell.shell == "/bin/dash"

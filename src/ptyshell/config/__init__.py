"""Configuration — Pydantic models for ptyshell settings."""

from __future__ import annotations

import json
import os
from typing import Any, Literal

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field


class ShellConfig(BaseModel):
    """How the PTY-backed shell is spawned."""

    shell: str = Field(default="sh", description="Shell binary used for sessions")
    command_args: list[str] = Field(
        default_factory=lambda: ["-c"],
        description="Flags that make the shell run a single command line",
    )
    term: str = Field(
        default="xterm-256color",
        description=(
            "TERM forced into the child. PTYs otherwise advertise a minimal "
            "terminal type and full-screen editors do not clear correctly."
        ),
    )
    default_lang: str = Field(
        default="C.UTF-8",
        description="LANG applied only when the parent environment has none",
    )
    run_as_user: str = Field(
        default="session-user",
        description="Restricted local user the shell drops to on request",
    )
    home_template: str = Field(
        default="/home/{user}", description="HOME forced into the child"
    )
    identity_backend: Literal["native", "command"] = Field(
        default="native",
        description="'native' uses pwd/grp, 'command' parses id/groups/getent output",
    )

    @property
    def home_dir(self) -> str:
        return self.home_template.format(user=self.run_as_user)


class RecorderConfig(BaseModel):
    """Scripted shadow-session recording."""

    screen_buffer_size: int = Field(default=30_000, description="screen scrollback lines")
    session_logger: str = Field(
        default="session-logger",
        description="Helper that replays the session IPC file into the terminal",
    )
    screen_command: str = Field(default="screen -h {buffer_size}")
    record_command: str = Field(default="script {log_file}")
    logger_command: str = Field(default="{logger} {ipc_file} {blocking}")
    exit_command: str = Field(default="exit")

    ready_timeout: float = Field(
        default=15.0, description="Seconds to wait for a shell layer to answer a probe"
    )
    logger_timeout: float = Field(
        default=300.0, description="Seconds to wait for the session logger to finish"
    )
    exit_timeout: float = Field(
        default=30.0, description="Seconds to wait for a layer to unwind after exit"
    )
    probe_interval: float = Field(
        default=1.0, description="Seconds between repeated readiness probes"
    )
    flush_timeout: float = Field(
        default=15.0, description="Seconds to wait for the transcript to reach disk"
    )


class PtyShellConfig(BaseModel):
    """Top-level ptyshell configuration."""

    shell: ShellConfig = Field(default_factory=ShellConfig)
    recorder: RecorderConfig = Field(default_factory=RecorderConfig)

    @classmethod
    def load(cls, config_path: str | None = None) -> PtyShellConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            PTYSHELL_SHELL               - Shell binary
            PTYSHELL_RUN_AS_USER         - Restricted user name
            PTYSHELL_IDENTITY_BACKEND    - 'native' or 'command'
            PTYSHELL_SCREEN_BUFFER_SIZE  - screen scrollback size
            PTYSHELL_SESSION_LOGGER      - Session logger helper path
        """
        load_dotenv(find_dotenv(usecwd=True))

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        shell = config_data.get("shell", {})

        env_shell = os.environ.get("PTYSHELL_SHELL")
        if env_shell:
            shell["shell"] = env_shell

        env_user = os.environ.get("PTYSHELL_RUN_AS_USER")
        if env_user:
            shell["run_as_user"] = env_user

        env_backend = os.environ.get("PTYSHELL_IDENTITY_BACKEND")
        if env_backend:
            shell["identity_backend"] = env_backend.lower()

        if shell:
            config_data["shell"] = shell

        recorder = config_data.get("recorder", {})

        env_buffer = os.environ.get("PTYSHELL_SCREEN_BUFFER_SIZE")
        if env_buffer:
            recorder["screen_buffer_size"] = int(env_buffer)

        env_logger = os.environ.get("PTYSHELL_SESSION_LOGGER")
        if env_logger:
            recorder["session_logger"] = env_logger

        if recorder:
            config_data["recorder"] = recorder

        return cls.model_validate(config_data)

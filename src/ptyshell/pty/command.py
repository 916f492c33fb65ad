"""argv and environment for a PTY-backed shell."""

from __future__ import annotations

from collections.abc import Mapping

from ptyshell.config import ShellConfig


def build_command(config: ShellConfig, shell_command: str = "") -> list[str]:
    """Return the argv that runs ``shell_command`` under the configured shell.

    A blank command starts the shell interactively with no arguments.
    Otherwise the whole text is handed to the shell as one argument so the
    shell interprets it, instead of it being exec'd directly.
    """
    if not shell_command.strip():
        return [config.shell]
    return [config.shell, *config.command_args, shell_command]


def build_environment(config: ShellConfig, parent: Mapping[str, str]) -> dict[str, str]:
    """Child environment: the parent's plus forced TERM and HOME.

    LANG is only set when the parent has none; without it the shell falls
    back to the POSIX locale, which is single-byte.
    """
    env = dict(parent)
    env["TERM"] = config.term
    env["HOME"] = config.home_dir
    if not parent.get("LANG"):
        env["LANG"] = config.default_lang
    return env

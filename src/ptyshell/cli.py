"""CLI entry point for ptyshell."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import typer

from ptyshell.config import PtyShellConfig
from ptyshell.errors import PtyShellError

app = typer.Typer(
    name="ptyshell",
    help="PTY-backed shell sessions with optional privilege drop and transcript recording.",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _load_config(config_file: str | None, verbose: bool) -> PtyShellConfig:
    setup_logging(verbose)
    return PtyShellConfig.load(config_file)


@app.command()
def credentials(
    user: str | None = typer.Option(
        None, "--user", "-u", help="User to resolve (default: configured restricted user)."
    ),
    backend: str | None = typer.Option(
        None, "--backend", "-b", help="Identity backend: 'native' or 'command'."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    config_file: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
) -> None:
    """Resolve uid, gid and supplementary groups for the restricted user."""
    from ptyshell.identity import CredentialResolver

    config = _load_config(config_file, verbose)
    if user:
        config.shell.run_as_user = user
    if backend:
        config.shell.identity_backend = backend  # type: ignore[assignment]

    try:
        credential = CredentialResolver.from_config(config.shell).resolve()
    except (PtyShellError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"user:   {config.shell.run_as_user}")
    typer.echo(f"uid:    {credential.uid}")
    typer.echo(f"gid:    {credential.gid}")
    typer.echo(f"groups: {', '.join(str(g) for g in credential.groups) or '-'}")


@app.command("exec")
def exec_command(
    command: str = typer.Argument(..., help="Command line for the shell to run."),
    as_user: bool = typer.Option(
        False, "--as-user", "-U", help="Run as the configured restricted user."
    ),
    cols: int = typer.Option(80, "--cols", help="Terminal columns."),
    rows: int = typer.Option(24, "--rows", help="Terminal rows."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    config_file: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
) -> None:
    """Run a command in a PTY and copy its output to stdout."""
    from ptyshell.pty import PtySessionManager

    # A blank command would start an interactive shell waiting on input
    if not command.strip():
        raise typer.BadParameter("command must not be blank", param_hint="COMMAND")

    config = _load_config(config_file, verbose)
    manager = PtySessionManager(config.shell)

    try:
        session = manager.start(run_as_restricted_user=as_user, shell_command=command)
    except PtyShellError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    with session:
        try:
            manager.set_size(cols, rows)
        except PtyShellError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)

        output = session.stdout
        while True:
            try:
                chunk = output.read(4096)
            except OSError:
                # EIO once the child has exited
                break
            if not chunk:
                break
            sys.stdout.buffer.write(chunk)
            sys.stdout.buffer.flush()
        exit_code = asyncio.run(session.wait_for_exit(timeout=5.0))

    raise typer.Exit(exit_code or 0)


@app.command()
def record(
    log_file: Path = typer.Option(..., "--log-file", "-l", help="Transcript output path."),
    ipc_file: Path = typer.Option(..., "--ipc-file", "-i", help="Session IPC file to replay."),
    blocking: bool = typer.Option(
        False, "--blocking", help="Run the session logger in blocking mode."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    config_file: str | None = typer.Option(None, "--config", "-c", help="Config file path."),
) -> None:
    """Record a transcript of a session through a disposable shell."""
    from ptyshell.recorder import RecordingTarget, SessionRecorder

    config = _load_config(config_file, verbose)
    recorder = SessionRecorder(config)
    target = RecordingTarget(log_file=log_file, ipc_file=ipc_file, blocking=blocking)

    try:
        path = asyncio.run(recorder.record(target))
    except PtyShellError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Transcript: {path}")


if __name__ == "__main__":
    app()

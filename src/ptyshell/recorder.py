"""Session recorder — script a throwaway shell into an audit transcript.

The recorder starts its own disposable PTY session and types a fixed
sequence into it: enlarge the screen scrollback, start ``script`` on the log
file, run the session logger helper (which replays the real session's IPC
file onto the terminal), then unwind each layer with ``exit``.

Each step waits for the shell now in the foreground to prove it is ready by
printing a per-step marker.  The probe prints the marker with ``printf``
from two halves, so the terminal's echo of the typed probe never matches.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from pydantic import BaseModel, Field

from ptyshell.config import PtyShellConfig
from ptyshell.errors import CloseError, RecordingTimeoutError
from ptyshell.pty.manager import PtySessionManager
from ptyshell.pty.session import PtySession
from ptyshell.pty.watcher import OutputWatcher

logger = logging.getLogger(__name__)

_MARKER_HEAD = "__ptyshell_"


class Readiness(enum.Enum):
    """How a scripted step confirms it is done."""

    PROBE = "probe"  # Re-send a separate probe line until it answers
    CHAINED = "chained"  # Probe runs after the command on the same line
    EXIT = "exit"  # The shell process itself exits


@dataclass(frozen=True)
class ScriptedCommand:
    """One command typed into the shadow session."""

    name: str
    text: str
    timeout: float
    readiness: Readiness = Readiness.PROBE


class RecordingTarget(BaseModel):
    """Where the transcript goes."""

    log_file: Path = Field(description="Transcript written by the record facility")
    ipc_file: Path = Field(description="IPC file replayed by the session logger")
    blocking: bool = Field(default=False, description="Run the session logger blocking")


class SessionRecorder:
    """Produces a transcript by driving a disposable shell session.

    Every recording starts its disposable session on a manager of its own
    and closes only that session, so recordings never touch a session the
    caller runs or each other.

    Args:
        config: Shell and recorder settings.
        manager_factory: Returns a new, unused manager for each recording.
            Defaults to a ``PtySessionManager`` over ``config.shell``.
    """

    def __init__(
        self,
        config: PtyShellConfig | None = None,
        manager_factory: Callable[[], PtySessionManager] | None = None,
    ) -> None:
        self.config = config or PtyShellConfig()
        self._manager_factory = manager_factory or self._default_manager

    def _default_manager(self) -> PtySessionManager:
        return PtySessionManager(self.config.shell)

    def script(self, target: RecordingTarget) -> tuple[ScriptedCommand, ...]:
        """The ordered commands a recording types, first to last."""
        rc = self.config.recorder
        values = {
            "buffer_size": rc.screen_buffer_size,
            "log_file": shlex.quote(str(target.log_file)),
            "ipc_file": shlex.quote(str(target.ipc_file)),
            "logger": rc.session_logger,
            "blocking": str(target.blocking).lower(),
        }
        return (
            ScriptedCommand("shell", "", rc.ready_timeout),
            ScriptedCommand("screen", rc.screen_command.format(**values), rc.ready_timeout),
            ScriptedCommand("record", rc.record_command.format(**values), rc.ready_timeout),
            ScriptedCommand(
                "logger",
                rc.logger_command.format(**values),
                rc.logger_timeout,
                Readiness.CHAINED,
            ),
            ScriptedCommand("exit record", rc.exit_command, rc.exit_timeout),
            ScriptedCommand("exit screen", rc.exit_command, rc.exit_timeout),
            ScriptedCommand("exit shell", rc.exit_command, rc.exit_timeout, Readiness.EXIT),
        )

    async def record(self, target: RecordingTarget) -> Path:
        """Run the full recording sequence and return the transcript path.

        Raises:
            PtyStartError: the disposable session could not start.
            RecordingTimeoutError: a step did not confirm readiness in time.
            CloseError: the PTY could not be closed after a clean run.
        """
        logger.info("Recording session transcript to %s", target.log_file)
        manager = self._manager_factory()
        session = manager.start(run_as_restricted_user=False, shell_command="")
        watcher = OutputWatcher(session.fileno())
        watcher.attach(asyncio.get_running_loop())

        try:
            for index, step in enumerate(self.script(target), start=1):
                await self._run_step(session, watcher, index, step)
        except BaseException:
            watcher.detach()
            try:
                session.close()
            except CloseError as e:
                logger.error("Error occurred while closing pty: %s", e)
            raise

        watcher.detach()
        session.close()

        await self._wait_for_transcript(target.log_file)
        return target.log_file

    async def _run_step(
        self,
        session: PtySession,
        watcher: OutputWatcher,
        index: int,
        step: ScriptedCommand,
    ) -> None:
        tail = f"ready_{index}__"
        marker = (_MARKER_HEAD + tail).encode()
        probe = f"printf '%s%s\\n' {_MARKER_HEAD} {tail}"
        start = watcher.position

        logger.debug("Recording step %d (%s): %s", index, step.name, step.text)

        if step.readiness is Readiness.CHAINED:
            session.write(f"{step.text}; {probe}\n")
            if not await watcher.wait_for(marker, start, step.timeout):
                raise RecordingTimeoutError(step.name, step.timeout)
            return

        if step.text:
            session.write(f"{step.text}\n")

        if step.readiness is Readiness.EXIT:
            if await session.wait_for_exit(step.timeout) is None:
                raise RecordingTimeoutError(step.name, step.timeout)
            return

        loop = asyncio.get_running_loop()
        deadline = loop.time() + step.timeout
        interval = self.config.recorder.probe_interval
        while not watcher.eof:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            session.write(f"{probe}\n")
            if await watcher.wait_for(marker, start, min(interval, remaining)):
                return
        logger.warning(
            "Step %s got no readiness marker, last output: %r", step.name, watcher.tail(200)
        )
        raise RecordingTimeoutError(step.name, step.timeout)

    async def _wait_for_transcript(self, log_file: Path) -> None:
        """Wait until the transcript exists and has stopped growing."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.recorder.flush_timeout
        last_size = -1
        while loop.time() < deadline:
            if log_file.exists():
                size = log_file.stat().st_size
                if size == last_size:
                    return
                last_size = size
            await asyncio.sleep(0.2)
        logger.warning("Transcript %s not settled on disk after flush wait", log_file)

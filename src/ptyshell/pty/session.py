"""PTY session — one shell process attached to a pseudo-terminal."""

from __future__ import annotations

import asyncio
import enum
import fcntl
import io
import logging
import os
import pty
import struct
import subprocess
import termios
import uuid
from dataclasses import dataclass, field
from typing import Any

from ptyshell.errors import CloseError, PtyStartError, ResizeError
from ptyshell.identity import UserCredential

logger = logging.getLogger(__name__)


class PtyStatus(enum.Enum):
    """Lifecycle states for a PTY session."""

    PENDING = "pending"  # Created, start() not called yet
    ACTIVE = "active"
    CLOSED = "closed"  # Master handle closed; the child may still run


@dataclass
class PtySession:
    """A shell process whose stdio is the subordinate side of a PTY.

    The master side is exposed as a single unbuffered binary file object,
    used for both writing input (``stdin``) and reading output (``stdout``).

    Closing the session only closes the master handle.  The child is neither
    signalled nor waited for; it sees a hangup on its terminal and is left
    to exit on its own.

    Uses subprocess.Popen (not os.fork) so the child can be started with a
    different uid/gid/groups without a preexec hook.
    """

    command: list[str] = field(default_factory=list)
    env: dict[str, str] = field(default_factory=dict)
    credential: UserCredential | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    columns: int = field(default=0, init=False)
    rows: int = field(default=0, init=False)

    _master: io.FileIO | None = field(default=None, init=False, repr=False)
    _proc: subprocess.Popen | None = field(default=None, init=False, repr=False)
    _status: PtyStatus = field(default=PtyStatus.PENDING, init=False)

    def start(self) -> None:
        """Allocate the PTY and spawn the command on its subordinate side.

        Raises:
            PtyStartError: the PTY could not be opened or the spawn failed.
        """
        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as e:
            logger.error("Failed to open pty: %s", e)
            raise PtyStartError(f"Failed to start pty: {e}") from e

        kwargs: dict[str, Any] = {}
        if self.credential is not None:
            # extra_groups replaces the supplementary groups, it does not merge
            kwargs["user"] = self.credential.uid
            kwargs["group"] = self.credential.gid
            kwargs["extra_groups"] = list(self.credential.groups)

        try:
            try:
                self._proc = subprocess.Popen(
                    self.command,
                    stdin=slave_fd,
                    stdout=slave_fd,
                    stderr=slave_fd,
                    start_new_session=True,
                    env=self.env,
                    **kwargs,
                )
            finally:
                # Parent always closes slave fd
                os.close(slave_fd)
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            os.close(master_fd)
            logger.error("Failed to start pty: %s", e)
            raise PtyStartError(f"Failed to start pty: {e}") from e

        self._master = io.FileIO(master_fd, "r+", closefd=True)
        self._status = PtyStatus.ACTIVE

        logger.info(
            "PTY session %s started: pid=%d cmd=%s%s",
            self.id,
            self._proc.pid,
            " ".join(self.command),
            f" uid={self.credential.uid}" if self.credential else "",
        )

    def close(self) -> None:
        """Close the master handle.

        Raises:
            CloseError: the handle was never opened or is already closed.
        """
        if self._master is None or self._master.closed:
            raise CloseError(f"unable to close pty {self.id}: handle is not open")
        try:
            self._master.close()
        except OSError as e:
            raise CloseError(f"unable to close pty {self.id}: {e}") from e
        finally:
            self._status = PtyStatus.CLOSED
        logger.info("PTY session %s closed", self.id)

    def set_size(self, columns: int, rows: int) -> None:
        """Apply a terminal window size to the PTY.

        Raises:
            ResizeError: the session is not active or the ioctl failed.
        """
        if self._status != PtyStatus.ACTIVE or self._master is None:
            raise ResizeError(f"set pty size failed: session {self.id} is not active")
        try:
            winsize = struct.pack("HHHH", rows, columns, 0, 0)
            fcntl.ioctl(self._master.fileno(), termios.TIOCSWINSZ, winsize)
        except (OSError, struct.error) as e:
            raise ResizeError(f"set pty size failed: {e}") from e
        self.columns = columns
        self.rows = rows
        logger.debug("PTY session %s resized to %dx%d", self.id, columns, rows)

    def write(self, data: str) -> None:
        """Write text to the shell's input."""
        if self._master is None or self._master.closed:
            raise OSError(f"PTY session {self.id} is not open")
        payload = data.encode("utf-8")
        while payload:
            written = self._master.write(payload)
            payload = payload[written or 0 :]

    def fileno(self) -> int:
        if self._master is None:
            raise ValueError(f"PTY session {self.id} was never started")
        return self._master.fileno()

    def _handle(self) -> io.FileIO:
        if self._master is None:
            raise RuntimeError(f"PTY session {self.id} was never started")
        return self._master

    @property
    def stdin(self) -> io.FileIO:
        return self._handle()

    @property
    def stdout(self) -> io.FileIO:
        return self._handle()

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    @property
    def status(self) -> PtyStatus:
        return self._status

    @property
    def active(self) -> bool:
        return self._status == PtyStatus.ACTIVE

    @property
    def returncode(self) -> int | None:
        return self._proc.poll() if self._proc else None

    async def wait_for_exit(self, timeout: float = 10.0) -> int | None:
        """Wait for the child to exit. Returns exit code or None on timeout."""
        if self._proc is None:
            return -1
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while loop.time() < deadline:
            ret = self._proc.poll()
            if ret is not None:
                return ret
            await asyncio.sleep(0.05)
        return self._proc.poll()

    def __enter__(self) -> PtySession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self._master is not None and not self._master.closed:
            self.close()

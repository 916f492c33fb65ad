"""Rolling output watcher for a PTY master."""

from __future__ import annotations

import asyncio
import logging
import os

logger = logging.getLogger(__name__)


class OutputWatcher:
    """Drains a PTY master fd into a bounded byte buffer.

    Reading is driven by ``loop.add_reader`` so nothing blocks in a thread.
    Positions are absolute byte offsets into everything ever read, so a
    caller can note ``position`` before writing a command and later look
    for a marker only in output produced after it.

    An ``asyncio.Event`` is set whenever new data (or EOF) arrives, allowing
    ``wait_for()`` to ``await`` instead of polling.
    """

    def __init__(self, fd: int, max_bytes: int = 1 << 20) -> None:
        self._fd = fd
        self._max_bytes = max_bytes
        self._data = bytearray()
        self._base = 0  # Absolute offset of _data[0]
        self._eof = False
        self._event = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None

    def attach(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Start draining the fd on ``loop`` (defaults to the running loop)."""
        self._loop = loop or asyncio.get_running_loop()
        self._loop.add_reader(self._fd, self._on_readable)

    def detach(self) -> None:
        """Stop draining. Must be called before the fd is closed."""
        if self._loop is not None:
            self._loop.remove_reader(self._fd)
            self._loop = None

    def _on_readable(self) -> None:
        try:
            chunk = os.read(self._fd, 4096)
        except OSError as e:
            # Linux reports EIO on the master once every slave is gone
            logger.debug("PTY fd %d read ended: %s", self._fd, e)
            chunk = b""

        if not chunk:
            self._eof = True
            self.detach()
        else:
            self._data.extend(chunk)
            overflow = len(self._data) - self._max_bytes
            if overflow > 0:
                del self._data[:overflow]
                self._base += overflow
        self._event.set()

    @property
    def position(self) -> int:
        """Absolute offset just past the last byte read."""
        return self._base + len(self._data)

    @property
    def eof(self) -> bool:
        return self._eof

    def tail(self, n: int = 500) -> bytes:
        """Last ``n`` bytes read."""
        return bytes(self._data[-n:])

    def find(self, marker: bytes, start: int = 0) -> int:
        """Absolute offset of ``marker`` at or after ``start``, or -1."""
        index = self._data.find(marker, max(start - self._base, 0))
        return -1 if index < 0 else self._base + index

    async def wait_for(self, marker: bytes, start: int = 0, timeout: float = 10.0) -> bool:
        """Wait until ``marker`` shows up after ``start``.

        Returns True once it is seen, False on timeout or EOF.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            self._event.clear()
            if self.find(marker, start) >= 0:
                return True
            if self._eof:
                return False
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            try:
                await asyncio.wait_for(self._event.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                continue

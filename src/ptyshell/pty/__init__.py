"""PTY process management — one shell per pseudo-terminal.

A session's stdio is the subordinate side of a PTY; the caller reads and
writes the master.  The manager can drop the shell to a restricted user
and controls the terminal window size.
"""

from ptyshell.pty.session import PtySession, PtyStatus
from ptyshell.pty.manager import PtySessionManager
from ptyshell.pty.watcher import OutputWatcher

__all__ = [
    "PtySession",
    "PtyStatus",
    "PtySessionManager",
    "OutputWatcher",
]

"""PTY session manager — owns the lifecycle of one shell session."""

from __future__ import annotations

import logging
import os
from typing import Callable

from ptyshell.config import ShellConfig
from ptyshell.errors import CloseError, ResizeError
from ptyshell.identity import CredentialResolver
from ptyshell.pty.command import build_command, build_environment
from ptyshell.pty.session import PtySession

logger = logging.getLogger(__name__)


def _assume_user_exists(username: str) -> None:
    logger.debug("No user provisioning hook configured, assuming %s exists", username)


class PtySessionManager:
    """Starts, resizes and stops a single PTY-backed shell.

    At most one session is tracked at a time.  Starting a new session while
    one is active closes the previous master handle once the new session is
    up; a failure to close it is logged and the new session is still
    returned.  Separate managers never share a session.

    Args:
        config: Shell settings (binary, flags, env overrides, restricted user).
        resolver: Credential resolver for privilege drop. Built from
            ``config`` when omitted.
        ensure_user: Called with the restricted user name before its
            credentials are resolved, so the account can be created on
            demand. Defaults to a no-op.
    """

    def __init__(
        self,
        config: ShellConfig | None = None,
        resolver: CredentialResolver | None = None,
        ensure_user: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config or ShellConfig()
        self._resolver = resolver or CredentialResolver.from_config(self.config)
        self._ensure_user = ensure_user or _assume_user_exists
        self._session: PtySession | None = None

    @property
    def current(self) -> PtySession | None:
        return self._session

    def start(
        self, run_as_restricted_user: bool = False, shell_command: str = ""
    ) -> PtySession:
        """Start a shell in a new PTY.

        Args:
            run_as_restricted_user: Drop to the configured restricted user.
                Credential failures abort before anything is spawned.
            shell_command: Command line for the shell to run. Blank starts
                an interactive shell.

        Returns:
            The new session; its ``stdin`` and ``stdout`` are the PTY master.
        """
        logger.info("Starting pty")
        credential = None
        if run_as_restricted_user:
            self._ensure_user(self.config.run_as_user)
            credential = self._resolver.resolve()

        session = PtySession(
            command=build_command(self.config, shell_command),
            env=build_environment(self.config, os.environ),
            credential=credential,
        )
        session.start()

        previous, self._session = self._session, session
        if previous is not None and previous.active:
            logger.warning("Replacing active PTY session %s", previous.id)
            try:
                previous.close()
            except CloseError as e:
                # The new session is already running and tracked
                logger.error("Error occurred while closing replaced pty: %s", e)
        return session

    def stop(self) -> None:
        """Close the current session's master handle."""
        logger.info("Stopping pty")
        if self._session is None:
            raise CloseError("unable to close pty: no session was started")
        self._session.close()

    def set_size(self, columns: int, rows: int) -> None:
        """Resize the current session's terminal window."""
        if self._session is None:
            raise ResizeError("set pty size failed: no session was started")
        self._session.set_size(columns, rows)

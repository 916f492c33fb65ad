"""Error kinds raised by PTY sessions, identity resolution and recording."""

from __future__ import annotations


class PtyShellError(RuntimeError):
    """Base class for every ptyshell failure."""


class PtyStartError(PtyShellError):
    """The PTY device could not be allocated or the shell failed to spawn."""


class CredentialQueryError(PtyShellError):
    """An identity lookup for the restricted user failed.

    ``step`` names the lookup that failed (``uid``, ``gid``, ``groups`` or
    ``group``) and ``identity`` the user or group name it was made for.
    """

    def __init__(self, step: str, identity: str, reason: str = "") -> None:
        self.step = step
        self.identity = identity
        message = f"{step} lookup failed for {identity!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidCredentialError(PtyShellError):
    """Resolved uid or gid is not a positive id."""


class ResizeError(PtyShellError):
    """The terminal window size could not be applied."""


class CloseError(PtyShellError):
    """The PTY master handle could not be closed."""


class RecordingTimeoutError(PtyShellError):
    """A scripted recording step did not report readiness in time."""

    def __init__(self, step: str, timeout: float) -> None:
        self.step = step
        self.timeout = timeout
        super().__init__(f"recording step {step!r} not ready after {timeout:g}s")

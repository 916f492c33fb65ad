"""ptyshell — PTY-backed shell sessions with privilege drop and recording."""

__version__ = "0.1.0"

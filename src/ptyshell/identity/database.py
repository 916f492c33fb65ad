"""Identity databases — where user and group records come from.

Two backends answer the same four questions about a user:

* ``NativeIdentityDatabase`` reads the host's passwd/group databases through
  ``pwd`` and ``grp`` and never parses text.
* ``CommandIdentityDatabase`` runs ``id``, ``groups`` and ``getent`` through
  the shell and parses their output.  Useful where the records only resolve
  through the same NSS path the shell sees, but sensitive to output format.
"""

from __future__ import annotations

import grp
import logging
import pwd
import shlex
import subprocess
from typing import Protocol, Sequence, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class IdentityDatabase(Protocol):
    """Lookups needed to build a credential.

    Implementations raise ``LookupError``, ``OSError``, ``ValueError`` or
    ``subprocess.SubprocessError`` on failure.
    """

    def uid(self, username: str) -> int: ...

    def gid(self, username: str) -> int: ...

    def group_names(self, username: str) -> list[str]: ...

    def group_id(self, group_name: str) -> int: ...


class NativeIdentityDatabase:
    """Structured lookups against the host passwd/group databases."""

    def uid(self, username: str) -> int:
        return pwd.getpwnam(username).pw_uid

    def gid(self, username: str) -> int:
        return pwd.getpwnam(username).pw_gid

    def group_names(self, username: str) -> list[str]:
        """Primary group first, then every group listing the user as a member."""
        primary = grp.getgrgid(pwd.getpwnam(username).pw_gid).gr_name
        names = [primary]
        for entry in grp.getgrall():
            if username in entry.gr_mem and entry.gr_name not in names:
                names.append(entry.gr_name)
        return names

    def group_id(self, group_name: str) -> int:
        return grp.getgrnam(group_name).gr_gid


class CommandIdentityDatabase:
    """Lookups made by running identity commands through the shell."""

    def __init__(self, shell: str = "sh", command_args: Sequence[str] = ("-c",)) -> None:
        self._shell = shell
        self._command_args = list(command_args)

    def _run(self, command_line: str) -> str:
        logger.debug("Identity query: %s", command_line)
        result = subprocess.run(
            [self._shell, *self._command_args, command_line],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout

    def uid(self, username: str) -> int:
        return int(self._run(f"id -u {shlex.quote(username)}").strip())

    def gid(self, username: str) -> int:
        return int(self._run(f"id -g {shlex.quote(username)}").strip())

    def group_names(self, username: str) -> list[str]:
        return parse_group_names(self._run(f"groups {shlex.quote(username)}"), username)

    def group_id(self, group_name: str) -> int:
        return parse_group_record(self._run(f"getent group {shlex.quote(group_name)}"))


def parse_group_names(output: str, username: str) -> list[str]:
    """Parse ``groups <user>`` output into group names.

    The output looks like ``"alice : alice wheel"``.  Exactly the first two
    tokens are a header and are skipped; every later token is a group name.
    The header is checked rather than blindly dropped, because some
    ``groups`` implementations omit it and others cannot represent user
    names containing spaces.
    """
    tokens = output.split()
    if len(tokens) < 2 or tokens[0] != username or tokens[1] != ":":
        raise ValueError(f"unexpected groups output: {output.strip()!r}")
    return tokens[2:]


def parse_group_record(record: str) -> int:
    """Return the numeric id (third field) of a ``name:x:gid:members`` record."""
    fields = record.strip().split(":")
    if len(fields) < 3:
        raise ValueError(f"malformed group record: {record.strip()!r}")
    return int(fields[2].strip())


def create_identity_database(
    backend: str, shell: str = "sh", command_args: Sequence[str] = ("-c",)
) -> IdentityDatabase:
    """Build the identity database named by ``backend``."""
    if backend == "native":
        return NativeIdentityDatabase()
    if backend == "command":
        return CommandIdentityDatabase(shell=shell, command_args=command_args)
    raise ValueError(f"unknown identity backend: {backend!r}")

"""Credential resolution for the restricted session user."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, TypeVar

from ptyshell.config import ShellConfig
from ptyshell.errors import CredentialQueryError, InvalidCredentialError
from ptyshell.identity.database import (
    IdentityDatabase,
    NativeIdentityDatabase,
    create_identity_database,
)

logger = logging.getLogger(__name__)

_LOOKUP_ERRORS = (LookupError, OSError, ValueError, subprocess.SubprocessError)

T = TypeVar("T")


@dataclass(frozen=True)
class UserCredential:
    """Identity a spawned shell runs under."""

    uid: int
    gid: int
    groups: tuple[int, ...] = ()


class CredentialResolver:
    """Resolves uid, gid and supplementary groups for one user name.

    Lookups run in order (uid, gid, groups) and the first failure aborts the
    whole resolution.  Nothing is cached: every ``resolve()`` queries the
    identity database again.
    """

    def __init__(self, username: str, database: IdentityDatabase | None = None) -> None:
        self.username = username
        self._database = database or NativeIdentityDatabase()

    @classmethod
    def from_config(cls, config: ShellConfig) -> CredentialResolver:
        database = create_identity_database(
            config.identity_backend,
            shell=config.shell,
            command_args=config.command_args,
        )
        return cls(config.run_as_user, database)

    def resolve(self) -> UserCredential:
        """Return a validated credential.

        Raises:
            CredentialQueryError: a lookup failed or returned garbage.
            InvalidCredentialError: uid or gid is not positive.
        """
        uid = self._query("uid", self.username, self._database.uid)
        gid = self._query("gid", self.username, self._database.gid)
        names = self._query("groups", self.username, self._database.group_names)

        groups: list[int] = []
        for name in names:
            groups.append(self._query("group", name, self._database.group_id))

        if uid > 0 and gid > 0:
            logger.debug(
                "Resolved %s: uid=%d gid=%d groups=%s", self.username, uid, gid, groups
            )
            return UserCredential(uid=uid, gid=gid, groups=tuple(groups))

        logger.error("Invalid uid/gid for %s: uid=%d gid=%d", self.username, uid, gid)
        raise InvalidCredentialError(
            f"invalid uid and gid for {self.username!r}: uid={uid} gid={gid}"
        )

    def _query(self, step: str, identity: str, lookup: Callable[[str], T]) -> T:
        try:
            return lookup(identity)
        except _LOOKUP_ERRORS as exc:
            logger.error("Failed to retrieve %s for %s: %s", step, identity, exc)
            raise CredentialQueryError(step, identity, str(exc)) from exc

"""Identity resolution for the restricted user a session can drop to."""

from ptyshell.identity.credentials import CredentialResolver, UserCredential
from ptyshell.identity.database import (
    CommandIdentityDatabase,
    IdentityDatabase,
    NativeIdentityDatabase,
    create_identity_database,
    parse_group_names,
    parse_group_record,
)

__all__ = [
    "CredentialResolver",
    "UserCredential",
    "IdentityDatabase",
    "NativeIdentityDatabase",
    "CommandIdentityDatabase",
    "create_identity_database",
    "parse_group_names",
    "parse_group_record",
]

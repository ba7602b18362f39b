"""Decode PostgreSQL ACL strings into Grant records."""

import logging
import re
from typing import Optional

from schemadump.schema.models import Grant
from schemadump.types import ObjectType, Privilege

logger = logging.getLogger(__name__)

ACL_ENTRY_PATTERN = re.compile(r"([^=]*)=([^/]+)/(.+)")

PUBLIC = "PUBLIC"

PRIVILEGE_LETTERS: dict[str, Privilege] = {
    "r": Privilege.SELECT,
    "w": Privilege.UPDATE,
    "a": Privilege.INSERT,
    "d": Privilege.DELETE,
    "x": Privilege.EXECUTE,
    "X": Privilege.EXECUTE,
    "U": Privilege.USAGE,
    "C": Privilege.CREATE,
}

APPLICABLE_PRIVILEGES: dict[ObjectType, set[Privilege]] = {
    ObjectType.TABLE: {
        Privilege.SELECT,
        Privilege.UPDATE,
        Privilege.INSERT,
        Privilege.DELETE,
    },
    ObjectType.SEQUENCE: {Privilege.SELECT, Privilege.UPDATE, Privilege.USAGE},
    ObjectType.FUNCTION: {Privilege.EXECUTE},
    ObjectType.SCHEMA: {Privilege.USAGE, Privilege.CREATE},
}


def privileges_from_letters(letters: str, object_type: ObjectType) -> list[Privilege]:
    """Map ACL privilege letters to privileges valid for object_type.

    ``*`` grants everything applicable to the object type. The result is in
    canonical Privilege order regardless of letter order.
    """
    applicable = APPLICABLE_PRIVILEGES.get(object_type, set())
    if "*" in letters:
        wanted = set(applicable)
    else:
        wanted = {
            PRIVILEGE_LETTERS[ch] for ch in letters if ch in PRIVILEGE_LETTERS
        } & applicable
    return [p for p in Privilege if p in wanted]


def parse_acl(
    acl: Optional[str],
    schema: str,
    object_type: ObjectType,
    object_name: str,
    signature: Optional[str] = None,
) -> list[Grant]:
    """Parse ``{grantee=privs/grantor,...}`` into one Grant per privilege.

    Entries that do not match the grantee=privileges/grantor shape are
    skipped. An empty grantee is the PUBLIC pseudo-role.
    """
    if not acl:
        return []

    grants: list[Grant] = []
    for entry in acl.strip().strip("{}").split(","):
        match = ACL_ENTRY_PATTERN.match(entry.strip())
        if match is None:
            logger.debug("Skipping malformed ACL entry %r on %s", entry, object_name)
            continue
        grantee = match.group(1).strip().strip('"') or PUBLIC
        letters = match.group(2).strip()
        for privilege in privileges_from_letters(letters, object_type):
            grants.append(
                Grant(
                    schema=schema,
                    object_type=object_type,
                    object_name=object_name,
                    grantee=grantee,
                    privilege=privilege,
                    signature=signature,
                )
            )
    return grants

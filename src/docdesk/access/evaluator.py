"""Owner/group/other authorization checks for documents.

Every function here is pure: the acting user is always passed in explicitly
and nothing is cached between calls. Exactly one permission mask applies to a
given (document, user) pair, chosen by precedence owner > group member > other.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from enum import Enum, IntFlag
from typing import Any, Iterable, TypeVar

from ..documents.model import MASK_MAX, MASK_MIN, Document, DocumentNode

__all__ = [
    "AccessType",
    "PermissionBits",
    "filter_accessible",
    "has_access",
    "is_member",
    "is_owner",
    "resolve_applicable_mask",
]

LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T", Document, DocumentNode)


class PermissionBits(IntFlag):
    """Bit positions inside a three-bit permission mask."""

    EXECUTE = 1
    WRITE = 2
    READ = 4


class AccessType(Enum):
    """Actions a user may attempt on a document."""

    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"


_ACTION_BITS: dict[AccessType, PermissionBits] = {
    AccessType.READ: PermissionBits.READ,
    AccessType.WRITE: PermissionBits.WRITE,
    AccessType.EXECUTE: PermissionBits.EXECUTE,
}


def is_owner(document: Document, user_id: str) -> bool:
    return getattr(document, "owner", None) == user_id


def is_member(document: Document, user_id: str) -> bool:
    """Return True when ``user_id`` is listed in the document group.

    A missing group, a group without members, or membership data of the wrong
    shape all count as "not a member".
    """

    group = getattr(document, "group", None)
    if group is None:
        return False
    members = getattr(group, "members", None)
    if not isinstance(members, Collection) or isinstance(members, (str, bytes)) or not members:
        return False
    return user_id in members


def resolve_applicable_mask(document: Document, user_id: str) -> int:
    permissions = document.permissions
    if is_owner(document, user_id):
        mask, scope = permissions.owner, "owner"
    elif is_member(document, user_id):
        mask, scope = permissions.group, "group"
    else:
        mask, scope = permissions.other, "other"
    if isinstance(mask, bool) or not isinstance(mask, int) or not MASK_MIN <= mask <= MASK_MAX:
        LOGGER.warning(
            "Document %s carries invalid %s mask %r; denying access",
            getattr(document, "id", "?"),
            scope,
            mask,
        )
        return 0
    return mask


def has_access(document: Document, user_id: str, action: AccessType) -> bool:
    """Return whether ``user_id`` may perform ``action`` on ``document``.

    Unrecognised actions are denied rather than raising.
    """

    bit = _ACTION_BITS.get(action) if isinstance(action, AccessType) else None
    if bit is None:
        return False
    return bool(resolve_applicable_mask(document, user_id) & bit)


def filter_accessible(items: Iterable[_T], user_id: str, action: AccessType = AccessType.READ) -> list[_T]:
    """Keep the documents (or tree nodes) the user may act on, preserving order."""

    kept: list[_T] = []
    for item in items:
        document: Any = item.document if isinstance(item, DocumentNode) else item
        if has_access(document, user_id, action):
            kept.append(item)
    return kept

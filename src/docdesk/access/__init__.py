"""Authorization decisions over document permission masks."""

from .evaluator import (
    AccessType,
    PermissionBits,
    filter_accessible,
    has_access,
    is_member,
    is_owner,
    resolve_applicable_mask,
)

__all__ = [
    "AccessType",
    "PermissionBits",
    "filter_accessible",
    "has_access",
    "is_member",
    "is_owner",
    "resolve_applicable_mask",
]

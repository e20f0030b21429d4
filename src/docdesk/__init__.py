"""Document access control and editing session state for the browser IDE."""

from .access.evaluator import AccessType, has_access, is_member, is_owner, resolve_applicable_mask
from .documents.model import Document, DocumentGroup, DocumentType, PermissionSet
from .session.manager import SessionStateManager
from .session.workspace import SessionEntry, tab_key_for

__all__ = [
    "AccessType",
    "Document",
    "DocumentGroup",
    "DocumentType",
    "PermissionSet",
    "SessionEntry",
    "SessionStateManager",
    "has_access",
    "is_member",
    "is_owner",
    "resolve_applicable_mask",
    "tab_key_for",
]

__version__ = "0.1.0"

"""Document data model consumed by the access and session layers."""

from .model import Document, DocumentGroup, DocumentNode, DocumentType, PermissionSet

__all__ = ["Document", "DocumentGroup", "DocumentNode", "DocumentType", "PermissionSet"]

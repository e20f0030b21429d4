"""Collaborators of the session core: document service, navigation, settings."""

from .contracts import DocumentFetcher, DocumentPersister, NavigationRegistry, ServiceResult, TabMeta
from .document_client import ClientSettings, DocumentServiceClient
from .navigation import EditorState, TabMenuItem, TabRegistry

__all__ = [
    "ClientSettings",
    "DocumentFetcher",
    "DocumentPersister",
    "DocumentServiceClient",
    "EditorState",
    "NavigationRegistry",
    "ServiceResult",
    "TabMenuItem",
    "TabMeta",
    "TabRegistry",
]

"""Multi-document editing session state."""

from .library import DocumentLibrary
from .manager import SessionStateManager
from .workspace import SessionEntry, SessionWorkspace, tab_key_for

__all__ = ["DocumentLibrary", "SessionEntry", "SessionStateManager", "SessionWorkspace", "tab_key_for"]

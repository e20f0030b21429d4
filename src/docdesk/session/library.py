"""Public and private document trees shown in the explorer sidebar."""

from __future__ import annotations

import logging
from typing import Protocol

from ..access.evaluator import AccessType, filter_accessible
from ..documents.model import DocumentNode
from ..services.contracts import ServiceResult

__all__ = ["DocumentLibrary", "DocumentTreeSource"]

LOGGER = logging.getLogger(__name__)


class DocumentTreeSource(Protocol):
    async def fetch_public_documents(self) -> ServiceResult[list[DocumentNode]]:  # pragma: no cover - protocol
        ...

    async def fetch_private_documents(self) -> ServiceResult[list[DocumentNode]]:  # pragma: no cover - protocol
        ...


class DocumentLibrary:
    """Caches the document trees visible to one user.

    Public roots the user cannot read are hidden; private documents are the
    user's own and are listed as returned. A failed refresh keeps the
    previously loaded list.
    """

    def __init__(self, source: DocumentTreeSource, *, user_id: str) -> None:
        self._source = source
        self._user_id = user_id
        self._public: list[DocumentNode] = []
        self._private: list[DocumentNode] = []

    @property
    def public_documents(self) -> tuple[DocumentNode, ...]:
        return tuple(self._public)

    @property
    def private_documents(self) -> tuple[DocumentNode, ...]:
        return tuple(self._private)

    async def refresh_public(self) -> bool:
        result = await self._source.fetch_public_documents()
        if not result.success or result.value is None:
            LOGGER.warning("Public document refresh failed: %s", result.error)
            return False
        visible = filter_accessible(result.value, self._user_id, AccessType.READ)
        hidden = len(result.value) - len(visible)
        if hidden:
            LOGGER.debug("Hid %d unreadable public document(s) from %s", hidden, self._user_id)
        self._public = visible
        return True

    async def refresh_private(self) -> bool:
        result = await self._source.fetch_private_documents()
        if not result.success:
            LOGGER.warning("Private document refresh failed: %s", result.error)
            return False
        self._private = list(result.value or [])
        return True

    async def refresh(self) -> bool:
        private_ok = await self.refresh_private()
        public_ok = await self.refresh_public()
        return private_ok and public_ok

"""Interfaces the session core expects from its collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Protocol, TypeVar

from ..documents.model import Document

__all__ = [
    "DocumentFetcher",
    "DocumentPersister",
    "NavigationRegistry",
    "ServiceResult",
    "TabMeta",
]

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class ServiceResult(Generic[T]):
    """Outcome of a call to the document service.

    ``value`` is only meaningful when ``success`` is true; ``error`` carries
    a human readable message for failures.
    """

    success: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: T) -> "ServiceResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "ServiceResult[T]":
        return cls(success=False, error=error)


@dataclass(slots=True, frozen=True)
class TabMeta:
    """Display information handed to the navigation registry for a new tab."""

    label: str
    document_id: str
    icon: str = "icon icon-file"


class DocumentFetcher(Protocol):
    async def fetch(self, document_id: str) -> ServiceResult[Document]:  # pragma: no cover - protocol
        ...


class DocumentPersister(Protocol):
    async def save(self, document_id: str, content: str) -> ServiceResult[Document]:  # pragma: no cover - protocol
        ...


class NavigationRegistry(Protocol):
    """Tab-bar view kept in sync by the session manager."""

    def register(self, tab_key: str, meta: TabMeta) -> None:  # pragma: no cover - protocol
        ...

    def exists(self, tab_key: str) -> bool:  # pragma: no cover - protocol
        ...

    def remove(self, tab_key: str) -> None:  # pragma: no cover - protocol
        ...

    def set_active(self, tab_key: str, document: Document) -> None:  # pragma: no cover - protocol
        ...

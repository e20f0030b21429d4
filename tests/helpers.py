"""Shared test helpers and collaborator stubs.

Import from here instead of duplicating stubs in individual test files.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Iterable

from docdesk.documents.model import Document, DocumentGroup, PermissionSet
from docdesk.events import Event, EventBus
from docdesk.services.contracts import ServiceResult, TabMeta


class StubDocumentService:
    """In-memory fetch/persist collaborator.

    ``fetch_gates`` / ``save_gate`` hold responses until the test releases
    them, which is how in-flight races are simulated.
    """

    def __init__(self, documents: Iterable[Document] = ()) -> None:
        self.documents: dict[str, Document] = {doc.id: doc for doc in documents}
        self.fetch_calls: list[str] = []
        self.save_calls: list[tuple[str, str]] = []
        self.fetch_gates: dict[str, asyncio.Event] = {}
        self.save_gate: asyncio.Event | None = None
        self.fail_saves = False

    async def fetch(self, document_id: str) -> ServiceResult[Document]:
        self.fetch_calls.append(document_id)
        gate = self.fetch_gates.get(document_id)
        if gate is not None:
            await gate.wait()
        document = self.documents.get(document_id)
        if document is None:
            return ServiceResult.fail("document not found")
        return ServiceResult.ok(replace(document))

    async def save(self, document_id: str, content: str) -> ServiceResult[Document]:
        self.save_calls.append((document_id, content))
        if self.save_gate is not None:
            await self.save_gate.wait()
        if self.fail_saves:
            return ServiceResult.fail("write rejected")
        confirmed = replace(self.documents[document_id], content=content)
        self.documents[document_id] = confirmed
        return ServiceResult.ok(replace(confirmed))


class RecordingNavigation:
    """Navigation registry implementing only the four-method contract."""

    def __init__(self) -> None:
        self.tabs: dict[str, TabMeta] = {}
        self.calls: list[tuple[str, str]] = []
        self.active: tuple[str, Document] | None = None

    def register(self, tab_key: str, meta: TabMeta) -> None:
        self.calls.append(("register", tab_key))
        self.tabs[tab_key] = meta

    def exists(self, tab_key: str) -> bool:
        return tab_key in self.tabs

    def remove(self, tab_key: str) -> None:
        self.calls.append(("remove", tab_key))
        self.tabs.pop(tab_key, None)

    def set_active(self, tab_key: str, document: Document) -> None:
        self.calls.append(("set_active", tab_key))
        self.active = (tab_key, document)

    def registrations(self, tab_key: str) -> int:
        return self.calls.count(("register", tab_key))


class EventRecorder:
    """Collects every event published on a bus for the given types."""

    def __init__(self, bus: EventBus, *event_types: type[Event]) -> None:
        self.events: list[Event] = []
        for event_type in event_types:
            bus.subscribe(event_type, self.events.append)

    def of_type(self, event_type: type[Event]) -> list[Event]:
        return [event for event in self.events if isinstance(event, event_type)]


def make_document(
    document_id: str = "doc-1",
    *,
    owner: str = "alice",
    members: Iterable[str] | None = None,
    owner_mask: int = 7,
    group_mask: int = 5,
    other_mask: int = 4,
    content: str = "a :- b.",
    name: str | None = None,
) -> Document:
    return Document(
        id=document_id,
        owner=owner,
        name=name if name is not None else f"{document_id}.lp",
        content=content,
        group=DocumentGroup(members=frozenset(members)) if members is not None else None,
        permissions=PermissionSet(owner=owner_mask, group=group_mask, other=other_mask),
    )


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run up to their next suspension point."""

    for _ in range(rounds):
        await asyncio.sleep(0)

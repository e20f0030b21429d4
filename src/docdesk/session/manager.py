"""Session state manager.

Single source of truth for which documents are open, which one is active and
which ones carry unsaved edits. Talks to the document service for fetches and
saves, keeps the navigation registry in sync and publishes session events.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Mapping

from ..access.evaluator import AccessType, has_access
from ..documents.model import Document
from ..errors import FailureReason
from ..events import (
    ActiveTabChanged,
    DocumentChanged,
    DocumentClosed,
    DocumentOpened,
    DocumentSaved,
    EventBus,
    OpenFailed,
    SaveFailed,
    SessionRestored,
    TabsChanged,
)
from ..services.contracts import DocumentFetcher, DocumentPersister, NavigationRegistry, TabMeta
from .workspace import SessionEntry, SessionWorkspace, tab_key_for

__all__ = ["SessionStateManager"]

LOGGER = logging.getLogger(__name__)

_FOLDER_ICON = "icon icon-folder"
_FILE_ICON = "icon icon-file"


class SessionStateManager:
    """Opens, edits, saves and closes documents on behalf of one user.

    Events Emitted:
        - DocumentOpened / OpenFailed: outcome of :meth:`open_document`
        - DocumentChanged: whenever an entry's dirty flag flips
        - DocumentSaved / SaveFailed: outcome of :meth:`save`
        - DocumentClosed, TabsChanged: when the open set changes
        - ActiveTabChanged: when the active selection moves or clears
    """

    def __init__(
        self,
        *,
        user_id: str,
        fetcher: DocumentFetcher,
        persister: DocumentPersister,
        navigation: NavigationRegistry,
        event_bus: EventBus | None = None,
        workspace: SessionWorkspace | None = None,
        enforce_access: bool = True,
    ) -> None:
        self._user_id = user_id
        self._fetcher = fetcher
        self._persister = persister
        self._navigation = navigation
        self._bus = event_bus or EventBus()
        self._workspace = workspace or SessionWorkspace()
        self._enforce_access = enforce_access
        self._pending_opens: dict[str, asyncio.Task[SessionEntry | None]] = {}
        self._save_locks: dict[str, asyncio.Lock] = {}

        self._workspace.add_active_listener(self._on_active_entry_changed)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def user_id(self) -> str:
        return self._user_id

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def workspace(self) -> SessionWorkspace:
        return self._workspace

    @property
    def active_entry(self) -> SessionEntry | None:
        return self._workspace.active_entry

    @property
    def active_tab_key(self) -> str | None:
        return self._workspace.active_tab_key

    def get_entry(self, tab_key: str) -> SessionEntry | None:
        return self._workspace.get(tab_key)

    def entries(self) -> tuple[SessionEntry, ...]:
        return tuple(self._workspace.iter_entries())

    def is_changed(self, tab_key: str) -> bool:
        entry = self._workspace.get(tab_key)
        return entry is not None and entry.changed

    def can(self, document: Document, action: AccessType) -> bool:
        return has_access(document, self._user_id, action)

    # ------------------------------------------------------------------
    # Opening and focusing
    # ------------------------------------------------------------------
    async def open_document(self, document_id: str) -> SessionEntry | None:
        """Open ``document_id`` in a tab, or focus the tab if it is already open.

        Returns the session entry, or ``None`` when the fetch failed, the user
        may not read the document, or the tab was closed before the document
        arrived. Concurrent calls for the same id share a single fetch.
        """

        tab_key = tab_key_for(document_id)
        entry = self._workspace.get(tab_key)
        if entry is not None:
            LOGGER.debug("open_document: %s already open, focusing", tab_key)
            self._focus(entry)
            return entry

        task = self._pending_opens.get(tab_key)
        if task is None:
            task = asyncio.create_task(self._load(tab_key, document_id))
            self._pending_opens[tab_key] = task
        else:
            LOGGER.debug("open_document: joining pending fetch for %s", tab_key)
        return await asyncio.shield(task)

    def _release_pending(self, tab_key: str) -> bool:
        # close_tab drops the record; a re-open may have registered a newer task
        if self._pending_opens.get(tab_key) is not asyncio.current_task():
            return False
        del self._pending_opens[tab_key]
        return True

    async def _load(self, tab_key: str, document_id: str) -> SessionEntry | None:
        try:
            result = await self._fetcher.fetch(document_id)
        finally:
            still_wanted = self._release_pending(tab_key)

        if not still_wanted:
            LOGGER.debug("open_document: discarding fetch for closed tab %s", tab_key)
            return None

        if not result.success or result.value is None:
            reason = FailureReason.FETCH_FAILED if not result.success else FailureReason.EMPTY_RESPONSE
            LOGGER.warning("open_document: fetch for %s failed (%s): %s", document_id, reason, result.error)
            self._bus.publish(OpenFailed(document_id=document_id, reason=reason, detail=result.error))
            return None

        document = result.value
        if document.id != document_id:
            LOGGER.warning("open_document: requested %s but the service returned %s", document_id, document.id)
            self._bus.publish(
                OpenFailed(
                    document_id=document_id,
                    reason=FailureReason.ID_MISMATCH,
                    detail=f"service returned document {document.id}",
                )
            )
            return None
        if self._enforce_access and not self.can(document, AccessType.READ):
            LOGGER.info("open_document: %s is not readable by %s", document.id, self._user_id)
            self._bus.publish(OpenFailed(document_id=document_id, reason=FailureReason.NOT_AVAILABLE))
            return None

        existing = self._workspace.get(tab_key)
        if existing is not None:
            self._focus(existing)
            return existing

        entry = self._workspace.add_entry(document, make_active=False)
        LOGGER.debug("open_document: admitted %s (document_id=%s)", tab_key, document.id)
        self._bus.publish(DocumentOpened(tab_key=tab_key, document_id=document.id))
        self._bus.publish(TabsChanged(tab_keys=self._workspace.tab_keys()))
        self._focus(entry)
        return entry

    def activate(self, tab_key: str) -> SessionEntry:
        """Make an already-open entry active.

        Raises:
            KeyError: If no entry exists for ``tab_key``.
        """

        entry = self._workspace.get(tab_key)
        if entry is None:
            raise KeyError(f"Unknown tab_key: {tab_key}")
        self._focus(entry)
        return entry

    def _focus(self, entry: SessionEntry) -> None:
        if not self._navigation.exists(entry.tab_key):
            self._navigation.register(entry.tab_key, self._tab_meta(entry.document))
        self._workspace.set_active(entry.tab_key)
        self._navigation.set_active(entry.tab_key, entry.document)

    @staticmethod
    def _tab_meta(document: Document) -> TabMeta:
        return TabMeta(
            label=document.name or document.id,
            document_id=document.id,
            icon=_FOLDER_ICON if document.is_folder else _FILE_ICON,
        )

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def edit(self, tab_key: str, content: str) -> bool:
        """Apply a local edit to the entry's content and mark it changed."""

        entry = self._workspace.get(tab_key)
        if entry is None:
            LOGGER.debug("edit: ignoring edit for unknown tab %s", tab_key)
            return False
        entry.document.content = content
        entry.revision += 1
        self._set_changed(entry, True)
        return True

    def mark_changed(self, tab_key: str, changed: bool) -> bool:
        """Set the dirty flag of an open entry; unknown keys are ignored."""

        entry = self._workspace.get(tab_key)
        if entry is None:
            LOGGER.debug("mark_changed: ignoring unknown tab %s", tab_key)
            return False
        self._set_changed(entry, changed)
        return True

    def _set_changed(self, entry: SessionEntry, changed: bool) -> None:
        if entry.changed == changed:
            return
        entry.changed = changed
        mirror = getattr(self._navigation, "mark_changed", None)
        if callable(mirror):
            mirror(entry.tab_key, changed)
        self._bus.publish(DocumentChanged(tab_key=entry.tab_key, document_id=entry.document_id, changed=changed))

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------
    async def save(self, entry: SessionEntry | str) -> bool:
        """Persist the entry's content if it has unsaved changes.

        Returns True only when the document service confirmed the save and
        the confirmed copy was applied. Saves for the same tab run one at a
        time; a save that finds the entry already clean does nothing.
        """

        target = self._workspace.get(entry) if isinstance(entry, str) else entry
        if target is None:
            LOGGER.debug("save: no open entry for %s", entry)
            return False
        lock = self._save_locks.setdefault(target.tab_key, asyncio.Lock())
        async with lock:
            return await self._save_locked(target)

    async def save_active(self) -> bool:
        entry = self._workspace.active_entry
        if entry is None:
            return False
        return await self.save(entry)

    async def _save_locked(self, entry: SessionEntry) -> bool:
        if self._workspace.get(entry.tab_key) is not entry:
            LOGGER.debug("save: %s was closed before the save started", entry.tab_key)
            return False
        if not entry.changed:
            return False
        if self._enforce_access and not self.can(entry.document, AccessType.WRITE):
            LOGGER.info("save: %s is not writable by %s", entry.document_id, self._user_id)
            self._bus.publish(
                SaveFailed(tab_key=entry.tab_key, document_id=entry.document_id, reason=FailureReason.NOT_AVAILABLE)
            )
            return False

        revision = entry.revision
        result = await self._persister.save(entry.document_id, entry.document.content)

        if self._workspace.get(entry.tab_key) is not entry:
            LOGGER.debug("save: discarding response for closed tab %s", entry.tab_key)
            return False

        if not result.success or result.value is None:
            reason = FailureReason.SAVE_FAILED if not result.success else FailureReason.EMPTY_RESPONSE
            LOGGER.warning("save: %s failed (%s): %s", entry.document_id, reason, result.error)
            self._bus.publish(
                SaveFailed(tab_key=entry.tab_key, document_id=entry.document_id, reason=reason, detail=result.error)
            )
            return False

        confirmed = result.value
        if entry.revision == revision:
            entry.document = confirmed
            self._set_changed(entry, False)
        else:
            # edits arrived while the request was in flight; they stay unsaved
            entry.document = replace(confirmed, content=entry.document.content)
        LOGGER.debug("save: %s confirmed (changed=%s)", entry.tab_key, entry.changed)
        self._bus.publish(DocumentSaved(tab_key=entry.tab_key, document_id=entry.document_id))
        if self._workspace.active_tab_key == entry.tab_key and self._navigation.exists(entry.tab_key):
            self._navigation.set_active(entry.tab_key, entry.document)
        return True

    # ------------------------------------------------------------------
    # Closing
    # ------------------------------------------------------------------
    def close_tab(self, tab_key: str) -> SessionEntry | None:
        """Destroy the entry and its navigation entry.

        A fetch still in flight for ``tab_key`` is abandoned: its result is
        discarded when it arrives. Unsaved changes are dropped.
        """

        if self._pending_opens.pop(tab_key, None) is not None:
            LOGGER.debug("close_tab: abandoned pending open for %s", tab_key)

        self._save_locks.pop(tab_key, None)
        entry = self._workspace.get(tab_key)
        if entry is None:
            if self._navigation.exists(tab_key):
                self._navigation.remove(tab_key)
            return None

        self._workspace.close_entry(tab_key)
        self._navigation.remove(tab_key)
        if entry.changed:
            LOGGER.info("close_tab: discarding unsaved changes in %s", tab_key)
        self._bus.publish(DocumentClosed(tab_key=tab_key, document_id=entry.document_id))
        self._bus.publish(TabsChanged(tab_keys=self._workspace.tab_keys()))
        return entry

    # ------------------------------------------------------------------
    # Session persistence
    # ------------------------------------------------------------------
    def snapshot_state(self) -> dict[str, Any]:
        return self._workspace.serialize_state()

    async def restore(self, state: Mapping[str, Any] | None) -> int:
        """Reopen the tabs listed in a :meth:`snapshot_state` payload.

        Documents that fail to open are skipped. Returns the number of
        entries open afterwards.
        """

        if not state:
            return self._workspace.entry_count()
        raw_tabs = state.get("open_tabs") or []
        for item in raw_tabs:
            document_id = item.get("document_id") if isinstance(item, Mapping) else None
            if not isinstance(document_id, str) or not document_id:
                LOGGER.debug("restore: skipping malformed tab payload %r", item)
                continue
            await self.open_document(document_id)

        active_key = state.get("active_tab_key")
        if isinstance(active_key, str) and active_key in self._workspace:
            self.activate(active_key)

        count = self._workspace.entry_count()
        self._bus.publish(SessionRestored(tab_count=count, active_tab_key=self._workspace.active_tab_key))
        return count

    # ------------------------------------------------------------------
    # Internal event handling
    # ------------------------------------------------------------------
    def _on_active_entry_changed(self, entry: SessionEntry | None) -> None:
        if entry is None:
            LOGGER.debug("active entry cleared")
            self._bus.publish(ActiveTabChanged(tab_key=None, document_id=None))
            return
        LOGGER.debug("active entry changed to %s", entry.tab_key)
        self._bus.publish(ActiveTabChanged(tab_key=entry.tab_key, document_id=entry.document_id))

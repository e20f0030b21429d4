"""Open-document bookkeeping: one entry per tab, plus the active selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol

from ..documents.model import Document

__all__ = [
    "ActiveEntryListener",
    "SessionEntry",
    "SessionWorkspace",
    "TAB_KEY_PREFIX",
    "tab_key_for",
]

TAB_KEY_PREFIX = "editor_tab_"


def tab_key_for(document_id: str) -> str:
    """Derive the tab key for ``document_id``; stable across processes."""

    return f"{TAB_KEY_PREFIX}{document_id}"


class ActiveEntryListener(Protocol):
    """Callback signature fired whenever the active entry changes."""

    def __call__(self, entry: Optional["SessionEntry"]) -> None:  # pragma: no cover - protocol
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class SessionEntry:
    """An open document tab and its dirty state."""

    tab_key: str
    document: Document
    changed: bool = False
    revision: int = 0
    opened_at: datetime = field(default_factory=_utcnow)

    @property
    def document_id(self) -> str:
        return self.document.id

    @property
    def title(self) -> str:
        label = self.document.name or self.document.id
        return f"*{label}" if self.changed else label


class SessionWorkspace:
    """Ordered set of session entries and the active selection.

    The workspace only stores state; talking to the document service and the
    navigation registry is the session manager's job.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, SessionEntry] = {}
        self._order: List[str] = []
        self._active_key: str | None = None
        self._listeners: List[ActiveEntryListener] = []

    # ------------------------------------------------------------------
    # Entry lifecycle
    # ------------------------------------------------------------------
    def add_entry(self, document: Document, *, make_active: bool = True) -> SessionEntry:
        """Create the entry for ``document``; an existing entry is returned untouched."""

        tab_key = tab_key_for(document.id)
        existing = self._entries.get(tab_key)
        if existing is not None:
            if make_active:
                self.set_active(tab_key)
            return existing
        entry = SessionEntry(tab_key=tab_key, document=document)
        self._entries[tab_key] = entry
        self._order.append(tab_key)
        if make_active:
            self.set_active(tab_key)
        return entry

    def close_entry(self, tab_key: str) -> SessionEntry:
        """Remove and return the entry; closing the active entry clears the selection."""

        if tab_key not in self._entries:
            raise KeyError(f"Unknown tab_key: {tab_key}")
        entry = self._entries.pop(tab_key)
        self._order.remove(tab_key)
        if self._active_key == tab_key:
            self._active_key = None
            self._notify_active_listeners()
        return entry

    def set_active(self, tab_key: str) -> SessionEntry:
        if tab_key not in self._entries:
            raise KeyError(f"Unknown tab_key: {tab_key}")
        if self._active_key == tab_key:
            return self._entries[tab_key]
        self._active_key = tab_key
        self._notify_active_listeners()
        return self._entries[tab_key]

    def add_active_listener(self, listener: ActiveEntryListener) -> None:
        self._listeners.append(listener)

    def _notify_active_listeners(self) -> None:
        entry = self.active_entry
        for listener in list(self._listeners):
            listener(entry)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @property
    def active_tab_key(self) -> str | None:
        return self._active_key

    @property
    def active_entry(self) -> SessionEntry | None:
        if self._active_key is None:
            return None
        return self._entries.get(self._active_key)

    def get(self, tab_key: str) -> SessionEntry | None:
        return self._entries.get(tab_key)

    def __contains__(self, tab_key: object) -> bool:
        return tab_key in self._entries

    def iter_entries(self) -> Iterator[SessionEntry]:
        for tab_key in self._order:
            yield self._entries[tab_key]

    def tab_keys(self) -> tuple[str, ...]:
        return tuple(self._order)

    def entry_count(self) -> int:
        return len(self._order)

    def changed_entries(self) -> Iterable[SessionEntry]:
        return tuple(entry for entry in self.iter_entries() if entry.changed)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def serialize_entries(self) -> list[dict[str, object]]:
        """Return a simplified representation of open entries for persistence."""

        payload: list[dict[str, object]] = []
        for entry in self.iter_entries():
            payload.append(
                {
                    "tab_key": entry.tab_key,
                    "document_id": entry.document_id,
                    "title": entry.title,
                    "changed": entry.changed,
                    "opened_at": entry.opened_at.isoformat(),
                }
            )
        return payload

    def serialize_state(self) -> dict[str, Any]:
        return {
            "open_tabs": self.serialize_entries(),
            "active_tab_key": self.active_tab_key,
        }

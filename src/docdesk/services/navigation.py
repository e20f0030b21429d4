"""In-memory navigation registry backing the editor tab strip."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Protocol

from ..documents.model import Document
from .contracts import TabMeta

__all__ = ["EditorState", "TabMenuItem", "TabRegistry", "MenuListener", "EditorStateListener"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class TabMenuItem:
    """One entry of the tab strip."""

    key: str
    label: str
    document_id: str
    icon: str = "icon icon-file"


@dataclass(slots=True)
class EditorState:
    """Document currently shown by the editor surface."""

    tab_key: str
    document: Document
    changed: bool = False


class MenuListener(Protocol):
    def __call__(self, items: tuple[TabMenuItem, ...]) -> None:  # pragma: no cover - protocol
        ...


class EditorStateListener(Protocol):
    def __call__(self, state: Optional[EditorState]) -> None:  # pragma: no cover - protocol
        ...


class TabRegistry:
    """Ordered tab menu plus the editor state of the focused tab.

    Implements the :class:`~docdesk.services.contracts.NavigationRegistry`
    contract and notifies menu and editor-state listeners on every change.
    """

    def __init__(self) -> None:
        self._items: Dict[str, TabMenuItem] = {}
        self._order: List[str] = []
        self._changed: Dict[str, bool] = {}
        self._active: EditorState | None = None
        self._menu_listeners: List[MenuListener] = []
        self._state_listeners: List[EditorStateListener] = []

    # ------------------------------------------------------------------
    # NavigationRegistry contract
    # ------------------------------------------------------------------
    def register(self, tab_key: str, meta: TabMeta) -> None:
        if tab_key in self._items:
            LOGGER.debug("TabRegistry.register: %s already registered", tab_key)
            return
        self._items[tab_key] = TabMenuItem(
            key=tab_key,
            label=meta.label,
            document_id=meta.document_id,
            icon=meta.icon,
        )
        self._order.append(tab_key)
        self._changed[tab_key] = False
        self._notify_menu_listeners()

    def exists(self, tab_key: str) -> bool:
        return tab_key in self._items

    def remove(self, tab_key: str) -> None:
        if tab_key not in self._items:
            return
        del self._items[tab_key]
        self._order.remove(tab_key)
        self._changed.pop(tab_key, None)
        self._notify_menu_listeners()
        if self._active is not None and self._active.tab_key == tab_key:
            self._active = None
            self._notify_state_listeners()

    def set_active(self, tab_key: str, document: Document) -> None:
        if tab_key not in self._items:
            raise KeyError(f"Unknown tab_key: {tab_key}")
        self._active = EditorState(
            tab_key=tab_key,
            document=document,
            changed=self._changed.get(tab_key, False),
        )
        self._notify_state_listeners()

    # ------------------------------------------------------------------
    # Dirty-state mirroring
    # ------------------------------------------------------------------
    def mark_changed(self, tab_key: str, changed: bool) -> None:
        if tab_key not in self._items:
            return
        self._changed[tab_key] = changed
        if self._active is not None and self._active.tab_key == tab_key:
            self._active.changed = changed
            self._notify_state_listeners()

    def is_changed(self, tab_key: str) -> bool:
        return self._changed.get(tab_key, False)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    @property
    def active(self) -> EditorState | None:
        return self._active

    def items(self) -> tuple[TabMenuItem, ...]:
        return tuple(self._items[key] for key in self._order)

    def __iter__(self) -> Iterator[TabMenuItem]:
        return iter(self.items())

    def __len__(self) -> int:
        return len(self._order)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_menu_listener(self, listener: MenuListener) -> None:
        self._menu_listeners.append(listener)

    def add_state_listener(self, listener: EditorStateListener) -> None:
        self._state_listeners.append(listener)

    def remove_listener(self, listener: Callable[..., None]) -> None:
        for bucket in (self._menu_listeners, self._state_listeners):
            if listener in bucket:
                bucket.remove(listener)

    def _notify_menu_listeners(self) -> None:
        items = self.items()
        for listener in list(self._menu_listeners):
            listener(items)

    def _notify_state_listeners(self) -> None:
        state = self._active
        for listener in list(self._state_listeners):
            listener(state)

"""Tests for the in-memory tab registry."""

from __future__ import annotations

import pytest

from docdesk.services.contracts import TabMeta
from docdesk.services.navigation import EditorState, TabMenuItem, TabRegistry

from helpers import make_document


def _registry_with(*keys: str) -> TabRegistry:
    registry = TabRegistry()
    for key in keys:
        registry.register(key, TabMeta(label=f"{key}.lp", document_id=key))
    return registry


def test_register_keeps_insertion_order_and_ignores_duplicates() -> None:
    registry = _registry_with("a", "b")
    registry.register("a", TabMeta(label="renamed", document_id="a"))

    assert [item.key for item in registry] == ["a", "b"]
    assert registry.items()[0] == TabMenuItem(key="a", label="a.lp", document_id="a")
    assert len(registry) == 2


def test_remove_drops_entry_and_active_state() -> None:
    registry = _registry_with("a", "b")
    registry.set_active("a", make_document("a"))

    registry.remove("a")
    registry.remove("missing")

    assert not registry.exists("a")
    assert registry.active is None
    assert [item.key for item in registry] == ["b"]


def test_set_active_requires_registration() -> None:
    registry = _registry_with("a")

    with pytest.raises(KeyError):
        registry.set_active("b", make_document("b"))


def test_mark_changed_updates_active_editor_state() -> None:
    registry = _registry_with("a", "b")
    document = make_document("a")
    registry.set_active("a", document)

    registry.mark_changed("a", True)
    registry.mark_changed("b", True)
    registry.mark_changed("missing", True)

    assert registry.active == EditorState(tab_key="a", document=document, changed=True)
    assert registry.is_changed("b")
    assert not registry.is_changed("missing")

    registry.set_active("b", make_document("b"))
    assert registry.active is not None and registry.active.changed


def test_listeners_receive_menu_and_state_updates() -> None:
    registry = TabRegistry()
    menus: list[tuple[str, ...]] = []
    states: list[str | None] = []

    def on_menu(items: tuple[TabMenuItem, ...]) -> None:
        menus.append(tuple(item.key for item in items))

    def on_state(state: EditorState | None) -> None:
        states.append(state.tab_key if state else None)

    registry.add_menu_listener(on_menu)
    registry.add_state_listener(on_state)

    registry.register("a", TabMeta(label="a", document_id="a"))
    registry.set_active("a", make_document("a"))
    registry.remove("a")

    registry.remove_listener(on_menu)
    registry.register("b", TabMeta(label="b", document_id="b"))

    assert menus == [("a",), ()]
    assert states == ["a", None]

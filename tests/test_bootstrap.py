"""Tests for session wiring and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx
import pytest

from docdesk.bootstrap import configure_logging, create_session
from docdesk.events import DocumentOpened
from docdesk.services.document_client import DocumentServiceClient
from docdesk.services.settings import Settings
from docdesk.session.workspace import tab_key_for

from helpers import EventRecorder

_DOC = {
    "id": "d1",
    "owner": "alice",
    "name": "main.lp",
    "content": "a.",
    "permissions": {"owner": 6, "group": 4, "other": 4},
}


def _mock_client(settings: Settings) -> DocumentServiceClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/documents/d1"):
            return httpx.Response(200, json=_DOC)
        return httpx.Response(404, json={"error": "not found"})

    return DocumentServiceClient(settings.client_settings(), transport=httpx.MockTransport(handler))


def test_create_session_requires_user_id() -> None:
    with pytest.raises(ValueError):
        create_session(Settings())


@pytest.mark.asyncio
async def test_session_components_share_bus_and_navigation() -> None:
    settings = Settings(service_url="https://docs.example.test/api", user_id="alice")
    session = create_session(settings, client=_mock_client(settings))
    recorder = EventRecorder(session.event_bus, DocumentOpened)

    entry = await session.manager.open_document("d1")

    assert entry is not None
    assert session.manager.event_bus is session.event_bus
    assert session.navigation.exists(entry.tab_key)
    assert [item.label for item in session.navigation] == ["main.lp"]
    assert recorder.of_type(DocumentOpened) == [DocumentOpened(tab_key=entry.tab_key, document_id="d1")]
    await session.aclose()


@pytest.mark.asyncio
async def test_remember_state_and_restore_through_settings() -> None:
    settings = Settings(service_url="https://docs.example.test/api", user_id="alice")
    session = create_session(settings, client=_mock_client(settings))
    await session.manager.open_document("d1")

    session.remember_state(settings)
    await session.aclose()

    assert settings.active_tab_key == tab_key_for("d1")
    assert [item["document_id"] for item in settings.open_tabs or []] == ["d1"]

    fresh = create_session(settings, client=_mock_client(settings))
    assert await fresh.manager.restore(settings.session_state()) == 1
    assert fresh.manager.active_tab_key == tab_key_for("d1")
    await fresh.aclose()


def test_configure_logging_writes_rotating_file(tmp_path: Path, restore_root_logging: None) -> None:
    log_path = configure_logging(Settings(debug_logging=True), log_dir=tmp_path / "logs", console=False)

    logger = logging.getLogger("docdesk.tests")
    logger.debug("Logging smoke test")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert log_path == tmp_path / "logs" / "docdesk.log"
    assert logging.getLogger("httpx").level == logging.WARNING
    assert "Logging smoke test" in log_path.read_text(encoding="utf-8")

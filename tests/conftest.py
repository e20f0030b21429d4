"""Shared pytest fixtures."""

from __future__ import annotations

import logging
from typing import Iterator

import pytest

from docdesk.events import EventBus

from helpers import RecordingNavigation, StubDocumentService, make_document


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def navigation() -> RecordingNavigation:
    return RecordingNavigation()


@pytest.fixture
def service() -> StubDocumentService:
    return StubDocumentService(
        [
            make_document("doc-1"),
            make_document("doc-2", owner="bob", members=["alice"], group_mask=6),
            make_document("secret", owner="bob", group_mask=0, other_mask=0),
            make_document("readonly", owner="bob", other_mask=4),
        ]
    )


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    library_levels = {name: logging.getLogger(name).level for name in ("asyncio", "httpx", "httpcore")}
    yield
    for name, library_level in library_levels.items():
        logging.getLogger(name).setLevel(library_level)
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)

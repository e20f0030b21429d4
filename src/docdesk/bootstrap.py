"""Composition root wiring the session core to its collaborators.

Usage::

    from docdesk.bootstrap import configure_logging, create_session
    from docdesk.services.settings import SettingsStore

    settings = SettingsStore().load()
    configure_logging(settings)
    session = create_session(settings)
    await session.manager.restore(settings.session_state())
    ...
    session.remember_state(settings)
    await session.aclose()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .events import EventBus
from .services.document_client import DocumentServiceClient
from .services.navigation import TabRegistry
from .services.settings import Settings, redact_secret
from .session.library import DocumentLibrary
from .session.manager import SessionStateManager
from .utils import logging as logging_utils

__all__ = ["DocumentSession", "configure_logging", "create_session"]

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class DocumentSession:
    """Wired components for one user's editing session."""

    event_bus: EventBus
    navigation: TabRegistry
    client: DocumentServiceClient
    manager: SessionStateManager
    library: DocumentLibrary

    def remember_state(self, settings: Settings) -> None:
        """Copy the open tab list into ``settings`` so it can be persisted."""

        state = self.manager.snapshot_state()
        settings.open_tabs = list(state["open_tabs"])
        settings.active_tab_key = state["active_tab_key"]

    async def aclose(self) -> None:
        await self.client.aclose()


def configure_logging(settings: Settings, *, log_dir: Path | str | None = None, console: bool = True) -> Path:
    """Set up root logging at DEBUG or INFO depending on ``settings.debug_logging``."""

    level = logging.DEBUG if settings.debug_logging else logging.INFO
    log_path = logging_utils.setup_logging(level, log_dir=log_dir, console=console)
    _LOGGER.debug("Logging configured at %s (%s)", logging.getLevelName(level), log_path)
    return log_path


def create_session(
    settings: Settings,
    *,
    event_bus: EventBus | None = None,
    navigation: TabRegistry | None = None,
    client: DocumentServiceClient | None = None,
) -> DocumentSession:
    """Create and wire the session manager, library and HTTP client.

    Raises:
        ValueError: If ``settings.user_id`` is empty.
    """

    if not settings.user_id:
        raise ValueError("settings.user_id is required to start a session")

    _LOGGER.info(
        "Starting document session for %s against %s (token=%s)",
        settings.user_id,
        settings.service_url,
        redact_secret(settings.service_token) or "<none>",
    )
    bus = event_bus or EventBus()
    registry = navigation or TabRegistry()
    service = client or DocumentServiceClient(settings.client_settings())
    manager = SessionStateManager(
        user_id=settings.user_id,
        fetcher=service,
        persister=service,
        navigation=registry,
        event_bus=bus,
        enforce_access=settings.enforce_access,
    )
    library = DocumentLibrary(service, user_id=settings.user_id)
    return DocumentSession(
        event_bus=bus,
        navigation=registry,
        client=service,
        manager=manager,
        library=library,
    )

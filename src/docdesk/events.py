"""Event bus and session events.

The session manager publishes these events so that tab strips, status bars
and other observers can follow session state without holding a reference
to the manager itself.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Generic, TypeVar
from weakref import WeakMethod, ref

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all session events."""


# =============================================================================
# Document lifecycle
# =============================================================================


@dataclass(slots=True)
class DocumentOpened(Event):
    """A document was admitted into the open set.

    Attributes:
        tab_key: Key of the new session entry.
        document_id: Identifier of the opened document.
    """

    tab_key: str
    document_id: str


@dataclass(slots=True)
class DocumentClosed(Event):
    tab_key: str
    document_id: str


@dataclass(slots=True)
class DocumentChanged(Event):
    """The dirty flag of an open entry was set or cleared.

    Attributes:
        tab_key: Key of the affected entry.
        document_id: Identifier of the document.
        changed: The new value of the dirty flag.
    """

    tab_key: str
    document_id: str
    changed: bool


@dataclass(slots=True)
class DocumentSaved(Event):
    """The document service confirmed a save."""

    tab_key: str
    document_id: str


@dataclass(slots=True)
class OpenFailed(Event):
    """An open request did not produce a session entry.

    Attributes:
        document_id: The requested document.
        reason: One of :class:`docdesk.errors.FailureReason`.
        detail: Optional message from the collaborator.
    """

    document_id: str
    reason: str
    detail: str | None = None


@dataclass(slots=True)
class SaveFailed(Event):
    tab_key: str
    document_id: str
    reason: str
    detail: str | None = None


# =============================================================================
# Selection
# =============================================================================


@dataclass(slots=True)
class ActiveTabChanged(Event):
    """The active selection moved.

    Both fields are ``None`` when no entry is active any more.
    """

    tab_key: str | None
    document_id: str | None


@dataclass(slots=True)
class TabsChanged(Event):
    """The ordered list of open tab keys changed."""

    tab_keys: tuple[str, ...]


@dataclass(slots=True)
class SessionRestored(Event):
    tab_count: int
    active_tab_key: str | None


class EventBus(Generic[E]):
    """A typed publish-subscribe event bus.

    Bound-method handlers are held through weak references so that an
    observer going away unsubscribes itself; plain functions and lambdas are
    held strongly.

    Example::

        bus = EventBus()
        bus.subscribe(DocumentOpened, lambda event: print(event.tab_key))
        bus.publish(DocumentOpened(tab_key="editor_tab_42", document_id="42"))

    Not thread-safe; publish from the event loop thread only.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: DefaultDict[type[Event], list[_HandlerRef]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Register ``handler`` for events of exactly ``event_type``.

        Subscribing the same handler twice results in two invocations.
        """
        self._handlers[event_type].append(_HandlerRef.create(handler))
        logger.debug(
            "Subscribed handler %s to event type %s",
            _handler_name(handler),
            event_type.__name__,
        )

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Remove the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers is None:
            return

        for i, handler_ref in enumerate(handlers):
            if handler_ref.matches(handler):
                handlers.pop(i)
                logger.debug(
                    "Unsubscribed handler %s from event type %s",
                    _handler_name(handler),
                    event_type.__name__,
                )
                return

    def publish(self, event: E) -> None:
        """Deliver ``event`` synchronously to its handlers in registration order.

        A handler that raises is logged and does not prevent delivery to the
        remaining handlers.
        """
        event_type = type(event)
        handlers = self._handlers.get(event_type)
        if not handlers:
            logger.debug("No handlers for event type %s", event_type.__name__)
            return

        logger.debug("Publishing %s to %d handler(s)", event_type.__name__, len(handlers))

        dead_indices: list[int] = []
        for i, handler_ref in enumerate(list(handlers)):
            handler = handler_ref.resolve()
            if handler is None:
                dead_indices.append(i)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s raised exception for event %s",
                    _handler_name(handler),
                    event_type.__name__,
                )

        for i in reversed(dead_indices):
            if i < len(handlers) and handlers[i].resolve() is None:
                handlers.pop(i)

    def clear(self) -> None:
        self._handlers.clear()
        logger.debug("Cleared all event handlers")

    def handler_count(self, event_type: type[E] | None = None) -> int:
        if event_type is not None:
            return len(self._handlers.get(event_type, []))
        return sum(len(handlers) for handlers in self._handlers.values())


class _HandlerRef:
    """Weak reference for bound methods, strong reference for everything else."""

    __slots__ = ("_ref", "_is_weak")

    def __init__(self, handler_ref: WeakMethod | ref | Handler, is_weak: bool) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak

    @classmethod
    def create(cls, handler: Handler) -> _HandlerRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True)
            except TypeError:
                pass
        return cls(handler, is_weak=False)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _handler_name(handler: Handler) -> str:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        cls_name = type(handler.__self__).__name__
        return f"{cls_name}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "DocumentOpened",
    "DocumentClosed",
    "DocumentChanged",
    "DocumentSaved",
    "OpenFailed",
    "SaveFailed",
    "ActiveTabChanged",
    "TabsChanged",
    "SessionRestored",
]

"""
Notification dispatch for soft delete operations.

Listeners are registered explicitly on an :class:`EventDispatcher` and are
called synchronously, in registration order, at the extension points of the
delete and save paths. A listener may stop an event; the dispatcher then
skips the remaining listeners and reports the stop to the caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Type

from .models import EventResult

logger = logging.getLogger(__name__)

BEFORE_DELETE = "Model.beforeDelete"
AFTER_DELETE = "Model.afterDelete"
BEFORE_SAVE = "Model.beforeSave"
AFTER_SAVE = "Model.afterSave"


@dataclass
class Event:
    """An event passed to listeners."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    stopped: bool = False
    result: Any = None

    @property
    def subject(self) -> Any:
        """The record the event is about."""
        return self.payload.get("entity")

    def stop(self, result: Any = None) -> None:
        """Stop the event. ``result`` becomes the operation's return value."""
        self.stopped = True
        self.result = result


Listener = Callable[[Event], Any]


@dataclass
class _Registration:
    listener: Listener
    model: Optional[Type[Any]] = None

    def applies_to(self, payload: Dict[str, Any]) -> bool:
        if self.model is None:
            return True
        target = payload.get("model")
        return isinstance(target, type) and issubclass(target, self.model)


class EventDispatcher:
    """
    Registry of listeners keyed by event name.

    A listener receives the :class:`Event`. Calling ``event.stop(result)`` or
    returning ``False`` cancels the event; any other return value that is not
    ``None`` is recorded as the event result.

    Usage:
        dispatcher = EventDispatcher()

        def keep_published(event):
            if event.subject.status == "published":
                event.stop(False)

        dispatcher.on(BEFORE_DELETE, keep_published, model=Article)
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[_Registration]] = {}

    def on(
        self, name: str, listener: Listener, model: Optional[Type[Any]] = None
    ) -> Listener:
        """
        Register a listener.

        Args:
            name: Event name, e.g. ``BEFORE_DELETE``
            listener: Callable receiving the event
            model: Only call the listener for this model and its subclasses

        Returns:
            The listener, so ``on`` can be used as a decorator helper
        """
        self._listeners.setdefault(name, []).append(_Registration(listener, model))
        return listener

    def off(self, name: str, listener: Optional[Listener] = None) -> None:
        """Remove one listener, or every listener for ``name``."""
        if listener is None:
            self._listeners.pop(name, None)
            return
        self._listeners[name] = [
            reg for reg in self._listeners.get(name, []) if reg.listener is not listener
        ]

    def listeners(self, name: str) -> List[Listener]:
        return [reg.listener for reg in self._listeners.get(name, [])]

    def dispatch(self, name: str, payload: Optional[Dict[str, Any]] = None) -> EventResult:
        """
        Dispatch an event to its listeners.

        Args:
            name: Event name
            payload: Data made available to listeners

        Returns:
            Whether a listener cancelled the event and the result it supplied
        """
        event = Event(name=name, payload=payload or {})

        for registration in list(self._listeners.get(name, [])):
            if not registration.applies_to(event.payload):
                continue

            returned = registration.listener(event)
            if returned is False and not event.stopped:
                event.stop(False)
            elif returned is not None and not event.stopped:
                event.result = returned

            if event.stopped:
                logger.debug(f"Event {name} stopped by {registration.listener!r}")
                break

        return EventResult(name=name, cancelled=event.stopped, result=event.result)

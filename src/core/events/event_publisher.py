# -*- coding: utf-8 -*-
"""
Application event publisher module

Dispatches events to the listeners registered for their type. Used by the
MongoDB document base class to notify save observers on every write.
"""

import asyncio
from typing import Dict, List, Set, Type, Optional

from core.events.base_event import BaseEvent
from core.events.event_listener import EventListener
from core.observation.logger import get_logger


logger = get_logger(__name__)


class ApplicationEventPublisher:
    """
    Application event publisher

    Features:
    - Explicit registration: listeners are added with `register()` and removed with `unregister()`
    - Asynchronous concurrency: uses asyncio.gather to concurrently invoke all matching listeners
    - Error isolation: exceptions from individual listeners do not affect others
    """

    def __init__(self):
        self._event_listeners_map: Dict[Type[BaseEvent], List[EventListener]] = {}
        self._listeners: List[EventListener] = []

    def register(self, listener: EventListener) -> None:
        """Register a listener for the event types it declares"""
        if listener in self._listeners:
            return
        self._listeners.append(listener)
        event_types = listener.get_event_types()
        for event_type in event_types:
            self._event_listeners_map.setdefault(event_type, []).append(listener)
        logger.debug(
            "Registering listener [%s], listening to event types: %s",
            listener.get_listener_name(),
            [et.__name__ for et in event_types],
        )

    def unregister(self, listener: EventListener) -> None:
        """Remove a previously registered listener; unknown listeners are ignored"""
        if listener not in self._listeners:
            return
        self._listeners.remove(listener)
        for event_type in listener.get_event_types():
            listeners = self._event_listeners_map.get(event_type, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._event_listeners_map.pop(event_type, None)

    def clear(self) -> None:
        """Remove all listeners"""
        self._event_listeners_map.clear()
        self._listeners.clear()

    def get_listeners_for_event(
        self, event_type: Type[BaseEvent]
    ) -> List[EventListener]:
        return list(self._event_listeners_map.get(event_type, []))

    def get_registered_event_types(self) -> Set[Type[BaseEvent]]:
        return set(self._event_listeners_map.keys())

    async def publish(self, event: BaseEvent) -> None:
        """
        Asynchronously publish event

        Dispatch the event to all listeners that listen to this event type.
        Exceptions from individual listeners do not affect execution of others,
        and all exceptions are logged.

        Args:
            event: Event object to publish
        """
        event_type_name = event.event_type()
        listeners = self.get_listeners_for_event(type(event))

        if not listeners:
            logger.debug("No listeners for event [%s], skipping publish", event_type_name)
            return

        async def safe_invoke(listener: EventListener) -> Optional[Exception]:
            try:
                await listener.on_event(event)
                return None
            except Exception as e:
                logger.error(
                    "Listener [%s] encountered exception when processing event [%s]: %s",
                    listener.get_listener_name(),
                    event_type_name,
                    e,
                    exc_info=True,
                )
                return e

        results = await asyncio.gather(*(safe_invoke(l) for l in listeners))

        errors = [r for r in results if r is not None]
        if errors:
            logger.warning(
                "Event [%s] publishing completed, success: %d, failure: %d",
                event_type_name,
                len(listeners) - len(errors),
                len(errors),
            )

    def __repr__(self) -> str:
        return (
            f"ApplicationEventPublisher("
            f"listeners={len(self._listeners)}, "
            f"event_types={len(self._event_listeners_map)}"
            f")"
        )


_publisher: Optional[ApplicationEventPublisher] = None


def get_event_publisher() -> ApplicationEventPublisher:
    """Get the process-wide event publisher"""
    global _publisher
    if _publisher is None:
        _publisher = ApplicationEventPublisher()
    return _publisher

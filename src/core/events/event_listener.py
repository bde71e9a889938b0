# -*- coding: utf-8 -*-
"""
Event listener module

Provides an abstract base class for event listeners, supporting declarative registration of event types to listen for.
"""

from abc import ABC, abstractmethod
from typing import List, Type

from core.events.base_event import BaseEvent


class EventListener(ABC):
    """
    Abstract base class for event listeners

    Listeners implement:
    - `get_event_types()`: Returns a list of event types to listen for
    - `on_event(event)`: Handles the event (asynchronous method)

    and are registered on the ApplicationEventPublisher:

        >>> get_event_publisher().register(SaveCounterListener())
    """

    @abstractmethod
    def get_event_types(self) -> List[Type[BaseEvent]]:
        """
        Get the list of event types to listen for
        """

    @abstractmethod
    async def on_event(self, event: BaseEvent) -> None:
        """
        Handle the event

        Note:
        - Multiple listeners execute concurrently without blocking each other
        - An exception raised here is logged by the publisher and does not affect other listeners
        """

    def get_listener_name(self) -> str:
        """Get the listener name, the class name by default"""
        return self.__class__.__name__

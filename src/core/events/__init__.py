# -*- coding: utf-8 -*-
"""
Event module

Provides an in-process publish/subscribe mechanism:
- Base event (BaseEvent): Base class for all domain events
- Event listener (EventListener): Abstract base class for event listeners
- Event publisher (ApplicationEventPublisher): Dispatches events to registered listeners

Usage:
    >>> from core.events import get_event_publisher
    >>> publisher = get_event_publisher()
    >>> publisher.register(MyListener())
    >>> await publisher.publish(DocumentSavedEvent(collection="books", document_id="..."))
"""

from core.events.base_event import BaseEvent
from core.events.event_listener import EventListener
from core.events.event_publisher import ApplicationEventPublisher, get_event_publisher

__all__ = [
    'BaseEvent',
    'EventListener',
    'ApplicationEventPublisher',
    'get_event_publisher',
]

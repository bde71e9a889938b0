# -*- coding: utf-8 -*-
"""
Document saved event

Published by DocumentBase right before a document is written to MongoDB
through `Document.save()`. Save observers (metrics, counters, cache
invalidation) subscribe to it instead of hooking into the models.
"""

from dataclasses import dataclass
from typing import List, Optional, Type

from core.events import BaseEvent, EventListener


@dataclass
class DocumentSavedEvent(BaseEvent):
    """
    Document saved event

    Attributes:
        model_name: Beanie model class name
        collection: MongoDB collection name
        document_id: String form of the document primary key (None for a new document)
    """

    model_name: str = ""
    collection: str = ""
    document_id: Optional[str] = None


class SaveCounterListener(EventListener):
    """Counts DocumentSavedEvent occurrences, optionally for one collection only"""

    def __init__(self, collection: Optional[str] = None):
        self.collection = collection
        self.count = 0

    def get_event_types(self) -> List[Type[BaseEvent]]:
        return [DocumentSavedEvent]

    async def on_event(self, event: BaseEvent) -> None:
        if self.collection and getattr(event, "collection", None) != self.collection:
            return
        self.count += 1

    def reset(self) -> None:
        self.count = 0

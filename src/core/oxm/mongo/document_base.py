"""
MongoDB Document Base Class

Base document class based on Beanie ODM, providing common foundational document functionality.
"""

from datetime import datetime
from typing import Self

from beanie import Document, before_event, Save
from pydantic import model_validator

from common_utils.datetime_utils import to_timezone
from core.events import get_event_publisher
from core.oxm.mongo.save_events import DocumentSavedEvent


class DocumentBase(Document):
    """
    Document base class

    - Normalizes naive datetimes to the configured timezone
    - Publishes a DocumentSavedEvent before every `save()`, so that save observers
      see exactly the writes that went through the normal write path
    """

    @model_validator(mode='after')
    def check_datetimes_are_aware(self) -> Self:
        """Ensure every top-level datetime field carries timezone information"""
        for field_name, value in self:
            if isinstance(value, datetime) and value.tzinfo is None:
                # Directly update value using __dict__ to avoid triggering validators
                self.__dict__[field_name] = to_timezone(value)
        return self

    @before_event(Save)
    async def notify_save_listeners(self):
        """Publish DocumentSavedEvent to the process-wide publisher"""
        await get_event_publisher().publish(
            DocumentSavedEvent(
                model_name=self.__class__.__name__,
                collection=self.collection_label(),
                document_id=str(self.id) if self.id is not None else None,
            )
        )

    @classmethod
    def collection_label(cls) -> str:
        """Collection name declared in `Settings.name`, readable before Beanie initialization"""
        settings = getattr(cls, "Settings", None)
        return getattr(settings, "name", None) or cls.__name__

    def __str__(self) -> str:
        return f"{self.__class__.__name__}({self.id})"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id})"

# -*- coding: utf-8 -*-
"""
Base event module

Provides the base class for domain events published by the storage layer,
e.g. the notification that a document is about to be saved.
"""

import json
import uuid
from abc import ABC
from dataclasses import dataclass, field, asdict
from typing import Any, Dict

from common_utils.datetime_utils import get_now_with_timezone, to_iso_format


@dataclass
class BaseEvent(ABC):
    """
    Base event class

    All domain events should inherit from this class and declare their own fields.

    Attributes:
        event_id: Unique identifier for the event, automatically generated
        created_at: Event creation time (ISO format string), automatically generated
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: str = field(
        default_factory=lambda: to_iso_format(get_now_with_timezone())
    )

    @classmethod
    def event_type(cls) -> str:
        """
        Get the event type name

        Returns the class name by default.
        """
        return cls.__name__

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert object to a serializable dictionary, tagged with `_event_type`
        """
        data = asdict(self)
        data['_event_type'] = self.event_type()
        return data

    def to_json_str(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(event_id={self.event_id!r}, created_at={self.created_at!r})"

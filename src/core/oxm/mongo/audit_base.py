"""
MongoDB audit base class

Audit base class based on Beanie ODM, including common timestamp fields and automatic processing logic.
"""

from datetime import datetime
from typing import Optional
from beanie import before_event, Insert, Save, Update
from pydantic import Field, BaseModel
from common_utils.datetime_utils import get_now_with_timezone


class AuditBase(BaseModel):
    """
    Audit base class

    Includes common timestamp fields maintained by Beanie pre-write hooks.
    A resync write-back goes through `save()`, so `updated_at` moves forward
    on every synchronized record.
    """

    created_at: Optional[datetime] = Field(default=None, description="Creation time")
    updated_at: Optional[datetime] = Field(default=None, description="Update time")

    @before_event(Insert)
    async def set_created_at(self):
        """Set creation time before insertion"""
        now = get_now_with_timezone()
        self.created_at = now
        self.updated_at = now

    @before_event(Save, Update)
    async def set_updated_at(self):
        """Set update time before save/update"""
        now = get_now_with_timezone()
        if self.created_at is None:
            self.created_at = now
        self.updated_at = now


__all__ = ["AuditBase"]

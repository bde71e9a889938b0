from typing import Optional
from core.oxm.mongo.document_base import DocumentBase
from pydantic import Field, ConfigDict
from pymongo import IndexModel, ASCENDING, DESCENDING
from core.oxm.mongo.audit_base import AuditBase


class Book(DocumentBase, AuditBase):
    """
    Book document model

    Primary record of the library catalog, indexed into the `books` search index.
    """

    title: str = Field(..., description="Book title, required and indexed")
    author: Optional[str] = Field(default=None, description="Author name")

    model_config = ConfigDict(
        collection="books",
        validate_assignment=True,
        json_schema_extra={
            "example": {"title": "American Gods", "author": "Neil Gaiman"}
        },
    )

    class Settings:
        """Beanie settings"""

        name = "books"
        indexes = [
            IndexModel([("title", ASCENDING)], name="idx_title"),
            IndexModel([("created_at", DESCENDING)], name="idx_created_at"),
        ]
        validate_on_save = True

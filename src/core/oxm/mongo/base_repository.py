"""
MongoDB Base Repository Class

Base repository class based on Beanie ODM. Besides the model-level write path it
exposes the raw collection cursor used by full-collection resynchronization:
raw documents are streamed without model validation, so malformed records
reach the pipeline and can be reported one by one.
"""

from abc import ABC
from typing import Any, AsyncIterator, Dict, Generic, List, Mapping, Optional, Type, TypeVar

from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.collection import AsyncCollection

from core.observation.logger import get_logger
from core.oxm.mongo.document_base import DocumentBase

logger = get_logger(__name__)

# Generic type variable
T = TypeVar('T', bound=DocumentBase)


class BaseRepository(ABC, Generic[T]):
    """
    MongoDB Base Repository Class

    Features:
    - Raw cursor streaming with bounded driver batches
    - Write-back through Beanie's `save()` (fires pre-save hooks)
    - Collection reset helpers for data fix scripts and tests
    """

    def __init__(self, model: Type[T]):
        """
        Initialize base repository

        Args:
            model: Beanie document model class
        """
        self.model = model
        self.model_name = model.__name__

    def get_collection(self) -> AsyncCollection:
        """Get the underlying pymongo async collection (Beanie must be initialized)"""
        return self.model.get_pymongo_collection()

    # ==================== Read ====================

    async def stream_raw(
        self,
        query_filter: Optional[Dict[str, Any]] = None,
        batch_size: int = 500,
        sort_field: Optional[str] = None,
        sort_desc: bool = False,
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Stream raw documents matching the filter in cursor order

        At most `batch_size` documents are held by the driver at a time; the next
        batch is fetched only when the consumer asks for more.

        Args:
            query_filter: Query filter conditions, all documents if None
            batch_size: Driver batch size
            sort_field: Optional sort field, natural order if None
            sort_desc: Whether to sort in descending order

        Yields:
            Raw MongoDB documents
        """
        filter_dict = query_filter if query_filter else {}
        cursor = self.get_collection().find(filter_dict, batch_size=batch_size)
        if sort_field:
            cursor = cursor.sort(sort_field, DESCENDING if sort_desc else ASCENDING)

        logger.debug(
            "🔄 Opening cursor [%s]: filter=%s, batch_size=%d",
            self.model_name,
            filter_dict,
            batch_size,
        )
        try:
            async for raw in cursor:
                yield raw
        finally:
            await cursor.close()

    async def count(self, query_filter: Optional[Dict[str, Any]] = None) -> int:
        """Count documents matching the filter"""
        return await self.get_collection().count_documents(query_filter or {})

    # ==================== Write ====================

    async def save_raw(
        self,
        raw: Mapping[str, Any],
        session: Optional[AsyncClientSession] = None,
    ) -> T:
        """
        Validate a raw document against the model and save it

        Goes through `Document.save()`, so every `before_event(Save)` hook of the
        model runs exactly once.

        Args:
            raw: Raw MongoDB document (with `_id`)
            session: Optional MongoDB session

        Returns:
            Saved document instance
        """
        try:
            document = self.model.model_validate(dict(raw))
            await document.save(session=session)
            logger.debug(
                "✅ Document saved successfully [%s]: %s",
                self.model_name,
                getattr(document, 'id', 'unknown'),
            )
            return document
        except Exception as e:
            logger.error("❌ Failed to save document [%s]: %s", self.model_name, e)
            raise

    async def insert_raw_many(self, raw_documents: List[Dict[str, Any]]) -> int:
        """
        Insert raw documents bypassing model validation and hooks

        Used to seed collections (including malformed records) for data fixes and tests.

        Returns:
            Number of inserted documents
        """
        if not raw_documents:
            return 0
        result = await self.get_collection().insert_many(raw_documents)
        logger.info(
            "✅ Inserted %d raw documents [%s]", len(result.inserted_ids), self.model_name
        )
        return len(result.inserted_ids)

    async def delete_all(self) -> int:
        """
        Delete every document of the collection (idempotent)

        Returns:
            Number of deleted documents
        """
        result = await self.get_collection().delete_many({})
        logger.info(
            "✅ Deleted %d documents [%s]", result.deleted_count, self.model_name
        )
        return result.deleted_count

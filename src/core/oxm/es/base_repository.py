"""
Elasticsearch Base Repository Class

Base repository class based on elasticsearch-dsl, providing single-document
indexing, query-string search and index lifecycle helpers.
"""

from abc import ABC
from typing import TypeVar, Generic, Type, Dict, Any
from elasticsearch import AsyncElasticsearch
from core.oxm.es.doc_base import DocBase
from core.observation.logger import get_logger

logger = get_logger(__name__)

# Generic type variable
T = TypeVar('T', bound=DocBase)


class BaseRepository(ABC, Generic[T]):
    """
    Elasticsearch Base Repository Class

    Features:
    - Async Elasticsearch client management
    - Single-document indexing (errors propagate to the caller)
    - Search and statistics
    - Index management (init / refresh / delete, all idempotent)
    """

    def __init__(self, model: Type[T]):
        """
        Initialize base repository

        Args:
            model: Elasticsearch document model class
        """
        self.model = model
        self.model_name = model.__name__

    # ==================== Client Management ====================

    async def get_client(self) -> AsyncElasticsearch:
        """
        Get Elasticsearch async client

        Returns:
            AsyncElasticsearch: Async client instance
        """
        return self.model.get_connection()

    def get_index_name(self) -> str:
        """
        Get index name

        Returns:
            str: Index name
        """
        return self.model.get_index_name()

    # ==================== Indexing ====================

    async def index(self, document: T, refresh: bool = False) -> T:
        """
        Index (create or overwrite) a document under its meta.id

        Args:
            document: Document instance
            refresh: Whether to refresh the index immediately

        Returns:
            Indexed document instance

        Raises:
            elasticsearch.ApiError / elastic_transport.TransportError: remote rejection or transport failure
            elasticsearch.dsl.exceptions.ValidationException: document does not satisfy its mapping
        """
        client = await self.get_client()
        await document.save(using=client, refresh=refresh)
        logger.debug(
            "✅ Document indexed successfully [%s]: %s",
            self.model_name,
            getattr(document.meta, 'id', 'unknown'),
        )
        return document

    # ==================== Search Methods ====================

    async def search(
        self, query: Dict[str, Any], size: int = 10, from_: int = 0
    ) -> Dict[str, Any]:
        """
        Execute search query

        Args:
            query: Elasticsearch query DSL
            size: Number of results to return
            from_: Pagination starting position

        Returns:
            Search results
        """
        try:
            client = await self.get_client()
            response = await client.search(
                index=self.get_index_name(),
                query=query,
                size=size,
                from_=from_,
                track_total_hits=True,
            )
            logger.debug(
                "✅ Search executed successfully [%s]: Found %d results",
                self.model_name,
                response.get('hits', {}).get('total', {}).get('value', 0),
            )
            return response
        except Exception as e:
            logger.error("❌ Failed to execute search [%s]: %s", self.model_name, e)
            raise

    async def search_total(self, query_string: str) -> int:
        """
        Total hit count of a query_string query

        Args:
            query_string: Lucene query string, e.g. "American"

        Returns:
            Total number of matching documents
        """
        response = await self.search(
            query={"query_string": {"query": query_string}}, size=0
        )
        return response.get('hits', {}).get('total', {}).get('value', 0)

    # ==================== Index Management ====================

    async def refresh_index(self) -> bool:
        """
        Manually refresh index so that newly written data is immediately searchable

        Returns:
            Returns True if refresh succeeds, otherwise False
        """
        try:
            client = await self.get_client()
            await client.indices.refresh(index=self.get_index_name())
            logger.debug(
                "✅ Manual index refresh succeeded [%s]: %s",
                self.model_name,
                self.get_index_name(),
            )
            return True
        except Exception as e:
            logger.error("❌ Manual index refresh failed [%s]: %s", self.model_name, e)
            return False

    async def init_index(self) -> None:
        """
        Create the index with the document mapping, or update the mapping if it exists
        """
        client = await self.get_client()
        await self.model.init(using=client)
        logger.info(
            "✅ Index initialized [%s]: %s", self.model_name, self.get_index_name()
        )

    async def delete_index_if_exists(self) -> bool:
        """
        Delete the index, missing indices are ignored

        Returns:
            Returns True if the request succeeds, otherwise False
        """
        try:
            client = await self.get_client()
            await client.indices.delete(
                index=self.get_index_name(), ignore_unavailable=True
            )
            logger.debug(
                "✅ Index deletion succeeded [%s]: %s",
                self.model_name,
                self.get_index_name(),
            )
            return True
        except Exception as e:
            logger.error("❌ Index deletion failed [%s]: %s", self.model_name, e)
            return False

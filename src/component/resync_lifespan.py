"""
Resync client lifespan

Opens the MongoDB and Elasticsearch clients used by a resynchronization run
(Beanie initialized for the given models, the ES client registered as the
`default` dsl connection) and closes both on exit.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Type

from beanie import Document

from component.elasticsearch_client_factory import (
    ElasticsearchClientFactory,
    ElasticsearchClientWrapper,
)
from component.mongodb_client_factory import MongoDBClientFactory, MongoDBClientWrapper
from core.observation.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ResyncClients:
    mongodb: MongoDBClientWrapper
    elasticsearch: ElasticsearchClientWrapper


@asynccontextmanager
async def resync_clients(
    document_models: List[Type[Document]],
) -> AsyncIterator[ResyncClients]:
    """
    Connect MongoDB and Elasticsearch for the duration of the block

    Args:
        document_models: Beanie models to initialize

    Yields:
        ResyncClients: The connected client wrappers
    """
    mongodb_factory = MongoDBClientFactory()
    es_factory = ElasticsearchClientFactory()

    logger.info("Initializing MongoDB and Elasticsearch connections...")
    try:
        mongodb_client = await mongodb_factory.get_default_client()
        await mongodb_client.initialize_beanie(document_models)
        es_client = await es_factory.register_default_client()
        logger.info("✅ Resync connections initialization completed")

        yield ResyncClients(mongodb=mongodb_client, elasticsearch=es_client)
    finally:
        await es_factory.close_all_clients()
        await mongodb_factory.close_all_clients()
        logger.info("🔌 Resync connections closed")

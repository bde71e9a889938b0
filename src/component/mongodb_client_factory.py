"""
MongoDB Client Factory

Provides MongoDB client caching and management functionality based on configuration.
Supports reading configuration from environment variables and provides default client.
"""

import os
import asyncio
from typing import Dict, Optional, List, Type
from urllib.parse import quote_plus
from pymongo import AsyncMongoClient
from beanie import Document, init_beanie

from core.observation.logger import get_logger
from common_utils.datetime_utils import timezone

logger = get_logger(__name__)

DEFAULT_DATABASE = "library"


class MongoDBConfig:
    """MongoDB configuration class"""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 27017,
        username: Optional[str] = None,
        password: Optional[str] = None,
        database: str = DEFAULT_DATABASE,
        uri: Optional[str] = None,
        uri_params: Optional[str] = None,
        **kwargs,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.database = database
        self.uri = uri
        self.uri_params = uri_params
        self.kwargs = kwargs

    def get_connection_string(self) -> str:
        """Get connection string and append unified URI parameters (if any)"""
        if self.uri:
            base_uri = self.uri
        elif self.username and self.password:
            # URL encode username and password
            encoded_username = quote_plus(self.username)
            encoded_password = quote_plus(self.password)
            base_uri = f"mongodb://{encoded_username}:{encoded_password}@{self.host}:{self.port}/{self.database}"
        else:
            base_uri = f"mongodb://{self.host}:{self.port}/{self.database}"

        if self.uri_params:
            separator = '&' if ('?' in base_uri) else '?'
            return f"{base_uri}{separator}{self.uri_params}"
        return base_uri

    def get_cache_key(self) -> str:
        """Cache key built from the basic connection info and URI parameters"""
        base = f"{self.uri or ''}:{self.host}:{self.port}:{self.database}:{self.username or 'anonymous'}"
        signature = self.uri_params.strip() if isinstance(self.uri_params, str) else ""
        return f"{base}:{signature}" if signature else base

    @classmethod
    def from_env(cls, prefix: str = "") -> 'MongoDBConfig':
        """
        Create configuration from environment variables.

        prefix rule: if prefix is provided, read variables in the format "{prefix}_XXX", otherwise read "XXX".
        For example: prefix="a" reads "A_MONGODB_URI", "A_MONGODB_HOST", etc.
        """

        def _env(name: str, default: Optional[str] = None) -> Optional[str]:
            key = f"{prefix.upper()}_{name}" if prefix else name
            return os.getenv(key, default) if default is not None else os.getenv(key)

        # Prioritize using MONGODB_URI
        uri = _env("MONGODB_URI")
        if uri:
            return cls(uri=uri, database=_env("MONGODB_DATABASE", DEFAULT_DATABASE))

        return cls(
            host=_env("MONGODB_HOST", "localhost"),
            port=int(_env("MONGODB_PORT", "27017")),
            username=_env("MONGODB_USERNAME"),
            password=_env("MONGODB_PASSWORD"),
            database=_env("MONGODB_DATABASE", DEFAULT_DATABASE),
            uri_params=_env("MONGODB_URI_PARAMS", ""),
        )

    def __repr__(self) -> str:
        return f"MongoDBConfig(host={self.host}, port={self.port}, database={self.database})"


class MongoDBClientWrapper:
    """MongoDB client wrapper"""

    def __init__(self, client: AsyncMongoClient, config: MongoDBConfig):
        self.client = client
        self.config = config
        self.database = client[config.database]
        self._initialized = False
        self._closed = False
        self._document_models: List[Type[Document]] = []

    async def initialize_beanie(self, document_models: List[Type[Document]]):
        """Initialize Beanie ODM for the given models (idempotent)"""
        if self._initialized:
            return

        try:
            logger.info(
                "Initializing Beanie ODM, database: %s, model count: %d",
                self.config.database,
                len(document_models),
            )
            await init_beanie(database=self.database, document_models=document_models)
            self._document_models = list(document_models)
            self._initialized = True

            for model in document_models:
                logger.info(
                    "📋 Registered model: database=%s, model=%s -> %s",
                    self.config.database,
                    model.__name__,
                    model.get_collection_name(),
                )
        except Exception as e:
            logger.error("❌ Beanie initialization failed: %s", e)
            raise

    async def test_connection(self) -> bool:
        """Test connection"""
        try:
            await self.client.admin.command('ping')
            logger.info("✅ MongoDB connection test successful: %s", self.config)
            return True
        except Exception as e:
            logger.error(
                "❌ MongoDB connection test failed: %s, error: %s", self.config, e
            )
            return False

    async def close(self):
        """Close connection (idempotent)"""
        if self._closed:
            return
        self._closed = True
        await self.client.close()
        logger.info("🔌 MongoDB connection closed: %s", self.config)


class MongoDBClientFactory:
    """MongoDB client factory, one cached client per configuration"""

    def __init__(self):
        self._clients: Dict[str, MongoDBClientWrapper] = {}
        self._default_client: Optional[MongoDBClientWrapper] = None
        self._lock = asyncio.Lock()

    async def get_client(
        self, config: Optional[MongoDBConfig] = None, **connection_kwargs
    ) -> MongoDBClientWrapper:
        """
        Get MongoDB client

        Args:
            config: MongoDB configuration, read from environment variables if None
            **connection_kwargs: additional connection parameters

        Returns:
            MongoDBClientWrapper: MongoDB client wrapper
        """
        if config is None:
            config = MongoDBConfig.from_env()
            logger.info("📋 Loading default MongoDB config: %s", config)

        cache_key = config.get_cache_key()

        async with self._lock:
            if cache_key in self._clients:
                return self._clients[cache_key]

            logger.info("Creating new MongoDB client: %s", config)
            conn_kwargs = {
                "serverSelectionTimeoutMS": 10000,
                "connectTimeoutMS": 10000,
                "socketTimeoutMS": 10000,
                "maxPoolSize": 50,
                "tz_aware": True,
                "tzinfo": timezone,
                **config.kwargs,
                **connection_kwargs,
            }

            try:
                client = AsyncMongoClient(config.get_connection_string(), **conn_kwargs)
                client_wrapper = MongoDBClientWrapper(client, config)

                if not await client_wrapper.test_connection():
                    await client_wrapper.close()
                    raise RuntimeError(f"MongoDB connection test failed: {config}")

                self._clients[cache_key] = client_wrapper
                logger.info("✅ MongoDB client created and cached: %s", config)
                return client_wrapper
            except Exception as e:
                logger.error(
                    "❌ Failed to create MongoDB client: %s, error: %s", config, e
                )
                raise

    async def get_default_client(self) -> MongoDBClientWrapper:
        """Get the client configured by MONGODB_* environment variables"""
        if self._default_client is None:
            self._default_client = await self.get_client()
        return self._default_client

    async def close_all_clients(self):
        """Close all clients (idempotent)"""
        async with self._lock:
            for client_wrapper in self._clients.values():
                try:
                    await client_wrapper.close()
                except Exception as e:
                    logger.error("Error closing MongoDB client: %s", e)
            self._clients.clear()
            self._default_client = None
            logger.info("All MongoDB clients closed")

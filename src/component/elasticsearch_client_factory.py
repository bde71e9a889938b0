"""
Elasticsearch Client Factory

Provides Elasticsearch client caching and management functionality based on environment variables.
Clients are registered as elasticsearch-dsl connections, so documents resolve them by alias.
"""

import os
import asyncio
from typing import Dict, Optional, List, Any
from hashlib import md5
from elasticsearch import AsyncElasticsearch
from elasticsearch.dsl.async_connections import connections as async_connections

from core.observation.logger import get_logger

logger = get_logger(__name__)


def get_default_es_config() -> Dict[str, Any]:
    """
    Get default Elasticsearch configuration based on environment variables

    Environment variables:
    - ES_HOST: Elasticsearch host, default localhost
    - ES_PORT: Elasticsearch port, default 9200
    - ES_HOSTS: Elasticsearch host list, comma-separated, takes precedence over ES_HOST
    - ES_USERNAME: Username
    - ES_PASSWORD: Password
    - ES_API_KEY: API key
    - ES_TIMEOUT: Timeout (seconds), default 120

    Returns:
        Dict[str, Any]: Configuration dictionary
    """
    es_hosts_str = os.getenv("ES_HOSTS")
    if es_hosts_str:
        # ES_HOSTS already contains full URL (https://host:port), use directly
        es_hosts = [host.strip() for host in es_hosts_str.split(",")]
    else:
        es_host = os.getenv("ES_HOST", "localhost")
        es_port = int(os.getenv("ES_PORT", "9200"))
        es_hosts = [f"http://{es_host}:{es_port}"]

    es_username = os.getenv("ES_USERNAME")
    es_api_key = os.getenv("ES_API_KEY")
    es_timeout = int(os.getenv("ES_TIMEOUT", "120"))

    config = {
        "hosts": es_hosts,
        "timeout": es_timeout,
        "username": es_username,
        "password": os.getenv("ES_PASSWORD"),
        "api_key": es_api_key,
        "verify_certs": os.getenv("ES_VERIFY_CERTS", "false").lower() == "true",
    }

    logger.info(
        "Default Elasticsearch config: hosts=%s, timeout=%ss, auth=%s",
        es_hosts,
        es_timeout,
        "API Key" if es_api_key else ("Basic" if es_username else "None"),
    )
    return config


def get_cache_key(
    hosts: List[str],
    username: Optional[str] = None,
    password: Optional[str] = None,
    api_key: Optional[str] = None,
) -> str:
    """
    Generate cache key (also used as alias for elasticsearch-dsl connections)

    Returns:
        str: Cache key
    """
    hosts_str = ",".join(sorted(hosts))
    auth_str = ""
    if api_key:
        auth_str = f"api_key:{api_key[:8]}..."
    elif username and password:
        auth_str = f"basic:{username}:{md5(password.encode()).hexdigest()[:8]}"
    elif username:
        auth_str = f"basic:{username}"

    return md5(f"{hosts_str}:{auth_str}".encode()).hexdigest()


class ElasticsearchClientWrapper:
    """Elasticsearch client wrapper"""

    def __init__(self, async_client: AsyncElasticsearch, hosts: List[str]):
        self.async_client = async_client
        self.hosts = hosts
        self._closed = False

    async def test_connection(self) -> bool:
        """Test connection"""
        try:
            await self.async_client.ping()
            logger.info("✅ Elasticsearch connection test successful: %s", self.hosts)
            return True
        except Exception as e:
            logger.error(
                "❌ Elasticsearch connection test failed: %s, error: %s", self.hosts, e
            )
            return False

    async def close(self):
        """Close connection (idempotent)"""
        if self._closed:
            return
        self._closed = True
        try:
            await self.async_client.close()
            logger.info("🔌 Elasticsearch connection closed: %s", self.hosts)
        except Exception as e:
            logger.error("Error closing Elasticsearch connection: %s", e)


class ElasticsearchClientFactory:
    """
    Elasticsearch client factory
    ### AsyncElasticsearch is stateful, so the same instance can be used in multiple places ###
    """

    def __init__(self):
        self._clients: Dict[str, ElasticsearchClientWrapper] = {}
        self._lock = asyncio.Lock()
        self._default_client: Optional[ElasticsearchClientWrapper] = None

    async def _get_client(
        self,
        hosts: List[str],
        username: Optional[str] = None,
        password: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: int = 120,
        verify_certs: bool = False,
    ) -> ElasticsearchClientWrapper:
        """Get or create the client for the given hosts and credentials"""
        alias = get_cache_key(hosts, username, password, api_key)

        async with self._lock:
            if alias in self._clients:
                return self._clients[alias]

            conn_params: Dict[str, Any] = {
                "hosts": hosts,
                "request_timeout": timeout,
                "max_retries": 3,
                "retry_on_timeout": True,
                "verify_certs": verify_certs,
                "ssl_show_warn": False,
            }
            if api_key:
                conn_params["api_key"] = api_key
            elif username and password:
                conn_params["basic_auth"] = (username, password)

            async_client = async_connections.create_connection(alias=alias, **conn_params)
            client_wrapper = ElasticsearchClientWrapper(async_client, hosts)
            self._clients[alias] = client_wrapper
            logger.info("Created Elasticsearch client for %s with alias %s", hosts, alias)
            return client_wrapper

    async def register_default_client(self) -> ElasticsearchClientWrapper:
        """
        Register the environment-configured client as the `default` dsl connection

        Returns:
            ElasticsearchClientWrapper instance
        """
        if self._default_client is not None:
            return self._default_client

        config = get_default_es_config()
        default_client = await self._get_client(
            hosts=config["hosts"],
            username=config.get("username"),
            password=config.get("password"),
            api_key=config.get("api_key"),
            timeout=config.get("timeout", 120),
            verify_certs=config.get("verify_certs", False),
        )

        async_connections.add_connection(
            alias="default", conn=default_client.async_client
        )
        self._default_client = default_client
        return default_client

    async def close_all_clients(self) -> None:
        """Close all cached clients (idempotent)"""
        async with self._lock:
            for alias, client_wrapper in self._clients.items():
                await client_wrapper.close()
                try:
                    async_connections.remove_connection(alias)
                except KeyError:
                    pass
            if self._default_client is not None:
                try:
                    async_connections.remove_connection("default")
                except KeyError:
                    pass
            self._clients.clear()
            self._default_client = None
            logger.info("All Elasticsearch clients closed and cleared from cache")

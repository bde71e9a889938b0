# -*- coding: utf-8 -*-
"""
Books resync integration test

Runs against the MongoDB and Elasticsearch configured by MONGODB_* / ES_*
environment variables (see .env); skipped when either is unreachable.
"""

import asyncio
import pytest
import pytest_asyncio

from biz_layer.es_resync import BookResyncService
from common_utils.load_env import load_env_file
from component.resync_lifespan import resync_clients
from core.oxm.mongo.save_events import SaveCounterListener
from infra_layer.adapters.out.persistence.document.library.book import Book


async def reset_books(service: BookResyncService, titles):
    await service.es_repo.delete_index_if_exists()
    await service.es_repo.init_index()
    await service.mongo_repo.delete_all()
    await service.mongo_repo.insert_titles(titles)


async def search_american(service: BookResyncService) -> int:
    # Near-real-time indexing: refresh before searching
    await service.es_repo.refresh_index()
    return await service.es_repo.search_total("American")


@pytest_asyncio.fixture
async def connected():
    load_env_file()
    try:
        async with resync_clients([Book]) as clients:
            if not await clients.elasticsearch.test_connection():
                pytest.skip("Elasticsearch is not reachable")
            yield clients
    except RuntimeError as e:
        pytest.skip(f"MongoDB is not reachable: {e}")


class TestBooksResync:
    """End-to-end resync of the books collection"""

    @pytest.mark.asyncio
    async def test_collection_with_invalid_record(
        self, connected, book_titles, event_publisher
    ):
        service = BookResyncService()
        await reset_books(service, book_titles + [None])
        save_counter = SaveCounterListener(collection="books")
        event_publisher.register(save_counter)

        stream = service.synchronize()
        data, errors = [], []
        stream.on("data", data.append).on("error", errors.append)
        summary = await asyncio.wait_for(stream.wait_closed(), timeout=60)

        assert len(data) == 53
        assert len(errors) == 1
        assert save_counter.count == len(data)
        assert summary.persisted == 53
        assert await search_american(service) == 2
        assert "The Quiet American" in await service.es_repo.search_titles("Quiet American")

    @pytest.mark.asyncio
    async def test_collection_without_saving(self, connected, book_titles, event_publisher):
        service = BookResyncService()
        await reset_books(service, book_titles)
        save_counter = SaveCounterListener(collection="books")
        event_publisher.register(save_counter)

        stream = service.synchronize({}, {"save_on_synchronize": False})
        data = []
        stream.on("data", data.append)
        await asyncio.wait_for(stream.wait_closed(), timeout=60)

        assert len(data) == 53
        assert all(doc.meta.id for doc in data)
        assert save_counter.count == 0
        assert await search_american(service) == 2

    @pytest.mark.asyncio
    async def test_empty_collection(self, connected, event_publisher):
        service = BookResyncService()
        await reset_books(service, [])

        outcomes = [outcome async for outcome in service.synchronize()]

        assert outcomes == []

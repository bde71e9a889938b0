# -*- coding: utf-8 -*-
"""
Data fix script tests (argument handling only, no connections)
"""

import pytest

from core.constants.exceptions import ConfigurationException
from devops_scripts.data_fix import es_sync_docs


class TestBuildConfig:
    def test_command_line_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("SYNC_CONCURRENCY", "2")
        monkeypatch.setenv("SYNC_BATCH_SIZE", "50")

        config = es_sync_docs.build_config(concurrency=8, save=False, refresh=True)

        assert config.concurrency == 8
        assert config.batch_size == 50
        assert config.save_on_synchronize is False
        assert config.refresh_on_close is True

    def test_invalid_override(self):
        with pytest.raises(ConfigurationException):
            es_sync_docs.build_config(concurrency=0)


class TestRun:
    @pytest.mark.asyncio
    async def test_unknown_index_rejected(self):
        with pytest.raises(ValueError):
            await es_sync_docs.run("movies", es_sync_docs.build_config(), None)

    @pytest.mark.asyncio
    async def test_dispatches_to_index_handler(self, monkeypatch):
        calls = []

        async def fake_handler(config, days):
            calls.append((config, days))
            return "summary"

        monkeypatch.setitem(es_sync_docs.SYNC_HANDLERS, "books", fake_handler)
        config = es_sync_docs.build_config(save=False)

        result = await es_sync_docs.run("books", config, 7)

        assert result == "summary"
        assert calls == [(config, 7)]

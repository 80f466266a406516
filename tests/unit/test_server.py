# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Tests for cache server registration and executor lookup."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError

from slidecache.core.constants import BackendType
from slidecache.core.exceptions import ConfigurationError
from slidecache.executor.memory import MemoryScriptExecutor
from slidecache.server import CacheServer, ServerRegistry


@pytest.fixture
def registry() -> ServerRegistry:
    reg = ServerRegistry()
    reg.register(CacheServer(name="main"))
    return reg


class TestCacheServer:
    def test_defaults(self):
        server = CacheServer(name="x")
        assert server.backend is BackendType.MEMORY
        assert server.database == 0
        assert server.ignore_connection_error is False

    def test_rejects_negative_database(self):
        with pytest.raises(ValidationError):
            CacheServer(name="x", database=-1)

    def test_rejects_empty_name(self):
        with pytest.raises(ValidationError):
            CacheServer(name="")


class TestServerRegistry:
    def test_unknown_server(self, registry: ServerRegistry):
        with pytest.raises(ConfigurationError):
            registry.get_executor("other")

    def test_server_names(self, registry: ServerRegistry):
        registry.register(CacheServer(name="aux"))
        assert registry.server_names == ["aux", "main"]

    def test_executor_cached_per_database(self, registry: ServerRegistry):
        first = registry.get_executor("main")
        assert registry.get_executor("main", 0) is first
        other = registry.get_executor("main", 3)
        assert other is not first
        assert isinstance(other, MemoryScriptExecutor)

    def test_databases_share_store_and_stats(self, registry: ServerRegistry):
        a = registry.get_executor("main", 0)
        b = registry.get_executor("main", 1)
        assert a.store is b.store
        assert a.stats is b.stats is registry.stats

    def test_reregister_replaces_executors(self, registry: ServerRegistry):
        first = registry.get_executor("main")
        registry.register(CacheServer(name="main", database=2))
        second = registry.get_executor("main")
        assert second is not first
        assert second.database.index == 2

    def test_redis_backend(self):
        reg = ServerRegistry()
        reg.register(
            CacheServer(name="r", backend=BackendType.REDIS, url="redis://cache:6379/0", database=5)
        )
        with patch("slidecache.executor.redis.aioredis.from_url") as from_url:
            executor = reg.get_executor("r")
        from_url.assert_called_once_with("redis://cache:6379/0", decode_responses=True, db=5)
        assert executor.stats is reg.stats

    async def test_close_all(self, registry: ServerRegistry):
        executor = registry.get_executor("main")
        with patch.object(executor, "close", new_callable=AsyncMock) as close:
            await registry.close_all()
        close.assert_awaited_once()


class TestVerify:
    async def test_memory_server_reachable(self, registry: ServerRegistry):
        assert await registry.verify("main") is True

    async def test_unreachable_raises(self, registry: ServerRegistry):
        executor = registry.get_executor("main")
        with patch.object(executor, "ping", AsyncMock(return_value=False)):
            with pytest.raises(ConfigurationError, match="unreachable"):
                await registry.verify("main")

    async def test_unreachable_ignored(self):
        reg = ServerRegistry()
        reg.register(CacheServer(name="lenient", ignore_connection_error=True))
        executor = reg.get_executor("lenient")
        with patch.object(executor, "ping", AsyncMock(return_value=False)):
            assert await reg.verify("lenient") is False

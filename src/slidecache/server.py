# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Named cache servers and the executors bound to their databases."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from slidecache.core.constants import BackendType
from slidecache.core.exceptions import ConfigurationError
from slidecache.core.logging import redact_sensitive
from slidecache.executor.base import AtomicExecutor, RefreshStats
from slidecache.executor.memory import MemoryScriptExecutor
from slidecache.executor.store import MemoryStore

logger = logging.getLogger("slidecache.server")


class CacheServer(BaseModel):
    """Connection details of one backing store."""

    name: str = Field(min_length=1)
    backend: BackendType = BackendType.MEMORY
    url: str = "redis://localhost:6379/0"
    database: int = Field(default=0, ge=0)
    use_script_cache: bool = True
    ignore_connection_error: bool = False


class ServerRegistry:
    """Keeps registered servers and lazily builds one executor per database.

    All executors created by a registry share one :class:`RefreshStats`.
    """

    def __init__(self) -> None:
        self._servers: dict[str, CacheServer] = {}
        self._stores: dict[str, MemoryStore] = {}
        self._executors: dict[tuple[str, int], AtomicExecutor] = {}
        self._retired: list[AtomicExecutor] = []
        self._stats = RefreshStats()

    @property
    def stats(self) -> RefreshStats:
        return self._stats

    def register(self, server: CacheServer) -> None:
        """Register *server*, replacing any server with the same name."""
        if server.name in self._servers:
            logger.warning("Re-registering cache server %s", server.name)
            for key in [k for k in self._executors if k[0] == server.name]:
                self._retired.append(self._executors.pop(key))
            self._stores.pop(server.name, None)
        self._servers[server.name] = server
        logger.info(
            "Registered %s cache server %s (%s)",
            server.backend,
            server.name,
            redact_sensitive(server.url) if server.backend is BackendType.REDIS else "in-process",
        )

    def get_server(self, name: str) -> CacheServer:
        try:
            return self._servers[name]
        except KeyError:
            raise ConfigurationError(f"Cache server {name!r} is not registered") from None

    @property
    def server_names(self) -> list[str]:
        return sorted(self._servers)

    def get_executor(self, name: str, database: int | None = None) -> AtomicExecutor:
        """Return the executor for *database* on server *name*.

        Args:
            name: Registered server name.
            database: Database index; the server's default when ``None``.
        """
        server = self.get_server(name)
        index = server.database if database is None else database
        if index < 0:
            raise ConfigurationError(f"Cache database {index} is invalid")
        key = (name, index)
        executor = self._executors.get(key)
        if executor is None:
            executor = self._executors[key] = self._create_executor(server, index)
        return executor

    def _create_executor(self, server: CacheServer, database: int) -> AtomicExecutor:
        if server.backend is BackendType.REDIS:
            from slidecache.executor.redis import RedisScriptExecutor

            return RedisScriptExecutor(
                redis_url=server.url,
                database=database,
                use_script_cache=server.use_script_cache,
                stats=self._stats,
            )
        store = self._stores.get(server.name)
        if store is None:
            store = self._stores[server.name] = MemoryStore()
        return MemoryScriptExecutor(store=store, database=database, stats=self._stats)

    async def verify(self, name: str, database: int | None = None) -> bool:
        """Check that server *name* answers.

        Raises:
            ConfigurationError: If the server is unreachable and was not
                registered with ``ignore_connection_error``.
        """
        server = self.get_server(name)
        if await self.get_executor(name, database).ping():
            return True
        if server.ignore_connection_error:
            logger.warning("Cache server %s is unreachable; continuing", name)
            return False
        raise ConfigurationError(f"Cache server {name!r} is unreachable")

    async def close_all(self) -> None:
        """Close every executor this registry has created."""
        executors = [*self._executors.values(), *self._retired]
        self._executors.clear()
        self._retired.clear()
        for executor in executors:
            await executor.close()

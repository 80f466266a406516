# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Redis executor: each statement becomes one server-side Lua script.

Scripts are registered through ``redis-py``'s script cache, so repeated
statement shapes are sent as ``EVALSHA`` and transparently re-loaded after
a ``NOSCRIPT`` reply.
"""

from __future__ import annotations

import logging
from typing import Any

import redis.asyncio as aioredis
from redis.asyncio import Redis
from redis.commands.core import AsyncScript
from redis.exceptions import RedisError

from slidecache.core.constants import RefreshOutcome
from slidecache.core.exceptions import ExecutionError
from slidecache.core.logging import redact_sensitive
from slidecache.executor.base import AtomicExecutor, RefreshStats
from slidecache.executor.lua import render_script
from slidecache.executor.statement import ExecutionResult, Statement

logger = logging.getLogger("slidecache.executor.redis")


class RedisScriptExecutor(AtomicExecutor):
    """Redis-backed executor using the ``redis-py`` async client.

    Args:
        client: Pre-built client.  When omitted one is created from
            *redis_url* with ``decode_responses=True``.
        redis_url: Connection URL (e.g. ``redis://localhost:6379/0``).
        database: Database index, overriding the URL path.
        use_script_cache: Send scripts as ``EVALSHA`` (default) instead of
            plain ``EVAL``.
        stats: Shared refresh counters.
    """

    def __init__(
        self,
        client: Redis | None = None,
        redis_url: str = "redis://localhost:6379/0",
        database: int | None = None,
        use_script_cache: bool = True,
        stats: RefreshStats | None = None,
    ) -> None:
        super().__init__(stats)
        if client is None:
            kwargs: dict[str, Any] = {"decode_responses": True}
            if database is not None:
                kwargs["db"] = database
            client = aioredis.from_url(redis_url, **kwargs)
            logger.debug("Created Redis client for %s", redact_sensitive(redis_url))
        self._client = client
        self._use_script_cache = use_script_cache
        self._scripts: dict[str, AsyncScript] = {}

    @property
    def client(self) -> Redis:
        return self._client

    # ------------------------------------------------------------------
    # AtomicExecutor interface
    # ------------------------------------------------------------------

    async def _run(self, statement: Statement) -> ExecutionResult:
        source = render_script(statement)
        keys = list(statement.keys)
        args = statement.args
        try:
            if self._use_script_cache:
                reply = await self._script(source)(keys=keys, args=args)
            else:
                reply = await self._client.eval(source, len(keys), *keys, *args)
        except RedisError as exc:
            raise ExecutionError(
                f"{statement.command.name} failed: {redact_sensitive(str(exc))}"
            ) from exc
        return parse_reply(reply, statement.refreshed_slot_count)

    async def close(self) -> None:
        await self._client.aclose()

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as exc:
            logger.error("Redis ping failed: %s", redact_sensitive(str(exc)))
            return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _script(self, source: str) -> AsyncScript:
        script = self._scripts.get(source)
        if script is None:
            script = self._scripts[source] = self._client.register_script(source)
        return script


def parse_reply(reply: Any, expected_outcomes: int) -> ExecutionResult:
    """Split a script reply into the primary value and refresh outcomes."""
    if not isinstance(reply, list) or len(reply) != expected_outcomes + 1:
        raise ExecutionError(f"Unexpected script reply: {reply!r}")
    value, *raw_outcomes = reply
    outcomes = [
        RefreshOutcome(o.decode() if isinstance(o, bytes) else str(o))
        for o in raw_outcomes
    ]
    return ExecutionResult(value=value, outcomes=outcomes)

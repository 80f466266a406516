# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Cache provider: data-structure operations with sliding expiration.

The :class:`CacheProvider` is the public entry point.  Each operation
maps its arguments onto a native command, asks the expiration engine for
the refresh blocks of every key it touches, and hands the combined
statement to an :class:`~slidecache.executor.base.AtomicExecutor`.

Operations that accept ``expiration`` apply it to the key they write
(the destination for multi-key commands).  Keys that are only read, and
the source side of multi-key commands, continue sliding with whatever
duration was last stored for them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel

from slidecache.core.constants import (
    CombineOperation,
    KeyRole,
    RefreshGuard,
    RefreshOutcome,
    SetWhen,
    ShadowAction,
)
from slidecache.core.exceptions import InvalidParameterError
from slidecache.executor.base import AtomicExecutor, RefreshStats
from slidecache.executor.memory import MemoryScriptExecutor
from slidecache.executor.statement import (
    ExecutionResult,
    KeyRef,
    PrimaryCommand,
    ShadowStep,
    Statement,
    primary_succeeded,
)
from slidecache.expiration.models import ExpirationDecision, ExpirationDescriptor
from slidecache.expiration.policy import ExpirationPolicy, get_default_policy
from slidecache.expiration.protocol import RefreshProtocolBuilder
from slidecache.expiration.resolver import resolve_expiration
from slidecache.expiration.shadow import shadow_key_for
from slidecache.server import CacheServer, ServerRegistry

logger = logging.getLogger("slidecache.provider")

# Module-level singleton
_provider: CacheProvider | None = None

_SET_WHEN_OPTION = {SetWhen.EXISTS: "XX", SetWhen.NOT_EXISTS: "NX"}

_COMBINE_STORE_COMMAND = {
    CombineOperation.UNION: "SUNIONSTORE",
    CombineOperation.INTERSECT: "SINTERSTORE",
    CombineOperation.DIFFERENCE: "SDIFFSTORE",
}


class CacheEntryDetail(BaseModel):
    """Lifetime information about one key, read without refreshing it."""

    key: str
    exists: bool
    ttl: timedelta | None = None
    shadow_key: str
    slide_duration: timedelta | None = None
    shadow_ttl: timedelta | None = None

    @property
    def sliding(self) -> bool:
        return self.slide_duration is not None


def _require_key(value: str | None, name: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidParameterError(f"{name} must be a non-empty key")
    return value


def _require_keys(values: Sequence[str] | None, name: str) -> list[str]:
    if not values:
        raise InvalidParameterError(f"{name} must contain at least one key")
    return [_require_key(v, name) for v in values]


def _seconds_to_delta(seconds: Any) -> timedelta | None:
    if seconds is None:
        return None
    seconds = int(seconds)
    return timedelta(seconds=seconds) if seconds >= 0 else None


class CacheProvider:
    """Redis-style operations over an atomic executor.

    Args:
        executor: Backing executor.  Defaults to a private in-memory one.
        policy: Sliding expiration policy.  Defaults to the process-wide
            policy.
        clock: Returns the current time; used to resolve absolute
            expirations.
    """

    def __init__(
        self,
        executor: AtomicExecutor | None = None,
        policy: ExpirationPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._executor = executor or MemoryScriptExecutor()
        self._policy = policy
        self._clock = clock or (lambda: datetime.now(UTC))

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @property
    def executor(self) -> AtomicExecutor:
        return self._executor

    @property
    def policy(self) -> ExpirationPolicy:
        return self._policy or get_default_policy()

    @property
    def stats(self) -> RefreshStats:
        return self._executor.stats

    def enable_sliding_expiration(self) -> None:
        self.policy.enable()

    def disable_sliding_expiration(self) -> None:
        self.policy.disable()

    def resolve(self, expiration: ExpirationDescriptor | None) -> ExpirationDecision:
        return resolve_expiration(expiration, self._clock())

    def _keeps_ttl(self, decision: ExpirationDecision) -> bool:
        """Whether an overwrite must keep the key's current TTL.

        A continue decision is skipped while sliding is disabled, so a
        command that clears the TTL would otherwise leave the key permanent.
        """
        continues = decision.refresh_from_now and (decision.ttl_seconds or 0) <= 0
        return continues and not self.policy.enabled

    def _builder(self) -> RefreshProtocolBuilder:
        return RefreshProtocolBuilder(self.policy)

    async def _execute(self, statement: Statement) -> ExecutionResult:
        result = await self._executor.execute(statement)
        logger.debug(
            "%s %s -> %s",
            statement.command.name,
            ",".join(statement.keys),
            [str(o) for o in result.outcomes],
        )
        return result

    async def _single(
        self,
        name: str,
        key: str,
        *literals: Any,
        expiration: ExpirationDescriptor | None = None,
        guard: RefreshGuard = RefreshGuard.ALWAYS,
    ) -> Any:
        """Run a one-key command that refreshes the key it touches."""
        builder = self._builder().add(KeyRole.SELF, [0], self.resolve(expiration))
        statement = Statement.create(
            PrimaryCommand(name, (KeyRef(0), *literals)), [key], builder, guard=guard
        )
        return (await self._execute(statement)).value

    async def _read(self, name: str, key: str, *literals: Any) -> Any:
        """Run a one-key read; an existing key continues sliding."""
        return await self._single(name, key, *literals, guard=RefreshGuard.ON_SUCCESS)

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    async def string_set(
        self,
        key: str,
        value: str | int | float,
        expiration: ExpirationDescriptor | None = None,
        when: SetWhen = SetWhen.ALWAYS,
    ) -> bool:
        """Store *value* at *key*.

        Without *expiration* a key that was sliding keeps sliding with its
        stored duration, and while sliding is disabled it keeps its
        remaining TTL.  A non-sliding descriptor without a deadline makes
        the new value permanent.

        Returns:
            ``True`` if the value was written (``when`` may prevent it).
        """
        _require_key(key, "key")
        operands: list[Any] = [KeyRef(0), str(value)]
        if when in _SET_WHEN_OPTION:
            operands.append(_SET_WHEN_OPTION[when])
        decision = self.resolve(expiration)
        if self._keeps_ttl(decision):
            operands.append("KEEPTTL")
        builder = self._builder().add(KeyRole.SELF, [0], decision, persist_when_unset=True)
        statement = Statement.create(
            PrimaryCommand("SET", tuple(operands)),
            [key],
            builder,
            guard=RefreshGuard.ON_SUCCESS,
        )
        result = await self._execute(statement)
        return result.value is not None

    async def string_set_many(
        self,
        items: dict[str, str | int | float],
        expiration: ExpirationDescriptor | None = None,
        when: SetWhen = SetWhen.ALWAYS,
    ) -> bool:
        """Store several values at once with one shared lifetime.

        Only ``SetWhen.ALWAYS`` and ``SetWhen.NOT_EXISTS`` are supported;
        the latter writes nothing if any key already exists.
        """
        if not items:
            raise InvalidParameterError("items must not be empty")
        if when is SetWhen.EXISTS:
            raise InvalidParameterError("string_set_many does not support SetWhen.EXISTS")
        keys = [_require_key(k, "items") for k in items]
        operands: list[Any] = []
        for slot, key in enumerate(keys):
            operands.extend((KeyRef(slot), str(items[key])))
        decision = self.resolve(expiration)
        builder = self._builder().add(
            KeyRole.SELF, range(len(keys)), decision, persist_when_unset=True
        )
        statement = Statement.create(
            PrimaryCommand("MSETNX" if when is SetWhen.NOT_EXISTS else "MSET", tuple(operands)),
            keys,
            builder,
            guard=RefreshGuard.ON_SUCCESS,
            keep_ttl=range(len(keys)) if self._keeps_ttl(decision) else (),
        )
        return primary_succeeded((await self._execute(statement)).value)

    async def string_get(self, key: str) -> str | None:
        return await self._read("GET", _require_key(key, "key"))

    async def string_append(
        self, key: str, value: str, expiration: ExpirationDescriptor | None = None
    ) -> int:
        """Append *value*; returns the new length."""
        return int(
            await self._single("APPEND", _require_key(key, "key"), value, expiration=expiration)
        )

    async def string_increment(
        self, key: str, amount: int = 1, expiration: ExpirationDescriptor | None = None
    ) -> int:
        return int(
            await self._single(
                "INCRBY", _require_key(key, "key"), int(amount), expiration=expiration
            )
        )

    async def string_decrement(
        self, key: str, amount: int = 1, expiration: ExpirationDescriptor | None = None
    ) -> int:
        return await self.string_increment(key, -int(amount), expiration)

    async def string_length(self, key: str) -> int:
        return int(await self._read("STRLEN", _require_key(key, "key")))

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    async def list_left_push(
        self, key: str, values: Sequence[str], expiration: ExpirationDescriptor | None = None
    ) -> int:
        if not values:
            raise InvalidParameterError("values must not be empty")
        return int(
            await self._single(
                "LPUSH", _require_key(key, "key"), *map(str, values), expiration=expiration
            )
        )

    async def list_right_push(
        self, key: str, values: Sequence[str], expiration: ExpirationDescriptor | None = None
    ) -> int:
        if not values:
            raise InvalidParameterError("values must not be empty")
        return int(
            await self._single(
                "RPUSH", _require_key(key, "key"), *map(str, values), expiration=expiration
            )
        )

    async def list_range(self, key: str, start: int = 0, stop: int = -1) -> list[str]:
        return list(await self._read("LRANGE", _require_key(key, "key"), start, stop) or [])

    async def list_right_pop_left_push(
        self,
        source_key: str,
        destination_key: str,
        expiration: ExpirationDescriptor | None = None,
    ) -> str | None:
        """Pop the tail of *source_key* onto the head of *destination_key*.

        Returns:
            The moved element, or ``None`` if the source was empty.
        """
        _require_key(source_key, "source_key")
        _require_key(destination_key, "destination_key")
        builder = (
            self._builder()
            .add(KeyRole.SOURCE, [0])
            .add(KeyRole.DESTINATION, [1], self.resolve(expiration))
        )
        statement = Statement.create(
            PrimaryCommand("RPOPLPUSH", (KeyRef(0), KeyRef(1))),
            [source_key, destination_key],
            builder,
            guard=RefreshGuard.ON_SUCCESS,
        )
        return (await self._execute(statement)).value

    # ------------------------------------------------------------------
    # Sets
    # ------------------------------------------------------------------

    async def set_add(
        self, key: str, members: Sequence[str], expiration: ExpirationDescriptor | None = None
    ) -> int:
        if not members:
            raise InvalidParameterError("members must not be empty")
        return int(
            await self._single(
                "SADD", _require_key(key, "key"), *map(str, members), expiration=expiration
            )
        )

    async def set_members(self, key: str) -> list[str]:
        return sorted(await self._read("SMEMBERS", _require_key(key, "key")) or [])

    async def set_move(
        self,
        source_key: str,
        destination_key: str,
        member: str,
        expiration: ExpirationDescriptor | None = None,
    ) -> bool:
        _require_key(source_key, "source_key")
        _require_key(destination_key, "destination_key")
        if member is None or member == "":
            raise InvalidParameterError("member must not be empty")
        builder = (
            self._builder()
            .add(KeyRole.SOURCE, [0])
            .add(KeyRole.DESTINATION, [1], self.resolve(expiration))
        )
        statement = Statement.create(
            PrimaryCommand("SMOVE", (KeyRef(0), KeyRef(1), str(member))),
            [source_key, destination_key],
            builder,
            guard=RefreshGuard.ON_SUCCESS,
        )
        return (await self._execute(statement)).value == 1

    async def set_combine_and_store(
        self,
        operation: CombineOperation,
        destination_key: str,
        source_keys: Sequence[str],
        expiration: ExpirationDescriptor | None = None,
    ) -> int:
        """Store the union, intersection or difference of *source_keys*.

        Returns:
            Number of members in the resulting set.
        """
        _require_key(destination_key, "destination_key")
        sources = _require_keys(source_keys, "source_keys")
        keys = [destination_key, *sources]
        decision = self.resolve(expiration)
        builder = (
            self._builder()
            .add(KeyRole.DESTINATION, [0], decision)
            .add(KeyRole.SOURCE, range(1, len(keys)))
        )
        statement = Statement.create(
            PrimaryCommand(
                _COMBINE_STORE_COMMAND[operation],
                tuple(KeyRef(i) for i in range(len(keys))),
            ),
            keys,
            builder,
            shadow_steps=[ShadowStep(ShadowAction.DELETE, 0, guard=RefreshGuard.ON_FAILURE)],
            keep_ttl=[0] if self._keeps_ttl(decision) else (),
        )
        return int((await self._execute(statement)).value)

    # ------------------------------------------------------------------
    # Hashes
    # ------------------------------------------------------------------

    async def hash_set(
        self,
        key: str,
        fields: dict[str, Any],
        expiration: ExpirationDescriptor | None = None,
    ) -> int:
        """Set *fields*; returns how many were newly created."""
        if not fields:
            raise InvalidParameterError("fields must not be empty")
        flat: list[str] = []
        for name, value in fields.items():
            flat.extend((str(name), str(value)))
        return int(
            await self._single("HSET", _require_key(key, "key"), *flat, expiration=expiration)
        )

    async def hash_get(self, key: str, field: str) -> str | None:
        return await self._read("HGET", _require_key(key, "key"), str(field))

    async def hash_get_all(self, key: str) -> dict[str, str]:
        flat = await self._read("HGETALL", _require_key(key, "key")) or []
        return dict(zip(flat[::2], flat[1::2]))

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    async def key_expire(self, key: str, expiration: ExpirationDescriptor | None) -> bool:
        """Apply *expiration* to an existing key.

        A deadline that has already passed removes the key.  ``None``
        re-applies the stored sliding duration.

        Returns:
            ``True`` if a lifetime was applied (or the key was removed).
        """
        _require_key(key, "key")
        decision = self.resolve(expiration)
        if not decision.refresh_from_now and decision.ttl_seconds == 0:
            return await self.key_delete([key]) == 1
        builder = self._builder().add(KeyRole.SELF, [0], decision)
        statement = Statement.create(
            PrimaryCommand("EXISTS", (KeyRef(0),)),
            [key],
            builder,
            guard=RefreshGuard.ON_SUCCESS,
        )
        result = await self._execute(statement)
        return bool(result.outcomes) and result.outcomes[0] is RefreshOutcome.APPLIED

    async def key_persist(self, key: str) -> bool:
        """Remove the TTL of *key* and forget its sliding duration."""
        _require_key(key, "key")
        statement = Statement.create(
            PrimaryCommand("PERSIST", (KeyRef(0),)),
            [key],
            shadow_steps=[ShadowStep(ShadowAction.DELETE, 0)],
        )
        return (await self._execute(statement)).value == 1

    async def key_rename(self, key: str, new_key: str, when_not_exists: bool = False) -> bool:
        """Rename *key*; its sliding duration follows it.

        The key is refreshed before the rename so the TTL it carries is
        current.  A stale shadow at *new_key* is removed when *key* has none.
        """
        _require_key(key, "key")
        _require_key(new_key, "new_key")
        builder = self._builder().add(KeyRole.SOURCE, [0])
        statement = Statement.create(
            PrimaryCommand("RENAMENX" if when_not_exists else "RENAME", (KeyRef(0), KeyRef(1))),
            [key, new_key],
            builder,
            shadow_steps=[
                ShadowStep(ShadowAction.RENAME, 0, target_slot=1, guard=RefreshGuard.ON_SUCCESS)
            ],
            refresh_first=True,
        )
        value = (await self._execute(statement)).value
        return value == 1 or value == "OK"

    async def key_move(self, key: str, database: int) -> bool:
        """Move *key* to another database, carrying its configured slide duration."""
        _require_key(key, "key")
        if not isinstance(database, int) or database < 0:
            raise InvalidParameterError(f"database must be a non-negative integer, got {database!r}")
        builder = self._builder().add(KeyRole.SOURCE, [0])
        statement = Statement.create(
            PrimaryCommand("MOVE", (KeyRef(0), database)),
            [key],
            builder,
            shadow_steps=[
                ShadowStep(
                    ShadowAction.MOVE,
                    0,
                    database=database,
                    guard=RefreshGuard.ON_SUCCESS,
                    reapply=self.policy.enabled,
                )
            ],
            refresh_first=True,
        )
        return (await self._execute(statement)).value == 1

    async def key_delete(self, keys: Sequence[str]) -> int:
        """Delete *keys* and their shadows; returns how many keys existed."""
        names = _require_keys(keys, "keys")
        statement = Statement.create(
            PrimaryCommand("DEL", tuple(KeyRef(i) for i in range(len(names)))),
            names,
            shadow_steps=[ShadowStep(ShadowAction.DELETE, i) for i in range(len(names))],
        )
        return int((await self._execute(statement)).value)

    async def key_exists(self, keys: Sequence[str]) -> int:
        """Count how many of *keys* exist; existing ones continue sliding."""
        names = _require_keys(keys, "keys")
        builder = self._builder().add(KeyRole.SELF, range(len(names)))
        statement = Statement.create(
            PrimaryCommand("EXISTS", tuple(KeyRef(i) for i in range(len(names)))),
            names,
            builder,
        )
        return int((await self._execute(statement)).value)

    async def key_time_to_live(self, key: str) -> timedelta | None:
        """Remaining lifetime after refreshing *key*; ``None`` if permanent or absent."""
        _require_key(key, "key")
        builder = self._builder().add(KeyRole.SELF, [0])
        statement = Statement.create(
            PrimaryCommand("TTL", (KeyRef(0),)), [key], builder, refresh_first=True
        )
        return _seconds_to_delta((await self._execute(statement)).value)

    async def key_detail(self, key: str) -> CacheEntryDetail:
        """Inspect *key* and its shadow without touching either lifetime."""
        _require_key(key, "key")
        shadow = shadow_key_for(key)

        async def plain(name: str, target: str) -> Any:
            statement = Statement.create(PrimaryCommand(name, (KeyRef(0),)), [target])
            return (await self._execute(statement)).value

        ttl = await plain("TTL", key)
        stored = await plain("GET", shadow)
        shadow_ttl = await plain("TTL", shadow)
        return CacheEntryDetail(
            key=key,
            exists=ttl != -2,
            ttl=_seconds_to_delta(ttl),
            shadow_key=shadow,
            slide_duration=_seconds_to_delta(stored),
            shadow_ttl=_seconds_to_delta(shadow_ttl),
        )

    async def close(self) -> None:
        await self._executor.close()


def _create_registry_from_settings() -> ServerRegistry:
    """Register the configured server in a fresh registry."""
    from slidecache.core.config import get_settings

    settings = get_settings()
    registry = ServerRegistry()
    registry.register(
        CacheServer(
            name=settings.server_name,
            backend=settings.backend,
            url=settings.redis_url,
            database=settings.database,
            use_script_cache=settings.script_cache,
        )
    )
    return registry


def get_provider() -> CacheProvider:
    """Return the module-level :class:`CacheProvider` singleton.

    Creates a new instance on first call using application settings.
    """
    global _provider
    if _provider is None:
        from slidecache.core.config import get_settings

        registry = _create_registry_from_settings()
        _provider = CacheProvider(executor=registry.get_executor(get_settings().server_name))
    return _provider


def reset_provider() -> None:
    """Reset the singleton (useful for testing)."""
    global _provider
    _provider = None

# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""In-process backing store with Redis command semantics.

Supports the subset of commands the provider issues, across numbered
databases, with per-key absolute deadlines measured on an injectable
clock.  Replies mirror what ``redis-py`` returns with
``decode_responses=True`` from a Lua script: strings, integers, lists, and
``None`` for a nil reply.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

from slidecache.core.exceptions import ExecutionError, UnsupportedCommandError

_DEFAULT_DATABASES = 16

_WRONGTYPE = "WRONGTYPE Operation against a key holding the wrong kind of value"


class _Entry:
    """A stored value with an optional expiry timestamp."""

    __slots__ = ("expires_at", "value")

    def __init__(self, value: Any, expires_at: float | None = None) -> None:
        self.value = value
        self.expires_at = expires_at

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ExecutionError("ERR value is not an integer or out of range") from exc


class MemoryDatabase:
    """One numbered keyspace of a :class:`MemoryStore`."""

    def __init__(self, store: MemoryStore, index: int) -> None:
        self._store = store
        self.index = index
        self._data: dict[str, _Entry] = {}

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def execute(self, name: str, *args: Any) -> Any:
        handler = getattr(self, f"_cmd_{name.lower()}", None)
        if handler is None:
            raise UnsupportedCommandError(f"ERR unknown command '{name}'")
        return handler(*args)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _now(self) -> float:
        return self._store.clock()

    def _entry(self, key: str) -> _Entry | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._now()):
            del self._data[key]
            return None
        return entry

    def _typed(self, key: str, kind: type) -> _Entry | None:
        entry = self._entry(key)
        if entry is not None and not isinstance(entry.value, kind):
            raise ExecutionError(_WRONGTYPE)
        return entry

    def _container(self, key: str, kind: type) -> Any:
        """Existing container at *key*, or a fresh one stored there."""
        entry = self._typed(key, kind)
        if entry is None:
            entry = _Entry(kind())
            self._data[key] = entry
        return entry.value

    def _drop_if_empty(self, key: str) -> None:
        entry = self._data.get(key)
        if entry is not None and not entry.value and not isinstance(entry.value, str):
            del self._data[key]

    def keys(self) -> list[str]:
        now = self._now()
        return [k for k, v in self._data.items() if not v.is_expired(now)]

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    def _cmd_get(self, key: str) -> str | None:
        entry = self._typed(key, str)
        return entry.value if entry else None

    def _cmd_set(self, key: str, value: Any, *options: Any) -> str | None:
        condition = None
        ttl = None
        keep_ttl = False
        opts = [str(o).upper() for o in options]
        i = 0
        while i < len(opts):
            if opts[i] in ("NX", "XX"):
                condition = opts[i]
            elif opts[i] == "KEEPTTL":
                keep_ttl = True
            elif opts[i] in ("EX", "PX") and i + 1 < len(opts):
                ttl = _to_int(opts[i + 1]) / (1000 if opts[i] == "PX" else 1)
                i += 1
            else:
                raise ExecutionError("ERR syntax error")
            i += 1
        if keep_ttl and ttl is not None:
            raise ExecutionError("ERR syntax error")
        current = self._entry(key)
        if (condition == "NX" and current) or (condition == "XX" and not current):
            return None
        if keep_ttl:
            expires_at = current.expires_at if current else None
        else:
            expires_at = self._now() + ttl if ttl is not None else None
        self._data[key] = _Entry(str(value), expires_at)
        return "OK"

    def _cmd_mset(self, *pairs: Any) -> str:
        if not pairs or len(pairs) % 2:
            raise ExecutionError("ERR wrong number of arguments for 'mset' command")
        for key, value in zip(pairs[::2], pairs[1::2]):
            self._data[key] = _Entry(str(value))
        return "OK"

    def _cmd_msetnx(self, *pairs: Any) -> int:
        if any(self._entry(key) is not None for key in pairs[::2]):
            return 0
        self._cmd_mset(*pairs)
        return 1

    def _cmd_append(self, key: str, value: Any) -> int:
        entry = self._typed(key, str)
        if entry is None:
            entry = _Entry("")
            self._data[key] = entry
        entry.value += str(value)
        return len(entry.value)

    def _cmd_strlen(self, key: str) -> int:
        entry = self._typed(key, str)
        return len(entry.value) if entry else 0

    def _cmd_incrby(self, key: str, amount: Any) -> int:
        entry = self._typed(key, str)
        current = _to_int(entry.value) if entry else 0
        new_value = current + _to_int(amount)
        if entry is None:
            self._data[key] = _Entry(str(new_value))
        else:
            entry.value = str(new_value)
        return new_value

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def _cmd_expire(self, key: str, seconds: Any) -> int:
        entry = self._entry(key)
        if entry is None:
            return 0
        seconds = _to_int(seconds)
        if seconds <= 0:
            del self._data[key]
            return 1
        entry.expires_at = self._now() + seconds
        return 1

    def _cmd_pexpire(self, key: str, milliseconds: Any) -> int:
        entry = self._entry(key)
        if entry is None:
            return 0
        milliseconds = _to_int(milliseconds)
        if milliseconds <= 0:
            del self._data[key]
            return 1
        entry.expires_at = self._now() + milliseconds / 1000
        return 1

    def _cmd_persist(self, key: str) -> int:
        entry = self._entry(key)
        if entry is None or entry.expires_at is None:
            return 0
        entry.expires_at = None
        return 1

    def _cmd_ttl(self, key: str) -> int:
        entry = self._entry(key)
        if entry is None:
            return -2
        if entry.expires_at is None:
            return -1
        return int(entry.expires_at - self._now() + 0.5)

    def _cmd_pttl(self, key: str) -> int:
        entry = self._entry(key)
        if entry is None:
            return -2
        if entry.expires_at is None:
            return -1
        return int((entry.expires_at - self._now()) * 1000 + 0.5)

    def _cmd_del(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._entry(key) is not None:
                del self._data[key]
                removed += 1
        return removed

    def _cmd_exists(self, *keys: str) -> int:
        return sum(1 for key in keys if self._entry(key) is not None)

    def _cmd_rename(self, key: str, new_key: str) -> str:
        entry = self._entry(key)
        if entry is None:
            raise ExecutionError("ERR no such key")
        del self._data[key]
        self._data[new_key] = entry
        return "OK"

    def _cmd_renamenx(self, key: str, new_key: str) -> int:
        if self._entry(key) is None:
            raise ExecutionError("ERR no such key")
        if self._entry(new_key) is not None:
            return 0
        self._cmd_rename(key, new_key)
        return 1

    def _cmd_move(self, key: str, database: Any) -> int:
        target = self._store.database(_to_int(database))
        if target is self:
            raise ExecutionError("ERR source and destination objects are the same")
        entry = self._entry(key)
        if entry is None or target._entry(key) is not None:
            return 0
        del self._data[key]
        target._data[key] = entry
        return 1

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def _cmd_lpush(self, key: str, *values: Any) -> int:
        items = self._container(key, list)
        for value in values:
            items.insert(0, str(value))
        return len(items)

    def _cmd_rpush(self, key: str, *values: Any) -> int:
        items = self._container(key, list)
        items.extend(str(value) for value in values)
        return len(items)

    def _cmd_lrange(self, key: str, start: Any, stop: Any) -> list[str]:
        entry = self._typed(key, list)
        if entry is None:
            return []
        items = entry.value
        start, stop = _to_int(start), _to_int(stop)
        length = len(items)
        if start < 0:
            start = max(length + start, 0)
        if stop < 0:
            stop = length + stop
        return list(items[start : stop + 1])

    def _cmd_rpoplpush(self, source: str, destination: str) -> str | None:
        entry = self._typed(source, list)
        if entry is None:
            return None
        self._typed(destination, list)
        value = entry.value.pop()
        self._drop_if_empty(source)
        self._container(destination, list).insert(0, value)
        return value

    # ------------------------------------------------------------------
    # Sets
    # ------------------------------------------------------------------

    def _cmd_sadd(self, key: str, *members: Any) -> int:
        items = self._container(key, set)
        before = len(items)
        items.update(str(member) for member in members)
        return len(items) - before

    def _cmd_smembers(self, key: str) -> list[str]:
        entry = self._typed(key, set)
        return sorted(entry.value) if entry else []

    def _cmd_smove(self, source: str, destination: str, member: Any) -> int:
        entry = self._typed(source, set)
        self._typed(destination, set)
        member = str(member)
        if entry is None or member not in entry.value:
            return 0
        entry.value.discard(member)
        self._drop_if_empty(source)
        self._container(destination, set).add(member)
        return 1

    def _members(self, keys: tuple[str, ...]) -> list[set[str]]:
        groups = []
        for key in keys:
            entry = self._typed(key, set)
            groups.append(set(entry.value) if entry else set())
        return groups

    def _store_set(self, destination: str, members: set[str]) -> int:
        self._data.pop(destination, None)
        if members:
            self._data[destination] = _Entry(members)
        return len(members)

    def _cmd_sunionstore(self, destination: str, *keys: str) -> int:
        return self._store_set(destination, set().union(*self._members(keys)))

    def _cmd_sinterstore(self, destination: str, *keys: str) -> int:
        first, *rest = self._members(keys)
        return self._store_set(destination, first.intersection(*rest))

    def _cmd_sdiffstore(self, destination: str, *keys: str) -> int:
        first, *rest = self._members(keys)
        return self._store_set(destination, first.difference(*rest))

    # ------------------------------------------------------------------
    # Hashes
    # ------------------------------------------------------------------

    def _cmd_hset(self, key: str, *pairs: Any) -> int:
        if not pairs or len(pairs) % 2:
            raise ExecutionError("ERR wrong number of arguments for 'hset' command")
        fields = self._container(key, dict)
        added = 0
        for name, value in zip(pairs[::2], pairs[1::2]):
            if str(name) not in fields:
                added += 1
            fields[str(name)] = str(value)
        return added

    def _cmd_hget(self, key: str, name: Any) -> str | None:
        entry = self._typed(key, dict)
        return entry.value.get(str(name)) if entry else None

    def _cmd_hgetall(self, key: str) -> list[str]:
        entry = self._typed(key, dict)
        if entry is None:
            return []
        flat: list[str] = []
        for name, value in entry.value.items():
            flat.extend((name, value))
        return flat


class MemoryStore:
    """A set of numbered :class:`MemoryDatabase` keyspaces sharing one clock.

    Args:
        clock: Monotonic time source in seconds.
        databases: Number of addressable databases.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        databases: int = _DEFAULT_DATABASES,
    ) -> None:
        self.clock = clock
        self._database_count = databases
        self._databases: dict[int, MemoryDatabase] = {}
        # Held for the full duration of a statement.
        self.lock = threading.Lock()

    def database(self, index: int) -> MemoryDatabase:
        if not 0 <= index < self._database_count:
            raise ExecutionError("ERR DB index is out of range")
        db = self._databases.get(index)
        if db is None:
            db = self._databases[index] = MemoryDatabase(self, index)
        return db

    def clear(self) -> None:
        self._databases.clear()

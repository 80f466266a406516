# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Abstract atomic executor and refresh telemetry."""

from __future__ import annotations

import abc
import logging
from collections.abc import Iterable

from slidecache.core.constants import RefreshOutcome
from slidecache.executor.statement import ExecutionResult, Statement

logger = logging.getLogger("slidecache.executor")


class RefreshStats:
    """Counters of refresh outcomes.  Never fed back to callers' results."""

    __slots__ = ("applied", "race_lost", "skipped")

    def __init__(self) -> None:
        self.applied: int = 0
        self.skipped: int = 0
        self.race_lost: int = 0

    @property
    def total(self) -> int:
        return self.applied + self.skipped + self.race_lost

    def record(self, outcomes: Iterable[RefreshOutcome]) -> None:
        for outcome in outcomes:
            if outcome is RefreshOutcome.APPLIED:
                self.applied += 1
            elif outcome is RefreshOutcome.RACE_LOST:
                self.race_lost += 1
            else:
                self.skipped += 1

    def reset(self) -> None:
        self.applied = self.skipped = self.race_lost = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "applied": self.applied,
            "skipped": self.skipped,
            "race_lost": self.race_lost,
            "total": self.total,
        }


class AtomicExecutor(abc.ABC):
    """Runs a :class:`Statement` as one indivisible unit against a store.

    Implementations return the primary command's reply unchanged; refresh
    outcomes are recorded in :attr:`stats` and logged, nothing more.
    """

    def __init__(self, stats: RefreshStats | None = None) -> None:
        self._stats = stats or RefreshStats()

    @property
    def stats(self) -> RefreshStats:
        return self._stats

    async def execute(self, statement: Statement) -> ExecutionResult:
        result = await self._run(statement)
        self._stats.record(result.outcomes)
        for instruction_keys, outcome in zip(_refreshed_keys(statement), result.outcomes):
            if outcome is RefreshOutcome.RACE_LOST:
                logger.debug("Refresh lost race for key %s", instruction_keys)
        return result

    async def ping(self) -> bool:
        """Whether the backing store is reachable."""
        return True

    @abc.abstractmethod
    async def _run(self, statement: Statement) -> ExecutionResult:
        """Execute *statement* atomically and return reply plus outcomes."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release any resources held by the executor."""


def _refreshed_keys(statement: Statement) -> list[str]:
    return [
        statement.keys[slot]
        for instruction in statement.refresh
        for slot in instruction.key_slots
    ]

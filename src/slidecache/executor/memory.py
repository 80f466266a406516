# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Executor that interprets statements against a :class:`MemoryStore`.

This is the default executor and requires no external services.  The
store lock is held for the whole statement, which gives the same
all-or-nothing visibility a Redis script has.  It reads the refresh
control values from the encoded argument list, exactly as the Lua script
does, so both executors share one wire contract.
"""

from __future__ import annotations

from typing import Any

from slidecache.core.constants import RefreshGuard, RefreshOutcome, ShadowAction
from slidecache.executor.base import AtomicExecutor, RefreshStats
from slidecache.executor.statement import (
    ExecutionResult,
    KeyRef,
    ShadowStep,
    Statement,
    primary_succeeded,
)
from slidecache.executor.store import MemoryDatabase, MemoryStore
from slidecache.expiration.models import RefreshInstruction
from slidecache.expiration.shadow import shadow_key_for


class MemoryScriptExecutor(AtomicExecutor):
    """Atomic executor over an in-process store.

    Args:
        store: Shared backing store.  A private one is created if omitted.
        database: Database index this executor addresses.
        stats: Shared refresh counters.
    """

    def __init__(
        self,
        store: MemoryStore | None = None,
        database: int = 0,
        stats: RefreshStats | None = None,
    ) -> None:
        super().__init__(stats)
        self._store = store or MemoryStore()
        self._database = database

    @property
    def store(self) -> MemoryStore:
        return self._store

    @property
    def database(self) -> MemoryDatabase:
        return self._store.database(self._database)

    # ------------------------------------------------------------------
    # AtomicExecutor interface
    # ------------------------------------------------------------------

    async def _run(self, statement: Statement) -> ExecutionResult:
        with self._store.lock:
            return self._interpret(self.database, statement)

    async def close(self) -> None:
        """Nothing to release; the store outlives its executors."""

    # ------------------------------------------------------------------
    # Interpretation
    # ------------------------------------------------------------------

    def _interpret(self, db: MemoryDatabase, statement: Statement) -> ExecutionResult:
        args = statement.args
        outcomes: list[RefreshOutcome] = []

        if statement.refresh_first:
            for instruction in statement.refresh:
                outcomes.extend(self._refresh(db, statement.keys, instruction, args))

        operands = [
            statement.keys[op.slot] if isinstance(op, KeyRef) else op
            for op in statement.command.operands
        ]
        kept = [db.execute("PTTL", statement.keys[slot]) for slot in statement.keep_ttl]
        value = db.execute(statement.command.name, *operands)
        ok = primary_succeeded(value)

        for slot, pttl in zip(statement.keep_ttl, kept):
            key = statement.keys[slot]
            if pttl > 0 and db.execute("PTTL", key) == -1:
                db.execute("PEXPIRE", key, pttl)

        if not statement.refresh_first:
            for instruction in statement.refresh:
                if statement.guard is RefreshGuard.ON_SUCCESS and not ok:
                    outcomes.extend(RefreshOutcome.SKIPPED for _ in instruction.key_slots)
                else:
                    outcomes.extend(self._refresh(db, statement.keys, instruction, args))

        steps = sorted(statement.shadow_steps, key=lambda s: s.action is ShadowAction.MOVE)
        for step in steps:
            if step.guard is RefreshGuard.ON_SUCCESS and not ok:
                continue
            if step.guard is RefreshGuard.ON_FAILURE and ok:
                continue
            self._shadow_step(db, statement.keys, step)

        return ExecutionResult(value=value, outcomes=outcomes)

    @staticmethod
    def _refresh(
        db: MemoryDatabase,
        keys: tuple[str, ...],
        instruction: RefreshInstruction,
        args: list[Any],
    ) -> list[RefreshOutcome]:
        base = instruction.arg_offset
        from_now = args[base] == "1"
        allow = args[base + 1] == "1"
        ttl = int(args[base + 2])

        outcomes = []
        for slot in instruction.key_slots:
            key = keys[slot]
            shadow = shadow_key_for(key)
            outcome = RefreshOutcome.SKIPPED
            if from_now:
                if allow:
                    stored = db.execute("GET", shadow)
                    if stored is not None:
                        if db.execute("EXPIRE", key, stored) == 1:
                            db.execute("SET", shadow, stored, "EX", stored)
                            outcome = RefreshOutcome.APPLIED
                        else:
                            outcome = RefreshOutcome.RACE_LOST
            elif ttl > 0:
                if db.execute("EXPIRE", key, ttl) == 1:
                    if allow:
                        db.execute("SET", shadow, ttl, "EX", ttl)
                    else:
                        db.execute("DEL", shadow)
                    outcome = RefreshOutcome.APPLIED
                else:
                    outcome = RefreshOutcome.RACE_LOST
            elif ttl < 0:
                db.execute("PERSIST", key)
                db.execute("DEL", shadow)
                outcome = RefreshOutcome.APPLIED
            outcomes.append(outcome)
        return outcomes

    def _shadow_step(self, db: MemoryDatabase, keys: tuple[str, ...], step: ShadowStep) -> None:
        key = keys[step.slot]
        shadow = shadow_key_for(key)
        if step.action is ShadowAction.DELETE:
            db.execute("DEL", shadow)
        elif step.action is ShadowAction.RENAME:
            target_shadow = shadow_key_for(keys[step.target_slot])
            if db.execute("EXISTS", shadow) == 1:
                db.execute("RENAME", shadow, target_shadow)
            else:
                db.execute("DEL", target_shadow)
        else:
            stored = db.execute("GET", shadow)
            db.execute("DEL", shadow)
            if stored is None:
                return
            target = self._store.database(step.database)
            if step.reapply:
                if target.execute("EXPIRE", key, stored) == 1:
                    target.execute("SET", shadow, stored, "EX", stored)
                return
            remaining = target.execute("PTTL", key)
            if remaining > 0:
                target.execute("SET", shadow, stored, "PX", remaining)
            elif remaining == -1:
                target.execute("SET", shadow, stored)

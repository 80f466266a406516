# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Shared test fixtures and configuration."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from slidecache.executor.memory import MemoryScriptExecutor
from slidecache.executor.store import MemoryStore
from slidecache.expiration.policy import ExpirationPolicy
from slidecache.provider import CacheProvider

NOW = datetime(2026, 1, 15, 10, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced monotonic clock for the in-memory store."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _reset_singletons(monkeypatch):
    """Reset the provider and policy singletons between tests."""
    from slidecache.expiration.policy import reset_default_policy
    from slidecache.provider import reset_provider

    for name in ("BACKEND", "SLIDING_EXPIRATION", "DATABASE", "SERVER_NAME"):
        monkeypatch.delenv(f"SLIDECACHE_{name}", raising=False)

    reset_provider()
    reset_default_policy()
    yield
    reset_provider()
    reset_default_policy()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryStore:
    return MemoryStore(clock=clock)


@pytest.fixture
def policy() -> ExpirationPolicy:
    return ExpirationPolicy(enabled=True)


@pytest.fixture
def executor(store: MemoryStore) -> MemoryScriptExecutor:
    return MemoryScriptExecutor(store=store)


@pytest.fixture
def provider(executor: MemoryScriptExecutor, policy: ExpirationPolicy) -> CacheProvider:
    return CacheProvider(executor=executor, policy=policy, clock=lambda: NOW)

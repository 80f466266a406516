# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Atomic executors that run a primary command together with its refresh work."""

from slidecache.executor.base import AtomicExecutor, RefreshStats
from slidecache.executor.memory import MemoryScriptExecutor
from slidecache.executor.statement import (
    ExecutionResult,
    KeyRef,
    PrimaryCommand,
    ShadowStep,
    Statement,
)
from slidecache.executor.store import MemoryStore

__all__ = [
    "AtomicExecutor",
    "ExecutionResult",
    "KeyRef",
    "MemoryScriptExecutor",
    "MemoryStore",
    "PrimaryCommand",
    "RefreshStats",
    "ShadowStep",
    "Statement",
]

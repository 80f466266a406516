# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Process-wide switch for sliding expiration.

Every decision point reads an :class:`ExpirationPolicy`.  Callers normally
share the module-level default instance; tests construct their own so two
policies can coexist in one process.  Reads are not synchronised: a reader
that observes a stale value only affects whether a shadow key gets
(re)written, never what a primary command returns.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("slidecache.expiration.policy")


class ExpirationPolicy:
    """Boolean toggle controlling whether sliding TTLs are maintained.

    Args:
        enabled: Initial state.  Defaults to ``True``.
    """

    __slots__ = ("_enabled",)

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        if not self._enabled:
            logger.info("Sliding expiration enabled")
        self._enabled = True

    def disable(self) -> None:
        if self._enabled:
            logger.info("Sliding expiration disabled")
        self._enabled = False

    def __repr__(self) -> str:
        return f"ExpirationPolicy(enabled={self._enabled})"


# Module-level singleton
_default_policy: ExpirationPolicy | None = None


def get_default_policy() -> ExpirationPolicy:
    """Return the process-wide policy, seeding it from settings on first use."""
    global _default_policy
    if _default_policy is None:
        from slidecache.core.config import get_settings

        _default_policy = ExpirationPolicy(enabled=get_settings().sliding_expiration)
    return _default_policy


def reset_default_policy() -> None:
    """Forget the process-wide policy (useful for testing)."""
    global _default_policy
    _default_policy = None


def enable_sliding_expiration() -> None:
    get_default_policy().enable()


def disable_sliding_expiration() -> None:
    get_default_policy().disable()


def allow_sliding_expiration() -> bool:
    return get_default_policy().enabled

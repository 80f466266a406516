# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Convert an :class:`ExpirationDescriptor` into an :class:`ExpirationDecision`."""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

from slidecache.expiration.models import ExpirationDecision, ExpirationDescriptor

CONTINUE_SLIDING = ExpirationDecision(refresh_from_now=True)


def _aware(value: datetime) -> datetime:
    # Naive timestamps are taken as UTC.
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def duration_seconds(duration: timedelta | None) -> int | None:
    """Whole seconds in *duration*, rounded up so a live lifetime never reads as 0."""
    if duration is None:
        return None
    return math.ceil(duration.total_seconds())


def resolve_expiration(
    descriptor: ExpirationDescriptor | None,
    now: datetime | None = None,
) -> ExpirationDecision:
    """Resolve *descriptor* at *now*.  Total and side-effect free.

    Args:
        descriptor: Caller intent, or ``None`` to keep sliding whatever
            duration was last stored for the key.
        now: Reference time.  Defaults to the current UTC time.

    Returns:
        The normalised decision.
    """
    if descriptor is None:
        return CONTINUE_SLIDING
    if descriptor.sliding:
        return ExpirationDecision(
            refresh_from_now=True,
            ttl_seconds=duration_seconds(descriptor.slide_duration),
        )
    if descriptor.absolute_expiration is not None:
        current = _aware(now) if now is not None else datetime.now(UTC)
        deadline = _aware(descriptor.absolute_expiration)
        if deadline <= current:
            return ExpirationDecision(refresh_from_now=False, ttl_seconds=0)
        return ExpirationDecision(
            refresh_from_now=False,
            ttl_seconds=duration_seconds(deadline - current),
        )
    return ExpirationDecision(refresh_from_now=False)

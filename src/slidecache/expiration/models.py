# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Expiration descriptors, decisions, and refresh instructions."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field

from slidecache.core.constants import KeyRole


class ExpirationDescriptor(BaseModel):
    """Caller intent for a key's lifetime.

    ``sliding=True`` means ``slide_duration`` is re-applied on every touch.
    ``absolute_expiration`` is only consulted when ``sliding`` is false.
    Conflicting combinations are not rejected; the resolver's precedence
    rules decide.
    """

    model_config = ConfigDict(frozen=True)

    sliding: bool = False
    slide_duration: timedelta | None = None
    absolute_expiration: datetime | None = None

    @classmethod
    def slide(cls, duration: timedelta | int | float) -> ExpirationDescriptor:
        """Sliding lifetime of *duration* (seconds when numeric)."""
        if not isinstance(duration, timedelta):
            duration = timedelta(seconds=duration)
        return cls(sliding=True, slide_duration=duration)

    @classmethod
    def until(cls, when: datetime) -> ExpirationDescriptor:
        """Fixed deadline at *when*."""
        return cls(absolute_expiration=when)

    @classmethod
    def after(
        cls, delta: timedelta | int | float, now: datetime | None = None
    ) -> ExpirationDescriptor:
        """Fixed deadline *delta* from *now*."""
        if not isinstance(delta, timedelta):
            delta = timedelta(seconds=delta)
        return cls(absolute_expiration=(now or datetime.now(UTC)) + delta)


class ExpirationDecision(BaseModel):
    """Normalised ``(refresh_from_now, ttl_seconds)`` pair.

    * ``(True, None)`` -- continue sliding with the stored duration.
    * ``(True, S)`` -- sliding lifetime of ``S`` seconds, (re)established now.
    * ``(False, n > 0)`` -- explicit TTL of ``n`` seconds.
    * ``(False, n < 0)`` -- persist: drop any TTL.
    * ``(False, 0)`` -- already expired, treat the key as absent.
    * ``(False, None)`` -- no lifetime requested.
    """

    model_config = ConfigDict(frozen=True)

    refresh_from_now: bool
    ttl_seconds: int | None = None

    @property
    def continues_sliding(self) -> bool:
        return self.refresh_from_now and self.ttl_seconds is None

    def as_tuple(self) -> tuple[bool, int | None]:
        return (self.refresh_from_now, self.ttl_seconds)


class RefreshInstruction(BaseModel):
    """One refresh block of an atomic statement.

    ``key_slots`` are zero-based positions in the statement's key list and
    ``arg_offset`` is the zero-based position of the three control values
    in its argument list.
    """

    model_config = ConfigDict(frozen=True)

    role: KeyRole
    key_slots: tuple[int, ...] = Field(min_length=1)
    arg_offset: int = Field(ge=0)
    refresh_from_now: bool
    allow_sliding_write: bool
    ttl_seconds: int

    def encode(self) -> list[str | int]:
        """Wire form ``[refresh_from_now, allow_sliding_write, ttl_seconds]``."""
        return [
            "1" if self.refresh_from_now else "0",
            "1" if self.allow_sliding_write else "0",
            self.ttl_seconds,
        ]

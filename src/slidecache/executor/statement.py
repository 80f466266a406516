# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""The atomic unit handed to an executor: a primary command plus its refresh work."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from slidecache.core.constants import RefreshGuard, RefreshOutcome, ShadowAction
from slidecache.expiration.models import RefreshInstruction
from slidecache.expiration.protocol import RefreshProtocolBuilder, flatten_arguments


@dataclass(frozen=True)
class KeyRef:
    """Placeholder for the key at ``slot`` in a statement's key list."""

    slot: int


Operand = KeyRef | str | int | float


@dataclass(frozen=True)
class PrimaryCommand:
    """A native store command, e.g. ``PrimaryCommand("SMOVE", (KeyRef(0), KeyRef(1), "m"))``."""

    name: str
    operands: tuple[Operand, ...] = ()

    @property
    def literals(self) -> list[str | int | float]:
        return [op for op in self.operands if not isinstance(op, KeyRef)]


@dataclass(frozen=True)
class ShadowStep:
    """Shadow-key maintenance that follows a key's identity change.

    * ``DELETE`` -- drop the shadow of ``slot``.
    * ``RENAME`` -- rename the shadow of ``slot`` to that of ``target_slot``,
      or drop the target's shadow when the source has none.
    * ``MOVE`` -- carry the configured duration of ``slot`` into
      ``database`` and drop the source shadow.  With ``reapply`` the key
      restarts its lifetime there; otherwise the shadow copy expires with
      the key's remaining TTL.

    ``ON_FAILURE`` runs the step only when the primary reply counts as
    unsuccessful.
    """

    action: ShadowAction
    slot: int
    target_slot: int | None = None
    database: int | None = None
    guard: RefreshGuard = RefreshGuard.ALWAYS
    reapply: bool = True


@dataclass(frozen=True)
class Statement:
    command: PrimaryCommand
    keys: tuple[str, ...]
    refresh: tuple[RefreshInstruction, ...] = ()
    shadow_steps: tuple[ShadowStep, ...] = ()
    refresh_first: bool = False
    guard: RefreshGuard = RefreshGuard.ALWAYS
    keep_ttl: tuple[int, ...] = ()

    @classmethod
    def create(
        cls,
        command: PrimaryCommand,
        keys: Sequence[str],
        builder: RefreshProtocolBuilder | None = None,
        *,
        shadow_steps: Sequence[ShadowStep] = (),
        refresh_first: bool = False,
        guard: RefreshGuard = RefreshGuard.ALWAYS,
        keep_ttl: Sequence[int] = (),
    ) -> Statement:
        """Lay out *builder*'s instructions after the command's own arguments.

        Key slots in *keep_ttl* get back the lifetime they had before the
        command if the command left them without one.
        """
        refresh = builder.build(arg_base=len(command.literals)) if builder else []
        return cls(
            command=command,
            keys=tuple(keys),
            refresh=tuple(refresh),
            shadow_steps=tuple(shadow_steps),
            refresh_first=refresh_first,
            guard=guard,
            keep_ttl=tuple(keep_ttl),
        )

    @property
    def args(self) -> list[str | int | float]:
        return [*self.command.literals, *flatten_arguments(self.refresh)]

    @property
    def refreshed_slot_count(self) -> int:
        return sum(len(instruction.key_slots) for instruction in self.refresh)


@dataclass
class ExecutionResult:
    """Primary command reply plus one refresh outcome per refreshed key slot."""

    value: Any
    outcomes: list[RefreshOutcome] = field(default_factory=list)


def primary_succeeded(value: Any) -> bool:
    """Whether a primary reply counts as having touched its keys.

    Missing values, ``0`` counts and empty collections do not; an empty
    string does (the key exists).
    """
    if value is None or value is False:
        return False
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, list | tuple | set | dict):
        return len(value) > 0
    return True

# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Build the refresh instructions that follow a primary command.

A primary command may touch several keys that play different roles: a
single key (``SELF``), or the ``SOURCE`` and ``DESTINATION`` sides of a
move, rename, pop-and-push, or combine-and-store.  Each role gets its own
:class:`RefreshInstruction` addressing the key slots it occupies, so the
TTL decision of one side never leaks into the other.

Every executor interprets an instruction per key slot as follows:

1. ``refresh_from_now`` -- when sliding is allowed, read the shadow key;
   if present, re-apply its TTL to the key and, if that succeeds, rewrite
   the shadow with the same TTL.  Otherwise nothing happens.
2. ``ttl_seconds > 0`` -- apply that TTL.  On success write the shadow key
   (``allow_sliding_write``) or delete it.
3. ``ttl_seconds < 0`` -- persist the key and delete its shadow.
4. ``ttl_seconds == 0`` -- nothing to do.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence

from slidecache.core.constants import NO_EXPLICIT_TTL, PERSIST_TTL, KeyRole
from slidecache.expiration.models import ExpirationDecision, RefreshInstruction
from slidecache.expiration.policy import ExpirationPolicy, get_default_policy
from slidecache.expiration.resolver import CONTINUE_SLIDING

ARGS_PER_INSTRUCTION = 3


def encode_decision(
    decision: ExpirationDecision,
    sliding_allowed: bool,
    *,
    persist_when_unset: bool = False,
) -> tuple[bool, bool, int]:
    """Map a decision to ``(refresh_from_now, allow_sliding_write, ttl_seconds)``.

    Args:
        decision: Output of the resolver.
        sliding_allowed: Current policy state.
        persist_when_unset: Encode "no lifetime requested" as persist.
            Used by commands that replace the value, where the new value is
            meant to be permanent and any stale shadow must go.
    """
    ttl = decision.ttl_seconds
    if decision.refresh_from_now:
        if ttl is None or ttl <= 0:
            return (True, sliding_allowed, NO_EXPLICIT_TTL)
        return (False, sliding_allowed, ttl)
    if ttl is None:
        return (False, False, PERSIST_TTL if persist_when_unset else NO_EXPLICIT_TTL)
    return (False, False, ttl)


class RefreshProtocolBuilder:
    """Accumulates one refresh block per key role.

    Args:
        policy: Policy consulted when the instructions are built.  Defaults
            to the process-wide policy.

    Example::

        builder = RefreshProtocolBuilder()
        builder.add(KeyRole.SOURCE, [0])
        builder.add(KeyRole.DESTINATION, [1], decision)
        instructions = builder.build(arg_base=1)
    """

    def __init__(self, policy: ExpirationPolicy | None = None) -> None:
        self._policy = policy
        self._blocks: list[tuple[KeyRole, tuple[int, ...], ExpirationDecision, bool]] = []

    @property
    def policy(self) -> ExpirationPolicy:
        return self._policy or get_default_policy()

    def add(
        self,
        role: KeyRole,
        key_slots: Sequence[int],
        decision: ExpirationDecision | None = None,
        *,
        persist_when_unset: bool = False,
    ) -> RefreshProtocolBuilder:
        """Register *role* at *key_slots*; a missing decision continues sliding."""
        slots = tuple(key_slots)
        if not slots:
            return self
        self._blocks.append((role, slots, decision or CONTINUE_SLIDING, persist_when_unset))
        return self

    def build(self, arg_base: int = 0) -> list[RefreshInstruction]:
        """Materialise the instructions.

        Args:
            arg_base: Number of arguments the primary command already
                occupies; control values are laid out after them.
        """
        sliding_allowed = self.policy.enabled
        instructions = []
        for index, (role, slots, decision, persist_when_unset) in enumerate(self._blocks):
            from_now, allow_write, ttl = encode_decision(
                decision, sliding_allowed, persist_when_unset=persist_when_unset
            )
            instructions.append(
                RefreshInstruction(
                    role=role,
                    key_slots=slots,
                    arg_offset=arg_base + index * ARGS_PER_INSTRUCTION,
                    refresh_from_now=from_now,
                    allow_sliding_write=allow_write,
                    ttl_seconds=ttl,
                )
            )
        return instructions


def build_refresh_instructions(
    key_roles: Mapping[KeyRole, Sequence[int]],
    decisions: Mapping[KeyRole, ExpirationDecision] | None = None,
    policy: ExpirationPolicy | None = None,
    *,
    arg_base: int = 0,
    persist_when_unset: Collection[KeyRole] = (),
) -> list[RefreshInstruction]:
    """One-shot form of :class:`RefreshProtocolBuilder`.

    Roles are emitted in the iteration order of *key_roles*.  A role absent
    from *decisions* continues sliding.
    """
    decisions = decisions or {}
    builder = RefreshProtocolBuilder(policy)
    for role, slots in key_roles.items():
        builder.add(
            role,
            slots,
            decisions.get(role),
            persist_when_unset=role in persist_when_unset,
        )
    return builder.build(arg_base=arg_base)


def flatten_arguments(instructions: Sequence[RefreshInstruction]) -> list[str | int]:
    """Concatenate the encoded control values in instruction order."""
    args: list[str | int] = []
    for instruction in instructions:
        args.extend(instruction.encode())
    return args

# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Enumerations and reserved names shared by the expiration engine."""

from enum import StrEnum

# Companion key suffix holding the configured sliding TTL of a primary key.
SHADOW_KEY_SUFFIX = ":ex"

# Encoded ttl_seconds values understood by every executor.
NO_EXPLICIT_TTL = 0
PERSIST_TTL = -1


class KeyRole(StrEnum):
    SELF = "self"
    SOURCE = "source"
    DESTINATION = "destination"


class RefreshOutcome(StrEnum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    RACE_LOST = "race_lost"


class RefreshGuard(StrEnum):
    ALWAYS = "always"
    ON_SUCCESS = "on_success"
    ON_FAILURE = "on_failure"


class ShadowAction(StrEnum):
    DELETE = "delete"
    RENAME = "rename"
    MOVE = "move"


class SetWhen(StrEnum):
    ALWAYS = "always"
    EXISTS = "exists"
    NOT_EXISTS = "not_exists"


class CombineOperation(StrEnum):
    UNION = "union"
    INTERSECT = "intersect"
    DIFFERENCE = "difference"


class BackendType(StrEnum):
    MEMORY = "memory"
    REDIS = "redis"

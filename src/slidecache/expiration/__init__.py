# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Sliding expiration engine: policy, resolver, shadow keys, refresh protocol."""

from slidecache.expiration.models import (
    ExpirationDecision,
    ExpirationDescriptor,
    RefreshInstruction,
)
from slidecache.expiration.policy import (
    ExpirationPolicy,
    allow_sliding_expiration,
    disable_sliding_expiration,
    enable_sliding_expiration,
    get_default_policy,
)
from slidecache.expiration.protocol import (
    RefreshProtocolBuilder,
    build_refresh_instructions,
    encode_decision,
)
from slidecache.expiration.resolver import resolve_expiration
from slidecache.expiration.shadow import shadow_key_for

__all__ = [
    "ExpirationDecision",
    "ExpirationDescriptor",
    "ExpirationPolicy",
    "RefreshInstruction",
    "RefreshProtocolBuilder",
    "allow_sliding_expiration",
    "build_refresh_instructions",
    "disable_sliding_expiration",
    "enable_sliding_expiration",
    "encode_decision",
    "get_default_policy",
    "resolve_expiration",
    "shadow_key_for",
]

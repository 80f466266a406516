# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""slidecache - Redis-style cache operations with sliding expiration."""

__version__ = "0.1.0"

from slidecache.core.constants import CombineOperation, SetWhen
from slidecache.expiration import (
    ExpirationDescriptor,
    ExpirationPolicy,
    allow_sliding_expiration,
    disable_sliding_expiration,
    enable_sliding_expiration,
)
from slidecache.provider import CacheEntryDetail, CacheProvider, get_provider
from slidecache.server import CacheServer, ServerRegistry

__all__ = [
    "CacheEntryDetail",
    "CacheProvider",
    "CacheServer",
    "CombineOperation",
    "ExpirationDescriptor",
    "ExpirationPolicy",
    "ServerRegistry",
    "SetWhen",
    "__version__",
    "allow_sliding_expiration",
    "disable_sliding_expiration",
    "enable_sliding_expiration",
    "get_provider",
]

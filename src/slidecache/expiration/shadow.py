# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Naming of the companion key that remembers a key's sliding TTL.

The suffix is reserved: a caller key that itself ends in ``:ex`` aliases
the shadow of another key and is not detected here.
"""

from slidecache.core.constants import SHADOW_KEY_SUFFIX


def shadow_key_for(primary_key: str) -> str:
    return f"{primary_key}{SHADOW_KEY_SUFFIX}"


def is_shadow_key(key: str) -> bool:
    return key.endswith(SHADOW_KEY_SUFFIX)

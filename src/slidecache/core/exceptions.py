# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Custom exception hierarchy for slidecache."""


class SlideCacheError(Exception):
    """Base exception for all slidecache errors."""


class ConfigurationError(SlideCacheError):
    """Invalid or missing configuration."""


class InvalidParameterError(SlideCacheError):
    """A cache operation was called with an unusable argument."""


class ExecutionError(SlideCacheError):
    """The backing store rejected or failed to run a statement."""


class UnsupportedCommandError(ExecutionError):
    """The executor has no implementation for a primary command."""

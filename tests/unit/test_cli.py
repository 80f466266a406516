# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Unit tests for the slidecache CLI."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from slidecache.cli.app import app
from slidecache.core.exceptions import ExecutionError
from slidecache.provider import CacheProvider

runner = CliRunner()


@pytest.fixture
def cli_provider(executor, policy):
    """Route CLI commands to a provider over the fixture store."""
    provider = CacheProvider(executor=executor, policy=policy)
    with patch("slidecache.provider.get_provider", return_value=provider):
        yield provider


@pytest.fixture(autouse=True)
def _detach_log_handlers():
    """Drop handlers bound to the runner's captured streams."""
    yield
    logging.getLogger("slidecache").handlers.clear()


# ---------------------------------------------------------------------------
# version / policy
# ---------------------------------------------------------------------------


class TestVersion:
    def test_version(self):
        from slidecache import __version__

        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"slidecache v{__version__}" in result.output


class TestPolicy:
    def test_show_default(self):
        result = runner.invoke(app, ["policy", "show"])
        assert result.exit_code == 0
        assert "Expiration Policy" in result.output
        assert "enabled" in result.output

    def test_no_sliding_flag(self):
        from slidecache.expiration.policy import allow_sliding_expiration

        result = runner.invoke(app, ["--no-sliding", "policy", "show"])
        assert result.exit_code == 0
        assert "disabled" in result.output
        assert allow_sliding_expiration() is False


# ---------------------------------------------------------------------------
# key commands
# ---------------------------------------------------------------------------


class TestKeyCommands:
    def test_set_and_get(self, cli_provider):
        result = runner.invoke(app, ["set", "greeting", "hello", "--slide", "30"])
        assert result.exit_code == 0
        assert "Stored greeting." in result.output

        result = runner.invoke(app, ["get", "greeting"])
        assert result.exit_code == 0
        assert "hello" in result.output

    def test_get_missing(self, cli_provider):
        result = runner.invoke(app, ["get", "nope"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_set_rejects_multiple_lifetimes(self, cli_provider):
        result = runner.invoke(app, ["set", "k", "v", "--slide", "30", "--ttl", "10"])
        assert result.exit_code == 2

    def test_set_with_ttl(self, cli_provider, store):
        result = runner.invoke(app, ["set", "k", "v", "--ttl", "60"])
        assert result.exit_code == 0
        assert 59 <= store.database(0).execute("TTL", "k") <= 60

    def test_ttl(self, cli_provider):
        runner.invoke(app, ["set", "k", "v", "--slide", "45"])
        result = runner.invoke(app, ["ttl", "k"])
        assert result.exit_code == 0
        assert "45s" in result.output

    def test_ttl_permanent(self, cli_provider):
        runner.invoke(app, ["set", "k", "v"])
        result = runner.invoke(app, ["ttl", "k"])
        assert "no expiry" in result.output

    def test_persist(self, cli_provider):
        runner.invoke(app, ["set", "k", "v", "--slide", "45"])
        result = runner.invoke(app, ["persist", "k"])
        assert result.exit_code == 0
        assert "Persisted k." in result.output

    def test_rename(self, cli_provider):
        runner.invoke(app, ["set", "a", "v", "--slide", "45"])
        result = runner.invoke(app, ["rename", "a", "b"])
        assert result.exit_code == 0
        assert "Renamed a -> b." in result.output

    def test_rename_missing_reports_error(self, cli_provider):
        result = runner.invoke(app, ["rename", "a", "b"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_delete(self, cli_provider):
        runner.invoke(app, ["set", "a", "1"])
        runner.invoke(app, ["set", "b", "2"])
        result = runner.invoke(app, ["delete", "a", "b", "c"])
        assert result.exit_code == 0
        assert "Deleted 2 key(s)." in result.output

    def test_inspect(self, cli_provider):
        runner.invoke(app, ["set", "k", "v", "--slide", "45"])
        result = runner.invoke(app, ["inspect", "k"])
        assert result.exit_code == 0
        assert "k:ex" in result.output
        assert "45s" in result.output

    def test_execution_error(self, cli_provider):
        with patch.object(
            cli_provider, "string_get", AsyncMock(side_effect=ExecutionError("boom"))
        ):
            result = runner.invoke(app, ["get", "k"])
        assert result.exit_code == 1
        assert "Error: boom" in result.output


# ---------------------------------------------------------------------------
# stats
# ---------------------------------------------------------------------------


class TestStats:
    def test_stats_table(self, cli_provider):
        runner.invoke(app, ["set", "k", "v", "--slide", "30"])
        result = runner.invoke(app, ["stats"])
        assert result.exit_code == 0
        assert "Refresh Statistics" in result.output
        assert "Applied" in result.output

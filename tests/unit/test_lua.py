# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Structural tests for the rendered Redis Lua scripts."""

from __future__ import annotations

from slidecache.core.constants import KeyRole, RefreshGuard, ShadowAction
from slidecache.executor.lua import render_script
from slidecache.executor.statement import KeyRef, PrimaryCommand, ShadowStep, Statement
from slidecache.expiration.models import ExpirationDecision
from slidecache.expiration.policy import ExpirationPolicy
from slidecache.expiration.protocol import RefreshProtocolBuilder

SLIDE_30 = ExpirationDecision(refresh_from_now=True, ttl_seconds=30)


def _builder() -> RefreshProtocolBuilder:
    return RefreshProtocolBuilder(ExpirationPolicy())


class TestRenderScript:
    def test_primary_uses_keys_and_argv(self):
        statement = Statement.create(
            PrimaryCommand("SET", (KeyRef(0), "value", "NX")),
            ["k"],
            _builder().add(KeyRole.SELF, [0], SLIDE_30),
            guard=RefreshGuard.ON_SUCCESS,
        )
        script = render_script(statement)
        assert "local rv = redis.call('SET', KEYS[1], ARGV[1], ARGV[2])" in script
        assert "refresh_keys({1}, 2)" in script
        assert statement.args == ["value", "NX", "0", "1", 30]

    def test_values_never_interpolated(self):
        statement = Statement.create(
            PrimaryCommand("SET", (KeyRef(0), "'); redis.call('FLUSHALL")),
            ["user:1"],
        )
        script = render_script(statement)
        assert "FLUSHALL" not in script
        assert "user:1" not in script

    def test_same_shape_same_script(self):
        def build(key, value):
            return Statement.create(
                PrimaryCommand("SET", (KeyRef(0), value)),
                [key],
                _builder().add(KeyRole.SELF, [0], SLIDE_30),
            )

        assert render_script(build("a", "1")) == render_script(build("b", "2"))

    def test_on_success_guard_wraps_refresh(self):
        statement = Statement.create(
            PrimaryCommand("GET", (KeyRef(0),)),
            ["k"],
            _builder().add(KeyRole.SELF, [0]),
            guard=RefreshGuard.ON_SUCCESS,
        )
        script = render_script(statement)
        assert "if succeeded(rv) then\n  refresh_keys({1}, 0)\nelse\n  skip_keys({1})\nend" in script

    def test_refresh_first_precedes_command(self):
        statement = Statement.create(
            PrimaryCommand("TTL", (KeyRef(0),)),
            ["k"],
            _builder().add(KeyRole.SELF, [0]),
            refresh_first=True,
        )
        script = render_script(statement)
        assert script.index("refresh_keys({1}, 0)") < script.index("local rv = ")

    def test_multi_role_offsets(self):
        statement = Statement.create(
            PrimaryCommand("SMOVE", (KeyRef(0), KeyRef(1), "member")),
            ["src", "dst"],
            _builder().add(KeyRole.SOURCE, [0]).add(KeyRole.DESTINATION, [1], SLIDE_30),
        )
        script = render_script(statement)
        assert "refresh_keys({1}, 1)" in script
        assert "refresh_keys({2}, 4)" in script

    def test_uses_shadow_suffix(self):
        statement = Statement.create(PrimaryCommand("GET", (KeyRef(0),)), ["k"])
        assert "local sfx = ':ex'" in render_script(statement)

    def test_reply_shape(self):
        statement = Statement.create(PrimaryCommand("GET", (KeyRef(0),)), ["k"])
        script = render_script(statement)
        assert script.rstrip().endswith("return reply")
        assert "local reply = {rv}" in script

    def test_continue_compares_flags_explicitly(self):
        statement = Statement.create(PrimaryCommand("GET", (KeyRef(0),)), ["k"])
        script = render_script(statement)
        assert "ARGV[base + 1] == '1'" in script
        assert "ARGV[base + 2] == '1'" in script


class TestShadowStepRendering:
    def test_delete_steps(self):
        statement = Statement.create(
            PrimaryCommand("DEL", (KeyRef(0), KeyRef(1))),
            ["a", "b"],
            shadow_steps=[ShadowStep(ShadowAction.DELETE, 0), ShadowStep(ShadowAction.DELETE, 1)],
        )
        script = render_script(statement)
        assert "redis.call('DEL', KEYS[1] .. sfx)" in script
        assert "redis.call('DEL', KEYS[2] .. sfx)" in script

    def test_rename_checks_source_shadow(self):
        statement = Statement.create(
            PrimaryCommand("RENAME", (KeyRef(0), KeyRef(1))),
            ["a", "b"],
            shadow_steps=[
                ShadowStep(ShadowAction.RENAME, 0, target_slot=1, guard=RefreshGuard.ON_SUCCESS)
            ],
        )
        script = render_script(statement)
        assert "if redis.call('EXISTS', src_ex) == 1 then" in script
        assert "redis.call('RENAME', src_ex, dst_ex)" in script
        assert "redis.call('DEL', dst_ex)" in script

    def test_move_selects_target_last(self):
        statement = Statement.create(
            PrimaryCommand("MOVE", (KeyRef(0), 2)),
            ["k"],
            shadow_steps=[
                ShadowStep(ShadowAction.MOVE, 0, database=2),
                ShadowStep(ShadowAction.DELETE, 0),
            ],
        )
        script = render_script(statement)
        assert "redis.call('SELECT', 2)" in script
        assert script.index("redis.call('DEL', KEYS[1] .. sfx)") < script.index("SELECT")

    def test_move_without_reapply_carries_remaining_ttl(self):
        statement = Statement.create(
            PrimaryCommand("MOVE", (KeyRef(0), 2)),
            ["k"],
            shadow_steps=[ShadowStep(ShadowAction.MOVE, 0, database=2, reapply=False)],
        )
        script = render_script(statement)
        assert "redis.call('SET', exkey, ct, 'PX', left)" in script
        assert "redis.call('EXPIRE', ckey, ct)" not in script

    def test_on_failure_step(self):
        statement = Statement.create(
            PrimaryCommand("SUNIONSTORE", (KeyRef(0), KeyRef(1))),
            ["d", "s"],
            shadow_steps=[ShadowStep(ShadowAction.DELETE, 0, guard=RefreshGuard.ON_FAILURE)],
        )
        script = render_script(statement)
        assert "if not succeeded(rv) then\n  redis.call('DEL', KEYS[1] .. sfx)\nend" in script

    def test_keep_ttl_wraps_command(self):
        statement = Statement.create(
            PrimaryCommand("MSET", (KeyRef(0), "1", KeyRef(1), "2")),
            ["a", "b"],
            keep_ttl=[0, 1],
        )
        script = render_script(statement)
        before = script.index("local kept = keep_ttl({1, 2})")
        command = script.index("local rv = ")
        after = script.index("restore_ttl({1, 2}, kept)")
        assert before < command < after

# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Render a :class:`Statement` as a single Redis Lua script.

The script runs the primary command and every refresh block inside one
``EVAL``, which Redis executes atomically.  Keys are referenced through
``KEYS`` and every caller-supplied value through ``ARGV``; only slot
numbers and database indexes are interpolated into the script text, so
identical statement shapes share one cached script.

The reply is ``{primary_reply, outcome_1, ..., outcome_n}`` with one
outcome string per refreshed key slot.
"""

from __future__ import annotations

from collections.abc import Iterable

from slidecache.core.constants import SHADOW_KEY_SUFFIX, RefreshGuard, ShadowAction
from slidecache.executor.statement import KeyRef, ShadowStep, Statement
from slidecache.expiration.models import RefreshInstruction

_PRELUDE = f"""local sfx = '{SHADOW_KEY_SUFFIX}'
local outcomes = {{}}

local function succeeded(rv)
  if not rv or rv == 0 then
    return false
  end
  if type(rv) == 'table' and rv['ok'] == nil and #rv == 0 then
    return false
  end
  return true
end

local function skip_keys(slots)
  for _ = 1, #slots do
    outcomes[#outcomes + 1] = 'skipped'
  end
end

local function keep_ttl(slots)
  local kept = {{}}
  for i, ki in ipairs(slots) do
    kept[i] = redis.call('PTTL', KEYS[ki])
  end
  return kept
end

local function restore_ttl(slots, kept)
  for i, ki in ipairs(slots) do
    if kept[i] > 0 and redis.call('PTTL', KEYS[ki]) == -1 then
      redis.call('PEXPIRE', KEYS[ki], kept[i])
    end
  end
end

local function refresh_keys(slots, base)
  local from_now = ARGV[base + 1] == '1'
  local allow = ARGV[base + 2] == '1'
  local nt = tonumber(ARGV[base + 3])
  for _, ki in ipairs(slots) do
    local ckey = KEYS[ki]
    local exkey = ckey .. sfx
    local outcome = 'skipped'
    if from_now then
      if allow then
        local ct = redis.call('GET', exkey)
        if ct then
          if redis.call('EXPIRE', ckey, ct) == 1 then
            redis.call('SET', exkey, ct, 'EX', ct)
            outcome = 'applied'
          else
            outcome = 'race_lost'
          end
        end
      end
    elseif nt > 0 then
      if redis.call('EXPIRE', ckey, nt) == 1 then
        if allow then
          redis.call('SET', exkey, nt, 'EX', nt)
        else
          redis.call('DEL', exkey)
        end
        outcome = 'applied'
      else
        outcome = 'race_lost'
      end
    elseif nt < 0 then
      redis.call('PERSIST', ckey)
      redis.call('DEL', exkey)
      outcome = 'applied'
    end
    outcomes[#outcomes + 1] = outcome
  end
end
"""

_EPILOGUE = """local reply = {rv}
for _, outcome in ipairs(outcomes) do
  reply[#reply + 1] = outcome
end
return reply"""


_MOVE_REAPPLY = """    if redis.call('EXPIRE', ckey, ct) == 1 then
      redis.call('SET', exkey, ct, 'EX', ct)
    end"""

_MOVE_CARRY = """    local left = redis.call('PTTL', ckey)
    if left > 0 then
      redis.call('SET', exkey, ct, 'PX', left)
    elseif left == -1 then
      redis.call('SET', exkey, ct)
    end"""


def _key_slots(slots: Iterable[int]) -> str:
    return "{" + ", ".join(str(slot + 1) for slot in slots) + "}"


def _slots(instruction: RefreshInstruction) -> str:
    return _key_slots(instruction.key_slots)


def _command_call(statement: Statement) -> str:
    parts = [f"'{statement.command.name}'"]
    argv_index = 0
    for operand in statement.command.operands:
        if isinstance(operand, KeyRef):
            parts.append(f"KEYS[{operand.slot + 1}]")
        else:
            argv_index += 1
            parts.append(f"ARGV[{argv_index}]")
    return f"redis.call({', '.join(parts)})"


def _refresh_call(instruction: RefreshInstruction) -> str:
    return f"refresh_keys({_slots(instruction)}, {instruction.arg_offset})"


def _shadow_step(step: ShadowStep) -> str:
    source = f"KEYS[{step.slot + 1}]"
    if step.action is ShadowAction.DELETE:
        body = f"  redis.call('DEL', {source} .. sfx)"
    elif step.action is ShadowAction.RENAME:
        target = f"KEYS[{step.target_slot + 1}]"
        body = (
            f"  local src_ex = {source} .. sfx\n"
            f"  local dst_ex = {target} .. sfx\n"
            "  if redis.call('EXISTS', src_ex) == 1 then\n"
            "    redis.call('RENAME', src_ex, dst_ex)\n"
            "  else\n"
            "    redis.call('DEL', dst_ex)\n"
            "  end"
        )
    else:
        body = (
            f"  local ckey = {source}\n"
            "  local exkey = ckey .. sfx\n"
            "  local ct = redis.call('GET', exkey)\n"
            "  redis.call('DEL', exkey)\n"
            "  if ct then\n"
            f"    redis.call('SELECT', {int(step.database)})\n"
            f"{_MOVE_REAPPLY if step.reapply else _MOVE_CARRY}\n"
            "  end"
        )
    if step.guard is RefreshGuard.ON_SUCCESS:
        return f"if succeeded(rv) then\n{body}\nend"
    if step.guard is RefreshGuard.ON_FAILURE:
        return f"if not succeeded(rv) then\n{body}\nend"
    return f"do\n{body}\nend"


def render_script(statement: Statement) -> str:
    """Return the Lua source implementing *statement*."""
    lines = [_PRELUDE]
    if statement.refresh_first:
        lines.extend(_refresh_call(instruction) for instruction in statement.refresh)
    if statement.keep_ttl:
        lines.append(f"local kept = keep_ttl({_key_slots(statement.keep_ttl)})")
    lines.append(f"local rv = {_command_call(statement)}")
    if statement.keep_ttl:
        lines.append(f"restore_ttl({_key_slots(statement.keep_ttl)}, kept)")
    if not statement.refresh_first:
        for instruction in statement.refresh:
            if statement.guard is RefreshGuard.ON_SUCCESS:
                lines.append(
                    "if succeeded(rv) then\n"
                    f"  {_refresh_call(instruction)}\n"
                    "else\n"
                    f"  skip_keys({_slots(instruction)})\n"
                    "end"
                )
            else:
                lines.append(_refresh_call(instruction))
    # MOVE switches the selected database, so it must come last.
    ordered = sorted(statement.shadow_steps, key=lambda s: s.action is ShadowAction.MOVE)
    lines.extend(_shadow_step(step) for step in ordered)
    lines.append(_EPILOGUE)
    return "\n".join(lines)

from __future__ import annotations

from typing import List

import pytest
from pydantic import BaseModel

from deepagent_ai.agent_core.backends.state import StateBackend
from deepagent_ai.agent_core.backends.store import InMemoryStore, StoreBackend
from deepagent_ai.agent_core.model.base import ModelReply, ToolSpec
from deepagent_ai.agent_core.runtime import AgentEngine, EngineDeps
from deepagent_ai.agent_core.schemas.config import DEFAULT_EVICTION_TOKEN_LIMIT, AgentConfig, EvictionSettings
from deepagent_ai.agent_core.schemas.domain import AgentState, Message, ToolCall
from deepagent_ai.agent_core.tools.base import FunctionTool
from deepagent_ai.agent_core.tools.eviction import (
    EVICTION_DIR,
    estimate_tokens,
    evict_if_needed,
    sanitize_tool_call_id,
)


def test_estimate_tokens_rounds_up() -> None:
    assert estimate_tokens("") == 0
    assert estimate_tokens("abc") == 1
    assert estimate_tokens("abcde") == 2


def test_sanitize_tool_call_id() -> None:
    assert sanitize_tool_call_id("call_1-x") == "call_1-x"
    assert sanitize_tool_call_id("../etc/passwd") == "___etc_passwd"
    assert sanitize_tool_call_id("") == "tool_result"


@pytest.mark.asyncio
async def test_small_results_and_disabled_limit_pass_through() -> None:
    backend = StateBackend(AgentState())
    assert await evict_if_needed(backend, "c1", "short", 100) == "short"
    assert await evict_if_needed(backend, "c1", "x" * 10_000, None) == "x" * 10_000
    assert await evict_if_needed(backend, "c1", "x" * 10_000, 0) == "x" * 10_000


@pytest.mark.asyncio
async def test_evicted_content_is_recoverable_exactly() -> None:
    backend = StoreBackend(InMemoryStore())
    result = "line one\n" * 200 + "tail without newline"

    reference = await evict_if_needed(backend, "call_42", result, 50)

    path = f"{EVICTION_DIR}/call_42"
    assert path in reference
    assert f"~{estimate_tokens(result)} tokens" in reference
    assert (await backend.read_raw(path)).text == result


@pytest.mark.asyncio
async def test_collision_gets_unique_path() -> None:
    state = AgentState()
    backend = StateBackend(state)
    first = await evict_if_needed(backend, "dup", "a" * 100, 5)
    second = await evict_if_needed(backend, "dup", "b" * 100, 5)

    assert first != second
    evicted = sorted(p for p in state.files if p.startswith(EVICTION_DIR))
    assert len(evicted) == 2
    assert {state.files[p].text for p in evicted} == {"a" * 100, "b" * 100}


class _BigArgs(BaseModel):
    size: int


class _OneToolCall:
    def __init__(self, size: int) -> None:
        self._replies = [
            ModelReply(tool_calls=[ToolCall(id="big-1", name="dump", args={"size": size})]),
            ModelReply(text="done"),
        ]

    async def __call__(self, system_prompt: str, tools: List[ToolSpec], messages: List[Message]) -> ModelReply:
        return self._replies.pop(0)


async def _run_dump(config: AgentConfig, size: int) -> list:
    dump = FunctionTool("dump", "Return a large blob", _BigArgs, lambda args: "x" * args.size)
    engine = AgentEngine(deps=EngineDeps(invoker=_OneToolCall(size), config=config, tools=[dump]))
    return [e async for e in engine.stream_events("dump it")]


def test_eviction_settings_resolve_default_limit() -> None:
    assert EvictionSettings().effective_limit is None
    assert EvictionSettings(evict=True).effective_limit == DEFAULT_EVICTION_TOKEN_LIMIT == 20_000
    assert EvictionSettings(evict=True, token_limit=50).effective_limit == 50
    assert not EvictionSettings(evict=True, token_limit=0).enabled
    assert AgentConfig(evict_large_tool_results=True).eviction.enabled


@pytest.mark.asyncio
async def test_engine_applies_default_limit_when_enabled() -> None:
    size = DEFAULT_EVICTION_TOKEN_LIMIT * 4 + 400

    events = await _run_dump(AgentConfig(evict_large_tool_results=True), size)
    result = next(e for e in events if e.type == "tool-result")
    assert result.result.startswith("Tool result too large")
    assert f"{EVICTION_DIR}/big-1" in result.result
    assert events[-1].state.files[f"{EVICTION_DIR}/big-1"].text == "x" * size

    events = await _run_dump(AgentConfig(), size)
    result = next(e for e in events if e.type == "tool-result")
    assert result.result == "x" * size

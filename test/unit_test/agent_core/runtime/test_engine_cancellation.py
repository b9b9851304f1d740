from __future__ import annotations

import asyncio
from typing import Any, List

import pytest
from pydantic import BaseModel

from deepagent_ai.agent_core.model.base import ModelReply, ToolSpec
from deepagent_ai.agent_core.repos.memory import InMemoryCheckpointRepository
from deepagent_ai.agent_core.runtime import AgentEngine, EngineDeps
from deepagent_ai.agent_core.schemas.domain import Message, RunStatus, ToolCall
from deepagent_ai.agent_core.tools.base import FunctionTool


class _NoArgs(BaseModel):
    pass


async def _collect(engine: AgentEngine, *args: Any, **kwargs: Any) -> list:
    return [e async for e in engine.stream_events(*args, **kwargs)]


@pytest.mark.asyncio
async def test_cancel_during_streamed_text() -> None:
    cancel = asyncio.Event()

    class _StreamingInvoker:
        def __call__(self, system_prompt: str, tools: List[ToolSpec], messages: List[Message]):
            async def gen():
                yield "partial "
                cancel.set()
                yield "never shown"

            return gen()

    engine = AgentEngine(deps=EngineDeps(invoker=_StreamingInvoker()))
    events = await _collect(engine, "go", cancel_event=cancel)

    assert [e.type for e in events] == ["step-start", "text", "done"]
    assert events[-1].status == RunStatus.cancelled
    assert events[-1].text == "partial "


@pytest.mark.asyncio
async def test_cancel_during_tool_skips_result_and_checkpoint() -> None:
    cancel = asyncio.Event()
    repo = InMemoryCheckpointRepository()

    def stop(args: _NoArgs) -> str:
        cancel.set()
        return "stopped"

    class _Invoker:
        async def __call__(self, system_prompt: str, tools: List[ToolSpec], messages: List[Message]) -> ModelReply:
            return ModelReply(tool_calls=[ToolCall(id="s", name="stop")])

    engine = AgentEngine(
        deps=EngineDeps(
            invoker=_Invoker(),
            tools=[FunctionTool("stop", "Stops the run", _NoArgs, stop)],
            checkpoints=repo,
        )
    )
    events = await _collect(engine, "go", thread_id="c", cancel_event=cancel)

    assert [e.type for e in events] == ["step-start", "tool-call", "done"]
    assert events[-1].status == RunStatus.cancelled
    assert not any(e.type == "error" for e in events)
    assert await repo.load("c") is None


@pytest.mark.asyncio
async def test_cancel_before_start() -> None:
    cancel = asyncio.Event()
    cancel.set()

    class _Invoker:
        async def __call__(self, system_prompt: str, tools: List[ToolSpec], messages: List[Message]) -> ModelReply:
            raise AssertionError("model must not be called")

    events = await _collect(AgentEngine(deps=EngineDeps(invoker=_Invoker())), "go", cancel_event=cancel)
    assert [e.type for e in events] == ["done"]
    assert events[0].status == RunStatus.cancelled


@pytest.mark.asyncio
async def test_consumer_closing_stream_stops_the_run() -> None:
    started = asyncio.Event()

    class _SlowInvoker:
        async def __call__(self, system_prompt: str, tools: List[ToolSpec], messages: List[Message]) -> ModelReply:
            started.set()
            await asyncio.sleep(3600)
            return ModelReply(text="late")

    stream = AgentEngine(deps=EngineDeps(invoker=_SlowInvoker())).stream_events("go")
    first = await stream.__anext__()
    assert first.type == "step-start"
    await started.wait()
    await asyncio.wait_for(stream.aclose(), timeout=5)

from __future__ import annotations

from typing import List

import pytest
from pydantic import BaseModel

from deepagent_ai.agent_core.backends.state import StateBackend
from deepagent_ai.agent_core.errors import ApprovalPending, RunCancelled
from deepagent_ai.agent_core.policy.approval import ApprovalPolicy
from deepagent_ai.agent_core.schemas.config import ApprovalRule
from deepagent_ai.agent_core.schemas.domain import AgentState, Interrupt, ToolCall
from deepagent_ai.agent_core.schemas.events import ApprovalRequestedEvent, ApprovalResponseEvent, BaseEvent
from deepagent_ai.agent_core.tools.base import FunctionTool, ToolContext, tool_spec
from deepagent_ai.agent_core.tools.middleware import (
    DENIED_RESULT,
    ApprovalMiddleware,
    ErrorCaptureMiddleware,
    EvictionMiddleware,
)
from deepagent_ai.agent_core.tools.registry import ToolRegistry


class _EchoArgs(BaseModel):
    text: str


class _Sink:
    def __init__(self) -> None:
        self.events: List[BaseEvent] = []

    async def __call__(self, event: BaseEvent) -> None:
        self.events.append(event)


def _ctx(sink: _Sink, call_id: str = "c1") -> ToolContext:
    state = AgentState()
    return ToolContext(state=state, backend=StateBackend(state), emit=sink, tool_call_id=call_id)


def _echo_tool(calls: List[str]) -> FunctionTool:
    def fn(args: _EchoArgs) -> str:
        calls.append(args.text)
        return f"echo:{args.text}"

    return FunctionTool("echo", "Echo the text back", _EchoArgs, fn)


@pytest.mark.asyncio
async def test_dispatch_runs_tool() -> None:
    calls: List[str] = []
    reg = ToolRegistry([_echo_tool(calls)])
    out = await reg.dispatch(_ctx(_Sink()), ToolCall(id="c1", name="echo", args={"text": "hi"}))
    assert out == "echo:hi"
    assert calls == ["hi"]


@pytest.mark.asyncio
async def test_unknown_tool_lists_available_tools() -> None:
    reg = ToolRegistry([_echo_tool([])])
    out = await reg.dispatch(_ctx(_Sink()), ToolCall(name="missing"))
    assert out == "Error: tool 'missing' is not available. Available tools: echo"


def test_registry_lookup_and_specs() -> None:
    tool = _echo_tool([])
    reg = ToolRegistry([tool])
    assert reg.has("echo") and reg.names() == ["echo"]
    assert reg.get("echo") is tool
    with pytest.raises(KeyError):
        reg.get("nope")

    spec = tool_spec(tool)
    assert spec.name == "echo"
    assert spec.parameters["properties"]["text"]["type"] == "string"


@pytest.mark.asyncio
async def test_function_tool_receives_context_and_serializes() -> None:
    async def fn(args: _EchoArgs, ctx: ToolContext) -> dict:
        return {"text": args.text, "call": ctx.tool_call_id}

    tool = FunctionTool("ctx_echo", "Echo with context", _EchoArgs, fn)
    out = await tool.execute(_ctx(_Sink(), call_id="abc"), args=_EchoArgs(text="x"))
    assert out == '{"text": "x", "call": "abc"}'


@pytest.mark.asyncio
async def test_error_capture_middleware() -> None:
    def boom(args: _EchoArgs) -> str:
        raise RuntimeError("kaput")

    reg = ToolRegistry([FunctionTool("boom", "Fails", _EchoArgs, boom)])
    mws = [ErrorCaptureMiddleware()]

    out = await reg.dispatch(_ctx(_Sink()), ToolCall(name="boom", args={"text": "x"}), mws)
    assert out == "Error executing tool 'boom': kaput"

    invalid = await reg.dispatch(_ctx(_Sink()), ToolCall(name="boom", args={}), mws)
    assert invalid.startswith("Error: invalid arguments for tool 'boom':")


@pytest.mark.asyncio
async def test_error_capture_reraises_control_flow() -> None:
    def cancel(args: _EchoArgs) -> str:
        raise RunCancelled("stop")

    reg = ToolRegistry([FunctionTool("cancel", "Cancels", _EchoArgs, cancel)])
    with pytest.raises(RunCancelled):
        await reg.dispatch(_ctx(_Sink()), ToolCall(name="cancel", args={"text": "x"}), [ErrorCaptureMiddleware()])


@pytest.mark.asyncio
async def test_approval_callback_approves_and_denies() -> None:
    calls: List[str] = []
    reg = ToolRegistry([_echo_tool(calls)])
    policy = ApprovalPolicy({"echo": True})

    seen: List[Interrupt] = []

    async def approve(interrupt: Interrupt) -> bool:
        seen.append(interrupt)
        return interrupt.args["text"] == "ok"

    sink = _Sink()
    mws = [ApprovalMiddleware(policy, on_approval_request=approve)]
    assert await reg.dispatch(_ctx(sink), ToolCall(id="c1", name="echo", args={"text": "ok"}), mws) == "echo:ok"
    assert await reg.dispatch(_ctx(sink), ToolCall(id="c2", name="echo", args={"text": "no"}), mws) == DENIED_RESULT

    assert calls == ["ok"]
    assert [type(e) for e in sink.events] == [
        ApprovalRequestedEvent,
        ApprovalResponseEvent,
        ApprovalRequestedEvent,
        ApprovalResponseEvent,
    ]
    assert [e.approved for e in sink.events if isinstance(e, ApprovalResponseEvent)] == [True, False]
    assert seen[0].tool_call_id == "c1"


@pytest.mark.asyncio
async def test_approval_without_callback_pauses_or_denies() -> None:
    calls: List[str] = []
    reg = ToolRegistry([_echo_tool(calls)])
    policy = ApprovalPolicy({"echo": True})
    call = ToolCall(id="c1", name="echo", args={"text": "x"})

    sink = _Sink()
    with pytest.raises(ApprovalPending) as exc:
        await reg.dispatch(_ctx(sink), call, [ApprovalMiddleware(policy, can_pause=True), ErrorCaptureMiddleware()])
    assert exc.value.interrupt.tool_call_id == "c1"
    assert [type(e) for e in sink.events] == [ApprovalRequestedEvent]

    denied = await reg.dispatch(_ctx(_Sink()), call, [ApprovalMiddleware(policy)])
    assert denied == DENIED_RESULT
    assert calls == []


@pytest.mark.asyncio
async def test_conditional_rule_only_gates_matching_calls() -> None:
    calls: List[str] = []
    reg = ToolRegistry([_echo_tool(calls)])
    policy = ApprovalPolicy({"echo": ApprovalRule(lambda args: args["text"].startswith("rm"))})
    mws = [ApprovalMiddleware(policy)]

    assert await reg.dispatch(_ctx(_Sink()), ToolCall(name="echo", args={"text": "ls"}), mws) == "echo:ls"
    assert await reg.dispatch(_ctx(_Sink()), ToolCall(name="echo", args={"text": "rm -rf"}), mws) == DENIED_RESULT


@pytest.mark.asyncio
async def test_eviction_middleware_replaces_large_results() -> None:
    def big(args: _EchoArgs) -> str:
        return args.text * 100

    reg = ToolRegistry([FunctionTool("big", "Large output", _EchoArgs, big)])
    ctx = _ctx(_Sink())
    out = await reg.dispatch(ctx, ToolCall(id="call/1", name="big", args={"text": "abcd"}), [EvictionMiddleware(10)])

    assert "/large_tool_results/call_1" in out
    assert ctx.state.files["/large_tool_results/call_1"].text == "abcd" * 100

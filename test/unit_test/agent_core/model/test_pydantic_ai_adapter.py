from __future__ import annotations

from typing import AsyncIterator, List, Union

import pytest
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models.function import AgentInfo, DeltaToolCall, FunctionModel

from deepagent_ai.agent_core.errors import ModelInvocationError
from deepagent_ai.agent_core.model.base import ModelReply, ToolSpec, collect_reply
from deepagent_ai.agent_core.model.pydantic_ai_adapter import (
    PydanticAIInvoker,
    to_model_messages,
    to_model_reply,
    to_tool_definitions,
)
from deepagent_ai.agent_core.schemas.domain import Message, ToolCall


def test_to_model_messages_folds_requests() -> None:
    call = ToolCall(id="c1", name="ls", args={"path": "/"})
    history = [
        Message.user("list files"),
        Message.assistant("Sure.", [call]),
        Message.tool(call, "/a.txt"),
        Message.system("[Previous conversation summary]"),
        Message.user("thanks"),
    ]
    out = to_model_messages("be helpful", history)

    assert [type(m) for m in out] == [ModelRequest, ModelResponse, ModelRequest]
    first, response, last = out
    assert isinstance(first.parts[0], SystemPromptPart)
    assert first.parts[0].content == "be helpful"
    assert isinstance(first.parts[1], UserPromptPart)

    assert isinstance(response.parts[0], TextPart)
    assert isinstance(response.parts[1], ToolCallPart)
    assert response.parts[1].tool_call_id == "c1"
    assert response.parts[1].args == {"path": "/"}

    assert [type(p) for p in last.parts] == [ToolReturnPart, SystemPromptPart, UserPromptPart]
    assert last.parts[0].tool_name == "ls"
    assert last.parts[0].tool_call_id == "c1"


def test_to_model_messages_without_system_prompt() -> None:
    out = to_model_messages("", [Message.user("hi")])
    assert len(out) == 1
    assert [type(p) for p in out[0].parts] == [UserPromptPart]


def test_to_model_reply_and_tool_definitions() -> None:
    response = ModelResponse(
        parts=[
            TextPart(content="Reading "),
            TextPart(content="now."),
            ToolCallPart(tool_name="read_file", args='{"file_path": "/a"}', tool_call_id="x"),
        ]
    )
    reply = to_model_reply(response)
    assert reply.text == "Reading now."
    assert reply.tool_calls == [ToolCall(id="x", name="read_file", args={"file_path": "/a"})]

    (definition,) = to_tool_definitions(
        [ToolSpec(name="ls", description="List files", parameters={"type": "object", "properties": {}})]
    )
    assert definition.name == "ls"
    assert definition.description == "List files"
    assert definition.parameters_json_schema == {"type": "object", "properties": {}}


@pytest.mark.asyncio
async def test_invoker_round_trip_through_function_model() -> None:
    seen: dict = {}

    def respond(messages: List[ModelMessage], info: AgentInfo) -> ModelResponse:
        seen["tools"] = [t.name for t in info.function_tools]
        seen["messages"] = messages
        return ModelResponse(
            parts=[
                TextPart(content="Let me check."),
                ToolCallPart(tool_name="ls", args={"path": "/"}, tool_call_id="call-1"),
            ]
        )

    invoker = PydanticAIInvoker(FunctionModel(respond), stream=False)
    reply = await invoker(
        "system text",
        [ToolSpec(name="ls", description="List files", parameters={"type": "object", "properties": {}})],
        [Message.user("what is here?")],
    )

    assert reply.text == "Let me check."
    assert reply.tool_calls == [ToolCall(id="call-1", name="ls", args={"path": "/"})]
    assert seen["tools"] == ["ls"]
    request = seen["messages"][0]
    assert isinstance(request, ModelRequest)
    assert request.parts[0].content == "system text"
    assert request.parts[1].content == "what is here?"


@pytest.mark.asyncio
async def test_invoker_wraps_model_errors() -> None:
    def broken(messages: List[ModelMessage], info: AgentInfo) -> ModelResponse:
        raise RuntimeError("provider down")

    invoker = PydanticAIInvoker(FunctionModel(broken), stream=False)
    with pytest.raises(ModelInvocationError, match="provider down"):
        await invoker("", [], [Message.user("hi")])


@pytest.mark.asyncio
async def test_streaming_invoker_yields_text_then_tool_calls() -> None:
    async def stream(messages: List[ModelMessage], info: AgentInfo) -> AsyncIterator[Union[str, dict]]:
        yield "Let me "
        yield "check."
        yield {0: DeltaToolCall(name="ls", json_args='{"path": "/"}', tool_call_id="call-1")}

    invoker = PydanticAIInvoker(FunctionModel(stream_function=stream))
    assert invoker.streaming

    items = [item async for item in invoker("", [], [Message.user("what is here?")])]
    assert items[:-1] == ["Let me ", "check."]
    assert items[-1] == ModelReply(tool_calls=[ToolCall(id="call-1", name="ls", args={"path": "/"})])


@pytest.mark.asyncio
async def test_streamed_chunks_reach_the_text_sink() -> None:
    async def stream(messages: List[ModelMessage], info: AgentInfo) -> AsyncIterator[str]:
        for chunk in ("one ", "two ", "three"):
            yield chunk

    chunks: List[str] = []

    async def sink(text: str) -> None:
        chunks.append(text)

    invoker = PydanticAIInvoker(FunctionModel(stream_function=stream))
    reply = await collect_reply(invoker("", [], [Message.user("count")]), sink)
    assert chunks == ["one ", "two ", "three"]
    assert reply.text == "one two three"
    assert reply.tool_calls == []


@pytest.mark.asyncio
async def test_streaming_invoker_wraps_model_errors() -> None:
    async def broken(messages: List[ModelMessage], info: AgentInfo) -> AsyncIterator[str]:
        yield "partial"
        raise RuntimeError("stream dropped")

    invoker = PydanticAIInvoker(FunctionModel(stream_function=broken))
    with pytest.raises(ModelInvocationError, match="stream dropped"):
        [item async for item in invoker("", [], [Message.user("hi")])]

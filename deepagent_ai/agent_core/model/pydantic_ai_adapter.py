"""Pydantic AI model adapter.

``PydanticAIInvoker`` implements the ``ModelInvoker`` boundary on top of
pydantic-ai's direct model request API. The orchestration loop keeps full
control over tool dispatch: tools are advertised to the model as plain
``ToolDefinition`` objects and the returned ``ToolCallPart`` objects are
converted back into ``ToolCall`` records without being executed here.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Awaitable, Dict, List, Optional, Union

from pydantic_ai.direct import model_request, model_request_stream
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelRequestPart,
    ModelResponse,
    PartDeltaEvent,
    PartStartEvent,
    SystemPromptPart,
    TextPart,
    TextPartDelta,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.tools import ToolDefinition

from ...core.logging_config import get_logger
from ..errors import ModelInvocationError
from ..schemas.domain import Message, MessageRole, ToolCall
from .base import ModelReply, ToolSpec

logger = get_logger(__name__)


def to_tool_definitions(tools: List[ToolSpec]) -> List[ToolDefinition]:
    return [
        ToolDefinition(name=t.name, description=t.description, parameters_json_schema=t.parameters) for t in tools
    ]


def to_model_messages(system_prompt: str, messages: List[Message]) -> List[ModelMessage]:
    """Convert history into pydantic-ai messages.

    Consecutive system/user/tool messages are folded into one ``ModelRequest``;
    every assistant message becomes one ``ModelResponse``.
    """
    out: List[ModelMessage] = []
    pending: List[ModelRequestPart] = []
    if system_prompt:
        pending.append(SystemPromptPart(content=system_prompt))

    def flush() -> None:
        if pending:
            out.append(ModelRequest(parts=list(pending)))
            pending.clear()

    for m in messages:
        if m.role == MessageRole.system:
            pending.append(SystemPromptPart(content=m.content))
        elif m.role == MessageRole.user:
            pending.append(UserPromptPart(content=m.content))
        elif m.role == MessageRole.tool:
            pending.append(
                ToolReturnPart(tool_name=m.tool_name or "", content=m.content, tool_call_id=m.tool_call_id or "")
            )
        else:
            flush()
            parts: List[Union[TextPart, ToolCallPart]] = []
            if m.content:
                parts.append(TextPart(content=m.content))
            for call in m.tool_calls:
                parts.append(ToolCallPart(tool_name=call.name, args=dict(call.args), tool_call_id=call.id))
            out.append(ModelResponse(parts=parts))
    flush()
    return out


def to_model_reply(response: ModelResponse) -> ModelReply:
    texts: List[str] = []
    calls: List[ToolCall] = []
    for part in response.parts:
        if isinstance(part, TextPart):
            texts.append(part.content)
        elif isinstance(part, ToolCallPart):
            calls.append(ToolCall(id=part.tool_call_id, name=part.tool_name, args=part.args_as_dict()))
    return ModelReply(text="".join(texts), tool_calls=calls)


class PydanticAIInvoker:
    """``ModelInvoker`` backed by any pydantic-ai ``Model`` or model name (e.g. ``openai:gpt-4o``).

    With ``stream=True`` (the default) the invoker is an async generator: it
    yields text deltas as the model produces them and finishes with a
    ``ModelReply`` carrying the tool calls of the turn. With ``stream=False``
    it returns one ``ModelReply`` per request.
    """

    def __init__(
        self,
        model: Union[Model, str],
        *,
        model_settings: Optional[Dict[str, Any]] = None,
        stream: bool = True,
    ) -> None:
        self._model = model
        self._model_settings = model_settings
        self._stream = stream

    @property
    def model(self) -> Union[Model, str]:
        return self._model

    @property
    def streaming(self) -> bool:
        return self._stream

    def __call__(
        self, system_prompt: str, tools: List[ToolSpec], messages: List[Message]
    ) -> Union[Awaitable[ModelReply], AsyncIterator[Union[str, ModelReply]]]:
        params = ModelRequestParameters(function_tools=to_tool_definitions(tools), allow_text_output=True)
        history = to_model_messages(system_prompt, messages)
        if self._stream:
            return self._request_stream(history, params)
        return self._request(history, params)

    async def _request(self, history: List[ModelMessage], params: ModelRequestParameters) -> ModelReply:
        try:
            response = await model_request(
                self._model,
                history,
                model_settings=self._model_settings,
                model_request_parameters=params,
            )
        except Exception as e:
            logger.error("Model request failed: %s", e)
            raise ModelInvocationError(str(e)) from e
        return to_model_reply(response)

    async def _request_stream(
        self, history: List[ModelMessage], params: ModelRequestParameters
    ) -> AsyncIterator[Union[str, ModelReply]]:
        try:
            async with model_request_stream(
                self._model,
                history,
                model_settings=self._model_settings,
                model_request_parameters=params,
            ) as stream:
                async for event in stream:
                    delta = _text_delta(event)
                    if delta:
                        yield delta
                response = stream.get()
        except Exception as e:
            logger.error("Model stream failed: %s", e, exc_info=True)
            raise ModelInvocationError(str(e)) from e
        yield ModelReply(tool_calls=to_model_reply(response).tool_calls)


def _text_delta(event: Any) -> Optional[str]:
    if isinstance(event, PartStartEvent) and isinstance(event.part, TextPart):
        return event.part.content
    if isinstance(event, PartDeltaEvent) and isinstance(event.delta, TextPartDelta):
        return event.delta.content_delta
    return None

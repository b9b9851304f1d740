from __future__ import annotations

"""Model-invocation boundary.

The orchestration loop never talks to an LLM SDK directly. It calls a
``ModelInvoker``::

    invoker(system_prompt, tools, messages) -> ModelReply
                                            | Awaitable[ModelReply]
                                            | AsyncIterator[str | ModelReply]

A streaming invoker yields text chunks and may finish with a ``ModelReply``
carrying the tool calls of the turn. ``collect_reply`` normalizes all shapes
into one ``ModelReply`` while forwarding text chunks as they arrive.
"""

import inspect
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Union

from pydantic import Field

from ..schemas.base import BaseSchema
from ..schemas.domain import Message, ToolCall


class ToolSpec(BaseSchema):
    """Tool description handed to the model: name, description and JSON schema of arguments."""

    name: str
    description: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ModelReply(BaseSchema):
    text: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)


ModelResult = Union[ModelReply, Awaitable[ModelReply], AsyncIterator[Union[str, ModelReply]]]
ModelInvoker = Callable[[str, List[ToolSpec], List[Message]], ModelResult]
TextSink = Callable[[str], Awaitable[None]]


async def collect_reply(result: Any, on_text: TextSink) -> ModelReply:
    """
    Normalize an invoker result into a ``ModelReply``.

    Args:
        result: Whatever the invoker returned.
        on_text: Awaited for each text chunk, in arrival order. For a
            non-streaming reply it is awaited once with the full text.

    Returns:
        The complete reply (streamed chunks concatenated).

    Raises:
        TypeError: If the result has an unsupported shape.
    """
    if inspect.isawaitable(result):
        result = await result

    if isinstance(result, str):
        result = ModelReply(text=result)

    if isinstance(result, ModelReply):
        if result.text:
            await on_text(result.text)
        return result

    if hasattr(result, "__aiter__"):
        chunks: List[str] = []
        tool_calls: List[ToolCall] = []
        async for item in result:
            if isinstance(item, ModelReply):
                if item.text:
                    chunks.append(item.text)
                    await on_text(item.text)
                tool_calls.extend(item.tool_calls)
            elif item:
                chunks.append(str(item))
                await on_text(str(item))
        return ModelReply(text="".join(chunks), tool_calls=tool_calls)

    raise TypeError(f"unsupported model result: {type(result).__name__}")

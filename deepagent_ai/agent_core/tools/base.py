from __future__ import annotations

"""Tool protocol and execution context.

A tool is the unit the model can call. It declares a pydantic ``args_model``
(its JSON schema is advertised to the model) and an async ``execute`` that
returns the string placed into the conversation as the tool result.

Tools should:

- report tool-domain failures as returned strings, not exceptions,
- mutate shared state only through ``ToolContext.state`` or ``ToolContext.backend``,
- publish their own progress events through ``ToolContext.emit``.
"""

import inspect
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, Type

from pydantic import BaseModel

from ..backends.base import Backend
from ..model.base import ToolSpec
from ..schemas.domain import AgentState
from ..schemas.events import BaseEvent

EventSink = Callable[[BaseEvent], Awaitable[None]]


@dataclass(frozen=True)
class ToolContext:
    """Execution context passed to tool implementations.

    Attributes
    ----------
    state:
        The run's live ``AgentState``.
    backend:
        The storage backend resolved for the run.
    emit:
        Coroutine publishing an event into the run's ordered stream.
    tool_call_id:
        Identifier of the call being executed.
    thread_id:
        Checkpoint thread of the run, if any.
    deps:
        Run-scoped engine dependencies (used by tools that start nested runs).
    """

    state: AgentState
    backend: Backend
    emit: EventSink
    tool_call_id: str = ""
    thread_id: Optional[str] = None
    deps: Any = None


class Tool(Protocol):
    """Protocol for tool implementations."""

    name: str
    description: str
    args_model: Type[BaseModel]

    async def execute(self, ctx: ToolContext, *, args: BaseModel) -> str: ...


def tool_spec(tool: Tool) -> ToolSpec:
    return ToolSpec(name=tool.name, description=tool.description, parameters=tool.args_model.model_json_schema())


def stringify_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    return json.dumps(result, default=str)


class FunctionTool:
    """Wrap a plain (sync or async) function as a tool.

    ``fn`` receives the validated arguments model; when it accepts a second
    positional parameter it also receives the ``ToolContext``. Non-string
    return values are serialized to JSON.

    Example::

        class AddArgs(BaseModel):
            a: int
            b: int

        add = FunctionTool("add", "Add two integers", AddArgs, lambda args: str(args.a + args.b))
    """

    def __init__(
        self,
        name: str,
        description: str,
        args_model: Type[BaseModel],
        fn: Callable[..., Any],
    ) -> None:
        self.name = name
        self.description = description
        self.args_model = args_model
        self._fn = fn
        self._wants_ctx = len(inspect.signature(fn).parameters) >= 2

    async def execute(self, ctx: ToolContext, *, args: BaseModel) -> str:
        result = self._fn(args, ctx) if self._wants_ctx else self._fn(args)
        if inspect.isawaitable(result):
            result = await result
        return stringify_result(result)

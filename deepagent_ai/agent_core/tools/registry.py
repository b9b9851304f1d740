from __future__ import annotations

"""Tool registry and dispatch.

The registry maps a tool name to its implementation and runs calls through an
ordered middleware chain. The first middleware in the sequence is the
outermost one::

    dispatch -> middlewares[0] -> middlewares[1] -> ... -> tool.execute
"""

import logging
from typing import Dict, Iterable, List, Sequence

from ..model.base import ToolSpec
from ..schemas.domain import ToolCall
from .base import Tool, ToolContext, tool_spec
from .middleware import ToolHandler, ToolMiddleware

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    In-memory mapping of tool names to implementations.

    Notes:
        - ``register`` overwrites any existing mapping for the tool name.
        - ``get`` will raise ``KeyError`` if the tool is missing.
    """

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: Dict[str, Tool] = {}
        for t in tools:
            self.register(t)

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        """
        Retrieve a registered tool by name.

        Raises:
            KeyError: If no tool is registered with the given name.
        """
        return self._tools[name]

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> List[str]:
        return list(self._tools)

    def tools(self) -> List[Tool]:
        return list(self._tools.values())

    def specs(self) -> List[ToolSpec]:
        return [tool_spec(t) for t in self._tools.values()]

    async def _execute(self, ctx: ToolContext, call: ToolCall) -> str:
        tool = self.get(call.name)
        args = tool.args_model.model_validate(call.args)
        return await tool.execute(ctx, args=args)

    def build_handler(self, middlewares: Sequence[ToolMiddleware] = ()) -> ToolHandler:
        handler: ToolHandler = self._execute
        for mw in reversed(middlewares):
            handler = _bind(mw, handler)
        return handler

    async def dispatch(self, ctx: ToolContext, call: ToolCall, middlewares: Sequence[ToolMiddleware] = ()) -> str:
        """
        Execute one tool call through the middleware chain.

        Args:
            ctx: Context for this call.
            call: The tool call requested by the model.
            middlewares: Outermost-first middleware sequence.

        Returns:
            The tool result string. Unknown tools yield an error string.
        """
        if not self.has(call.name):
            logger.warning("Model requested unknown tool %s", call.name)
            return f"Error: tool '{call.name}' is not available. Available tools: {', '.join(sorted(self._tools))}"
        logger.debug("Dispatching tool %s (%s)", call.name, call.id)
        return await self.build_handler(middlewares)(ctx, call)


def _bind(mw: ToolMiddleware, call_next: ToolHandler) -> ToolHandler:
    async def handler(ctx: ToolContext, call: ToolCall) -> str:
        return await mw(ctx, call, call_next)

    return handler

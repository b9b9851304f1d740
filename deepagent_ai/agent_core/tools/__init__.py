"""Tool interface, registry, middleware and built-in tools."""

from .base import FunctionTool, Tool, ToolContext, tool_spec
from .eviction import estimate_tokens, evict_if_needed
from .filesystem import filesystem_tools
from .middleware import (
    DENIED_RESULT,
    ApprovalMiddleware,
    ErrorCaptureMiddleware,
    EvictionMiddleware,
)
from .registry import ToolRegistry
from .subagent import SubagentTool
from .todos import WriteTodosTool

__all__ = [
    "ApprovalMiddleware",
    "DENIED_RESULT",
    "ErrorCaptureMiddleware",
    "EvictionMiddleware",
    "FunctionTool",
    "SubagentTool",
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "WriteTodosTool",
    "estimate_tokens",
    "evict_if_needed",
    "filesystem_tools",
    "tool_spec",
]

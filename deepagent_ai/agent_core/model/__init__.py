"""Model-invocation boundary and adapters."""

from .base import ModelInvoker, ModelReply, ModelResult, ToolSpec, collect_reply
from .pydantic_ai_adapter import PydanticAIInvoker

__all__ = ["ModelInvoker", "ModelReply", "ModelResult", "PydanticAIInvoker", "ToolSpec", "collect_reply"]

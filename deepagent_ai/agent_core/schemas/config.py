"""Runtime configuration models for a deep agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import Field

from .base import BaseSchema

if TYPE_CHECKING:
    from ...core.config import Settings
    from ..model.base import ModelInvoker
    from ..tools.base import Tool

ApprovalPredicate = Callable[[Dict[str, Any]], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class ApprovalRule:
    """Conditional gate: the tool call needs approval when ``should_approve(args)`` is true.

    The predicate may be a plain function or a coroutine function.
    """

    should_approve: ApprovalPredicate


InterruptOnConfig = Dict[str, Union[bool, ApprovalRule]]


@dataclass
class SummarizationConfig:
    """
    Conversation compaction settings.

    Attributes:
        enabled: Whether history is summarized at all.
        token_threshold: Estimated token count above which history is compacted.
        keep_messages: Number of trailing messages kept verbatim.
        invoker: Optional cheaper model used for the condensation; the agent's
            own invoker is used when unset.
    """

    enabled: bool = False
    token_threshold: int = 170_000
    keep_messages: int = 6
    invoker: Optional["ModelInvoker"] = None


@dataclass
class SubAgentSpec:
    """
    Declaration of a delegate agent reachable through the ``task`` tool.

    ``tools=None`` means the child receives the parent's user tools.
    ``invoker=None`` means the child uses the parent's model.
    """

    name: str
    description: str
    system_prompt: str
    tools: Optional[List["Tool"]] = None
    invoker: Optional["ModelInvoker"] = None
    interrupt_on: Optional[InterruptOnConfig] = None


DEFAULT_EVICTION_TOKEN_LIMIT = 20_000


class EvictionSettings(BaseSchema):
    """
    Tool-result eviction.

    An explicit ``token_limit`` wins (``0`` or less disables eviction). Without
    one, ``evict=True`` applies ``DEFAULT_EVICTION_TOKEN_LIMIT``.
    """

    evict: bool = Field(default=False, description="Evict oversized results using the default limit")
    token_limit: Optional[int] = Field(default=None, description="Estimated token count above which results are evicted")

    @property
    def effective_limit(self) -> Optional[int]:
        if self.token_limit is not None:
            return self.token_limit if self.token_limit > 0 else None
        return DEFAULT_EVICTION_TOKEN_LIMIT if self.evict else None

    @property
    def enabled(self) -> bool:
        return self.effective_limit is not None


@dataclass
class AgentConfig:
    """Orchestration configuration shared by the engine and its tools."""

    system_prompt: Optional[str] = None
    max_steps: int = 100
    tool_result_eviction_limit: Optional[int] = None
    evict_large_tool_results: bool = False
    summarization: SummarizationConfig = field(default_factory=SummarizationConfig)
    interrupt_on: InterruptOnConfig = field(default_factory=dict)
    subagents: List[SubAgentSpec] = field(default_factory=list)
    include_general_purpose_agent: bool = True

    @property
    def eviction(self) -> EvictionSettings:
        return EvictionSettings(evict=self.evict_large_tool_results, token_limit=self.tool_result_eviction_limit)

    @classmethod
    def from_settings(cls, settings: "Settings", **overrides: Any) -> "AgentConfig":
        """Build a config from environment-backed ``Settings``; keyword overrides win."""
        summary = settings.summarization
        values: Dict[str, Any] = {
            "max_steps": settings.max_steps,
            "tool_result_eviction_limit": settings.tool_result_eviction_limit,
            "evict_large_tool_results": settings.evict_large_tool_results,
            "summarization": SummarizationConfig(
                enabled=summary.enabled,
                token_threshold=summary.token_threshold,
                keep_messages=summary.keep_messages,
            ),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

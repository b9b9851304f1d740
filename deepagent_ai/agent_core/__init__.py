"""Deep agent core: state, backends, tools, runtime engine and persistence.

Design overview
---------------

A deep agent is a tool-calling model loop extended with:

- a planning list (``write_todos``) and a virtual file tree shared with
  every tool,
- pluggable storage ``Backend`` variants (in-memory, on-disk, key-value
  store, prefix-routing composite),
- eviction of oversized tool results into the backend,
- approval gates that either ask a callback or pause the run,
- checkpoint/resume per ``thread_id``,
- subagents launched through the ``task`` tool,
- summarization of long histories.

Execution is performed by ``agent_core.runtime.AgentEngine`` using LangGraph.
Every run yields an ordered stream of typed events ending in one ``done`` or
``error`` event.

Typical usage
-------------

Most applications should use ``agent_core.factory.create_deep_agent``:

1. Build the agent with a model, user tools and optional persistence.
2. Call ``generate`` or iterate ``stream_events``.
3. If a run pauses for approval, ``resume`` it with a ``ResumeDecision``.
"""

from .errors import (
    ApprovalPending,
    CheckpointError,
    DeepAgentError,
    ModelInvocationError,
    PathSecurityError,
    RunCancelled,
    RunFailed,
    StoreValueError,
)
from .factory import create_deep_agent, create_sql_checkpointer
from .runtime import AgentEngine, EngineDeps
from .schemas.config import AgentConfig, ApprovalRule, SubAgentSpec, SummarizationConfig
from .schemas.domain import AgentState, Message, ResumeDecision, ResumeDecisionType, RunStatus
from .service import DeepAgent, RunResult
from .tools.base import FunctionTool

__all__ = [
    "AgentConfig",
    "AgentEngine",
    "AgentState",
    "ApprovalPending",
    "ApprovalRule",
    "CheckpointError",
    "DeepAgent",
    "DeepAgentError",
    "EngineDeps",
    "FunctionTool",
    "Message",
    "ModelInvocationError",
    "PathSecurityError",
    "ResumeDecision",
    "ResumeDecisionType",
    "RunCancelled",
    "RunFailed",
    "RunResult",
    "RunStatus",
    "StoreValueError",
    "SubAgentSpec",
    "SummarizationConfig",
    "create_deep_agent",
    "create_sql_checkpointer",
]

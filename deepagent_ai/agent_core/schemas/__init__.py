"""Schemas and DTOs for the agent core."""

from .config import AgentConfig, ApprovalRule, InterruptOnConfig, SubAgentSpec, SummarizationConfig
from .domain import (
    AgentState,
    Checkpoint,
    FileRecord,
    Interrupt,
    Message,
    MessageRole,
    ResumeDecision,
    ResumeDecisionType,
    RunStatus,
    Todo,
    TodoStatus,
    ToolCall,
)
from .events import EVENT_ADAPTER, BaseEvent, DoneEvent, ErrorEvent, Event, EventSequence

__all__ = [
    "AgentConfig",
    "AgentState",
    "ApprovalRule",
    "BaseEvent",
    "Checkpoint",
    "DoneEvent",
    "ErrorEvent",
    "Event",
    "EVENT_ADAPTER",
    "EventSequence",
    "FileRecord",
    "Interrupt",
    "InterruptOnConfig",
    "Message",
    "MessageRole",
    "ResumeDecision",
    "ResumeDecisionType",
    "RunStatus",
    "SubAgentSpec",
    "SummarizationConfig",
    "Todo",
    "TodoStatus",
    "ToolCall",
]

from __future__ import annotations

"""Caller-facing event union.

Every observable unit of progress in a run is one of the event models below.
The union is closed and discriminated by ``type`` so a consumer can validate a
serialized event log with ``EVENT_ADAPTER``.

``seq`` is assigned by the run's ``EventSequence`` at emission time and is
strictly increasing within one run; it reflects actual execution order.
"""

import itertools
from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from .base import BaseSchema
from .domain import AgentState, Interrupt, Message, RunStatus, Todo, _utc_now


class BaseEvent(BaseSchema):
    seq: int = 0
    created_at: datetime = Field(default_factory=_utc_now)


class TextEvent(BaseEvent):
    type: Literal["text"] = "text"
    text: str


class StepStartEvent(BaseEvent):
    type: Literal["step-start"] = "step-start"
    step_number: int


class ToolCallSummary(BaseSchema):
    tool_name: str
    args: Dict[str, Any] = Field(default_factory=dict)
    result: Optional[str] = None


class StepFinishEvent(BaseEvent):
    type: Literal["step-finish"] = "step-finish"
    step_number: int
    tool_calls: List[ToolCallSummary] = Field(default_factory=list)


class ToolCallEvent(BaseEvent):
    type: Literal["tool-call"] = "tool-call"
    tool_name: str
    tool_call_id: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ToolResultEvent(BaseEvent):
    type: Literal["tool-result"] = "tool-result"
    tool_name: str
    tool_call_id: str
    result: str


class TodosChangedEvent(BaseEvent):
    type: Literal["todos-changed"] = "todos-changed"
    todos: List[Todo]


class FileWriteStartEvent(BaseEvent):
    type: Literal["file-write-start"] = "file-write-start"
    path: str
    content: str


class FileWrittenEvent(BaseEvent):
    type: Literal["file-written"] = "file-written"
    path: str
    content: str


class FileEditedEvent(BaseEvent):
    type: Literal["file-edited"] = "file-edited"
    path: str
    occurrences: int


class FileReadEvent(BaseEvent):
    type: Literal["file-read"] = "file-read"
    path: str
    lines: int


class LsEvent(BaseEvent):
    type: Literal["ls"] = "ls"
    path: str
    count: int


class GlobEvent(BaseEvent):
    type: Literal["glob"] = "glob"
    pattern: str
    count: int


class GrepEvent(BaseEvent):
    type: Literal["grep"] = "grep"
    pattern: str
    count: int


class SubagentStartEvent(BaseEvent):
    type: Literal["subagent-start"] = "subagent-start"
    name: str
    task: str


class SubagentFinishEvent(BaseEvent):
    type: Literal["subagent-finish"] = "subagent-finish"
    name: str
    result: str


class ApprovalRequestedEvent(BaseEvent):
    type: Literal["approval-requested"] = "approval-requested"
    approval_id: str
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ApprovalResponseEvent(BaseEvent):
    type: Literal["approval-response"] = "approval-response"
    approval_id: str
    approved: bool


class CheckpointSavedEvent(BaseEvent):
    type: Literal["checkpoint-saved"] = "checkpoint-saved"
    thread_id: str
    step: int


class CheckpointLoadedEvent(BaseEvent):
    type: Literal["checkpoint-loaded"] = "checkpoint-loaded"
    thread_id: str
    step: int
    messages_count: int


class DoneEvent(BaseEvent):
    type: Literal["done"] = "done"
    status: RunStatus = RunStatus.completed
    state: AgentState
    text: str = ""
    messages: List[Message] = Field(default_factory=list)
    step: int = 0
    thread_id: Optional[str] = None
    interrupt: Optional[Interrupt] = None


class ErrorEvent(BaseEvent):
    type: Literal["error"] = "error"
    error: str
    error_type: str = "Exception"


Event = Annotated[
    Union[
        TextEvent,
        StepStartEvent,
        StepFinishEvent,
        ToolCallEvent,
        ToolResultEvent,
        TodosChangedEvent,
        FileWriteStartEvent,
        FileWrittenEvent,
        FileEditedEvent,
        FileReadEvent,
        LsEvent,
        GlobEvent,
        GrepEvent,
        SubagentStartEvent,
        SubagentFinishEvent,
        ApprovalRequestedEvent,
        ApprovalResponseEvent,
        CheckpointSavedEvent,
        CheckpointLoadedEvent,
        DoneEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

EVENT_ADAPTER: TypeAdapter[Event] = TypeAdapter(Event)


class EventSequence:
    """Run-scoped sequence generator used to stamp ``BaseEvent.seq``."""

    def __init__(self, start: int = 1) -> None:
        self._counter = itertools.count(start)

    def stamp(self, event: BaseEvent) -> BaseEvent:
        event.seq = next(self._counter)
        return event

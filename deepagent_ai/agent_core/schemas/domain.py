from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return _utc_now().isoformat()


class TodoStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class MessageRole(str, Enum):
    system = "system"
    user = "user"
    assistant = "assistant"
    tool = "tool"


class RunStatus(str, Enum):
    completed = "completed"
    max_steps = "max_steps"
    paused = "paused"
    cancelled = "cancelled"


class ResumeDecisionType(str, Enum):
    approve = "approve"
    deny = "deny"


class Todo(BaseSchema):
    id: str
    content: str
    status: TodoStatus = TodoStatus.pending


class FileRecord(BaseSchema):
    """A stored file: its content split into lines plus ISO-8601 timestamps."""

    lines: List[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)
    modified_at: str = Field(default_factory=utc_now_iso)

    @classmethod
    def from_text(cls, content: str) -> "FileRecord":
        now = utc_now_iso()
        return cls(lines=content.split("\n"), created_at=now, modified_at=now)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def size(self) -> int:
        return len(self.text)

    def with_text(self, content: str) -> "FileRecord":
        """Return a copy holding ``content`` with a fresh ``modified_at``."""
        return FileRecord(lines=content.split("\n"), created_at=self.created_at, modified_at=utc_now_iso())


class AgentState(BaseSchema):
    """Mutable state owned by one orchestration run.

    Tools and ephemeral backends hold a live reference to this object for the
    duration of the run; checkpoints store a deep copy.
    """

    todos: List[Todo] = Field(default_factory=list)
    files: Dict[str, FileRecord] = Field(default_factory=dict)

    def snapshot(self) -> "AgentState":
        return self.model_copy(deep=True)


class ToolCall(BaseSchema):
    id: str = Field(default_factory=lambda: f"call_{uuid4().hex[:16]}")
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class Message(BaseSchema):
    role: MessageRole
    content: str = ""

    tool_calls: List[ToolCall] = Field(default_factory=list)

    tool_call_id: Optional[str] = None
    tool_name: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.system, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.user, content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: Optional[List[ToolCall]] = None) -> "Message":
        return cls(role=MessageRole.assistant, content=content, tool_calls=list(tool_calls or []))

    @classmethod
    def tool(cls, call: ToolCall, content: str) -> "Message":
        return cls(role=MessageRole.tool, content=content, tool_call_id=call.id, tool_name=call.name)


class Interrupt(BaseSchema):
    """A gated tool call paused while it awaits an approve/deny decision."""

    approval_id: str = Field(default_factory=lambda: str(uuid4()))
    tool_call_id: str
    tool_name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ResumeDecision(BaseSchema):
    type: ResumeDecisionType
    approval_id: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.type == ResumeDecisionType.approve


class Checkpoint(BaseSchema):
    """Persisted snapshot of one thread; ``step`` is the resume cursor."""

    thread_id: str
    step: int = 0

    messages: List[Message] = Field(default_factory=list)
    state: AgentState = Field(default_factory=AgentState)

    interrupt: Optional[Interrupt] = None

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

from __future__ import annotations

"""Runtime dependency bundle and LangGraph state types.

The runtime engine is designed to be dependency-injected.

- ``EngineDeps`` collects the model, tools, configuration and persistence the
  engine needs.
- ``RunContext`` is the mutable, run-scoped object shared by all graph nodes:
  live state, history, step cursor, event channel and sequence generator.
- ``_GraphState`` is the LangGraph state passed between nodes. It carries the
  run context plus the routing decision of the last node.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Sequence, TypedDict

from ..backends.base import Backend
from ..errors import RunCancelled
from ..model.base import ModelInvoker
from ..repos.interfaces import CheckpointRepository
from ..schemas.config import AgentConfig
from ..schemas.domain import AgentState, Interrupt, Message, ResumeDecision, RunStatus
from ..schemas.events import BaseEvent, EventSequence
from ..tools.base import Tool
from ..tools.middleware import ApprovalCallback


@dataclass(frozen=True)
class EngineDeps:
    """Dependency bundle for ``AgentEngine``.

    Attributes
    ----------
    invoker:
        The model-invocation collaborator.
    config:
        Orchestration configuration (prompt, limits, gating, subagents).
    tools:
        User tools registered next to the built-in ones.
    checkpoints:
        Checkpoint repository; runs with a ``thread_id`` persist into it.
    backend:
        A ``Backend`` instance, a factory ``(AgentState) -> Backend``, or None
        for the in-memory ``StateBackend``.
    """

    invoker: ModelInvoker
    config: AgentConfig = field(default_factory=AgentConfig)
    tools: Sequence[Tool] = ()
    checkpoints: Optional[CheckpointRepository] = None
    backend: Any = None


@dataclass
class RunContext:
    """Mutable state of one orchestration run."""

    engine: Any
    state: AgentState
    messages: List[Message]
    max_steps: int
    sequence: EventSequence
    queue: "asyncio.Queue[Any]"

    thread_id: Optional[str] = None
    prompt: Optional[str] = None
    resume: Optional[ResumeDecision] = None
    on_approval_request: Optional[ApprovalCallback] = None
    cancel_event: Optional[asyncio.Event] = None
    checkpoints: Optional[CheckpointRepository] = None

    backend: Optional[Backend] = None
    step: int = 0
    start_step: int = 0
    text: str = ""
    status: RunStatus = RunStatus.completed
    interrupt: Optional[Interrupt] = None
    prepared: bool = False
    checkpoint_created_at: Optional[datetime] = None

    @property
    def checkpointing(self) -> bool:
        return self.thread_id is not None and self.checkpoints is not None

    async def emit(self, event: BaseEvent) -> None:
        """Stamp ``event`` with the next sequence number and publish it."""
        self.sequence.stamp(event)
        await self.queue.put(event)

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise RunCancelled("run cancelled")


class _GraphState(TypedDict):
    """LangGraph state for a single engine run.

    - ``run``: the shared ``RunContext``.
    - ``route``: the next transition chosen by the last node.
    """

    run: RunContext
    route: str

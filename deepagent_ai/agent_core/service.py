from __future__ import annotations

"""High-level API for deep agent runs.

``DeepAgent`` wraps an ``AgentEngine`` with application-friendly entry points:

- ``stream_events``: the raw, ordered event stream of one run.
- ``generate``: drain the stream and return a ``RunResult``.
- ``stream_with_callback``: hand each event to a callback, then return the
  ``RunResult``.
- ``resume``: resolve a paused thread's pending approval and continue it.

``DeepAgent`` holds no execution logic of its own; run semantics live in the engine.
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Union

from .errors import RunFailed
from .runtime import AgentEngine
from .schemas.domain import AgentState, Interrupt, Message, ResumeDecision, RunStatus
from .schemas.events import DoneEvent, ErrorEvent, Event

EventCallback = Callable[[Event], Union[None, Awaitable[None]]]


@dataclass
class RunResult:
    """Outcome of one run, built from its terminal ``done`` event."""

    text: str
    state: AgentState
    messages: List[Message]
    status: RunStatus
    events: List[Event] = field(default_factory=list)
    step: int = 0
    thread_id: Optional[str] = None
    interrupt: Optional[Interrupt] = None

    @property
    def paused(self) -> bool:
        return self.status == RunStatus.paused

    @classmethod
    def from_done(cls, done: DoneEvent, events: List[Event]) -> "RunResult":
        return cls(
            text=done.text,
            state=done.state,
            messages=list(done.messages),
            status=done.status,
            events=events,
            step=done.step,
            thread_id=done.thread_id,
            interrupt=done.interrupt,
        )


class DeepAgent:
    """A configured deep agent: model, tools, backend, persistence and policy."""

    def __init__(self, engine: AgentEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> AgentEngine:
        return self._engine

    @property
    def system_prompt(self) -> str:
        return self._engine.system_prompt

    @property
    def tool_names(self) -> List[str]:
        return self._engine.registry.names()

    def stream_events(self, prompt: Optional[str] = None, **kwargs: Any) -> AsyncIterator[Event]:
        """Run the agent and yield its events; see ``AgentEngine.stream_events``."""
        return self._engine.stream_events(prompt, **kwargs)

    async def generate(self, prompt: Optional[str] = None, **kwargs: Any) -> RunResult:
        """
        Run the agent to its terminal event.

        Args:
            prompt: The user turn.
            **kwargs: Forwarded to ``AgentEngine.stream_events``.

        Returns:
            The run result.

        Raises:
            RunFailed: If the run ended with an ``error`` event.
        """
        return await self.stream_with_callback(None, prompt, **kwargs)

    async def stream_with_callback(
        self,
        callback: Optional[EventCallback],
        prompt: Optional[str] = None,
        **kwargs: Any,
    ) -> RunResult:
        """
        Run the agent, handing each event to ``callback`` in order.

        The callback may be a plain function or a coroutine function.

        Returns:
            The run result.

        Raises:
            RunFailed: If the run ended with an ``error`` event.
        """
        events: List[Event] = []
        done: Optional[DoneEvent] = None
        error: Optional[ErrorEvent] = None
        async for event in self._engine.stream_events(prompt, **kwargs):
            events.append(event)
            if callback is not None:
                res = callback(event)
                if inspect.isawaitable(res):
                    await res
            if isinstance(event, ErrorEvent):
                error = event
            elif isinstance(event, DoneEvent):
                done = event

        if error is not None:
            raise RunFailed(error.error, error.error_type)
        if done is None:
            raise RunFailed("run ended without a done event")
        return RunResult.from_done(done, events)

    async def resume(self, thread_id: str, decision: ResumeDecision, **kwargs: Any) -> RunResult:
        """Resolve the pending approval of ``thread_id`` and continue the run."""
        return await self.generate(None, thread_id=thread_id, resume=decision, **kwargs)

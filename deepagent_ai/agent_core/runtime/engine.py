from __future__ import annotations

"""LangGraph runtime engine.

``AgentEngine`` drives a deep agent run: model calls, tool dispatch, state
changes, checkpointing and the ordered event stream seen by the caller.

Execution model
---------------

The engine runs a LangGraph state machine over a run-scoped ``RunContext``::

    restore --> prepare --> model <--> tools --> finish
        |                     ^          |
        +--> resume ----------+----------+

- ``restore`` loads the thread's checkpoint (if any) and decides whether a
  pending approval must be resolved first.
- ``resume`` applies the caller's approve/deny decision to the pending call.
- ``prepare`` appends the new user turn, repairs dangling tool calls and
  summarizes the history if it is over budget.
- ``model`` performs one model call and streams its text.
- ``tools`` dispatches the calls of the last assistant turn through the
  middleware chain, then completes the step and saves a checkpoint.
- ``finish`` emits the terminal ``done`` event.

Event ordering
--------------

Nodes and tools publish events into a queue as they happen and
``stream_events`` yields them in that order. Events of one step (tool
results, state changes, checkpoint writes, subagent lifecycle) therefore
always precede the text of the next step.

Pause/resume
------------

When a gated tool has no approval callback and the run checkpoints, the
engine saves a checkpoint carrying the ``Interrupt`` and ends with
``done(status=paused)``. A later ``stream_events(thread_id=..., resume=...)``
resolves the interrupt, dispatches the rest of the interrupted turn and
continues the loop.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, List, Optional

from langgraph.graph import END, StateGraph

from ..backends.factory import resolve_backend
from ..errors import ApprovalPending, DeepAgentError, RunCancelled
from ..model.base import collect_reply
from ..policy.approval import ApprovalPolicy
from ..prompts import build_system_prompt
from ..schemas.config import AgentConfig, SubAgentSpec
from ..schemas.domain import AgentState, Checkpoint, Message, MessageRole, ResumeDecision, RunStatus, ToolCall
from ..schemas.events import (
    ApprovalResponseEvent,
    CheckpointLoadedEvent,
    CheckpointSavedEvent,
    DoneEvent,
    ErrorEvent,
    Event,
    EventSequence,
    StepFinishEvent,
    StepStartEvent,
    TextEvent,
    ToolCallEvent,
    ToolCallSummary,
    ToolResultEvent,
)
from ..tools.base import ToolContext
from ..tools.filesystem import filesystem_tools
from ..tools.middleware import (
    DENIED_RESULT,
    ApprovalCallback,
    ApprovalMiddleware,
    ErrorCaptureMiddleware,
    EvictionMiddleware,
    ToolMiddleware,
)
from ..tools.registry import ToolRegistry
from ..tools.subagent import SubagentTool
from ..tools.todos import WriteTodosTool
from .models import EngineDeps, RunContext, _GraphState
from .patching import patch_tool_calls, unanswered_calls
from .summarization import summarize_if_needed

logger = logging.getLogger(__name__)

SUBAGENT_MAX_STEPS = 50

_END_OF_STREAM = object()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AgentEngine:
    """Execute deep agent runs with checkpointing, approval gates and ordered events.

    The engine is orchestration-only: model calls go through
    ``EngineDeps.invoker``, tool work through the ``ToolRegistry``, storage
    through the resolved ``Backend`` and persistence through
    ``EngineDeps.checkpoints``.
    """

    def __init__(self, *, deps: EngineDeps) -> None:
        """
        Initialize the AgentEngine.

        Args:
            deps: The runtime dependencies (model, tools, config, persistence).
        """
        self._deps = deps
        self._policy = ApprovalPolicy(deps.config.interrupt_on)
        self._registry = self._build_registry()
        self._system_prompt = build_system_prompt(deps.config.system_prompt, with_task=self._registry.has("task"))
        self._graph = self._build_graph()

    @property
    def deps(self) -> EngineDeps:
        return self._deps

    @property
    def config(self) -> AgentConfig:
        return self._deps.config

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def _build_registry(self) -> ToolRegistry:
        reg = ToolRegistry()
        reg.register(WriteTodosTool())
        for t in filesystem_tools():
            reg.register(t)
        for t in self._deps.tools:
            reg.register(t)
        cfg = self._deps.config
        if cfg.subagents or cfg.include_general_purpose_agent:
            reg.register(
                SubagentTool(
                    cfg.subagents,
                    include_general_purpose_agent=cfg.include_general_purpose_agent,
                )
            )
        return reg

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("restore", self._node_restore)
        g.add_node("resume", self._node_resume)
        g.add_node("prepare", self._node_prepare)
        g.add_node("model", self._node_model)
        g.add_node("tools", self._node_tools)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("restore")
        g.add_conditional_edges("restore", _route, {"resume": "resume", "prepare": "prepare"})
        g.add_edge("resume", "tools")
        g.add_edge("prepare", "model")
        g.add_conditional_edges("model", _route, {"tools": "tools", "finish": "finish"})
        g.add_conditional_edges(
            "tools",
            _route,
            {"prepare": "prepare", "model": "model", "finish": "finish"},
        )
        g.add_edge("finish", END)
        return g.compile()

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------

    async def stream_events(
        self,
        prompt: Optional[str] = None,
        *,
        state: Optional[AgentState] = None,
        messages: Optional[List[Message]] = None,
        thread_id: Optional[str] = None,
        resume: Optional[ResumeDecision] = None,
        max_steps: Optional[int] = None,
        on_approval_request: Optional[ApprovalCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> AsyncIterator[Event]:
        """
        Run the agent and yield its events in execution order.

        Args:
            prompt: New user turn. May be omitted only when resuming.
            state: Initial state; ignored when a checkpoint is restored.
            messages: Prior history; ignored when a checkpoint is restored.
            thread_id: Checkpoint thread. Enables persistence when the engine
                has a checkpoint repository.
            resume: Decision for a pending approval of ``thread_id``.
            max_steps: Step ceiling for this run (defaults to the config).
            on_approval_request: Decision callback for gated tools.
            cancel_event: Set it to cancel the run at the next suspension point.

        Yields:
            Events, ending with exactly one ``done`` or ``error`` event.
        """
        ctx = RunContext(
            engine=self,
            state=state if state is not None else AgentState(),
            messages=list(messages or []),
            max_steps=max_steps if max_steps is not None else self._deps.config.max_steps,
            sequence=EventSequence(),
            queue=asyncio.Queue(),
            thread_id=thread_id,
            prompt=prompt,
            resume=resume,
            on_approval_request=on_approval_request,
            cancel_event=cancel_event,
            checkpoints=self._deps.checkpoints,
        )

        if prompt is None and resume is None:
            yield ctx.sequence.stamp(ErrorEvent(error="either a prompt or a resume decision is required", error_type="ValueError"))
            return

        producer = asyncio.create_task(self._run(ctx))
        try:
            while True:
                item = await ctx.queue.get()
                if item is _END_OF_STREAM:
                    break
                yield item
            await producer
        finally:
            if not producer.done():
                producer.cancel()
                try:
                    await producer
                except asyncio.CancelledError:
                    pass

    def spawn_child(self, spec: SubAgentSpec, backend: Any) -> "AgentEngine":
        """Build the engine of a subagent: fresh history and todos, shared backend, no checkpointing."""
        cfg = self._deps.config
        child_config = AgentConfig(
            system_prompt=spec.system_prompt,
            max_steps=SUBAGENT_MAX_STEPS,
            tool_result_eviction_limit=cfg.tool_result_eviction_limit,
            evict_large_tool_results=cfg.evict_large_tool_results,
            summarization=cfg.summarization,
            interrupt_on=dict(spec.interrupt_on if spec.interrupt_on is not None else cfg.interrupt_on),
            subagents=[],
            include_general_purpose_agent=False,
        )
        return AgentEngine(
            deps=EngineDeps(
                invoker=spec.invoker or self._deps.invoker,
                config=child_config,
                tools=list(spec.tools) if spec.tools is not None else list(self._deps.tools),
                checkpoints=None,
                backend=backend,
            )
        )

    # ------------------------------------------------------------------
    # run driver
    # ------------------------------------------------------------------

    async def _run(self, ctx: RunContext) -> None:
        logger.info("Run started (thread=%s, max_steps=%d)", ctx.thread_id, ctx.max_steps)
        try:
            await self._graph.ainvoke(
                {"run": ctx, "route": ""},
                config={"recursion_limit": ctx.max_steps * 2 + 10},
            )
        except RunCancelled:
            logger.info("Run cancelled at step %d (thread=%s)", ctx.step, ctx.thread_id)
            await ctx.emit(self._done_event(ctx, RunStatus.cancelled))
        except Exception as e:
            logger.exception("Run failed (thread=%s)", ctx.thread_id)
            await ctx.emit(ErrorEvent(error=str(e), error_type=type(e).__name__))
        finally:
            await ctx.queue.put(_END_OF_STREAM)

    def _middlewares(self, ctx: RunContext, *, gated: bool = True) -> List[ToolMiddleware]:
        chain: List[ToolMiddleware] = []
        if gated:
            chain.append(
                ApprovalMiddleware(
                    self._policy,
                    on_approval_request=ctx.on_approval_request,
                    can_pause=ctx.checkpointing,
                )
            )
        chain.append(ErrorCaptureMiddleware())
        chain.append(EvictionMiddleware(self._deps.config.eviction.effective_limit))
        return chain

    def _tool_context(self, ctx: RunContext, call: ToolCall) -> ToolContext:
        return ToolContext(
            state=ctx.state,
            backend=ctx.backend,
            emit=ctx.emit,
            tool_call_id=call.id,
            thread_id=ctx.thread_id,
            deps=ctx,
        )

    async def _save_checkpoint(self, ctx: RunContext) -> None:
        if not ctx.checkpointing:
            return
        now = _utc_now()
        cp = Checkpoint(
            thread_id=ctx.thread_id,
            step=ctx.step,
            messages=[m.model_copy(deep=True) for m in ctx.messages],
            state=ctx.state.snapshot(),
            interrupt=ctx.interrupt,
            created_at=ctx.checkpoint_created_at or now,
            updated_at=now,
        )
        await ctx.checkpoints.save(cp)
        ctx.checkpoint_created_at = cp.created_at
        logger.debug("Checkpoint saved (thread=%s, step=%d)", ctx.thread_id, ctx.step)
        await ctx.emit(CheckpointSavedEvent(thread_id=ctx.thread_id, step=ctx.step))

    def _done_event(self, ctx: RunContext, status: RunStatus) -> DoneEvent:
        return DoneEvent(
            status=status,
            state=ctx.state.snapshot(),
            text=ctx.text,
            messages=[m.model_copy(deep=True) for m in ctx.messages],
            step=ctx.step,
            thread_id=ctx.thread_id,
            interrupt=ctx.interrupt,
        )

    # ------------------------------------------------------------------
    # graph nodes
    # ------------------------------------------------------------------

    async def _node_restore(self, state: _GraphState) -> dict:
        """Load the thread's checkpoint and bind the backend to the run state."""
        ctx = state["run"]
        ctx.check_cancelled()

        pending = None
        if ctx.checkpointing:
            cp = await ctx.checkpoints.load(ctx.thread_id)
            if cp is not None:
                ctx.state = cp.state
                ctx.messages = list(cp.messages)
                ctx.step = cp.step
                ctx.start_step = cp.step
                ctx.checkpoint_created_at = cp.created_at
                pending = cp.interrupt
                logger.debug("Checkpoint loaded (thread=%s, step=%d)", ctx.thread_id, cp.step)
                await ctx.emit(
                    CheckpointLoadedEvent(thread_id=ctx.thread_id, step=cp.step, messages_count=len(cp.messages))
                )

        ctx.backend = resolve_backend(self._deps.backend, ctx.state)

        if pending is not None:
            if ctx.resume is None:
                raise DeepAgentError(
                    f"thread '{ctx.thread_id}' is awaiting approval of tool '{pending.tool_name}'; "
                    "supply a resume decision"
                )
            if ctx.resume.approval_id is not None and ctx.resume.approval_id != pending.approval_id:
                raise DeepAgentError(
                    f"resume decision targets approval '{ctx.resume.approval_id}' "
                    f"but the pending approval is '{pending.approval_id}'"
                )
            ctx.interrupt = pending
            return {"route": "resume"}

        if ctx.resume is not None:
            logger.warning("Resume decision supplied but thread %s has no pending approval", ctx.thread_id)
            if ctx.prompt is None:
                raise DeepAgentError(f"thread '{ctx.thread_id}' has no pending approval to resume")
        return {"route": "prepare"}

    async def _node_resume(self, state: _GraphState) -> dict:
        """Apply the resume decision to the interrupted tool call."""
        ctx = state["run"]
        ctx.check_cancelled()
        interrupt = ctx.interrupt
        approved = ctx.resume.approved

        assistant_idx = _last_assistant_index(ctx.messages)
        call = None
        if assistant_idx is not None:
            call = next((c for c in ctx.messages[assistant_idx].tool_calls if c.id == interrupt.tool_call_id), None)
        if call is None:
            call = ToolCall(id=interrupt.tool_call_id, name=interrupt.tool_name, args=dict(interrupt.args))
            ctx.messages.append(Message.assistant(tool_calls=[call]))

        ctx.interrupt = None
        logger.info("Resuming %s: %s", interrupt.tool_name, "approved" if approved else "denied")
        await ctx.emit(ApprovalResponseEvent(approval_id=interrupt.approval_id, approved=approved))
        await ctx.emit(ToolCallEvent(tool_name=call.name, tool_call_id=call.id, args=dict(call.args)))

        if approved:
            # approved calls skip the gate and keep error capture and eviction
            middlewares = self._middlewares(ctx, gated=False)
            result = await self._registry.dispatch(self._tool_context(ctx, call), call, middlewares)
        else:
            result = DENIED_RESULT

        ctx.messages.append(Message.tool(call, result))
        await ctx.emit(ToolResultEvent(tool_name=call.name, tool_call_id=call.id, result=result))
        return {"route": "tools"}

    async def _node_prepare(self, state: _GraphState) -> dict:
        """Build the model input: history + new user turn, patched and summarized."""
        ctx = state["run"]
        ctx.check_cancelled()
        if ctx.prompt is not None:
            ctx.messages.append(Message.user(ctx.prompt))
        ctx.messages = patch_tool_calls(ctx.messages)
        ctx.messages = await summarize_if_needed(
            ctx.messages,
            config=self._deps.config.summarization,
            invoker=self._deps.invoker,
        )
        ctx.prepared = True
        return {"route": "model"}

    async def _node_model(self, state: _GraphState) -> dict:
        """Run one model call and record the assistant turn."""
        ctx = state["run"]
        ctx.check_cancelled()
        if ctx.step - ctx.start_step >= ctx.max_steps:
            logger.info("Step ceiling %d reached (thread=%s)", ctx.max_steps, ctx.thread_id)
            ctx.status = RunStatus.max_steps
            return {"route": "finish"}

        step_number = ctx.step + 1
        await ctx.emit(StepStartEvent(step_number=step_number))

        async def on_text(chunk: str) -> None:
            ctx.check_cancelled()
            ctx.text += chunk
            await ctx.emit(TextEvent(text=chunk))

        ctx.text = ""
        result = self._deps.invoker(self._system_prompt, self._registry.specs(), list(ctx.messages))
        reply = await collect_reply(result, on_text)
        ctx.check_cancelled()

        ctx.messages.append(Message.assistant(reply.text, reply.tool_calls))
        if reply.tool_calls:
            return {"route": "tools"}

        ctx.step = step_number
        await ctx.emit(StepFinishEvent(step_number=step_number, tool_calls=[]))
        await self._save_checkpoint(ctx)
        ctx.status = RunStatus.completed
        return {"route": "finish"}

    async def _node_tools(self, state: _GraphState) -> dict:
        """Dispatch the unanswered calls of the last assistant turn and complete the step."""
        ctx = state["run"]
        assistant_idx = _last_assistant_index(ctx.messages)
        turn = ctx.messages[assistant_idx]
        middlewares = self._middlewares(ctx)

        for call in unanswered_calls(turn, ctx.messages[assistant_idx + 1 :]):
            ctx.check_cancelled()
            await ctx.emit(ToolCallEvent(tool_name=call.name, tool_call_id=call.id, args=dict(call.args)))
            try:
                result = await self._registry.dispatch(self._tool_context(ctx, call), call, middlewares)
            except ApprovalPending as p:
                ctx.interrupt = p.interrupt
                ctx.status = RunStatus.paused
                await self._save_checkpoint(ctx)
                logger.info("Run paused for approval of %s (thread=%s)", call.name, ctx.thread_id)
                return {"route": "finish"}
            ctx.check_cancelled()
            ctx.messages.append(Message.tool(call, result))
            await ctx.emit(ToolResultEvent(tool_name=call.name, tool_call_id=call.id, result=result))

        results = {
            m.tool_call_id: m.content for m in ctx.messages[assistant_idx + 1 :] if m.role == MessageRole.tool
        }
        ctx.step += 1
        await ctx.emit(
            StepFinishEvent(
                step_number=ctx.step,
                tool_calls=[
                    ToolCallSummary(tool_name=c.name, args=dict(c.args), result=results.get(c.id))
                    for c in turn.tool_calls
                ],
            )
        )
        await self._save_checkpoint(ctx)
        return {"route": "model" if ctx.prepared else "prepare"}

    async def _node_finish(self, state: _GraphState) -> dict:
        ctx = state["run"]
        logger.info("Run finished with status %s at step %d (thread=%s)", ctx.status.value, ctx.step, ctx.thread_id)
        await ctx.emit(self._done_event(ctx, ctx.status))
        return {"route": ""}


def _route(state: _GraphState) -> str:
    return state["route"]


def _last_assistant_index(messages: List[Message]) -> Optional[int]:
    for i in range(len(messages) - 1, -1, -1):
        if messages[i].role == MessageRole.assistant:
            return i
    return None

from __future__ import annotations

"""Subagent spawner (``task`` tool).

A subagent is an isolated child run:

- its own, empty history and todo list,
- the parent's backend and file mapping (files written by the child are
  visible to the parent without any copy),
- no checkpointing and a step ceiling of its own.

Only ``subagent-start`` and ``subagent-finish`` reach the parent's event
stream; the child's final text becomes the tool result.
"""

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from ..errors import RunCancelled
from ..prompts import DEFAULT_SUBAGENT_PROMPT, GENERAL_PURPOSE_DESCRIPTION, task_tool_description
from ..schemas.config import SubAgentSpec
from ..schemas.domain import AgentState, RunStatus
from ..schemas.events import DoneEvent, ErrorEvent, SubagentFinishEvent, SubagentStartEvent
from .base import ToolContext

logger = logging.getLogger(__name__)

GENERAL_PURPOSE = "general-purpose"


class TaskArgs(BaseModel):
    description: str = Field(..., description="Complete instructions for the subagent, including what to return")
    subagent_type: str = Field(default=GENERAL_PURPOSE, description="Name of the subagent to launch")


def general_purpose_spec() -> SubAgentSpec:
    return SubAgentSpec(
        name=GENERAL_PURPOSE,
        description=GENERAL_PURPOSE_DESCRIPTION,
        system_prompt=DEFAULT_SUBAGENT_PROMPT,
    )


class SubagentTool:
    name = "task"
    args_model = TaskArgs

    def __init__(self, subagents: Sequence[SubAgentSpec] = (), *, include_general_purpose_agent: bool = True) -> None:
        self._specs: Dict[str, SubAgentSpec] = {}
        if include_general_purpose_agent:
            self._specs[GENERAL_PURPOSE] = general_purpose_spec()
        for spec in subagents:
            self._specs[spec.name] = spec
        self.description = task_tool_description(f'"{s.name}": {s.description}' for s in self._specs.values())

    @property
    def subagent_names(self) -> List[str]:
        return list(self._specs)

    async def execute(self, ctx: ToolContext, *, args: TaskArgs) -> str:
        spec = self._specs.get(args.subagent_type)
        if spec is None:
            allowed = ", ".join(f"'{n}'" for n in self._specs)
            return f"Error: unknown subagent_type '{args.subagent_type}'. Allowed types: {allowed}"

        run = ctx.deps
        await ctx.emit(SubagentStartEvent(name=spec.name, task=args.description))
        logger.info("Subagent %s started", spec.name)

        # fresh todos, shared files mapping
        child_state = AgentState.model_construct(todos=[], files=ctx.state.files)
        child = run.engine.spawn_child(spec, ctx.backend)

        text: Optional[str] = None
        try:
            async for event in child.stream_events(
                args.description,
                state=child_state,
                on_approval_request=run.on_approval_request,
                cancel_event=run.cancel_event,
            ):
                if isinstance(event, DoneEvent):
                    if event.status == RunStatus.cancelled:
                        raise RunCancelled("run cancelled during subagent")
                    text = event.text
                elif isinstance(event, ErrorEvent):
                    text = f"Error executing subagent: {event.error}"
        except RunCancelled:
            raise
        except Exception as e:
            logger.warning("Subagent %s failed", spec.name, exc_info=True)
            text = f"Error executing subagent: {e}"

        result = text if text is not None else "Error executing subagent: no result"
        await ctx.emit(SubagentFinishEvent(name=spec.name, result=result))
        logger.info("Subagent %s finished", spec.name)
        return result

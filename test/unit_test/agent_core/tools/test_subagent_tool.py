from __future__ import annotations

from typing import List

import pytest

from deepagent_ai.agent_core.model.base import ModelReply, ToolSpec
from deepagent_ai.agent_core.runtime import AgentEngine, EngineDeps
from deepagent_ai.agent_core.schemas.config import AgentConfig, SubAgentSpec
from deepagent_ai.agent_core.schemas.domain import Message, MessageRole, ToolCall
from deepagent_ai.agent_core.tools.subagent import GENERAL_PURPOSE, SubagentTool


class _ScriptedInvoker:
    def __init__(self, replies: List[ModelReply]) -> None:
        self._replies = list(replies)
        self.seen: List[List[Message]] = []
        self.tool_names: List[List[str]] = []

    async def __call__(self, system_prompt: str, tools: List[ToolSpec], messages: List[Message]) -> ModelReply:
        self.seen.append(list(messages))
        self.tool_names.append([t.name for t in tools])
        return self._replies.pop(0)


def _task_call(description: str, subagent_type: str) -> ToolCall:
    return ToolCall(id="task1", name="task", args={"description": description, "subagent_type": subagent_type})


def test_task_description_lists_subagents() -> None:
    tool = SubagentTool([SubAgentSpec(name="researcher", description="Digs into topics", system_prompt="Research.")])
    assert tool.subagent_names == [GENERAL_PURPOSE, "researcher"]
    assert '"researcher": Digs into topics' in tool.description

    only_custom = SubagentTool(
        [SubAgentSpec(name="a", description="A", system_prompt="A")], include_general_purpose_agent=False
    )
    assert only_custom.subagent_names == ["a"]


@pytest.mark.asyncio
async def test_subagent_runs_isolated_and_shares_files() -> None:
    child = _ScriptedInvoker(
        [
            ModelReply(
                tool_calls=[
                    ToolCall(name="write_todos", args={"todos": [{"id": "c", "content": "child todo"}]}),
                    ToolCall(name="write_file", args={"file_path": "/report.md", "content": "findings"}),
                ]
            ),
            ModelReply(text="Research complete: see /report.md"),
        ]
    )
    parent = _ScriptedInvoker(
        [
            ModelReply(
                tool_calls=[
                    ToolCall(name="write_todos", args={"todos": [{"id": "p", "content": "parent todo"}]}),
                    _task_call("Research the topic", "researcher"),
                ]
            ),
            ModelReply(text="Summary written."),
        ]
    )
    engine = AgentEngine(
        deps=EngineDeps(
            invoker=parent,
            config=AgentConfig(
                subagents=[
                    SubAgentSpec(
                        name="researcher",
                        description="Digs into topics",
                        system_prompt="You research.",
                        invoker=child,
                    )
                ]
            ),
        )
    )

    events = [e async for e in engine.stream_events("write a report")]
    types = [e.type for e in events]

    # only the lifecycle of the child reaches the parent stream
    assert types.count("file-written") == 0
    assert types.count("todos-changed") == 1
    start, finish = types.index("subagent-start"), types.index("subagent-finish")
    assert types[start - 1] == "tool-call"
    assert types[finish + 1] == "tool-result"
    assert events[finish].result == "Research complete: see /report.md"

    task_result = events[finish + 1]
    assert task_result.tool_name == "task"
    assert task_result.result == "Research complete: see /report.md"

    done = events[-1]
    assert done.state.files["/report.md"].text == "findings"
    assert [t.id for t in done.state.todos] == ["p"]

    # the child starts from an empty history holding only its task
    assert [(m.role, m.content) for m in child.seen[0]] == [(MessageRole.user, "Research the topic")]
    assert "task" not in child.tool_names[0]


@pytest.mark.asyncio
async def test_unknown_subagent_type_is_reported_to_model() -> None:
    parent = _ScriptedInvoker(
        [
            ModelReply(tool_calls=[_task_call("anything", "nonexistent")]),
            ModelReply(text="ok"),
        ]
    )
    events = [e async for e in AgentEngine(deps=EngineDeps(invoker=parent)).stream_events("go")]
    result = next(e for e in events if e.type == "tool-result")
    assert result.result.startswith("Error: unknown subagent_type 'nonexistent'")
    assert f"'{GENERAL_PURPOSE}'" in result.result
    assert not any(e.type == "subagent-start" for e in events)


@pytest.mark.asyncio
async def test_general_purpose_subagent_uses_parent_model() -> None:
    shared = _ScriptedInvoker(
        [
            ModelReply(tool_calls=[_task_call("look around", GENERAL_PURPOSE)]),
            ModelReply(text="child answer"),
            ModelReply(text="parent answer"),
        ]
    )
    events = [e async for e in AgentEngine(deps=EngineDeps(invoker=shared)).stream_events("go")]
    assert next(e for e in events if e.type == "tool-result").result == "child answer"
    assert events[-1].text == "parent answer"

from __future__ import annotations

from deepagent_ai.agent_core.runtime.patching import CANCELLED_RESULT, patch_tool_calls, unanswered_calls
from deepagent_ai.agent_core.schemas.domain import Message, MessageRole, ToolCall


def _calls(*ids: str) -> list:
    return [ToolCall(id=i, name="ls") for i in ids]


def test_well_formed_history_is_unchanged() -> None:
    a, b = _calls("a", "b")
    history = [Message.user("hi"), Message.assistant("", [a, b]), Message.tool(a, "ra"), Message.tool(b, "rb")]
    assert patch_tool_calls(history) == history


def test_missing_results_are_synthesized_in_call_order() -> None:
    a, b, c = _calls("a", "b", "c")
    history = [Message.user("hi"), Message.assistant("", [a, b, c]), Message.tool(c, "rc")]
    patched = patch_tool_calls(history)

    tool_msgs = [m for m in patched if m.role == MessageRole.tool]
    assert [m.tool_call_id for m in tool_msgs] == ["a", "b", "c"]
    assert [m.content for m in tool_msgs] == [CANCELLED_RESULT, CANCELLED_RESULT, "rc"]


def test_duplicates_and_orphans_are_dropped() -> None:
    (a,) = _calls("a")
    orphan = ToolCall(id="zzz", name="ls")
    history = [
        Message.tool(orphan, "orphan at start"),
        Message.user("hi"),
        Message.assistant("", [a]),
        Message.tool(a, "first"),
        Message.tool(a, "second"),
        Message.tool(orphan, "not ours"),
        Message.assistant("done"),
    ]
    patched = patch_tool_calls(history)
    assert [(m.role, m.content) for m in patched] == [
        (MessageRole.user, "hi"),
        (MessageRole.assistant, ""),
        (MessageRole.tool, "first"),
        (MessageRole.assistant, "done"),
    ]


def test_unanswered_calls() -> None:
    a, b = _calls("a", "b")
    turn = Message.assistant("", [a, b])
    assert unanswered_calls(turn, [Message.tool(a, "ra")]) == [b]
    assert unanswered_calls(turn, []) == [a, b]

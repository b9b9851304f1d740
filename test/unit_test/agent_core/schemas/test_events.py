from __future__ import annotations

import pytest
from pydantic import ValidationError

from deepagent_ai.agent_core.schemas.domain import AgentState, FileRecord, RunStatus, Todo, TodoStatus
from deepagent_ai.agent_core.schemas.events import (
    EVENT_ADAPTER,
    DoneEvent,
    EventSequence,
    TextEvent,
    TodosChangedEvent,
    ToolCallEvent,
)


def test_sequence_is_strictly_increasing() -> None:
    seq = EventSequence()
    events = [seq.stamp(TextEvent(text=str(i))) for i in range(3)]
    assert [e.seq for e in events] == [1, 2, 3]


def test_event_log_round_trips_through_adapter() -> None:
    seq = EventSequence()
    log = [
        seq.stamp(ToolCallEvent(tool_name="ls", tool_call_id="c1", args={"path": "/"})),
        seq.stamp(TodosChangedEvent(todos=[Todo(id="1", content="plan", status=TodoStatus.completed)])),
        seq.stamp(
            DoneEvent(
                status=RunStatus.completed,
                state=AgentState(files={"/a.txt": FileRecord.from_text("hello")}),
                text="bye",
            )
        ),
    ]
    dumped = [e.model_dump(mode="json") for e in log]
    assert [d["type"] for d in dumped] == ["tool-call", "todos-changed", "done"]

    restored = [EVENT_ADAPTER.validate_python(d) for d in dumped]
    assert [type(e) for e in restored] == [ToolCallEvent, TodosChangedEvent, DoneEvent]
    assert restored[2].state.files["/a.txt"].text == "hello"
    assert [e.seq for e in restored] == [1, 2, 3]


def test_unknown_event_type_is_rejected() -> None:
    with pytest.raises(ValidationError):
        EVENT_ADAPTER.validate_python({"type": "mystery", "seq": 1})

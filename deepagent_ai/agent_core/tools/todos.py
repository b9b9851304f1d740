from __future__ import annotations

"""Planning tool (``write_todos``).

Todos are merged by id: known ids are updated in place, new ids are appended
and ids missing from the call are kept. Todos are never deleted; a finished
or abandoned item moves to ``completed`` or ``cancelled``.

Keeping at most one item ``in_progress`` is a recommendation to the model.
Lists that violate it are accepted and only logged.
"""

import logging
from typing import List

from pydantic import BaseModel, Field

from ..schemas.domain import Todo, TodoStatus
from ..schemas.events import TodosChangedEvent
from .base import ToolContext

logger = logging.getLogger(__name__)


class TodoInput(BaseModel):
    id: str = Field(..., description="Stable unique identifier of the todo")
    content: str = Field(..., description="What needs to be done")
    status: TodoStatus = Field(default=TodoStatus.pending, description="pending, in_progress, completed or cancelled")


class WriteTodosArgs(BaseModel):
    todos: List[TodoInput] = Field(..., description="Todos to create or update, matched by id")


def merge_todos(current: List[Todo], updates: List[TodoInput]) -> List[Todo]:
    merged = [t.model_copy() for t in current]
    index = {t.id: i for i, t in enumerate(merged)}
    for u in updates:
        todo = Todo(id=u.id, content=u.content, status=u.status)
        if u.id in index:
            merged[index[u.id]] = todo
        else:
            index[u.id] = len(merged)
            merged.append(todo)
    return merged


class WriteTodosTool:
    name = "write_todos"
    description = (
        "Create and update the task list for multi-step work. Todos are matched by id; "
        "set status to in_progress, completed or cancelled as work advances."
    )
    args_model = WriteTodosArgs

    async def execute(self, ctx: ToolContext, *, args: WriteTodosArgs) -> str:
        todos = merge_todos(ctx.state.todos, args.todos)
        in_progress = sum(1 for t in todos if t.status == TodoStatus.in_progress)
        if in_progress > 1:
            logger.warning("Todo list has %d items in progress; one at a time is recommended", in_progress)

        ctx.state.todos = todos
        await ctx.emit(TodosChangedEvent(todos=[t.model_copy() for t in todos]))

        summary = "\n".join(f"- [{t.status.value}] {t.id}: {t.content}" for t in todos)
        return f"Updated todo list ({len(todos)} items):\n{summary}"

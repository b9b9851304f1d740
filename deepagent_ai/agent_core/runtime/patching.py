"""History repair before a history is handed to the model.

After a crash or a paused turn, an assistant message may carry tool calls
without matching results. ``patch_tool_calls`` restores the invariant that
every call has exactly one result, placed directly after its assistant
message in call order.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from ..schemas.domain import Message, MessageRole

logger = logging.getLogger(__name__)

CANCELLED_RESULT = "Tool call was cancelled: no result was recorded before the run stopped."


def unanswered_calls(message: Message, results: Sequence[Message]):
    """Return the calls of ``message`` that have no result in ``results``."""
    answered = {r.tool_call_id for r in results if r.role == MessageRole.tool}
    return [c for c in message.tool_calls if c.id not in answered]


def patch_tool_calls(messages: Sequence[Message]) -> List[Message]:
    """
    Return a well-formed copy of ``messages``.

    - Missing results get a synthesized "cancelled" result.
    - Duplicate results for the same call keep the first one.
    - Tool messages that answer no preceding call are dropped.
    """
    out: List[Message] = []
    i, n = 0, len(messages)
    patched = 0
    while i < n:
        m = messages[i]
        if m.role == MessageRole.tool:
            logger.debug("Dropping orphan tool result %s", m.tool_call_id)
            i += 1
            continue

        out.append(m)
        i += 1
        if m.role != MessageRole.assistant or not m.tool_calls:
            continue

        by_id: Dict[str, Message] = {}
        while i < n and messages[i].role == MessageRole.tool:
            r = messages[i]
            if r.tool_call_id is not None:
                by_id.setdefault(r.tool_call_id, r)
            i += 1

        for call in m.tool_calls:
            result = by_id.get(call.id)
            if result is None:
                patched += 1
                result = Message.tool(call, CANCELLED_RESULT)
            out.append(result)

    if patched:
        logger.info("Patched %d dangling tool call(s) in history", patched)
    return out

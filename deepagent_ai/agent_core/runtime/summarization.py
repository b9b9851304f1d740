from __future__ import annotations

"""Conversation summarization.

When the estimated token count of a history exceeds the configured
threshold, everything except the trailing ``keep_messages`` messages is
replaced by one system message holding a model-written summary. Below the
threshold the history is returned unchanged, so re-running is a no-op.
"""

import json
import logging
from typing import List, Optional, Sequence, Tuple

from ..model.base import ModelInvoker, collect_reply
from ..prompts import SUMMARY_REQUEST_PROMPT
from ..schemas.config import SummarizationConfig
from ..schemas.domain import Message, MessageRole
from ..tools.eviction import CHARS_PER_TOKEN, estimate_tokens

logger = logging.getLogger(__name__)

SUMMARY_PREFIX = "[Previous conversation summary]"
SUMMARY_SUFFIX = "[End of summary - recent messages follow]"


def estimate_message_tokens(messages: Sequence[Message]) -> int:
    total = 0
    for m in messages:
        total += estimate_tokens(m.content)
        for call in m.tool_calls:
            total += estimate_tokens(call.name) + estimate_tokens(json.dumps(call.args, default=str))
    return total


def split_for_summary(messages: Sequence[Message], keep_messages: int) -> Tuple[List[Message], List[Message]]:
    """Split into ``(older, kept)``; the cut never separates a tool result from its call."""
    cut = max(0, len(messages) - max(keep_messages, 0))
    while 0 < cut < len(messages) and messages[cut].role == MessageRole.tool:
        cut -= 1
    return list(messages[:cut]), list(messages[cut:])


def render_transcript(messages: Sequence[Message]) -> str:
    lines = []
    for m in messages:
        if m.role == MessageRole.tool:
            lines.append(f"tool ({m.tool_name}): {m.content}")
            continue
        if m.content:
            lines.append(f"{m.role.value}: {m.content}")
        for call in m.tool_calls:
            lines.append(f"{m.role.value} called {call.name}({json.dumps(call.args, default=str)})")
    return "\n".join(lines)


def summary_message(text: str) -> Message:
    return Message.system(f"{SUMMARY_PREFIX}\n{text}\n{SUMMARY_SUFFIX}")


async def _noop(_: str) -> None:
    return None


async def summarize_if_needed(
    messages: List[Message],
    *,
    config: SummarizationConfig,
    invoker: Optional[ModelInvoker],
) -> List[Message]:
    """
    Compact ``messages`` when they exceed ``config.token_threshold``.

    Args:
        messages: The history to compact.
        config: Summarization settings.
        invoker: Model used to write the summary when ``config.invoker`` is unset.

    Returns:
        The original list when no compaction is needed, otherwise
        ``[summary] + kept`` where ``kept`` is the unchanged tail.
    """
    if not config.enabled:
        return messages
    tokens = estimate_message_tokens(messages)
    if tokens <= config.token_threshold:
        return messages

    older, kept = split_for_summary(messages, config.keep_messages)
    if not older:
        return messages

    summarizer = config.invoker or invoker
    if summarizer is None:
        logger.warning("Summarization enabled but no model is configured; history left unchanged")
        return messages

    reply = await collect_reply(
        summarizer(SUMMARY_REQUEST_PROMPT, [], [Message.user(render_transcript(older))]),
        _noop,
    )

    # clamp the summary so the compacted history fits under the threshold
    budget = config.token_threshold - estimate_message_tokens(kept) - estimate_message_tokens([summary_message("")])
    text = reply.text.strip()
    if budget <= 0:
        logger.warning("Recent messages alone exceed the summarization threshold")
        text = ""
    elif estimate_tokens(text) > budget:
        text = text[: budget * CHARS_PER_TOKEN]

    result = [summary_message(text)] + kept
    logger.info(
        "Summarized %d message(s): ~%d -> ~%d tokens",
        len(older),
        tokens,
        estimate_message_tokens(result),
    )
    return result

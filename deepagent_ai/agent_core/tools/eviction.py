from __future__ import annotations

"""Eviction of oversized tool results.

A result whose estimated token count exceeds the configured limit is written
to the active backend and replaced in the conversation by a short reference.
The full content stays recoverable with ``read_file`` (or ``Backend.read_raw``).
"""

import logging
import math
import re
from typing import Optional
from uuid import uuid4

from ..backends.base import Backend

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
EVICTION_DIR = "/large_tool_results"


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def sanitize_tool_call_id(tool_call_id: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_-]", "_", tool_call_id)
    return cleaned or "tool_result"


def eviction_reference(path: str, tokens: int) -> str:
    return (
        f"Tool result too large (~{tokens} tokens). "
        f"The full result was saved to {path}. "
        "Use read_file with offset and limit to inspect it."
    )


async def evict_if_needed(backend: Backend, tool_call_id: str, result: str, token_limit: Optional[int]) -> str:
    """
    Replace ``result`` by a reference when it exceeds ``token_limit``.

    Args:
        backend: Backend receiving the evicted content.
        tool_call_id: Call id used to derive the storage path.
        result: The raw tool result.
        token_limit: Estimated token limit; ``None`` or ``<= 0`` disables eviction.

    Returns:
        ``result`` unchanged, or the reference string naming the storage path.
    """
    if not token_limit or token_limit <= 0:
        return result
    tokens = estimate_tokens(result)
    if tokens <= token_limit:
        return result

    path = f"{EVICTION_DIR}/{sanitize_tool_call_id(tool_call_id)}"
    written = await backend.write(path, result)
    if written.error:
        # write is create-only; a collision gets a fresh suffix
        path = f"{path}_{uuid4().hex[:8]}"
        written = await backend.write(path, result)
    if written.error:
        logger.warning("Could not evict tool result %s: %s", tool_call_id, written.error)
        return result

    logger.info("Evicted tool result %s (~%d tokens) to %s", tool_call_id, tokens, path)
    return eviction_reference(path, tokens)

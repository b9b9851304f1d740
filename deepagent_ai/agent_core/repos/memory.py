from __future__ import annotations

"""In-process checkpoint repository.

Checkpoints are kept as serialized JSON so a loaded checkpoint never shares
mutable objects with the run that saved it.
"""

from typing import Dict, List, Optional

from pydantic import ValidationError

from ..errors import CheckpointError
from ..schemas.domain import Checkpoint
from .interfaces import CheckpointRepository


class InMemoryCheckpointRepository(CheckpointRepository):
    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    async def save(self, checkpoint: Checkpoint) -> None:
        try:
            self._items[checkpoint.thread_id] = checkpoint.model_dump_json()
        except (TypeError, ValueError) as e:
            raise CheckpointError(f"cannot serialize checkpoint for thread '{checkpoint.thread_id}': {e}") from e

    async def load(self, thread_id: str) -> Optional[Checkpoint]:
        raw = self._items.get(thread_id)
        if raw is None:
            return None
        try:
            return Checkpoint.model_validate_json(raw)
        except ValidationError as e:
            raise CheckpointError(f"corrupt checkpoint for thread '{thread_id}': {e}") from e

    async def delete(self, thread_id: str) -> None:
        self._items.pop(thread_id, None)

    def threads(self) -> List[str]:
        return sorted(self._items)

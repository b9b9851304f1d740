from __future__ import annotations

"""JSON-file checkpoint repository.

One file per thread under ``directory``. Writes go to a temporary file that
is then renamed over the target, so a crash never leaves a half-written
checkpoint behind.
"""

import os
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote

from pydantic import ValidationError

from ..errors import CheckpointError
from ..schemas.domain import Checkpoint
from .interfaces import CheckpointRepository


class FileCheckpointRepository(CheckpointRepository):
    def __init__(self, directory: Union[str, Path]) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, thread_id: str) -> Path:
        return self._dir / f"{quote(thread_id, safe='')}.json"

    async def save(self, checkpoint: Checkpoint) -> None:
        target = self._path(checkpoint.thread_id)
        tmp = target.with_suffix(".json.tmp")
        try:
            payload = checkpoint.model_dump_json(indent=2)
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, target)
        except (OSError, TypeError, ValueError) as e:
            raise CheckpointError(f"cannot save checkpoint for thread '{checkpoint.thread_id}': {e}") from e

    async def load(self, thread_id: str) -> Optional[Checkpoint]:
        target = self._path(thread_id)
        if not target.exists():
            return None
        try:
            return Checkpoint.model_validate_json(target.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise CheckpointError(f"cannot load checkpoint for thread '{thread_id}': {e}") from e

    async def delete(self, thread_id: str) -> None:
        self._path(thread_id).unlink(missing_ok=True)

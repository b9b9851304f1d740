from __future__ import annotations

"""Checkpoint repository contract.

The runtime depends on this Protocol instead of a concrete persistence
implementation.

Contract guidelines
-------------------

- All methods are async.
- One record per thread: ``save`` overwrites the previous checkpoint of the
  same ``thread_id``.
- ``save`` followed by ``load`` must round-trip every field losslessly,
  including a pending ``Interrupt``.
- Implementations raise ``CheckpointError`` when a checkpoint cannot be
  serialized or persisted.
"""

from typing import Optional, Protocol

from ..schemas.domain import Checkpoint


class CheckpointRepository(Protocol):
    """Persist the resumable snapshot of a thread."""

    async def save(self, checkpoint: Checkpoint) -> None:
        """
        Create or replace the checkpoint of ``checkpoint.thread_id``.

        Args:
            checkpoint: The checkpoint to persist.
        """
        ...

    async def load(self, thread_id: str) -> Optional[Checkpoint]:
        """
        Fetch the checkpoint of a thread.

        Args:
            thread_id: The thread identifier.

        Returns:
            The stored Checkpoint, or None if the thread has none.
        """
        ...

    async def delete(self, thread_id: str) -> None:
        """Remove the checkpoint of a thread. Unknown threads are a no-op."""
        ...

from __future__ import annotations

"""SQLAlchemy async persistence.

This module provides SQL-backed implementations of the checkpoint repository
(``CheckpointRepository``) and of the durable ``KeyValueStore`` used by
``StoreBackend``.

Usage
-----

Typical wiring (tests or application setup):

- Create an async engine with ``create_engine``.
- Create tables with ``create_all``.
- Create a session factory with ``create_sessionmaker``.
- Build ``SqlCheckpointRepository`` / ``SqlKeyValueStore`` with it.

Transaction model
-----------------

Each method opens an ``AsyncSession``, performs its operation, and commits,
so every saved checkpoint or store item is durable when the method returns.
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..backends.store import KeyValueStore, StoreItem
from ..errors import CheckpointError
from ..schemas.domain import Checkpoint
from .interfaces import CheckpointRepository
from .models import Base, CheckpointRow, StoreItemRow


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    The helper normalizes Postgres URLs to ensure the async driver is used.
    For example, it rewrites ``postgresql://`` and other variants to
    ``postgresql+asyncpg://``.
    """
    url = re.sub(r"^postgres(?:ql)?(?:\+[a-z0-9_]+)?://", "postgresql+asyncpg://", db_url, count=1)
    if url.startswith("postgresql+asyncpg://"):
        return create_async_engine(url, pool_pre_ping=True)
    return create_async_engine(url)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SqlCheckpointRepository(CheckpointRepository):
    """SQL implementation of ``CheckpointRepository``.

    The checkpoint JSON in ``payload`` is the source of truth; it round-trips
    timezone-aware timestamps on databases that do not store offsets.
    """

    session_factory: async_sessionmaker[AsyncSession]

    async def save(self, checkpoint: Checkpoint) -> None:
        """
        Insert or replace the thread's checkpoint.

        Args:
            checkpoint: The checkpoint domain object.

        Raises:
            CheckpointError: If serialization or the database write fails.
        """
        try:
            payload = checkpoint.model_dump_json()
        except (TypeError, ValueError) as e:
            raise CheckpointError(f"cannot serialize checkpoint for thread '{checkpoint.thread_id}': {e}") from e

        try:
            async with self.session_factory() as s:
                row = await s.get(CheckpointRow, checkpoint.thread_id)
                if row is None:
                    s.add(
                        CheckpointRow(
                            thread_id=checkpoint.thread_id,
                            step=checkpoint.step,
                            payload=payload,
                            created_at=checkpoint.created_at,
                            updated_at=checkpoint.updated_at,
                        )
                    )
                else:
                    row.step = checkpoint.step
                    row.payload = payload
                    row.updated_at = checkpoint.updated_at
                await s.commit()
        except SQLAlchemyError as e:
            raise CheckpointError(f"cannot save checkpoint for thread '{checkpoint.thread_id}': {e}") from e

    async def load(self, thread_id: str) -> Optional[Checkpoint]:
        """
        Fetch the checkpoint of a thread.

        Args:
            thread_id: The thread identifier.

        Returns:
            The Checkpoint object or None.
        """
        async with self.session_factory() as s:
            row = await s.get(CheckpointRow, thread_id)
            if row is None:
                return None
            try:
                return Checkpoint.model_validate_json(row.payload)
            except ValidationError as e:
                raise CheckpointError(f"corrupt checkpoint for thread '{thread_id}': {e}") from e

    async def delete(self, thread_id: str) -> None:
        async with self.session_factory() as s:
            await s.execute(delete(CheckpointRow).where(CheckpointRow.thread_id == thread_id))
            await s.commit()


def _join_namespace(namespace: Sequence[str]) -> str:
    return ":".join(namespace)


@dataclass(frozen=True)
class SqlKeyValueStore(KeyValueStore):
    """Durable ``KeyValueStore`` keeping JSON values in ``da_store_items``."""

    session_factory: async_sessionmaker[AsyncSession]

    async def get(self, namespace: Sequence[str], key: str) -> Optional[Dict[str, Any]]:
        async with self.session_factory() as s:
            row = await s.get(StoreItemRow, (_join_namespace(namespace), key))
            if row is None:
                return None
            return json.loads(row.value)

    async def put(self, namespace: Sequence[str], key: str, value: Dict[str, Any]) -> None:
        ns = _join_namespace(namespace)
        async with self.session_factory() as s:
            row = await s.get(StoreItemRow, (ns, key))
            if row is None:
                s.add(StoreItemRow(namespace=ns, key=key, value=json.dumps(value), updated_at=_utc_now()))
            else:
                row.value = json.dumps(value)
                row.updated_at = _utc_now()
            await s.commit()

    async def delete(self, namespace: Sequence[str], key: str) -> None:
        async with self.session_factory() as s:
            await s.execute(
                delete(StoreItemRow).where(
                    StoreItemRow.namespace == _join_namespace(namespace),
                    StoreItemRow.key == key,
                )
            )
            await s.commit()

    async def list(self, namespace: Sequence[str]) -> List[StoreItem]:
        async with self.session_factory() as s:
            stmt = (
                select(StoreItemRow)
                .where(StoreItemRow.namespace == _join_namespace(namespace))
                .order_by(StoreItemRow.key)
            )
            rows = (await s.execute(stmt)).scalars().all()
            return [StoreItem(key=r.key, value=json.loads(r.value)) for r in rows]

from __future__ import annotations

"""SQLAlchemy ORM models for deep agent persistence.

These ORM models define the SQL schema used by the SQL implementations in
``deepagent_ai.agent_core.repos.sql``.

Design
------

- Checkpoints hold one row per thread. The full checkpoint is stored as its
  JSON serialization in ``payload``; ``step`` and the timestamps are copied
  into columns for inspection only.
- Store items back the durable ``KeyValueStore`` used by ``StoreBackend``;
  the namespace tuple is joined with ``:``.

Table names are prefixed with ``da_`` to avoid collisions in shared databases.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class CheckpointRow(Base):
    """Row model for ``da_checkpoints``."""

    __tablename__ = "da_checkpoints"

    thread_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    step: Mapped[int] = mapped_column(Integer, default=0)

    payload: Mapped[str] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


class StoreItemRow(Base):
    """Row model for ``da_store_items``."""

    __tablename__ = "da_store_items"

    namespace: Mapped[str] = mapped_column(String(512), primary_key=True)
    key: Mapped[str] = mapped_column(String(1024), primary_key=True)

    value: Mapped[str] = mapped_column(Text)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

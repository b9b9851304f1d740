"""Checkpoint persistence: repository contract and implementations."""

from .file import FileCheckpointRepository
from .interfaces import CheckpointRepository
from .memory import InMemoryCheckpointRepository
from .sql import (
    SqlCheckpointRepository,
    SqlKeyValueStore,
    create_all,
    create_engine,
    create_sessionmaker,
)

__all__ = [
    "CheckpointRepository",
    "FileCheckpointRepository",
    "InMemoryCheckpointRepository",
    "SqlCheckpointRepository",
    "SqlKeyValueStore",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]

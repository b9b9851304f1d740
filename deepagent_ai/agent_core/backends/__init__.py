"""Storage backends implementing the file-like ``Backend`` contract.

- ``StateBackend``: ephemeral, lives in ``AgentState.files``.
- ``FilesystemBackend``: real files confined to a root directory.
- ``StoreBackend``: records in a namespaced ``KeyValueStore``.
- ``CompositeBackend``: routes paths to other backends by prefix.
"""

from .base import Backend, BackendFactory, EditResult, FileInfo, GrepMatch, WriteResult
from .composite import CompositeBackend
from .factory import BackendKind, build_backend, resolve_backend
from .filesystem import FilesystemBackend
from .state import StateBackend
from .store import InMemoryStore, KeyValueStore, StoreBackend, StoreItem

__all__ = [
    "Backend",
    "BackendFactory",
    "BackendKind",
    "CompositeBackend",
    "EditResult",
    "FileInfo",
    "FilesystemBackend",
    "GrepMatch",
    "InMemoryStore",
    "KeyValueStore",
    "StateBackend",
    "StoreBackend",
    "StoreItem",
    "WriteResult",
    "build_backend",
    "resolve_backend",
]

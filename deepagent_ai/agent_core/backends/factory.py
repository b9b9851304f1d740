from __future__ import annotations

"""Construction-time backend selection.

Callers either pass a ready ``Backend`` instance, a factory taking the run's
``AgentState`` (needed for ``StateBackend``, whose lifetime is the run), or
name a variant for ``build_backend``.
"""

from typing import Any, Literal, Mapping, Optional, Union

from ..schemas.domain import AgentState
from .base import Backend, BackendFactory
from .composite import CompositeBackend
from .filesystem import FilesystemBackend
from .state import StateBackend
from .store import InMemoryStore, KeyValueStore, StoreBackend

BackendKind = Literal["state", "filesystem", "store", "composite"]

BackendLike = Union[Backend, BackendFactory]


def build_backend(
    kind: BackendKind,
    *,
    state: Optional[AgentState] = None,
    root_dir: Optional[str] = None,
    max_file_size_mb: int = 10,
    store: Optional[KeyValueStore] = None,
    namespace: str = "default",
    default: Optional[Backend] = None,
    routes: Optional[Mapping[str, Backend]] = None,
) -> Backend:
    """
    Build one of the backend variants by name.

    Args:
        kind: ``state``, ``filesystem``, ``store`` or ``composite``.
        state: Run state for the ``state`` variant (a fresh one is created when omitted).
        root_dir: Root directory for the ``filesystem`` variant.
        max_file_size_mb: grep size limit for the ``filesystem`` variant.
        store: Key-value store for the ``store`` variant (in-memory when omitted).
        namespace: Namespace for the ``store`` variant.
        default: Default delegate for the ``composite`` variant.
        routes: Prefix routes for the ``composite`` variant.

    Returns:
        The constructed backend.

    Raises:
        ValueError: For an unknown kind or missing required arguments.
    """
    if kind == "state":
        return StateBackend(state if state is not None else AgentState())
    if kind == "filesystem":
        if not root_dir:
            raise ValueError("filesystem backend requires root_dir")
        return FilesystemBackend(root_dir, max_file_size_mb=max_file_size_mb)
    if kind == "store":
        return StoreBackend(store if store is not None else InMemoryStore(), namespace=namespace)
    if kind == "composite":
        if default is None:
            default = StateBackend(state if state is not None else AgentState())
        return CompositeBackend(default, routes or {})
    raise ValueError(f"unknown backend kind: {kind}")


def resolve_backend(backend: Optional[Any], state: AgentState) -> Backend:
    """Return the backend for one run: an instance as-is, a factory applied to ``state``, or ``StateBackend``."""
    if backend is None:
        return StateBackend(state)
    if _is_backend(backend):
        return backend
    if callable(backend):
        return backend(state)
    raise TypeError(f"expected a Backend or a backend factory, got {type(backend).__name__}")


def _is_backend(obj: Any) -> bool:
    return all(
        callable(getattr(obj, name, None)) for name in ("list", "read", "read_raw", "write", "edit", "grep", "glob")
    )

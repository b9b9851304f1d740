from __future__ import annotations

from pathlib import Path

import pytest

from deepagent_ai.agent_core.backends import (
    CompositeBackend,
    FilesystemBackend,
    StateBackend,
    StoreBackend,
    build_backend,
    resolve_backend,
)
from deepagent_ai.agent_core.schemas.domain import AgentState


def test_build_backend_variants(tmp_path: Path) -> None:
    state = AgentState()
    assert isinstance(build_backend("state", state=state), StateBackend)
    assert isinstance(build_backend("filesystem", root_dir=str(tmp_path)), FilesystemBackend)
    assert isinstance(build_backend("store"), StoreBackend)

    composite = build_backend("composite", state=state, routes={"/mem": build_backend("store")})
    assert isinstance(composite, CompositeBackend)
    assert list(composite.routes) == ["/mem/"]


def test_build_backend_errors() -> None:
    with pytest.raises(ValueError):
        build_backend("filesystem")
    with pytest.raises(ValueError):
        build_backend("bogus")  # type: ignore[arg-type]


def test_resolve_backend() -> None:
    state = AgentState()

    default = resolve_backend(None, state)
    assert isinstance(default, StateBackend) and default.state is state

    instance = StateBackend(AgentState())
    assert resolve_backend(instance, state) is instance

    seen = []

    def factory(s: AgentState) -> StateBackend:
        seen.append(s)
        return StateBackend(s)

    built = resolve_backend(factory, state)
    assert isinstance(built, StateBackend) and seen == [state]

    with pytest.raises(TypeError):
        resolve_backend(42, state)

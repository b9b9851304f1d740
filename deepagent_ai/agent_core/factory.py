from __future__ import annotations

"""Convenience factories for wiring a deep agent.

``create_deep_agent`` turns a model, user tools and optional persistence into
a ready ``DeepAgent``. Anything not passed explicitly falls back to the
environment-backed ``Settings``.

The intent is to keep application wiring and tests concise, while still
allowing advanced deployments to build ``EngineDeps`` and ``AgentEngine``
themselves.
"""

from typing import Any, Optional, Sequence

from pydantic_ai.models import Model

from ..core.config import Settings
from ..core.config import settings as default_settings
from .backends.filesystem import FilesystemBackend
from .model.pydantic_ai_adapter import PydanticAIInvoker
from .repos.interfaces import CheckpointRepository
from .repos.sql import SqlCheckpointRepository, create_all, create_engine, create_sessionmaker
from .runtime import AgentEngine, EngineDeps
from .schemas.config import AgentConfig, InterruptOnConfig, SubAgentSpec, SummarizationConfig
from .service import DeepAgent
from .tools.base import Tool


def resolve_invoker(model: Any, settings: Settings) -> Any:
    """
    Turn the ``model`` argument into a ``ModelInvoker``.

    Args:
        model: A pydantic-ai ``Model``, a model name such as ``openai:gpt-4o``,
            a ready invoker callable, or None to use ``settings.model``.
        settings: Fallback configuration.

    Returns:
        The invoker.

    Raises:
        ValueError: If no model is given and none is configured.
    """
    if model is None:
        model = settings.model
    if model is None:
        raise ValueError("no model given and DEEPAGENT_MODEL is not set")
    if isinstance(model, (str, Model)):
        return PydanticAIInvoker(model)
    if callable(model):
        return model
    raise TypeError(f"unsupported model: {type(model).__name__}")


def build_engine(deps: EngineDeps) -> AgentEngine:
    """Construct an ``AgentEngine`` from its dependencies."""
    return AgentEngine(deps=deps)


def create_deep_agent(
    model: Any = None,
    *,
    tools: Sequence[Tool] = (),
    system_prompt: Optional[str] = None,
    subagents: Sequence[SubAgentSpec] = (),
    include_general_purpose_agent: bool = True,
    backend: Any = None,
    checkpointer: Optional[CheckpointRepository] = None,
    interrupt_on: Optional[InterruptOnConfig] = None,
    max_steps: Optional[int] = None,
    tool_result_eviction_limit: Optional[int] = None,
    evict_large_tool_results: Optional[bool] = None,
    summarization: Optional[SummarizationConfig] = None,
    settings: Optional[Settings] = None,
) -> DeepAgent:
    """
    Build a ``DeepAgent``.

    Args:
        model: Model name, pydantic-ai ``Model`` or invoker callable.
        tools: User tools registered next to the built-in ones.
        system_prompt: Custom instructions placed before the built-in sections.
        subagents: Delegates reachable through the ``task`` tool.
        include_general_purpose_agent: Also offer the ``general-purpose`` subagent.
        backend: A ``Backend``, a factory ``(AgentState) -> Backend``, or None.
            With None, ``settings.filesystem_root`` selects the on-disk backend
            and otherwise files live in the run state.
        checkpointer: Checkpoint repository enabling ``thread_id`` persistence.
        interrupt_on: Approval gates per tool name.
        max_steps: Step ceiling per run.
        tool_result_eviction_limit: Token limit for evicting large tool results.
        evict_large_tool_results: Evict with the default limit when no explicit limit is given.
        summarization: History compaction settings.
        settings: Configuration fallback (defaults to the module-level settings).

    Returns:
        The configured agent.
    """
    cfg_source = settings if settings is not None else default_settings
    config = AgentConfig.from_settings(
        cfg_source,
        system_prompt=system_prompt,
        max_steps=max_steps,
        tool_result_eviction_limit=tool_result_eviction_limit,
        evict_large_tool_results=evict_large_tool_results,
        summarization=summarization,
        interrupt_on=dict(interrupt_on) if interrupt_on is not None else None,
        subagents=list(subagents),
        include_general_purpose_agent=include_general_purpose_agent,
    )

    if backend is None and cfg_source.filesystem_root:
        backend = FilesystemBackend(cfg_source.filesystem_root)

    deps = EngineDeps(
        invoker=resolve_invoker(model, cfg_source),
        config=config,
        tools=list(tools),
        checkpoints=checkpointer,
        backend=backend,
    )
    return DeepAgent(build_engine(deps))


async def create_sql_checkpointer(
    db_url: Optional[str] = None,
    *,
    settings: Optional[Settings] = None,
) -> SqlCheckpointRepository:
    """
    Build a SQL checkpoint repository and make sure its tables exist.

    Args:
        db_url: Async database URL; defaults to ``settings.checkpoint_db_url``.
        settings: Configuration fallback.

    Raises:
        ValueError: If no URL is given and none is configured.
    """
    url: Optional[str] = db_url or (settings if settings is not None else default_settings).checkpoint_db_url
    if not url:
        raise ValueError("no database URL given and DEEPAGENT_CHECKPOINT_DB_URL is not set")
    engine = create_engine(url)
    await create_all(engine)
    return SqlCheckpointRepository(create_sessionmaker(engine))

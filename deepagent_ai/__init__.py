"""Deep agent framework.

This package contains an agent harness that turns a tool-calling model into a
long-running "deep" agent: it plans with a todo list, works in a virtual file
tree, delegates to subagents, and can pause for human approval and resume
from a checkpoint.

Core subpackages
----------------

- ``deepagent_ai.agent_core``:

  - Shared state and event schemas.
  - Storage backends and the built-in file/todo tools.
  - A LangGraph-based execution engine with pause/resume.
  - Checkpoint repositories (in-memory, JSON files, SQL).

- ``deepagent_ai.core``:

  - Environment-backed settings and logging configuration.

Typical workflow
----------------

1. ``create_deep_agent(model, tools=..., checkpointer=...)``.
2. ``await agent.generate(prompt, thread_id=...)`` or iterate
   ``agent.stream_events(...)``.
3. If a gated tool paused the run, ``await agent.resume(thread_id, decision)``.
"""

from .agent_core import DeepAgent, RunResult, create_deep_agent

__all__ = ["DeepAgent", "RunResult", "create_deep_agent"]

"""Runtime engine for deep agent runs.

- ``AgentEngine`` executes runs as a LangGraph state machine and streams
  their events.
- ``EngineDeps`` bundles the collaborators an engine is built from.
"""

from .engine import AgentEngine
from .models import EngineDeps, RunContext

__all__ = ["AgentEngine", "EngineDeps", "RunContext"]

"""Exception hierarchy for the agent core.

Tool-domain failures (missing files, ambiguous edits, bad patterns) are not
represented here: backends and tools return them as strings so the model can
self-correct. These exceptions cover the seams where control flow changes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schemas.domain import Interrupt


class DeepAgentError(Exception):
    """Base class for all deepagent_ai errors."""


class PathSecurityError(DeepAgentError):
    """A path escapes the backend root, uses traversal segments, or is a symlink."""


class StoreValueError(DeepAgentError):
    """A key-value store item does not hold a valid file record."""


class ModelInvocationError(DeepAgentError):
    """The external model-invocation collaborator failed."""


class CheckpointError(DeepAgentError):
    """A checkpoint could not be serialized or persisted."""


class RunCancelled(DeepAgentError):
    """The run's cancellation signal was observed at a suspension point."""


class ApprovalPending(DeepAgentError):
    """Raised by the approval gate when a gated call must wait for a decision.

    The orchestration loop catches it, persists the interrupt and pauses the run.
    """

    def __init__(self, interrupt: "Interrupt") -> None:
        super().__init__(f"approval pending for tool '{interrupt.tool_name}'")
        self.interrupt = interrupt


class RunFailed(DeepAgentError):
    """A run ended with an ``error`` event; raised by the non-streaming API."""

    def __init__(self, message: str, error_type: str = "Exception") -> None:
        super().__init__(message)
        self.error_type = error_type

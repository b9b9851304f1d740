from __future__ import annotations

"""Approval gating decisions for tool calls.

``ApprovalPolicy`` answers one question for the approval middleware: does this
tool call need a decision before it runs? Gating is declared per tool name in
an ``interrupt_on`` mapping:

- ``True``: always gated.
- ``False`` or absent: never gated.
- ``ApprovalRule(should_approve)``: gated when the predicate returns true for
  the call arguments. The predicate may be async.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional

from ..schemas.config import ApprovalRule, InterruptOnConfig


@dataclass(frozen=True)
class PolicyDecision:
    """
    Result of evaluating a tool call against the approval policy.

    Attributes:
        require_approval: Whether the call must be approved before execution.
        reason: Short description of the rule that matched, if any.
    """

    require_approval: bool
    reason: Optional[str] = None


class ApprovalPolicy:
    def __init__(self, interrupt_on: Optional[InterruptOnConfig] = None) -> None:
        self._rules: Dict[str, Any] = dict(interrupt_on or {})

    @property
    def gated_tools(self) -> FrozenSet[str]:
        """Names of tools that are always or conditionally gated."""
        return frozenset(name for name, rule in self._rules.items() if rule is True or isinstance(rule, ApprovalRule))

    async def evaluate(self, tool_name: str, args: Dict[str, Any]) -> PolicyDecision:
        rule = self._rules.get(tool_name)
        if rule is None or rule is False:
            return PolicyDecision(require_approval=False)
        if rule is True:
            return PolicyDecision(require_approval=True, reason="always")
        if isinstance(rule, ApprovalRule):
            verdict = rule.should_approve(dict(args))
            if inspect.isawaitable(verdict):
                verdict = await verdict
            return PolicyDecision(require_approval=bool(verdict), reason="conditional" if verdict else None)
        raise TypeError(f"invalid interrupt_on rule for tool '{tool_name}': {rule!r}")

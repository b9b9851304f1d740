from __future__ import annotations

"""Tool middleware chain.

Each middleware has the shape ``async (ctx, call, call_next) -> str`` and is
testable on its own. The engine installs them in this order (outermost first):

1. ``ApprovalMiddleware``: gates calls declared in ``interrupt_on``.
2. ``ErrorCaptureMiddleware``: converts tool exceptions into result strings.
3. ``EvictionMiddleware``: moves oversized results into the backend.
"""

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from pydantic import ValidationError

from ..errors import ApprovalPending, RunCancelled
from ..policy.approval import ApprovalPolicy
from ..schemas.domain import Interrupt, ToolCall
from ..schemas.events import ApprovalRequestedEvent, ApprovalResponseEvent
from .base import ToolContext
from .eviction import evict_if_needed

logger = logging.getLogger(__name__)

ToolHandler = Callable[[ToolContext, ToolCall], Awaitable[str]]
ToolMiddleware = Callable[[ToolContext, ToolCall, ToolHandler], Awaitable[str]]
ApprovalCallback = Callable[[Interrupt], Union[bool, Awaitable[bool]]]

DENIED_RESULT = "Tool execution denied by user"


class ApprovalMiddleware:
    """
    Gate tool calls on an approve/deny decision.

    - With ``on_approval_request``: emit ``approval-requested``, await the
      decision, emit ``approval-response``. A denied call never reaches the tool.
    - Without a callback and with ``can_pause``: emit ``approval-requested`` and
      raise ``ApprovalPending`` so the run is checkpointed and paused.
    - Without a callback and without ``can_pause``: deny (fail closed).
    - A failing approval rule or callback counts as a denial.
    """

    def __init__(
        self,
        policy: ApprovalPolicy,
        *,
        on_approval_request: Optional[ApprovalCallback] = None,
        can_pause: bool = False,
    ) -> None:
        self._policy = policy
        self._callback = on_approval_request
        self._can_pause = can_pause

    async def __call__(self, ctx: ToolContext, call: ToolCall, call_next: ToolHandler) -> str:
        rule_failed = False
        try:
            decision = await self._policy.evaluate(call.name, call.args)
        except RunCancelled:
            raise
        except Exception:
            logger.warning("Approval rule for %s failed; denying the call", call.name, exc_info=True)
            rule_failed = True
        if not rule_failed and not decision.require_approval:
            return await call_next(ctx, call)

        interrupt = Interrupt(tool_call_id=call.id, tool_name=call.name, args=dict(call.args))
        await ctx.emit(
            ApprovalRequestedEvent(
                approval_id=interrupt.approval_id,
                tool_call_id=call.id,
                tool_name=call.name,
                args=dict(call.args),
            )
        )

        if rule_failed:
            approved = False
        elif self._callback is None:
            if self._can_pause:
                logger.info("Pausing for approval of %s (%s)", call.name, interrupt.approval_id)
                raise ApprovalPending(interrupt)
            approved = False
        else:
            approved = await self._ask(interrupt)

        await ctx.emit(ApprovalResponseEvent(approval_id=interrupt.approval_id, approved=approved))
        if not approved:
            logger.info("Tool call %s denied", call.name)
            return DENIED_RESULT
        return await call_next(ctx, call)

    async def _ask(self, interrupt: Interrupt) -> bool:
        try:
            verdict = self._callback(interrupt)
            if inspect.isawaitable(verdict):
                verdict = await verdict
        except RunCancelled:
            raise
        except Exception:
            logger.warning("Approval callback failed for %s; denying the call", interrupt.tool_name, exc_info=True)
            return False
        return bool(verdict)


class ErrorCaptureMiddleware:
    """Keep the loop alive: tool exceptions become tool-result strings."""

    async def __call__(self, ctx: ToolContext, call: ToolCall, call_next: ToolHandler) -> str:
        try:
            return await call_next(ctx, call)
        except (ApprovalPending, RunCancelled):
            raise
        except ValidationError as e:
            logger.debug("Invalid arguments for %s: %s", call.name, e)
            return f"Error: invalid arguments for tool '{call.name}': {e}"
        except Exception as e:
            logger.warning("Tool %s failed", call.name, exc_info=True)
            return f"Error executing tool '{call.name}': {e}"


class EvictionMiddleware:
    def __init__(self, token_limit: Optional[int]) -> None:
        self._token_limit = token_limit

    async def __call__(self, ctx: ToolContext, call: ToolCall, call_next: ToolHandler) -> str:
        result = await call_next(ctx, call)
        return await evict_if_needed(ctx.backend, call.id, result, self._token_limit)

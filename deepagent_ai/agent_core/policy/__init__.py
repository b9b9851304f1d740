"""Approval policy for gated tool calls."""

from .approval import ApprovalPolicy, PolicyDecision

__all__ = ["ApprovalPolicy", "PolicyDecision"]

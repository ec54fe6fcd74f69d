"""
Rule remediation

Resolves a failing scorecard rule to the action that fixes it (or tells a
human how to fix it).

Core components:
- base: RemediationAction ABC, ActionContext, ActionResult
- actions: AutomatedAction, ManualAction, BranchProtectionAction
- registry: title-keyed RemediationActionRegistry and the NO_ACTION sentinel

Usage:
    from scorecard_remediation.remediation import build_default_registry

    registry = build_default_registry(github_client)
    action = registry.lookup("Branch Protection")
    if action:
        result = await action.execute(rule, context)
"""

from .base import ActionContext, ActionResult, RemediationAction
from .actions import AutomatedAction, BranchProtectionAction, ManualAction
from .registry import NO_ACTION, RemediationActionRegistry, build_default_registry

__all__ = [
    "ActionContext",
    "ActionResult",
    "RemediationAction",
    "AutomatedAction",
    "BranchProtectionAction",
    "ManualAction",
    "NO_ACTION",
    "RemediationActionRegistry",
    "build_default_registry",
]

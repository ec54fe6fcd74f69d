# scorecard_remediation/remediation/actions.py
"""
Remediation actions

Two kinds exist:
- Automated: performs a side effect against an external system. Any failure
  surfaces as ActionError.
- Manual: only hands back a reference (usually a URL) for a human to follow.
  Never fails.
"""
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from scorecard_remediation.clients.github_client import GitHubClient, BRANCH_PROTECTION_POLICY
from scorecard_remediation.core.config import settings
from scorecard_remediation.core.exceptions import ActionError
from scorecard_remediation.core.logging import logger
from scorecard_remediation.remediation.base import ActionContext, ActionResult, RemediationAction
from scorecard_remediation.schemas.remediation import ActionKind, RuleRef


ActionHandler = Callable[[RuleRef, ActionContext], Awaitable[Optional[Dict[str, Any]]]]


class AutomatedAction(RemediationAction):
    kind = ActionKind.AUTOMATED

    def __init__(self, name: str, handler: ActionHandler, description: str = ""):
        self.name = name
        self.description = description
        self._handler = handler

    async def perform(self, rule: RuleRef, context: ActionContext) -> Optional[Dict[str, Any]]:
        return await self._handler(rule, context)

    async def execute(self, rule: RuleRef, context: ActionContext) -> ActionResult:
        try:
            payload = await self.perform(rule, context)
        except ActionError:
            raise
        except Exception as e:
            logger.error(
                f"Automated action '{self.name}' failed: {e}",
                extra={"entity_tag": context.entity_tag, "scorecard_tag": context.scorecard_tag},
            )
            raise ActionError(e, action=self.name) from e

        return ActionResult(
            kind=self.kind,
            action=self.name,
            message=f"{self.name} applied",
            payload=payload or {},
        )


class ManualAction(RemediationAction):
    kind = ActionKind.MANUAL

    def __init__(self, name: str, reference: str, instructions: str = ""):
        self.name = name
        self.reference = reference
        self.instructions = instructions or "Please follow the steps given in the page below to pass this rule."
        self.description = name

    async def execute(self, rule: RuleRef, context: ActionContext) -> ActionResult:
        return ActionResult(
            kind=self.kind,
            action=self.name,
            reference=self.reference,
            message=self.instructions,
        )


class BranchProtectionAction(AutomatedAction):
    """Applies the fixed branch-protection policy to the entity's repository"""

    def __init__(
        self,
        github: GitHubClient,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        branch: Optional[str] = None,
        policy: Optional[Dict[str, Any]] = None,
    ):
        super().__init__("Branch Protection", description="applying branch protection policy")
        self.github = github
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.policy = policy or BRANCH_PROTECTION_POLICY

    def resolve_target(self, context: ActionContext) -> Tuple[str, str, str]:
        """
        Work out owner/repo/branch.

        Precedence: per-call context, then constructor values, then an entity
        tag of the form `owner/repo`.
        """
        owner = context.extra.get("owner") or self.owner
        repo = context.extra.get("repo") or self.repo
        branch = context.extra.get("branch") or self.branch or settings.GITHUB_BRANCH

        if not (owner and repo) and context.entity_tag.count("/") == 1 and ":" not in context.entity_tag:
            owner, repo = context.entity_tag.split("/")

        if not (owner and repo):
            raise ValueError(f"No repository configured for entity {context.entity_tag}")
        return owner, repo, branch

    async def perform(self, rule: RuleRef, context: ActionContext) -> Dict[str, Any]:
        owner, repo, branch = self.resolve_target(context)
        return await self.github.apply_branch_protection(owner, repo, branch, self.policy)

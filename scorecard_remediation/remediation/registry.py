# scorecard_remediation/remediation/registry.py
from typing import Dict, Optional, Tuple, Union

from scorecard_remediation.clients.github_client import GitHubClient
from scorecard_remediation.core.config import Settings, settings as default_settings
from scorecard_remediation.core.logging import logger
from scorecard_remediation.remediation.actions import BranchProtectionAction, ManualAction
from scorecard_remediation.remediation.base import RemediationAction


class _NoActionDefined:
    """Sentinel: no remediation is registered for the rule"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_ACTION"


NO_ACTION = _NoActionDefined()

RegistryKey = Tuple[Optional[str], str]


def normalize_title(title: Optional[str]) -> str:
    return (title or "").strip().casefold()


class RemediationActionRegistry:
    """
    Maps rule titles to remediation actions.

    Titles are matched trimmed and case-insensitively. An action may be
    scoped to one scorecard; lookups try the scoped key before the global
    one, so a scorecard can override a shared action for the same title.
    """

    def __init__(self):
        self._actions: Dict[RegistryKey, RemediationAction] = {}

    def register(
        self,
        rule_title: str,
        action: RemediationAction,
        scorecard_tag: Optional[str] = None,
    ) -> None:
        title = normalize_title(rule_title)
        if not title:
            raise ValueError("rule_title must be a non-empty string")
        key = (scorecard_tag, title)
        if key in self._actions:
            logger.warning(f"Replacing remediation action for rule '{rule_title}'")
        self._actions[key] = action
        logger.info(f"Registered remediation action: {action.name} ({action.kind.value})")

    def lookup(
        self,
        rule_title: Optional[str],
        scorecard_tag: Optional[str] = None,
    ) -> Union[RemediationAction, _NoActionDefined]:
        title = normalize_title(rule_title)
        if title:
            if scorecard_tag is not None:
                scoped = self._actions.get((scorecard_tag, title))
                if scoped is not None:
                    return scoped
            action = self._actions.get((None, title))
            if action is not None:
                return action

        logger.warning(
            f"No remediation action registered for rule '{rule_title}'",
            extra={"scorecard_tag": scorecard_tag},
        )
        return NO_ACTION

    def __len__(self) -> int:
        return len(self._actions)


def build_default_registry(
    github: GitHubClient,
    config: Optional[Settings] = None,
) -> RemediationActionRegistry:
    """Registry with the built-in branch-protection and .fmk actions"""
    config = config or default_settings
    registry = RemediationActionRegistry()

    registry.register(
        "Branch Protection",
        BranchProtectionAction(
            github,
            owner=config.GITHUB_OWNER,
            repo=config.GITHUB_REPO,
            branch=config.GITHUB_BRANCH,
        ),
    )
    registry.register(
        "Add .fmk file",
        ManualAction("Add .fmk file", reference=config.MANUAL_REMEDIATION_URL),
    )
    return registry

# scorecard_remediation/remediation/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from scorecard_remediation.schemas.remediation import ActionKind, RuleRef


@dataclass
class ActionContext:
    """What an action knows about the run it belongs to"""
    entity_tag: str
    scorecard_tag: str
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionResult:
    kind: ActionKind
    action: str
    reference: Optional[str] = None
    message: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)


class RemediationAction(ABC):
    """Abstract base class for all remediation actions"""

    name: str
    kind: ActionKind
    description: str = ""

    @abstractmethod
    async def execute(self, rule: RuleRef, context: ActionContext) -> ActionResult:
        """Perform (or describe) the remediation for `rule`"""
        pass

    @property
    def progress_label(self) -> str:
        return self.description or self.name

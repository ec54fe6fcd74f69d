# scorecard_remediation/schemas/remediation.py
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from scorecard_remediation.schemas.scorecard import NextStepGroup


class RunStatus(str, Enum):
    IDLE = "Idle"
    TRIGGERING = "Triggering"
    POLLING = "Polling"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"

    @property
    def is_active(self) -> bool:
        return self in (RunStatus.TRIGGERING, RunStatus.POLLING)


@dataclass
class RunState:
    entity_tag: str
    scorecard_tag: str
    status: RunStatus = RunStatus.IDLE
    attempt: int = 0
    last_error: Optional[Exception] = None


@dataclass
class ConvergenceResult:
    state: RunState
    next_steps: List[NextStepGroup] = field(default_factory=list)

    @property
    def status(self) -> RunStatus:
        return self.state.status


class ActionKind(str, Enum):
    AUTOMATED = "automated"
    MANUAL = "manual"
    NONE = "none"


class RuleRef(BaseModel):
    """The rule a caller asks to remediate"""
    title: str
    identifier: Optional[str] = None


class RemediationOutcome(BaseModel):
    status: RunStatus
    final_next_steps: List[NextStepGroup] = []
    action_kind: ActionKind = ActionKind.NONE
    action_name: Optional[str] = None
    reference: Optional[str] = None
    notices: List[str] = []
    error: Optional[str] = None

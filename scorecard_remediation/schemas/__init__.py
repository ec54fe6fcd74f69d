# scorecard_remediation/schemas/__init__.py
from scorecard_remediation.schemas.scorecard import (
    ComplianceView,
    EntityRef,
    EntityScore,
    NextStepGroup,
    OverallScore,
    RuleDefinition,
    RuleResult,
    RuleStatus,
    RuleToComplete,
    ScoreLevel,
    ScorecardSummary,
)
from scorecard_remediation.schemas.remediation import (
    ActionKind,
    ConvergenceResult,
    RemediationOutcome,
    RuleRef,
    RunState,
    RunStatus,
)

__all__ = [
    "ComplianceView",
    "EntityRef",
    "EntityScore",
    "NextStepGroup",
    "OverallScore",
    "RuleDefinition",
    "RuleResult",
    "RuleStatus",
    "RuleToComplete",
    "ScoreLevel",
    "ScorecardSummary",
    "ActionKind",
    "ConvergenceResult",
    "RemediationOutcome",
    "RuleRef",
    "RunState",
    "RunStatus",
]

from scorecard_remediation.services.convergence import EvaluationConvergenceLoop
from scorecard_remediation.services.orchestrator import RemediationOrchestrator

__all__ = [
    "EvaluationConvergenceLoop",
    "RemediationOrchestrator",
]

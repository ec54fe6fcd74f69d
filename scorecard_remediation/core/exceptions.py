"""
Error taxonomy for scorecard access, remediation actions and evaluation runs.

- NetworkError: transport failure, no response received
- UpstreamError: non-2xx response from a remote API
- ActionError: a remediation action's side effect failed
- ConcurrentRunError: a run is already active for the (entity, scorecard) pair
- ConvergenceTimeout: not raised; describes a run that ran out of attempts
"""
from typing import Any, List, Optional


class ScorecardError(Exception):
    """Base class for all orchestrator errors"""


class NetworkError(ScorecardError):
    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class UpstreamError(ScorecardError):
    def __init__(self, status: int, body: str = "", url: Optional[str] = None):
        self.status = status
        self.body = body
        self.url = url
        detail = f"Upstream returned {status}"
        if url:
            detail += f" for {url}"
        if body:
            detail += f": {body[:500]}"
        super().__init__(detail)


class ActionError(ScorecardError):
    def __init__(self, cause: BaseException, action: Optional[str] = None):
        self.cause = cause
        self.action = action
        prefix = f"Remediation action '{action}' failed" if action else "Remediation action failed"
        super().__init__(f"{prefix}: {cause}")


class ConcurrentRunError(ScorecardError):
    def __init__(self, entity_tag: str, scorecard_tag: str):
        self.entity_tag = entity_tag
        self.scorecard_tag = scorecard_tag
        super().__init__(
            f"An evaluation run is already active for entity={entity_tag} scorecard={scorecard_tag}"
        )


class ConvergenceTimeout(ScorecardError):
    """
    Attached to a timed-out run instead of being raised.

    Carries the last observed next-steps so partial progress is not lost.
    """

    def __init__(self, attempts: int, next_steps: List[Any]):
        self.attempts = attempts
        self.next_steps = next_steps
        super().__init__(f"Evaluation did not converge after {attempts} attempts")

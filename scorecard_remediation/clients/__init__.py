# scorecard_remediation/clients/__init__.py
from scorecard_remediation.clients.score_client import ScoreClient
from scorecard_remediation.clients.github_client import GitHubClient, BRANCH_PROTECTION_POLICY

__all__ = [
    "ScoreClient",
    "GitHubClient",
    "BRANCH_PROTECTION_POLICY",
]

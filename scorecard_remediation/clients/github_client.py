# scorecard_remediation/clients/github_client.py
"""
GitHub REST client

Only the branch-protection endpoint is needed by the remediation actions.
"""
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from scorecard_remediation.core.config import settings
from scorecard_remediation.core.exceptions import NetworkError, UpstreamError
from scorecard_remediation.core.logging import logger


# Fixed policy applied by the "Branch Protection" remediation
BRANCH_PROTECTION_POLICY: Dict[str, Any] = {
    "enforce_admins": True,
    "required_pull_request_reviews": {
        "required_approving_review_count": 1,
        "dismiss_stale_reviews": True,
        "require_code_owner_reviews": False,
    },
    "required_status_checks": None,
    "restrictions": None,
    "required_conversation_resolution": True,
    "required_linear_history": True,
    "allow_force_pushes": False,
    "allow_deletions": False,
}


class GitHubClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token if token is not None else settings.GITHUB_TOKEN
        self.base_url = (base_url or settings.GITHUB_API_BASE).rstrip("/")
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def apply_branch_protection(
        self,
        owner: str,
        repo: str,
        branch: str,
        policy: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """PUT the protection policy onto `owner/repo@branch`"""
        url = (
            f"{self.base_url}/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"
            f"/branches/{quote(branch, safe='')}/protection"
        )
        body = policy if policy is not None else BRANCH_PROTECTION_POLICY

        try:
            response = await self.client.put(url, headers=self._headers(), json=body)
        except httpx.TransportError as e:
            raise NetworkError(f"PUT {url} failed: {e}", cause=e) from e

        if not response.is_success:
            raise UpstreamError(response.status_code, response.text, url)

        logger.info(f"Applied branch protection to {owner}/{repo}@{branch}")
        try:
            return response.json()
        except ValueError:
            return {}

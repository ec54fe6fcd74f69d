# scorecard_remediation/api/dependencies.py
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional

import httpx
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import ValidationError

from scorecard_remediation.clients.github_client import GitHubClient
from scorecard_remediation.clients.score_client import ScoreClient
from scorecard_remediation.core.config import settings
from scorecard_remediation.remediation.registry import RemediationActionRegistry
from scorecard_remediation.schemas.remediation import RunState
from scorecard_remediation.schemas.scorecard import EntityRef
from scorecard_remediation.services.convergence import EvaluationConvergenceLoop, RunKey
from scorecard_remediation.services.orchestrator import RemediationOrchestrator

security = HTTPBearer(auto_error=False)


@dataclass
class Runtime:
    """Process-wide collaborators shared by every request"""
    http_client: httpx.AsyncClient
    github: GitHubClient
    registry: RemediationActionRegistry
    active_runs: Dict[RunKey, RunState] = field(default_factory=dict)


def get_runtime(request: Request) -> Runtime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized"
        )
    return runtime


def get_api_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Caller's bearer credential, falling back to the configured token"""
    if credentials and credentials.credentials:
        return credentials.credentials
    return settings.CORTEX_API_TOKEN


def get_entity(
    entity_tag: str,
    kind: Optional[str] = None,
    name: Optional[str] = None,
) -> EntityRef:
    """Entity selected in the host, from the path tag and optional query context"""
    try:
        return EntityRef.from_context({"tag": entity_tag.strip(), "type": kind, "name": name})
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="entity_tag must be a non-empty string"
        )


async def get_orchestrator(
    runtime: Runtime = Depends(get_runtime),
    token: Optional[str] = Depends(get_api_token),
) -> AsyncIterator[RemediationOrchestrator]:
    client = ScoreClient(token=token, http_client=runtime.http_client)
    loop = EvaluationConvergenceLoop(client, active_runs=runtime.active_runs)
    try:
        yield RemediationOrchestrator(client, runtime.registry, loop=loop)
    finally:
        await client.close()

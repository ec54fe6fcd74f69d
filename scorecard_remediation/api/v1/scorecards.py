"""
Scorecard Compliance API

Endpoints consumed by the UI widget.

Endpoints:
- GET  /api/v1/entities/{entity_tag}/compliance
- GET  /api/v1/entities/{entity_tag}/scorecards/{scorecard_tag}/next-steps
- POST /api/v1/entities/{entity_tag}/scorecards/{scorecard_tag}/remediate
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from scorecard_remediation.api.dependencies import get_entity, get_orchestrator
from scorecard_remediation.core.exceptions import (
    ActionError,
    ConcurrentRunError,
    NetworkError,
    UpstreamError,
)
from scorecard_remediation.schemas.remediation import RuleRef
from scorecard_remediation.schemas.scorecard import EntityRef, current_level, flatten_rules, next_level
from scorecard_remediation.services.orchestrator import RemediationOrchestrator

router = APIRouter(tags=["scorecards"])


class RemediationRequest(RuleRef):
    owner: Optional[str] = None
    repo: Optional[str] = None
    branch: Optional[str] = None


def _to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, ConcurrentRunError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, ActionError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    if isinstance(e, UpstreamError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"upstream_status": e.status, "body": e.body[:1000]},
        )
    if isinstance(e, NetworkError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/entities/{entity_tag:path}/compliance")
async def get_compliance(
    entity: EntityRef = Depends(get_entity),
    orchestrator: RemediationOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """
    Aggregated scorecard compliance for one entity.

    Scorecards without a resolvable score are listed under `unscored`.
    """
    try:
        view = await orchestrator.get_compliance_view(entity.tag)
    except (UpstreamError, NetworkError, ValueError) as e:
        raise _to_http_error(e)
    data = view.model_dump(mode="json")
    data["entity"] = entity.model_dump()
    return data


@router.get("/entities/{entity_tag:path}/scorecards/{scorecard_tag}/next-steps")
async def get_next_steps(
    scorecard_tag: str,
    entity: EntityRef = Depends(get_entity),
    orchestrator: RemediationOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    try:
        groups = await orchestrator.client.fetch_next_steps(scorecard_tag, entity.tag)
    except (UpstreamError, NetworkError, ValueError) as e:
        raise _to_http_error(e)

    level = current_level(groups)
    upcoming = next_level(groups)
    return {
        "entity_tag": entity.tag,
        "scorecard_tag": scorecard_tag,
        "next_steps": [g.model_dump(mode="json") for g in groups],
        "rules_to_complete": [r.model_dump(mode="json") for r in flatten_rules(groups)],
        "current_level": level.model_dump() if level else None,
        "next_level": upcoming.model_dump() if upcoming else None,
        "running": orchestrator.is_running(scorecard_tag, entity.tag),
    }


@router.post("/entities/{entity_tag:path}/scorecards/{scorecard_tag}/remediate")
async def remediate_rule(
    scorecard_tag: str,
    body: RemediationRequest,
    entity: EntityRef = Depends(get_entity),
    orchestrator: RemediationOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    """
    Remediate one rule and wait for the scorecard to be re-evaluated.

    Returns 409 while another run for the same entity and scorecard is active.
    """
    target = {k: v for k, v in {"owner": body.owner, "repo": body.repo, "branch": body.branch}.items() if v}
    try:
        outcome = await orchestrator.remediate(
            RuleRef(title=body.title, identifier=body.identifier),
            scorecard_tag,
            entity.tag,
            action_context=target,
        )
    except (ConcurrentRunError, ActionError, UpstreamError, NetworkError, ValueError) as e:
        raise _to_http_error(e)
    return outcome.model_dump(mode="json")

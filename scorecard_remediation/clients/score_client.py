# scorecard_remediation/clients/score_client.py
"""
Scorecard API client

Typed access to the scorecard REST API:
- list scorecards that apply to an entity
- fetch an entity's evaluated score for one scorecard
- trigger re-evaluation
- fetch next steps

Wire shapes are normalized into the models in `schemas.scorecard`. No retries
happen here; callers decide what to do with a failure.
"""
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from scorecard_remediation.core.config import settings
from scorecard_remediation.core.exceptions import NetworkError, UpstreamError
from scorecard_remediation.core.logging import logger
from scorecard_remediation.schemas.scorecard import (
    EntityScore,
    NextStepGroup,
    ScorecardSummary,
    parse_next_steps,
)


def _seg(value: str) -> str:
    """URL-encode a single path segment"""
    return quote(value, safe="")


def _json(response: httpx.Response) -> Any:
    """Decoded body, or None when it is not JSON"""
    try:
        return response.json()
    except ValueError:
        return None


def _require(value: str, name: str) -> None:
    if not value or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")


class ScoreClient:
    """Async client for the scorecard API"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.CORTEX_API_BASE).rstrip("/")
        self.token = token if token is not None else settings.CORTEX_API_TOKEN
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS
        )

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            return await self.client.request(method, url, params=params, headers=self._headers())
        except httpx.TransportError as e:
            logger.error(f"Scorecard API transport failure: {method} {url}: {e}")
            raise NetworkError(f"{method} {url} failed: {e}", cause=e) from e

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if not response.is_success:
            raise UpstreamError(response.status_code, response.text, str(response.request.url))

    async def list_scorecards(self, entity_tag: str) -> List[ScorecardSummary]:
        """
        List scorecards whose applicability includes the entity.

        Accepts `{"scorecards": [...]}` or a bare array; order is preserved.
        """
        _require(entity_tag, "entity_tag")

        response = await self._request(
            "GET",
            "/api/v1/scorecards",
            params={"entities": entity_tag, "page": 0, "pageSize": 1000},
        )
        self._raise_for_status(response)

        data = _json(response)
        if isinstance(data, dict):
            items = data.get("scorecards") or []
        elif isinstance(data, list):
            items = data
        else:
            items = []

        scorecards: List[ScorecardSummary] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            scorecard = ScorecardSummary.from_api(item)
            if not scorecard.tag:
                logger.warning(
                    f"Skipping scorecard without a tag: {item.get('name') or item}",
                    extra={"entity_tag": entity_tag},
                )
                continue
            scorecards.append(scorecard)
        logger.info(
            f"Found {len(scorecards)} scorecards",
            extra={"entity_tag": entity_tag},
        )
        return scorecards

    async def fetch_score(self, scorecard_tag: str, entity_tag: str) -> Optional[EntityScore]:
        """
        Fetch the evaluated score for (scorecard, entity).

        Tries the per-entity endpoint first, then the scorecard-wide endpoint
        filtered by entity. Returns None when neither yields a score.
        """
        _require(scorecard_tag, "scorecard_tag")
        _require(entity_tag, "entity_tag")

        primary = await self._request(
            "GET",
            f"/api/v1/scorecards/{_seg(scorecard_tag)}/entity/{_seg(entity_tag)}/scores",
        )
        if primary.is_success:
            payload = _json(primary)
            if isinstance(payload, dict):
                return EntityScore.from_api(scorecard_tag, entity_tag, payload)

        logger.debug(
            f"Primary score endpoint returned {primary.status_code}, trying fallback",
            extra={"entity_tag": entity_tag, "scorecard_tag": scorecard_tag},
        )

        fallback = await self._request(
            "GET",
            f"/api/v1/scorecards/{_seg(scorecard_tag)}/scores",
            params={"entities": entity_tag},
        )
        if not fallback.is_success:
            return None

        data = _json(fallback)
        if isinstance(data, dict) and isinstance(data.get("scores"), list):
            items = data["scores"]
        elif isinstance(data, list):
            items = data
        else:
            items = []

        first = items[0] if items else None
        if not isinstance(first, dict):
            return None
        return EntityScore.from_api(scorecard_tag, entity_tag, first)

    async def trigger_evaluation(self, scorecard_tag: str, entity_tag: str) -> None:
        """
        Ask the scorecard API to re-evaluate the entity now.

        409 means an evaluation is already running remotely, which is the
        state we want, so it is not an error.
        """
        _require(scorecard_tag, "scorecard_tag")
        _require(entity_tag, "entity_tag")

        response = await self._request(
            "POST",
            f"/api/v1/scorecards/{_seg(scorecard_tag)}/entity/{_seg(entity_tag)}/scores",
        )
        if response.status_code == 409:
            logger.info(
                "Evaluation already in progress",
                extra={"entity_tag": entity_tag, "scorecard_tag": scorecard_tag},
            )
            return
        self._raise_for_status(response)

    async def fetch_next_steps(self, scorecard_tag: str, entity_tag: str) -> List[NextStepGroup]:
        _require(scorecard_tag, "scorecard_tag")
        _require(entity_tag, "entity_tag")

        response = await self._request(
            "GET",
            f"/api/v1/scorecards/{_seg(scorecard_tag)}/next-steps",
            params={"entityTag": entity_tag},
        )
        self._raise_for_status(response)

        return parse_next_steps(_json(response))

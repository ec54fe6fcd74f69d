"""
Pytest configuration and fixtures
Shared fakes and HTTP transports for all test modules
"""

import json
from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest

from scorecard_remediation.clients.github_client import GitHubClient
from scorecard_remediation.clients.score_client import ScoreClient
from scorecard_remediation.remediation.registry import RemediationActionRegistry
from scorecard_remediation.schemas.scorecard import (
    EntityScore,
    NextStepGroup,
    RuleToComplete,
    ScorecardSummary,
)
from scorecard_remediation.services.convergence import EvaluationConvergenceLoop
from scorecard_remediation.services.orchestrator import RemediationOrchestrator

SCORECARD_API = "https://scorecards.test"
GITHUB_API = "https://github.test"


def make_groups(*counts: int) -> List[NextStepGroup]:
    """One NextStepGroup per count, each with that many outstanding rules"""
    return [
        NextStepGroup(
            rules_to_complete=[
                RuleToComplete(identifier=f"rule-{i}-{j}", title=f"Rule {i}-{j}")
                for j in range(count)
            ]
        )
        for i, count in enumerate(counts)
    ]


class FakeScoreClient:
    """In-memory stand-in for ScoreClient"""

    def __init__(
        self,
        scorecards: Optional[List[ScorecardSummary]] = None,
        scores: Optional[Dict[str, Union[EntityScore, Exception, None]]] = None,
        next_steps: Optional[List[Union[List[NextStepGroup], Exception]]] = None,
        trigger_error: Optional[Exception] = None,
    ):
        self.scorecards = scorecards or []
        self.scores = scores or {}
        self.next_steps = next_steps if next_steps is not None else [[]]
        self.trigger_error = trigger_error
        self.trigger_calls: List[tuple] = []
        self.next_steps_calls = 0
        self.calls: List[str] = []

    async def list_scorecards(self, entity_tag: str) -> List[ScorecardSummary]:
        self.calls.append("list_scorecards")
        return list(self.scorecards)

    async def fetch_score(self, scorecard_tag: str, entity_tag: str) -> Optional[EntityScore]:
        self.calls.append(f"fetch_score:{scorecard_tag}")
        result = self.scores.get(scorecard_tag)
        if isinstance(result, Exception):
            raise result
        return result

    async def trigger_evaluation(self, scorecard_tag: str, entity_tag: str) -> None:
        self.calls.append("trigger_evaluation")
        self.trigger_calls.append((scorecard_tag, entity_tag))
        if self.trigger_error is not None:
            raise self.trigger_error

    async def fetch_next_steps(self, scorecard_tag: str, entity_tag: str) -> List[NextStepGroup]:
        self.calls.append("fetch_next_steps")
        index = min(self.next_steps_calls, len(self.next_steps) - 1)
        self.next_steps_calls += 1
        result = self.next_steps[index]
        if isinstance(result, Exception):
            raise result
        return result


class SleepRecorder:
    """Replaces asyncio.sleep so polling tests run instantly"""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingTransport:
    """httpx handler that answers from a route table and records every request"""

    def __init__(self, routes: Dict[tuple, Callable[[httpx.Request], httpx.Response]]):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "not found"})
        return handler(request)

    @property
    def paths(self) -> List[str]:
        return [f"{r.method} {r.url.path}" for r in self.requests]


def json_response(status_code: int, payload: Any) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status_code, content=json.dumps(payload).encode(),
                                          headers={"Content-Type": "application/json"})


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fake_client() -> FakeScoreClient:
    return FakeScoreClient()


@pytest.fixture
def registry() -> RemediationActionRegistry:
    return RemediationActionRegistry()


@pytest.fixture
def make_orchestrator(sleep_recorder: SleepRecorder):
    """Factory wiring an orchestrator to a fake client with instant sleeps"""

    def _make(client, registry: RemediationActionRegistry, max_attempts: int = 10, interval_ms: int = 1500):
        loop = EvaluationConvergenceLoop(client, sleep=sleep_recorder)
        return RemediationOrchestrator(
            client,
            registry,
            loop=loop,
            max_attempts=max_attempts,
            interval_ms=interval_ms,
        )

    return _make


@pytest.fixture
def score_client_factory():
    """Build a ScoreClient whose HTTP traffic goes to a RecordingTransport"""

    def _make(transport: RecordingTransport, token: Optional[str] = "test-token") -> ScoreClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        return ScoreClient(base_url=SCORECARD_API, token=token, http_client=http_client)

    return _make


@pytest.fixture
def github_client_factory():
    def _make(transport: RecordingTransport) -> GitHubClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(transport))
        return GitHubClient(token="gh-token", base_url=GITHUB_API, http_client=http_client)

    return _make

# tests/test_api.py
"""
HTTP API tests
Tests: compliance view, next steps, remediation endpoint and error mapping
"""

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from scorecard_remediation.api.dependencies import get_orchestrator
from scorecard_remediation.core.exceptions import ConcurrentRunError, UpstreamError
from scorecard_remediation.main import app
from scorecard_remediation.remediation import AutomatedAction, RemediationActionRegistry
from scorecard_remediation.schemas.scorecard import EntityScore, ScorecardSummary
from scorecard_remediation.services.convergence import EvaluationConvergenceLoop
from scorecard_remediation.services.orchestrator import RemediationOrchestrator

from tests.conftest import FakeScoreClient, make_groups

ENTITY = "service:payments-api"
SCORECARD = "prod-readiness"


@pytest.fixture
def fake():
    return FakeScoreClient(
        scorecards=[ScorecardSummary(tag=SCORECARD, name="Production Readiness")],
        scores={SCORECARD: EntityScore.from_api(SCORECARD, ENTITY, {
            "rules": [{"title": "Branch Protection", "status": "FAIL"}]
        })},
        next_steps=[make_groups(1), []],
    )


@pytest.fixture
def api_registry():
    async def explode(rule, context):
        raise RuntimeError("github said no")

    registry = RemediationActionRegistry()
    registry.register("Broken", AutomatedAction("broken", explode))
    return registry


@pytest.fixture
def client(fake, api_registry, sleep_recorder):
    """Test client with the orchestrator wired to a fake scorecard API"""

    def override_get_orchestrator():
        loop = EvaluationConvergenceLoop(fake, sleep=sleep_recorder)
        return RemediationOrchestrator(fake, api_registry, loop=loop)

    app.dependency_overrides[get_orchestrator] = override_get_orchestrator

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


class TestComplianceEndpoint:
    """Test GET compliance"""

    def test_get_compliance(self, client):
        response = client.get(f"/api/v1/entities/{ENTITY}/compliance")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["entity_tag"] == ENTITY
        assert data["scorecards"][0]["tag"] == SCORECARD
        assert data["scores"][SCORECARD]["rules"][0]["status"] == "FAIL"
        assert data["unscored"] == []

    def test_entity_tag_with_slash(self, client, fake):
        response = client.get("/api/v1/entities/acme/payments-api/compliance")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["entity_tag"] == "acme/payments-api"

    def test_host_context_is_echoed(self, client):
        response = client.get(
            f"/api/v1/entities/{ENTITY}/compliance",
            params={"kind": "service", "name": "Payments"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["entity"] == {
            "tag": ENTITY, "kind": "service", "display_name": "Payments",
        }

    def test_blank_entity_tag_rejected(self, client, fake):
        response = client.get("/api/v1/entities/%20/compliance")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert fake.calls == []

    def test_upstream_error_is_bad_gateway(self, client, fake):
        async def broken(entity_tag):
            raise UpstreamError(500, "boom")

        fake.list_scorecards = broken

        response = client.get(f"/api/v1/entities/{ENTITY}/compliance")

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["detail"]["upstream_status"] == 500


class TestNextStepsEndpoint:
    def test_get_next_steps(self, client):
        response = client.get(f"/api/v1/entities/{ENTITY}/scorecards/{SCORECARD}/next-steps")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data["rules_to_complete"]) == 1
        assert data["running"] is False


class TestRemediateEndpoint:
    """Test POST remediate"""

    def test_remediate_without_action(self, client, fake):
        response = client.post(
            f"/api/v1/entities/{ENTITY}/scorecards/{SCORECARD}/remediate",
            json={"title": "Has README"},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "Succeeded"
        assert data["action_kind"] == "none"
        assert data["notices"][-1] == "done"
        assert fake.trigger_calls == [(SCORECARD, ENTITY)]

    def test_action_error_is_bad_gateway(self, client, fake):
        response = client.post(
            f"/api/v1/entities/{ENTITY}/scorecards/{SCORECARD}/remediate",
            json={"title": "Broken"},
        )

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert "github said no" in response.json()["detail"]
        assert fake.trigger_calls == []

    def test_concurrent_run_is_conflict(self, client, fake):
        async def busy(*args, **kwargs):
            raise ConcurrentRunError(ENTITY, SCORECARD)

        app.dependency_overrides[get_orchestrator] = lambda: type(
            "Busy", (), {"remediate": staticmethod(busy)})()

        response = client.post(
            f"/api/v1/entities/{ENTITY}/scorecards/{SCORECARD}/remediate",
            json={"title": "Branch Protection"},
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_missing_title_rejected(self, client):
        response = client.post(
            f"/api/v1/entities/{ENTITY}/scorecards/{SCORECARD}/remediate",
            json={},
        )

        assert response.status_code == 422


def test_health(client):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "healthy"

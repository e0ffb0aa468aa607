"""
Test Workflow API
=================

HTTP surface over FastAPI's TestClient: auth, run, stream and error mapping.
"""

import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import json

import pytest
from fastapi.testclient import TestClient

from api.api import create_app
from api.api_utils import check_bearer, error_status
from core.config import Settings
from core.errors import (
    InputContractViolation,
    LocationNotFound,
    OutputContractViolation,
    ProviderTimeout,
    RunStateError,
    StreamInterrupted,
)
from providers.forecast import MockForecastProvider
from providers.recommendation import RecommendationAgent
from workflows.weather_workflow import WORKFLOW_ID, build_weather_workflow

AUTH = {"Authorization": "Bearer secret"}


class EchoAgent(RecommendationAgent):
    def __init__(self, fragments):
        self.fragments = fragments

    async def generate(self, prompt):
        for fragment in self.fragments:
            yield fragment


@pytest.fixture
def client():
    workflows = {
        WORKFLOW_ID: build_weather_workflow(
            MockForecastProvider(strict=True, seed=5),
            EchoAgent(["Visit ", "the castle"]),
        ),
    }
    app = create_app(Settings(bearer_key="secret"), workflows=workflows)
    with TestClient(app) as test_client:
        yield test_client


def events(response):
    return [
        json.loads(line[len("data: "):])
        for line in response.text.splitlines()
        if line.startswith("data: ")
    ]


def test_root_and_health_are_open(client):
    assert client.get("/").json()["workflows"] == [WORKFLOW_ID]
    assert client.get("/health").json() == {"status": "healthy", "workflows": 1}


def test_api_routes_require_bearer(client):
    missing = client.get("/api/workflows")
    assert missing.status_code == 401
    assert missing.text == "Unauthorized"

    wrong = client.get("/api/workflows", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 401
    assert wrong.text == "Invalid token"

    listed = client.get("/api/workflows", headers=AUTH)
    assert listed.status_code == 200
    assert [s["id"] for s in listed.json()[WORKFLOW_ID]["steps"]] == ["fetch-weather", "plan-activities"]


def test_missing_bearer_key_rejects_everything():
    app = create_app(Settings(bearer_key=None), workflows={})
    with TestClient(app) as test_client:
        response = test_client.get("/api/workflows", headers={"Authorization": "Bearer anything"})
    assert response.status_code == 401
    assert response.text == "Invalid token"


def test_run_returns_activities(client):
    response = client.post(f"/api/workflows/{WORKFLOW_ID}/run", json={"inputData": {"city": "osaka"}}, headers=AUTH)
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["result"] == {"activities": "Visit the castle"}
    assert [s["step"] for s in body["steps"]] == ["fetch-weather", "plan-activities"]


def test_run_unknown_city_is_404(client):
    response = client.post(f"/api/workflows/{WORKFLOW_ID}/run", json={"inputData": {"city": "Atlantis"}}, headers=AUTH)
    assert response.status_code == 404
    body = response.json()
    assert body["status"] == "failed"
    assert body["kind"] == "LocationNotFound"
    assert body["step"] == "fetch-weather"


def test_run_bad_input_is_422(client):
    response = client.post(f"/api/workflows/{WORKFLOW_ID}/run", json={"inputData": {"city": 3}}, headers=AUTH)
    assert response.status_code == 422
    assert response.json()["kind"] == "InputContractViolation"


def test_unknown_workflow_is_404(client):
    response = client.post("/api/workflows/nope/run", json={"inputData": {}}, headers=AUTH)
    assert response.status_code == 404


def test_stream_forwards_fragments_then_result(client):
    ok = client.post(f"/api/workflows/{WORKFLOW_ID}/stream", json={"inputData": {"city": "kyoto"}}, headers=AUTH)
    assert ok.status_code == 200
    received = events(ok)
    assert [e["type"] for e in received] == ["fragment", "fragment", "result"]
    assert "".join(e["content"] for e in received[:-1]) == "Visit the castle"
    assert received[-1]["metadata"]["result"] == {"activities": "Visit the castle"}

    failed = client.post(f"/api/workflows/{WORKFLOW_ID}/stream", json={"inputData": {"city": "Atlantis"}}, headers=AUTH)
    received = events(failed)
    assert [e["type"] for e in received] == ["error"]
    assert received[0]["metadata"]["kind"] == "LocationNotFound"


def test_cors_preflight(client):
    response = client.options(
        "/api/workflows",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_run_route_documents_every_failure_status(client):
    schema = client.app.openapi()
    responses = schema["paths"]["/api/workflows/{workflow_id}/run"]["post"]["responses"]
    assert {"404", "422", "500", "502", "504"} <= set(responses)
    assert responses["504"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")


def test_error_status_mapping():
    assert error_status(InputContractViolation("bad")) == 422
    assert error_status(LocationNotFound("x")) == 404
    assert error_status(ProviderTimeout(1.0)) == 504
    assert error_status(OutputContractViolation("bad")) == 502
    assert error_status(StreamInterrupted("cut")) == 502
    assert error_status(RunStateError("reused")) == 500


def test_check_bearer():
    assert check_bearer("Bearer k", "k") is None
    assert check_bearer(None, "k") == "Unauthorized"
    assert check_bearer("Basic k", "k") == "Unauthorized"
    assert check_bearer("Bearer x", "k") == "Invalid token"

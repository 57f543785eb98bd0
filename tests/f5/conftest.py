"""Fixtures for F5 tests - evaluation client, Web API and CLI."""

import json
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from mastery.config.app_config import AppConfig, EvaluationConfig, StorageConfig
from mastery.evaluation.client import EvaluationClient
from mastery.web.api import create_app

SEED_FILE = Path(__file__).parents[2] / "data" / "seed" / "tasks_v1.yaml"


class FakeEvalService:
    """In-process stand-in for the evaluation service.

    Passes every test unless `failing` names some ids. Set `status_code`
    to answer /api/eval with an error, `body` to answer with a fixed JSON
    document, or `unreachable` to drop connections.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.failing: set[str] = set()
        self.status_code = 200
        self.healthy = True
        self.unreachable = False
        self.body = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)

        if request.url.path == "/api/health":
            return httpx.Response(200 if self.healthy else 503, json={"status": "ok"})

        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "boom"})

        if self.body is not None:
            return httpx.Response(200, json=self.body)

        payload = json.loads(request.content)
        ids = [t["id"] for t in payload["task"]["tests"]]
        failed = [i for i in ids if i in self.failing]
        return httpx.Response(
            200,
            json={
                "passed": not failed,
                "passedIds": [i for i in ids if i not in self.failing],
                "failedIds": failed,
                "messages": {i: "assertion failed" for i in failed},
            },
        )

    @property
    def last_payload(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def eval_service():
    return FakeEvalService()


@pytest.fixture
def eval_config():
    return EvaluationConfig(base_url="http://eval.test", token_env="EVAL_SERVICE_TOKEN")


@pytest.fixture
def eval_client(eval_service, eval_config, monkeypatch):
    monkeypatch.setenv("EVAL_SERVICE_TOKEN", "secret-token")
    client = EvaluationClient(eval_config, transport=httpx.MockTransport(eval_service.handler))
    yield client
    client.close()


@pytest.fixture
def app(tmp_path, eval_client, eval_config):
    """Application with an isolated database and a fake evaluation service."""
    config = AppConfig(
        storage=StorageConfig(db_path=str(tmp_path / "db" / "mastery.db")),
        evaluation=eval_config,
    )
    return create_app(config=config, evaluator=eval_client)


@pytest.fixture
def client(app):
    """Test client with the lifespan running and the sample catalog loaded."""
    with TestClient(app) as test_client:
        app.state.services.catalog.load_seed(SEED_FILE)
        yield test_client

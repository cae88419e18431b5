"""Pytest configuration and shared fixtures.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import base64
import json
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from gunny_api.config.settings import Settings
from gunny_api.main import create_app

CLIENT_ID = "gunny-client"
CLIENT_SECRET = "test-client-secret"
SIGNING_KEY = "test-signing-key-0123456789abcdef-0123456789abcdef-0123456789abc"
BACKEND_URL = "http://llm.test:8080/v1/chat/completions"
BACKEND_MODEL = "gunny-test-model"


def make_settings(**overrides: Any) -> Settings:
    """Settings isolated from the environment's .env file (env alias keys)."""
    values: dict[str, Any] = {
        "OAUTH_CLIENT_ID": CLIENT_ID,
        "OAUTH_CLIENT_SECRET": CLIENT_SECRET,
        "JWT_SECRET": SIGNING_KEY,
        "JETSON_LLM_URL": BACKEND_URL,
        "JETSON_LLM_MODEL": BACKEND_MODEL,
        "LLM_TIMEOUT_SEC": 2.0,
        "LOG_TO_FILE": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def basic_auth(client_id: str = CLIENT_ID, client_secret: str = CLIENT_SECRET) -> str:
    encoded = base64.b64encode(f"{client_id}:{client_secret}".encode()).decode()
    return f"Basic {encoded}"


def completion_body(content: str | None) -> dict[str, Any]:
    """OpenAI-style chat completion body with one choice."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": BACKEND_MODEL,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


class BackendStub:
    """Programmable stand-in for the chat completions backend.

    Records every request payload; `handler` decides the response.
    """

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.handler: Callable[[httpx.Request], Awaitable[httpx.Response]] = self._default

    async def _default(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=completion_body("  Outstanding, maggot.  "))

    def reply_with(self, content: str | None) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=completion_body(content))

        self.handler = handler

    def respond(self, response: httpx.Response) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return response

        self.handler = handler

    def fail_with(self, error: Exception) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            raise error

        self.handler = handler

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        return await self.handler(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture
def backend() -> BackendStub:
    return BackendStub()


@pytest.fixture
def transport(backend: BackendStub) -> httpx.MockTransport:
    return httpx.MockTransport(backend)


@pytest.fixture
def make_client(backend: BackendStub):
    """Factory for TestClients over an app built with custom settings."""
    clients: list[TestClient] = []

    def factory(**overrides: Any) -> TestClient:
        app = create_app(make_settings(**overrides), transport=httpx.MockTransport(backend))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def access_token(client: TestClient) -> str:
    response = client.post(
        "/token",
        data={"grant_type": "client_credentials"},
        headers={"Authorization": basic_auth()},
    )
    assert response.status_code == 200
    return response.json()["access_token"]

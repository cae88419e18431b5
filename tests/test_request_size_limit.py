"""Tests for the Content-Length cap middleware.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import pytest

from gunny_api.errors import ErrorCode
from gunny_api.middleware.request_size_limit import RequestSizeLimitMiddleware


async def _noop_app(scope, receive, send):
    return None


@pytest.fixture
def middleware() -> RequestSizeLimitMiddleware:
    return RequestSizeLimitMiddleware(_noop_app)


class TestLimits:
    def test_per_path(self, middleware):
        assert middleware.limit_for("/token") == 4096
        assert middleware.limit_for("/token/") == 4096
        assert middleware.limit_for("/api/generate") == 16384
        assert middleware.limit_for("/elsewhere") == 16384

    def test_custom_limits(self):
        middleware = RequestSizeLimitMiddleware(
            _noop_app, default_limit=100, path_limits={"/small": 10}
        )

        assert middleware.limit_for("/small") == 10
        assert middleware.limit_for("/token") == 100


class TestCheck:
    def test_within_limit(self, middleware):
        assert middleware.check("/token", "4096") is None

    def test_oversized(self, middleware):
        error = middleware.check("/token", "4097")

        assert error is not None
        assert error.code is ErrorCode.INVALID_REQUEST
        assert error.status_code == 413
        assert error.headers == {"X-Max-Content-Length": "4096"}

    @pytest.mark.parametrize("value", ["abc", "-1", "1.5"])
    def test_invalid_header(self, middleware, value):
        error = middleware.check("/token", value)

        assert error is not None
        assert error.status_code == 400
        assert error.description == "Invalid Content-Length header"


def test_declared_oversize_over_http(client):
    response = client.post(
        "/token",
        content=b"grant_type=client_credentials&" + b"x" * 5000,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 413
    assert response.json()["error"] == "invalid_request"
    assert response.headers["X-Max-Content-Length"] == "4096"

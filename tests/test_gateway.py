"""Tests for the gateway check ordering.

rate limit -> authentication -> body validation -> backend call.

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import json
from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio
from conftest import basic_auth, make_settings

from gunny_api.errors import ErrorCode, GatewayError
from gunny_api.rate_limiter.fixed_window import ENDPOINT_GENERATE, ENDPOINT_TOKEN
from gunny_api.services.gateway import Gateway

IP = "203.0.113.7"
JSON = "application/json"
GRANT_FORM = b"grant_type=client_credentials"


def as_json(body: object) -> bytes:
    return json.dumps(body).encode()


@pytest_asyncio.fixture
async def gateway(backend):
    gw = Gateway.from_settings(
        make_settings(RATE_LIMIT_TOKEN_REQUESTS=2, RATE_LIMIT_GENERATE_REQUESTS=3),
        transport=httpx.MockTransport(backend),
    )
    yield gw
    await gw.close()


def bearer_for(gateway: Gateway) -> str:
    issued = gateway.obtain_token(IP, basic_auth(), GRANT_FORM)
    return f"Bearer {issued.access_token}"


class TestObtainToken:

    @pytest.mark.asyncio
    async def test_success(self, gateway):
        issued = gateway.obtain_token(IP, basic_auth(), GRANT_FORM)
        assert issued.expires_in == 300

    @pytest.mark.asyncio
    async def test_rate_limit_before_authentication(self, gateway):
        for _ in range(2):
            with pytest.raises(GatewayError):
                gateway.obtain_token(IP, None, b"")

        with pytest.raises(GatewayError) as exc_info:
            gateway.obtain_token(IP, basic_auth(), GRANT_FORM)

        assert exc_info.value.code is ErrorCode.RATE_LIMITED
        assert int(exc_info.value.headers["Retry-After"]) >= 1

    @pytest.mark.asyncio
    async def test_authentication_before_body(self, gateway):
        with pytest.raises(GatewayError) as exc_info:
            gateway.obtain_token(IP, basic_auth(client_secret="bad"), b"[" * 3000, JSON)
        assert exc_info.value.code is ErrorCode.INVALID_CLIENT

    @pytest.mark.asyncio
    async def test_non_string_grant_type(self, gateway):
        with pytest.raises(GatewayError) as exc_info:
            gateway.obtain_token(IP, basic_auth(), as_json({"grant_type": 7}), JSON)
        assert exc_info.value.code is ErrorCode.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_undecodable_body_is_invalid_request(self, gateway):
        with pytest.raises(GatewayError) as exc_info:
            gateway.obtain_token(IP, basic_auth(), b"[" * 3000, JSON)
        assert exc_info.value.code is ErrorCode.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_long_grant_type_is_unsupported(self, gateway):
        with pytest.raises(GatewayError) as exc_info:
            gateway.obtain_token(IP, basic_auth(), b"grant_type=" + b"x" * 65)
        assert exc_info.value.code is ErrorCode.UNSUPPORTED_GRANT_TYPE

    @pytest.mark.asyncio
    async def test_client_authenticated_once(self, gateway):
        with patch.object(
            gateway.issuer, "authenticate_client", wraps=gateway.issuer.authenticate_client
        ) as authenticate:
            issued = gateway.obtain_token(IP, basic_auth(), GRANT_FORM)

        assert authenticate.call_count == 1
        assert issued.claims.sub == "gunny-client"


class TestGenerate:

    @pytest.mark.asyncio
    async def test_success(self, gateway, backend):
        reply = await gateway.generate(IP, bearer_for(gateway), as_json({"prompt": "hi"}))
        assert reply == "Outstanding, maggot."
        assert backend.call_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit_before_token_check(self, gateway, backend):
        for _ in range(3):
            with pytest.raises(GatewayError):
                await gateway.generate(IP, None, as_json({"prompt": "hi"}))

        with pytest.raises(GatewayError) as exc_info:
            await gateway.generate(IP, bearer_for(gateway), as_json({"prompt": "hi"}))

        assert exc_info.value.code is ErrorCode.RATE_LIMITED
        assert backend.call_count == 0

    @pytest.mark.asyncio
    async def test_token_check_before_body_validation(self, gateway, backend):
        with pytest.raises(GatewayError) as exc_info:
            await gateway.generate(IP, "Bearer garbage", b"[" * 5000)

        assert exc_info.value.code is ErrorCode.INVALID_TOKEN
        assert backend.call_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            b"",
            b"null",
            b"[]",
            b'"prompt"',
            b"{}",
            b'{"prompt": 42}',
            b'{"prompt": "hi", "extra": 1}',
            b"\xff\xfe\x00",
            b"[" * 5000,
        ],
    )
    async def test_invalid_body(self, gateway, backend, body):
        with pytest.raises(GatewayError) as exc_info:
            await gateway.generate(IP, bearer_for(gateway), body)

        assert exc_info.value.code is ErrorCode.INVALID_REQUEST
        assert backend.call_count == 0

    @pytest.mark.asyncio
    async def test_validation_error_hides_input(self, gateway):
        with pytest.raises(GatewayError) as exc_info:
            await gateway.generate(
                IP, bearer_for(gateway), as_json({"prompt": "hi", "temperature": "SECRET-VALUE"})
            )
        assert "SECRET-VALUE" not in (exc_info.value.description or "")
        assert "temperature" in (exc_info.value.description or "")


@pytest.mark.asyncio
async def test_rate_windows_per_endpoint_class(backend):
    gw = Gateway.from_settings(
        make_settings(RATE_LIMIT_WINDOW_SEC=30, RATE_LIMIT_GENERATE_WINDOW_SEC=5),
        transport=httpx.MockTransport(backend),
    )

    assert gw.rate_limiter.limits[ENDPOINT_TOKEN].window_seconds == 30
    assert gw.rate_limiter.limits[ENDPOINT_GENERATE].window_seconds == 5
    await gw.close()

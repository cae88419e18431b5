"""Tests for access token issuance and verification.

Covers:
- Claims and TTL of issued tokens
- Credential and grant_type failures
- Expiry boundary with an injected clock
- Signature tampering and foreign keys
- Scope policy (insufficient_scope vs invalid_token, enforcement off)

Author: Gunny Team
Created: 2025-12-02
Version: 1.0.0
"""

import jwt
import pytest
from conftest import CLIENT_ID, CLIENT_SECRET, SIGNING_KEY, basic_auth

from gunny_api.errors import ErrorCode, GatewayError
from gunny_api.security.credentials import ClientCredential
from gunny_api.security.tokens import GENERATE_SCOPE, TokenIssuer, TokenVerifier

NOW = 1_764_633_600


class FakeClock:
    """Settable clock returning unix seconds."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def issuer(clock):
    return TokenIssuer(
        credential=ClientCredential(CLIENT_ID, CLIENT_SECRET),
        signing_key=SIGNING_KEY,
        ttl=300,
        clock=clock,
    )


@pytest.fixture
def verifier(clock):
    return TokenVerifier(signing_key=SIGNING_KEY, clock=clock)


def bearer(token: str) -> str:
    return f"Bearer {token}"


def forge(scope: str = GENERATE_SCOPE, exp: int = NOW + 300, key: str = SIGNING_KEY) -> str:
    claims = {"sub": CLIENT_ID, "scope": scope, "iat": NOW, "exp": exp}
    return jwt.encode(claims, key, algorithm="HS256")


class TestTokenIssuer:
    """Client-credentials grant."""

    def test_issue_returns_bearer_token(self, issuer):
        issued = issuer.issue(basic_auth(), "client_credentials")

        assert issued.token_type == "Bearer"
        assert issued.expires_in == 300
        assert issued.claims.sub == CLIENT_ID
        assert issued.claims.scope == GENERATE_SCOPE
        assert issued.claims.exp - issued.claims.iat == 300

    def test_issued_token_is_signed_with_key(self, issuer):
        issued = issuer.issue(basic_auth(), "client_credentials")
        payload = jwt.decode(
            issued.access_token, SIGNING_KEY, algorithms=["HS256"], options={"verify_exp": False}
        )
        assert payload == {"sub": CLIENT_ID, "scope": GENERATE_SCOPE, "iat": NOW, "exp": NOW + 300}

    def test_wrong_secret_is_invalid_client(self, issuer):
        with pytest.raises(GatewayError) as exc_info:
            issuer.issue(basic_auth(client_secret="nope"), "client_credentials")

        assert exc_info.value.code is ErrorCode.INVALID_CLIENT
        assert exc_info.value.status_code == 401
        assert exc_info.value.headers["WWW-Authenticate"].startswith("Basic")

    def test_missing_authorization_is_invalid_client(self, issuer):
        with pytest.raises(GatewayError) as exc_info:
            issuer.issue(None, "client_credentials")
        assert exc_info.value.code is ErrorCode.INVALID_CLIENT

    def test_credentials_checked_before_grant_type(self, issuer):
        with pytest.raises(GatewayError) as exc_info:
            issuer.issue(basic_auth(client_secret="nope"), "password")
        assert exc_info.value.code is ErrorCode.INVALID_CLIENT

    def test_grant_for_authenticated_client(self, issuer):
        issued = issuer.grant(issuer.authenticate_client(basic_auth()), "client_credentials")
        assert issued.claims.sub == CLIENT_ID

    def test_grant_rejects_any_other_grant_type(self, issuer):
        with pytest.raises(GatewayError) as exc_info:
            issuer.grant(CLIENT_ID, "x" * 65)
        assert exc_info.value.code is ErrorCode.UNSUPPORTED_GRANT_TYPE

    def test_missing_grant_type_is_invalid_request(self, issuer):
        with pytest.raises(GatewayError) as exc_info:
            issuer.issue(basic_auth(), None)
        assert exc_info.value.code is ErrorCode.INVALID_REQUEST
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("grant_type", ["password", "authorization_code", "CLIENT_CREDENTIALS"])
    def test_other_grant_type_is_unsupported(self, issuer, grant_type):
        with pytest.raises(GatewayError) as exc_info:
            issuer.issue(basic_auth(), grant_type)
        assert exc_info.value.code is ErrorCode.UNSUPPORTED_GRANT_TYPE
        assert exc_info.value.status_code == 400


class TestTokenVerifier:
    """Bearer token verification."""

    def test_round_trip(self, issuer, verifier):
        issued = issuer.issue(basic_auth(), "client_credentials")
        claims = verifier.verify(bearer(issued.access_token))
        assert claims.sub == CLIENT_ID
        assert GENERATE_SCOPE in claims.scopes

    def test_scheme_is_case_insensitive(self, issuer, verifier):
        issued = issuer.issue(basic_auth(), "client_credentials")
        assert verifier.verify(f"bearer {issued.access_token}").sub == CLIENT_ID

    def test_valid_until_one_second_before_expiry(self, issuer, verifier, clock):
        issued = issuer.issue(basic_auth(), "client_credentials")
        clock.now = NOW + 299
        assert verifier.verify(bearer(issued.access_token)).sub == CLIENT_ID

    @pytest.mark.parametrize("elapsed", [300, 301, 3600])
    def test_expired_at_and_after_exp(self, issuer, verifier, clock, elapsed):
        issued = issuer.issue(basic_auth(), "client_credentials")
        clock.now = NOW + elapsed

        with pytest.raises(GatewayError) as exc_info:
            verifier.verify(bearer(issued.access_token))
        assert exc_info.value.code is ErrorCode.INVALID_TOKEN
        assert exc_info.value.status_code == 401

    @pytest.mark.parametrize(
        "authorization",
        [None, "", "Bearer", "Bearer a b", "Basic abc", "Token abc"],
    )
    def test_missing_or_malformed_header(self, verifier, authorization):
        with pytest.raises(GatewayError) as exc_info:
            verifier.verify(authorization)
        assert exc_info.value.code is ErrorCode.INVALID_TOKEN
        assert "Bearer" in exc_info.value.headers["WWW-Authenticate"]

    def test_failures_are_indistinguishable(self, issuer, verifier, clock):
        """Bad signature, garbage and expiry all produce the same error."""
        issued = issuer.issue(basic_auth(), "client_credentials")
        head, payload, signature = issued.access_token.split(".")
        tampered = f"{head}.{payload}.{signature[::-1]}"

        errors = []
        for token in (tampered, "not-a-jwt", forge(key="another-key-0123456789abcdef0123456789ab")):
            with pytest.raises(GatewayError) as exc_info:
                verifier.verify(bearer(token))
            errors.append(exc_info.value)

        clock.now = NOW + 1000
        with pytest.raises(GatewayError) as exc_info:
            verifier.verify(bearer(issued.access_token))
        errors.append(exc_info.value)

        assert {e.code for e in errors} == {ErrorCode.INVALID_TOKEN}
        assert len({(e.description, tuple(e.headers.items())) for e in errors}) == 1

    def test_missing_claims_is_invalid_token(self, verifier):
        token = jwt.encode({"sub": CLIENT_ID, "exp": NOW + 300}, SIGNING_KEY, algorithm="HS256")
        with pytest.raises(GatewayError) as exc_info:
            verifier.verify(bearer(token))
        assert exc_info.value.code is ErrorCode.INVALID_TOKEN

    def test_unsigned_token_is_rejected(self, verifier):
        token = jwt.encode(
            {"sub": CLIENT_ID, "scope": GENERATE_SCOPE, "iat": NOW, "exp": NOW + 300},
            None,
            algorithm="none",
        )
        with pytest.raises(GatewayError) as exc_info:
            verifier.verify(bearer(token))
        assert exc_info.value.code is ErrorCode.INVALID_TOKEN

    def test_missing_scope_is_insufficient_scope_by_default(self, verifier):
        with pytest.raises(GatewayError) as exc_info:
            verifier.verify(bearer(forge(scope="gunny:read")))

        error = exc_info.value
        assert error.code is ErrorCode.INSUFFICIENT_SCOPE
        assert error.status_code == 403
        assert 'error="insufficient_scope"' in error.headers["WWW-Authenticate"]
        assert GENERATE_SCOPE in error.headers["WWW-Authenticate"]

    def test_missing_scope_as_invalid_token_policy(self, clock):
        verifier = TokenVerifier(
            signing_key=SIGNING_KEY, scope_error_code=ErrorCode.INVALID_TOKEN, clock=clock
        )
        with pytest.raises(GatewayError) as exc_info:
            verifier.verify(bearer(forge(scope="gunny:read")))
        assert exc_info.value.code is ErrorCode.INVALID_TOKEN

    def test_scope_not_enforced(self, clock):
        verifier = TokenVerifier(signing_key=SIGNING_KEY, enforce_scope=False, clock=clock)
        assert verifier.verify(bearer(forge(scope=""))).sub == CLIENT_ID

    def test_scope_among_several(self, verifier):
        claims = verifier.verify(bearer(forge(scope=f"gunny:read {GENERATE_SCOPE}")))
        assert claims.scopes == {"gunny:read", GENERATE_SCOPE}

    def test_rejects_unsupported_scope_error_code(self):
        with pytest.raises(ValueError):
            TokenVerifier(signing_key=SIGNING_KEY, scope_error_code=ErrorCode.NOT_FOUND)

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import jwt
import pytest

from project_tracker_auth.application.ports.user_repository_port import UserRecord
from project_tracker_auth.infrastructure.security.token_issuer import (
    InvalidAccessTokenError,
    JwtTokenIssuer,
    TokenSigningConfig,
)

SECRET = "unit-test-signing-secret-0123456789abcdef"
CONFIG = TokenSigningConfig(
    secret_key=SECRET,
    issuer="project-tracker-api",
    audience="project-tracker-client",
    access_token_ttl=timedelta(minutes=15),
    refresh_token_ttl=timedelta(days=7),
)


def _user() -> UserRecord:
    now = datetime.now(tz=UTC)
    return UserRecord(
        user_id=uuid4(),
        email="a@x.com",
        password_hash="hash",
        first_name="Ada",
        last_name="Lovelace",
        is_active=True,
        created_at=now,
        updated_at=now,
    )


def test_issue_binds_user_and_expiry_into_signed_access_token() -> None:
    fixed_now = datetime(2026, 2, 15, 0, 0, 0, tzinfo=UTC)
    issuer = JwtTokenIssuer(config=CONFIG, now=lambda: fixed_now)
    user = _user()

    issued = issuer.issue(user=user)

    claims = jwt.decode(
        issued.access_token,
        SECRET,
        algorithms=["HS256"],
        audience="project-tracker-client",
        options={"verify_exp": False, "verify_iat": False},
    )
    assert claims["sub"] == str(user.user_id)
    assert claims["email"] == "a@x.com"
    assert claims["typ"] == "access"
    assert claims["iss"] == "project-tracker-api"
    assert claims["iat"] == int(fixed_now.timestamp())
    assert claims["exp"] == int((fixed_now + timedelta(minutes=15)).timestamp())
    assert issued.access_token_expires_in == 900
    assert issued.issued_at == fixed_now
    assert issued.refresh_token_expires_at == fixed_now + timedelta(days=7)


def test_refresh_token_is_random_and_independent_of_access_token() -> None:
    issuer = JwtTokenIssuer(config=CONFIG)
    user = _user()

    first = issuer.issue(user=user)
    second = issuer.issue(user=user)

    assert first.refresh_token != second.refresh_token
    assert first.refresh_token not in first.access_token
    assert len(first.refresh_token) >= 43


def test_hash_token_is_stable_sha256_hex() -> None:
    issuer = JwtTokenIssuer(config=CONFIG)

    digest = issuer.hash_token("opaque-value")

    assert digest == issuer.hash_token("opaque-value")
    assert digest != issuer.hash_token("opaque-value2")
    assert len(digest) == 64
    assert "opaque-value" not in digest


def test_decode_access_token_round_trips_claims() -> None:
    issuer = JwtTokenIssuer(config=CONFIG)
    user = _user()

    claims = issuer.decode_access_token(issuer.issue(user=user).access_token)

    assert claims.user_id == user.user_id
    assert claims.email == user.email
    assert claims.expires_at - claims.issued_at == timedelta(minutes=15)


def test_decode_rejects_expired_access_token() -> None:
    past = datetime.now(tz=UTC) - timedelta(hours=2)
    issuer = JwtTokenIssuer(config=CONFIG, now=lambda: past)
    token = issuer.issue(user=_user()).access_token

    with pytest.raises(InvalidAccessTokenError):
        JwtTokenIssuer(config=CONFIG).decode_access_token(token)


def test_decode_rejects_token_signed_with_another_key() -> None:
    other = JwtTokenIssuer(
        config=TokenSigningConfig(
            secret_key="another-signing-secret-0123456789abcdef",
            issuer=CONFIG.issuer,
            audience=CONFIG.audience,
        )
    )
    token = other.issue(user=_user()).access_token

    with pytest.raises(InvalidAccessTokenError):
        JwtTokenIssuer(config=CONFIG).decode_access_token(token)


def test_decode_rejects_wrong_audience_and_wrong_type() -> None:
    issuer = JwtTokenIssuer(config=CONFIG)
    now = datetime.now(tz=UTC)
    base_claims = {
        "sub": str(uuid4()),
        "iss": CONFIG.issuer,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=5)).timestamp()),
    }
    wrong_audience = jwt.encode(
        {**base_claims, "aud": "someone-else", "typ": "access"},
        SECRET,
        algorithm="HS256",
    )
    wrong_type = jwt.encode(
        {**base_claims, "aud": CONFIG.audience, "typ": "refresh"},
        SECRET,
        algorithm="HS256",
    )

    with pytest.raises(InvalidAccessTokenError):
        issuer.decode_access_token(wrong_audience)
    with pytest.raises(InvalidAccessTokenError):
        issuer.decode_access_token(wrong_type)

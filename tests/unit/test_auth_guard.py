from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from project_tracker_auth.application.ports.user_repository_port import (
    UserCreateInput,
    UserRecord,
)
from project_tracker_auth.infrastructure.http.auth_guard import (
    AccessTokenGuard,
    InvalidAuthTokenError,
    MissingAuthTokenError,
    extract_bearer_token,
)
from project_tracker_auth.infrastructure.security.token_issuer import (
    JwtTokenIssuer,
    TokenSigningConfig,
)

CONFIG = TokenSigningConfig(
    secret_key="unit-test-signing-secret-0123456789abcdef",
    issuer="project-tracker-api",
    audience="project-tracker-client",
)


class FakeUserRepository:
    def __init__(self, user: UserRecord | None) -> None:
        self.user = user

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        if self.user is None or self.user.user_id != user_id:
            return None
        return self.user

    async def get_by_email(self, *, email: str) -> UserRecord | None:  # pragma: no cover
        _ = email
        raise NotImplementedError

    async def create_user(self, payload: UserCreateInput) -> UserRecord:  # pragma: no cover
        _ = payload
        raise NotImplementedError


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


def test_extract_bearer_token_accepts_case_insensitive_scheme() -> None:
    assert extract_bearer_token("bearer abc") == "abc"
    assert extract_bearer_token("  Bearer abc  ") == "abc"


@pytest.mark.parametrize("header", [None, "", "   "])
def test_extract_bearer_token_requires_header(header: str | None) -> None:
    with pytest.raises(MissingAuthTokenError):
        extract_bearer_token(header)


@pytest.mark.parametrize("header", ["Basic abc", "Bearer", "Bearer a b"])
def test_extract_bearer_token_rejects_malformed_header(header: str) -> None:
    with pytest.raises(InvalidAuthTokenError):
        extract_bearer_token(header)


@pytest.mark.asyncio
async def test_guard_resolves_active_user_from_access_token() -> None:
    issuer = JwtTokenIssuer(config=CONFIG)
    user = _user()
    guard = AccessTokenGuard(token_issuer=issuer, user_repository=FakeUserRepository(user))
    token = issuer.issue(user=user).access_token

    resolved = await guard.require_active_user(authorization_header=f"Bearer {token}")

    assert resolved == user


@pytest.mark.asyncio
async def test_guard_rejects_inactive_user_and_expired_token() -> None:
    issuer = JwtTokenIssuer(config=CONFIG)
    user = _user()
    inactive_guard = AccessTokenGuard(
        token_issuer=issuer,
        user_repository=FakeUserRepository(replace(user, is_active=False)),
    )
    token = issuer.issue(user=user).access_token

    with pytest.raises(InvalidAuthTokenError):
        await inactive_guard.require_active_user(authorization_header=f"Bearer {token}")

    stale_issuer = JwtTokenIssuer(
        config=CONFIG,
        now=lambda: datetime.now(tz=UTC) - timedelta(hours=1),
    )
    stale_token = stale_issuer.issue(user=user).access_token
    guard = AccessTokenGuard(token_issuer=issuer, user_repository=FakeUserRepository(user))
    with pytest.raises(InvalidAuthTokenError):
        await guard.require_active_user(authorization_header=f"Bearer {stale_token}")

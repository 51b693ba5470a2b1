"""JWT access token and opaque refresh token issuer."""

from __future__ import annotations

import hashlib
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import jwt

from project_tracker_auth.application.ports.token_issuer_port import IssuedTokens, TokenIssuerPort
from project_tracker_auth.application.ports.user_repository_port import UserRecord

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_BYTES = 32


class InvalidAccessTokenError(ValueError):
    """Raised when an access token fails signature, lifetime or claim checks."""


@dataclass(frozen=True)
class TokenSigningConfig:
    """Immutable signing configuration, built once at process start."""

    secret_key: str
    issuer: str
    audience: str
    algorithm: str = "HS256"
    access_token_ttl: timedelta = timedelta(minutes=15)
    refresh_token_ttl: timedelta = timedelta(days=7)


@dataclass(frozen=True)
class AccessTokenClaims:
    """Verified claims carried by one access token."""

    user_id: UUID
    email: str
    issued_at: datetime
    expires_at: datetime
    token_id: str


class JwtTokenIssuer(TokenIssuerPort):
    """Mint HS-signed JWT access tokens paired with random refresh tokens."""

    def __init__(
        self,
        *,
        config: TokenSigningConfig,
        refresh_token_factory: Callable[[], str] | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._refresh_token_factory = refresh_token_factory or _new_refresh_token
        self._now = now or (lambda: datetime.now(tz=UTC))

    def issue(self, *, user: UserRecord) -> IssuedTokens:
        """Mint one access/refresh pair bound to the given user."""

        issued_at = self._now()
        access_expires_at = issued_at + self._config.access_token_ttl
        claims = {
            "sub": str(user.user_id),
            "email": user.email,
            "typ": ACCESS_TOKEN_TYPE,
            "iss": self._config.issuer,
            "aud": self._config.audience,
            "iat": int(issued_at.timestamp()),
            "exp": int(access_expires_at.timestamp()),
            "jti": uuid4().hex,
        }
        access_token = jwt.encode(
            claims,
            self._config.secret_key,
            algorithm=self._config.algorithm,
        )
        return IssuedTokens(
            access_token=access_token,
            refresh_token=self._refresh_token_factory(),
            access_token_expires_in=int(self._config.access_token_ttl.total_seconds()),
            issued_at=issued_at,
            refresh_token_expires_at=issued_at + self._config.refresh_token_ttl,
        )

    def hash_token(self, token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def decode_access_token(self, token: str) -> AccessTokenClaims:
        """Verify one access token and return its claims."""

        try:
            payload = jwt.decode(
                token,
                self._config.secret_key,
                algorithms=[self._config.algorithm],
                audience=self._config.audience,
                issuer=self._config.issuer,
                options={"require": ["sub", "exp", "iat", "iss", "aud"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidAccessTokenError("invalid or expired access token") from exc

        if payload.get("typ") != ACCESS_TOKEN_TYPE:
            raise InvalidAccessTokenError("invalid or expired access token")
        try:
            user_id = UUID(str(payload["sub"]))
        except ValueError as exc:
            raise InvalidAccessTokenError("invalid or expired access token") from exc

        return AccessTokenClaims(
            user_id=user_id,
            email=str(payload.get("email", "")),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            token_id=str(payload.get("jti", "")),
        )


def _new_refresh_token() -> str:
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)

"""Auth header parsing and access-token guard for protected endpoints."""

from __future__ import annotations

from project_tracker_auth.application.ports.user_repository_port import (
    UserRecord,
    UserRepositoryPort,
)
from project_tracker_auth.infrastructure.security.token_issuer import (
    InvalidAccessTokenError,
    JwtTokenIssuer,
)


class MissingAuthTokenError(PermissionError):
    """Raised when a bearer token is required but not provided."""


class InvalidAuthTokenError(PermissionError):
    """Raised when the bearer header or the access token itself is invalid."""


def extract_bearer_token(authorization_header: str | None) -> str:
    """Extract the token from a standard `Authorization: Bearer <token>` header."""

    if authorization_header is None or not authorization_header.strip():
        raise MissingAuthTokenError("missing bearer token")

    parts = authorization_header.strip().split()
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise InvalidAuthTokenError("invalid bearer token header")

    return parts[1]


class AccessTokenGuard:
    """Resolve the active caller behind a signed access token.

    Validation is stateless (signature, lifetime, issuer, audience); the
    user lookup only confirms the account still exists and is active.
    """

    def __init__(
        self,
        *,
        token_issuer: JwtTokenIssuer,
        user_repository: UserRepositoryPort,
    ) -> None:
        self._token_issuer = token_issuer
        self._user_repository = user_repository

    async def require_active_user(self, *, authorization_header: str | None) -> UserRecord:
        token = extract_bearer_token(authorization_header)
        try:
            claims = self._token_issuer.decode_access_token(token)
        except InvalidAccessTokenError as exc:
            raise InvalidAuthTokenError("invalid or expired access token") from exc

        user = await self._user_repository.get_by_id(user_id=claims.user_id)
        if user is None or not user.is_active:
            raise InvalidAuthTokenError("invalid or expired access token")

        return user

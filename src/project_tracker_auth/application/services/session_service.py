"""Session manager: login, refresh-token rotation and logout."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from project_tracker_auth.application.ports.auth_event_repository_port import (
    AuthEventCreateInput,
    AuthEventRepositoryPort,
)
from project_tracker_auth.application.ports.refresh_token_repository_port import (
    RefreshTokenCreateInput,
    RefreshTokenRepositoryPort,
)
from project_tracker_auth.application.ports.store_errors import StoreUnavailableError
from project_tracker_auth.application.ports.token_issuer_port import (
    IssuedTokens,
    TokenIssuerPort,
)
from project_tracker_auth.application.ports.user_repository_port import UserRepositoryPort
from project_tracker_auth.application.services.credential_verifier import (
    AuthOutcome,
    CredentialVerifier,
)
from project_tracker_auth.domain.auth.refresh_token_state import (
    RefreshTokenState,
    classify_refresh_token,
)

logger = logging.getLogger(__name__)

TOKEN_TYPE_BEARER = "Bearer"


class InvalidCredentialsError(PermissionError):
    """Raised for any failed login: unknown email, wrong password or inactive user."""

    def __init__(self) -> None:
        super().__init__("invalid credentials")


class InvalidTokenError(PermissionError):
    """Raised when a refresh token is unknown, revoked, rotated or malformed."""

    def __init__(self) -> None:
        super().__init__("invalid refresh token")


class TokenExpiredError(PermissionError):
    """Raised when a never-revoked refresh token is past its expiry."""

    def __init__(self) -> None:
        super().__init__("refresh token expired")


@dataclass(frozen=True)
class TokenPair:
    """Access/refresh pair handed back to the caller."""

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = TOKEN_TYPE_BEARER


class SessionService:
    """Orchestrate login, refresh and logout over the refresh-token chain.

    A refresh succeeds only from an ``active`` token. Presenting a token that
    was already rotated or revoked is treated as possible theft: every live
    token of the owner is revoked before the request is rejected.
    """

    def __init__(
        self,
        *,
        credential_verifier: CredentialVerifier,
        token_issuer: TokenIssuerPort,
        refresh_tokens: RefreshTokenRepositoryPort,
        users: UserRepositoryPort,
        auth_events: AuthEventRepositoryPort,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._credential_verifier = credential_verifier
        self._token_issuer = token_issuer
        self._refresh_tokens = refresh_tokens
        self._users = users
        self._auth_events = auth_events
        self._now = now or (lambda: datetime.now(tz=UTC))

    async def login(
        self,
        *,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> TokenPair:
        """Verify credentials, mint a pair and persist its refresh token."""

        result = await self._credential_verifier.verify(
            email=email,
            password=password,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        if result.outcome is not AuthOutcome.SUCCESS or result.user is None:
            raise InvalidCredentialsError()

        issued = self._token_issuer.issue(user=result.user)
        stored = await self._refresh_tokens.insert(self._create_input(result.user.user_id, issued))
        logger.info(
            "session_login user_id=%s refresh_token_id=%s",
            result.user.user_id,
            stored.id,
        )
        return _to_token_pair(issued)

    async def refresh(
        self,
        *,
        refresh_token: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> TokenPair:
        """Exchange one active refresh token for a new pair, rotating the chain."""

        if not refresh_token.strip():
            await self._record(
                user_id=None,
                event_type="refresh_failed",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"reason": "malformed_token"},
            )
            raise InvalidTokenError()

        now = self._now()
        record = await self._refresh_tokens.find_by_hash(
            token_hash=self._token_issuer.hash_token(refresh_token)
        )
        if record is None:
            await self._record(
                user_id=None,
                event_type="refresh_failed",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"reason": "unknown_token"},
            )
            raise InvalidTokenError()

        state = classify_refresh_token(
            expires_at=record.expires_at,
            revoked_at=record.revoked_at,
            replaced_by_id=record.replaced_by_id,
            now=now,
        )
        if state in (RefreshTokenState.ROTATED, RefreshTokenState.REVOKED):
            # A concurrent refresh that reads this row after the winner commits
            # also lands here and revokes the winner's fresh successor.
            revoked_count = await self._refresh_tokens.revoke_all_for_user(
                user_id=record.user_id,
                revoked_at=now,
            )
            logger.warning(
                "session_refresh_reuse_detected user_id=%s refresh_token_id=%s state=%s "
                "revoked_count=%s",
                record.user_id,
                record.id,
                state.value,
                revoked_count,
            )
            await self._record(
                user_id=record.user_id,
                event_type="refresh_reuse_detected",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={
                    "refresh_token_id": record.id,
                    "state": state.value,
                    "revoked_count": revoked_count,
                },
            )
            raise InvalidTokenError()

        if state is RefreshTokenState.EXPIRED:
            await self._record(
                user_id=record.user_id,
                event_type="refresh_failed",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"refresh_token_id": record.id, "reason": "expired"},
            )
            raise TokenExpiredError()

        user = await self._users.get_by_id(user_id=record.user_id)
        if user is None or not user.is_active:
            await self._refresh_tokens.revoke(token_id=record.id, revoked_at=now)
            await self._record(
                user_id=record.user_id,
                event_type="refresh_failed",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"refresh_token_id": record.id, "reason": "inactive_user"},
            )
            raise InvalidTokenError()

        issued = self._token_issuer.issue(user=user)
        successor = await self._refresh_tokens.rotate(
            token_id=record.id,
            successor=self._create_input(user.user_id, issued),
            revoked_at=now,
        )
        if successor is None:
            # Lost the race against a concurrent refresh of the same token.
            await self._record(
                user_id=record.user_id,
                event_type="refresh_failed",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"refresh_token_id": record.id, "reason": "concurrent_rotation"},
            )
            raise InvalidTokenError()

        # The rotation is committed; the caller must receive the new pair even
        # when the success event cannot be stored.
        try:
            await self._record(
                user_id=user.user_id,
                event_type="refresh_success",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"refresh_token_id": record.id, "successor_id": successor.id},
            )
        except StoreUnavailableError as exc:
            logger.error(
                "session_refresh_event_not_recorded user_id=%s successor_id=%s operation=%s",
                user.user_id,
                successor.id,
                exc.operation,
            )
        return _to_token_pair(issued)

    async def logout(
        self,
        *,
        refresh_token: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Revoke one refresh token; unknown or already revoked tokens are not an error."""

        record = None
        if refresh_token.strip():
            record = await self._refresh_tokens.find_by_hash(
                token_hash=self._token_issuer.hash_token(refresh_token)
            )
        if record is None:
            await self._record(
                user_id=None,
                event_type="logout",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"reason": "unknown_token"},
            )
            return

        revoked = await self._refresh_tokens.revoke(token_id=record.id, revoked_at=self._now())
        await self._record(
            user_id=record.user_id,
            event_type="logout",
            ip_address=ip_address,
            user_agent=user_agent,
            payload={"refresh_token_id": record.id, "revoked": revoked},
        )

    def _create_input(self, user_id: UUID, issued: IssuedTokens) -> RefreshTokenCreateInput:
        return RefreshTokenCreateInput(
            user_id=user_id,
            token_hash=self._token_issuer.hash_token(issued.refresh_token),
            issued_at=issued.issued_at,
            expires_at=issued.refresh_token_expires_at,
        )

    async def _record(
        self,
        *,
        user_id: UUID | None,
        event_type: str,
        ip_address: str | None,
        user_agent: str | None,
        payload: dict[str, Any],
    ) -> None:
        logger.info("auth_event event_type=%s user_id=%s", event_type, user_id)
        await self._auth_events.append_event(
            AuthEventCreateInput(
                user_id=user_id,
                event_type=event_type,
                ip_address=ip_address,
                user_agent=user_agent,
                payload=payload,
            )
        )


def _to_token_pair(issued: IssuedTokens) -> TokenPair:
    return TokenPair(
        access_token=issued.access_token,
        refresh_token=issued.refresh_token,
        expires_in=issued.access_token_expires_in,
    )

"""Application service for email/password credential verification."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from project_tracker_auth.application.ports.auth_event_repository_port import (
    AuthEventCreateInput,
    AuthEventRepositoryPort,
)
from project_tracker_auth.application.ports.password_hasher_port import PasswordHasherPort
from project_tracker_auth.application.ports.user_repository_port import (
    UserRecord,
    UserRepositoryPort,
)
from project_tracker_auth.domain.auth.credentials import (
    normalize_user_email,
    normalize_user_password,
)

logger = logging.getLogger(__name__)


class AuthOutcome(StrEnum):
    """Internal authentication outcomes, kept for telemetry only."""

    SUCCESS = "success"
    INVALID_CREDENTIALS = "invalid_credentials"
    INACTIVE_USER = "inactive_user"


@dataclass(frozen=True)
class AuthResult:
    """Authentication result model."""

    outcome: AuthOutcome
    user: UserRecord | None = None


class CredentialVerifier:
    """Verify credentials against stored bcrypt hashes and append auth events.

    Every failing path performs exactly one password hash check (a decoy hash
    stands in for unknown users) so latency does not reveal which check
    failed.
    """

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        auth_events: AuthEventRepositoryPort,
        password_hasher: PasswordHasherPort,
    ) -> None:
        self._users = users
        self._auth_events = auth_events
        self._password_hasher = password_hasher
        self._decoy_hash = password_hasher.hash_password(secrets.token_urlsafe(16))

    async def verify(
        self,
        *,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        """Verify one email/password pair and always emit one auth event."""

        try:
            normalized_email = normalize_user_email(email=email)
            normalize_user_password(password=password)
        except ValueError:
            self._burn_decoy_check(password=password)
            await self._record(
                user_id=None,
                event_type="login_failed",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"reason": "blank_credentials"},
            )
            return AuthResult(outcome=AuthOutcome.INVALID_CREDENTIALS)

        user = await self._users.get_by_email(email=normalized_email)
        if user is None:
            self._burn_decoy_check(password=password)
            await self._record(
                user_id=None,
                event_type="login_failed",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"email": normalized_email, "reason": "invalid_credentials"},
            )
            return AuthResult(outcome=AuthOutcome.INVALID_CREDENTIALS)

        is_valid = self._password_hasher.verify_password(
            password=password,
            password_hash=user.password_hash,
        )
        if not is_valid:
            await self._record(
                user_id=user.user_id,
                event_type="login_failed",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"email": normalized_email, "reason": "invalid_credentials"},
            )
            return AuthResult(outcome=AuthOutcome.INVALID_CREDENTIALS)

        if not user.is_active:
            await self._record(
                user_id=user.user_id,
                event_type="login_blocked_inactive",
                ip_address=ip_address,
                user_agent=user_agent,
                payload={"email": normalized_email},
            )
            return AuthResult(outcome=AuthOutcome.INACTIVE_USER)

        await self._record(
            user_id=user.user_id,
            event_type="login_success",
            ip_address=ip_address,
            user_agent=user_agent,
            payload={"email": normalized_email},
        )
        return AuthResult(outcome=AuthOutcome.SUCCESS, user=user)

    def _burn_decoy_check(self, *, password: str) -> None:
        self._password_hasher.verify_password(password=password, password_hash=self._decoy_hash)

    async def _record(
        self,
        *,
        user_id: UUID | None,
        event_type: str,
        ip_address: str | None,
        user_agent: str | None,
        payload: dict[str, str],
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

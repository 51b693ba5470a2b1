"""Application service for self-service account registration."""

from __future__ import annotations

import logging

from project_tracker_auth.application.ports.password_hasher_port import PasswordHasherPort
from project_tracker_auth.application.ports.user_repository_port import (
    UserAlreadyExistsError,
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from project_tracker_auth.domain.auth.credentials import (
    normalize_person_name,
    normalize_user_email,
    normalize_user_password,
)

logger = logging.getLogger(__name__)


class UserRegistrationService:
    """Create active user accounts with normalized email and bcrypt hash."""

    def __init__(
        self,
        *,
        users: UserRepositoryPort,
        password_hasher: PasswordHasherPort,
    ) -> None:
        self._users = users
        self._password_hasher = password_hasher

    async def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> UserRecord:
        """Create one user; raise `UserAlreadyExistsError` on duplicate email."""

        normalized_email = normalize_user_email(email=email)
        normalized_password = normalize_user_password(password=password)
        normalized_first_name = normalize_person_name(value=first_name, field_name="first_name")
        normalized_last_name = normalize_person_name(value=last_name, field_name="last_name")

        if await self._users.get_by_email(email=normalized_email) is not None:
            raise UserAlreadyExistsError(email=normalized_email)

        payload = UserCreateInput(
            email=normalized_email,
            password_hash=self._password_hasher.hash_password(normalized_password),
            first_name=normalized_first_name,
            last_name=normalized_last_name,
        )
        user = await self._users.create_user(payload)
        logger.info("user_registered user_id=%s", user.user_id)
        return user

"""Port for user lookup and creation used by authentication services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID


class UserAlreadyExistsError(ValueError):
    """Raised when a user with the same normalized email already exists."""

    def __init__(self, *, email: str) -> None:
        super().__init__("user with this email already exists")
        self.email = email


@dataclass(frozen=True)
class UserCreateInput:
    """Input payload for inserting one user account."""

    email: str
    password_hash: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class UserRecord:
    """User persistence model."""

    user_id: UUID
    email: str
    password_hash: str
    first_name: str | None
    last_name: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class UserRepositoryPort(Protocol):
    """User repository contract."""

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id, including inactive users."""

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email, including inactive users."""

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert one active user or raise `UserAlreadyExistsError`."""

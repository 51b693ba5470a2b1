"""Port for refresh token persistence operations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class RefreshTokenCreateInput:
    """Input payload for inserting a refresh token record."""

    user_id: UUID
    token_hash: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class RefreshTokenRecord:
    """Persisted refresh token model, including revoked and expired rows."""

    id: int
    user_id: UUID
    token_hash: str
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None
    replaced_by_id: int | None


class RefreshTokenRepositoryPort(Protocol):
    """Refresh token persistence contract.

    Lookups return raw rows; interpreting expiry and revocation is left to
    the caller. Every method raises `StoreUnavailableError` on backend failure.
    """

    async def insert(self, payload: RefreshTokenCreateInput) -> RefreshTokenRecord:
        """Persist a new refresh token record."""

    async def find_by_hash(self, *, token_hash: str) -> RefreshTokenRecord | None:
        """Return the token row for one hash, whatever its state."""

    async def revoke(self, *, token_id: int, revoked_at: datetime) -> bool:
        """Revoke one token if not yet revoked; return whether this call revoked it."""

    async def rotate(
        self,
        *,
        token_id: int,
        successor: RefreshTokenCreateInput,
        revoked_at: datetime,
    ) -> RefreshTokenRecord | None:
        """Atomically revoke one live token and insert its successor.

        Returns None, with nothing written, when the predecessor was
        already revoked.
        """

    async def revoke_all_for_user(self, *, user_id: UUID, revoked_at: datetime) -> int:
        """Revoke all currently non-revoked tokens for one user and return affected count."""

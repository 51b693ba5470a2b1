"""Port for minting access/refresh token pairs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from project_tracker_auth.application.ports.user_repository_port import UserRecord


@dataclass(frozen=True)
class IssuedTokens:
    """Freshly minted token pair; nothing here is persisted yet."""

    access_token: str
    refresh_token: str
    access_token_expires_in: int
    issued_at: datetime
    refresh_token_expires_at: datetime


class TokenIssuerPort(Protocol):
    """Token minting contract."""

    def issue(self, *, user: UserRecord) -> IssuedTokens:
        """Mint a signed access token and a random refresh token for one user."""

    def hash_token(self, token: str) -> str:
        """Return the storage digest of one opaque refresh token value."""

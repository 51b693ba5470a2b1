"""Refresh-token chain link states and their classification rules."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum


class RefreshTokenState(StrEnum):
    """States of one link in a refresh-token chain."""

    ACTIVE = "active"
    ROTATED = "rotated"
    REVOKED = "revoked"
    EXPIRED = "expired"


def classify_refresh_token(
    *,
    expires_at: datetime,
    revoked_at: datetime | None,
    replaced_by_id: int | None,
    now: datetime,
) -> RefreshTokenState:
    """Return the state of one refresh token at instant `now`.

    Revocation wins over expiry: a revoked token stays revoked (or rotated)
    forever, whatever its expiry says.
    """

    if revoked_at is not None:
        if replaced_by_id is not None:
            return RefreshTokenState.ROTATED
        return RefreshTokenState.REVOKED
    if ensure_utc(now) >= ensure_utc(expires_at):
        return RefreshTokenState.EXPIRED
    return RefreshTokenState.ACTIVE


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops tzinfo on read)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)

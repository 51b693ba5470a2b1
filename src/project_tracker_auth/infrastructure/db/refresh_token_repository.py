"""SQLAlchemy adapter for refresh token persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from project_tracker_auth.application.ports.refresh_token_repository_port import (
    RefreshTokenCreateInput,
    RefreshTokenRecord,
    RefreshTokenRepositoryPort,
)
from project_tracker_auth.application.ports.store_errors import StoreUnavailableError
from project_tracker_auth.infrastructure.db.metadata import refresh_tokens


class SqlAlchemyRefreshTokenRepository(RefreshTokenRepositoryPort):
    """Refresh token repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, payload: RefreshTokenCreateInput) -> RefreshTokenRecord:
        """Persist a token hash row and return the inserted token record."""

        try:
            async with self._session_factory() as session:
                result = await session.execute(_insert_statement(payload))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(operation="refresh_token_insert") from exc

        return _to_refresh_token_record(result.mappings().one())

    async def find_by_hash(self, *, token_hash: str) -> RefreshTokenRecord | None:
        """Return the token row for one hash, including revoked and expired rows."""

        statement = sa.select(*refresh_tokens.c).where(
            refresh_tokens.c.token_hash == token_hash,
        ).limit(1)

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(operation="refresh_token_find") from exc

        row = result.mappings().first()
        if row is None:
            return None
        return _to_refresh_token_record(row)

    async def revoke(self, *, token_id: int, revoked_at: datetime) -> bool:
        """Set `revoked_at` only when still unset; report whether this call set it."""

        try:
            async with self._session_factory() as session:
                result = cast(
                    CursorResult[Any],
                    await session.execute(_revoke_statement(token_id, revoked_at)),
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(operation="refresh_token_revoke") from exc

        return int(result.rowcount or 0) == 1

    async def rotate(
        self,
        *,
        token_id: int,
        successor: RefreshTokenCreateInput,
        revoked_at: datetime,
    ) -> RefreshTokenRecord | None:
        """Revoke the predecessor and insert its successor in one transaction.

        The conditional revoke is the serialization point: of two concurrent
        rotations of the same token only one sees an affected row.
        """

        try:
            async with self._session_factory() as session:
                revoke_result = cast(
                    CursorResult[Any],
                    await session.execute(_revoke_statement(token_id, revoked_at)),
                )
                if int(revoke_result.rowcount or 0) != 1:
                    await session.rollback()
                    return None

                insert_result = await session.execute(_insert_statement(successor))
                successor_row = insert_result.mappings().one()
                await session.execute(
                    sa.update(refresh_tokens)
                    .where(refresh_tokens.c.id == token_id)
                    .values(replaced_by_id=successor_row["id"])
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(operation="refresh_token_rotate") from exc

        return _to_refresh_token_record(successor_row)

    async def revoke_all_for_user(self, *, user_id: UUID, revoked_at: datetime) -> int:
        """Revoke all currently non-revoked tokens for one user."""

        statement = (
            sa.update(refresh_tokens)
            .where(
                refresh_tokens.c.user_id == user_id,
                refresh_tokens.c.revoked_at.is_(None),
            )
            .values(revoked_at=revoked_at)
        )

        try:
            async with self._session_factory() as session:
                result = cast(CursorResult[Any], await session.execute(statement))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(operation="refresh_token_revoke_all") from exc

        return int(result.rowcount or 0)


def _insert_statement(payload: RefreshTokenCreateInput) -> sa.Insert:
    return sa.insert(refresh_tokens).values(
        user_id=payload.user_id,
        token_hash=payload.token_hash,
        issued_at=payload.issued_at,
        expires_at=payload.expires_at,
    ).returning(*refresh_tokens.c)


def _revoke_statement(token_id: int, revoked_at: datetime) -> sa.Update:
    return (
        sa.update(refresh_tokens)
        .where(
            refresh_tokens.c.id == token_id,
            refresh_tokens.c.revoked_at.is_(None),
        )
        .values(revoked_at=revoked_at)
    )


def _to_refresh_token_record(row: sa.RowMapping) -> RefreshTokenRecord:
    raw_user_id = row["user_id"]
    user_id = raw_user_id if isinstance(raw_user_id, UUID) else UUID(str(raw_user_id))
    raw_replaced_by = row["replaced_by_id"]
    return RefreshTokenRecord(
        id=int(row["id"]),
        user_id=user_id,
        token_hash=cast(str, row["token_hash"]),
        issued_at=cast(datetime, row["issued_at"]),
        expires_at=cast(datetime, row["expires_at"]),
        revoked_at=cast(datetime | None, row["revoked_at"]),
        replaced_by_id=None if raw_replaced_by is None else int(raw_replaced_by),
    )

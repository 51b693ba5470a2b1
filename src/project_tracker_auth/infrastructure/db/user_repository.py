"""SQLAlchemy adapter for user lookup and creation."""

from __future__ import annotations

from datetime import datetime
from typing import cast
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from project_tracker_auth.application.ports.store_errors import StoreUnavailableError
from project_tracker_auth.application.ports.user_repository_port import (
    UserAlreadyExistsError,
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from project_tracker_auth.infrastructure.db.metadata import users

_USER_COLUMNS = (
    users.c.id,
    users.c.email,
    users.c.password_hash,
    users.c.first_name,
    users.c.last_name,
    users.c.is_active,
    users.c.created_at,
    users.c.updated_at,
)


class SqlAlchemyUserRepository(UserRepositoryPort):
    """User repository backed by SQLAlchemy async sessions."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, *, user_id: UUID) -> UserRecord | None:
        """Return user by id, including inactive users."""

        statement = sa.select(*_USER_COLUMNS).where(users.c.id == user_id).limit(1)
        return await self._fetch_one(statement, operation="user_get_by_id")

    async def get_by_email(self, *, email: str) -> UserRecord | None:
        """Return user by normalized email, including inactive users."""

        statement = sa.select(*_USER_COLUMNS).where(users.c.email == email).limit(1)
        return await self._fetch_one(statement, operation="user_get_by_email")

    async def create_user(self, payload: UserCreateInput) -> UserRecord:
        """Insert one active user row and return it."""

        statement = sa.insert(users).values(
            id=uuid4(),
            email=payload.email,
            password_hash=payload.password_hash,
            first_name=payload.first_name,
            last_name=payload.last_name,
            is_active=True,
        ).returning(*_USER_COLUMNS)

        try:
            async with self._session_factory() as session:
                try:
                    result = await session.execute(statement)
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    raise UserAlreadyExistsError(email=payload.email) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(operation="user_create") from exc

        return _to_user_record(result.mappings().one())

    async def _fetch_one(
        self,
        statement: sa.Select[tuple[object, ...]],
        *,
        operation: str,
    ) -> UserRecord | None:
        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(operation=operation) from exc

        row = result.mappings().first()
        if row is None:
            return None
        return _to_user_record(row)


def _to_user_record(row: sa.RowMapping) -> UserRecord:
    raw_user_id = row["id"]
    user_id = raw_user_id if isinstance(raw_user_id, UUID) else UUID(str(raw_user_id))
    return UserRecord(
        user_id=user_id,
        email=cast(str, row["email"]),
        password_hash=cast(str, row["password_hash"]),
        first_name=cast(str | None, row["first_name"]),
        last_name=cast(str | None, row["last_name"]),
        is_active=bool(row["is_active"]),
        created_at=cast(datetime, row["created_at"]),
        updated_at=cast(datetime, row["updated_at"]),
    )

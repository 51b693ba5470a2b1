from __future__ import annotations

from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic.config import Config

from alembic import command
from project_tracker_auth.application.ports.auth_event_repository_port import (
    AuthEventCreateInput,
)
from project_tracker_auth.application.ports.user_repository_port import (
    UserAlreadyExistsError,
    UserCreateInput,
)
from project_tracker_auth.infrastructure.db.auth_event_repository import (
    SqlAlchemyAuthEventRepository,
)
from project_tracker_auth.infrastructure.db.session import create_session_factory
from project_tracker_auth.infrastructure.db.user_repository import SqlAlchemyUserRepository


def _upgrade_head(tmp_path: Path, filename: str) -> tuple[str, str]:
    db_path = tmp_path / filename
    sync_url = f"sqlite+pysqlite:///{db_path}"
    async_url = f"sqlite+aiosqlite:///{db_path}"

    alembic_config = Config("alembic.ini")
    alembic_config.set_main_option("sqlalchemy.url", sync_url)
    command.upgrade(alembic_config, "head")

    return sync_url, async_url


def _create_input(email: str) -> UserCreateInput:
    return UserCreateInput(
        email=email,
        password_hash="hash",
        first_name="Ada",
        last_name="Lovelace",
    )


@pytest.mark.asyncio
async def test_user_repository_creates_and_fetches_by_email_and_id(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "user_repo_create.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))

    created = await repo.create_user(_create_input("a@x.com"))
    by_email = await repo.get_by_email(email="a@x.com")
    by_id = await repo.get_by_id(user_id=created.user_id)

    assert created.is_active is True
    assert created.full_name == "Ada Lovelace"
    assert by_email == created
    assert by_id == created
    assert await repo.get_by_email(email="missing@x.com") is None


@pytest.mark.asyncio
async def test_user_repository_maps_duplicate_email_to_domain_error(tmp_path: Path) -> None:
    _, async_url = _upgrade_head(tmp_path, "user_repo_duplicate.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))
    await repo.create_user(_create_input("a@x.com"))

    with pytest.raises(UserAlreadyExistsError):
        await repo.create_user(_create_input("a@x.com"))


@pytest.mark.asyncio
async def test_user_repository_returns_inactive_users(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "user_repo_inactive.db")
    repo = SqlAlchemyUserRepository(create_session_factory(async_url))
    created = await repo.create_user(_create_input("a@x.com"))

    engine = sa.create_engine(sync_url)
    with engine.begin() as connection:
        connection.execute(
            sa.text("UPDATE users SET is_active = 0 WHERE id = :id"),
            {"id": created.user_id.hex},
        )

    fetched = await repo.get_by_email(email="a@x.com")

    assert fetched is not None
    assert fetched.is_active is False


@pytest.mark.asyncio
async def test_auth_event_repository_appends_rows_with_payload(tmp_path: Path) -> None:
    sync_url, async_url = _upgrade_head(tmp_path, "auth_events_append.db")
    session_factory = create_session_factory(async_url)
    user = await SqlAlchemyUserRepository(session_factory).create_user(_create_input("a@x.com"))
    repo = SqlAlchemyAuthEventRepository(session_factory)

    first_id = await repo.append_event(
        AuthEventCreateInput(
            user_id=user.user_id,
            event_type="login_success",
            ip_address="127.0.0.1",
            user_agent="pytest",
            payload={"email": "a@x.com"},
        )
    )
    second_id = await repo.append_event(
        AuthEventCreateInput(
            user_id=None,
            event_type="refresh_failed",
            payload={"reason": "unknown_token"},
        )
    )

    assert second_id > first_id
    engine = sa.create_engine(sync_url)
    with engine.connect() as connection:
        rows = connection.execute(
            sa.text("SELECT event_type, ip_address, user_id FROM auth_events ORDER BY id")
        ).all()
    assert [row.event_type for row in rows] == ["login_success", "refresh_failed"]
    assert rows[0].ip_address == "127.0.0.1"
    assert rows[1].user_id is None

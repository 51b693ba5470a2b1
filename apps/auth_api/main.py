"""auth-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging
from datetime import timedelta

import uvicorn
from fastapi import FastAPI

from project_tracker_auth.application.services.credential_verifier import CredentialVerifier
from project_tracker_auth.application.services.session_service import SessionService
from project_tracker_auth.application.services.user_registration_service import (
    UserRegistrationService,
)
from project_tracker_auth.config.settings import Settings, load_settings
from project_tracker_auth.infrastructure.db.auth_event_repository import (
    SqlAlchemyAuthEventRepository,
)
from project_tracker_auth.infrastructure.db.refresh_token_repository import (
    SqlAlchemyRefreshTokenRepository,
)
from project_tracker_auth.infrastructure.db.session import create_session_factory
from project_tracker_auth.infrastructure.db.user_repository import SqlAlchemyUserRepository
from project_tracker_auth.infrastructure.http.auth_guard import AccessTokenGuard
from project_tracker_auth.infrastructure.http.auth_router import build_auth_router
from project_tracker_auth.infrastructure.logging import configure_logging
from project_tracker_auth.infrastructure.security.password_hasher import BcryptPasswordHasher
from project_tracker_auth.infrastructure.security.token_issuer import (
    JwtTokenIssuer,
    TokenSigningConfig,
)

AUTH_API_HOST = "0.0.0.0"
AUTH_API_PORT = 8000
logger = logging.getLogger(__name__)


def build_signing_config(settings: Settings) -> TokenSigningConfig:
    """Freeze signing settings into the issuer's immutable configuration."""

    return TokenSigningConfig(
        secret_key=settings.jwt_secret_key,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        algorithm=settings.jwt_algorithm,
        access_token_ttl=timedelta(minutes=settings.access_token_expire_minutes),
        refresh_token_ttl=timedelta(days=settings.refresh_token_expire_days),
    )


def build_services(
    database_url: str,
    *,
    token_issuer: JwtTokenIssuer,
    password_hasher: BcryptPasswordHasher | None = None,
) -> tuple[SessionService, UserRegistrationService, AccessTokenGuard]:
    """Build session, registration and guard services over one session factory."""

    session_factory = create_session_factory(database_url)
    users = SqlAlchemyUserRepository(session_factory)
    auth_events = SqlAlchemyAuthEventRepository(session_factory)
    hasher = password_hasher or BcryptPasswordHasher()

    session_service = SessionService(
        credential_verifier=CredentialVerifier(
            users=users,
            auth_events=auth_events,
            password_hasher=hasher,
        ),
        token_issuer=token_issuer,
        refresh_tokens=SqlAlchemyRefreshTokenRepository(session_factory),
        users=users,
        auth_events=auth_events,
    )
    registration_service = UserRegistrationService(users=users, password_hasher=hasher)
    access_guard = AccessTokenGuard(token_issuer=token_issuer, user_repository=users)
    return session_service, registration_service, access_guard


def create_app(
    *,
    database_url: str | None = None,
    token_issuer: JwtTokenIssuer | None = None,
    password_hasher: BcryptPasswordHasher | None = None,
) -> FastAPI:
    """Create FastAPI app exposing the /auth endpoints.

    Settings are read once here; the signing key never changes for the
    lifetime of the returned app.
    """

    if database_url is None or token_issuer is None:
        settings = load_settings()
        configure_logging(level=settings.log_level)
        if database_url is None:
            database_url = settings.database_url
        if token_issuer is None:
            token_issuer = JwtTokenIssuer(config=build_signing_config(settings))

    session_service, registration_service, access_guard = build_services(
        database_url,
        token_issuer=token_issuer,
        password_hasher=password_hasher,
    )

    app = FastAPI(title="project-tracker-auth")
    app.include_router(
        build_auth_router(
            session_service=session_service,
            registration_service=registration_service,
            access_guard=access_guard,
        )
    )
    logger.info("auth_api_app_created")
    return app


def run_asgi_server(*, host: str = AUTH_API_HOST, port: int = AUTH_API_PORT) -> None:
    """Run auth-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.auth_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run auth-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()

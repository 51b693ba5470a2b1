"""FastAPI router for login, token refresh, logout and account endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from project_tracker_auth.application.dto.auth_models import (
    LoginRequest,
    MessageResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from project_tracker_auth.application.ports.store_errors import StoreUnavailableError
from project_tracker_auth.application.ports.user_repository_port import (
    UserAlreadyExistsError,
    UserRecord,
)
from project_tracker_auth.application.services.session_service import (
    InvalidCredentialsError,
    InvalidTokenError,
    SessionService,
    TokenExpiredError,
    TokenPair,
)
from project_tracker_auth.application.services.user_registration_service import (
    UserRegistrationService,
)
from project_tracker_auth.infrastructure.http.auth_guard import (
    AccessTokenGuard,
    InvalidAuthTokenError,
    MissingAuthTokenError,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "invalid credentials"
INVALID_REFRESH_TOKEN_MESSAGE = "invalid refresh token"
SERVICE_UNAVAILABLE_MESSAGE = "service unavailable"


def build_auth_router(
    *,
    session_service: SessionService,
    registration_service: UserRegistrationService,
    access_guard: AccessTokenGuard,
) -> APIRouter:
    """Build router exposing the /auth endpoints."""

    router = APIRouter(prefix="/auth", tags=["auth"])

    @router.post("/login", response_model=TokenResponse)
    async def login(payload: LoginRequest, request: Request) -> TokenResponse | JSONResponse:
        try:
            pair = await session_service.login(
                email=payload.email,
                password=payload.password,
                ip_address=_client_ip(request),
                user_agent=request.headers.get("user-agent"),
            )
        except InvalidCredentialsError:
            return _error_response(401, INVALID_CREDENTIALS_MESSAGE)
        except StoreUnavailableError as exc:
            logger.error("auth_login_store_unavailable operation=%s", exc.operation)
            return _error_response(503, SERVICE_UNAVAILABLE_MESSAGE)

        return _to_token_response(pair)

    @router.post("/refresh", response_model=TokenResponse)
    async def refresh(
        payload: RefreshTokenRequest,
        request: Request,
    ) -> TokenResponse | JSONResponse:
        try:
            pair = await session_service.refresh(
                refresh_token=payload.refresh_token,
                ip_address=_client_ip(request),
                user_agent=request.headers.get("user-agent"),
            )
        except (InvalidTokenError, TokenExpiredError) as exc:
            logger.info("auth_refresh_rejected reason=%s", type(exc).__name__)
            return _error_response(401, INVALID_REFRESH_TOKEN_MESSAGE)
        except StoreUnavailableError as exc:
            logger.error("auth_refresh_store_unavailable operation=%s", exc.operation)
            return _error_response(503, SERVICE_UNAVAILABLE_MESSAGE)

        return _to_token_response(pair)

    @router.post("/logout", response_model=MessageResponse)
    async def logout(
        payload: RefreshTokenRequest,
        request: Request,
    ) -> MessageResponse | JSONResponse:
        try:
            await session_service.logout(
                refresh_token=payload.refresh_token,
                ip_address=_client_ip(request),
                user_agent=request.headers.get("user-agent"),
            )
        except StoreUnavailableError as exc:
            logger.error("auth_logout_store_unavailable operation=%s", exc.operation)
            return _error_response(503, SERVICE_UNAVAILABLE_MESSAGE)

        return MessageResponse(success=True, message="logged out")

    @router.post("/register", response_model=UserResponse, status_code=201)
    async def register(payload: RegisterRequest) -> UserResponse | JSONResponse:
        try:
            user = await registration_service.register(
                email=payload.email,
                password=payload.password,
                first_name=payload.first_name,
                last_name=payload.last_name,
            )
        except UserAlreadyExistsError:
            return _error_response(409, "user with this email already exists")
        except ValueError as exc:
            return _error_response(422, str(exc))
        except StoreUnavailableError as exc:
            logger.error("auth_register_store_unavailable operation=%s", exc.operation)
            return _error_response(503, SERVICE_UNAVAILABLE_MESSAGE)

        return _to_user_response(user)

    @router.get("/me", response_model=UserResponse)
    async def me(request: Request) -> UserResponse | JSONResponse:
        try:
            user = await access_guard.require_active_user(
                authorization_header=request.headers.get("authorization")
            )
        except (MissingAuthTokenError, InvalidAuthTokenError) as exc:
            return _error_response(401, str(exc))
        except StoreUnavailableError as exc:
            logger.error("auth_me_store_unavailable operation=%s", exc.operation)
            return _error_response(503, SERVICE_UNAVAILABLE_MESSAGE)

        return _to_user_response(user)

    return router


def _client_ip(request: Request) -> str | None:
    if request.client is None:
        return None
    return request.client.host


def _error_response(status_code: int, message: str) -> JSONResponse:
    envelope = MessageResponse(success=False, message=message)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(by_alias=True))


def _to_token_response(pair: TokenPair) -> TokenResponse:
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type="Bearer",
        expires_in=pair.expires_in,
    )


def _to_user_response(user: UserRecord) -> UserResponse:
    return UserResponse(
        id=user.user_id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        full_name=user.full_name,
        is_active=user.is_active,
        created_at=user.created_at,
    )

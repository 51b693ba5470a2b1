"""Pydantic models for the /auth HTTP contracts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase JSON while accepting snake_case names."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class LoginRequest(CamelModel):
    """Credentials presented to `POST /auth/login`."""

    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=128)


class RefreshTokenRequest(CamelModel):
    """Body of `POST /auth/refresh` and `POST /auth/logout`."""

    refresh_token: str


class RegisterRequest(CamelModel):
    """Account details presented to `POST /auth/register`."""

    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6, max_length=72)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class TokenResponse(CamelModel):
    """Successful login/refresh response."""

    access_token: str
    refresh_token: str
    token_type: Literal["Bearer"] = "Bearer"
    expires_in: int


class UserResponse(CamelModel):
    """Public user profile."""

    id: UUID
    email: str
    first_name: str | None
    last_name: str | None
    full_name: str
    is_active: bool
    created_at: datetime


class MessageResponse(CamelModel):
    """Success/error envelope carrying one human-readable message."""

    success: bool
    message: str

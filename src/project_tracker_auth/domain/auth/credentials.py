"""Shared normalization helpers for user credential inputs."""

from __future__ import annotations


def normalize_user_email(*, email: str) -> str:
    """Normalize one user email to its case-insensitive lookup form.

    Emails are compared case-insensitively: both registration and login
    run through this helper, so the stored value is always lower case.
    """

    normalized = email.strip().lower()
    if not normalized:
        raise ValueError("email cannot be blank")
    return normalized


def normalize_user_password(*, password: str) -> str:
    """Reject blank plaintext passwords while keeping the value byte-exact."""

    if not password.strip():
        raise ValueError("password cannot be blank")
    return password


def normalize_person_name(*, value: str, field_name: str) -> str:
    """Trim one display-name component and reject blank values."""

    normalized = value.strip()
    if not normalized:
        raise ValueError(f"{field_name} cannot be blank")
    return normalized

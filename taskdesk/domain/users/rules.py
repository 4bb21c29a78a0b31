from __future__ import annotations

import re
from typing import Optional

from taskdesk.constants import (
    PASSWORD_MAX_BYTES,
    PASSWORD_MIN_LENGTH,
    ROLES,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)
from taskdesk.domain.common.errors import FieldError

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_]+$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def username_errors(username: Optional[str]) -> list[FieldError]:
    if not username or not username.strip():
        return [FieldError("username", "is required")]
    username = username.strip()
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        return [FieldError(
            "username",
            f"must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters",
        )]
    if not _USERNAME_RE.match(username):
        return [FieldError("username", "may contain only letters, numbers and underscores")]
    return []


def email_errors(email: Optional[str]) -> list[FieldError]:
    if not email or not email.strip():
        return [FieldError("email", "is required")]
    if not _EMAIL_RE.match(email.strip()):
        return [FieldError("email", "is not a valid email address")]
    return []


def password_errors(password: Optional[str], field: str = "password") -> list[FieldError]:
    if not password:
        return [FieldError(field, "is required")]
    if len(password) < PASSWORD_MIN_LENGTH:
        return [FieldError(field, f"must be at least {PASSWORD_MIN_LENGTH} characters")]
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        return [FieldError(field, f"cannot exceed {PASSWORD_MAX_BYTES} bytes")]
    return []


def role_errors(role: Optional[str]) -> list[FieldError]:
    if role not in ROLES:
        return [FieldError("role", f"must be one of: {', '.join(ROLES)}")]
    return []

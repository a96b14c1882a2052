"""Client-side input rules for registration and message composition."""

from __future__ import annotations

import re
from typing import List, Optional

LOGIN_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,20}$")
MIN_PASSWORD_LENGTH = 6
NAME_LENGTH_RANGE = (2, 50)


def validate_login(login: str) -> bool:
    return bool(LOGIN_PATTERN.match(login or ""))


def validate_password(password: str) -> bool:
    return len(password or "") >= MIN_PASSWORD_LENGTH


def validate_name(name: str) -> bool:
    low, high = NAME_LENGTH_RANGE
    return low <= len((name or "").strip()) <= high


def validate_registration(
    login: str,
    password: str,
    first_name: str,
    last_name: str,
    confirm_password: Optional[str] = None,
) -> List[str]:
    """Return every rule the registration form breaks (empty list when valid)."""

    errors: List[str] = []
    if not login:
        errors.append("Login is required")
    elif not validate_login(login):
        errors.append("Login must be 3-20 characters: letters, digits or underscore")

    if not password:
        errors.append("Password is required")
    elif not validate_password(password):
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if confirm_password is not None and confirm_password != password:
        errors.append("Passwords do not match")

    for label, value in (("First name", first_name), ("Last name", last_name)):
        if not (value or "").strip():
            errors.append(f"{label} is required")
        elif not validate_name(value):
            errors.append(f"{label} must be {NAME_LENGTH_RANGE[0]}-{NAME_LENGTH_RANGE[1]} characters")
    return errors


def normalize_message_text(text: Optional[str]) -> str:
    """Trim the composed text; an empty result means there is nothing to send."""

    return (text or "").strip()

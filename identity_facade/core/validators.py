"""Input validation helpers for registration and login payloads."""
from __future__ import annotations
from typing import Any, Optional

from .models import LoginRequest, RegistrationRequest

EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 128
PHONE_MIN_LENGTH = 10
PASSWORD_MIN_LENGTH = 8


def _trimmed(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) else None


def validate_email(email: Any, field: str = "email") -> str:
    """Validate email address.

    Args:
        email: Email address to validate
        field: Field name for error messages

    Returns:
        Normalized (trimmed, lowercased) email address

    Raises:
        ValueError: If email is invalid
    """
    email = _trimmed(email)
    if not email or "@" not in email:
        raise ValueError(f"{field} must be a valid email")
    email = email.lower()

    local, domain = email.rsplit("@", 1)
    if not local or not domain or "." not in domain or " " in email:
        raise ValueError(f"{field} must be a valid email")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError(f"{field} exceeds maximum length")

    return email


def validate_name(name: Any, field: str) -> str:
    """Validate a required free-text name field.

    Args:
        name: Name to validate
        field: Field name for error messages (e.g., "name")

    Returns:
        Trimmed name

    Raises:
        ValueError: If name is invalid
    """
    name = _trimmed(name)
    if not name:
        raise ValueError(f"{field} is required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"{field} exceeds maximum length")
    return name


def validate_optional_name(name: Any, field: str) -> Optional[str]:
    if name is None:
        return None
    if not isinstance(name, str):
        raise ValueError(f"{field} must be a string")
    name = name.strip()
    if not name:
        return None
    if len(name) > NAME_MAX_LENGTH:
        raise ValueError(f"{field} exceeds maximum length")
    return name


def validate_phone_number(phone: Any, field: str = "phoneNumber") -> str:
    phone = _trimmed(phone)
    if not phone:
        raise ValueError(f"{field} is required")
    if len(phone) < PHONE_MIN_LENGTH:
        raise ValueError(f"{field} must be at least {PHONE_MIN_LENGTH} characters")
    return phone


def validate_password(password: Any, min_length: int = 1) -> str:
    """Passwords are checked but never trimmed."""
    if not isinstance(password, str) or not password:
        raise ValueError("password is required")
    if len(password) < min_length:
        raise ValueError(f"password must be at least {min_length} characters")
    return password


def _require_object(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return payload


def parse_registration_request(payload: Any) -> RegistrationRequest:
    """Build a RegistrationRequest from a raw JSON body.

    Raises:
        ValueError: On the first invalid field
    """
    payload = _require_object(payload)
    return RegistrationRequest(
        name=validate_name(payload.get("name"), "name"),
        company_name=validate_name(payload.get("companyName"), "companyName"),
        last_name=validate_optional_name(payload.get("lastName"), "lastName"),
        email=validate_email(payload.get("email")),
        phone_number=validate_phone_number(payload.get("phoneNumber")),
        password=validate_password(payload.get("password"), PASSWORD_MIN_LENGTH),
    )


def parse_login_request(payload: Any) -> LoginRequest:
    """Build a LoginRequest from a raw JSON body.

    Raises:
        ValueError: On the first invalid field
    """
    payload = _require_object(payload)
    return LoginRequest(
        username=validate_email(payload.get("username"), "username"),
        password=validate_password(payload.get("password")),
    )

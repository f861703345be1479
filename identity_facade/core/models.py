"""Transient request objects handed to the orchestrators."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class RegistrationRequest:
    """A validated registration; lives for one ``register`` call only.

    The password is forwarded to the identity provider and never stored
    locally. It is excluded from ``repr`` so it cannot leak through logs.
    """
    name: str
    company_name: str
    email: str
    phone_number: str
    password: str = field(repr=False)
    last_name: Optional[str] = None

    def profile_fields(self) -> dict:
        """Fields persisted in the local profile store (no password)."""
        return {
            "name": self.name,
            "company_name": self.company_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone_number": self.phone_number,
        }

    def as_payload(self) -> dict:
        """Wire-style (camelCase) view, password included. Mask before logging."""
        return {
            "name": self.name,
            "companyName": self.company_name,
            "lastName": self.last_name,
            "email": self.email,
            "phoneNumber": self.phone_number,
            "password": self.password,
        }


@dataclass(frozen=True)
class LoginRequest:
    """A validated login; ``username`` is the user's email."""
    username: str
    password: str = field(repr=False)

    def as_payload(self) -> dict:
        return {"username": self.username, "password": self.password}

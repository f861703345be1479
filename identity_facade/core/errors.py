"""Outcome kinds raised by the identity facade.

Every failure that can reach a caller is a ``FacadeError`` carrying the HTTP
status it maps to and a caller-safe message. Raw provider or database error
text is logged, never put into ``detail``.
"""
from __future__ import annotations
from typing import Optional


class FacadeError(Exception):
    """Base outcome with HTTP status and machine-readable code."""

    status = 500
    code = "internal_error"

    def __init__(self, detail: str, *, status: Optional[int] = None, code: Optional[str] = None):
        self.detail = detail
        if status is not None:
            self.status = status
        if code is not None:
            self.code = code
        super().__init__(detail)

    def to_dict(self) -> dict:
        """Convert to the JSON error envelope."""
        return {
            "isSuccess": False,
            "error": self.code,
            "message": self.detail,
        }


class ValidationError(FacadeError):
    """Malformed or missing input field."""

    status = 400
    code = "validation_error"


class ProviderError(FacadeError):
    """Failure talking to the identity provider.

    Attributes:
        status_code: HTTP status returned by the provider, if any
        endpoint: Provider URL that failed
    """

    code = "provider_error"

    def __init__(
        self,
        detail: str,
        *,
        status_code: Optional[int] = None,
        endpoint: str = "",
        status: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(detail, status=status, code=code)


class ProviderTokenError(ProviderError):
    """Service token acquisition (client-credentials grant) failed."""

    code = "provider_token_error"


class ProviderCreateError(ProviderError):
    """Remote user creation failed."""

    code = "provider_create_error"


class ProviderBadRequestError(ProviderError):
    """Password grant rejected for a reason other than bad credentials."""

    status = 400
    code = "provider_bad_request"


class UnauthorizedError(FacadeError):
    status = 401
    code = "unauthorized"


class InvalidCredentialsError(UnauthorizedError):
    """Username/password rejected by the provider."""

    code = "invalid_credentials"


class AccessTokenRejectedError(UnauthorizedError):
    """Bearer access token rejected by the userinfo endpoint."""

    code = "invalid_access_token"


class PersistenceError(FacadeError):
    """Local profile could not be persisted."""

    code = "persistence_error"


class ProfileNotFoundError(FacadeError):
    status = 404
    code = "not_found"


class ProfileStoreError(PersistenceError):
    """Profile store read or write failed (connectivity, constraint)."""

    code = "profile_store_error"


class DuplicateEmailError(ProfileStoreError):
    """A profile with this email already exists."""

    code = "duplicate_email"

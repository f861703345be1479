"""HTTP client for the identity provider (management + authentication APIs).

Endpoints used:
- POST   /oauth/token          client-credentials and password grants
- POST   /api/v2/users         create user (bearer service token)
- DELETE /api/v2/users/{id}    delete user (bearer service token)
- GET    /userinfo             profile for a user access token
"""
from __future__ import annotations
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from ...config import AppConfig
from ..errors import (
    AccessTokenRejectedError,
    InvalidCredentialsError,
    ProviderBadRequestError,
    ProviderCreateError,
    ProviderError,
)
from ..models import RegistrationRequest
from .tokens import ClientCredentialsTokenProvider, TokenProvider

logger = logging.getLogger(__name__)

INVALID_GRANT = "invalid_grant"


@dataclass(frozen=True)
class TokenSet:
    """Tokens issued by a successful password grant. Never persisted."""
    access_token: Optional[str] = None
    id_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "TokenSet":
        return cls(
            access_token=data.get("access_token"),
            id_token=data.get("id_token"),
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type"),
            expires_in=data.get("expires_in"),
            scope=data.get("scope"),
        )

    def to_dict(self) -> dict:
        return {key: value for key, value in asdict(self).items() if value is not None}


def _json_body(resp: requests.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class IdentityProviderClient:
    """Wraps every remote call the facade makes to the identity provider.

    Privileged operations take their bearer token from ``token_provider``;
    when none is given a ``ClientCredentialsTokenProvider`` is built from the
    configuration on first use.

    Usage:
        client = IdentityProviderClient(load_settings())
        remote = client.create_user(request)
        client.delete_user(remote["user_id"])
    """

    def __init__(self, config: AppConfig, token_provider: Optional[TokenProvider] = None):
        self.config = config
        self.timeout = config.http_timeout
        self._token_provider = token_provider

    @property
    def base_url(self) -> str:
        base_url = self.config.idp_base_url
        if not base_url:
            raise ProviderError("Missing IDP_DOMAIN")
        return base_url

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/oauth/token"

    @property
    def token_provider(self) -> TokenProvider:
        if self._token_provider is None:
            self._token_provider = ClientCredentialsTokenProvider(
                self.token_url,
                client_id=self.config.idp_mgmt_client_id,
                client_secret=self.config.idp_mgmt_client_secret,
                audience=self.config.management_audience,
                timeout=self.timeout,
                cache=self.config.cache_management_token,
            )
        return self._token_provider

    def get_management_token(self) -> str:
        """Service token for the management API.

        Raises:
            ProviderTokenError: If the grant fails (fatal, no retry)
        """
        return self.token_provider.get_token()

    def _auth_headers(self, token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    # ─────────────────────────────────────────────────────────────────────────
    # Management API
    # ─────────────────────────────────────────────────────────────────────────
    def create_user(self, request: RegistrationRequest) -> dict:
        """Create the remote identity for a registration.

        Returns:
            Provider user representation; always contains ``user_id``

        Raises:
            ProviderTokenError: If no service token could be obtained
            ProviderCreateError: On network failure, timeout, non-2xx, or a
                response without ``user_id``
        """
        token = self.get_management_token()
        url = f"{self.base_url}/api/v2/users"
        body = {
            "connection": self.config.idp_db_connection,
            "email": request.email,
            "password": request.password,
            "name": request.name,
            "user_metadata": {
                "companyName": request.company_name,
                "phoneNumber": request.phone_number,
            },
        }
        if request.last_name:
            body["family_name"] = request.last_name

        try:
            resp = requests.post(url, json=body, headers=self._auth_headers(token), timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Error creating identity provider user %s: %s", request.email, exc)
            raise ProviderCreateError("Identity provider user creation failed", endpoint=url) from exc

        if resp.status_code >= 400:
            if resp.status_code == 401:
                self.token_provider.invalidate()
            logger.error(
                "Error creating identity provider user %s: [%s] %s",
                request.email, resp.status_code, resp.text,
            )
            raise ProviderCreateError(
                "Identity provider user creation failed",
                status_code=resp.status_code,
                endpoint=url,
            )

        data = _json_body(resp)
        if not data.get("user_id"):
            logger.error("Identity provider created user %s without returning user_id", request.email)
            raise ProviderCreateError(
                "Identity provider user creation failed",
                status_code=resp.status_code,
                endpoint=url,
            )
        return data

    def delete_user(self, user_id: str) -> bool:
        """Delete a remote identity. Never raises.

        Runs as compensation for another failure, so any error here is
        logged and reported through the return value only. A 404 counts as
        deleted, which makes repeated compensation harmless.

        Returns:
            True if the identity is gone, False if the delete failed
        """
        try:
            token = self.get_management_token()
            url = f"{self.base_url}/api/v2/users/{quote(user_id, safe='')}"
            resp = requests.delete(url, headers=self._auth_headers(token), timeout=self.timeout)
        except Exception:
            logger.exception("Error deleting identity provider user %s", user_id)
            return False

        if resp.status_code == 404:
            logger.warning("Identity provider user %s already deleted", user_id)
            return True
        if resp.status_code >= 400:
            if resp.status_code == 401:
                self.token_provider.invalidate()
            logger.error(
                "Error deleting identity provider user %s: [%s] %s",
                user_id, resp.status_code, resp.text,
            )
            return False
        return True

    # ─────────────────────────────────────────────────────────────────────────
    # Authentication API
    # ─────────────────────────────────────────────────────────────────────────
    def login_with_password(self, username: str, password: str) -> TokenSet:
        """Resource owner password grant.

        Raises:
            InvalidCredentialsError: Provider answered ``invalid_grant``
            ProviderBadRequestError: Any other failure, carrying the
                provider's error code and description
            ProviderError: Authentication client id not configured
        """
        client_id = self.config.idp_authn_client_id
        if not client_id:
            raise ProviderError("Missing IDP_AUTHN_CLIENT_ID")

        url = self.token_url
        body = {
            "grant_type": "password",
            "username": username,
            "password": password,
            "client_id": client_id,
            "scope": self.config.idp_authn_scope,
        }
        if self.config.idp_authn_client_secret:
            body["client_secret"] = self.config.idp_authn_client_secret
        audience = self.config.authn_audience
        if audience:
            body["audience"] = audience

        try:
            resp = requests.post(url, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Identity provider login error: idp_unreachable - %s", exc)
            raise ProviderBadRequestError(
                "idp_unreachable: Identity provider authentication failed", endpoint=url
            ) from exc

        if resp.status_code >= 400:
            err = _json_body(resp)
            code = err.get("error")
            desc = err.get("error_description") or "Identity provider authentication failed"
            logger.warning("Identity provider login error: %s - %s", code, desc)
            if code == INVALID_GRANT:
                raise InvalidCredentialsError("Invalid credentials")
            raise ProviderBadRequestError(
                f"{code or 'idp_error'}: {desc}",
                status_code=resp.status_code,
                endpoint=url,
            )

        data = _json_body(resp)
        if not data:
            logger.warning("Identity provider login returned an unreadable body")
            raise ProviderBadRequestError(
                "idp_error: Identity provider authentication failed",
                status_code=resp.status_code,
                endpoint=url,
            )
        return TokenSet.from_response(data)

    def get_user_info(self, access_token: str) -> dict:
        """Profile claims for a user access token.

        Raises:
            AccessTokenRejectedError: Provider answered 401
            ProviderError: Any other failure
        """
        url = f"{self.base_url}/userinfo"
        try:
            resp = requests.get(url, headers=self._auth_headers(access_token), timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProviderError("Identity provider userinfo request failed", endpoint=url) from exc

        if resp.status_code == 401:
            raise AccessTokenRejectedError("Access token rejected by userinfo")
        if resp.status_code >= 400:
            err = _json_body(resp)
            msg = err.get("error_description") or err.get("message") or "Identity provider userinfo request failed"
            raise ProviderError(msg, status_code=resp.status_code, endpoint=url)

        data = _json_body(resp)
        if not data:
            raise ProviderError("Identity provider userinfo returned an unreadable body", endpoint=url)
        return data

"""Service token acquisition for the provider's management API.

Privileged calls (create/delete user) ask a ``TokenProvider`` for a bearer
token. Tests and tooling can substitute ``StaticTokenProvider``.
"""
from __future__ import annotations
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Optional, Tuple

import requests

from ..errors import ProviderTokenError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 5
MANAGEMENT_SCOPE = "create:users delete:users"
# Refresh this many seconds before the provider-stated expiry
REFRESH_LEEWAY_SECONDS = 10


class TokenProvider(ABC):
    """Source of service-level bearer tokens."""

    @abstractmethod
    def get_token(self) -> str:
        """Return a bearer token valid for at least one request."""

    def invalidate(self) -> None:
        """Forget any cached token (e.g. after the API answered 401)."""


class StaticTokenProvider(TokenProvider):
    """Serves a fixed token; never expires, never calls the network."""

    def __init__(self, token: str):
        self.token = token
        self.calls = 0

    def get_token(self) -> str:
        self.calls += 1
        return self.token


class ClientCredentialsTokenProvider(TokenProvider):
    """Client-credentials grant with optional expiry-aware caching.

    With ``cache=False`` every call performs a fresh grant. With caching on,
    a token is reused only while ``now < issued_at + expires_in - leeway``;
    tokens without a stated ``expires_in`` are never reused.

    Usage:
        provider = ClientCredentialsTokenProvider(
            "https://tenant.example.com/oauth/token",
            client_id="mgmt-client",
            client_secret="secret",
            audience="https://tenant.example.com/api/v2/",
        )
        token = provider.get_token()
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        audience: str,
        scope: str = MANAGEMENT_SCOPE,
        timeout: float = REQUEST_TIMEOUT,
        cache: bool = True,
        leeway: float = REFRESH_LEEWAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.audience = audience
        self.scope = scope
        self.timeout = timeout
        self.cache = cache
        self.leeway = leeway
        self._clock = clock
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._expires_at: Optional[float] = None

    def get_token(self) -> str:
        if not self.cache:
            token, _ = self._fetch()
            return token

        with self._lock:
            now = self._clock()
            if self._token and self._expires_at is not None and now < self._expires_at - self.leeway:
                return self._token

            token, expires_in = self._fetch()
            if expires_in:
                self._token = token
                self._expires_at = now + expires_in
            else:
                self._token = None
                self._expires_at = None
            return token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = None

    def _fetch(self) -> Tuple[str, Optional[float]]:
        """Perform one client-credentials grant.

        Raises:
            ProviderTokenError: On network failure, timeout, non-2xx or a
                response without ``access_token``
        """
        body = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "audience": self.audience,
            "scope": self.scope,
        }
        try:
            resp = requests.post(self.token_url, json=body, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.error("Error obtaining management token from %s: %s", self.token_url, exc)
            raise ProviderTokenError(
                "Identity provider token acquisition failed", endpoint=self.token_url
            ) from exc

        if resp.status_code >= 400:
            logger.error(
                "Error obtaining management token: [%s] %s", resp.status_code, resp.text
            )
            raise ProviderTokenError(
                "Identity provider token acquisition failed",
                status_code=resp.status_code,
                endpoint=self.token_url,
            )

        try:
            data = resp.json()
        except ValueError:
            data = {}
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            logger.error("Management token response without access_token from %s", self.token_url)
            raise ProviderTokenError(
                "Identity provider token acquisition failed",
                status_code=resp.status_code,
                endpoint=self.token_url,
            )

        expires_in = data.get("expires_in")
        try:
            expires_in = float(expires_in) if expires_in is not None else None
        except (TypeError, ValueError):
            expires_in = None
        return token, expires_in

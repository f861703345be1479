"""Identity provider client library.

Architecture:
- client.py: management and authentication API calls
- tokens.py: service token acquisition (client-credentials grant, caching)

Usage:
    from identity_facade.core.identity_provider import IdentityProviderClient

    client = IdentityProviderClient(cfg)
    tokens = client.login_with_password("ann@example.com", "secretpw")
"""
from .client import IdentityProviderClient, TokenSet
from .tokens import (
    ClientCredentialsTokenProvider,
    StaticTokenProvider,
    TokenProvider,
    MANAGEMENT_SCOPE,
    REQUEST_TIMEOUT,
)

__all__ = [
    "IdentityProviderClient",
    "TokenSet",
    "TokenProvider",
    "ClientCredentialsTokenProvider",
    "StaticTokenProvider",
    "MANAGEMENT_SCOPE",
    "REQUEST_TIMEOUT",
]

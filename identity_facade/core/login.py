"""Login flow: local profile lookup, password grant, optional userinfo enrichment."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .errors import ProfileNotFoundError
from .models import LoginRequest
from .profile_store import ProfileRecord, ProfileStore
from .redaction import masked_json

if TYPE_CHECKING:
    from .identity_provider import TokenSet

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    profile: ProfileRecord
    tokens: TokenSet
    remote_profile: Optional[dict] = None

    def to_dict(self) -> dict:
        data = {
            "profile": self.profile.to_public_dict(),
            "tokens": self.tokens.to_dict(),
        }
        if self.remote_profile is not None:
            data["remoteProfile"] = self.remote_profile
        return {"isSuccess": True, "message": "Login successful", "data": data}


class LoginOrchestrator:
    """Authenticates a user known to both stores.

    Args:
        identity_provider: Object exposing ``login_with_password`` and
            ``get_user_info`` (see IdentityProviderClient)
        profile_store: ProfileStore implementation
    """

    def __init__(self, identity_provider, profile_store: ProfileStore):
        self.identity_provider = identity_provider
        self.profile_store = profile_store

    def login(self, request: LoginRequest) -> LoginResult:
        """Log a user in.

        Raises:
            ProfileNotFoundError: No local profile for the email; the
                provider is not contacted
            InvalidCredentialsError: Provider rejected the password
            ProviderBadRequestError: Any other password-grant failure
        """
        logger.info("Login payload: %s", masked_json(request.as_payload()))

        profile = self.profile_store.find_by_email(request.username)
        if profile is None:
            raise ProfileNotFoundError("User not found")

        tokens = self.identity_provider.login_with_password(request.username, request.password)

        remote_profile = None
        if tokens.access_token:
            remote_profile = self._fetch_remote_profile(request.username, tokens.access_token)

        return LoginResult(profile=profile, tokens=tokens, remote_profile=remote_profile)

    def _fetch_remote_profile(self, username: str, access_token: str) -> Optional[dict]:
        # Best effort: tokens are already issued, enrichment must not fail the login
        try:
            return self.identity_provider.get_user_info(access_token)
        except Exception as exc:
            logger.warning("Could not fetch remote profile for %s: %s", username, exc)
            return None

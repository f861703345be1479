"""Registration saga: remote identity first, local profile second.

The identity provider and the profile store share no transaction, so a
registration runs as a two-step saga:

    STARTED ──create_user──> REMOTE_CREATED ──store.create──> LOCALLY_PERSISTED
                                   │
                                   └──local failure──> delete_user ──> ROLLED_BACK

Once the remote identity exists the saga always ends in LOCALLY_PERSISTED or
ROLLED_BACK, including when an interrupt arrives anywhere after create_user
has returned.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import PersistenceError
from .models import RegistrationRequest
from .profile_store import ProfileRecord, ProfileStore
from .redaction import masked_json

logger = logging.getLogger(__name__)


class SagaState(str, Enum):
    STARTED = "started"
    REMOTE_CREATED = "remote_created"
    LOCALLY_PERSISTED = "locally_persisted"
    ROLLED_BACK = "rolled_back"


_TRANSITIONS = {
    SagaState.STARTED: {SagaState.REMOTE_CREATED},
    SagaState.REMOTE_CREATED: {SagaState.LOCALLY_PERSISTED, SagaState.ROLLED_BACK},
    SagaState.LOCALLY_PERSISTED: set(),
    SagaState.ROLLED_BACK: set(),
}


@dataclass
class RegistrationResult:
    profile: ProfileRecord
    remote_identity: dict

    def to_dict(self) -> dict:
        data = self.profile.to_public_dict()
        data["authProfile"] = self.remote_identity
        return {"isSuccess": True, "message": "User registered", "data": data}


@dataclass
class RegistrationSaga:
    """State of one registration as it moves through the saga."""
    request: RegistrationRequest
    state: SagaState = SagaState.STARTED
    remote_identity: Optional[dict] = None
    profile: Optional[ProfileRecord] = None
    compensated: Optional[bool] = None
    history: list = field(default_factory=lambda: [SagaState.STARTED])

    @property
    def remote_user_id(self) -> Optional[str]:
        return (self.remote_identity or {}).get("user_id")

    def advance(self, new_state: SagaState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid saga transition {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)


class RegistrationOrchestrator:
    """Drives the create-user saga across the identity provider and profile store.

    Args:
        identity_provider: Object exposing ``create_user(request)`` and
            ``delete_user(user_id)`` (see IdentityProviderClient)
        profile_store: ProfileStore implementation
    """

    def __init__(self, identity_provider, profile_store: ProfileStore):
        self.identity_provider = identity_provider
        self.profile_store = profile_store

    def register(self, request: RegistrationRequest) -> RegistrationResult:
        """Register a user in both stores.

        Raises:
            ProviderError: Remote creation failed; nothing was created
            PersistenceError: Local persistence failed; the remote identity
                was deleted (best effort) before raising
        """
        logger.info("Register payload: %s", masked_json(request.as_payload()))
        saga = RegistrationSaga(request=request)

        self._create_remote_identity(saga)
        try:
            self._confirm_remote_identity(saga)
            self._persist_profile(saga)
        except Exception as exc:
            self.compensate(saga)
            outcome = "rolled back" if saga.compensated else "could not roll back"
            logger.error(
                "Local profile creation failed for %s, %s remote user %s: %s",
                request.email, outcome, saga.remote_user_id, exc,
            )
            raise PersistenceError("Local profile persistence failed") from exc
        except BaseException:
            self.compensate(saga)
            raise

        logger.info("Registered %s (profile=%s, remote=%s)", request.email, saga.profile.id, saga.remote_user_id)
        return RegistrationResult(profile=saga.profile, remote_identity=saga.remote_identity)

    def _create_remote_identity(self, saga: RegistrationSaga) -> None:
        saga.remote_identity = self.identity_provider.create_user(saga.request)

    def _confirm_remote_identity(self, saga: RegistrationSaga) -> None:
        saga.advance(SagaState.REMOTE_CREATED)
        logger.info("Remote user %s created for %s", saga.remote_user_id, saga.request.email)

    def _persist_profile(self, saga: RegistrationSaga) -> None:
        saga.profile = self.profile_store.create(saga.request.profile_fields())
        saga.advance(SagaState.LOCALLY_PERSISTED)

    def compensate(self, saga: RegistrationSaga) -> None:
        """Delete the remote identity of a saga stuck in REMOTE_CREATED.

        A saga still in STARTED that already holds a remote identity is
        treated as REMOTE_CREATED. Never raises; a no-op in any other state,
        so calling it twice is safe.
        """
        if saga.state is SagaState.STARTED and saga.remote_identity is not None:
            saga.advance(SagaState.REMOTE_CREATED)
        if saga.state is not SagaState.REMOTE_CREATED:
            return
        user_id = saga.remote_user_id
        try:
            saga.compensated = bool(self.identity_provider.delete_user(user_id))
        except Exception:
            saga.compensated = False
            logger.exception("Compensating delete raised for remote user %s", user_id)
        if not saga.compensated:
            logger.error("Remote user %s could not be rolled back and may be orphaned", user_id)
        saga.advance(SagaState.ROLLED_BACK)

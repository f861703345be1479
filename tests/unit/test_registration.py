"""Tests for the create-user saga in identity_facade.core.registration."""
import logging

import pytest

from identity_facade.core.errors import (
    DuplicateEmailError,
    PersistenceError,
    ProviderCreateError,
    ProviderTokenError,
)
from identity_facade.core.registration import (
    RegistrationOrchestrator,
    RegistrationSaga,
    SagaState,
)
from tests.fakes import FakeIdentityProvider, RecordingProfileStore


def test_register_returns_profile_and_remote_identity(registration_request):
    idp = FakeIdentityProvider(remote_user={"user_id": "auth0|123"})
    store = RecordingProfileStore()

    result = RegistrationOrchestrator(idp, store).register(registration_request)

    assert result.to_dict() == {
        "isSuccess": True,
        "message": "User registered",
        "data": {
            "_id": "p1",
            "email": "ann@x.com",
            "name": "Ann",
            "companyName": "Acme",
            "phoneNumber": "5551234567",
            "authProfile": {"user_id": "auth0|123"},
        },
    }
    assert idp.deleted == []


def test_local_profile_never_receives_password(registration_request):
    store = RecordingProfileStore()
    RegistrationOrchestrator(FakeIdentityProvider(), store).register(registration_request)

    record = store.records["ann@x.com"]
    assert "secretpw" not in repr(record)


def test_duplicate_email_rolls_back_remote_identity(registration_request):
    idp = FakeIdentityProvider(remote_user={"user_id": "auth0|123"})
    store = RecordingProfileStore(create_error=DuplicateEmailError("Profile with email ann@x.com already exists"))

    with pytest.raises(PersistenceError) as excinfo:
        RegistrationOrchestrator(idp, store).register(registration_request)

    assert idp.deleted == ["auth0|123"]
    assert excinfo.value.detail == "Local profile persistence failed"
    assert "ann@x.com" not in excinfo.value.to_dict()["message"]
    assert type(excinfo.value) is PersistenceError


def test_duplicate_against_real_store_rolls_back(registration_request, profile_store):
    profile_store.create(registration_request.profile_fields())
    idp = FakeIdentityProvider(remote_user={"user_id": "auth0|456"})

    with pytest.raises(PersistenceError):
        RegistrationOrchestrator(idp, profile_store).register(registration_request)

    assert idp.deleted == ["auth0|456"]


def test_remote_failure_creates_nothing_and_skips_compensation(registration_request):
    idp = FakeIdentityProvider(create_error=ProviderCreateError("Identity provider user creation failed"))
    store = RecordingProfileStore()

    with pytest.raises(ProviderCreateError):
        RegistrationOrchestrator(idp, store).register(registration_request)

    assert store.records == {}
    assert idp.deleted == []


def test_token_failure_surfaces_as_provider_error(registration_request):
    idp = FakeIdentityProvider(create_error=ProviderTokenError("Identity provider token acquisition failed"))
    store = RecordingProfileStore()

    with pytest.raises(ProviderTokenError):
        RegistrationOrchestrator(idp, store).register(registration_request)

    assert idp.deleted == []


def test_failed_compensation_keeps_original_error(registration_request):
    idp = FakeIdentityProvider(delete_error=RuntimeError("provider down"))
    store = RecordingProfileStore(create_error=RuntimeError("connection lost"))

    with pytest.raises(PersistenceError) as excinfo:
        RegistrationOrchestrator(idp, store).register(registration_request)

    assert idp.deleted == ["auth0|123"]
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert str(excinfo.value.__cause__) == "connection lost"


def test_interrupt_during_persistence_still_compensates(registration_request):
    idp = FakeIdentityProvider()
    store = RecordingProfileStore(create_error=KeyboardInterrupt())

    with pytest.raises(KeyboardInterrupt):
        RegistrationOrchestrator(idp, store).register(registration_request)

    assert idp.deleted == ["auth0|123"]


class _ExitOnMessage(logging.Handler):
    """Raises SystemExit while a matching record is being emitted."""

    def __init__(self, fragment):
        super().__init__(level=logging.INFO)
        self.fragment = fragment

    def emit(self, record):
        if self.fragment in record.getMessage():
            raise SystemExit(1)


def test_interrupt_right_after_remote_create_still_compensates(registration_request):
    idp = FakeIdentityProvider()
    store = RecordingProfileStore()
    registration_logger = logging.getLogger("identity_facade.core.registration")
    handler = _ExitOnMessage("Remote user auth0|123 created")
    previous_level = registration_logger.level
    registration_logger.addHandler(handler)
    registration_logger.setLevel(logging.INFO)
    try:
        with pytest.raises(SystemExit):
            RegistrationOrchestrator(idp, store).register(registration_request)
    finally:
        registration_logger.removeHandler(handler)
        registration_logger.setLevel(previous_level)

    assert idp.deleted == ["auth0|123"]
    assert store.records == {}


def test_compensate_handles_saga_not_yet_marked_remote_created(registration_request):
    idp = FakeIdentityProvider()
    orchestrator = RegistrationOrchestrator(idp, RecordingProfileStore())
    saga = RegistrationSaga(request=registration_request, remote_identity={"user_id": "auth0|123"})

    orchestrator.compensate(saga)

    assert idp.deleted == ["auth0|123"]
    assert saga.state is SagaState.ROLLED_BACK


def test_compensate_is_noop_outside_remote_created(registration_request):
    idp = FakeIdentityProvider()
    orchestrator = RegistrationOrchestrator(idp, RecordingProfileStore())
    saga = RegistrationSaga(request=registration_request)

    orchestrator.compensate(saga)

    assert idp.deleted == []
    assert saga.state is SagaState.STARTED


def test_compensate_twice_deletes_once(registration_request):
    idp = FakeIdentityProvider()
    orchestrator = RegistrationOrchestrator(idp, RecordingProfileStore())
    saga = RegistrationSaga(request=registration_request, remote_identity={"user_id": "auth0|123"})
    saga.advance(SagaState.REMOTE_CREATED)

    orchestrator.compensate(saga)
    orchestrator.compensate(saga)

    assert idp.deleted == ["auth0|123"]
    assert saga.state is SagaState.ROLLED_BACK
    assert saga.compensated is True
    assert saga.history == [SagaState.STARTED, SagaState.REMOTE_CREATED, SagaState.ROLLED_BACK]


def test_compensate_records_failed_delete(registration_request):
    idp = FakeIdentityProvider(delete_result=False)
    orchestrator = RegistrationOrchestrator(idp, RecordingProfileStore())
    saga = RegistrationSaga(request=registration_request, remote_identity={"user_id": "auth0|123"})
    saga.advance(SagaState.REMOTE_CREATED)

    orchestrator.compensate(saga)

    assert saga.compensated is False
    assert saga.state is SagaState.ROLLED_BACK


def test_saga_rejects_invalid_transition(registration_request):
    saga = RegistrationSaga(request=registration_request)
    with pytest.raises(RuntimeError, match="Invalid saga transition"):
        saga.advance(SagaState.LOCALLY_PERSISTED)


def test_successful_saga_history(registration_request):
    idp = FakeIdentityProvider()
    orchestrator = RegistrationOrchestrator(idp, RecordingProfileStore())
    saga = RegistrationSaga(request=registration_request)

    orchestrator._create_remote_identity(saga)
    orchestrator._confirm_remote_identity(saga)
    orchestrator._persist_profile(saga)

    assert saga.state is SagaState.LOCALLY_PERSISTED
    assert saga.profile.id == "p1"


def test_register_logs_masked_password(registration_request, caplog):
    caplog.set_level(logging.INFO, logger="identity_facade")
    RegistrationOrchestrator(FakeIdentityProvider(), RecordingProfileStore()).register(registration_request)

    assert "secretpw" not in caplog.text
    assert '"password": "********"' in caplog.text


def test_failed_rollback_not_logged_as_rolled_back(registration_request, caplog):
    caplog.set_level(logging.INFO, logger="identity_facade")
    idp = FakeIdentityProvider(delete_result=False)
    store = RecordingProfileStore(create_error=RuntimeError("connection lost"))

    with pytest.raises(PersistenceError):
        RegistrationOrchestrator(idp, store).register(registration_request)

    assert "could not roll back remote user auth0|123" in caplog.text
    assert "rolled back remote user" not in caplog.text


def test_successful_rollback_logged(registration_request, caplog):
    caplog.set_level(logging.INFO, logger="identity_facade")
    store = RecordingProfileStore(create_error=RuntimeError("connection lost"))

    with pytest.raises(PersistenceError):
        RegistrationOrchestrator(FakeIdentityProvider(), store).register(registration_request)

    assert "rolled back remote user auth0|123" in caplog.text

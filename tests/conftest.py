"""Pytest shared fixtures."""
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests

from identity_facade.config import AppConfig
from identity_facade.core.models import LoginRequest, RegistrationRequest
from identity_facade.core.profile_store import SqlAlchemyProfileStore
from tests.fakes import HttpStub


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def http(monkeypatch):
    """Replace outbound HTTP; unrouted calls raise instead of leaving the process."""
    stub = HttpStub()
    monkeypatch.setattr(requests, "post", stub.post)
    monkeypatch.setattr(requests, "get", stub.get)
    monkeypatch.setattr(requests, "delete", stub.delete)
    return stub


# ─────────────────────────────────────────────────────────────────────────────
# Configuration and stores
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app_config(tmp_path):
    return AppConfig(
        idp_domain="tenant.example.com",
        idp_mgmt_client_id="mgmt-client",
        idp_mgmt_client_secret="mgmt-secret",
        idp_db_connection="Username-Password-Authentication",
        idp_authn_client_id="authn-client",
        profile_store_url=f"sqlite:///{tmp_path / 'profiles.db'}",
    )


@pytest.fixture()
def profile_store(app_config):
    store = SqlAlchemyProfileStore(app_config.profile_store_url)
    yield store
    store.engine.dispose()


@pytest.fixture()
def registration_request():
    return RegistrationRequest(
        name="Ann",
        company_name="Acme",
        email="ann@x.com",
        phone_number="5551234567",
        password="secretpw",
    )


@pytest.fixture()
def login_request():
    return LoginRequest(username="ann@x.com", password="secretpw")

"""Tests for management token acquisition and caching."""
import pytest
import requests

from identity_facade.core.errors import ProviderTokenError
from identity_facade.core.identity_provider import (
    MANAGEMENT_SCOPE,
    ClientCredentialsTokenProvider,
    StaticTokenProvider,
)
from tests.fakes import StubResponse

TOKEN_URL = "https://tenant.example.com/oauth/token"


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def make_provider(clock=None, cache=True):
    return ClientCredentialsTokenProvider(
        TOKEN_URL,
        client_id="mgmt-client",
        client_secret="mgmt-secret",
        audience="https://tenant.example.com/api/v2/",
        cache=cache,
        clock=clock or FakeClock(),
    )


def test_client_credentials_request_shape(http):
    http.add("POST", "/oauth/token", StubResponse({"access_token": "t1", "expires_in": 86400}))

    assert make_provider().get_token() == "t1"
    assert http.calls[0].json == {
        "grant_type": "client_credentials",
        "client_id": "mgmt-client",
        "client_secret": "mgmt-secret",
        "audience": "https://tenant.example.com/api/v2/",
        "scope": MANAGEMENT_SCOPE,
    }


def test_cached_token_reused_until_expiry(http):
    clock = FakeClock()
    http.add(
        "POST", "/oauth/token",
        StubResponse({"access_token": "t1", "expires_in": 60}),
        StubResponse({"access_token": "t2", "expires_in": 60}),
    )
    provider = make_provider(clock)

    assert provider.get_token() == "t1"
    clock.now += 49
    assert provider.get_token() == "t1"
    # Inside the refresh leeway: fetch a new one
    clock.now += 2
    assert provider.get_token() == "t2"
    assert len(http.calls) == 2


def test_token_without_expiry_is_not_cached(http):
    http.add(
        "POST", "/oauth/token",
        StubResponse({"access_token": "t1"}),
        StubResponse({"access_token": "t2"}),
    )
    provider = make_provider()

    assert provider.get_token() == "t1"
    assert provider.get_token() == "t2"


def test_cache_disabled_fetches_every_time(http):
    http.add("POST", "/oauth/token", StubResponse({"access_token": "t1", "expires_in": 86400}))
    provider = make_provider(cache=False)

    provider.get_token()
    provider.get_token()

    assert len(http.calls) == 2


def test_invalidate_forces_refetch(http):
    http.add("POST", "/oauth/token", StubResponse({"access_token": "t1", "expires_in": 86400}))
    provider = make_provider()

    provider.get_token()
    provider.invalidate()
    provider.get_token()

    assert len(http.calls) == 2


@pytest.mark.parametrize(
    "response",
    [
        StubResponse({"error": "access_denied"}, 403),
        StubResponse({"token_type": "Bearer"}),
        StubResponse(None, 200, text="<html>"),
        requests.ConnectionError("refused"),
    ],
)
def test_token_failures_raise_provider_token_error(http, response):
    http.add("POST", "/oauth/token", response)

    with pytest.raises(ProviderTokenError) as excinfo:
        make_provider().get_token()

    assert excinfo.value.endpoint == TOKEN_URL


def test_static_token_provider():
    provider = StaticTokenProvider("fixed")
    assert provider.get_token() == "fixed"
    provider.invalidate()
    assert provider.get_token() == "fixed"
    assert provider.calls == 2

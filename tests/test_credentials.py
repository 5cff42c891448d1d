"""
Tests for provider credential refresh.

These tests run the refresher against a scripted token endpoint and a fake
millisecond clock.
"""

import asyncio

from moodtunes.credentials import CredentialRefresher
from moodtunes.models import CredentialState, CredentialStatus

from conftest import TOKEN_URL


class TestCredentialRefresher:
    """Test suite for CredentialRefresher functionality."""

    async def test_initial_state(self, credentials):
        assert credentials.status == CredentialStatus.UNINITIALIZED
        assert credentials.state.access_token is None

    async def test_first_use_requests_a_grant(self, credentials, provider, clock):
        token = await credentials.ensure_valid()

        assert token == "token-1"
        assert provider.grant_calls == 1
        assert credentials.status == CredentialStatus.VALID
        # 60s safety margin off the provider's expires_in
        assert credentials.state.expires_at_ms == clock() + (3600 - 60) * 1000

    async def test_grant_request_shape(self, credentials, provider):
        await credentials.refresh()

        request = provider.requests[0]
        assert request.method == "POST"
        assert str(request.url) == TOKEN_URL
        assert request.headers["Authorization"].startswith("Basic ")
        assert b"grant_type=client_credentials" in request.content

    async def test_unexpired_token_is_reused(self, credentials, provider, clock):
        credentials.state = CredentialState(
            access_token="cached", expires_at_ms=clock() + 120_000
        )

        assert credentials.is_valid()
        assert await credentials.ensure_valid() == "cached"
        assert provider.grant_calls == 0

    async def test_expired_token_is_refreshed_before_use(self, credentials, provider, clock):
        credentials.state = CredentialState(access_token="stale", expires_at_ms=clock())

        assert not credentials.is_valid()
        assert await credentials.ensure_valid() == "token-1"
        assert provider.grant_calls == 1

    async def test_refreshes_again_after_expiry(self, credentials, provider, clock):
        await credentials.ensure_valid()
        clock.advance((3600 - 60) * 1000 - 1)
        assert await credentials.ensure_valid() == "token-1"

        clock.advance(1)
        assert credentials.status == CredentialStatus.EXPIRED
        assert await credentials.ensure_valid() == "token-2"
        assert provider.grant_calls == 2

    async def test_failed_grant(self, credentials, provider):
        provider.token_status = 401

        assert await credentials.refresh() is False
        assert credentials.status == CredentialStatus.EXPIRED
        assert await credentials.ensure_valid() is None
        # One attempt per call, no retry loop
        assert provider.grant_calls == 2

    async def test_malformed_grant_body(self, credentials, provider):
        provider.token_body = {"access_token": "abc"}

        assert await credentials.refresh() is False
        assert credentials.state.access_token is None

    async def test_missing_client_credentials(self, http, provider):
        refresher = CredentialRefresher(http, "", "", token_url=TOKEN_URL)

        assert await refresher.ensure_valid() is None
        assert refresher.status == CredentialStatus.EXPIRED
        assert provider.grant_calls == 0

    async def test_concurrent_refreshes_share_one_grant(self, credentials, provider):
        provider.token_delay = 0.05

        tokens = await asyncio.gather(*(credentials.ensure_valid() for _ in range(5)))

        assert tokens == ["token-1"] * 5
        assert provider.grant_calls == 1

    async def test_periodic_refresh(self, http, provider, clock):
        refresher = CredentialRefresher(
            http,
            "client-id",
            "client-secret",
            token_url=TOKEN_URL,
            refresh_interval_s=0.01,
            clock=clock,
        )

        refresher.start()
        refresher.start()  # already running
        await asyncio.sleep(0.1)
        await refresher.stop()

        assert provider.grant_calls >= 2
        calls = provider.grant_calls
        await asyncio.sleep(0.05)
        assert provider.grant_calls == calls
        # Stopping keeps the last token
        assert refresher.status == CredentialStatus.VALID

    async def test_periodic_refresh_survives_unexpected_errors(self, http, provider, clock):
        refresher = CredentialRefresher(
            http,
            "client-id",
            "client-secret",
            token_url=TOKEN_URL,
            refresh_interval_s=0.01,
            clock=clock,
        )
        grant = refresher._grant
        failures = []

        async def flaky_grant():
            if not failures:
                failures.append(True)
                raise RuntimeError("client has been closed")
            return await grant()

        refresher._grant = flaky_grant
        refresher.start()
        await asyncio.sleep(0.1)

        assert not refresher._periodic.done()
        await refresher.stop()

        assert failures == [True]
        assert provider.grant_calls >= 1
        assert refresher.status == CredentialStatus.VALID

"""
Access-token management for the playlist provider.

This module keeps a client-credentials access token fresh. Tokens are renewed
lazily when a dependent call finds them expired, and proactively on a fixed
interval by a background task. Only one grant request is ever in flight.
"""

import asyncio
import logging
import time
from collections.abc import Callable

import httpx

from .models import CredentialState, CredentialStatus

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = "https://accounts.spotify.com/api/token"
DEFAULT_REFRESH_INTERVAL_S = 30 * 60
DEFAULT_EXPIRY_MARGIN_S = 60


def _now_ms() -> float:
    return time.time() * 1000


class CredentialRefresher:
    """
    Owner of the provider credential state.

    The state moves between UNINITIALIZED (no grant attempted yet), VALID
    (a token is held and not yet expired) and EXPIRED (the token ran out or
    the last grant failed).
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        token_url: str = DEFAULT_TOKEN_URL,
        refresh_interval_s: float = DEFAULT_REFRESH_INTERVAL_S,
        expiry_margin_s: float = DEFAULT_EXPIRY_MARGIN_S,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        self._http = http
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._clock = clock
        self.refresh_interval_s = refresh_interval_s
        self.expiry_margin_s = expiry_margin_s

        self.state = CredentialState()
        self._attempted = False
        self._inflight: asyncio.Task[bool] | None = None
        self._periodic: asyncio.Task[None] | None = None

    @property
    def status(self) -> CredentialStatus:
        if not self._attempted and self.state.access_token is None:
            return CredentialStatus.UNINITIALIZED
        if self.is_valid():
            return CredentialStatus.VALID
        return CredentialStatus.EXPIRED

    def is_valid(self, now: float | None = None) -> bool:
        """Whether a token is held and ``now`` is before its expiry."""
        if self.state.access_token is None:
            return False
        if now is None:
            now = self._clock()
        return now < self.state.expires_at_ms

    async def ensure_valid(self) -> str | None:
        """
        Return a usable access token, refreshing first if needed.

        Returns:
            The access token, or None if the refresh failed
        """
        if not self.is_valid():
            await self.refresh()
        if not self.is_valid():
            return None
        return self.state.access_token

    async def refresh(self) -> bool:
        """
        Request a new token from the grant endpoint.

        Concurrent callers share the result of the request already in flight
        instead of issuing a second one.

        Returns:
            True if a new token was stored
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._grant())
        return await asyncio.shield(self._inflight)

    async def _grant(self) -> bool:
        self._attempted = True
        if not (self._client_id and self._client_secret):
            logger.error("Credential refresh skipped: provider client id/secret not set")
            return False

        try:
            response = await self._http.post(
                self._token_url,
                auth=(self._client_id, self._client_secret),
                data={"grant_type": "client_credentials"},
            )
            response.raise_for_status()
            body = response.json()
            access_token = str(body["access_token"])
            expires_in = float(body["expires_in"])
        except httpx.HTTPStatusError as e:
            logger.error(
                "Credential refresh failed: HTTP %s", e.response.status_code
            )
            return False
        except httpx.HTTPError as e:
            logger.error("Credential refresh failed: %s", type(e).__name__)
            return False
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Credential refresh returned a malformed body: %s", e)
            return False

        now = self._clock()
        self.state = CredentialState(
            access_token=access_token,
            expires_at_ms=now + (expires_in - self.expiry_margin_s) * 1000,
        )
        logger.info(
            "Provider token refreshed, valid for %.0fs",
            (self.state.expires_at_ms - now) / 1000,
        )
        return True

    # MARK: - Proactive refresh

    async def _refresh_forever(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception:
                logger.exception("Proactive credential refresh failed")
            await asyncio.sleep(self.refresh_interval_s)

    def start(self) -> None:
        """Start the background refresh task. The first refresh runs immediately."""
        if self._periodic is not None and not self._periodic.done():
            return
        self._periodic = asyncio.create_task(self._refresh_forever())

    async def stop(self) -> None:
        """Stop the background refresh task, leaving the current token in place."""
        if self._periodic is None:
            return
        self._periodic.cancel()
        try:
            await self._periodic
        except asyncio.CancelledError:
            pass
        self._periodic = None

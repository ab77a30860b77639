"""HTTP access handed to carrier adapters.

Every carrier talks to its upstream only through a fetcher given to it at
init time, so tests can swap in a fake transport and carriers can wrap the
base fetcher (for example with OAuth) without subclassing it.
"""

import asyncio
import logging
from typing import Any, Protocol

import httpx

from parceltrack.errors import InternalError


class Fetcher(Protocol):
    """Minimal HTTP capability used by carrier adapters."""

    carrier_id: str

    async def fetch(self, method: str, url: str, **kwargs: Any) -> httpx.Response: ...


class UpstreamFetcher:
    """Pass-through fetcher bound to one carrier."""

    def __init__(
        self,
        carrier_id: str,
        client: httpx.AsyncClient,
        logger: logging.Logger | None = None,
    ):
        self.carrier_id = carrier_id
        self.client = client
        self.logger = logger or logging.getLogger(__name__).getChild(carrier_id)

    async def fetch(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        self.logger.debug("%s %s", method, url, extra={"carrier_id": self.carrier_id})
        return await self.client.request(method, url, **kwargs)


class OAuthClientCredentialsFetcher:
    """Wraps a fetcher with OAuth2 client-credentials bearer authentication.

    The token is fetched on first use and cached for the life of the process.
    A 401 drops the token, and the request is retried exactly once with a
    fresh one; if the retry is also rejected, that response is returned as is.
    Token exchange is single-flight: concurrent callers wait on one exchange.
    """

    def __init__(
        self,
        origin: Fetcher,
        token_url: str,
        client_id: str,
        client_secret: str,
        logger: logging.Logger | None = None,
    ):
        self.origin = origin
        self.carrier_id = origin.carrier_id
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.logger = logger or logging.getLogger(__name__).getChild(self.carrier_id)
        self._access_token: str | None = None
        self._token_lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self._access_token is not None

    async def fetch(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        token = await self._get_token()
        response = await self._send(method, url, token, kwargs)
        if response.status_code != 401:
            return response

        self.logger.info(
            "Access token rejected, reauthenticating",
            extra={"carrier_id": self.carrier_id},
        )
        self._invalidate(token)

        token = await self._get_token()
        response = await self._send(method, url, token, kwargs)
        if response.status_code == 401:
            self.logger.warning(
                "Access token rejected after reauthentication",
                extra={"carrier_id": self.carrier_id},
            )
            self._invalidate(token)
        return response

    async def _send(
        self, method: str, url: str, token: str, kwargs: dict[str, Any]
    ) -> httpx.Response:
        headers = dict(kwargs.get("headers") or {})
        headers["Authorization"] = f"Bearer {token}"
        return await self.origin.fetch(method, url, **{**kwargs, "headers": headers})

    async def _get_token(self) -> str:
        async with self._token_lock:
            if self._access_token is None:
                self._access_token = await self._exchange_token()
            return self._access_token

    def _invalidate(self, token: str) -> None:
        # Only drop the token the failed request carried.
        if self._access_token == token:
            self._access_token = None

    async def _exchange_token(self) -> str:
        self.logger.info("Fetching access token", extra={"carrier_id": self.carrier_id})
        response = await self.origin.fetch(
            "POST",
            self.token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )

        if response.status_code != 200:
            self.logger.error(
                "Token exchange failed with status %s",
                response.status_code,
                extra={"carrier_id": self.carrier_id},
            )
            raise InternalError()

        try:
            access_token = response.json()["access_token"]
        except (ValueError, KeyError, TypeError):
            self.logger.error(
                "Token exchange response has no access_token",
                extra={"carrier_id": self.carrier_id},
            )
            raise InternalError() from None

        if not isinstance(access_token, str) or not access_token:
            self.logger.error(
                "Token exchange returned an empty access_token",
                extra={"carrier_id": self.carrier_id},
            )
            raise InternalError()

        return access_token

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime

import httpx
from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError

from auth import assertion
from auth.credentials import AppCredentials
from hubgate.constants import (
    GITHUB_ACCEPT,
    GITHUB_API_URL,
    GITHUB_API_VERSION,
    LOGGER,
    TOKEN_REFRESH_BUFFER_SECONDS,
)
from hubgate.errors import ResponseShapeError, TokenExchangeError


@dataclass(frozen=True)
class InstallationToken:
    token: str
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        return now + TOKEN_REFRESH_BUFFER_SECONDS < self.expires_at


class InstallationTokenPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: StrictStr
    expires_at: datetime


async def exchange_installation_token(
    credentials: AppCredentials,
    *,
    api_url: str = GITHUB_API_URL,
    client: httpx.AsyncClient | None = None,
    now: float | None = None,
) -> InstallationToken:
    app_assertion = assertion.mint(credentials, now=now)
    url = f"{api_url.rstrip('/')}/app/installations/{credentials.installation_id}/access_tokens"
    headers = {
        "Accept": GITHUB_ACCEPT,
        "Authorization": f"Bearer {app_assertion.token}",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }

    own_client = client is None
    http_client = client or httpx.AsyncClient()

    try:
        response = await http_client.post(url, headers=headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as error:
        detail = error.response.text
        LOGGER.error(
            "Failed to get installation token status=%s body=%s",
            error.response.status_code,
            detail[:1000],
        )
        raise TokenExchangeError(
            error.response.status_code,
            detail,
            message=f"Failed to get installation token: {error.response.status_code}",
        ) from error
    finally:
        if own_client:
            await http_client.aclose()

    try:
        payload = InstallationTokenPayload.model_validate(response.json())
    except (ValueError, ValidationError) as error:
        raise ResponseShapeError(
            response.status_code,
            response.text,
            message="Installation token response did not match the expected shape.",
        ) from error

    return InstallationToken(token=payload.token, expires_at=payload.expires_at.timestamp())


ExchangeFn = Callable[[AppCredentials], Awaitable[InstallationToken]]


class InstallationTokenCache:
    """Process-wide installation token with single-flight refresh.

    Concurrent callers that find no fresh token share one exchange: the first
    one starts it and everybody awaits the same task, so they all see the same
    token or the same exception.
    """

    def __init__(
        self,
        load_credentials: Callable[[], AppCredentials],
        exchange_fn: ExchangeFn,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._load_credentials = load_credentials
        self._exchange_fn = exchange_fn
        self._clock = clock
        self._lock = asyncio.Lock()
        self._cached: InstallationToken | None = None
        self._refresh_task: asyncio.Task[InstallationToken] | None = None

    @property
    def cached(self) -> InstallationToken | None:
        return self._cached

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None

    async def get_token(self) -> str:
        async with self._lock:
            cached = self._cached
            if cached is not None and cached.is_fresh(self._clock()):
                return cached.token

            if self._refresh_task is None:
                self._refresh_task = asyncio.ensure_future(self._refresh())
            refresh_task = self._refresh_task

        # shield: a cancelled waiter must not cancel the exchange others await.
        token = await asyncio.shield(refresh_task)
        return token.token

    async def _refresh(self) -> InstallationToken:
        try:
            credentials = self._load_credentials()
            LOGGER.info("Refreshing installation token...")
            token = await self._exchange_fn(credentials)
            self._cached = token
            LOGGER.info(
                "Installation token refreshed, expires at %s",
                time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(token.expires_at)),
            )
            return token
        finally:
            self._refresh_task = None

    def invalidate(self) -> None:
        self._cached = None
        LOGGER.info("Installation token cache cleared")

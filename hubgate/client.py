from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any

import httpx

from auth.credentials import AppCredentials, CredentialStore
from auth.installation_token import (
    InstallationToken,
    InstallationTokenCache,
    exchange_installation_token,
)
from auth.webhook import WebhookVerifier

from . import env
from .constants import GITHUB_API_URL, LOGGER
from .http import (
    GitHubDispatcher,
    RateLimitSnapshot,
    RateLimitTracker,
    build_log_hooks,
    parse_body,
)
from .pagination import PaginatedResponse, parse_link_header, with_total_count


class GitHubApp:
    """Authenticated GitHub App client shared by the whole process.

    Owns the credential store, the installation token cache, the last
    rate-limit snapshot and the HTTP clients. Build one per process and pass it
    around; tests build their own with fake transports and clocks.
    """

    def __init__(
        self,
        store: CredentialStore | None = None,
        *,
        api_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
        allow_unsigned_webhooks: bool = False,
        debug: bool = False,
    ) -> None:
        self._store = store or CredentialStore()
        self._api_url = api_url.rstrip("/")
        self._rate_limits = RateLimitTracker()

        log_request, log_response = build_log_hooks(debug)
        self._http = httpx.AsyncClient(
            base_url=self._api_url,
            timeout=timeout,
            transport=transport,
            event_hooks={
                "request": [log_request],
                "response": [self._rate_limits.handle_response, log_response],
            },
        )
        self._auth_http = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            event_hooks={"request": [log_request], "response": [log_response]},
        )

        async def exchange(credentials: AppCredentials) -> InstallationToken:
            return await exchange_installation_token(
                credentials,
                api_url=self._api_url,
                client=self._auth_http,
                now=clock(),
            )

        self._tokens = InstallationTokenCache(self._store.load, exchange, clock=clock)
        self._dispatcher = GitHubDispatcher(self._http, self._tokens)
        self._allow_unsigned_webhooks = allow_unsigned_webhooks
        self._verifier: WebhookVerifier | None = None

    @classmethod
    def from_env(cls, *, debug: bool = False) -> "GitHubApp":
        return cls(
            CredentialStore(),
            api_url=env.api_url(),
            timeout=env.api_timeout(),
            allow_unsigned_webhooks=env.allow_unsigned_webhooks(),
            debug=debug,
        )

    @property
    def tokens(self) -> InstallationTokenCache:
        return self._tokens

    async def __aenter__(self) -> "GitHubApp":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()
        await self._auth_http.aclose()

    def is_configured(self) -> bool:
        return self._store.is_configured()

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        content: str | bytes | None = None,
        headers: Mapping[str, str] | None = None,
        parse_json: bool = True,
    ) -> Any:
        return await self._dispatcher.request(
            path,
            method=method,
            params=params,
            json=json,
            content=content,
            headers=headers,
            parse_json=parse_json,
        )

    async def paginated_request(
        self,
        path: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        items_key: str | None = None,
    ) -> PaginatedResponse:
        """Fetch one page of a list endpoint.

        ``items_key`` unwraps endpoints that answer with
        ``{"total_count": N, "<items_key>": [...]}`` (installation
        repositories, workflow runs).
        """
        response = await self._dispatcher.send(path, method=method, params=params, headers=headers)
        data = parse_body(response)
        pagination = parse_link_header(response.headers.get("link"))

        if items_key is not None:
            if not isinstance(data, dict):
                raise TypeError(f"Expected an object wrapping {items_key!r}, got {type(data).__name__}")
            pagination = with_total_count(pagination, data.get("total_count"))
            data = data.get(items_key, [])

        return PaginatedResponse(
            data=data,
            pagination=pagination,
            rate_limit=self._rate_limits.snapshot,
        )

    async def iterate_pages(
        self,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        items_key: str | None = None,
        per_page: int = 30,
        max_pages: int | None = None,
    ) -> AsyncIterator[Any]:
        query = dict(params or {})
        query.setdefault("per_page", per_page)
        page = int(query.pop("page", 1))
        fetched = 0

        while True:
            result = await self.paginated_request(
                path,
                params={**query, "page": page},
                items_key=items_key,
            )
            for item in result.data:
                yield item

            fetched += 1
            next_page = result.pagination.next_page if result.pagination else None
            if next_page is None or (max_pages is not None and fetched >= max_pages):
                return
            page = next_page

    def get_rate_limit_status(self) -> RateLimitSnapshot | None:
        return self._rate_limits.snapshot

    def is_rate_limit_low(self) -> bool:
        return self._rate_limits.is_low()

    def clear_token_cache(self) -> None:
        self._tokens.invalidate()

    def verify_webhook_signature(self, payload: str | bytes, signature: str | None) -> bool:
        if self._verifier is None:
            self._verifier = WebhookVerifier(
                self._store.webhook_secret(),
                allow_unsigned=self._allow_unsigned_webhooks,
            )
            if not self._verifier.has_secret:
                LOGGER.warning(
                    "GITHUB_WEBHOOK_SECRET is not set; unsigned webhooks are %s",
                    "accepted" if self._allow_unsigned_webhooks else "rejected",
                )
        return self._verifier.verify(payload, signature)

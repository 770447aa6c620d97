from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

import httpx

from auth.installation_token import InstallationTokenCache

from .constants import GITHUB_ACCEPT, GITHUB_API_VERSION, LOGGER, RATE_LIMIT_LOW_THRESHOLD
from .errors import ApiError, AuthError, RateLimitError, ResponseShapeError

# First attempt plus one retry after a 401.
MAX_ATTEMPTS = 2


@dataclass(frozen=True)
class RateLimitSnapshot:
    limit: int
    remaining: int
    reset: int
    used: int
    resource: str

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "RateLimitSnapshot | None":
        limit = headers.get("x-ratelimit-limit")
        remaining = headers.get("x-ratelimit-remaining")
        reset = headers.get("x-ratelimit-reset")
        if not (limit and remaining and reset):
            return None
        try:
            return cls(
                limit=int(limit),
                remaining=int(remaining),
                reset=int(reset),
                used=int(headers.get("x-ratelimit-used") or 0),
                resource=headers.get("x-ratelimit-resource") or "core",
            )
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _seconds_until_reset(reset_header: str | None, *, now: float | None = None) -> int | None:
    if reset_header is None:
        return None
    try:
        reset_epoch = int(reset_header)
    except ValueError:
        return None

    current = time.time() if now is None else now
    return max(0, reset_epoch - int(current))


class RateLimitTracker:
    """Keeps the rate-limit headers of the last response seen by the client."""

    def __init__(self, *, low_threshold: int = RATE_LIMIT_LOW_THRESHOLD) -> None:
        self._snapshot: RateLimitSnapshot | None = None
        self._low_threshold = low_threshold

    @property
    def snapshot(self) -> RateLimitSnapshot | None:
        return self._snapshot

    def is_low(self) -> bool:
        if self._snapshot is None:
            return False
        return self._snapshot.remaining < self._low_threshold

    async def handle_response(self, response: httpx.Response) -> None:
        snapshot = RateLimitSnapshot.from_headers(response.headers)
        if snapshot is not None:
            self._snapshot = snapshot

        remaining = response.headers.get("x-ratelimit-remaining")
        reset = response.headers.get("x-ratelimit-reset")
        endpoint = str(response.request.url)
        if snapshot is not None:
            LOGGER.debug(
                "Rate limit state endpoint=%s resource=%s remaining=%s/%s reset=%s",
                endpoint,
                snapshot.resource,
                snapshot.remaining,
                snapshot.limit,
                snapshot.reset,
            )

        if response.status_code == 429 or remaining == "0":
            LOGGER.warning(
                "Rate limit warning endpoint=%s status=%s remaining=%s wait=%s",
                endpoint,
                response.status_code,
                remaining,
                _seconds_until_reset(reset),
            )


def build_log_hooks(debug_enabled: bool) -> tuple:
    async def log_request(request: httpx.Request) -> None:
        if not debug_enabled:
            return
        LOGGER.info("GitHub request %s %s", request.method, request.url)

    async def log_response(response: httpx.Response) -> None:
        if not debug_enabled:
            return
        LOGGER.info(
            "GitHub response %s %s -> %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )
        if response.status_code >= 400:
            request_id = response.headers.get("x-github-request-id")
            if request_id:
                LOGGER.warning("GitHub x-github-request-id: %s", request_id)
            body = await response.aread()
            text = body.decode("utf-8", errors="replace")
            if len(text) > 1000:
                text = text[:1000] + "...<truncated>"
            LOGGER.warning("GitHub error body: %s", text)

    return log_request, log_response


def _error_for(response: httpx.Response) -> ApiError:
    body = response.text
    if response.status_code == 401:
        return AuthError(401, body, message="GitHub rejected the installation token after a refresh.")

    reset = response.headers.get("x-ratelimit-reset")
    reset_epoch = int(reset) if reset and reset.isdigit() else None
    if response.status_code == 429 or (
        response.status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0"
    ):
        return RateLimitError(response.status_code, body, reset=reset_epoch)

    return ApiError(response.status_code, body)


def parse_body(response: httpx.Response, *, parse_json: bool = True) -> Any:
    if response.status_code == 204:
        return {} if parse_json else ""

    text = response.text
    if not text or not parse_json:
        return text
    try:
        return response.json()
    except ValueError as error:
        raise ResponseShapeError(
            response.status_code,
            text[:1000],
            message=f"GitHub returned invalid JSON for {response.request.url}",
        ) from error


class GitHubDispatcher:
    """Sends authenticated requests, retrying once when the token is rejected."""

    def __init__(self, client: httpx.AsyncClient, tokens: InstallationTokenCache) -> None:
        self._client = client
        self._tokens = tokens

    @staticmethod
    def _headers(token: str, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers = {
            "Accept": GITHUB_ACCEPT,
            "Authorization": f"Bearer {token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def send(
        self,
        path: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        content: str | bytes | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        for attempt in range(1, MAX_ATTEMPTS + 1):
            token = await self._tokens.get_token()
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                content=content,
                headers=self._headers(token, headers),
            )
            if response.status_code == 401 and attempt < MAX_ATTEMPTS:
                LOGGER.info("Got 401 for %s %s, clearing token and retrying", method, path)
                self._tokens.invalidate()
                continue
            break

        if response.is_success:
            return response
        raise _error_for(response)

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
        response = await self.send(
            path,
            method=method,
            params=params,
            json=json,
            content=content,
            headers=headers,
        )
        return parse_body(response, parse_json=parse_json)

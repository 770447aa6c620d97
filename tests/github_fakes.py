import asyncio
from datetime import datetime, timezone

import httpx

from auth.credentials import CredentialStore
from hubgate.client import GitHubApp

API_URL = "https://api.github.test"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _iso(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class FakeGitHub:
    """Scripted GitHub upstream for ``httpx.MockTransport``.

    ``routes`` maps a path to a list of ``(status, response_kwargs)``; entries
    are consumed in order and the last one repeats.
    """

    def __init__(
        self,
        *,
        tokens: list[str] | None = None,
        token_ttl: float = 3600,
        token_status: int = 201,
        clock=None,
        routes: dict[str, list[tuple[int, dict]]] | None = None,
    ) -> None:
        self.token_calls = 0
        self.token_requests: list[httpx.Request] = []
        self.resource_requests: list[httpx.Request] = []
        self._tokens = tokens or ["T1"]
        self._token_ttl = token_ttl
        self._token_status = token_status
        self._clock = clock or FakeClock()
        self._routes = {path: list(responses) for path, responses in (routes or {}).items()}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/access_tokens"):
            self.token_calls += 1
            self.token_requests.append(request)
            # Let concurrent callers pile up while the exchange is in flight.
            await asyncio.sleep(0)
            if self._token_status >= 400:
                return httpx.Response(self._token_status, text="bad credentials")
            token = self._tokens[min(self.token_calls - 1, len(self._tokens) - 1)]
            return httpx.Response(
                self._token_status,
                json={
                    "token": token,
                    "expires_at": _iso(self._clock() + self._token_ttl),
                    "permissions": {"contents": "read"},
                    "repository_selection": "all",
                },
            )

        self.resource_requests.append(request)
        responses = self._routes.get(request.url.path)
        if not responses:
            return httpx.Response(404, json={"message": "Not Found"})
        status, kwargs = responses.pop(0) if len(responses) > 1 else responses[0]
        return httpx.Response(status, **kwargs)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def bearer_tokens(self) -> list[str]:
        return [request.headers["authorization"] for request in self.resource_requests]


def build_github_app(app_env: dict, fake: FakeGitHub, *, clock=None, **kwargs) -> GitHubApp:
    return GitHubApp(
        CredentialStore(app_env),
        api_url=API_URL,
        transport=fake.transport(),
        clock=clock or fake._clock,
        **kwargs,
    )


def rate_limit_headers(remaining: int, *, limit: int = 5000, reset: int = 1_700_003_600) -> dict:
    return {
        "x-ratelimit-limit": str(limit),
        "x-ratelimit-remaining": str(remaining),
        "x-ratelimit-reset": str(reset),
        "x-ratelimit-used": str(limit - remaining),
        "x-ratelimit-resource": "core",
    }

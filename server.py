from __future__ import annotations

import contextlib
import json
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from auth.webhook import SIGNATURE_HEADER
from hubgate import env
from hubgate.client import GitHubApp
from hubgate.constants import APP_VERSION, LOGGER

WebhookHandler = Callable[[dict, str], Awaitable[dict[str, Any] | None]]

WEBHOOK_USER_AGENT_PREFIX = "GitHub-Hookshot/"


def health_payload(github: GitHubApp) -> dict[str, Any]:
    rate_limit = github.get_rate_limit_status()
    return {
        "status": "ok",
        "version": APP_VERSION,
        "github": {
            "configured": github.is_configured(),
            "rate_limit": None if rate_limit is None else rate_limit.to_dict(),
            "rate_limit_low": github.is_rate_limit_low(),
        },
    }


async def handle_webhook(
    request: Request,
    github: GitHubApp,
    handlers: Mapping[str, WebhookHandler],
) -> Response:
    signature = request.headers.get(SIGNATURE_HEADER, "")
    event = request.headers.get("x-github-event", "")
    delivery_id = request.headers.get("x-github-delivery", "")
    user_agent = request.headers.get("user-agent", "")

    if not user_agent.startswith(WEBHOOK_USER_AGENT_PREFIX):
        LOGGER.warning("Webhook rejected: unexpected user agent %r", user_agent)
        return JSONResponse({"error": "Invalid source"}, status_code=403)

    body = await request.body()
    if not github.verify_webhook_signature(body, signature):
        LOGGER.error("Webhook rejected: invalid signature (delivery %s)", delivery_id)
        return JSONResponse({"error": "Invalid signature"}, status_code=401)

    try:
        payload = json.loads(body)
    except ValueError:
        return JSONResponse({"error": "Invalid JSON payload"}, status_code=400)

    LOGGER.info("Received %s webhook (delivery %s)", event, delivery_id)

    if event == "ping":
        return JSONResponse({"message": "pong", "delivery_id": delivery_id})

    handler = handlers.get(event)
    if handler is None:
        return JSONResponse({"message": "Event not handled", "event": event})

    try:
        result = await handler(payload, delivery_id)
    except Exception:
        LOGGER.exception("Webhook handler for %s failed (delivery %s)", event, delivery_id)
        return JSONResponse({"error": "Webhook processing failed"}, status_code=500)

    return JSONResponse(result or {"message": "ok", "event": event})


def create_app(
    github: GitHubApp | None = None,
    *,
    handlers: Mapping[str, WebhookHandler] | None = None,
) -> Starlette:
    github = github or GitHubApp.from_env(debug=env.setup_logging())
    registered = dict(handlers or {})

    async def health_route(request: Request) -> Response:
        del request
        return JSONResponse(health_payload(github))

    async def webhook_route(request: Request) -> Response:
        return await handle_webhook(request, github, registered)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        del app
        yield
        await github.aclose()

    app = Starlette(
        routes=[
            Route("/health", health_route, methods=["GET"]),
            Route("/github/webhook", webhook_route, methods=["POST"]),
        ],
        lifespan=lifespan,
    )
    app.state.github = github
    return app


def main() -> None:
    import uvicorn

    env.load_env()
    host, port = env.server_bind()
    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    main()

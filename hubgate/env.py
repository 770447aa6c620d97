from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import AnyHttpUrl, ValidationError

from .constants import GITHUB_API_URL, LOGGER
from .errors import ConfigurationError


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer value.")


def _get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number.")


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    from dotenv import load_dotenv

    load_dotenv(env_path, override=False)


def api_url() -> str:
    raw = os.getenv("GITHUB_API_URL", "").strip() or GITHUB_API_URL
    try:
        AnyHttpUrl(raw)
    except ValidationError as error:
        raise ConfigurationError(f"GITHUB_API_URL must be a valid HTTP(S) URL: {raw!r}") from error
    return raw.rstrip("/")


def api_timeout() -> float:
    return _get_env_float("GITHUB_API_TIMEOUT", 30.0)


def allow_unsigned_webhooks() -> bool:
    return is_truthy(os.getenv("GITHUB_WEBHOOK_ALLOW_UNSIGNED"))


def server_bind() -> tuple[str, int]:
    return os.getenv("HUBGATE_HOST", "127.0.0.1"), _get_env_int("HUBGATE_PORT", 8000)


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("GITHUB_API_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled

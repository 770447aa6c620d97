import logging

import pytest

from hubgate import env
from hubgate.client import GitHubApp
from hubgate.constants import LOGGER
from hubgate.errors import ConfigurationError


def test_is_truthy() -> None:
    assert env.is_truthy("YES") is True
    assert env.is_truthy(" 1 ") is True
    assert env.is_truthy("off") is False
    assert env.is_truthy(None) is False


def test_api_url_defaults_and_strips_slash(monkeypatch) -> None:
    monkeypatch.delenv("GITHUB_API_URL", raising=False)
    assert env.api_url() == "https://api.github.com"

    monkeypatch.setenv("GITHUB_API_URL", "https://github.example.com/api/v3/")
    assert env.api_url() == "https://github.example.com/api/v3"


def test_api_url_must_be_http(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_API_URL", "not a url")

    with pytest.raises(ConfigurationError, match="GITHUB_API_URL"):
        env.api_url()


def test_api_timeout(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_API_TIMEOUT", "12.5")
    assert env.api_timeout() == 12.5

    monkeypatch.setenv("GITHUB_API_TIMEOUT", "soon")
    with pytest.raises(ConfigurationError, match="GITHUB_API_TIMEOUT"):
        env.api_timeout()


def test_server_bind_rejects_bad_port(monkeypatch) -> None:
    monkeypatch.setenv("HUBGATE_PORT", "eighty")

    with pytest.raises(ConfigurationError, match="HUBGATE_PORT"):
        env.server_bind()


def test_allow_unsigned_webhooks_defaults_to_false(monkeypatch) -> None:
    monkeypatch.delenv("GITHUB_WEBHOOK_ALLOW_UNSIGNED", raising=False)
    assert env.allow_unsigned_webhooks() is False

    monkeypatch.setenv("GITHUB_WEBHOOK_ALLOW_UNSIGNED", "true")
    assert env.allow_unsigned_webhooks() is True


def test_setup_logging_respects_debug_flag(monkeypatch) -> None:
    monkeypatch.setenv("GITHUB_API_DEBUG", "0")
    assert env.setup_logging() is False

    monkeypatch.setenv("GITHUB_API_DEBUG", "1")
    assert env.setup_logging() is True
    assert LOGGER.level == logging.INFO


@pytest.mark.asyncio
async def test_github_app_from_env(monkeypatch, app_env) -> None:
    for key, value in app_env.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("GITHUB_API_URL", "https://github.example.com/api/v3")

    async with GitHubApp.from_env() as github:
        assert github.is_configured() is True

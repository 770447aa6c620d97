import time

from hubgate.errors import (
    ApiError,
    AuthError,
    ConfigurationError,
    RateLimitError,
    ResponseShapeError,
    TokenExchangeError,
    describe_error,
)


def test_configuration_message() -> None:
    assert describe_error(ConfigurationError("missing")) == "GitHub App is not configured."


def test_rate_limit_message() -> None:
    error = RateLimitError(403, "limit", reset=int(time.time()) + 3600)

    assert describe_error(error).startswith("GitHub rate limit exceeded. Please wait ")
    assert 3590 <= error.wait_seconds() <= 3600


def test_rate_limit_without_reset() -> None:
    error = RateLimitError(429, "slow down")

    assert error.wait_seconds() is None
    assert "Resets at unknown" in str(error)
    assert describe_error(error) == "GitHub rate limit exceeded. Please wait 0 seconds."


def test_rate_limit_error_message_includes_reset() -> None:
    error = RateLimitError(403, reset=0)

    assert str(error) == "Rate limit exceeded. Resets at 1970-01-01T00:00:00Z"
    assert error.wait_seconds(now=30) == 0


def test_auth_messages() -> None:
    assert describe_error(AuthError(401, "bad")) == "Authentication with GitHub failed."
    assert "installation token" in describe_error(TokenExchangeError(401, "bad"))


def test_api_error_messages() -> None:
    assert describe_error(ApiError(404, "")) == "The requested resource was not found on GitHub."
    assert describe_error(ApiError(403, "")).startswith("The GitHub App does not have permission")
    assert describe_error(ApiError(503, "")) == "GitHub is experiencing issues. Please try again later."
    assert describe_error(ApiError(422, "")) == "GitHub request failed with status 422."
    assert describe_error(ResponseShapeError(200, "")) == "GitHub returned an unexpected response."


def test_api_error_keeps_status_and_body() -> None:
    error = ApiError(422, '{"message": "Validation Failed"}')

    assert error.status_code == 422
    assert error.body == '{"message": "Validation Failed"}'
    assert str(error) == 'GitHub API error: 422 - {"message": "Validation Failed"}'


def test_unknown_error() -> None:
    assert describe_error(ValueError("boom")) == "Unexpected error while talking to GitHub."

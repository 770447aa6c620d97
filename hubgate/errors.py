from __future__ import annotations

import time


class GitHubError(RuntimeError):
    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(GitHubError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=500)


class ApiError(GitHubError):
    def __init__(self, status_code: int, body: str = "", message: str | None = None) -> None:
        super().__init__(message or f"GitHub API error: {status_code} - {body}", status_code)
        self.body = body


class AuthError(ApiError):
    pass


class TokenExchangeError(ApiError):
    pass


class ResponseShapeError(ApiError):
    pass


class RateLimitError(ApiError):
    def __init__(self, status_code: int, body: str = "", reset: int | None = None) -> None:
        resets_at = "unknown" if reset is None else time.strftime(
            "%Y-%m-%dT%H:%M:%SZ", time.gmtime(reset)
        )
        super().__init__(status_code, body, message=f"Rate limit exceeded. Resets at {resets_at}")
        self.reset = reset

    def wait_seconds(self, *, now: float | None = None) -> int | None:
        if self.reset is None:
            return None
        current = time.time() if now is None else now
        return max(0, self.reset - int(current))


def describe_error(error: BaseException) -> str:
    """Message suitable for the dashboard instead of a raw exception."""
    if isinstance(error, ConfigurationError):
        return "GitHub App is not configured."
    if isinstance(error, RateLimitError):
        wait = error.wait_seconds()
        return f"GitHub rate limit exceeded. Please wait {0 if wait is None else wait} seconds."
    if isinstance(error, TokenExchangeError):
        return "Could not obtain a GitHub installation token. Check the App credentials."
    if isinstance(error, AuthError):
        return "Authentication with GitHub failed."
    if isinstance(error, ResponseShapeError):
        return "GitHub returned an unexpected response."
    if isinstance(error, ApiError):
        if error.status_code == 403:
            return "The GitHub App does not have permission to perform this action."
        if error.status_code == 404:
            return "The requested resource was not found on GitHub."
        if error.status_code >= 500:
            return "GitHub is experiencing issues. Please try again later."
        return f"GitHub request failed with status {error.status_code}."
    return "Unexpected error while talking to GitHub."

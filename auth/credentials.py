from __future__ import annotations

import base64
import binascii
import os
from collections.abc import Mapping
from dataclasses import dataclass

from hubgate.errors import ConfigurationError

APP_ID_ENV = "GITHUB_APP_ID"
PRIVATE_KEY_ENV = "GITHUB_PRIVATE_KEY_BASE64"
INSTALLATION_ID_ENV = "GITHUB_INSTALLATION_ID"
WEBHOOK_SECRET_ENV = "GITHUB_WEBHOOK_SECRET"

REQUIRED_ENV = (APP_ID_ENV, PRIVATE_KEY_ENV, INSTALLATION_ID_ENV)


@dataclass(frozen=True)
class AppCredentials:
    app_id: str
    private_key: str
    installation_id: int
    webhook_secret: str | None = None

    def __repr__(self) -> str:
        return (
            f"AppCredentials(app_id={self.app_id!r}, installation_id={self.installation_id!r}, "
            f"webhook_secret={'set' if self.webhook_secret else None})"
        )


def decode_private_key(raw: str) -> str:
    """Return PEM text from a base64-encoded (or already PEM) private key."""
    value = raw.strip()
    if value.startswith("-----"):
        return value
    try:
        decoded = base64.b64decode("".join(value.split()), validate=True)
        return decoded.decode("utf-8").strip()
    except (binascii.Error, UnicodeDecodeError) as error:
        raise ConfigurationError(f"{PRIVATE_KEY_ENV} is not valid base64-encoded PEM.") from error


class CredentialStore:
    """Loads the GitHub App identity once and hands out the same object afterwards."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ
        self._credentials: AppCredentials | None = None

    def _get(self, key: str) -> str:
        return (self._environ.get(key) or "").strip()

    def is_configured(self) -> bool:
        return all(self._get(key) for key in REQUIRED_ENV)

    def webhook_secret(self) -> str | None:
        return self._get(WEBHOOK_SECRET_ENV) or None

    def load(self) -> AppCredentials:
        if self._credentials is not None:
            return self._credentials

        missing = [key for key in REQUIRED_ENV if not self._get(key)]
        if missing:
            raise ConfigurationError(
                f"GitHub App not configured. Missing environment variables: {', '.join(missing)}"
            )

        raw_installation_id = self._get(INSTALLATION_ID_ENV)
        try:
            installation_id = int(raw_installation_id)
        except ValueError:
            raise ConfigurationError(f"{INSTALLATION_ID_ENV} must be an integer value.")

        self._credentials = AppCredentials(
            app_id=self._get(APP_ID_ENV),
            private_key=decode_private_key(self._get(PRIVATE_KEY_ENV)),
            installation_id=installation_id,
            webhook_secret=self.webhook_secret(),
        )
        return self._credentials

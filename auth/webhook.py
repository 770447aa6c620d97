from __future__ import annotations

import hashlib
import hmac
import re

from hubgate.constants import LOGGER

SIGNATURE_HEADER = "X-Hub-Signature-256"
_SIGNATURE_RE = re.compile(r"sha256=([a-f0-9]+)", re.IGNORECASE)


def compute_signature(payload: str | bytes, secret: str) -> str:
    body = payload.encode("utf-8") if isinstance(payload, str) else payload
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class WebhookVerifier:
    """Checks ``X-Hub-Signature-256`` headers against the webhook secret.

    Never raises. Without a secret the result is ``allow_unsigned``: callers
    must opt in to accepting unsigned deliveries.
    """

    def __init__(self, secret: str | None, *, allow_unsigned: bool = False) -> None:
        self._secret = secret or None
        self._allow_unsigned = allow_unsigned

    @property
    def has_secret(self) -> bool:
        return self._secret is not None

    def verify(self, payload: str | bytes, signature_header: str | None) -> bool:
        if self._secret is None:
            if self._allow_unsigned:
                LOGGER.warning(
                    "No webhook secret configured, skipping signature verification"
                )
                return True
            LOGGER.error("No webhook secret configured, rejecting webhook delivery")
            return False

        match = _SIGNATURE_RE.fullmatch(signature_header or "")
        if match is None:
            LOGGER.error("Invalid webhook signature format")
            return False

        received = match.group(1)
        expected = compute_signature(payload, self._secret).removeprefix("sha256=")
        if len(received) != len(expected):
            return False
        return hmac.compare_digest(received.encode("ascii"), expected.encode("ascii"))

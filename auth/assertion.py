from __future__ import annotations

import base64
import json
import time
from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from auth.credentials import AppCredentials

ISSUED_AT_SKEW_SECONDS = 30
# GitHub rejects assertions that live longer than 10 minutes.
LIFETIME_SECONDS = 540


@dataclass(frozen=True)
class SignedAssertion:
    header: dict
    claims: dict
    signature: str
    token: str

    @property
    def issued_at(self) -> int:
        return self.claims["iat"]

    @property
    def expires_at(self) -> int:
        return self.claims["exp"]


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def _encode_json(payload: dict) -> str:
    return _b64url(json.dumps(payload, separators=(",", ":")).encode())


def _load_rsa_key(private_key_pem: str) -> rsa.RSAPrivateKey:
    key = serialization.load_pem_private_key(private_key_pem.encode(), password=None)
    if not isinstance(key, rsa.RSAPrivateKey):
        raise TypeError("GitHub App private key must be an RSA key.")
    return key


def mint(credentials: AppCredentials, *, now: float | None = None) -> SignedAssertion:
    """Build an RS256 app assertion for the installation token exchange.

    ``iat`` is backdated to absorb clock drift between us and GitHub. Key
    errors propagate as raised by ``cryptography``.
    """
    current = int(time.time() if now is None else now)
    header = {"alg": "RS256", "typ": "JWT"}
    claims = {
        "iat": current - ISSUED_AT_SKEW_SECONDS,
        "exp": current + LIFETIME_SECONDS,
        "iss": credentials.app_id,
    }

    signing_input = f"{_encode_json(header)}.{_encode_json(claims)}"
    key = _load_rsa_key(credentials.private_key)
    raw_signature = key.sign(signing_input.encode(), padding.PKCS1v15(), hashes.SHA256())
    signature = _b64url(raw_signature)

    return SignedAssertion(
        header=header,
        claims=claims,
        signature=signature,
        token=f"{signing_input}.{signature}",
    )

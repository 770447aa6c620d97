import base64

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from auth.credentials import AppCredentials


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def public_key_pem(rsa_private_key) -> str:
    return rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def app_env(private_key_pem) -> dict[str, str]:
    return {
        "GITHUB_APP_ID": "12345",
        "GITHUB_PRIVATE_KEY_BASE64": base64.b64encode(private_key_pem.encode()).decode(),
        "GITHUB_INSTALLATION_ID": "67890",
        "GITHUB_WEBHOOK_SECRET": "webhook-secret",
    }


@pytest.fixture
def credentials(private_key_pem) -> AppCredentials:
    return AppCredentials(
        app_id="12345",
        private_key=private_key_pem,
        installation_id=67890,
        webhook_secret="webhook-secret",
    )

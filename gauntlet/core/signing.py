"""gauntlet.core.signing

Ed25519 request signing for exchange REST calls.

Signed message: timestamp + METHOD + url path + query string + body, where
the timestamp is epoch milliseconds. The signature travels base64-encoded in
headers next to the API key and the same timestamp.
"""

from __future__ import annotations

import base64
import time
from collections.abc import Generator
from pathlib import Path

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from gauntlet.core.exceptions import ConfigError

API_KEY_HEADER = "X-Revx-API-Key"
TIMESTAMP_HEADER = "X-Revx-Timestamp"
SIGNATURE_HEADER = "X-Revx-Signature"


def load_private_key(path: str | Path) -> Ed25519PrivateKey:
    """Read an unencrypted PEM (PKCS#8) Ed25519 private key."""

    p = Path(path).expanduser()
    try:
        key = serialization.load_pem_private_key(p.read_bytes(), password=None)
    except OSError as e:
        raise ConfigError(f"private key unreadable: {p} ({e})") from e
    except (ValueError, TypeError) as e:
        raise ConfigError(f"private key is not a valid unencrypted PEM key: {p}") from e
    if not isinstance(key, Ed25519PrivateKey):
        raise ConfigError(f"private key is not Ed25519: {p}")
    return key


def signing_message(timestamp: str, request: httpx.Request) -> bytes:
    head = f"{timestamp}{request.method.upper()}{request.url.path}".encode()
    return head + request.url.query + request.content


class Ed25519RequestAuth(httpx.Auth):
    """httpx auth flow that signs each request just before it is sent."""

    def __init__(self, api_key: str, private_key: Ed25519PrivateKey) -> None:
        self.api_key = api_key
        self.private_key = private_key

    @classmethod
    def from_pem_file(cls, api_key: str, path: str | Path) -> Ed25519RequestAuth:
        return cls(api_key, load_private_key(path))

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        timestamp = str(int(time.time() * 1000))
        signature = self.private_key.sign(signing_message(timestamp, request))
        request.headers[API_KEY_HEADER] = self.api_key
        request.headers[TIMESTAMP_HEADER] = timestamp
        request.headers[SIGNATURE_HEADER] = base64.b64encode(signature).decode("ascii")
        yield request

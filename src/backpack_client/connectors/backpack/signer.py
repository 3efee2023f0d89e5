"""
Request signing for Backpack authenticated endpoints.

Every private call carries four headers computed from an Ed25519 signature
over a canonical string:

    instruction=<tag>&<param>=<value>&...&timestamp=<ms>&window=<ms>

with all keys sorted byte-wise ascending. Headers are produced fresh for
each call; a stale timestamp is rejected by the exchange.
"""

from __future__ import annotations

import base64
import binascii
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from backpack_client.errors import ConfigurationError

DEFAULT_WINDOW_MS = 10000

# Raw seed, or seed followed by the 32-byte public key
_SEED_LEN = 32
_EXPANDED_LEN = 64


@dataclass(frozen=True)
class SignatureHeaders:
    """The four authentication headers of one signed request."""

    api_key: str
    signature: str
    timestamp: str
    window: str

    def as_dict(self) -> dict[str, str]:
        return {
            "X-API-Key": self.api_key,
            "X-Signature": self.signature,
            "X-Timestamp": self.timestamp,
            "X-Window": self.window,
        }


def stringify(value: Any) -> str:
    """Render a parameter value the way the exchange serializes it."""
    # bool first: it is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_signing_string(
    instruction: str,
    payload: Mapping[str, Any] | None,
    timestamp_ms: int,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> str:
    """
    Build the canonical string that is signed.

    Args:
        instruction: Instruction tag of the endpoint (e.g. "orderExecute").
        payload: Request parameters; None values are skipped.
        timestamp_ms: Request timestamp in ms since epoch.
        window_ms: Validity window in ms.

    Returns:
        Key-sorted, '&'-joined key=value string.
    """
    data: dict[str, str] = {"instruction": instruction}
    for key, value in (payload or {}).items():
        if value is None:
            continue
        data[key] = stringify(value)
    data["timestamp"] = str(timestamp_ms)
    data["window"] = str(window_ms)

    return "&".join(f"{key}={data[key]}" for key in sorted(data))


def load_signing_key(secret_key: str) -> Ed25519PrivateKey:
    """
    Decode a base64 secret into an Ed25519 private key.

    Raises:
        ConfigurationError: If the secret is not base64 or has the wrong length.
    """
    try:
        raw = base64.b64decode(secret_key, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError("secret_key is not valid base64") from e

    if len(raw) == _EXPANDED_LEN:
        raw = raw[:_SEED_LEN]
    if len(raw) != _SEED_LEN:
        raise ConfigurationError(
            f"secret_key must decode to {_SEED_LEN} or {_EXPANDED_LEN} bytes, got {len(raw)}"
        )
    return Ed25519PrivateKey.from_private_bytes(raw)


def sign(
    instruction: str,
    api_key: str,
    secret_key: str,
    payload: Mapping[str, Any] | None = None,
    *,
    timestamp_ms: int | None = None,
    window_ms: int = DEFAULT_WINDOW_MS,
) -> SignatureHeaders:
    """
    Sign a request and return its authentication headers.

    Args:
        instruction: Instruction tag of the endpoint.
        api_key: Public API key.
        secret_key: Base64-encoded Ed25519 private key.
        payload: Request parameters included in the signature.
        timestamp_ms: Override for the current time (tests).
        window_ms: Validity window in ms.

    Raises:
        ConfigurationError: If the secret key cannot be used.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    signing_string = build_signing_string(instruction, payload, timestamp_ms, window_ms)
    private_key = load_signing_key(secret_key)
    signature = private_key.sign(signing_string.encode("utf-8"))

    return SignatureHeaders(
        api_key=api_key,
        signature=base64.b64encode(signature).decode("ascii"),
        timestamp=str(timestamp_ms),
        window=str(window_ms),
    )

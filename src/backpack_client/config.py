"""
Credential loading for the Backpack client.

Credentials come from a JSON file shaped as
{"api_key": ..., "secret_key": ..., "other_config": ...}
or from the BACKPACK_API_KEY / BACKPACK_SECRET_KEY environment variables.
The secret is never logged and never included in repr().
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import orjson

from backpack_client.errors import ConfigurationError

logger = logging.getLogger(__name__)

API_KEY_ENV = "BACKPACK_API_KEY"
SECRET_KEY_ENV = "BACKPACK_SECRET_KEY"


@dataclass(frozen=True)
class Credentials:
    """
    API credentials for authenticated endpoints.

    Attributes:
        api_key: Public API key identifier (sent as X-API-Key).
        secret_key: Base64-encoded Ed25519 private key.
        other_config: Free-form extra setting carried by the config file.
    """

    api_key: str
    secret_key: str = field(repr=False)
    other_config: str = ""

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigurationError("api_key must not be empty")
        if not self.secret_key:
            raise ConfigurationError("secret_key must not be empty")

    @classmethod
    def from_env(cls) -> Credentials:
        """Build credentials from BACKPACK_API_KEY / BACKPACK_SECRET_KEY."""
        api_key = os.environ.get(API_KEY_ENV, "")
        secret_key = os.environ.get(SECRET_KEY_ENV, "")
        if not api_key or not secret_key:
            raise ConfigurationError(f"{API_KEY_ENV} and {SECRET_KEY_ENV} must both be set")
        return cls(api_key=api_key, secret_key=secret_key)


def load_credentials(path: str | Path) -> Credentials:
    """
    Read credentials from a JSON config file.

    Args:
        path: Path to the config file.

    Returns:
        Credentials built from the file.

    Raises:
        ConfigurationError: If the file is missing, not JSON, or lacks keys.
    """
    path = Path(path)
    try:
        raw = orjson.loads(path.read_bytes())
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file not found: {path}") from e
    except orjson.JSONDecodeError as e:
        raise ConfigurationError(f"Config file is not valid JSON: {path}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Config file must hold a JSON object: {path}")

    missing = [key for key in ("api_key", "secret_key") if not raw.get(key)]
    if missing:
        raise ConfigurationError(f"Config file missing keys: {', '.join(missing)}")

    logger.info("Loaded credentials", extra={"config_file": path.name})
    return Credentials(
        api_key=str(raw["api_key"]),
        secret_key=str(raw["secret_key"]),
        other_config=str(raw.get("other_config") or ""),
    )

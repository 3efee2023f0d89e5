"""Tests for Backpack request signing."""

from __future__ import annotations

import base64

import pytest
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from backpack_client.connectors.backpack.signer import (
    DEFAULT_WINDOW_MS,
    SignatureHeaders,
    build_signing_string,
    load_signing_key,
    sign,
    stringify,
)
from backpack_client.errors import ConfigurationError

SEED = bytes(range(32))
SECRET = base64.b64encode(SEED).decode()
TIMESTAMP_MS = 1700000000000


def _public_key():
    return Ed25519PrivateKey.from_private_bytes(SEED).public_key()


class TestBuildSigningString:
    """Tests for the canonical signing string."""

    def test_keys_sorted_and_joined(self) -> None:
        """Keys are sorted byte-wise and joined with '&'."""
        result = build_signing_string(
            "orderExecute",
            {"symbol": "SOL_USDC", "side": "Bid", "orderType": "Limit"},
            TIMESTAMP_MS,
        )
        assert result == (
            "instruction=orderExecute&orderType=Limit&side=Bid&symbol=SOL_USDC"
            f"&timestamp={TIMESTAMP_MS}&window=10000"
        )

    def test_empty_payload(self) -> None:
        """Empty payload signs only instruction, timestamp and window."""
        result = build_signing_string("balanceQuery", None, TIMESTAMP_MS)
        assert result == f"instruction=balanceQuery&timestamp={TIMESTAMP_MS}&window=10000"

    def test_insertion_order_irrelevant(self) -> None:
        """Same parameters in different order produce the same string."""
        a = build_signing_string("orderQuery", {"b": "2", "a": "1"}, TIMESTAMP_MS)
        b = build_signing_string("orderQuery", {"a": "1", "b": "2"}, TIMESTAMP_MS)
        assert a == b

    def test_uppercase_sorts_before_lowercase(self) -> None:
        """Byte-wise order puts uppercase keys first."""
        result = build_signing_string("x", {"a": "1", "Z": "2"}, TIMESTAMP_MS)
        assert result.index("Z=2") < result.index("a=1")

    def test_none_values_skipped(self) -> None:
        """None parameters take no part in the signature."""
        result = build_signing_string("orderQuery", {"symbol": "SOL_USDC", "orderId": None}, 1)
        assert "orderId" not in result

    def test_custom_window(self) -> None:
        result = build_signing_string("balanceQuery", {}, 1, window_ms=5000)
        assert result.endswith("&window=5000")


class TestStringify:
    """Tests for parameter value rendering."""

    def test_bool_lowercase(self) -> None:
        assert stringify(True) == "true"
        assert stringify(False) == "false"

    def test_numbers_and_strings(self) -> None:
        assert stringify(5) == "5"
        assert stringify("1.5") == "1.5"


class TestLoadSigningKey:
    """Tests for secret key decoding."""

    def test_32_byte_seed(self) -> None:
        key = load_signing_key(SECRET)
        assert key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw) == (
            _public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        )

    def test_64_byte_expanded_key(self) -> None:
        """Seed followed by public key is accepted; the seed is used."""
        public = _public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        expanded = base64.b64encode(SEED + public).decode()
        key = load_signing_key(expanded)
        assert key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw) == public

    def test_invalid_base64(self) -> None:
        with pytest.raises(ConfigurationError, match="base64"):
            load_signing_key("not base64!!")

    def test_wrong_length(self) -> None:
        with pytest.raises(ConfigurationError, match="bytes"):
            load_signing_key(base64.b64encode(b"short").decode())


class TestSign:
    """Tests for header generation."""

    def test_headers_shape(self) -> None:
        headers = sign("balanceQuery", "my-api-key", SECRET, timestamp_ms=TIMESTAMP_MS)
        assert isinstance(headers, SignatureHeaders)
        as_dict = headers.as_dict()
        assert set(as_dict) == {"X-API-Key", "X-Signature", "X-Timestamp", "X-Window"}
        assert as_dict["X-API-Key"] == "my-api-key"
        assert as_dict["X-Timestamp"] == str(TIMESTAMP_MS)
        assert as_dict["X-Window"] == str(DEFAULT_WINDOW_MS)

    def test_deterministic(self) -> None:
        """Same inputs produce the same signature (Ed25519 is deterministic)."""
        payload = {"symbol": "SOL_USDC"}
        a = sign("orderCancelAll", "k", SECRET, payload, timestamp_ms=TIMESTAMP_MS)
        b = sign("orderCancelAll", "k", SECRET, payload, timestamp_ms=TIMESTAMP_MS)
        assert a == b

    def test_signature_verifies(self) -> None:
        """Signature verifies against the canonical string with the public key."""
        payload = {"symbol": "SOL_USDC", "postOnly": True}
        headers = sign("orderExecute", "k", SECRET, payload, timestamp_ms=TIMESTAMP_MS)
        message = build_signing_string("orderExecute", payload, TIMESTAMP_MS)

        _public_key().verify(base64.b64decode(headers.signature), message.encode())

    def test_tampered_payload_fails_verification(self) -> None:
        headers = sign("orderExecute", "k", SECRET, {"price": "1"}, timestamp_ms=TIMESTAMP_MS)
        tampered = build_signing_string("orderExecute", {"price": "2"}, TIMESTAMP_MS)

        with pytest.raises(InvalidSignature):
            _public_key().verify(base64.b64decode(headers.signature), tampered.encode())

    def test_timestamp_changes_signature(self) -> None:
        a = sign("balanceQuery", "k", SECRET, timestamp_ms=TIMESTAMP_MS)
        b = sign("balanceQuery", "k", SECRET, timestamp_ms=TIMESTAMP_MS + 1)
        assert a.signature != b.signature

    def test_instruction_changes_signature(self) -> None:
        a = sign("orderQuery", "k", SECRET, timestamp_ms=TIMESTAMP_MS)
        b = sign("orderCancel", "k", SECRET, timestamp_ms=TIMESTAMP_MS)
        assert a.signature != b.signature

    def test_default_timestamp_is_now(self) -> None:
        headers = sign("balanceQuery", "k", SECRET)
        assert int(headers.timestamp) > TIMESTAMP_MS

    def test_bad_secret_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            sign("balanceQuery", "k", "@@@")

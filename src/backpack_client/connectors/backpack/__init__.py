"""
Backpack exchange connector.

- REST: signed requests (Ed25519) for private endpoints, typed results
- Cancel-all: bounded retry, UNKNOWN outcome after exhausted attempts
- WebSocket: subscribe/unsubscribe control frames, order update events,
  reconnect with backoff
"""

from backpack_client.connectors.backpack.cancel_all import CancelAllController
from backpack_client.connectors.backpack.rest_client import BackpackRestClient
from backpack_client.connectors.backpack.signer import (
    SignatureHeaders,
    build_signing_string,
    load_signing_key,
    sign,
)
from backpack_client.connectors.backpack.stream import StreamSession, control_frame
from backpack_client.connectors.backpack.transport import RestTransport
from backpack_client.connectors.backpack.types import (
    ApiResult,
    ClientConfig,
    ExchangeFailure,
    ExchangeResponse,
    HttpMethod,
    ResultStatus,
    SessionState,
    StreamConfig,
)

__all__ = [
    "ApiResult",
    "BackpackRestClient",
    "CancelAllController",
    "ClientConfig",
    "ExchangeFailure",
    "ExchangeResponse",
    "HttpMethod",
    "RestTransport",
    "ResultStatus",
    "SessionState",
    "SignatureHeaders",
    "StreamConfig",
    "StreamSession",
    "build_signing_string",
    "control_frame",
    "load_signing_key",
    "sign",
]

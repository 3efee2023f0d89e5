"""
REST transport for the Backpack API.

Sends one HTTP request and decodes the JSON body. HTTP success does not
imply exchange success: a body with {"status": "fail"}, or an HTTP error
status with a JSON body, is returned as an ExchangeFailure value rather
than raised. Network errors and timeouts raise TransportError and are
never retried here.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import aiohttp
import orjson

from backpack_client.connectors.backpack.signer import stringify
from backpack_client.connectors.backpack.types import (
    FAILURE_STATUS,
    ClientConfig,
    ExchangeFailure,
    ExchangeResponse,
    HttpMethod,
)
from backpack_client.errors import TransportError

if TYPE_CHECKING:
    from types import TracebackType

    from backpack_client.metrics import ClientMetrics, RequestOutcome

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json; charset=utf-8"


def _is_failure_envelope(data: Any) -> bool:
    return isinstance(data, dict) and data.get("status") == FAILURE_STATUS


def _decode_body(raw: bytes, status: int, content_type: str) -> Any:
    """Decode JSON; a successful text/plain body (e.g. ping) is returned as text."""
    if not raw.strip():
        return None
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError:
        if status < 400 and content_type.startswith("text/"):
            return raw.decode("utf-8", errors="replace").strip()
        raise


class RestTransport:
    """Async HTTP transport with a fixed per-call timeout."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        metrics: ClientMetrics | None = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._metrics = metrics
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> RestTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._config.request_timeout_ms / 1000)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _record(self, method: HttpMethod, outcome: RequestOutcome) -> None:
        if self._metrics is not None:
            self._metrics.record_request(method.value, outcome)

    async def execute(
        self,
        method: HttpMethod | str,
        path: str,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> ExchangeResponse:
        """
        Execute one request.

        Args:
            method: GET, POST or DELETE.
            path: API path (e.g. "/api/v1/order").
            headers: Signature headers for authenticated calls.
            params: Query parameters (GET) or JSON body (POST/DELETE).

        Returns:
            ExchangeResponse with decoded data and optional failure.

        Raises:
            TransportError: On network error, timeout or undecodable response.
        """
        method = HttpMethod(method)
        url = f"{self._config.base_rest_url}{path}"

        request_headers = {"Content-Type": CONTENT_TYPE}
        if headers:
            request_headers.update(headers)

        # None values are left out, matching the signing string
        present = (
            None
            if params is None
            else {key: value for key, value in params.items() if value is not None}
        )

        query: dict[str, str] | None = None
        body: bytes | None = None
        if method == HttpMethod.GET:
            if present:
                query = {key: stringify(value) for key, value in present.items()}
        elif present is not None:
            # Decimal quantities and prices go out as JSON strings
            body = orjson.dumps(present, default=str)

        start = time.monotonic()
        try:
            session = await self._get_session()
            async with session.request(
                method.value,
                url,
                params=query,
                data=body,
                headers=request_headers,
            ) as response:
                status = response.status
                content_type = response.content_type
                raw = await response.read()
        except TimeoutError as e:
            self._record(method, "error")
            logger.warning(
                "Request timed out",
                extra={"method": method.value, "url": url},
            )
            raise TransportError(f"{method.value} {path} timed out") from e
        except aiohttp.ClientError as e:
            self._record(method, "error")
            logger.warning(
                "Request failed",
                extra={"method": method.value, "url": url, "error": str(e)},
            )
            raise TransportError(f"{method.value} {path} failed: {e}") from e

        latency_ms = int((time.monotonic() - start) * 1000)

        try:
            data = _decode_body(raw, status, content_type)
        except orjson.JSONDecodeError as e:
            self._record(method, "error")
            logger.error(
                "Undecodable response body",
                extra={"method": method.value, "url": url, "status": status},
            )
            raise TransportError(
                f"{method.value} {path} returned non-JSON body (HTTP {status})",
                status=status,
            ) from e

        if status >= 400 or _is_failure_envelope(data):
            failure = ExchangeFailure.from_body(status, data)
            self._record(method, "failed")
            logger.warning(
                "Exchange reported failure",
                extra={
                    "method": method.value,
                    "url": url,
                    "status": status,
                    "code": failure.code,
                    "latency_ms": latency_ms,
                },
            )
            return ExchangeResponse(data=data, http_status=status, failure=failure)

        self._record(method, "ok")
        logger.debug(
            "Request completed",
            extra={
                "method": method.value,
                "url": url,
                "status": status,
                "latency_ms": latency_ms,
            },
        )
        return ExchangeResponse(data=data, http_status=status)

"""
Streaming session for Backpack WebSocket streams.

A single connection carrying SUBSCRIBE/UNSUBSCRIBE control frames and
inbound order-update events:
- Control frames are {"method": ..., "params": [stream]}, each bounded by
  a write deadline
- Inbound frames are dispatched to a synchronous callback in arrival order
- The inbound loop stops when the stop event is set, then closes the socket
- Unintended disconnects reconnect with exponential backoff + jitter and
  resubscribe every tracked stream
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import aiohttp
import orjson

from backpack_client.connectors.backoff import BackoffState, compute_backoff_delay
from backpack_client.connectors.backpack.types import SessionState, StreamConfig
from backpack_client.contracts.models import OrderUpdateEvent
from backpack_client.errors import StreamDecodeError, TransportError

if TYPE_CHECKING:
    from types import TracebackType

    from backpack_client.metrics import ClientMetrics

logger = logging.getLogger(__name__)

# Type alias for the event callback (runs inline in the inbound loop)
OrderUpdateCallback = Callable[[OrderUpdateEvent], None]

_CLOSED_TYPES = frozenset(
    {aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED}
)


def control_frame(method: str, stream: str) -> str:
    """Render a SUBSCRIBE/UNSUBSCRIBE frame exactly as sent on the wire."""
    return orjson.dumps({"method": method, "params": [stream]}).decode()


class StreamSession:
    """
    One WebSocket connection to the Backpack stream endpoint.

    States: DISCONNECTED -> CONNECTED -> SUBSCRIBED -> CLOSING -> CLOSED,
    with RECONNECTING while recovering from an unintended disconnect.

    Usage:
        stop = asyncio.Event()
        async with StreamSession(on_event, stop_event=stop) as session:
            await session.subscribe("depth.SOL_USDC")
            await session.run()  # returns once stop is set
    """

    def __init__(
        self,
        on_event: OrderUpdateCallback,
        *,
        stop_event: asyncio.Event | None = None,
        config: StreamConfig | None = None,
        metrics: ClientMetrics | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            on_event: Called once per decoded event, inline; must not block.
            stop_event: External stop signal; a new one is created if None.
            config: Stream configuration.
            metrics: Optional metrics sink.
            rng: Optional seeded RNG for reconnect jitter.
        """
        self._on_event = on_event
        self._stop = stop_event or asyncio.Event()
        self._config = config or StreamConfig()
        self._metrics = metrics
        self._rng = rng

        self._streams: set[str] = set()
        self._state = SessionState.DISCONNECTED
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._backoff_state = BackoffState()

    async def __aenter__(self) -> StreamSession:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def streams(self) -> frozenset[str]:
        """Currently subscribed stream names."""
        return frozenset(self._streams)

    @property
    def stop_event(self) -> asyncio.Event:
        return self._stop

    def stop(self) -> None:
        """Ask the inbound loop to stop."""
        self._stop.set()

    def _set_state(self, state: SessionState) -> None:
        if self._state != state:
            logger.debug(
                "Session state changed",
                extra={"old_state": self._state.value, "new_state": state.value},
            )
            self._state = state

    def _settled_state(self) -> SessionState:
        return SessionState.SUBSCRIBED if self._streams else SessionState.CONNECTED

    # =========================================================================
    # Connection lifecycle
    # =========================================================================

    async def _open_socket(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(
                self._config.ws_url,
                heartbeat=self._config.heartbeat_ms / 1000,
            )
        except (aiohttp.ClientError, TimeoutError) as e:
            raise TransportError(f"WebSocket connect failed: {e}") from e

    async def _close_socket(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None

    async def connect(self) -> None:
        """
        Open the socket. No authentication is performed.

        Raises:
            TransportError: If the connection cannot be established.
        """
        try:
            await self._open_socket()
        except TransportError:
            self._set_state(SessionState.DISCONNECTED)
            logger.error("Failed to connect", extra={"ws_url": self._config.ws_url})
            raise
        self._backoff_state.reset()
        self._set_state(self._settled_state())
        logger.info("WebSocket connected", extra={"ws_url": self._config.ws_url})

    async def close(self) -> None:
        """Close socket and HTTP session. Safe to call more than once."""
        if self._state == SessionState.CLOSED:
            return
        self._set_state(SessionState.CLOSING)
        await self._close_socket()
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        self._set_state(SessionState.CLOSED)
        logger.info("WebSocket closed", extra={"streams": len(self._streams)})

    async def _reconnect(self) -> None:
        """
        Reconnect with backoff and resubscribe tracked streams.

        Returns early if the stop event is set while waiting.

        Raises:
            TransportError: If max_reconnect_attempts is exhausted.
        """
        self._set_state(SessionState.RECONNECTING)
        await self._close_socket()

        backoff = self._config.reconnect_backoff
        for attempt in range(1, self._config.max_reconnect_attempts + 1):
            self._backoff_state.record_error()
            if self._metrics is not None:
                self._metrics.record_reconnect()
            delay_ms = compute_backoff_delay(backoff, self._backoff_state, rng=self._rng)
            logger.info(
                "Reconnecting with backoff",
                extra={"attempt": attempt, "delay_ms": delay_ms},
            )

            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stop.wait(), timeout=delay_ms / 1000)
            if self._stop.is_set():
                return

            try:
                await self._open_socket()
                for stream in sorted(self._streams):
                    await self._send_control("SUBSCRIBE", stream)
            except TransportError as e:
                logger.warning(
                    "Reconnect attempt failed",
                    extra={"attempt": attempt, "error": str(e)},
                )
                await self._close_socket()
                continue

            self._backoff_state.reset()
            self._set_state(self._settled_state())
            logger.info(
                "WebSocket reconnected",
                extra={"attempt": attempt, "streams": len(self._streams)},
            )
            return

        self._set_state(SessionState.DISCONNECTED)
        raise TransportError(
            f"Reconnect attempts exhausted ({self._config.max_reconnect_attempts})"
        )

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def _send_control(self, method: str, stream: str) -> None:
        if self._ws is None or self._ws.closed:
            raise TransportError(f"Cannot send {method}: not connected")
        frame = control_frame(method, stream)
        try:
            await asyncio.wait_for(
                self._ws.send_str(frame),
                timeout=self._config.write_timeout_ms / 1000,
            )
        except TimeoutError as e:
            raise TransportError(f"{method} {stream} exceeded write deadline") from e
        except (aiohttp.ClientError, ConnectionError) as e:
            raise TransportError(f"{method} {stream} failed: {e}") from e
        logger.debug("Sent control frame", extra={"method": method, "stream": stream})

    async def subscribe(self, stream: str) -> None:
        """
        Subscribe to a stream (e.g. "depth.SOL_USDC").

        Raises:
            TransportError: If not connected or the write deadline is missed.
        """
        await self._send_control("SUBSCRIBE", stream)
        self._streams.add(stream)
        self._set_state(SessionState.SUBSCRIBED)
        logger.info("Subscribed", extra={"stream": stream, "streams": len(self._streams)})

    async def unsubscribe(self, stream: str) -> None:
        """
        Unsubscribe from a stream.

        Raises:
            TransportError: If not connected or the write deadline is missed.
        """
        await self._send_control("UNSUBSCRIBE", stream)
        self._streams.discard(stream)
        self._set_state(self._settled_state())
        logger.info("Unsubscribed", extra={"stream": stream, "streams": len(self._streams)})

    # =========================================================================
    # Inbound loop
    # =========================================================================

    def _handle_frame(self, raw: str | bytes) -> None:
        """Decode one frame and dispatch it. Control acknowledgements are skipped."""
        if self._metrics is not None:
            self._metrics.record_frame()

        try:
            data: Any = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise StreamDecodeError("Frame is not valid JSON", frame=raw) from e

        # Envelope format: {"stream": ..., "data": {...}}
        if isinstance(data, dict) and "stream" in data and "data" in data:
            data = data["data"]

        if not isinstance(data, dict):
            raise StreamDecodeError("Frame is not a JSON object", frame=raw)

        if "e" not in data:
            logger.debug("Skipping non-event frame")
            return

        self._on_event(OrderUpdateEvent.from_frame(data))

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            self._handle_frame(raw)
        except StreamDecodeError:
            if self._metrics is not None:
                self._metrics.record_decode_error()
            if self._config.strict_decode:
                raise
            logger.warning("Skipping undecodable frame")

    async def run(self) -> None:
        """
        Process inbound frames until the stop event is set.

        The socket and HTTP session are closed when this returns or raises.

        Raises:
            TransportError: If not connected, or reconnects are exhausted.
            StreamDecodeError: On an undecodable frame with strict_decode.
        """
        if self._ws is None or self._ws.closed:
            raise TransportError("Cannot run: not connected")

        stop_waiter = asyncio.create_task(self._stop.wait())
        try:
            while not self._stop.is_set():
                assert self._ws is not None
                receive = asyncio.create_task(self._ws.receive())
                done, _ = await asyncio.wait(
                    {receive, stop_waiter},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if receive not in done:
                    receive.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await receive
                    break

                msg = receive.result()
                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    self._dispatch(msg.data)
                elif msg.type in _CLOSED_TYPES or msg.type == aiohttp.WSMsgType.ERROR:
                    if self._stop.is_set():
                        break
                    logger.warning(
                        "WebSocket closed by peer",
                        extra={"msg_type": msg.type.name},
                    )
                    await self._reconnect()
        except StreamDecodeError:
            logger.error("Undecodable frame, closing session")
            raise
        finally:
            stop_waiter.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await stop_waiter
            await self.close()

        logger.info("Inbound loop stopped")

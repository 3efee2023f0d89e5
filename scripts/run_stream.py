#!/usr/bin/env python3
"""
Run a Backpack streaming session until SIGINT/SIGTERM.

Connects to the Backpack WebSocket endpoint, subscribes to the requested
streams and logs every decoded order-update event.

Usage:
    python -m scripts.run_stream
    python -m scripts.run_stream --stream depth.SOL_USDC --stream trade.SOL_USDC
    python -m scripts.run_stream --duration-s 60 --verbose

Signal handlers only set the stop event; the inbound loop exits on its own
and closes the socket.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import signal
import sys
from dataclasses import dataclass, field

from backpack_client.connectors.backpack.stream import StreamSession
from backpack_client.connectors.backpack.types import StreamConfig
from backpack_client.contracts.models import OrderUpdateEvent
from backpack_client.errors import BackpackError
from backpack_client.logging_config import setup_logging
from backpack_client.metrics import ClientMetrics

logger = logging.getLogger(__name__)

DEFAULT_STREAM = "depth.SOL_USDC"
SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)

_STREAM_RE = re.compile(r"^[A-Za-z0-9]+(\.[A-Za-z0-9_]+)*$")


@dataclass
class StreamRunConfig:
    """Configuration for a stream run."""

    streams: list[str] = field(default_factory=lambda: [DEFAULT_STREAM])

    # None = use StreamConfig default
    ws_url: str | None = None

    strict_decode: bool = False

    # Duration in seconds (None = run until SIGINT/SIGTERM)
    duration_s: int | None = None

    verbose: bool = False
    json_logs: bool = True

    def __post_init__(self) -> None:
        if not self.streams:
            raise ValueError("At least one stream is required")
        for name in self.streams:
            if not _STREAM_RE.match(name):
                msg = f"Invalid stream name: {name!r}"
                raise ValueError(msg)
        if self.duration_s is not None and self.duration_s <= 0:
            msg = f"duration_s must be > 0, got {self.duration_s}"
            raise ValueError(msg)

    def stream_config(self) -> StreamConfig:
        if self.ws_url is None:
            return StreamConfig(strict_decode=self.strict_decode)
        return StreamConfig(ws_url=self.ws_url, strict_decode=self.strict_decode)


def log_event(event: OrderUpdateEvent) -> None:
    """Default callback: one log line per event."""
    logger.info(
        "Order update",
        extra={
            "event_type": event.event_type,
            "symbol": event.symbol,
            "order_state": event.order_state,
            "event_time": event.event_time,
        },
    )


def setup_signal_handlers(stop: asyncio.Event) -> None:
    """
    Install SIGINT/SIGTERM handlers on the running loop.

    Handlers only set the stop event; teardown happens in the inbound loop.
    """
    loop = asyncio.get_running_loop()
    for sig in SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, _on_signal, sig, stop)


def remove_signal_handlers() -> None:
    """Restore default SIGINT/SIGTERM handling on the running loop."""
    loop = asyncio.get_running_loop()
    for sig in SHUTDOWN_SIGNALS:
        loop.remove_signal_handler(sig)


def _on_signal(sig: signal.Signals, stop: asyncio.Event) -> None:
    logger.info("Received signal %s, initiating shutdown", sig.name)
    stop.set()


async def run_stream(config: StreamRunConfig) -> int:
    """
    Run one streaming session.

    Args:
        config: Run configuration.

    Returns:
        Exit code (0 = success).
    """
    stop = asyncio.Event()
    metrics = ClientMetrics()
    session = StreamSession(
        log_event,
        stop_event=stop,
        config=config.stream_config(),
        metrics=metrics,
    )

    setup_signal_handlers(stop)
    timer: asyncio.TimerHandle | None = None
    if config.duration_s is not None:
        timer = asyncio.get_running_loop().call_later(config.duration_s, stop.set)

    try:
        await session.connect()
        for name in config.streams:
            await session.subscribe(name)
        await session.run()
        return 0
    except BackpackError as e:
        logger.error("Stream session failed: %s", e)
        return 1
    finally:
        if timer is not None:
            timer.cancel()
        remove_signal_handlers()
        await session.close()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Stream Backpack order-update events until interrupted.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--stream",
        action="append",
        dest="streams",
        help=f"Stream to subscribe to, repeatable (default: {DEFAULT_STREAM})",
    )
    parser.add_argument(
        "--ws-url",
        type=str,
        default=None,
        help="Override WebSocket URL (e.g. a local fake server)",
    )
    parser.add_argument(
        "--strict-decode",
        action="store_true",
        help="Stop on the first undecodable frame instead of skipping it",
    )
    parser.add_argument(
        "--duration-s",
        type=int,
        default=None,
        help="Run for N seconds then stop gracefully (default: run until SIGINT/SIGTERM)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--plain-logs",
        action="store_true",
        help="Human-readable logs instead of JSON",
    )

    args = parser.parse_args()

    config = StreamRunConfig(
        streams=args.streams or [DEFAULT_STREAM],
        ws_url=args.ws_url,
        strict_decode=args.strict_decode,
        duration_s=args.duration_s,
        verbose=args.verbose,
        json_logs=not args.plain_logs,
    )

    setup_logging(
        level=logging.DEBUG if config.verbose else logging.INFO,
        json_format=config.json_logs,
    )

    logger.info("Starting Backpack stream")
    logger.info("  Streams: %s", ", ".join(config.streams))
    logger.info("  Duration: %s", f"{config.duration_s}s" if config.duration_s else "until signal")

    return asyncio.run(run_stream(config))


if __name__ == "__main__":
    sys.exit(main())

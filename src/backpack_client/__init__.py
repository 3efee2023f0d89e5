"""Async client for the Backpack exchange REST and WebSocket APIs."""

__version__ = "0.1.0"

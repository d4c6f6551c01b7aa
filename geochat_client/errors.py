"""Client error types for GeoChat connections."""

from __future__ import annotations


class GeoChatClientError(Exception):
    """Base error for GeoChat client failures."""


class GeoChatTimeout(GeoChatClientError):
    """Timeout while communicating with the server."""


class GeoChatConnectionError(GeoChatClientError):
    """Network connection to the server failed."""


class GeoChatHandshakeError(GeoChatClientError):
    """WebSocket handshake failed."""


class GeoChatResponseError(GeoChatClientError):
    """HTTP response error from an auxiliary endpoint."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status


class MalformedEnvelopeError(GeoChatClientError, ValueError):
    """Inbound frame is not a single-key envelope of a known shape."""


class ConfigError(GeoChatClientError):
    """Configuration file is missing or invalid."""

"""Opening the GeoChat websocket."""

from __future__ import annotations

import asyncio

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import (
    InvalidHandshake,
    InvalidURI,
    WebSocketException,
)

from .errors import (
    GeoChatConnectionError,
    GeoChatHandshakeError,
    GeoChatTimeout,
)

# Envelopes are small JSON objects; a chat line is at most 300 characters.
MAX_FRAME_SIZE = 16 * 1024


async def connect_websocket(
    url: str,
    *,
    ping_interval: int | None = None,
    timeout: float = 15.0,
) -> ClientConnection:
    """Open a text websocket to the chat server.

    No keepalive pings are sent unless ``ping_interval`` is given. Inbound
    frames larger than MAX_FRAME_SIZE close the connection.

    Raises:
        GeoChatTimeout: If the handshake did not finish within ``timeout``
        GeoChatHandshakeError: If the URL or the server's upgrade was rejected
        GeoChatConnectionError: If the socket could not be opened
    """
    try:
        return await asyncio.wait_for(
            websockets.connect(
                url,
                ping_interval=ping_interval,
                max_size=MAX_FRAME_SIZE,
            ),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise GeoChatTimeout("WebSocket connection timed out") from err
    except (InvalidHandshake, InvalidURI) as err:
        raise GeoChatHandshakeError(f"WebSocket handshake with {url} failed") from err
    except (OSError, WebSocketException) as err:
        raise GeoChatConnectionError(f"Could not reach {url}") from err

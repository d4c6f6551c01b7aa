"""WebSocket client wrapper for GeoChat."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, WebSocketException

from .errors import GeoChatConnectionError
from .ws import connect_websocket

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class GeoChatWsMessageType(Enum):
    """Normalized WebSocket message types."""

    TEXT = "text"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class GeoChatWsMessage:
    """Normalized WebSocket message payload.

    ``data`` holds the frame text for TEXT and the failure reason for ERROR.
    ``close_code`` is set for CLOSED when the peer sent a close frame.
    """

    type: GeoChatWsMessageType
    data: str | None = None
    close_code: int | None = None


class GeoChatWsClient:
    """Wrapper around websockets library for GeoChat."""

    def __init__(self) -> None:
        self._ws: ClientConnection | None = None

    async def connect(
        self,
        url: str,
        *,
        ping_interval: int | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Connect to the chat server websocket."""
        self._ws = await connect_websocket(
            url,
            ping_interval=ping_interval,
            timeout=timeout,
        )

    async def close(self, code: int = 1000) -> None:
        """Close the websocket connection."""
        if self._ws is not None:
            await self._ws.close(code=code)

    async def send_text(self, text: str) -> None:
        """Send a single text frame.

        Raises:
            GeoChatConnectionError: If not connected or the socket is gone
        """
        if self._ws is None:
            raise GeoChatConnectionError("WebSocket is not connected")
        try:
            await self._ws.send(text)
        except (ConnectionClosed, WebSocketException, OSError) as err:
            raise GeoChatConnectionError("WebSocket send failed") from err

    def __aiter__(self) -> AsyncIterator[GeoChatWsMessage]:
        if self._ws is None:
            raise GeoChatConnectionError("WebSocket is not connected")
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[GeoChatWsMessage]:
        if self._ws is None:
            raise GeoChatConnectionError("WebSocket is not connected")

        try:
            async for msg in self._ws:
                normalized = self._normalize_message(msg)
                if normalized is None:
                    continue
                yield normalized
        except ConnectionClosed as err:
            yield GeoChatWsMessage(
                type=GeoChatWsMessageType.CLOSED,
                close_code=self._close_code(err),
            )
        except Exception as err:
            yield GeoChatWsMessage(type=GeoChatWsMessageType.ERROR, data=str(err))
        else:
            # Normal iteration completion means the peer closed gracefully.
            yield GeoChatWsMessage(
                type=GeoChatWsMessageType.CLOSED,
                close_code=self._close_code(None),
            )

    def _close_code(self, err: ConnectionClosed | None) -> int | None:
        """Best-effort close code from the exception or the connection."""
        rcvd = getattr(err, "rcvd", None)
        if rcvd is not None:
            code = getattr(rcvd, "code", None)
        else:
            code = getattr(self._ws, "close_code", None)
        return code if isinstance(code, int) else None

    @staticmethod
    def _normalize_message(msg: str | bytes) -> GeoChatWsMessage | None:
        """Normalize websocket frames into GeoChatWsMessage.

        Binary frames are not part of the protocol and are skipped.
        """
        if isinstance(msg, bytes):
            return None
        return GeoChatWsMessage(GeoChatWsMessageType.TEXT, msg)

"""Pytest configuration and fixtures for geochat_client tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from geochat_client.errors import GeoChatConnectionError
from geochat_client.protocol import Envelope, decode_envelope, encode_envelope
from geochat_client.ws_client import GeoChatWsMessage, GeoChatWsMessageType


class FakeWsClient:
    """In-memory stand-in for GeoChatWsClient.

    Tests push inbound frames with ``push``/``push_close``/``push_error``;
    outbound frames are collected in ``sent``.
    """

    def __init__(self) -> None:
        self.connect = AsyncMock()
        self.sent: list[str] = []
        self.closed_with: int | None = None
        self.fail_send = False
        self._inbox: asyncio.Queue[GeoChatWsMessage] = asyncio.Queue()

    async def send_text(self, text: str) -> None:
        if self.fail_send:
            raise GeoChatConnectionError("WebSocket send failed")
        self.sent.append(text)

    async def close(self, code: int = 1000) -> None:
        self.closed_with = code
        self.push_close(code)

    def push(self, frame: Envelope | str) -> None:
        text = frame if isinstance(frame, str) else encode_envelope(frame)
        self._inbox.put_nowait(GeoChatWsMessage(GeoChatWsMessageType.TEXT, text))

    def push_close(self, code: int | None = 1000) -> None:
        self._inbox.put_nowait(
            GeoChatWsMessage(GeoChatWsMessageType.CLOSED, close_code=code)
        )

    def push_error(self, reason: str = "boom") -> None:
        self._inbox.put_nowait(GeoChatWsMessage(GeoChatWsMessageType.ERROR, reason))

    @property
    def sent_envelopes(self) -> list[Envelope]:
        return [decode_envelope(text) for text in self.sent]

    def __aiter__(self) -> AsyncIterator[GeoChatWsMessage]:
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[GeoChatWsMessage]:
        while True:
            msg = await self._inbox.get()
            yield msg
            if msg.type is not GeoChatWsMessageType.TEXT:
                return


async def settle(rounds: int = 20) -> None:
    """Let queued callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_ws() -> Any:
    """Patch the connection's websocket client with a FakeWsClient."""
    client = FakeWsClient()
    with patch("geochat_client.connection.GeoChatWsClient", return_value=client):
        yield client


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock aiohttp ClientSession."""
    import aiohttp

    return MagicMock(spec=aiohttp.ClientSession)


def create_mock_response(
    status: int = 200,
    json_data: Any = None,
) -> AsyncMock:
    """Create a configured mock aiohttp response.

    Args:
        status: HTTP status code
        json_data: Data to return from json() call

    Returns:
        Configured AsyncMock response
    """
    response = AsyncMock()
    response.status = status

    if json_data is not None:
        response.json.return_value = json_data

    response.__aenter__.return_value = response
    response.__aexit__.return_value = None

    return response

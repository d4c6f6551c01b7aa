"""Tests for GeoChatWsClient WebSocket wrapper."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosed
from websockets.frames import Close

from geochat_client.errors import (
    GeoChatConnectionError,
    GeoChatHandshakeError,
    GeoChatTimeout,
)
from geochat_client.ws import MAX_FRAME_SIZE, connect_websocket
from geochat_client.ws_client import (
    GeoChatWsClient,
    GeoChatWsMessage,
    GeoChatWsMessageType,
)

URL = "wss://chat.example.org/ws/"


class TestGeoChatWsMessage:
    """Tests for GeoChatWsMessage dataclass."""

    def test_enum_values(self):
        assert GeoChatWsMessageType.TEXT.value == "text"
        assert GeoChatWsMessageType.CLOSED.value == "closed"
        assert GeoChatWsMessageType.ERROR.value == "error"

    def test_create_closed_message(self):
        msg = GeoChatWsMessage(type=GeoChatWsMessageType.CLOSED)
        assert msg.data is None
        assert msg.close_code is None

    def test_message_is_frozen(self):
        msg = GeoChatWsMessage(type=GeoChatWsMessageType.TEXT, data="test")
        with pytest.raises(AttributeError):
            msg.data = "modified"  # type: ignore[misc]


class TestConnectWebsocket:
    """Tests for connect_websocket() error translation."""

    async def test_timeout(self):
        with patch(
            "geochat_client.ws.websockets.connect", side_effect=TimeoutError()
        ):
            with pytest.raises(GeoChatTimeout):
                await connect_websocket(URL)

    async def test_refused(self):
        with patch(
            "geochat_client.ws.websockets.connect",
            side_effect=ConnectionRefusedError(),
        ):
            with pytest.raises(GeoChatConnectionError):
                await connect_websocket(URL)

    async def test_invalid_uri(self):
        with pytest.raises(GeoChatHandshakeError):
            await connect_websocket("http://not-a-websocket")

    async def test_no_keepalive_and_bounded_frames(self):
        mock_ws = AsyncMock()
        with patch(
            "geochat_client.ws.websockets.connect", AsyncMock(return_value=mock_ws)
        ) as mock_connect:
            assert await connect_websocket(URL) is mock_ws

        kwargs = mock_connect.call_args.kwargs
        assert kwargs["ping_interval"] is None
        assert kwargs["max_size"] == MAX_FRAME_SIZE


class TestGeoChatWsClientConnect:
    """Tests for GeoChatWsClient.connect()."""

    async def test_connect_success(self):
        mock_ws = AsyncMock()

        with patch(
            "geochat_client.ws_client.connect_websocket",
            return_value=mock_ws,
        ) as mock_connect:
            client = GeoChatWsClient()
            await client.connect(URL)

            mock_connect.assert_called_once_with(URL, ping_interval=None, timeout=15.0)
            assert client._ws is mock_ws

    async def test_connect_propagates_errors(self):
        with patch(
            "geochat_client.ws_client.connect_websocket",
            side_effect=GeoChatConnectionError("Connection failed"),
        ):
            client = GeoChatWsClient()
            with pytest.raises(GeoChatConnectionError, match="Connection failed"):
                await client.connect(URL)

    async def test_close_not_connected(self):
        client = GeoChatWsClient()
        # Should not raise
        await client.close()

    async def test_close_connected_passes_code(self):
        mock_ws = AsyncMock()
        with patch("geochat_client.ws_client.connect_websocket", return_value=mock_ws):
            client = GeoChatWsClient()
            await client.connect(URL)
            await client.close(code=1001)

        mock_ws.close.assert_called_once_with(code=1001)


class TestGeoChatWsClientSendText:
    """Tests for GeoChatWsClient.send_text()."""

    async def test_send_text_success(self):
        mock_ws = AsyncMock()

        with patch("geochat_client.ws_client.connect_websocket", return_value=mock_ws):
            client = GeoChatWsClient()
            await client.connect(URL)
            await client.send_text('{"SendMessage":{"msg":"hi"}}')

        mock_ws.send.assert_called_once_with('{"SendMessage":{"msg":"hi"}}')

    async def test_send_text_not_connected(self):
        client = GeoChatWsClient()
        with pytest.raises(GeoChatConnectionError, match="not connected"):
            await client.send_text("{}")

    async def test_send_text_on_closed_socket(self):
        mock_ws = AsyncMock()
        mock_ws.send.side_effect = ConnectionClosed(None, None)

        with patch("geochat_client.ws_client.connect_websocket", return_value=mock_ws):
            client = GeoChatWsClient()
            await client.connect(URL)
            with pytest.raises(GeoChatConnectionError, match="send failed"):
                await client.send_text("{}")


class AsyncIteratorMock:
    """Helper class to create a proper async iterator mock."""

    def __init__(self, items: list, *, raise_on_iter: Exception | None = None):
        self._items = items
        self._index = 0
        self._raise_on_iter = raise_on_iter
        self.close = AsyncMock()

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._index >= len(self._items):
            if self._raise_on_iter is not None:
                raise self._raise_on_iter
            raise StopAsyncIteration
        item = self._items[self._index]
        self._index += 1
        return item


async def _collect(mock_ws) -> list[GeoChatWsMessage]:
    with patch("geochat_client.ws_client.connect_websocket", return_value=mock_ws):
        client = GeoChatWsClient()
        await client.connect(URL)
        return [msg async for msg in client]


class TestGeoChatWsClientIteration:
    """Tests for GeoChatWsClient async iteration."""

    def test_iter_not_connected(self):
        client = GeoChatWsClient()
        with pytest.raises(GeoChatConnectionError, match="not connected"):
            client.__aiter__()

    async def test_iter_text_then_graceful_close(self):
        messages = await _collect(AsyncIteratorMock(["message1", "message2"]))

        assert [m.type for m in messages] == [
            GeoChatWsMessageType.TEXT,
            GeoChatWsMessageType.TEXT,
            GeoChatWsMessageType.CLOSED,
        ]
        assert messages[0].data == "message1"
        assert messages[1].data == "message2"

    async def test_iter_connection_closed_with_code(self):
        closed = ConnectionClosed(Close(1008, "policy"), None)
        messages = await _collect(AsyncIteratorMock(["hi"], raise_on_iter=closed))

        assert messages[-1].type == GeoChatWsMessageType.CLOSED
        assert messages[-1].close_code == 1008

    async def test_iter_connection_closed_without_frame(self):
        messages = await _collect(
            AsyncIteratorMock([], raise_on_iter=ConnectionClosed(None, None))
        )

        assert len(messages) == 1
        assert messages[0].type == GeoChatWsMessageType.CLOSED
        assert messages[0].close_code is None

    async def test_iter_unexpected_error(self):
        messages = await _collect(
            AsyncIteratorMock([], raise_on_iter=RuntimeError("Unexpected"))
        )

        assert len(messages) == 1
        assert messages[0].type == GeoChatWsMessageType.ERROR
        assert messages[0].data == "Unexpected"

    async def test_iter_skips_binary_messages(self):
        messages = await _collect(AsyncIteratorMock(["text1", b"\x00\x01", "text2"]))

        text_messages = [m for m in messages if m.type == GeoChatWsMessageType.TEXT]
        assert [m.data for m in text_messages] == ["text1", "text2"]


class TestGeoChatWsClientNormalization:
    """Tests for GeoChatWsClient message normalization."""

    def test_normalize_string_message(self):
        result = GeoChatWsClient._normalize_message("hello world")
        assert result == GeoChatWsMessage(GeoChatWsMessageType.TEXT, "hello world")

    def test_normalize_bytes_returns_none(self):
        assert GeoChatWsClient._normalize_message(b"\x00\x01\x02") is None

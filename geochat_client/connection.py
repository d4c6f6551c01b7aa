"""Connection lifecycle for a single GeoChat socket.

A ``GeoChatConnection`` owns one websocket from connect to close and turns
it into four reactions: open, message, error and close. It is single-use:
once closed or errored it never reconnects, and every later ``send`` is
rejected with ``False``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from .errors import GeoChatClientError, GeoChatHandshakeError, GeoChatTimeout
from .ws_client import GeoChatWsClient, GeoChatWsMessageType

_LOGGER = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000

OpenCallback = Callable[[], Awaitable[None] | None]
MessageCallback = Callable[[str], Awaitable[None] | None]
ErrorCallback = Callable[[str], Awaitable[None] | None]
CloseCallback = Callable[[int | None], Awaitable[None] | None]


class ConnectionState(Enum):
    """Transport readiness as seen by ``send``."""

    PENDING = "pending"
    OPEN = "open"
    CLOSED = "closed"


class GeoChatConnection:
    """Single-use websocket connection with open/message/error/close reactions.

    Usage:
        connection = GeoChatConnection("wss://example.org/ws/")
        connection.on_open(handle_open)
        connection.on_message(handle_text)
        connection.start()
        await connection.send('{"SendMessage": {"msg": "hi"}}')
        await connection.wait_closed()
    """

    def __init__(
        self,
        url: str,
        *,
        ping_interval: int | None = None,
        timeout: float = 15.0,
    ) -> None:
        """Initialize connection.

        Args:
            url: WebSocket endpoint URL
            ping_interval: Keepalive ping interval in seconds, None for no pings
            timeout: Connect timeout (seconds)
        """
        self.url = url
        self._ping_interval = ping_interval
        self._timeout = timeout

        self._ws: GeoChatWsClient | None = None
        self._state = ConnectionState.PENDING
        self._started = False
        self._run_task: asyncio.Task[None] | None = None
        self._closed_event = asyncio.Event()

        self._open_callback: OpenCallback | None = None
        self._message_callback: MessageCallback | None = None
        self._error_callback: ErrorCallback | None = None
        self._close_callback: CloseCallback | None = None

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_open(self, callback: OpenCallback) -> None:
        """Register callback fired once the socket is open."""
        self._open_callback = callback

    def on_message(self, callback: MessageCallback) -> None:
        """Register callback receiving each inbound text frame."""
        self._message_callback = callback

    def on_error(self, callback: ErrorCallback) -> None:
        """Register callback receiving the reason of a terminal transport error."""
        self._error_callback = callback

    def on_close(self, callback: CloseCallback) -> None:
        """Register callback receiving the close code (None if unknown)."""
        self._close_callback = callback

    # -------------------------------------------------------------------------
    # Public API: Lifecycle
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Get current transport state."""
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if frames can currently be sent."""
        return self._state is ConnectionState.OPEN

    def start(self) -> asyncio.Task[None]:
        """Schedule ``connect`` on the running event loop."""
        if self._run_task is None:
            self._run_task = asyncio.create_task(self.connect())
        return self._run_task

    async def connect(self) -> None:
        """Open the socket and deliver events until it closes.

        Returns once the connection is terminal. Transport failures are
        reported through the error reaction, never raised.
        """
        if self._started:
            _LOGGER.debug("Connection to %s already started", self.url)
            return
        self._started = True
        if self._state is ConnectionState.CLOSED:
            _LOGGER.debug("Connection to %s closed before start", self.url)
            return

        _LOGGER.info("Connecting to %s", self.url)
        ws_client = GeoChatWsClient()
        try:
            await ws_client.connect(
                self.url,
                ping_interval=self._ping_interval,
                timeout=self._timeout,
            )
        except GeoChatTimeout:
            _LOGGER.warning("Connection timeout - %s unreachable", self.url)
            await self._terminate(error="connection timed out")
            return
        except GeoChatHandshakeError as err:
            _LOGGER.error("Handshake rejected: %s", err)
            await self._terminate(error=str(err))
            return
        except GeoChatClientError as err:
            _LOGGER.warning("Connection failed: %s", err)
            await self._terminate(error=str(err))
            return

        if self._state is ConnectionState.CLOSED:
            # close() was requested while the handshake was in flight
            await ws_client.close()
            return

        self._ws = ws_client
        self._state = ConnectionState.OPEN
        _LOGGER.info("WebSocket connected to %s", self.url)
        await self._invoke("open", self._open_callback)

        await self._listen(ws_client)

    async def send(self, text: str) -> bool:
        """Send one text frame.

        Returns:
            True if handed to the socket, False if the connection is not
            open yet or already closed.
        """
        if self._state is not ConnectionState.OPEN or self._ws is None:
            _LOGGER.debug("Send rejected: connection %s", self._state.value)
            return False

        try:
            await self._ws.send_text(text)
        except GeoChatClientError as err:
            _LOGGER.error("Failed to send frame: %s", err)
            await self._terminate(error=str(err))
            return False

        _LOGGER.debug("Sent frame: %s", text)
        return True

    async def close(self, code: int = NORMAL_CLOSURE) -> None:
        """Close the connection. Safe to call in any state."""
        ws_client = self._ws
        await self._terminate(code=code)

        if ws_client is not None:
            try:
                await asyncio.wait_for(ws_client.close(code=code), timeout=2.0)
            except TimeoutError:
                _LOGGER.warning("WebSocket close timed out")

        if (
            self._run_task is not None
            and not self._run_task.done()
            and self._run_task is not asyncio.current_task()
        ):
            self._run_task.cancel()
            try:
                await self._run_task
            except asyncio.CancelledError:
                pass

    async def wait_closed(self) -> None:
        """Wait until the connection is terminal."""
        await self._closed_event.wait()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    async def _listen(self, ws_client: GeoChatWsClient) -> None:
        """Deliver inbound frames until the socket closes or errors."""
        message_count = 0
        try:
            async for msg in ws_client:
                if msg.type is GeoChatWsMessageType.TEXT:
                    message_count += 1
                    if self._state is ConnectionState.OPEN and msg.data is not None:
                        await self._invoke("message", self._message_callback, msg.data)
                elif msg.type is GeoChatWsMessageType.CLOSED:
                    _LOGGER.info("WebSocket closed by server (code=%s)", msg.close_code)
                    await self._terminate(code=msg.close_code)
                    break
                elif msg.type is GeoChatWsMessageType.ERROR:
                    _LOGGER.error("WebSocket error: %s", msg.data)
                    await self._terminate(error=msg.data or "websocket error")
                    break
        except asyncio.CancelledError:
            _LOGGER.debug("Listener cancelled (%d messages)", message_count)
            raise
        finally:
            self._ws = None

    async def _terminate(
        self, *, code: int | None = None, error: str | None = None
    ) -> None:
        """Move to CLOSED exactly once and fire the matching reaction."""
        if self._state is ConnectionState.CLOSED:
            return
        self._state = ConnectionState.CLOSED
        self._closed_event.set()

        if error is not None:
            await self._invoke("error", self._error_callback, error)
        else:
            await self._invoke("close", self._close_callback, code)

    async def _invoke(
        self, name: str, callback: Callable[..., Any] | None, *args: Any
    ) -> None:
        """Run a reaction, awaiting it if it is a coroutine function."""
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as err:
            _LOGGER.exception("Connection %s callback error: %s", name, err)

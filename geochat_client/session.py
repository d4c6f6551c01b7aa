"""Session state machine for one GeoChat connection.

This module ties the pieces of the client together. It handles:
- The identity handshake when the socket opens
- Authentication progress and outbound gating per state
- The one-shot location report after authentication
- Routing of inbound frames through the codec and dispatcher

A session lives exactly as long as its connection. There is no reconnect,
retry or keepalive logic here; a closed session is terminal and a new
``GeoChatConnection``/``GeoChatSession`` pair starts over with a fresh
identifier.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from .connection import GeoChatConnection
from .dispatcher import MessageDispatcher, is_valid_chat_message
from .errors import MalformedEnvelopeError
from .identity import new_identifier
from .location import LocationReporter, PositionProvider
from .protocol import (
    AuthResponse,
    Envelope,
    Location,
    Login,
    Register,
    SendMessage,
    decode_envelope,
    encode_envelope,
)
from .ui import UiAdapter

_LOGGER = logging.getLogger(__name__)

# Fixed credential sent with every registration. It carries no identity
# guarantee; the server only uses it to accept the registration.
PLACEHOLDER_PASSWORD = "password"

STATUS_DISCONNECTED = "disconnected"
STATUS_AUTH_FAILED = "authentication failed"


class SessionState(Enum):
    """Authentication progress of a session."""

    CONNECTING = "connecting"
    AWAITING_AUTH = "awaiting_auth"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


_ALLOWED_OUTBOUND: dict[SessionState, tuple[type, ...]] = {
    SessionState.CONNECTING: (),
    SessionState.AWAITING_AUTH: (Register, Login, SendMessage),
    SessionState.AUTHENTICATED: (Location, SendMessage),
    SessionState.CLOSED: (),
}


class GeoChatSession:
    """Client session for one GeoChat connection.

    Usage:
        connection = GeoChatConnection("wss://geochat.example/ws/")
        session = GeoChatSession(connection, ui, position_provider=provider)
        session.on_connection_state_changed(my_state_handler)
        session.start()
        await session.send_chat_message("hello")
        await session.wait_closed()
    """

    def __init__(
        self,
        connection: GeoChatConnection,
        ui: UiAdapter,
        *,
        position_provider: PositionProvider | None = None,
        password: str = PLACEHOLDER_PASSWORD,
        identifier_factory: Callable[[], str] = new_identifier,
    ) -> None:
        """Initialize session and bind it to the connection's reactions.

        Args:
            connection: Unstarted connection owned by this session
            ui: Rendering collaborator
            position_provider: Source of the device position, None if the
                capability is unavailable
            password: Credential sent with the Register envelope
            identifier_factory: Produces the per-connection username
        """
        self._connection = connection
        self._ui = ui
        self._password = password
        self._identifier_factory = identifier_factory

        self._identifier: str | None = None
        self._state = SessionState.CONNECTING
        self._auth_rejected = False

        self._dispatcher = MessageDispatcher(
            ui,
            send=self.send_envelope,
            on_auth_response=self._handle_auth_response,
        )
        self._reporter = LocationReporter(
            self.send_envelope,
            position_provider,
            can_send=lambda: self._state is SessionState.AUTHENTICATED,
        )

        # Callbacks
        self._connection_state_callback: Callable[[SessionState], None] | None = None
        self._auth_failed_callback: (
            Callable[[AuthResponse], Awaitable[None] | None] | None
        ) = None

        connection.on_open(self._handle_open)
        connection.on_message(self._handle_text)
        connection.on_error(self._handle_error)
        connection.on_close(self._handle_close)

    # -------------------------------------------------------------------------
    # Public API: Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> asyncio.Task[None]:
        """Start connecting in the background."""
        return self._connection.start()

    async def run(self) -> None:
        """Connect and process events until the session is closed."""
        await self._connection.connect()

    async def close(self) -> None:
        """Close the underlying connection."""
        _LOGGER.info("[%s] Closing session", self._log_id)
        await self._connection.close()

    async def wait_closed(self) -> None:
        """Wait until the session is closed."""
        await self._connection.wait_closed()

    @property
    def state(self) -> SessionState:
        """Get current session state."""
        return self._state

    @property
    def is_authenticated(self) -> bool:
        """Check if the server accepted the handshake."""
        return self._state is SessionState.AUTHENTICATED

    @property
    def auth_rejected(self) -> bool:
        """True once the server answered a handshake with status false.

        Distinguishes an explicit rejection from a handshake that was
        never answered; both leave the session in AWAITING_AUTH.
        """
        return self._auth_rejected

    @property
    def identifier(self) -> str | None:
        """Username generated for this connection, None before open."""
        return self._identifier

    @property
    def location_reporter(self) -> LocationReporter:
        return self._reporter

    # -------------------------------------------------------------------------
    # Public API: Callbacks
    # -------------------------------------------------------------------------

    def on_connection_state_changed(
        self, callback: Callable[[SessionState], None]
    ) -> None:
        """Register callback for session state changes."""
        self._connection_state_callback = callback

    def on_auth_failed(
        self, callback: Callable[[AuthResponse], Awaitable[None] | None]
    ) -> None:
        """Register callback for rejected handshakes.

        The session never retries on its own; the callback may call
        ``login`` to try again.
        """
        self._auth_failed_callback = callback

    # -------------------------------------------------------------------------
    # Public API: Outbound
    # -------------------------------------------------------------------------

    async def send_chat_message(self, text: str) -> bool:
        """Send a chat line if its length is within bounds.

        Returns:
            True if a SendMessage envelope was sent
        """
        return await self._dispatcher.send_chat_message(text)

    async def login(self, username: str, password: str) -> bool:
        """Send a Login envelope while awaiting authentication.

        Returns:
            True if sent, False if the session is not awaiting authentication
        """
        return await self.send_envelope(Login(username=username, password=password))

    async def send_envelope(self, envelope: Envelope) -> bool:
        """Encode and send an envelope if the current state allows it.

        Returns:
            True if sent successfully, False otherwise
        """
        if not isinstance(envelope, _ALLOWED_OUTBOUND[self._state]):
            _LOGGER.debug(
                "[%s] %s not allowed in state %s",
                self._log_id,
                type(envelope).__name__,
                self._state.value,
            )
            return False

        if isinstance(envelope, SendMessage) and not is_valid_chat_message(
            envelope.msg
        ):
            _LOGGER.debug("[%s] SendMessage outside length bounds", self._log_id)
            return False

        return await self._connection.send(encode_envelope(envelope))

    async def handle_envelope(self, envelope: Envelope) -> None:
        """Process one decoded inbound envelope."""
        if self._state not in (
            SessionState.AWAITING_AUTH,
            SessionState.AUTHENTICATED,
        ):
            _LOGGER.debug(
                "[%s] Envelope ignored in state %s", self._log_id, self._state.value
            )
            return
        await self._dispatcher.on_envelope(envelope)

    # -------------------------------------------------------------------------
    # Internal: Connection Reactions
    # -------------------------------------------------------------------------

    async def _handle_open(self) -> None:
        """Start the handshake: new identifier, then Register."""
        if self._state is not SessionState.CONNECTING:
            return

        self._identifier = self._identifier_factory()
        self._dispatcher.label = self._log_id
        self._reporter.label = self._log_id
        self._set_state(SessionState.AWAITING_AUTH)

        sent = await self.send_envelope(
            Register(username=self._identifier, password=self._password)
        )
        if sent:
            _LOGGER.debug("[%s] Register sent", self._log_id)

    async def _handle_text(self, text: str) -> None:
        """Decode a text frame and hand it to the state machine."""
        try:
            envelope = decode_envelope(text)
        except MalformedEnvelopeError as err:
            _LOGGER.warning("[%s] Dropping malformed frame: %s", self._log_id, err)
            return

        _LOGGER.debug("[%s] Received %r", self._log_id, envelope)
        await self.handle_envelope(envelope)

    async def _handle_error(self, reason: str) -> None:
        _LOGGER.error("[%s] Transport error: %s", self._log_id, reason)
        self._close_session()

    async def _handle_close(self, code: int | None) -> None:
        _LOGGER.info("[%s] Connection closed (code=%s)", self._log_id, code)
        self._close_session()

    # -------------------------------------------------------------------------
    # Internal: State Machine
    # -------------------------------------------------------------------------

    async def _handle_auth_response(self, response: AuthResponse) -> None:
        """Apply a RegisterResponse or LoginResponse."""
        if self._state is not SessionState.AWAITING_AUTH:
            _LOGGER.debug(
                "[%s] %s ignored in state %s",
                self._log_id,
                type(response).__name__,
                self._state.value,
            )
            return

        if response.status:
            self._auth_rejected = False
            self._set_state(SessionState.AUTHENTICATED)
            _LOGGER.info("[%s] Authenticated", self._log_id)
            self._reporter.report_once()
            return

        self._auth_rejected = True
        _LOGGER.warning(
            "[%s] Authentication rejected (%s)", self._log_id, type(response).__name__
        )
        self._notify_status(STATUS_AUTH_FAILED)
        if self._auth_failed_callback:
            try:
                result = self._auth_failed_callback(response)
                if inspect.iscoroutine(result):
                    await result
            except Exception as err:
                _LOGGER.exception(
                    "[%s] Auth failed callback error: %s", self._log_id, err
                )

    def _close_session(self) -> None:
        if self._state is SessionState.CLOSED:
            return
        self._set_state(SessionState.CLOSED)
        self._notify_status(STATUS_DISCONNECTED)

    def _set_state(self, state: SessionState) -> None:
        """Update session state and notify callback."""
        if self._state != state:
            _LOGGER.debug(
                "[%s] State: %s → %s", self._log_id, self._state.value, state.value
            )
            self._state = state
            if self._connection_state_callback:
                try:
                    self._connection_state_callback(state)
                except Exception as err:
                    _LOGGER.exception(
                        "[%s] State callback error: %s", self._log_id, err
                    )

    def _notify_status(self, text: str) -> None:
        try:
            self._ui.show_status(text)
        except Exception as err:
            _LOGGER.exception("[%s] UI show_status error: %s", self._log_id, err)

    @property
    def _log_id(self) -> str:
        return self._identifier[:8] if self._identifier else "-"

"""Routing of decoded envelopes and validation of outbound chat lines."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from .protocol import (
    AuthResponse,
    Envelope,
    ErrorResponse,
    LoginResponse,
    Message,
    ReachResponse,
    RegisterResponse,
    SendMessage,
)
from .ui import UiAdapter

_LOGGER = logging.getLogger(__name__)

MIN_MESSAGE_LENGTH = 1
MAX_MESSAGE_LENGTH = 300


def is_valid_chat_message(text: str) -> bool:
    """Check the outbound chat length bounds (inclusive)."""
    return MIN_MESSAGE_LENGTH <= len(text) <= MAX_MESSAGE_LENGTH


def format_chat_line(message: Message) -> str:
    return f"{message.username}: {message.msg}"


def format_reach_line(response: ReachResponse) -> str:
    return f"Reach {response.reach}"


class MessageDispatcher:
    """Route inbound envelopes to the state machine or the UI adapter."""

    def __init__(
        self,
        ui: UiAdapter,
        *,
        send: Callable[[Envelope], Awaitable[bool]],
        on_auth_response: Callable[[AuthResponse], Awaitable[None]],
        label: str = "",
    ) -> None:
        self._ui = ui
        self._send = send
        self._on_auth_response = on_auth_response
        self.label = label

    async def on_envelope(self, envelope: Envelope) -> None:
        """Dispatch one decoded envelope."""
        if isinstance(envelope, (RegisterResponse, LoginResponse)):
            await self._on_auth_response(envelope)
        elif isinstance(envelope, Message):
            self._append_line(format_chat_line(envelope))
        elif isinstance(envelope, ReachResponse):
            self._append_line(format_reach_line(envelope))
        elif isinstance(envelope, ErrorResponse):
            _LOGGER.warning("[%s] Server error: %s", self.label, envelope.reason)
        else:
            # Unrecognized and outbound-only variants
            _LOGGER.debug("[%s] Ignoring envelope: %r", self.label, envelope)

    async def send_chat_message(self, text: str) -> bool:
        """Validate and send one chat line.

        Returns:
            True if a SendMessage envelope was handed to the transport.
        """
        if not is_valid_chat_message(text):
            _LOGGER.debug(
                "[%s] Chat message dropped: length %d outside [%d, %d]",
                self.label,
                len(text),
                MIN_MESSAGE_LENGTH,
                MAX_MESSAGE_LENGTH,
            )
            return False

        if not await self._send(SendMessage(msg=text)):
            return False

        try:
            self._ui.clear_input()
        except Exception as err:
            _LOGGER.exception("[%s] UI clear_input error: %s", self.label, err)
        return True

    def _append_line(self, text: str) -> None:
        try:
            self._ui.append_line(text)
        except Exception as err:
            _LOGGER.exception("[%s] UI append_line error: %s", self.label, err)

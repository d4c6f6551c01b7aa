"""Boundary between the session core and whatever renders the chat."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


class UiAdapter(Protocol):
    """Rendering collaborator driven by the session.

    Implementations own the input field and the message log. The core never
    reads the input field itself; front-ends read it and pass the text to
    ``GeoChatSession.send_chat_message``.
    """

    def append_line(self, text: str) -> None:
        """Render one line in the message log and scroll it into view."""

    def clear_input(self) -> None:
        """Clear the input field after a chat line was accepted."""

    def show_status(self, text: str) -> None:
        """Surface a session notice such as "disconnected"."""


@dataclass
class RecordingUiAdapter:
    """Headless adapter that keeps every call, for bots and tests."""

    lines: list[str] = field(default_factory=list)
    statuses: list[str] = field(default_factory=list)
    input_clears: int = 0

    def append_line(self, text: str) -> None:
        self.lines.append(text)

    def clear_input(self) -> None:
        self.input_clears += 1

    def show_status(self, text: str) -> None:
        self.statuses.append(text)

"""Per-session client identifiers."""

from __future__ import annotations

import uuid


def new_identifier() -> str:
    """Return a fresh random (version 4) UUID string.

    The value doubles as the chat username for one connection. It carries
    122 bits of randomness from the OS CSPRNG and is never persisted.
    """
    return str(uuid.uuid4())

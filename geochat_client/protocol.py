"""Envelope codec for GeoChat transport frames.

Every frame carries exactly one externally tagged envelope, a single-key
JSON object mapping the variant name to its payload record:

    {"Register": {"username": "...", "password": "..."}}

Decoding produces one of the frozen variant dataclasses below. Unknown
variant names decode to ``Unrecognized`` so a newer server cannot break
an older client; anything else that is not a well-formed envelope raises
``MalformedEnvelopeError``.
"""

from __future__ import annotations

import dataclasses
import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar

from .errors import MalformedEnvelopeError


@dataclass(frozen=True, slots=True)
class Register:
    """Outbound registration request."""

    TAG: ClassVar[str] = "Register"

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class Login:
    """Outbound login request for an already registered username."""

    TAG: ClassVar[str] = "Login"

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class RegisterResponse:
    """Inbound result of a Register request."""

    TAG: ClassVar[str] = "RegisterResponse"

    status: bool


@dataclass(frozen=True, slots=True)
class LoginResponse:
    """Inbound result of a Login request."""

    TAG: ClassVar[str] = "LoginResponse"

    status: bool


@dataclass(frozen=True, slots=True)
class Location:
    """Outbound device position in decimal degrees."""

    TAG: ClassVar[str] = "Location"

    lat: float
    lon: float


@dataclass(frozen=True, slots=True)
class SendMessage:
    """Outbound chat line."""

    TAG: ClassVar[str] = "SendMessage"

    msg: str


@dataclass(frozen=True, slots=True)
class Message:
    """Inbound chat line from a nearby peer."""

    TAG: ClassVar[str] = "Message"

    username: str
    msg: str


@dataclass(frozen=True, slots=True)
class ReachResponse:
    """Inbound server-computed reach (nearby peer count)."""

    TAG: ClassVar[str] = "ReachResponse"

    reach: int


@dataclass(frozen=True, slots=True)
class ErrorResponse:
    """Inbound server-side error report."""

    TAG: ClassVar[str] = "Error"

    reason: str


@dataclass(frozen=True, slots=True)
class Unrecognized:
    """Single-key envelope whose variant name this client does not know."""

    tag: str
    payload: Any


Envelope = (
    Register
    | Login
    | RegisterResponse
    | LoginResponse
    | Location
    | SendMessage
    | Message
    | ReachResponse
    | ErrorResponse
    | Unrecognized
)

AuthResponse = RegisterResponse | LoginResponse

KNOWN_VARIANTS: dict[str, type[Any]] = {
    variant.TAG: variant
    for variant in (
        Register,
        Login,
        RegisterResponse,
        LoginResponse,
        Location,
        SendMessage,
        Message,
        ReachResponse,
        ErrorResponse,
    )
}


def _is_str(value: Any) -> bool:
    return isinstance(value, str)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_int(value: Any) -> bool:
    # bool is a subclass of int but never a valid count
    return isinstance(value, int) and not isinstance(value, bool)


def _is_float(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# Field annotations are strings under postponed evaluation.
_FIELD_CHECKS: dict[str, Callable[[Any], bool]] = {
    "str": _is_str,
    "bool": _is_bool,
    "int": _is_int,
    "float": _is_float,
}


def encode_envelope(envelope: Envelope) -> str:
    """Serialize an envelope into a compact single-key JSON text frame."""
    if isinstance(envelope, Unrecognized):
        document = {envelope.tag: envelope.payload}
    else:
        document = {envelope.TAG: dataclasses.asdict(envelope)}
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False)


def decode_envelope(raw: str | bytes) -> Envelope:
    """Parse a transport frame into an envelope variant.

    Args:
        raw: Text frame, or its UTF-8 encoded bytes.

    Returns:
        The decoded variant, or ``Unrecognized`` for an unknown variant name.

    Raises:
        MalformedEnvelopeError: If the frame is not JSON, not a single-key
            object, or a known variant with a payload of the wrong shape.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as err:
            raise MalformedEnvelopeError("Frame is not valid UTF-8") from err

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as err:
        raise MalformedEnvelopeError(f"Frame is not valid JSON: {err}") from err

    if not isinstance(document, dict):
        raise MalformedEnvelopeError("Envelope must be a JSON object")
    if len(document) != 1:
        raise MalformedEnvelopeError(
            f"Envelope must have exactly one key, got {len(document)}"
        )

    ((tag, payload),) = document.items()
    variant = KNOWN_VARIANTS.get(tag)
    if variant is None:
        return Unrecognized(tag=tag, payload=payload)

    return _decode_payload(variant, payload)


def _decode_payload(variant: type[Any], payload: Any) -> Envelope:
    """Validate a payload record against the variant's declared fields."""
    if not isinstance(payload, dict):
        raise MalformedEnvelopeError(f"{variant.TAG} payload must be an object")

    kwargs: dict[str, Any] = {}
    for field in dataclasses.fields(variant):
        if field.name not in payload:
            raise MalformedEnvelopeError(
                f"{variant.TAG} payload is missing '{field.name}'"
            )
        value = payload[field.name]
        if not _FIELD_CHECKS[field.type](value):
            raise MalformedEnvelopeError(
                f"{variant.TAG}.{field.name} must be {field.type}, "
                f"got {type(value).__name__}"
            )
        kwargs[field.name] = float(value) if field.type == "float" else value

    result: Envelope = variant(**kwargs)
    return result

"""Client endpoint for the GeoChat location-aware chat protocol."""

__version__ = "0.1.0"

from .config import GeoChatConfig, load_config
from .connection import ConnectionState, GeoChatConnection
from .dispatcher import MAX_MESSAGE_LENGTH, MessageDispatcher
from .errors import (
    ConfigError,
    GeoChatClientError,
    GeoChatConnectionError,
    GeoChatHandshakeError,
    GeoChatResponseError,
    GeoChatTimeout,
    MalformedEnvelopeError,
)
from .identity import new_identifier
from .location import (
    IpGeolocationProvider,
    LocationReporter,
    Position,
    PositionProvider,
    StaticPositionProvider,
)
from .protocol import (
    Envelope,
    ErrorResponse,
    Location,
    Login,
    LoginResponse,
    Message,
    ReachResponse,
    Register,
    RegisterResponse,
    SendMessage,
    Unrecognized,
    decode_envelope,
    encode_envelope,
)
from .session import PLACEHOLDER_PASSWORD, GeoChatSession, SessionState
from .ui import RecordingUiAdapter, UiAdapter
from .ws import connect_websocket
from .ws_client import GeoChatWsClient, GeoChatWsMessage, GeoChatWsMessageType

__all__ = [
    "MAX_MESSAGE_LENGTH",
    "PLACEHOLDER_PASSWORD",
    "ConfigError",
    "ConnectionState",
    "Envelope",
    "ErrorResponse",
    "GeoChatClientError",
    "GeoChatConfig",
    "GeoChatConnection",
    "GeoChatConnectionError",
    "GeoChatHandshakeError",
    "GeoChatResponseError",
    "GeoChatSession",
    "GeoChatTimeout",
    "GeoChatWsClient",
    "GeoChatWsMessage",
    "GeoChatWsMessageType",
    "IpGeolocationProvider",
    "Location",
    "LocationReporter",
    "Login",
    "LoginResponse",
    "MalformedEnvelopeError",
    "Message",
    "MessageDispatcher",
    "Position",
    "PositionProvider",
    "ReachResponse",
    "RecordingUiAdapter",
    "Register",
    "RegisterResponse",
    "SendMessage",
    "SessionState",
    "StaticPositionProvider",
    "UiAdapter",
    "Unrecognized",
    "__version__",
    "connect_websocket",
    "decode_envelope",
    "encode_envelope",
    "load_config",
    "new_identifier",
]

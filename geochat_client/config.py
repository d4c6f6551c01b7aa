"""Client configuration and YAML loading."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .location import IpGeolocationProvider, PositionProvider, StaticPositionProvider
from .session import PLACEHOLDER_PASSWORD

DEFAULT_URL = "wss://geochat.danielhedren.com/ws/"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class GeoChatConfig:
    """Settings for one client run.

    Attributes:
        url: WebSocket endpoint of the chat server
        password: Credential sent with the Register envelope
        ping_interval: Keepalive ping interval in seconds, None (default) sends none
        connect_timeout: Seconds allowed for the websocket handshake
        log_level: Root log level name
        latitude: Fixed latitude, used together with longitude
        longitude: Fixed longitude, used together with latitude
        geolocation_url: HTTP IP-geolocation endpoint used when no fixed
            position is configured
        geolocation_timeout: Seconds allowed for the geolocation request
    """

    url: str = DEFAULT_URL
    password: str = PLACEHOLDER_PASSWORD
    ping_interval: int | None = None
    connect_timeout: float = 15.0
    log_level: str = "INFO"
    latitude: float | None = None
    longitude: float | None = None
    geolocation_url: str | None = None
    geolocation_timeout: float = 5.0

    def __post_init__(self) -> None:
        if not self.url.startswith(("ws://", "wss://")):
            raise ConfigError(f"url must be a ws:// or wss:// URL: {self.url}")
        if (self.latitude is None) != (self.longitude is None):
            raise ConfigError("latitude and longitude must be set together")
        if self.latitude is not None and not -90.0 <= self.latitude <= 90.0:
            raise ConfigError(f"latitude out of range: {self.latitude}")
        if self.longitude is not None and not -180.0 <= self.longitude <= 180.0:
            raise ConfigError(f"longitude out of range: {self.longitude}")
        self.log_level = self.log_level.upper()
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(f"Unknown log_level: {self.log_level}")

    def position_provider(self) -> PositionProvider | None:
        """Build the provider matching the configured position source.

        A fixed position wins over the HTTP lookup; with neither configured
        the position capability is unavailable.
        """
        if self.latitude is not None and self.longitude is not None:
            return StaticPositionProvider(self.latitude, self.longitude)
        if self.geolocation_url:
            return IpGeolocationProvider(
                url=self.geolocation_url, timeout=self.geolocation_timeout
            )
        return None


_FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "url": (str,),
    "password": (str,),
    "ping_interval": (int, type(None)),
    "connect_timeout": (int, float),
    "log_level": (str,),
    "latitude": (int, float, type(None)),
    "longitude": (int, float, type(None)),
    "geolocation_url": (str, type(None)),
    "geolocation_timeout": (int, float),
}


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file with error handling."""
    if not path.exists():
        raise ConfigError(f"File not found: {path}")
    with path.open() as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as err:
            raise ConfigError(f"Invalid YAML in {path}: {err}") from err
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return data


def load_config(path: Path, **overrides: Any) -> GeoChatConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML file.
        **overrides: Values that replace file entries; None values are skipped.

    Returns:
        Parsed GeoChatConfig.

    Raises:
        ConfigError: If the file is missing, unreadable, or has unknown keys
            or wrongly typed values.
    """
    data = _load_yaml(path)
    data.update({k: v for k, v in overrides.items() if v is not None})
    return config_from_mapping(data)


def config_from_mapping(data: dict[str, Any]) -> GeoChatConfig:
    """Validate a plain mapping into a GeoChatConfig."""
    known = {field.name for field in dataclasses.fields(GeoChatConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown config keys: {sorted(unknown)}")

    for key, value in data.items():
        allowed = _FIELD_TYPES[key]
        if isinstance(value, bool) or not isinstance(value, allowed):
            raise ConfigError(f"{key} has invalid type {type(value).__name__}")

    return GeoChatConfig(**data)

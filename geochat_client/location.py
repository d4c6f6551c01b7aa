"""One-shot position reporting after authentication."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from .errors import (
    GeoChatClientError,
    GeoChatConnectionError,
    GeoChatResponseError,
    GeoChatTimeout,
)
from .protocol import Location

_LOGGER = logging.getLogger(__name__)

DEFAULT_GEOLOCATION_URL = "http://ip-api.com/json"


@dataclass(frozen=True, slots=True)
class Position:
    """Device position in decimal degrees."""

    lat: float
    lon: float


class PositionProvider(Protocol):
    """Source of the device position."""

    async def get_current_position(self) -> Position | None:
        """Return the current position, or None if unavailable or denied."""


class StaticPositionProvider:
    """Provider that always answers with fixed coordinates."""

    def __init__(self, lat: float, lon: float) -> None:
        self._position = Position(lat=float(lat), lon=float(lon))

    async def get_current_position(self) -> Position | None:
        return self._position


class IpGeolocationProvider:
    """Approximate the device position from an HTTP IP-geolocation lookup.

    The endpoint must answer with a JSON object carrying ``lat``/``lon``
    (ip-api.com style) or ``latitude``/``longitude`` (ipapi.co style).
    """

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        url: str = DEFAULT_GEOLOCATION_URL,
        timeout: float = 5.0,
    ) -> None:
        self._session = session
        self._url = url
        self._timeout = timeout

    async def fetch_position(self) -> Position:
        """Query the geolocation endpoint.

        Raises:
            GeoChatTimeout: If the request timed out
            GeoChatConnectionError: If the request failed
            GeoChatResponseError: If the endpoint answered without a position
        """
        if self._session is not None:
            return await self._fetch(self._session)
        async with aiohttp.ClientSession() as session:
            return await self._fetch(session)

    async def _fetch(self, session: aiohttp.ClientSession) -> Position:
        try:
            async with session.get(
                self._url,
                timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status != 200:
                    raise GeoChatResponseError(
                        resp.status, "Geolocation failed with non-200 response"
                    )
                data = await resp.json()
        except TimeoutError as err:
            raise GeoChatTimeout("Geolocation request timed out") from err
        except aiohttp.ClientError as err:
            raise GeoChatConnectionError("Geolocation request failed") from err

        return _parse_position(data)

    async def get_current_position(self) -> Position | None:
        try:
            return await self.fetch_position()
        except GeoChatClientError as err:
            _LOGGER.debug("Geolocation unavailable: %s", err)
            return None


def _parse_position(data: Any) -> Position:
    """Extract coordinates from a geolocation response body."""
    if not isinstance(data, dict):
        raise GeoChatResponseError(200, "Geolocation response is not an object")
    if data.get("status", "success") != "success":
        raise GeoChatResponseError(200, f"Geolocation lookup failed: {data}")

    lat = data.get("lat", data.get("latitude"))
    lon = data.get("lon", data.get("longitude"))
    for value in (lat, lon):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise GeoChatResponseError(200, "Geolocation response has no coordinates")
    return Position(lat=float(lat), lon=float(lon))


class LocationReporter:
    """Issue one position query and emit a Location envelope on success.

    The query is never cancelled once issued. If the session stops being
    able to send by the time it resolves, the result is discarded.
    """

    def __init__(
        self,
        send: Callable[[Location], Awaitable[bool]],
        provider: PositionProvider | None,
        *,
        can_send: Callable[[], bool] = lambda: True,
        label: str = "",
    ) -> None:
        self._send = send
        self._provider = provider
        self._can_send = can_send
        self.label = label
        self._task: asyncio.Task[bool] | None = None

    @property
    def pending(self) -> bool:
        """Check if a position query is outstanding."""
        return self._task is not None and not self._task.done()

    def report_once(self) -> None:
        """Start a position query in the background."""
        if self._provider is None:
            _LOGGER.debug("[%s] No position capability, skipping", self.label)
            return
        if self.pending:
            _LOGGER.debug("[%s] Position query already outstanding", self.label)
            return
        self._task = asyncio.create_task(self._report(self._provider))

    async def wait(self) -> bool:
        """Wait for the outstanding query; True if a Location was sent."""
        if self._task is None:
            return False
        return await self._task

    async def _report(self, provider: PositionProvider) -> bool:
        try:
            position = await provider.get_current_position()
        except Exception as err:
            _LOGGER.debug("[%s] Position query failed: %s", self.label, err)
            return False

        if position is None:
            _LOGGER.debug("[%s] Position unavailable, skipping", self.label)
            return False
        if not self._can_send():
            _LOGGER.debug("[%s] Session no longer ready, position dropped", self.label)
            return False

        sent = await self._send(Location(lat=position.lat, lon=position.lon))
        if sent:
            _LOGGER.info(
                "[%s] Location reported (%.4f, %.4f)",
                self.label,
                position.lat,
                position.lon,
            )
        return sent

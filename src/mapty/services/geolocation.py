"""Position sources for the initial map center.

A position source reports exactly once per session, through either the
resolved or the failed callback.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

import requests

from mapty.models.activity import Coordinates, InvalidActivityInput

if TYPE_CHECKING:
    from collections.abc import Callable

    from mapty.config import Config

logger = logging.getLogger("mapty.geolocation")

DEFAULT_LOOKUP_URL = "https://ipapi.co/json/"


class PositionUnavailable(RuntimeError):
    """Raised or reported when the current position cannot be determined."""


class PositionSource(Protocol):
    """Asynchronous, one-shot source of the user's position."""

    def request_once(
        self,
        on_resolved: Callable[[Coordinates], None],
        on_failed: Callable[[PositionUnavailable], None],
    ) -> None: ...


class _OneShot:
    """Guards against a source being asked for a position more than once."""

    _requested = False

    def _claim(self) -> None:
        if self._requested:
            raise RuntimeError(f"{type(self).__name__} already requested a position")
        self._requested = True


class FixedPositionSource(_OneShot):
    """Reports a configured position, or fails if none is configured."""

    def __init__(self, position: Coordinates | None) -> None:
        self.position = position

    def request_once(
        self,
        on_resolved: Callable[[Coordinates], None],
        on_failed: Callable[[PositionUnavailable], None],
    ) -> None:
        self._claim()
        if self.position is None:
            on_failed(PositionUnavailable("No home position configured"))
        else:
            on_resolved(self.position)


class DeferredPositionSource(_OneShot):
    """Holds the callbacks until the position is reported explicitly.

    Stays pending forever unless ``resolve`` or ``fail`` is called, which
    suits sessions that never need a map.
    """

    def __init__(self) -> None:
        self._on_resolved: Callable[[Coordinates], None] | None = None
        self._on_failed: Callable[[PositionUnavailable], None] | None = None

    @property
    def pending(self) -> bool:
        return self._on_resolved is not None

    def request_once(
        self,
        on_resolved: Callable[[Coordinates], None],
        on_failed: Callable[[PositionUnavailable], None],
    ) -> None:
        self._claim()
        self._on_resolved = on_resolved
        self._on_failed = on_failed

    def _take(self) -> tuple[Callable[[Coordinates], None], Callable[[PositionUnavailable], None]]:
        if self._on_resolved is None or self._on_failed is None:
            raise RuntimeError("No pending position request")
        callbacks = (self._on_resolved, self._on_failed)
        self._on_resolved = self._on_failed = None
        return callbacks

    def resolve(self, position: Coordinates) -> None:
        on_resolved, _ = self._take()
        on_resolved(position)

    def fail(self, error: PositionUnavailable) -> None:
        _, on_failed = self._take()
        on_failed(error)


class IpGeolocationSource(_OneShot):
    """Looks up an approximate position from the public IP address.

    The lookup service must answer with a JSON object carrying ``latitude``
    and ``longitude`` (ipapi.co and compatible services do).
    """

    def __init__(
        self,
        url: str = DEFAULT_LOOKUP_URL,
        timeout: float = 10,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _lookup(self) -> Coordinates:
        try:
            response = self.session.get(self.url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise PositionUnavailable(f"Geolocation lookup failed: {e}") from e

        try:
            data: Any = response.json()
        except ValueError as e:
            raise PositionUnavailable(f"Geolocation service returned invalid JSON: {e}") from e

        if not isinstance(data, dict) or "latitude" not in data or "longitude" not in data:
            raise PositionUnavailable("Geolocation response has no latitude/longitude")

        try:
            return Coordinates.coerce((data["latitude"], data["longitude"]))
        except InvalidActivityInput as e:
            raise PositionUnavailable(f"Geolocation service returned bad coordinates: {e}") from e

    def request_once(
        self,
        on_resolved: Callable[[Coordinates], None],
        on_failed: Callable[[PositionUnavailable], None],
    ) -> None:
        self._claim()
        logger.debug("Looking up position via %s", self.url)
        try:
            position = self._lookup()
        except PositionUnavailable as e:
            on_failed(e)
            return
        on_resolved(position)


def create_position_source(config: Config) -> PositionSource:
    """Create the position source selected by configuration.

    Args:
        config: Application configuration.

    Returns:
        Position source instance.

    Raises:
        ValueError: If the configured source name is unknown.
    """
    source = config.location.source
    home = config.map.home

    if source == "auto":
        source = "fixed" if home is not None else "ip"

    if source == "fixed":
        return FixedPositionSource(home)
    if source == "ip":
        return IpGeolocationSource(url=config.location.url, timeout=config.location.timeout)
    if source == "none":
        return FixedPositionSource(None)
    raise ValueError(f"Unknown location source: {source!r}")

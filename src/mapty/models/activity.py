"""Activity model: running and cycling records with derived metrics.

Records are tagged variants discriminated by ``kind``. Derived values
(pace, speed, description) are computed once at construction and only the
base fields are serialized, so the codec can rebuild the right variant and
recompute everything else.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, NamedTuple

# English month names, independent of the process locale
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class InvalidActivityInput(ValueError):
    """Raised when activity input fails validation."""


class ActivityKind(str, Enum):
    """Discriminant for activity records."""

    RUNNING = "running"
    CYCLING = "cycling"

    @property
    def label(self) -> str:
        """Capitalized display name, e.g. ``Running``."""
        return self.value[0].upper() + self.value[1:]

    @property
    def icon(self) -> str:
        """Glyph shown in list entries and map popups."""
        return "🏃‍♂️" if self is ActivityKind.RUNNING else "🚴‍♀️"


class Coordinates(NamedTuple):
    """Latitude/longitude pair in degrees."""

    lat: float
    lng: float

    @classmethod
    def coerce(cls, value: Any) -> Coordinates:
        """Build validated coordinates from a pair-like value.

        Args:
            value: Coordinates instance or any (lat, lng) sequence.

        Returns:
            Coordinates instance.

        Raises:
            InvalidActivityInput: If the value is not a valid lat/lng pair.
        """
        try:
            lat, lng = value
        except (TypeError, ValueError) as e:
            raise InvalidActivityInput(f"Coordinates must be a (lat, lng) pair, got {value!r}") from e

        lat = _require_finite("latitude", lat)
        lng = _require_finite("longitude", lng)
        if not -90.0 <= lat <= 90.0:
            raise InvalidActivityInput(f"Latitude out of range: {lat}")
        if not -180.0 <= lng <= 180.0:
            raise InvalidActivityInput(f"Longitude out of range: {lng}")
        return cls(lat, lng)


@dataclass(frozen=True)
class ListEntry:
    """Data needed to render one activity in the list."""

    id: str
    kind: ActivityKind
    description: str
    distance_km: float
    duration_min: float
    pace_or_speed: float
    cadence_or_elevation: float

    @property
    def pace_or_speed_unit(self) -> str:
        return "min/km" if self.kind is ActivityKind.RUNNING else "km/h"

    @property
    def cadence_or_elevation_unit(self) -> str:
        return "spm" if self.kind is ActivityKind.RUNNING else "m"


@dataclass(frozen=True)
class MarkerPopup:
    """Popup content for a map marker."""

    description: str
    kind: ActivityKind | None = None

    @property
    def text(self) -> str:
        if self.kind is None:
            return self.description
        return f"{self.kind.icon} {self.description}"

    @property
    def css_class(self) -> str:
        return f"{self.kind.value}-popup" if self.kind else "position-popup"


def _require_finite(name: str, value: Any) -> float:
    # bool is an int subclass but never a meaningful measurement
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise InvalidActivityInput(f"{name} must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidActivityInput(f"{name} must be finite, got {value}")
    return value


def _require_positive(name: str, value: Any) -> float:
    value = _require_finite(name, value)
    if value <= 0:
        raise InvalidActivityInput(f"{name} must be positive, got {value}")
    return value


def _require_non_negative(name: str, value: Any) -> float:
    value = _require_finite(name, value)
    if value < 0:
        raise InvalidActivityInput(f"{name} must not be negative, got {value}")
    return value


def describe(kind: ActivityKind, when: datetime) -> str:
    """Build the display description, e.g. ``Running on October 19``."""
    return f"{kind.label} on {MONTH_NAMES[when.month - 1]} {when.day}"


def new_activity_id() -> str:
    """Return a new opaque activity identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Activity:
    """Fields shared by every activity variant.

    Not constructed directly; use :class:`Running` or :class:`Cycling`.
    """

    id: str
    created_at: datetime
    coordinates: Coordinates
    distance_km: float
    duration_min: float
    description: str = field(init=False)

    def _validate_common(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise InvalidActivityInput(f"Activity id must be a non-empty string, got {self.id!r}")
        if not isinstance(self.created_at, datetime):
            raise InvalidActivityInput(f"created_at must be a datetime, got {self.created_at!r}")
        object.__setattr__(self, "coordinates", Coordinates.coerce(self.coordinates))
        object.__setattr__(self, "distance_km", _require_positive("Distance", self.distance_km))
        object.__setattr__(self, "duration_min", _require_positive("Duration", self.duration_min))

    def _base_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,  # type: ignore[attr-defined]
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "coordinates": [self.coordinates.lat, self.coordinates.lng],
            "distance_km": self.distance_km,
            "duration_min": self.duration_min,
        }

    @staticmethod
    def _base_kwargs(data: dict[str, Any]) -> dict[str, Any]:
        created_at = data["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return {
            "id": data["id"],
            "created_at": created_at,
            "coordinates": data["coordinates"],
            "distance_km": data["distance_km"],
            "duration_min": data["duration_min"],
        }

    def marker(self) -> MarkerPopup:
        """Popup content for this activity's map marker."""
        return MarkerPopup(description=self.description, kind=self.kind)  # type: ignore[attr-defined]


@dataclass(frozen=True)
class Running(Activity):
    """A run, with cadence and derived pace."""

    cadence_spm: float
    kind: ActivityKind = field(default=ActivityKind.RUNNING, init=False)
    pace_min_per_km: float = field(init=False)

    def __post_init__(self) -> None:
        self._validate_common()
        object.__setattr__(self, "cadence_spm", _require_positive("Cadence", self.cadence_spm))
        object.__setattr__(self, "pace_min_per_km", self.duration_min / self.distance_km)
        object.__setattr__(self, "description", describe(self.kind, self.created_at))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary of base fields for JSON serialization.

        Returns:
            Dictionary representation.
        """
        data = self._base_dict()
        data["cadence_spm"] = self.cadence_spm
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Running:
        """Create from a dictionary produced by :meth:`to_dict`.

        Args:
            data: Dictionary with running data.

        Returns:
            Running instance with derived values recomputed.
        """
        return cls(**cls._base_kwargs(data), cadence_spm=data["cadence_spm"])

    def list_entry(self) -> ListEntry:
        return ListEntry(
            id=self.id,
            kind=self.kind,
            description=self.description,
            distance_km=self.distance_km,
            duration_min=self.duration_min,
            pace_or_speed=self.pace_min_per_km,
            cadence_or_elevation=self.cadence_spm,
        )


@dataclass(frozen=True)
class Cycling(Activity):
    """A ride, with elevation gain and derived speed."""

    elevation_gain_m: float
    kind: ActivityKind = field(default=ActivityKind.CYCLING, init=False)
    speed_km_per_h: float = field(init=False)

    def __post_init__(self) -> None:
        self._validate_common()
        object.__setattr__(
            self, "elevation_gain_m", _require_non_negative("Elevation gain", self.elevation_gain_m)
        )
        object.__setattr__(self, "speed_km_per_h", self.distance_km / (self.duration_min / 60))
        object.__setattr__(self, "description", describe(self.kind, self.created_at))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary of base fields for JSON serialization.

        Returns:
            Dictionary representation.
        """
        data = self._base_dict()
        data["elevation_gain_m"] = self.elevation_gain_m
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Cycling:
        """Create from a dictionary produced by :meth:`to_dict`.

        Args:
            data: Dictionary with cycling data.

        Returns:
            Cycling instance with derived values recomputed.
        """
        return cls(**cls._base_kwargs(data), elevation_gain_m=data["elevation_gain_m"])

    def list_entry(self) -> ListEntry:
        return ListEntry(
            id=self.id,
            kind=self.kind,
            description=self.description,
            distance_km=self.distance_km,
            duration_min=self.duration_min,
            pace_or_speed=self.speed_km_per_h,
            cadence_or_elevation=self.elevation_gain_m,
        )


ActivityRecord = Running | Cycling

VARIANTS: dict[ActivityKind, type[Running] | type[Cycling]] = {
    ActivityKind.RUNNING: Running,
    ActivityKind.CYCLING: Cycling,
}


def create_running(
    coordinates: Any,
    distance_km: Any,
    duration_min: Any,
    cadence_spm: Any,
    *,
    created_at: datetime | None = None,
) -> Running:
    """Create a running record at the given coordinates.

    Args:
        coordinates: (lat, lng) pair where the run was logged.
        distance_km: Distance in kilometers.
        duration_min: Duration in minutes.
        cadence_spm: Cadence in steps per minute.
        created_at: Creation time (defaults to now).

    Returns:
        Running instance with pace and description populated.

    Raises:
        InvalidActivityInput: If any input fails validation.
    """
    return Running(
        id=new_activity_id(),
        created_at=created_at or datetime.now(),
        coordinates=coordinates,
        distance_km=distance_km,
        duration_min=duration_min,
        cadence_spm=cadence_spm,
    )


def create_cycling(
    coordinates: Any,
    distance_km: Any,
    duration_min: Any,
    elevation_gain_m: Any,
    *,
    created_at: datetime | None = None,
) -> Cycling:
    """Create a cycling record at the given coordinates.

    Args:
        coordinates: (lat, lng) pair where the ride was logged.
        distance_km: Distance in kilometers.
        duration_min: Duration in minutes.
        elevation_gain_m: Elevation gain in meters (zero allowed).
        created_at: Creation time (defaults to now).

    Returns:
        Cycling instance with speed and description populated.

    Raises:
        InvalidActivityInput: If any input fails validation.
    """
    return Cycling(
        id=new_activity_id(),
        created_at=created_at or datetime.now(),
        coordinates=coordinates,
        distance_km=distance_km,
        duration_min=duration_min,
        elevation_gain_m=elevation_gain_m,
    )

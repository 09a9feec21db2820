"""Session controller keeping the map, the form and the activity list in sync.

One controller drives one session:

* ``AwaitingPosition`` until the position source reports,
* ``MapReady`` once the map is initialized, with the form either hidden or
  visible for a given activity kind,
* ``Degraded`` if no position could be obtained; the persisted list is still
  shown but new activities cannot be placed.

Everything runs on one thread. The position callbacks are the only way out of
``AwaitingPosition``. Events that make no sense in the current state are
ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from mapty.lib.storage import KeyValueStore, StorageError
from mapty.models.activity import (
    ActivityKind,
    ActivityRecord,
    Coordinates,
    InvalidActivityInput,
    ListEntry,
    MarkerPopup,
    create_cycling,
    create_running,
)
from mapty.models.codec import CorruptPersistedData, decode, encode
from mapty.models.log import ActivityLog, StaleSelection
from mapty.services.geolocation import PositionSource, PositionUnavailable

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("mapty.controller")

INVALID_INPUT_MESSAGE = "Inputs have to be positive numbers!"
POSITION_UNAVAILABLE_MESSAGE = "Can't get your geolocation!"
CORRUPT_DATA_MESSAGE = "Saved activities could not be loaded; starting with an empty list."
SAVE_FAILED_MESSAGE = "Activity could not be saved; it will be lost when this session ends."

FORM_FIELDS = ("distance", "duration", "cadence", "elevation")


class MapView(Protocol):
    """Map rendering surface."""

    def initialize(self, center: Coordinates, zoom: int) -> Any: ...

    def place_marker(self, handle: Any, coordinates: Coordinates, popup: MarkerPopup) -> None: ...

    def pan_to(self, handle: Any, coordinates: Coordinates) -> None: ...

    def on_click(self, handle: Any, callback: Callable[[Coordinates], None]) -> None: ...


class ListRenderer(Protocol):
    """Activity list rendering surface."""

    def render_entry(self, entry: ListEntry) -> None: ...


class Phase(str, Enum):
    """Top-level controller state."""

    AWAITING_POSITION = "AwaitingPosition"
    MAP_READY = "MapReady"
    DEGRADED = "Degraded"


@dataclass
class FormState:
    """Input form contents and visibility.

    Field values are kept as typed (strings or numbers) and only parsed on
    submit.
    """

    visible: bool = False
    kind: ActivityKind = ActivityKind.RUNNING
    values: dict[str, Any] = field(default_factory=lambda: dict.fromkeys(FORM_FIELDS, ""))

    @property
    def extra_field(self) -> str:
        """The kind-specific field currently relevant."""
        return "cadence" if self.kind is ActivityKind.RUNNING else "elevation"

    @property
    def hidden_field(self) -> str:
        return "elevation" if self.kind is ActivityKind.RUNNING else "cadence"

    def clear(self) -> None:
        self.values = dict.fromkeys(FORM_FIELDS, "")


@dataclass
class SessionState:
    """All mutable state of one session."""

    phase: Phase = Phase.AWAITING_POSITION
    log: ActivityLog = field(default_factory=ActivityLog)
    map_handle: Any = None
    position: Coordinates | None = None
    pending_click: Coordinates | None = None
    form: FormState = field(default_factory=FormState)
    zoom: int = 13
    started: bool = False


def _default_notify(message: str, category: str) -> None:
    if category == "error":
        logger.error("%s", message)
    else:
        logger.warning("%s", message)


def _parse_number(name: str, value: Any) -> float:
    """Parse a typed form value the way a numeric input would."""
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidActivityInput(f"{name} is required")
        try:
            return float(text)
        except ValueError as e:
            raise InvalidActivityInput(f"{name} must be a number, got {value!r}") from e
    return value


class ActivityController:
    """Coordinates map readiness, the input form and the activity list."""

    def __init__(
        self,
        map_view: MapView,
        position_source: PositionSource,
        store: KeyValueStore,
        renderer: ListRenderer | None = None,
        notify: Callable[[str, str], None] | None = None,
        *,
        storage_key: str = "workouts",
        zoom: int = 13,
        session: SessionState | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            map_view: Map rendering surface.
            position_source: One-shot source of the initial position.
            store: Key/value storage for the encoded log.
            renderer: Optional list renderer.
            notify: Callback receiving ``(message, category)`` user-facing
                notifications; category is ``"error"`` or ``"warning"``.
            storage_key: Key holding the encoded log.
            zoom: Map zoom level used when centering.
            session: Explicit session state (a fresh one by default).
        """
        self.map_view = map_view
        self.position_source = position_source
        self.store = store
        self.renderer = renderer
        self.notify = notify or _default_notify
        self.storage_key = storage_key
        self.session = session or SessionState(zoom=zoom)

    # -- Introspection -----------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def log(self) -> ActivityLog:
        return self.session.log

    @property
    def form(self) -> FormState:
        return self.session.form

    @property
    def state(self) -> str:
        """State label: AwaitingPosition, FormHidden, FormVisible(kind) or Degraded."""
        if self.session.phase is not Phase.MAP_READY:
            return self.session.phase.value
        if self.session.form.visible:
            return f"FormVisible({self.session.form.kind.value})"
        return "FormHidden"

    # -- Startup -----------------------------------------------------------

    def start(self) -> None:
        """Restore persisted activities and request the current position.

        The restored list is rendered right away; map markers follow once
        the position is known.
        """
        if self.session.started:
            logger.debug("Controller already started")
            return
        self.session.started = True

        self.session.log = self._load_persisted()
        for record in self.session.log:
            self._render_entry(record)
        logger.debug("Restored %d activities", len(self.session.log))

        self.position_source.request_once(self._on_position_resolved, self._on_position_failed)

    def _load_persisted(self) -> ActivityLog:
        try:
            return decode(self.store.read(self.storage_key))
        except (CorruptPersistedData, StorageError) as e:
            logger.debug("Discarding persisted activities: %s", e)
            self.notify(CORRUPT_DATA_MESSAGE, "error")
            return ActivityLog()

    def _on_position_resolved(self, position: Coordinates) -> None:
        if self.session.phase is not Phase.AWAITING_POSITION:
            logger.debug("Ignoring late position %s", position)
            return

        handle = self.map_view.initialize(position, self.session.zoom)
        self.session.map_handle = handle
        self.session.position = position
        self.map_view.place_marker(handle, position, MarkerPopup(description="Current position"))
        self.map_view.on_click(handle, self.map_clicked)

        for record in self.session.log:
            self.map_view.place_marker(handle, record.coordinates, record.marker())

        self.session.phase = Phase.MAP_READY
        logger.debug("Map ready at %.5f, %.5f", position.lat, position.lng)

    def _on_position_failed(self, error: PositionUnavailable) -> None:
        if self.session.phase is not Phase.AWAITING_POSITION:
            logger.debug("Ignoring late position failure: %s", error)
            return

        self.session.phase = Phase.DEGRADED
        logger.debug("Position unavailable: %s", error)
        self.notify(POSITION_UNAVAILABLE_MESSAGE, "warning")

    # -- Form --------------------------------------------------------------

    def map_clicked(self, coordinates: Any) -> None:
        """Open the form for a new activity at the clicked point.

        A click while the form is already open only moves the pending point.
        """
        if self.session.phase is not Phase.MAP_READY:
            logger.debug("Ignoring map click in state %s", self.state)
            return

        try:
            self.session.pending_click = Coordinates.coerce(coordinates)
        except InvalidActivityInput as e:
            logger.debug("Ignoring map click at invalid point: %s", e)
            return

        form = self.session.form
        if not form.visible:
            form.visible = True
            form.kind = ActivityKind.RUNNING
        logger.debug("Form open at %s", self.session.pending_click)

    def set_kind(self, kind: ActivityKind | str) -> None:
        """Select the activity kind in the open form.

        Only changes which extra field is relevant; typed values are kept.
        """
        if not self.session.form.visible:
            logger.debug("Ignoring kind change in state %s", self.state)
            return
        self.session.form.kind = ActivityKind(kind)

    def toggle_kind(self) -> None:
        """Switch the open form between running and cycling."""
        form = self.session.form
        if not form.visible:
            logger.debug("Ignoring kind toggle in state %s", self.state)
            return
        form.kind = ActivityKind.CYCLING if form.kind is ActivityKind.RUNNING else ActivityKind.RUNNING

    def set_field(self, name: str, value: Any) -> None:
        """Store a typed value in the open form.

        Raises:
            KeyError: If ``name`` is not a form field.
        """
        if name not in FORM_FIELDS:
            raise KeyError(f"Unknown form field: {name}")
        if not self.session.form.visible:
            logger.debug("Ignoring input for %s in state %s", name, self.state)
            return
        self.session.form.values[name] = value

    def fill(self, **values: Any) -> None:
        """Store several typed values in the open form."""
        for name, value in values.items():
            self.set_field(name, value)

    def _build_record(self) -> ActivityRecord:
        form = self.session.form
        distance = _parse_number("Distance", form.values["distance"])
        duration = _parse_number("Duration", form.values["duration"])
        if form.kind is ActivityKind.RUNNING:
            cadence = _parse_number("Cadence", form.values["cadence"])
            return create_running(self.session.pending_click, distance, duration, cadence)
        elevation = _parse_number("Elevation gain", form.values["elevation"])
        return create_cycling(self.session.pending_click, distance, duration, elevation)

    def submit(self) -> ActivityRecord | None:
        """Validate the form and log the new activity.

        Returns:
            The new record, or None if the form was not open or the input was
            rejected (the form then stays open with its values).
        """
        form = self.session.form
        if not form.visible:
            logger.debug("Ignoring submit in state %s", self.state)
            return None

        try:
            record = self._build_record()
        except InvalidActivityInput as e:
            logger.debug("Rejected %s input: %s", form.kind.value, e)
            self.notify(INVALID_INPUT_MESSAGE, "error")
            return None

        self.session.log.append(record)
        self.map_view.place_marker(self.session.map_handle, record.coordinates, record.marker())
        self._render_entry(record)
        self._persist()

        form.clear()
        form.visible = False
        self.session.pending_click = None
        logger.debug("Logged %s (%s)", record.description, record.id)
        return record

    # -- List --------------------------------------------------------------

    def select(self, activity_id: str) -> ActivityRecord | None:
        """Re-center the map on a listed activity.

        Unknown ids are ignored, as is any selection while there is no map.

        Returns:
            The selected record, or None if nothing happened.
        """
        if self.session.phase is not Phase.MAP_READY:
            logger.debug("Ignoring selection of %s in state %s", activity_id, self.state)
            return None

        try:
            record = self.session.log.get(activity_id)
        except StaleSelection:
            logger.debug("Ignoring selection of unknown activity %s", activity_id)
            return None

        self.map_view.pan_to(self.session.map_handle, record.coordinates)
        return record

    def _render_entry(self, record: ActivityRecord) -> None:
        if self.renderer is not None:
            self.renderer.render_entry(record.list_entry())

    # -- Persistence -------------------------------------------------------

    def _persist(self) -> None:
        try:
            self.store.write(self.storage_key, encode(self.session.log))
        except StorageError as e:
            logger.debug("Failed to save activities: %s", e)
            self.notify(SAVE_FAILED_MESSAGE, "error")

    def reset(self) -> None:
        """Remove the persisted activity log.

        The current session keeps its in-memory list; the next session
        starts empty.
        """
        self.store.clear(self.storage_key)
        logger.debug("Cleared persisted activities")

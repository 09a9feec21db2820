"""Activity list rendering.

Collects the list entries a session renders and formats them as plain text
for the terminal or as HTML list items for the map page.
"""

from __future__ import annotations

import html

from mapty.models.activity import ActivityKind, ListEntry


def _format_number(value: float) -> str:
    """Format a base value the way it was typed (no trailing ``.0``)."""
    return str(int(value)) if value.is_integer() else repr(value)


class ListCollector:
    """List renderer that keeps every rendered entry in order."""

    def __init__(self) -> None:
        self.entries: list[ListEntry] = []

    def render_entry(self, entry: ListEntry) -> None:
        self.entries.append(entry)

    def render_text(self) -> str:
        """Render all entries as text, newest first."""
        return "\n".join(format_entry_text(e) for e in reversed(self.entries))

    def render_html(self) -> str:
        """Render all entries as ``<li>`` items, newest first."""
        return "\n".join(format_entry_html(e) for e in reversed(self.entries))


def entry_to_dict(entry: ListEntry) -> dict[str, object]:
    """Convert a list entry for JSON output."""
    return {
        "id": entry.id,
        "kind": entry.kind.value,
        "description": entry.description,
        "distance_km": entry.distance_km,
        "duration_min": entry.duration_min,
        "pace_or_speed": round(entry.pace_or_speed, 1),
        "pace_or_speed_unit": entry.pace_or_speed_unit,
        "cadence_or_elevation": entry.cadence_or_elevation,
        "cadence_or_elevation_unit": entry.cadence_or_elevation_unit,
    }


def format_entry_text(entry: ListEntry) -> str:
    """Format one entry as a single line of text.

    Example::

        Running on October 19  5 km  30 min  6.0 min/km  180 spm  [id]
    """
    return (
        f"{entry.kind.icon} {entry.description}  "
        f"{_format_number(entry.distance_km)} km  "
        f"{_format_number(entry.duration_min)} min  "
        f"{entry.pace_or_speed:.1f} {entry.pace_or_speed_unit}  "
        f"{_format_number(entry.cadence_or_elevation)} {entry.cadence_or_elevation_unit}  "
        f"[{entry.id}]"
    )


def format_entry_html(entry: ListEntry) -> str:
    """Format one entry as an ``<li>`` element carrying its id."""
    extra_icon = "🦶🏼" if entry.kind is ActivityKind.RUNNING else "⛰"
    return f"""
        <li class="workout workout--{entry.kind.value}" data-id="{html.escape(entry.id)}">
            <h2 class="workout__title">{html.escape(entry.description)}</h2>
            <div class="workout__details">
                <span class="workout__icon">{entry.kind.icon}</span>
                <span class="workout__value">{_format_number(entry.distance_km)}</span>
                <span class="workout__unit">km</span>
            </div>
            <div class="workout__details">
                <span class="workout__icon">⏱</span>
                <span class="workout__value">{_format_number(entry.duration_min)}</span>
                <span class="workout__unit">min</span>
            </div>
            <div class="workout__details">
                <span class="workout__icon">⚡️</span>
                <span class="workout__value">{entry.pace_or_speed:.1f}</span>
                <span class="workout__unit">{entry.pace_or_speed_unit}</span>
            </div>
            <div class="workout__details">
                <span class="workout__icon">{extra_icon}</span>
                <span class="workout__value">{_format_number(entry.cadence_or_elevation)}</span>
                <span class="workout__unit">{entry.cadence_or_elevation_unit}</span>
            </div>
        </li>"""

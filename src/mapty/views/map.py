"""Map visualization for mapty.

Implements the controller's map surface on top of Leaflet.js: markers, pans
and click subscriptions are recorded on a handle, which is then rendered as a
self-contained HTML page with the activity list beside the map.
"""

from __future__ import annotations

import html
import http.server
import json
import socketserver
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from mapty.models.activity import Coordinates, MarkerPopup

if TYPE_CHECKING:
    from collections.abc import Callable

# Popup border colors per popup class
POPUP_COLORS = {
    "running-popup": "#00c46a",
    "cycling-popup": "#ffb545",
    "position-popup": "#42484d",
}


@dataclass
class PlacedMarker:
    """A marker placed on the map."""

    coordinates: Coordinates
    popup: MarkerPopup


@dataclass
class MapHandle:
    """State of one initialized Leaflet map."""

    center: Coordinates
    zoom: int
    markers: list[PlacedMarker] = field(default_factory=list)
    click_callbacks: list[Callable[[Coordinates], None]] = field(default_factory=list)


class LeafletMapView:
    """Map surface that renders to a Leaflet HTML page."""

    def __init__(self) -> None:
        self.handles: list[MapHandle] = []

    def initialize(self, center: Coordinates, zoom: int) -> MapHandle:
        handle = MapHandle(center=center, zoom=zoom)
        self.handles.append(handle)
        return handle

    def place_marker(self, handle: MapHandle, coordinates: Coordinates, popup: MarkerPopup) -> None:
        handle.markers.append(PlacedMarker(coordinates=coordinates, popup=popup))

    def pan_to(self, handle: MapHandle, coordinates: Coordinates) -> None:
        handle.center = coordinates

    def on_click(self, handle: MapHandle, callback: Callable[[Coordinates], None]) -> None:
        handle.click_callbacks.append(callback)

    def click(self, handle: MapHandle, coordinates: Coordinates) -> None:
        """Emit a click at the given point to every subscriber."""
        for callback in list(handle.click_callbacks):
            callback(coordinates)


def _js(value: Any) -> str:
    """Serialize a value for embedding inside a <script> block."""
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


def _marker_json(markers: list[PlacedMarker]) -> list[dict[str, Any]]:
    return [
        {
            "coords": [m.coordinates.lat, m.coordinates.lng],
            "text": m.popup.text,
            "className": m.popup.css_class,
        }
        for m in markers
    ]


def generate_map_html(
    handle: MapHandle,
    list_html: str = "",
    activities: list[dict[str, Any]] | None = None,
    title: str = "mapty",
) -> str:
    """Generate an HTML page for an initialized map.

    Args:
        handle: Map handle with center, zoom and placed markers.
        list_html: Pre-rendered ``<li>`` items for the activity list.
        activities: ``{"id", "coords"}`` entries used to re-center the map
            when a list item is clicked.
        title: Page title.

    Returns:
        HTML content.
    """
    center = [handle.center.lat, handle.center.lng]
    activity_coords = {a["id"]: a["coords"] for a in activities or []}
    popup_css = "\n".join(
        f"        .{name} .leaflet-popup-content-wrapper {{ border-left: 5px solid {color}; }}"
        for name, color in POPUP_COLORS.items()
    )

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css">
    <style>
        body {{ margin: 0; padding: 0; display: flex; height: 100vh; font-family: Arial, Helvetica, sans-serif; }}
        .sidebar {{ flex-basis: 420px; overflow-y: auto; background: #2d3439; color: #ececec; padding: 16px; }}
        .workouts {{ list-style: none; padding: 0; margin: 0; }}
        .workout {{
            background: #42484d;
            border-radius: 5px;
            padding: 12px 16px;
            margin-bottom: 12px;
            cursor: pointer;
            display: grid;
            grid-template-columns: 1fr 1fr 1fr 1fr;
            gap: 4px 12px;
        }}
        .workout--running {{ border-left: 5px solid {POPUP_COLORS['running-popup']}; }}
        .workout--cycling {{ border-left: 5px solid {POPUP_COLORS['cycling-popup']}; }}
        .workout__title {{ font-size: 16px; grid-column: 1 / -1; margin: 0 0 4px 0; }}
        .workout__unit {{ font-size: 11px; color: #aaa; text-transform: uppercase; }}
        #map {{ flex: 1; height: 100%; }}
{popup_css}
    </style>
</head>
<body>
    <div class="sidebar">
        <ul class="workouts">
{list_html}
        </ul>
    </div>
    <div id="map"></div>
    <script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
    <script>
        var zoom = {handle.zoom};
        var map = L.map('map').setView({_js(center)}, zoom);

        L.tileLayer('https://tile.openstreetmap.org/{{z}}/{{x}}/{{y}}.png', {{
            maxZoom: 19,
            attribution: '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors'
        }}).addTo(map);

        var markers = {_js(_marker_json(handle.markers))};
        var activityCoords = {_js(activity_coords)};

        markers.forEach(function(m) {{
            L.marker(m.coords)
                .addTo(map)
                .bindPopup(L.popup({{
                    maxWidth: 250,
                    minWidth: 100,
                    autoClose: false,
                    closeOnClick: false,
                    className: m.className
                }}))
                .setPopupContent(m.text)
                .openPopup();
        }});

        document.querySelector('.workouts').addEventListener('click', function(e) {{
            var el = e.target.closest('.workout');
            if (!el) return;
            var coords = activityCoords[el.dataset.id];
            if (!coords) return;
            map.setView(coords, zoom, {{ animate: true, pan: {{ duration: 1 }} }});
        }});
    </script>
</body>
</html>"""


def serve_map(
    html_path: Path,
    port: int = 8080,
    host: str = "127.0.0.1",
) -> None:
    """Start a local HTTP server to serve the map.

    Args:
        html_path: Path to the HTML file.
        port: Server port.
        host: Server host.
    """
    directory = html_path.parent

    class Handler(http.server.SimpleHTTPRequestHandler):
        def __init__(self, *args: Any, **kwargs: Any) -> None:
            super().__init__(*args, directory=str(directory), **kwargs)

        def log_message(self, format: str, *args: object) -> None:
            pass  # Suppress logging

    # Allow port reuse to avoid "Address already in use" errors
    socketserver.TCPServer.allow_reuse_address = True

    with socketserver.TCPServer((host, port), Handler) as httpd:
        url = f"http://{host}:{port}/{html_path.name}"
        print(f"Serving at {url}")
        print("Press Ctrl+C to stop")

        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nServer stopped")

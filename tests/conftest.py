"""Shared pytest fixtures for mapty tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from mapty.lib.storage import MemoryStore
from mapty.models.activity import Coordinates
from mapty.services.controller import ActivityController
from mapty.services.geolocation import DeferredPositionSource
from mapty.views.listing import ListCollector
from mapty.views.map import LeafletMapView

HOME = Coordinates(51.5, -0.1)


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Empty data directory."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def map_view() -> LeafletMapView:
    return LeafletMapView()


@pytest.fixture
def collector() -> ListCollector:
    return ListCollector()


@pytest.fixture
def position_source() -> DeferredPositionSource:
    return DeferredPositionSource()


@pytest.fixture
def notifications() -> list[tuple[str, str]]:
    """Notifications surfaced by the controller, as (message, category)."""
    return []


@pytest.fixture
def controller(
    map_view: LeafletMapView,
    position_source: DeferredPositionSource,
    store: MemoryStore,
    collector: ListCollector,
    notifications: list[tuple[str, str]],
) -> ActivityController:
    """Controller that has not been started yet."""
    return ActivityController(
        map_view,
        position_source,
        store,
        renderer=collector,
        notify=lambda message, category: notifications.append((message, category)),
    )


@pytest.fixture
def ready_controller(
    controller: ActivityController, position_source: DeferredPositionSource
) -> ActivityController:
    """Started controller with the map initialized at HOME."""
    controller.start()
    position_source.resolve(HOME)
    return controller


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_env(tmp_path: Path) -> dict[str, str]:
    """Environment for CLI runs: isolated data directory and a fixed home."""
    return {
        "MAPTY_CONFIG": str(tmp_path / "no-config.toml"),
        "MAPTY_DATA_DIR": str(tmp_path / "cli-data"),
        "MAPTY_HOME_LAT": str(HOME.lat),
        "MAPTY_HOME_LNG": str(HOME.lng),
        "MAPTY_LOCATION_SOURCE": "auto",
        "MAPTY_ZOOM": "",
    }

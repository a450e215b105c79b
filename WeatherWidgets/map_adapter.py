"""Keeps map markers aligned with the widget list."""
import asyncio
import html
import logging
from typing import List, Optional

from map_backend import Coord, MapBackend, MapMarker
from refresh_policy import format_last_update
from widget import Widget
from widget_store import WidgetStore

MAP_INIT_TIMEOUT = 5.0  # seconds
DEFAULT_CENTER: Coord = (56.8389, 60.6057)  # Yekaterinburg
DEFAULT_ZOOM = 10
FOCUS_ZOOM = 12

MARKER_COLORS = [
    "#9b87f5", "#6d5fd3", "#ff6b6b", "#4ecdc4",
    "#45b7d1", "#ffa726", "#7e57c2", "#26a69a",
]


class MapInitError(Exception):
    """The map could not be brought up; the dashboard runs list-only."""
    pass


def marker_color(index: int) -> str:
    return MARKER_COLORS[index % len(MARKER_COLORS)]


def calculate_center(widgets: List[Widget]) -> Coord:
    """Average coordinate of all widgets, or the default center if none."""
    if not widgets:
        return DEFAULT_CENTER
    lat = sum(w.latitude for w in widgets) / len(widgets)
    lon = sum(w.longitude for w in widgets) / len(widgets)
    return (lat, lon)


def marker_hint(widget: Widget) -> str:
    temp = f"{widget.weather_data.temperature}°C" if widget.weather_data else "..."
    return f"Weather: {temp}"


def marker_content(widget: Widget, index: int) -> str:
    """HTML shown in a marker's detail popup."""
    color = marker_color(index)
    weather = widget.weather_data
    temperature = f"{weather.temperature}°C" if weather else "..."
    description = html.escape(weather.description) if weather else "Loading..."
    last_update = f"Updated: {format_last_update(widget.last_updated)}" if widget.last_updated else ""

    lines = [
        f'<h3 style="margin: 0 0 10px 0; color: {color}; border-bottom: 2px solid {color};">'
        f"Weather #{widget.id}</h3>",
        f"<p><strong>Coordinates:</strong><br>{widget.latitude:.4f}, {widget.longitude:.4f}</p>",
        f"<p><strong>Temperature:</strong> {temperature}</p>",
        f"<p><strong>Conditions:</strong> {description}</p>",
        f'<p style="font-size: 11px; color: #666;">{last_update}</p>',
    ]
    if weather:
        lines.append(f"<p><strong>Humidity:</strong> {weather.humidity}%</p>")
        lines.append(f"<p><strong>Wind:</strong> {weather.wind_speed} m/s</p>")
    return '<div style="min-width: 200px;">' + "".join(lines) + "</div>"


class MapAdapter:
    """
    Projects the widget list onto a map backend.

    Marker ``i`` always belongs to widget ``i`` of the last rendered list.
    Every render rebuilds all markers rather than diffing them. While the
    map is unavailable every map operation is a no-op.
    """

    def __init__(self, backend: MapBackend, store: WidgetStore):
        self.backend = backend
        self.store = store
        self.available = False
        self.last_error: Optional[MapInitError] = None
        self._markers: List[MapMarker] = []

    @property
    def markers(self) -> List[MapMarker]:
        return list(self._markers)

    async def initialize(self, timeout: float = MAP_INIT_TIMEOUT) -> bool:
        """
        Bring the map up, waiting at most ``timeout`` seconds for it to load.

        Returns:
            True if the map is available; False means list-only mode
        """
        self.available = False
        self._markers = []
        try:
            try:
                await asyncio.wait_for(self.backend.wait_ready(), timeout)
            except asyncio.TimeoutError as e:
                raise MapInitError(f"Map did not load within {timeout:g}s") from e
            try:
                self.backend.init(calculate_center(self.store.widgets), DEFAULT_ZOOM)
            except Exception as e:
                raise MapInitError(f"Map creation failed: {e}") from e
        except MapInitError as e:
            logging.warning(f"{e}; continuing without the map")
            self.last_error = e
            return False

        self.available = True
        self.last_error = None
        logging.info("Map ready")
        self.render(self.store.widgets)
        return True

    async def retry(self, timeout: float = MAP_INIT_TIMEOUT) -> bool:
        logging.info("Retrying map initialization...")
        return await self.initialize(timeout)

    def render(self, widgets: List[Widget]) -> None:
        """Rebuild every marker from ``widgets``, in order."""
        if not self.available:
            return

        for marker in self._markers:
            self.backend.remove_marker(marker)
        self._markers = []

        for index, widget in enumerate(widgets):
            marker = self.backend.add_marker(
                (widget.latitude, widget.longitude),
                marker_content(widget, index),
                hint=marker_hint(widget),
                color=marker_color(index),
            )
            self._markers.append(marker)

        if widgets:
            self.backend.set_center(calculate_center(widgets), DEFAULT_ZOOM)
        logging.debug(f"Map rendered with {len(self._markers)} marker(s)")

    def fly_to(self, widget_id: int) -> bool:
        """Center the map on a widget. Returns False if nothing happened."""
        widget = self.store.get(widget_id)
        if widget is None or not self.available:
            return False
        self.backend.set_center((widget.latitude, widget.longitude), FOCUS_ZOOM)
        return True

    def show_on_map(self, widget_id: int) -> bool:
        """Center on a widget and open its marker's detail."""
        if not self.fly_to(widget_id):
            return False
        index = self.store.index_of(widget_id)
        if index is not None and index < len(self._markers):
            self.backend.open_marker_detail(self._markers[index])
        return True

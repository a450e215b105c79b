"""Map abstraction - allows swapping a real map renderer with test backends."""
import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

import folium

Coord = Tuple[float, float]  # (lat, lon)


@dataclass
class MapMarker:
    """One placed marker; backends hand these out as opaque handles."""
    coord: Coord
    content: str
    hint: str = ""
    color: str = "#9b87f5"
    detail_open: bool = False


class MapBackend(ABC):
    """Abstract map interface: the operations the dashboard relies on."""

    @abstractmethod
    async def wait_ready(self) -> None:
        """Resolve once the map library is loaded and usable."""
        pass

    @abstractmethod
    def init(self, center: Coord, zoom: int) -> None:
        """
        Create the map view.

        Args:
            center: (lat, lon) of the initial view
            zoom: Initial zoom level
        """
        pass

    @abstractmethod
    def add_marker(self, coord: Coord, content: str, hint: str = "", color: str = "#9b87f5") -> MapMarker:
        """
        Place a marker.

        Args:
            coord: (lat, lon) of the marker
            content: HTML shown when the marker's detail is opened
            hint: Short tooltip text
            color: Marker color as a CSS hex string

        Returns:
            Handle to pass to remove_marker / open_marker_detail
        """
        pass

    @abstractmethod
    def remove_marker(self, marker: MapMarker) -> None:
        pass

    @abstractmethod
    def set_center(self, coord: Coord, zoom: int) -> None:
        pass

    @abstractmethod
    def open_marker_detail(self, marker: MapMarker) -> None:
        pass


class FoliumMapBackend(MapBackend):
    """
    Map backend that renders a Leaflet page with folium.

    folium produces static HTML, so the backend keeps the current view and
    markers and builds the page on ``save``.
    """

    def __init__(self, tiles: str = "OpenStreetMap"):
        self.tiles = tiles
        self.center: Optional[Coord] = None
        self.zoom: int = 0
        self.markers: List[MapMarker] = []

    async def wait_ready(self) -> None:
        return None

    def init(self, center: Coord, zoom: int) -> None:
        lat, lon = center
        if not (math.isfinite(lat) and math.isfinite(lon)):
            raise ValueError(f"Invalid map center: {center}")
        self.center = (float(lat), float(lon))
        self.zoom = int(zoom)
        self.markers = []
        logging.info(f"Map initialized at {self.center}, zoom {self.zoom}")

    def add_marker(self, coord: Coord, content: str, hint: str = "", color: str = "#9b87f5") -> MapMarker:
        marker = MapMarker(coord=coord, content=content, hint=hint, color=color)
        self.markers.append(marker)
        return marker

    def remove_marker(self, marker: MapMarker) -> None:
        self.markers = [m for m in self.markers if m is not marker]

    def set_center(self, coord: Coord, zoom: int) -> None:
        self.center = coord
        self.zoom = int(zoom)

    def open_marker_detail(self, marker: MapMarker) -> None:
        for m in self.markers:
            m.detail_open = m is marker

    def build(self) -> folium.Map:
        """Build the folium map for the current view and markers."""
        if self.center is None:
            raise RuntimeError("Map has not been initialized")
        map_obj = folium.Map(
            location=[self.center[0], self.center[1]],
            zoom_start=self.zoom,
            tiles=self.tiles,
            control_scale=True,
        )
        for marker in self.markers:
            folium.CircleMarker(
                location=[marker.coord[0], marker.coord[1]],
                radius=10,
                color=marker.color,
                fill=True,
                fill_color=marker.color,
                fill_opacity=0.9,
                popup=folium.Popup(marker.content, max_width=300, show=marker.detail_open),
                tooltip=marker.hint or None,
            ).add_to(map_obj)
        return map_obj

    def save(self, path: str) -> None:
        """
        Write the map as a standalone HTML page.

        Args:
            path: Output filename (e.g., "map.html")
        """
        self.build().save(path)
        logging.info(f"Map with {len(self.markers)} marker(s) written to {path}")


class FakeMapBackend(MapBackend):
    """
    Fake map for testing - records every call in memory.

    Args:
        ready: If False, ``wait_ready`` never resolves (map script never loads)
        fail_init: If True, ``init`` raises like a broken map library would
    """

    def __init__(self, ready: bool = True, fail_init: bool = False):
        self.ready = ready
        self.fail_init = fail_init
        self.center: Optional[Coord] = None
        self.zoom: Optional[int] = None
        self.markers: List[MapMarker] = []
        self.opened: List[MapMarker] = []
        self.calls: List[str] = []

    async def wait_ready(self) -> None:
        if not self.ready:
            await asyncio.Event().wait()

    def init(self, center: Coord, zoom: int) -> None:
        self.calls.append("init")
        if self.fail_init:
            raise RuntimeError("map library failed to create the map")
        self.center = center
        self.zoom = zoom
        self.markers = []

    def add_marker(self, coord: Coord, content: str, hint: str = "", color: str = "#9b87f5") -> MapMarker:
        self.calls.append("add_marker")
        marker = MapMarker(coord=coord, content=content, hint=hint, color=color)
        self.markers.append(marker)
        return marker

    def remove_marker(self, marker: MapMarker) -> None:
        self.calls.append("remove_marker")
        self.markers = [m for m in self.markers if m is not marker]

    def set_center(self, coord: Coord, zoom: int) -> None:
        self.calls.append("set_center")
        self.center = coord
        self.zoom = zoom

    def open_marker_detail(self, marker: MapMarker) -> None:
        self.calls.append("open_marker_detail")
        self.opened.append(marker)

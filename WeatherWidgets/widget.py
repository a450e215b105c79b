"""Widget model - one pinned coordinate and its cached weather."""
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from weather_data import WeatherSnapshot

IDENTITY_FIELDS = ("id", "latitude", "longitude")


@dataclass
class Widget:
    """
    A user-created pin.

    ``id``, ``latitude`` and ``longitude`` are fixed once the widget exists.
    ``weather_data`` and ``last_updated`` are always set or cleared together;
    use ``record_weather`` and ``clear_weather`` rather than assigning them.
    """
    id: int
    latitude: float
    longitude: float
    weather_data: Optional[WeatherSnapshot] = None
    last_updated: Optional[int] = None  # epoch millis of the last successful fetch

    def __setattr__(self, name: str, value: Any) -> None:
        if name in IDENTITY_FIELDS and name in self.__dict__:
            raise AttributeError(f"Widget.{name} cannot be changed after creation")
        super().__setattr__(name, value)

    @property
    def is_loading(self) -> bool:
        return self.weather_data is None

    def record_weather(self, snapshot: WeatherSnapshot, timestamp_ms: int) -> None:
        self.weather_data = snapshot
        self.last_updated = timestamp_ms

    def clear_weather(self) -> None:
        self.weather_data = None
        self.last_updated = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "weatherData": self.weather_data.to_dict() if self.weather_data else None,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Widget":
        """
        Build a widget from its persisted form, tolerating legacy entries.

        Older entries may carry coordinates as strings or lack ``lastUpdated``.
        A snapshot without a timestamp is dropped so the widget is refetched.

        Raises:
            ValueError: If the entry cannot be coerced
        """
        if not isinstance(data, dict):
            raise ValueError(f"Widget entry must be an object, got {type(data).__name__}")
        try:
            widget_id = int(data["id"])
            latitude = float(data["latitude"])
            longitude = float(data["longitude"])

            snapshot = None
            last_updated = data.get("lastUpdated") or None
            raw_weather = data.get("weatherData")
            if raw_weather and last_updated is not None:
                snapshot = WeatherSnapshot.from_dict(raw_weather)
                last_updated = int(last_updated)
        except (KeyError, TypeError, OverflowError) as e:
            raise ValueError(f"Malformed widget entry: {e}") from e
        if not (math.isfinite(latitude) and math.isfinite(longitude)):
            raise ValueError(f"Widget {widget_id} has non-finite coordinates")

        widget = cls(id=widget_id, latitude=latitude, longitude=longitude)
        if snapshot is not None:
            widget.record_weather(snapshot, last_updated)
        return widget

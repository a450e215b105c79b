"""Weather domain model - pure data structures independent of any API."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class IconCategory(str, Enum):
    """Icon bucket a weather condition is drawn with."""
    CLEAR = "clear"
    PARTLY_CLOUDY = "partly_cloudy"
    CLOUDY = "cloudy"
    FOG = "fog"
    LIGHT_RAIN = "light_rain"
    RAIN = "rain"
    SNOW = "snow"
    THUNDERSTORM = "thunderstorm"
    WIND = "wind"  # fallback for unknown conditions

    @classmethod
    def coerce(cls, value: Any) -> "IconCategory":
        try:
            return cls(value)
        except ValueError:
            return cls.WIND


@dataclass(frozen=True)
class WeatherSnapshot:
    """
    Current conditions for one coordinate as of a single fetch.

    Snapshots are never edited in place; a refresh replaces the whole object.
    """
    temperature: int  # °C, rounded
    description: str  # e.g. "Clear", "Slight rain"
    humidity: int  # percent, as reported
    wind_speed: float  # m/s, as reported
    icon: IconCategory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "description": self.description,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed,
            "icon": self.icon.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherSnapshot":
        """
        Build a snapshot from its persisted form.

        Raises:
            ValueError: If a required field is missing or not numeric
        """
        try:
            return cls(
                temperature=int(data["temperature"]),
                description=str(data["description"]),
                humidity=data["humidity"],
                wind_speed=data["windSpeed"],
                icon=IconCategory.coerce(data.get("icon")),
            )
        except (KeyError, TypeError, OverflowError) as e:
            raise ValueError(f"Malformed weather snapshot: {e}") from e

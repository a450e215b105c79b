"""Open-Meteo current weather provider implementation."""
import logging
import math
import requests
from typing import Tuple
from weather_provider import WeatherProviderBase, WeatherProviderError, NetworkError
from weather_data import IconCategory, WeatherSnapshot


# WMO weather interpretation codes as reported by Open-Meteo
WEATHER_CODES = {
    0: ("Clear", IconCategory.CLEAR),
    1: ("Mainly clear", IconCategory.CLEAR),
    2: ("Partly cloudy", IconCategory.PARTLY_CLOUDY),
    3: ("Overcast", IconCategory.CLOUDY),
    45: ("Fog", IconCategory.FOG),
    48: ("Depositing rime fog", IconCategory.FOG),
    51: ("Light drizzle", IconCategory.LIGHT_RAIN),
    61: ("Slight rain", IconCategory.LIGHT_RAIN),
    63: ("Moderate rain", IconCategory.RAIN),
    71: ("Slight snow fall", IconCategory.SNOW),
    73: ("Moderate snow fall", IconCategory.SNOW),
    75: ("Heavy snow fall", IconCategory.SNOW),
    82: ("Violent rain showers", IconCategory.RAIN),
    85: ("Slight snow showers", IconCategory.SNOW),
    86: ("Heavy snow showers", IconCategory.SNOW),
    95: ("Thunderstorm", IconCategory.THUNDERSTORM),
    96: ("Thunderstorm with slight hail", IconCategory.THUNDERSTORM),
    99: ("Thunderstorm with heavy hail", IconCategory.THUNDERSTORM),
}

UNKNOWN_WEATHER = ("Unknown", IconCategory.WIND)


def describe_weather_code(code) -> Tuple[str, IconCategory]:
    """
    Map a weather code to a description and icon category.

    Unknown codes fall back to ("Unknown", IconCategory.WIND).
    """
    try:
        return WEATHER_CODES.get(int(code), UNKNOWN_WEATHER)
    except (TypeError, ValueError):
        return UNKNOWN_WEATHER


def round_temperature(value: float) -> int:
    """Round to the nearest degree, halves up (-2.5 -> -2, 2.5 -> 3)."""
    return int(math.floor(value + 0.5))


class OpenMeteoProvider(WeatherProviderBase):
    """
    Weather provider using the Open-Meteo forecast API (current block only).

    Open-Meteo needs no API key: https://open-meteo.com/en/docs
    """

    BASE_URL = "https://api.open-meteo.com/v1/forecast"
    CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,wind_speed_10m,weather_code"

    def __init__(self, base_url: str = BASE_URL, timeout: int = 10):
        """
        Initialize Open-Meteo provider.

        Args:
            base_url: Forecast endpoint URL
            timeout: HTTP request timeout in seconds
        """
        self.base_url = base_url
        self.timeout = timeout

    def fetch(self, lat: float, lon: float) -> WeatherSnapshot:
        """
        Fetch current weather for a coordinate from Open-Meteo.

        Returns:
            WeatherSnapshot: Current weather information

        Raises:
            NetworkError: If the request fails or returns a non-2xx status
            WeatherProviderError: If the response cannot be parsed
        """
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": self.CURRENT_FIELDS,
            "wind_speed_unit": "ms",
            "timezone": "auto",
        }

        try:
            logging.info(f"Making Open-Meteo API request: {self.base_url}")
            logging.debug(f"Request parameters: lat={lat}, lon={lon}")

            response = requests.get(self.base_url, params=params, timeout=self.timeout)

            logging.info(f"API response status: {response.status_code}")
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during API request: {e}")
            raise NetworkError(f"Network error: {str(e)}") from e

        if not response.ok:
            logging.error(f"API request failed with status {response.status_code}")
            self._handle_error_response(response)

        try:
            data = response.json()
            logging.debug(f"API response (truncated): {str(data)[:500]}...")

            current = data.get("current")
            if not current:
                logging.error("Response missing 'current' block")
                raise WeatherProviderError("Response missing 'current' block")

            description, icon = describe_weather_code(current.get("weather_code"))
            snapshot = WeatherSnapshot(
                temperature=round_temperature(float(current["temperature_2m"])),
                description=description,
                humidity=current["relative_humidity_2m"],
                wind_speed=current["wind_speed_10m"],
                icon=icon,
            )
        except (KeyError, ValueError, TypeError, AttributeError) as e:
            logging.error(f"Failed to parse API response: {e}", exc_info=True)
            raise WeatherProviderError(f"Failed to parse response: {str(e)}") from e

        logging.info(f"Successfully parsed weather data: {snapshot.temperature}°C, {snapshot.description}")
        return snapshot

    def _handle_error_response(self, response: requests.Response) -> None:
        """Parse and raise error from an Open-Meteo error response."""
        try:
            error_data = response.json()
        except ValueError:
            # Not JSON, use HTTP status
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            raise NetworkError(f"HTTP {response.status_code}: {response.text[:200]}")

        if not isinstance(error_data, dict):
            logging.error(f"Unexpected error body: HTTP {response.status_code}, body: {error_data!r}")
            raise NetworkError(f"HTTP {response.status_code}: {str(error_data)[:200]}")

        reason = error_data.get("reason", "Unknown error")
        logging.error(f"Open-Meteo API error response: {error_data}")
        raise NetworkError(f"Open-Meteo API error {response.status_code}: {reason}")

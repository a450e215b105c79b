"""Tests for Open-Meteo provider."""
import pytest
import requests
from unittest.mock import Mock, patch
from open_meteo_provider import (
    OpenMeteoProvider,
    WEATHER_CODES,
    describe_weather_code,
    round_temperature,
)
from weather_provider import NetworkError, WeatherProviderError
from weather_data import IconCategory, WeatherSnapshot


@pytest.fixture
def sample_open_meteo_response():
    """Sample Open-Meteo forecast API response."""
    return {
        "latitude": 56.84,
        "longitude": 60.600006,
        "generationtime_ms": 0.05,
        "utc_offset_seconds": 18000,
        "timezone": "Asia/Yekaterinburg",
        "current_units": {
            "time": "iso8601",
            "temperature_2m": "°C",
            "relative_humidity_2m": "%",
            "wind_speed_10m": "m/s",
            "weather_code": "wmo code",
        },
        "current": {
            "time": "2024-06-01T14:00",
            "interval": 900,
            "temperature_2m": 21.4,
            "relative_humidity_2m": 48,
            "wind_speed_10m": 3.7,
            "weather_code": 0,
        },
    }


@pytest.fixture
def provider():
    """Create Open-Meteo provider instance."""
    return OpenMeteoProvider(timeout=5)


def mock_ok_response(payload):
    mock_response = Mock()
    mock_response.ok = True
    mock_response.status_code = 200
    mock_response.json.return_value = payload
    return mock_response


def test_open_meteo_provider_success(provider, sample_open_meteo_response):
    """Test successful API call and parsing."""
    with patch('open_meteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_ok_response(sample_open_meteo_response)

        weather = provider.fetch(56.8389, 60.6057)

        assert isinstance(weather, WeatherSnapshot)
        assert weather.temperature == 21
        assert weather.description == "Clear"
        assert weather.humidity == 48
        assert weather.wind_speed == 3.7
        assert weather.icon is IconCategory.CLEAR


def test_open_meteo_provider_request_parameters(provider, sample_open_meteo_response):
    """Test that the request asks for the current block in m/s."""
    with patch('open_meteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_ok_response(sample_open_meteo_response)

        provider.fetch(56.8389, 60.6057)

        args, kwargs = mock_get.call_args
        assert args[0] == OpenMeteoProvider.BASE_URL
        assert kwargs["params"]["latitude"] == 56.8389
        assert kwargs["params"]["longitude"] == 60.6057
        assert kwargs["params"]["wind_speed_unit"] == "ms"
        assert "weather_code" in kwargs["params"]["current"]
        assert kwargs["timeout"] == 5


def test_open_meteo_provider_unknown_code(provider, sample_open_meteo_response):
    """Test that an unmapped weather code falls back instead of failing."""
    sample_open_meteo_response["current"]["weather_code"] = 42

    with patch('open_meteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_ok_response(sample_open_meteo_response)

        weather = provider.fetch(56.8389, 60.6057)

        assert weather.description == "Unknown"
        assert weather.icon is IconCategory.WIND


def test_open_meteo_provider_http_error(provider):
    """Test handling of HTTP errors."""
    with patch('open_meteo_provider.requests.get') as mock_get:
        mock_response = Mock()
        mock_response.ok = False
        mock_response.status_code = 400
        mock_response.json.return_value = {
            "error": True,
            "reason": "Latitude must be in range of -90 to 90°.",
        }
        mock_get.return_value = mock_response

        with pytest.raises(NetworkError) as exc_info:
            provider.fetch(91, 0)

        assert "400" in str(exc_info.value)
        assert "Latitude must be in range" in str(exc_info.value)


def test_open_meteo_provider_non_json_error(provider):
    """Test handling of an HTML error page."""
    with patch('open_meteo_provider.requests.get') as mock_get:
        mock_response = Mock()
        mock_response.ok = False
        mock_response.status_code = 502
        mock_response.json.side_effect = ValueError("No JSON")
        mock_response.text = "<html>Bad Gateway</html>"
        mock_get.return_value = mock_response

        with pytest.raises(NetworkError) as exc_info:
            provider.fetch(0, 0)

        assert "HTTP 502" in str(exc_info.value)


def test_open_meteo_provider_network_error(provider):
    """Test handling of network errors."""
    with patch('open_meteo_provider.requests.get') as mock_get:
        mock_get.side_effect = requests.exceptions.ConnectionError("Connection refused")

        with pytest.raises(NetworkError) as exc_info:
            provider.fetch(0, 0)

        assert "Network error" in str(exc_info.value)


def test_open_meteo_provider_missing_current(provider):
    """Test handling of a response without the current block."""
    with patch('open_meteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_ok_response({"latitude": 0, "longitude": 0})

        with pytest.raises(WeatherProviderError) as exc_info:
            provider.fetch(0, 0)

        assert not isinstance(exc_info.value, NetworkError)
        assert "missing 'current' block" in str(exc_info.value)


def test_open_meteo_provider_missing_temperature(provider, sample_open_meteo_response):
    """Test handling of a current block without temperature."""
    del sample_open_meteo_response["current"]["temperature_2m"]

    with patch('open_meteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_ok_response(sample_open_meteo_response)

        with pytest.raises(WeatherProviderError) as exc_info:
            provider.fetch(0, 0)

        assert "Failed to parse response" in str(exc_info.value)


def test_weather_code_table():
    """Test the fixed code table."""
    assert len(WEATHER_CODES) >= 17
    assert describe_weather_code(0) == ("Clear", IconCategory.CLEAR)
    assert describe_weather_code(3) == ("Overcast", IconCategory.CLOUDY)
    assert describe_weather_code(45)[1] is IconCategory.FOG
    assert describe_weather_code(75)[1] is IconCategory.SNOW
    assert describe_weather_code(99)[1] is IconCategory.THUNDERSTORM
    assert describe_weather_code(1000) == ("Unknown", IconCategory.WIND)
    assert describe_weather_code(None) == ("Unknown", IconCategory.WIND)


def test_round_temperature():
    """Test rounding to the nearest whole degree."""
    assert round_temperature(21.4) == 21
    assert round_temperature(21.5) == 22
    assert round_temperature(-3.6) == -4
    assert round_temperature(-2.5) == -2


def test_open_meteo_provider_non_object_error_body(provider):
    """Test a JSON error body that is a bare string."""
    with patch('open_meteo_provider.requests.get') as mock_get:
        mock_response = Mock()
        mock_response.ok = False
        mock_response.status_code = 502
        mock_response.json.return_value = "Bad gateway"
        mock_get.return_value = mock_response

        with pytest.raises(NetworkError) as exc_info:
            provider.fetch(0, 0)

        assert "HTTP 502" in str(exc_info.value)
        assert "Bad gateway" in str(exc_info.value)

"""Tests for the weather and widget models."""
import pytest
from weather_data import IconCategory, WeatherSnapshot
from widget import Widget


@pytest.fixture
def sample_snapshot():
    """Sample weather snapshot."""
    return WeatherSnapshot(
        temperature=21,
        description="Clear",
        humidity=60,
        wind_speed=3.4,
        icon=IconCategory.CLEAR,
    )


def test_snapshot_to_dict_uses_persisted_keys(sample_snapshot):
    """Test that snapshots serialize with the stored field names."""
    assert sample_snapshot.to_dict() == {
        "temperature": 21,
        "description": "Clear",
        "humidity": 60,
        "windSpeed": 3.4,
        "icon": "clear",
    }


def test_snapshot_from_dict_unknown_icon_falls_back_to_wind():
    """Test that an unrecognized icon string maps to the wind icon."""
    snapshot = WeatherSnapshot.from_dict({
        "temperature": 5,
        "description": "Unknown",
        "humidity": 80,
        "windSpeed": 7.0,
        "icon": "tornado",
    })
    assert snapshot.icon is IconCategory.WIND


def test_snapshot_from_dict_missing_field():
    """Test that a snapshot without temperature is rejected."""
    with pytest.raises(ValueError):
        WeatherSnapshot.from_dict({"description": "Clear", "humidity": 1, "windSpeed": 1})


def test_widget_starts_loading():
    """Test that a fresh widget has no weather and no timestamp."""
    widget = Widget(id=1, latitude=10.0, longitude=20.0)
    assert widget.is_loading
    assert widget.weather_data is None
    assert widget.last_updated is None


def test_widget_record_and_clear_weather_together(sample_snapshot):
    """Test that weather and timestamp are set and cleared as a pair."""
    widget = Widget(id=1, latitude=10.0, longitude=20.0)

    widget.record_weather(sample_snapshot, 1700000000000)
    assert widget.weather_data == sample_snapshot
    assert widget.last_updated == 1700000000000
    assert not widget.is_loading

    widget.clear_weather()
    assert widget.weather_data is None
    assert widget.last_updated is None


def test_widget_from_dict_coerces_legacy_entry():
    """Test string coordinates and a missing lastUpdated."""
    widget = Widget.from_dict({
        "id": 1700000000000,
        "latitude": "56.8389",
        "longitude": "60.6057",
        "weatherData": None,
    })
    assert widget.latitude == 56.8389
    assert widget.longitude == 60.6057
    assert widget.last_updated is None
    assert widget.weather_data is None


def test_widget_from_dict_drops_weather_without_timestamp(sample_snapshot):
    """Test that a snapshot without lastUpdated is discarded."""
    widget = Widget.from_dict({
        "id": 1,
        "latitude": 1.0,
        "longitude": 2.0,
        "weatherData": sample_snapshot.to_dict(),
    })
    assert widget.weather_data is None
    assert widget.last_updated is None


def test_widget_from_dict_rejects_garbage():
    """Test that unusable entries raise ValueError."""
    with pytest.raises(ValueError):
        Widget.from_dict({"id": 1, "latitude": "north", "longitude": 2.0})
    with pytest.raises(ValueError):
        Widget.from_dict({"latitude": 1.0, "longitude": 2.0})
    with pytest.raises(ValueError):
        Widget.from_dict(["not", "a", "dict"])


def test_widget_dict_round_trip(sample_snapshot):
    """Test that a widget survives to_dict/from_dict."""
    widget = Widget(id=7, latitude=-33.87, longitude=151.21)
    widget.record_weather(sample_snapshot, 1700000000000)

    assert Widget.from_dict(widget.to_dict()) == widget


def test_widget_from_dict_wrong_typed_timestamp(sample_snapshot):
    """Test that a non-numeric lastUpdated raises ValueError, not TypeError."""
    with pytest.raises(ValueError):
        Widget.from_dict({
            "id": 1,
            "latitude": 1.0,
            "longitude": 2.0,
            "weatherData": sample_snapshot.to_dict(),
            "lastUpdated": [5],
        })


def test_widget_identity_is_fixed():
    widget = Widget(id=1, latitude=1.0, longitude=2.0)

    for name in ("id", "latitude", "longitude"):
        with pytest.raises(AttributeError):
            setattr(widget, name, 0)

    assert (widget.id, widget.latitude, widget.longitude) == (1, 1.0, 2.0)

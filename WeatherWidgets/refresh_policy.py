"""Cache freshness rules for widget weather."""
import time
from typing import Optional

from widget import Widget

CACHE_DURATION_MS = 60 * 60 * 1000  # 1 hour


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def needs_refresh(widget: Widget, now: int, cache_duration_ms: int = CACHE_DURATION_MS) -> bool:
    """
    Check whether a widget's cached weather is due for a refetch.

    Args:
        widget: Widget to check
        now: Current time in epoch milliseconds
        cache_duration_ms: How long a fetch stays fresh

    Returns:
        True if the widget was never fetched or its data is older than
        ``cache_duration_ms``
    """
    if widget.last_updated is None:
        return True
    return now - widget.last_updated > cache_duration_ms


def format_last_update(timestamp_ms: Optional[int]) -> str:
    """Render a fetch time as local "HH:MM DD.MM", or "" if never fetched."""
    if timestamp_ms is None:
        return ""
    return time.strftime("%H:%M %d.%m", time.localtime(timestamp_ms / 1000))

"""Ordered widget collection with persistence and validation."""
import json
import logging
import math
from typing import Iterator, List, Optional, Tuple

from storage import KeyValueStorage, PersistenceError
from widget import Widget

STORAGE_KEY = "weatherWidgets"
DUPLICATE_TOLERANCE = 0.001  # degrees, applied to both axes

LAT_RANGE = (-90.0, 90.0)
LON_RANGE = (-180.0, 180.0)


class WidgetValidationError(Exception):
    """A user-correctable problem with a requested widget."""
    pass


class InvalidCoordinates(WidgetValidationError):
    """Coordinates are not numbers or fall outside their valid range."""
    pass


class DuplicateWidget(WidgetValidationError):
    """A widget already exists at (nearly) the same coordinates."""
    pass


class WidgetStore:
    """
    In-memory ordered collection of widgets, persisted to a key-value store.

    The order of ``widgets`` is the order cards and map markers are drawn in.
    Structural mutations (add, remove, clear) persist immediately; callers that
    change a widget's weather in place call ``persist`` themselves.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = STORAGE_KEY,
        duplicate_tolerance: float = DUPLICATE_TOLERANCE,
    ):
        """
        Initialize the store (empty until ``load`` is called).

        Args:
            storage: Backend holding the serialized widget list
            key: Storage key for the serialized list
            duplicate_tolerance: Max per-axis distance (degrees) for two
                coordinates to count as the same place
        """
        self.storage = storage
        self.key = key
        self.duplicate_tolerance = duplicate_tolerance
        self._widgets: List[Widget] = []

    @property
    def widgets(self) -> List[Widget]:
        """A copy of the ordered widget list."""
        return list(self._widgets)

    def __len__(self) -> int:
        return len(self._widgets)

    def __iter__(self) -> Iterator[Widget]:
        return iter(list(self._widgets))

    def load(self) -> List[Widget]:
        """
        Replace the in-memory list with the persisted one.

        Malformed or unreadable state is logged and treated as empty.
        """
        try:
            raw = self.storage.get(self.key)
            if raw:
                if not isinstance(raw, str):
                    raise ValueError(f"Expected a JSON string under '{self.key}', got {type(raw).__name__}")
                entries = json.loads(raw)
                if not isinstance(entries, list):
                    raise ValueError(f"Expected a list under '{self.key}', got {type(entries).__name__}")
                self._widgets = [Widget.from_dict(entry) for entry in entries]
            else:
                self._widgets = []
        except (PersistenceError, ValueError) as e:
            logging.error(f"Failed to load widgets, starting empty: {e}")
            self._widgets = []

        logging.info(f"Loaded {len(self._widgets)} widget(s) from storage")
        return self.widgets

    def save(self, widgets: Optional[List[Widget]] = None) -> None:
        """
        Serialize the full ordered list; failures are logged, not raised.

        Args:
            widgets: List to persist (defaults to the store's own contents)
        """
        if widgets is None:
            widgets = self._widgets
        try:
            payload = json.dumps([w.to_dict() for w in widgets], ensure_ascii=False)
            self.storage.set(self.key, payload)
        except (PersistenceError, TypeError, ValueError) as e:
            logging.error(f"Failed to save widgets: {e}")
            return
        logging.debug(f"Saved {len(widgets)} widget(s)")

    def persist(self) -> None:
        self.save(self._widgets)

    def add(self, widget: Widget) -> None:
        self._widgets.append(widget)
        self.persist()

    def remove(self, widget_id: int) -> bool:
        """Remove a widget by id. Returns False if no widget had that id."""
        before = len(self._widgets)
        self._widgets = [w for w in self._widgets if w.id != widget_id]
        self.persist()
        return len(self._widgets) != before

    def clear(self) -> None:
        self._widgets = []
        self.persist()

    def get(self, widget_id: int) -> Optional[Widget]:
        for widget in self._widgets:
            if widget.id == widget_id:
                return widget
        return None

    def index_of(self, widget_id: int) -> Optional[int]:
        for index, widget in enumerate(self._widgets):
            if widget.id == widget_id:
                return index
        return None

    def next_id(self, now_ms: int) -> int:
        """Time-derived id, bumped past the newest existing id if needed."""
        newest = max((w.id for w in self._widgets), default=0)
        return max(int(now_ms), newest + 1)

    def is_duplicate(self, lat: float, lon: float) -> bool:
        tol = self.duplicate_tolerance
        return any(
            abs(w.latitude - lat) < tol and abs(w.longitude - lon) < tol
            for w in self._widgets
        )

    @staticmethod
    def parse_coordinates(lat, lon) -> Tuple[float, float]:
        """
        Parse and range-check a coordinate pair.

        Accepts numbers or numeric strings (surrounding whitespace ignored).

        Raises:
            InvalidCoordinates: If either value is not a finite number in range
        """
        try:
            lat_num = float(str(lat).strip())
            lon_num = float(str(lon).strip())
        except (TypeError, ValueError) as e:
            raise InvalidCoordinates(f"Coordinates must be numbers: {lat!r}, {lon!r}") from e

        if not (math.isfinite(lat_num) and math.isfinite(lon_num)):
            raise InvalidCoordinates(f"Coordinates must be finite: {lat!r}, {lon!r}")
        if not LAT_RANGE[0] <= lat_num <= LAT_RANGE[1]:
            raise InvalidCoordinates(f"Latitude must be between -90 and 90, got {lat_num}")
        if not LON_RANGE[0] <= lon_num <= LON_RANGE[1]:
            raise InvalidCoordinates(f"Longitude must be between -180 and 180, got {lon_num}")
        return lat_num, lon_num

    @classmethod
    def validate_coordinates(cls, lat, lon) -> bool:
        try:
            cls.parse_coordinates(lat, lon)
        except InvalidCoordinates:
            return False
        return True

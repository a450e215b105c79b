"""Widget lifecycle engine - create, refresh, delete and startup refresh."""
import asyncio
import logging
from typing import Callable, List, Optional

from refresh_policy import CACHE_DURATION_MS, needs_refresh, now_ms
from weather_provider import WeatherProviderBase, WeatherProviderError
from widget import Widget
from widget_store import DuplicateWidget, WidgetStore

Observer = Callable[[List[Widget]], None]
NoticeHandler = Callable[[str], None]

FETCH_FAILED_NOTICE = (
    "Could not fetch weather data. Check the coordinates and your internet connection."
)
CREATE_FAILED_NOTICE = "An error occurred while adding the widget"
REFRESH_FAILED_NOTICE = "An error occurred while refreshing the widget"


class WidgetLifecycleEngine:
    """
    Orchestrates every widget mutation against the store and the provider.

    After each mutation the engine notifies its observers with the store's
    ordered widget list; list and map views render only from that list, so
    they cannot drift apart. All methods run on one event loop: the provider's
    blocking call is pushed to a worker thread, but results are written back
    on the loop.

    Only creation is single-flight. Refreshes and deletes of different
    widgets may interleave freely; two overlapping operations on the same
    widget are not serialized.
    """

    def __init__(
        self,
        store: WidgetStore,
        provider: WeatherProviderBase,
        cache_duration_ms: int = CACHE_DURATION_MS,
        clock: Callable[[], int] = now_ms,
    ):
        """
        Initialize the engine.

        Args:
            store: Widget store (already loaded)
            provider: Weather provider used for every fetch
            cache_duration_ms: Age after which startup refresh refetches
            clock: Returns the current time in epoch milliseconds
        """
        self.store = store
        self.provider = provider
        self.cache_duration_ms = cache_duration_ms
        self.clock = clock

        self._observers: List[Observer] = []
        self._notice_handlers: List[NoticeHandler] = []
        self._creating = False

    @property
    def is_creating(self) -> bool:
        return self._creating

    @property
    def widgets(self) -> List[Widget]:
        return self.store.widgets

    def find(self, widget_id: int) -> Optional[Widget]:
        return self.store.get(widget_id)

    def subscribe(self, observer: Observer) -> None:
        """Register a view to be re-rendered after every mutation."""
        self._observers.append(observer)

    def on_notice(self, handler: NoticeHandler) -> None:
        """Register a sink for user-visible notices."""
        self._notice_handlers.append(handler)

    def _notify(self) -> None:
        widgets = self.store.widgets
        for observer in self._observers:
            try:
                observer(widgets)
            except Exception:
                logging.exception(f"Observer {observer!r} failed to render")

    def _notice(self, message: str) -> None:
        for handler in self._notice_handlers:
            handler(message)

    async def _update_weather(self, widget: Widget) -> bool:
        """Fetch weather for one widget and write it back; False on failure."""
        logging.info(f"Updating weather for widget {widget.id}")
        try:
            snapshot = await asyncio.to_thread(
                self.provider.fetch, widget.latitude, widget.longitude
            )
        except WeatherProviderError as e:
            logging.warning(f"Weather fetch failed for widget {widget.id}: {e}")
            self._notice(FETCH_FAILED_NOTICE)
            return False

        widget.record_weather(snapshot, self.clock())
        logging.info(
            f"Widget {widget.id} updated: {snapshot.temperature}°C, {snapshot.description}"
        )
        return True

    async def create_widget(self, lat, lon) -> Optional[Widget]:
        """
        Add a widget at (lat, lon) and fetch its weather.

        The widget is stored and rendered in its loading state before the
        fetch; a failed fetch leaves it in the store without weather.

        Returns:
            The new widget, or None if another creation is still running

        Raises:
            InvalidCoordinates: If the coordinates do not parse or are out of range
            DuplicateWidget: If a widget already sits at nearly the same place
        """
        if self._creating:
            logging.info("Widget creation already in progress, ignoring request")
            return None

        self._creating = True
        try:
            lat_num, lon_num = self.store.parse_coordinates(lat, lon)
            if self.store.is_duplicate(lat_num, lon_num):
                raise DuplicateWidget(
                    f"A widget at ({lat_num}, {lon_num}) already exists"
                )

            widget = Widget(
                id=self.store.next_id(self.clock()),
                latitude=lat_num,
                longitude=lon_num,
            )
            self.store.add(widget)
            logging.info(f"Created widget {widget.id} at ({lat_num}, {lon_num})")
            self._notify()

            try:
                await self._update_weather(widget)
            except Exception:
                logging.exception(f"Unexpected error while creating widget {widget.id}")
                self._notice(CREATE_FAILED_NOTICE)

            self.store.persist()
            self._notify()
            return widget
        finally:
            self._creating = False

    async def refresh_widget(self, widget_id: int) -> Optional[Widget]:
        """
        Force a refetch for one widget, regardless of cache age.

        Returns:
            The widget, or None if no widget has that id
        """
        widget = self.store.get(widget_id)
        if widget is None:
            logging.warning(f"Refresh requested for unknown widget {widget_id}")
            return None

        logging.info(f"Forced refresh of widget {widget_id}")
        widget.clear_weather()
        self._notify()

        try:
            await self._update_weather(widget)
        except Exception:
            logging.exception(f"Unexpected error while refreshing widget {widget_id}")
            self._notice(REFRESH_FAILED_NOTICE)

        self.store.persist()
        self._notify()
        return widget

    def delete_widget(self, widget_id: int) -> bool:
        """Remove a widget; deleting an unknown id changes nothing."""
        removed = self.store.remove(widget_id)
        if removed:
            logging.info(f"Deleted widget {widget_id}")
        else:
            logging.debug(f"Delete requested for unknown widget {widget_id}")
        self._notify()
        return removed

    def clear_all(self, confirm: Callable[[], bool]) -> bool:
        """
        Remove every widget once ``confirm()`` agrees.

        Returns:
            True if the store was cleared
        """
        if not confirm():
            logging.info("Clear all cancelled")
            return False
        self.store.clear()
        logging.info("All widgets cleared")
        self._notify()
        return True

    async def bootstrap_refresh(self) -> int:
        """
        Refetch every widget whose cached weather is missing or stale.

        Fetches run concurrently; one failure does not affect the others.
        The store is persisted and views notified once, after all settle.

        Returns:
            Number of widgets successfully refreshed
        """
        now = self.clock()
        stale = []
        for widget in self.store:
            if needs_refresh(widget, now, self.cache_duration_ms):
                stale.append(widget)
            else:
                logging.debug(f"Widget {widget.id} uses cached data")
        logging.info(f"Startup refresh: {len(stale)} of {len(self.store)} widget(s) need refresh")

        results = await asyncio.gather(
            *(self._update_weather(w) for w in stale), return_exceptions=True
        )
        refreshed = 0
        for widget, result in zip(stale, results):
            if isinstance(result, BaseException):
                logging.error(f"Unexpected error refreshing widget {widget.id}: {result!r}")
            elif result:
                refreshed += 1

        self.store.persist()
        self._notify()
        return refreshed

"""Card rendering for the widget list - pure functions for testability."""
import sys
from dataclasses import dataclass
from typing import List, Optional, TextIO

from refresh_policy import format_last_update
from weather_data import IconCategory
from widget import Widget

ICON_FILES = {
    IconCategory.CLEAR: "clear.png",
    IconCategory.PARTLY_CLOUDY: "partly_cloudy.png",
    IconCategory.CLOUDY: "cloudy.png",
    IconCategory.FOG: "fog.png",
    IconCategory.LIGHT_RAIN: "light_rain.png",
    IconCategory.RAIN: "rain.png",
    IconCategory.SNOW: "snow.png",
    IconCategory.THUNDERSTORM: "thunderstorm.png",
}
DEFAULT_ICON_FILE = "wind.png"

EMPTY_STATE = "No weather widgets yet. Add the first one by entering coordinates."


@dataclass
class WidgetCard:
    """Everything one card shows, already formatted."""
    widget_id: int
    title: str
    coordinates: str
    temperature: str
    description: str
    humidity: str
    wind: str
    last_update: str
    icon: Optional[str]


def icon_file(category: Optional[IconCategory]) -> str:
    return ICON_FILES.get(category, DEFAULT_ICON_FILE)


def build_card(widget: Widget) -> WidgetCard:
    """
    Project a widget into card text.

    Widgets without weather render in their loading state.
    """
    weather = widget.weather_data
    coordinates = f"Lat: {widget.latitude:.4f} | Lon: {widget.longitude:.4f}"

    if weather is None:
        return WidgetCard(
            widget_id=widget.id,
            title=f"Weather #{widget.id}",
            coordinates=coordinates,
            temperature="--°",
            description="Loading...",
            humidity="--%",
            wind="-- m/s",
            last_update="",
            icon=None,
        )

    return WidgetCard(
        widget_id=widget.id,
        title=f"Weather #{widget.id}",
        coordinates=coordinates,
        temperature=f"{weather.temperature}°C",
        description=weather.description,
        humidity=f"{weather.humidity}%",
        wind=f"{weather.wind_speed} m/s",
        last_update=f"Updated: {format_last_update(widget.last_updated)}",
        icon=f"icons/{icon_file(weather.icon)}",
    )


def format_card(card: WidgetCard, highlighted: bool = False) -> str:
    marker = ">>" if highlighted else "  "
    lines = [
        f"{marker} {card.title}",
        f"   {card.coordinates}",
        f"   {card.temperature}  {card.description}",
        f"   Humidity {card.humidity}  Wind {card.wind}",
    ]
    if card.last_update:
        lines.append(f"   {card.last_update}")
    return "\n".join(lines)


class ConsolePresentation:
    """
    Renders widget cards to a text stream.

    Subscribe ``render`` to the lifecycle engine; it only ever draws the list
    it is handed. With ``echo=False`` renders are kept but printed only on
    ``show``, so a one-shot command prints the final state once.
    """

    def __init__(self, stream: Optional[TextIO] = None, echo: bool = True):
        self.stream = stream or sys.stdout
        self.echo = echo
        self.highlighted_id: Optional[int] = None
        self.last_cards: List[WidgetCard] = []

    def render(self, widgets: List[Widget]) -> None:
        self.last_cards = [build_card(w) for w in widgets]
        if self.echo:
            self.show()

    def show(self) -> None:
        if not self.last_cards:
            print(EMPTY_STATE, file=self.stream)
            return
        for card in self.last_cards:
            print(format_card(card, card.widget_id == self.highlighted_id), file=self.stream)
        print(file=self.stream)

    def highlight(self, widget_id: int) -> None:
        self.highlighted_id = widget_id

    def notify(self, message: str) -> None:
        print(f"! {message}", file=self.stream)

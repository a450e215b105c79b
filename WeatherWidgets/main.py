"""Command-line weather widget dashboard."""
import argparse
import asyncio
import logging
import os
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional, TextIO

from dotenv import load_dotenv

from lifecycle_engine import WidgetLifecycleEngine
from map_adapter import MAP_INIT_TIMEOUT, MapAdapter
from map_backend import FoliumMapBackend, MapBackend
from open_meteo_provider import OpenMeteoProvider
from presentation import ConsolePresentation
from storage import JsonFileStorage, KeyValueStorage
from weather_provider import WeatherProviderBase
from widget_store import WidgetStore, WidgetValidationError

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_STORAGE_FILE = os.path.join(BASE_DIR, "widgets.json")
DEFAULT_LOG_FILE = os.path.join(BASE_DIR, "weather-widgets.log")
DEFAULT_CACHE_TTL = 3600


@dataclass
class Config:
    storage_path: str
    cache_ttl_seconds: int
    api_url: str
    map_output: Optional[str]


@dataclass
class Dashboard:
    """The wired-up collaborators for one session."""
    store: WidgetStore
    engine: WidgetLifecycleEngine
    map: MapAdapter
    map_backend: MapBackend
    presentation: ConsolePresentation


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Weather widget dashboard")
    parser.add_argument("--storage", default=None, help="Widget storage file")
    parser.add_argument("--cache-ttl", type=int, default=None, help="Seconds before cached weather is refetched")
    parser.add_argument("--timeout", type=int, default=10, help="HTTP timeout in seconds")
    parser.add_argument("--map-output", default=None, help="Write the map as HTML to this file")
    parser.add_argument("--map-timeout", type=float, default=MAP_INIT_TIMEOUT)
    parser.add_argument("--no-bootstrap", action="store_true", help="Skip the startup refresh of stale widgets")
    parser.add_argument("--log-file", default=DEFAULT_LOG_FILE)
    parser.add_argument("--verbose", action="store_true")

    commands = parser.add_subparsers(dest="command")
    commands.add_parser("list", help="Show all widgets")
    add = commands.add_parser("add", help="Add a widget for a coordinate")
    add.add_argument("latitude")
    add.add_argument("longitude")
    for name, help_text in (
        ("refresh", "Refetch weather for a widget"),
        ("delete", "Delete a widget"),
        ("fly-to", "Center the map on a widget"),
        ("show", "Center the map on a widget and open its marker"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("widget_id", type=int)
    clear = commands.add_parser("clear", help="Delete all widgets")
    clear.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    commands.add_parser("retry-map", help="Retry loading the map")

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "list"
    return args


def setup_logging(log_file: str, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def load_config(args: argparse.Namespace) -> Config:
    load_dotenv()
    storage_path = args.storage or os.getenv("WEATHER_STORAGE_PATH", DEFAULT_STORAGE_FILE)
    api_url = os.getenv("WEATHER_API_URL", OpenMeteoProvider.BASE_URL)
    map_output = args.map_output or os.getenv("WEATHER_MAP_OUTPUT") or None

    if args.cache_ttl is not None:
        cache_ttl = args.cache_ttl
    else:
        try:
            cache_ttl = int(os.getenv("WEATHER_CACHE_TTL", DEFAULT_CACHE_TTL))
        except ValueError as exc:
            raise SystemExit(f"Invalid WEATHER_CACHE_TTL: {exc}") from exc
    if cache_ttl < 0:
        raise SystemExit("Cache TTL must not be negative")

    logging.info("Configuration loaded: storage=%s cache_ttl=%ss", storage_path, cache_ttl)
    return Config(
        storage_path=storage_path,
        cache_ttl_seconds=cache_ttl,
        api_url=api_url,
        map_output=map_output,
    )


def build_dashboard(
    config: Config,
    timeout: int = 10,
    storage: Optional[KeyValueStorage] = None,
    provider: Optional[WeatherProviderBase] = None,
    map_backend: Optional[MapBackend] = None,
    stream: Optional[TextIO] = None,
) -> Dashboard:
    store = WidgetStore(storage or JsonFileStorage(config.storage_path))
    store.load()

    provider = provider or OpenMeteoProvider(base_url=config.api_url, timeout=timeout)
    engine = WidgetLifecycleEngine(
        store,
        provider,
        cache_duration_ms=config.cache_ttl_seconds * 1000,
    )

    map_backend = map_backend or FoliumMapBackend()
    map_view = MapAdapter(map_backend, store)
    presentation = ConsolePresentation(stream, echo=False)

    engine.subscribe(presentation.render)
    engine.subscribe(map_view.render)
    engine.on_notice(presentation.notify)
    logging.info("Dashboard ready with %s widget(s)", len(store))
    return Dashboard(store, engine, map_view, map_backend, presentation)


def confirm_clear(assume_yes: bool) -> Callable[[], bool]:
    def confirm() -> bool:
        if assume_yes:
            return True
        try:
            answer = input("Delete all widgets? [y/N] ")
        except EOFError:
            return False
        return answer.strip().lower() in ("y", "yes")
    return confirm


async def run_command(dashboard: Dashboard, args: argparse.Namespace) -> int:
    engine = dashboard.engine
    command = args.command

    if command == "add":
        try:
            widget = await engine.create_widget(args.latitude, args.longitude)
        except WidgetValidationError as err:
            logging.warning("Widget rejected: %s", err)
            dashboard.presentation.notify(str(err))
            return 2
        if widget is not None:
            dashboard.presentation.highlight(widget.id)
    elif command == "refresh":
        await engine.refresh_widget(args.widget_id)
    elif command == "delete":
        engine.delete_widget(args.widget_id)
    elif command == "clear":
        engine.clear_all(confirm_clear(args.yes))
    elif command in ("fly-to", "show"):
        focus = dashboard.map.fly_to if command == "fly-to" else dashboard.map.show_on_map
        if focus(args.widget_id):
            dashboard.presentation.highlight(args.widget_id)
        else:
            logging.warning("Cannot focus widget %s (unknown id or map unavailable)", args.widget_id)
    elif command == "retry-map":
        if not dashboard.map.available:
            await dashboard.map.retry(args.map_timeout)

    dashboard.presentation.render(dashboard.store.widgets)
    return 0


async def run(dashboard: Dashboard, args: argparse.Namespace, map_output: Optional[str] = None) -> int:
    if not await dashboard.map.initialize(args.map_timeout):
        dashboard.presentation.notify("Map unavailable, running in list-only mode")

    if not args.no_bootstrap:
        await dashboard.engine.bootstrap_refresh()

    status = await run_command(dashboard, args)
    dashboard.presentation.show()

    if map_output and dashboard.map.available and isinstance(dashboard.map_backend, FoliumMapBackend):
        try:
            dashboard.map_backend.save(map_output)
        except OSError as err:
            logging.error("Failed to write map to %s: %s", map_output, err)
    return status


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    config = load_config(args)
    dashboard = build_dashboard(config, timeout=args.timeout)

    try:
        return asyncio.run(run(dashboard, args, config.map_output))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())

"""High-level orchestration for the infodash application."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from . import db
from .aggregate import fetch_all_feeds, fetch_all_stocks, fetch_all_weather
from .config import AppConfig, load_feed_sources
from .discovery import FeedDiscovery
from .feeds import FeedFetcher
from .http_client import HttpClient
from .stocks import StockScraper
from .weather import WeatherService

logger = logging.getLogger(__name__)

SECTIONS = ("feeds", "stocks", "weather")


@dataclass
class RunResult:
    """Returned data after executing the app."""

    output_text: str
    payload: Dict[str, List[Dict[str, Any]]]


def build_client(config: AppConfig) -> HttpClient:
    return HttpClient(timeout=config.timeout, user_agent=config.user_agent)


def build_session_factory(config: AppConfig):
    if not config.database.enabled:
        return None
    if not config.database.connection_string:
        logger.warning(
            "Database enabled but no connection string provided. Article state disabled."
        )
        return None
    engine = db.init_engine(config.database.connection_string)
    return db.get_session_factory(engine) if engine else None


def _log_completion(section: str):
    def on_complete(results: List[Any]) -> None:
        logger.info("Refreshed %s: %d results", section, len(results))

    return on_complete


def _attach_article_state(entries: List[Dict[str, Any]], session_factory) -> None:
    with session_factory() as session:
        read = db.read_links(session)
        saved = db.saved_links(session)
    for entry in entries:
        entry["read"] = entry["link"] in read
        entry["saved"] = entry["link"] in saved


def execute(
    config: AppConfig,
    sections: Optional[Iterable[str]] = None,
    session_factory=None,
) -> RunResult:
    """Refresh the requested sections concurrently and render them as JSON."""
    sections = list(sections or SECTIONS)
    unknown = [name for name in sections if name not in SECTIONS]
    if unknown:
        raise ValueError(f"Unknown section(s): {', '.join(unknown)}")

    client = build_client(config)
    pending = {}

    if "feeds" in sections:
        sources = load_feed_sources(config)
        fetcher = FeedFetcher(client, resolve_images=config.resolve_images)
        pending["feeds"] = fetch_all_feeds(sources, fetcher, _log_completion("feeds"))
    if "stocks" in sections:
        scraper = StockScraper(client)
        pending["stocks"] = fetch_all_stocks(
            config.stock_symbols, scraper, _log_completion("stocks")
        )
    if "weather" in sections:
        service = WeatherService(client, unit=config.temp_unit)
        pending["weather"] = fetch_all_weather(
            config.weather_locations, service, _log_completion("weather")
        )

    payload: Dict[str, List[Dict[str, Any]]] = {}
    for name, future in pending.items():
        payload[name] = [dataclasses.asdict(result) for result in future.result()]

    if session_factory is not None and "feeds" in payload:
        _attach_article_state(payload["feeds"], session_factory)

    return RunResult(
        output_text=json.dumps(payload, indent=2, ensure_ascii=False),
        payload=payload,
    )


def discover(url: str, config: AppConfig) -> str:
    """JSON list of the feeds advertised by the page at ``url``."""
    feeds = FeedDiscovery(build_client(config)).discover_feeds(url)
    return json.dumps(
        [dataclasses.asdict(feed) for feed in feeds], indent=2, ensure_ascii=False
    )

"""Configuration loading for the dashboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from xml.etree import ElementTree as ET

from .http_client import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT
from .models import FeedSource, TempUnit

logger = logging.getLogger(__name__)

DEFAULT_FEEDS = (
    FeedSource("https://feeds.arstechnica.com/arstechnica/index", "Ars Technica", "tech"),
    FeedSource("https://www.reddit.com/r/linux.rss", "r/linux", "tech"),
    FeedSource("https://news.ycombinator.com/rss", "Hacker News", "tech"),
)
DEFAULT_STOCK_SYMBOLS = ("AAPL", "GOOGL", "MSFT", "AMZN")
DEFAULT_WEATHER_LOCATIONS = ("auto",)

_UNITS = {
    "c": TempUnit.CELSIUS,
    "celsius": TempUnit.CELSIUS,
    "f": TempUnit.FAHRENHEIT,
    "fahrenheit": TempUnit.FAHRENHEIT,
}


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class DatabaseConfig:
    enabled: bool = False
    connection_string: Optional[str] = None


@dataclass
class AppConfig:
    """Read-only settings handed to the acquisition pipeline."""

    feeds_file: Optional[str] = None
    stock_symbols: List[str] = field(default_factory=lambda: list(DEFAULT_STOCK_SYMBOLS))
    weather_locations: List[str] = field(
        default_factory=lambda: list(DEFAULT_WEATHER_LOCATIONS)
    )
    temp_unit: TempUnit = TempUnit.FAHRENHEIT
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    resolve_images: bool = True
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def parse_temp_unit(value: str) -> TempUnit:
    unit = _UNITS.get((value or "").strip().lower())
    if unit is None:
        raise ValueError(f"Unsupported temperature unit: {value}")
    return unit


def _is_true(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in ("false", "0", "no", "off")


def parse_feeds_config(path: str) -> List[FeedSource]:
    """Parse the OPML feed list; nested outlines name the category."""
    logger.info("Loading feed configuration from %s", path)
    tree = ET.parse(path)
    root = tree.getroot()
    body = root.find("body")
    feeds: List[FeedSource] = []

    def walk(outline: ET.Element, current_category: Optional[str]) -> None:
        title = outline.attrib.get("title") or outline.attrib.get("text")
        feed_url = outline.attrib.get("xmlUrl")
        outline_type = outline.attrib.get("type")

        if outline_type == "rss" and feed_url:
            feeds.append(
                FeedSource(
                    url=feed_url,
                    display_name=title or "",
                    category=current_category or "uncategorized",
                    enabled=_is_true(outline.attrib.get("enabled")),
                )
            )
            logger.debug(
                "Registered feed '%s' (category='%s')", feed_url, feeds[-1].category
            )
            return

        next_category = title if title else current_category
        for child in outline.findall("outline"):
            walk(child, next_category)

    if body is None:
        raise ValueError("Feed list is missing the <body> section.")

    for outline in body.findall("outline"):
        walk(outline, None)

    logger.info("Loaded %d feed endpoints from configuration", len(feeds))
    return feeds


def load_feed_sources(config: AppConfig) -> List[FeedSource]:
    if not config.feeds_file:
        return list(DEFAULT_FEEDS)
    return parse_feeds_config(config.feeds_file)


def _resolve_path(base_path: Path, target_path: str) -> str:
    """Resolve a path relative to the base config file if it's not absolute."""
    target = Path(target_path)
    if target.is_absolute():
        return str(target)
    return str((base_path.parent / target).resolve())


def _texts(node: Optional[ET.Element], tag: str) -> List[str]:
    if node is None:
        return []
    return [child.text.strip() for child in node.findall(tag) if child.text and child.text.strip()]


def parse_app_config(path: str) -> AppConfig:
    """Parse the main application configuration XML."""
    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    logger.info("Loading application configuration from %s", config_path)
    root = ET.parse(config_path).getroot()
    config = AppConfig()

    feeds_node = root.find("feeds")
    if feeds_node is not None and feeds_node.text and feeds_node.text.strip():
        config.feeds_file = _resolve_path(config_path, feeds_node.text.strip())

    stocks_node = root.find("stocks")
    if stocks_node is not None:
        config.stock_symbols = [symbol.upper() for symbol in _texts(stocks_node, "symbol")]

    weather_node = root.find("weather")
    if weather_node is not None:
        locations = _texts(weather_node, "location")
        config.weather_locations = locations or list(DEFAULT_WEATHER_LOCATIONS)
        if weather_node.attrib.get("unit"):
            config.temp_unit = parse_temp_unit(weather_node.attrib["unit"])

    http_node = root.find("http")
    if http_node is not None:
        timeout = http_node.findtext("timeout")
        if timeout:
            try:
                config.timeout = float(timeout)
            except ValueError:
                raise ValueError(f"Invalid HTTP timeout: {timeout}")
        config.user_agent = (http_node.findtext("user-agent") or "").strip() or DEFAULT_USER_AGENT

    config.resolve_images = _is_true(root.findtext("resolve-images"))

    log_node = root.find("logging")
    if log_node is not None:
        config.logging.level = log_node.findtext("level", "INFO")
        log_file = log_node.findtext("file")
        if log_file:
            config.logging.file = _resolve_path(config_path, log_file)

    db_node = root.find("database")
    if db_node is not None:
        config.database.enabled = _is_true(db_node.findtext("enabled"), default=False)
        config.database.connection_string = db_node.findtext("connection-string")

    return config

"""Shared data models for infodash."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class TempUnit(Enum):
    """Temperature unit preference."""

    CELSIUS = "C"
    FAHRENHEIT = "F"


@dataclass
class FeedSource:
    """Configuration for a single configured feed."""

    url: str
    display_name: str = ""
    category: str = "uncategorized"
    enabled: bool = True


@dataclass(frozen=True)
class FeedItem:
    """One article from a feed, ready for display."""

    title: str
    link: str
    description: str = ""
    published_date: str = ""
    source_name: str = ""
    image_url: str = ""
    author: str = ""


@dataclass(frozen=True)
class DiscoveredFeed:
    """A candidate feed endpoint found on a web page."""

    url: str
    title: str
    type: str


@dataclass(frozen=True)
class StockQuote:
    symbol: str
    price: str
    change: str
    change_percent: str
    is_up: bool
    name: str

    @classmethod
    def sentinel(cls, symbol: str) -> "StockQuote":
        """Quote returned when nothing usable could be scraped."""
        return cls(
            symbol=symbol,
            price="N/A",
            change="0.00",
            change_percent="0.00%",
            is_up=True,
            name=symbol,
        )


@dataclass(frozen=True)
class Forecast:
    day: str
    high: str
    low: str
    condition: str = ""
    condition_code: str = ""


@dataclass(frozen=True)
class WeatherAlert:
    headline: str
    severity: str = ""
    description: str = ""
    expires: str = ""


@dataclass(frozen=True)
class WeatherSnapshot:
    """Current conditions, short forecast and alerts for one location."""

    location_query: str
    resolved_city: str = ""
    country: str = ""
    temperature: str = ""
    feels_like: str = ""
    condition: str = ""
    condition_code: str = ""
    humidity: str = ""
    wind: str = ""
    forecast: List[Forecast] = field(default_factory=list)
    alerts: List[WeatherAlert] = field(default_factory=list)

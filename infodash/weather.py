"""Weather conditions, forecast and alerts from the wttr.in JSON format."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from .http_client import HttpClient
from .models import Forecast, TempUnit, WeatherAlert, WeatherSnapshot
from .sanitize import sanitize_utf8

logger = logging.getLogger(__name__)

WEATHER_URL = "https://wttr.in/{location}"
PLAIN_FORMAT = "%l|%t|%C|%h|%w"
AUTO_LOCATION = "auto"

FORECAST_DAYS = 3
ALERT_LIMIT = 5
MIDDAY_SAMPLE = 4

_WEEKDAYS = ("Sat", "Sun", "Mon", "Tue", "Wed", "Thu", "Fri")

ICON_CLEAR = "weather-clear-symbolic"
ICON_FEW_CLOUDS = "weather-few-clouds-symbolic"
ICON_OVERCAST = "weather-overcast-symbolic"
ICON_FOG = "weather-fog-symbolic"
ICON_LIGHT_RAIN = "weather-showers-scattered-symbolic"
ICON_RAIN = "weather-showers-symbolic"
ICON_SNOW = "weather-snow-symbolic"
ICON_STORM = "weather-storm-symbolic"

# Provider codes: https://github.com/chubin/wttr.in/blob/master/lib/constants.py
_ICON_CODES = {
    ICON_CLEAR: (113,),
    ICON_FEW_CLOUDS: (116,),
    ICON_OVERCAST: (119, 122),
    ICON_FOG: (143, 248, 260),
    ICON_LIGHT_RAIN: (176, 263, 266, 293, 296, 353),
    ICON_RAIN: (299, 302, 305, 308, 356, 359),
    ICON_SNOW: (
        179, 182, 185, 227, 230, 317, 320, 323, 326, 329,
        332, 335, 338, 350, 362, 365, 368, 371, 374, 377,
    ),
    ICON_STORM: (200, 386, 389, 392, 395),
}
WEATHER_ICONS = {code: icon for icon, codes in _ICON_CODES.items() for code in codes}


def get_weather_icon(condition_code: str) -> str:
    """Icon name for a provider weather code."""
    try:
        code = int(str(condition_code).strip())
    except ValueError:
        return ICON_FEW_CLOUDS
    return WEATHER_ICONS.get(code, ICON_FEW_CLOUDS)


def celsius_to_fahrenheit(celsius: str) -> str:
    """Whole-degree conversion; non-numeric input comes back unchanged."""
    try:
        value = int(str(celsius).strip())
    except ValueError:
        return celsius
    return str(int(round(value * 9 / 5 + 32)))


def format_temp(celsius: str, unit: TempUnit) -> str:
    """Temperature with the unit letter baked in: ``"20"`` gives ``"68F"``."""
    if unit == TempUnit.FAHRENHEIT:
        return celsius_to_fahrenheit(celsius) + "F"
    return celsius + "C"


def _temp(celsius: str, unit: TempUnit) -> str:
    return format_temp(celsius, unit) if celsius else ""


def weekday_name(date_text: str) -> str:
    """Short weekday for a ``YYYY-MM-DD`` date using Zeller's congruence."""
    try:
        year, month, day = (int(part) for part in date_text.strip().split("-"))
    except ValueError:
        return "Day 3"
    if month < 3:
        month += 12
        year -= 1
    dow = (day + 13 * (month + 1) // 5 + year + year // 4 - year // 100 + year // 400) % 7
    return _WEEKDAYS[dow]


def _text(obj: Any, key: str) -> str:
    if not isinstance(obj, dict):
        return ""
    value = obj.get(key)
    if value is None or isinstance(value, (dict, list)):
        return ""
    return sanitize_utf8(str(value))


def _first(obj: Any, key: str) -> Dict[str, Any]:
    """First object of the array stored under ``key``, or an empty dict."""
    if not isinstance(obj, dict):
        return {}
    values = obj.get(key)
    if isinstance(values, list) and values and isinstance(values[0], dict):
        return values[0]
    return {}


def _nested_value(obj: Any, key: str) -> str:
    return _text(_first(obj, key), "value")


def _wind(current: Dict[str, Any], unit: TempUnit) -> str:
    direction = _text(current, "winddir16Point")
    if unit == TempUnit.FAHRENHEIT:
        return f"{_text(current, 'windspeedMiles')} mph {direction}"
    return f"{_text(current, 'windspeedKmph')} km/h {direction}"


def _forecast_day(index: int, day: Dict[str, Any], unit: TempUnit) -> Forecast:
    if index == 0:
        label = "Today"
    elif index == 1:
        label = "Tomorrow"
    else:
        label = weekday_name(_text(day, "date"))

    hourly = day.get("hourly") if isinstance(day.get("hourly"), list) else []
    sample: Dict[str, Any] = {}
    if hourly:
        candidate = hourly[MIDDAY_SAMPLE] if len(hourly) > MIDDAY_SAMPLE else hourly[0]
        sample = candidate if isinstance(candidate, dict) else {}

    return Forecast(
        day=label,
        high=_temp(_text(day, "maxtempC"), unit),
        low=_temp(_text(day, "mintempC"), unit),
        condition=_nested_value(sample, "weatherDesc"),
        condition_code=_text(sample, "weatherCode"),
    )


def _alert_list(payload: Dict[str, Any]) -> List[Any]:
    alerts = payload.get("alerts")
    if isinstance(alerts, dict):
        alerts = alerts.get("alert")
    return alerts if isinstance(alerts, list) else []


def parse_alerts(payload: Dict[str, Any]) -> List[WeatherAlert]:
    """Alerts from either the ``alerts.alert`` or the bare ``alerts`` shape."""
    alerts: List[WeatherAlert] = []
    for raw in _alert_list(payload)[:ALERT_LIMIT]:
        headline = _text(raw, "headline")
        if not headline:
            continue
        alerts.append(
            WeatherAlert(
                headline=headline,
                severity=_text(raw, "severity"),
                description=_text(raw, "desc"),
                expires=_text(raw, "expires"),
            )
        )
    return alerts


def parse_weather_json(
    payload: Dict[str, Any], location_query: str, unit: TempUnit
) -> WeatherSnapshot:
    """Normalise a decoded ``format=j1`` payload."""
    current = _first(payload, "current_condition")
    area = _first(payload, "nearest_area")
    days = payload.get("weather") if isinstance(payload.get("weather"), list) else []

    temperature = ""
    feels_like = ""
    humidity = ""
    wind = ""
    if current:
        temperature = _temp(_text(current, "temp_C"), unit)
        feels_like = _temp(_text(current, "FeelsLikeC"), unit)
        humidity = _text(current, "humidity") + "%"
        wind = _wind(current, unit)

    forecast = [
        _forecast_day(index, day, unit)
        for index, day in enumerate(days[:FORECAST_DAYS])
        if isinstance(day, dict)
    ]

    return WeatherSnapshot(
        location_query=location_query,
        resolved_city=_nested_value(area, "areaName"),
        country=_nested_value(area, "country"),
        temperature=temperature,
        feels_like=feels_like,
        condition=_nested_value(current, "weatherDesc"),
        condition_code=_text(current, "weatherCode"),
        humidity=humidity,
        wind=wind,
        forecast=forecast,
        alerts=parse_alerts(payload),
    )


def parse_plain_weather(text: str, location_query: str) -> Optional[WeatherSnapshot]:
    """Parse ``location|temp|condition|humidity|wind``; ``None`` if short."""
    parts = (text or "").replace("\n", "").split("|")
    if len(parts) < 5:
        return None
    location, temperature, condition, humidity, wind = (
        sanitize_utf8(part).strip() for part in parts[:5]
    )
    return WeatherSnapshot(
        location_query=location_query,
        resolved_city=location,
        temperature=temperature,
        condition=condition,
        humidity=humidity,
        wind=wind,
    )


def location_path(location: str) -> str:
    """URL path segment for a location; ``auto`` asks for IP geolocation."""
    location = (location or "").strip()
    if not location or location.lower() == AUTO_LOCATION:
        return ""
    return quote(location, safe="")


class WeatherService:
    def __init__(
        self,
        client: Optional[HttpClient] = None,
        unit: TempUnit = TempUnit.FAHRENHEIT,
        base_url: str = WEATHER_URL,
    ) -> None:
        self.client = client or HttpClient()
        self.unit = unit
        self.base_url = base_url

    def _fetch_json(self, location: str, url: str) -> Optional[WeatherSnapshot]:
        response = self.client.get(url, params={"format": "j1"})
        if not response.success or not response.body:
            return None
        try:
            payload = json.loads(response.body)
        except ValueError as exc:
            logger.warning("Weather payload for %s is not JSON: %s", location, exc)
            return None
        if not isinstance(payload, dict):
            return None
        return parse_weather_json(payload, location, self.unit)

    def _fetch_plain(self, location: str, url: str) -> Optional[WeatherSnapshot]:
        response = self.client.get(url, params={"format": PLAIN_FORMAT})
        if not response.success or not response.body:
            return None
        return parse_plain_weather(response.body, location)

    def fetch_weather(self, location: str) -> WeatherSnapshot:
        """Snapshot for ``location``; an empty snapshot when all else fails."""
        url = self.base_url.format(location=location_path(location))
        snapshot = self._fetch_json(location, url)
        if snapshot is None or not snapshot.temperature:
            logger.info("Falling back to plain weather format for %s", location)
            fallback = self._fetch_plain(location, url)
            if fallback is not None:
                snapshot = fallback
        if snapshot is None:
            logger.warning("No weather data for %s", location)
            return WeatherSnapshot(location_query=location)
        return snapshot

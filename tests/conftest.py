import threading

import pytest

from infodash.http_client import HttpResponse


def make_response(body="", status=200, headers=None):
    content = body if isinstance(body, bytes) else body.encode("utf-8")
    success = 200 <= status < 300
    return HttpResponse(
        status_code=status,
        body=content.decode("utf-8", "ignore"),
        content=content,
        headers=dict(headers or {}),
        success=success,
        error="" if success else f"HTTP {status}",
    )


class FakeClient:
    """Stands in for HttpClient; unknown URLs answer 404."""

    def __init__(self, routes=None):
        self.routes = {}
        self.calls = []
        self.byte_calls = []
        self._lock = threading.Lock()
        for url, body in (routes or {}).items():
            self.add(url, body)

    def add(self, url, body, status=200):
        if isinstance(body, BaseException):
            self.routes[url] = body
        else:
            self.routes[url] = make_response(body, status)

    def get(self, url, params=None):
        key = url
        if params:
            key += "?" + "&".join(f"{k}={v}" for k, v in params.items())
        with self._lock:
            self.calls.append(key)
        route = self.routes.get(key)
        if isinstance(route, BaseException):
            raise route
        return route if route is not None else make_response("", 404)

    def get_bytes(self, url):
        with self._lock:
            self.byte_calls.append(url)
        route = self.routes.get(url)
        if route is None or isinstance(route, BaseException) or not route.success:
            return b""
        return route.content


@pytest.fixture
def fake_client():
    return FakeClient()


def rss_document(count=1, with_image=True):
    items = []
    for index in range(count):
        image = (
            f'<media:thumbnail url="https://example.com/img/{index}.jpg"/>'
            if with_image
            else ""
        )
        items.append(
            f"""
        <item>
          <title>Story {index}</title>
          <link>https://example.com/story/{index}</link>
          <description>&lt;p&gt;Body {index}&lt;/p&gt;</description>
          <pubDate>Fri, 15 Mar 2024 10:{index % 60:02d}:00 GMT</pubDate>
          <dc:creator>Reporter {index}</dc:creator>
          {image}
        </item>"""
        )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
  <channel>
    <title>Example</title>
    {''.join(items)}
  </channel>
</rss>"""


@pytest.fixture
def rss_feed():
    return rss_document


@pytest.fixture
def wttr_payload():
    def hourly(code, desc):
        return {"weatherCode": code, "weatherDesc": [{"value": desc}]}

    return {
        "current_condition": [
            {
                "temp_C": "20",
                "FeelsLikeC": "19",
                "humidity": "55",
                "weatherCode": "116",
                "weatherDesc": [{"value": "Partly cloudy"}],
                "windspeedMiles": "7",
                "windspeedKmph": "11",
                "winddir16Point": "NW",
            }
        ],
        "nearest_area": [
            {
                "areaName": [{"value": "London"}],
                "country": [{"value": "United Kingdom"}],
            }
        ],
        "weather": [
            {
                "date": "2024-03-13",
                "maxtempC": "15",
                "mintempC": "5",
                "hourly": [hourly("113", "Clear")] * 4 + [hourly("296", "Light rain")],
            },
            {
                "date": "2024-03-14",
                "maxtempC": "12",
                "mintempC": "4",
                "hourly": [hourly("119", "Cloudy")],
            },
            {
                "date": "2024-03-15",
                "maxtempC": "10",
                "mintempC": "0",
                "hourly": [],
            },
            {
                "date": "2024-03-16",
                "maxtempC": "9",
                "mintempC": "1",
                "hourly": [],
            },
        ],
    }

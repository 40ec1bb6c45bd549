"""Feed autodiscovery: find the real feed behind an arbitrary URL."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Set

from .http_client import HttpClient, HttpResponse
from .markup import (
    MarkupDocument,
    ParsedFeedRecord,
    ci_contains,
    extract_feed_records,
)
from .models import DiscoveredFeed, FeedItem
from .urls import host_of, origin, resolve_url

logger = logging.getLogger(__name__)

DISCOVERED_ITEM_LIMIT = 20

COMMON_FEED_PATHS = (
    "/rss",
    "/feed",
    "/feeds",
    "/rss.xml",
    "/feed.xml",
    "/feeds.xml",
    "/index.rss",
    "/feeds/rss.xml",
    "/services/xml/rss/nyt/HomePage.xml",
)

_HREF = re.compile(r"""href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)

_ALTERNATE_FEED_LINK = (
    "(//link[@rel='alternate']"
    "[contains(@type, 'rss') or contains(@type, 'atom')])[1]"
)
_ALTERNATE_FEED_LINK_CI = (
    f"(//link[{ci_contains('rel', 'alternate')}]"
    f"[{ci_contains('type', 'rss')} or {ci_contains('type', 'atom')}])[1]"
)
_ANY_FEED_LINK = (
    f"(//link[{ci_contains('href', 'rss')} or {ci_contains('href', 'feed')}])[1]"
)
_DECLARED_FEEDS = (
    "//link[@rel='alternate']"
    "[@type='application/rss+xml' or @type='application/atom+xml']"
)


def normalise_url(url: str) -> str:
    url = (url or "").strip()
    if url and "://" not in url:
        return "https://" + url
    return url


def is_feed_document(text: str) -> bool:
    """Cheap sniff for RSS/Atom markup."""
    return "<rss" in text or "<feed" in text or "<channel>" in text


def find_feed_link(document: MarkupDocument) -> str:
    """Return the href of the most specific feed ``<link>`` on a page."""
    for xpath in (_ALTERNATE_FEED_LINK, _ALTERNATE_FEED_LINK_CI, _ANY_FEED_LINK):
        href = document.query_attribute(xpath, "href")
        if href:
            return href
    return ""


def scan_feed_hrefs(text: str) -> List[str]:
    """Every quoted ``href`` value in raw text mentioning rss or feed."""
    seen: Set[str] = set()
    candidates: List[str] = []
    for match in _HREF.finditer(text or ""):
        value = match.group(1).strip()
        lowered = value.lower()
        if ("rss" in lowered or "feed" in lowered) and value not in seen:
            seen.add(value)
            candidates.append(value)
    return candidates


class FeedDiscovery:
    """Layered feed lookup: direct, declared links, raw hrefs, common paths."""

    def __init__(self, client: Optional[HttpClient] = None) -> None:
        self.client = client or HttpClient()

    def _fetch_records(self, url: str) -> List[ParsedFeedRecord]:
        response = self.client.get(url)
        if not response.success:
            return []
        return extract_feed_records(_payload(response))

    def fetch_feed(self, url: str) -> List[FeedItem]:
        """Return the items of the feed at, or linked from, ``url``."""
        requested = normalise_url(url)
        if not requested:
            return []
        source_name = host_of(requested)

        response = self.client.get(requested)
        body = response.body if response.success else ""
        records = extract_feed_records(_payload(response)) if response.success else []
        if records:
            logger.info("Fetched %d items directly from %s", len(records), requested)
            return _to_items(records, source_name)

        logger.debug("No direct feed at %s, starting discovery", requested)
        tried: Set[str] = {requested}
        records = self._from_link_tags(requested, body, tried)
        if not records:
            records = self._from_href_scan(requested, body, tried)
        if not records:
            records = self._from_common_paths(requested, tried)

        if len(records) > DISCOVERED_ITEM_LIMIT:
            logger.debug(
                "Capping %d discovered items for %s", len(records), requested
            )
            records = records[:DISCOVERED_ITEM_LIMIT]

        logger.info("Discovered %d items for %s", len(records), requested)
        return _to_items(records, source_name)

    def _from_link_tags(
        self, page_url: str, body: str, tried: Set[str], hops: int = 1
    ) -> List[ParsedFeedRecord]:
        document = MarkupDocument.parse(body)
        if document is None:
            return []
        href = find_feed_link(document)
        if not href:
            return []

        feed_url = resolve_url(page_url, href)
        if not feed_url or feed_url in tried:
            return []
        tried.add(feed_url)
        logger.debug("Following feed link %s from %s", feed_url, page_url)

        response = self.client.get(feed_url)
        if not response.success:
            return []
        records = extract_feed_records(_payload(response))
        if records or hops <= 0:
            return records
        return self._from_link_tags(feed_url, response.body, tried, hops - 1)

    def _from_href_scan(
        self, page_url: str, body: str, tried: Set[str]
    ) -> List[ParsedFeedRecord]:
        return self._first_with_records(
            (resolve_url(page_url, href) for href in scan_feed_hrefs(body)), tried
        )

    def _from_common_paths(self, url: str, tried: Set[str]) -> List[ParsedFeedRecord]:
        base = origin(url)
        if not base:
            return []
        return self._first_with_records((base + path for path in COMMON_FEED_PATHS), tried)

    def _first_with_records(
        self, candidates: Iterable[str], tried: Set[str]
    ) -> List[ParsedFeedRecord]:
        for candidate in candidates:
            if not candidate or candidate in tried:
                continue
            tried.add(candidate)
            records = self._fetch_records(candidate)
            if records:
                logger.debug("Found feed at %s", candidate)
                return records
        return []

    def discover_feeds(self, url: str) -> List[DiscoveredFeed]:
        """List the feed endpoints a page advertises."""
        full_url = normalise_url(url)
        if not full_url:
            return []
        response = self.client.get(full_url)
        if not response.success or not response.body:
            return []
        if is_feed_document(response.body):
            return [DiscoveredFeed(url=full_url, title="Direct RSS Feed", type="rss")]

        document = MarkupDocument.parse(response.body)
        if document is None:
            return []

        feeds: List[DiscoveredFeed] = []
        for node in document.select(_DECLARED_FEEDS):
            href = (node.get("href") or "").strip()
            if not href:
                continue
            feed_url = resolve_url(full_url, href)
            feeds.append(
                DiscoveredFeed(
                    url=feed_url,
                    title=(node.get("title") or "").strip() or feed_url,
                    type=node.get("type") or "rss",
                )
            )
        logger.info("Found %d advertised feeds on %s", len(feeds), full_url)
        return feeds


def _payload(response: HttpResponse):
    return response.content or response.body


def _to_items(records: List[ParsedFeedRecord], source_name: str) -> List[FeedItem]:
    items = []
    for record in records:
        item = record.to_feed_item(source_name)
        if item is not None:
            items.append(item)
    return items

"""Lead image lookup for articles whose feed entry carries no image."""

from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, List, Optional

from .http_client import HttpClient
from .markup import MarkupDocument, link_xpath, meta_content_xpath
from .models import FeedItem
from .urls import favicon_url, resolve_url

logger = logging.getLogger(__name__)

_IMAGE_CANDIDATES = (
    (meta_content_xpath("og:image"), "content"),
    (meta_content_xpath("twitter:image"), "content"),
    (link_xpath("image_src"), "href"),
    ("(//img[@src])[1]", "src"),
)


def find_lead_image(document: MarkupDocument) -> str:
    """First non-empty image reference in priority order."""
    for xpath, attribute in _IMAGE_CANDIDATES:
        value = document.query_attribute(xpath, attribute)
        if value:
            return value
    return ""


class ArticleImageResolver:
    def __init__(self, client: Optional[HttpClient] = None) -> None:
        self.client = client or HttpClient()

    def resolve(self, link: str) -> str:
        """Fetch the article at ``link`` and return its lead image URL."""
        if not link:
            return ""
        response = self.client.get(link)
        if not response.success:
            return ""
        document = MarkupDocument.parse(response.body)
        if document is None:
            return ""
        image = find_lead_image(document)
        if not image:
            logger.debug("No lead image found for %s", link)
            return ""
        return resolve_url(link, image)

    def backfill(self, items: Iterable[FeedItem]) -> List[FeedItem]:
        """Return ``items`` with missing images looked up one at a time."""
        enriched: List[FeedItem] = []
        resolved = 0
        for item in items:
            if not item.image_url and item.link:
                image = self.resolve(item.link)
                if image:
                    item = dataclasses.replace(item, image_url=image)
                    resolved += 1
            enriched.append(item)
        if resolved:
            logger.info("Resolved %d article images", resolved)
        return enriched

    def fetch_favicon(self, feed_url: str) -> bytes:
        """Raw favicon bytes for the host serving ``feed_url``."""
        url = favicon_url(feed_url)
        if not url:
            return b""
        return self.client.get_bytes(url)

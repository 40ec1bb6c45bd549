"""Per-feed fetch task: discovery followed by image backfill."""

from __future__ import annotations

import logging
from typing import List, Optional

from .discovery import FeedDiscovery
from .http_client import HttpClient
from .images import ArticleImageResolver
from .models import FeedItem

logger = logging.getLogger(__name__)


class FeedFetcher:
    """Fetch one configured feed URL into display items."""

    def __init__(
        self, client: Optional[HttpClient] = None, resolve_images: bool = True
    ) -> None:
        client = client or HttpClient()
        self.discovery = FeedDiscovery(client)
        self.images = ArticleImageResolver(client)
        self.resolve_images = resolve_images

    def fetch(self, url: str) -> List[FeedItem]:
        items = self.discovery.fetch_feed(url)
        if not items:
            logger.info("No entries retrieved for feed %s", url)
            return []
        if self.resolve_images:
            items = self.images.backfill(items)
        return items

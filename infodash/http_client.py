"""Thin HTTP client used by every fetcher."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

import requests

from .sanitize import sanitize_utf8

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 30.0


@dataclass
class HttpResponse:
    """Outcome of a GET request; ``success`` covers transport and status."""

    status_code: int = 0
    body: str = ""
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    success: bool = False
    error: str = ""


def capture_headers(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Collect header pairs, trimming whitespace. Later duplicates win."""
    headers: Dict[str, str] = {}
    for key, value in pairs:
        key = key.strip()
        if not key:
            continue
        headers[key] = value.strip()
    return headers


def _header_pairs(response) -> Iterable[Tuple[str, str]]:
    raw_headers = getattr(getattr(response, "raw", None), "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "items"):
        return list(raw_headers.items())
    headers: Mapping[str, str] = getattr(response, "headers", None) or {}
    return list(headers.items())


class HttpClient:
    """GET-only client with a browser-like user agent and a fixed timeout."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self.session = session or requests.Session()

    def set_user_agent(self, user_agent: str) -> None:
        self.user_agent = user_agent

    def set_timeout(self, timeout: float) -> None:
        self.timeout = timeout

    def _request(self, url: str, params=None):
        return self.session.get(
            url,
            params=params,
            headers={
                "User-Agent": self.user_agent,
                "Accept-Encoding": "gzip, deflate",
            },
            timeout=self.timeout,
            allow_redirects=True,
        )

    def get(self, url: str, params=None) -> HttpResponse:
        """Fetch ``url``; transport errors are reported, never raised."""
        logger.debug("GET %s", url)
        try:
            response = self._request(url, params=params)
        except requests.RequestException as exc:
            logger.warning("Request to %s failed: %s", url, exc)
            return HttpResponse(error=str(exc) or exc.__class__.__name__)

        content = response.content or b""
        status = int(response.status_code)
        success = 200 <= status < 300
        if not success:
            logger.info("Request to %s returned HTTP %d", url, status)

        return HttpResponse(
            status_code=status,
            body=sanitize_utf8(content),
            content=content,
            headers=capture_headers(_header_pairs(response)),
            success=success,
            error="" if success else f"HTTP {status}",
        )

    def get_bytes(self, url: str) -> bytes:
        """Fetch a binary payload; empty bytes on any failure."""
        try:
            response = self._request(url)
        except requests.RequestException as exc:
            logger.warning("Binary request to %s failed: %s", url, exc)
            return b""
        if not 200 <= int(response.status_code) < 300:
            return b""
        return response.content or b""

    def get_async(
        self, url: str, callback: Callable[[HttpResponse], None]
    ) -> threading.Thread:
        """Run :meth:`get` on a background thread and pass the result on."""
        worker = threading.Thread(
            target=lambda: callback(self.get(url)),
            name=f"http-get-{url}",
            daemon=True,
        )
        worker.start()
        return worker

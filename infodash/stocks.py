"""Stock quotes scraped from a quote page that embeds JSON inside HTML.

The page has no stable schema, so extraction narrows the search step by
step and widens it again only when the narrow search finds nothing:

1. a region scoped to the requested symbol (``"symbol":"X"`` marker, the
   symbol used as an object key, or the root data object);
2. regular expressions for price, change, percent and name inside it;
3. a ``quoteData`` lookup and the page metadata for the name;
4. a page-wide proximity search that picks the match closest to the
   symbol, for pages carrying several quote objects;
5. the first match anywhere on the page.

Each layer lives in its own function so only the markers below need
touching when the provider changes its markup.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple
from urllib.parse import quote

from .http_client import HttpClient
from .markup import MarkupDocument, meta_content_xpath
from .models import StockQuote

logger = logging.getLogger(__name__)

QUOTE_URL = "https://finance.yahoo.com/quote/{symbol}"

SCOPE_LIMIT = 12000
ROOT_DATA_MARKER = "root.App.main"
QUOTE_DATA_MARKER = '"quoteData"'

PRICE_PATTERN = re.compile(r'"regularMarketPrice":\{"raw":([0-9.]+)')
CHANGE_PATTERN = re.compile(r'"regularMarketChange":\{"raw":(-?[0-9.]+)')
PERCENT_PATTERN = re.compile(r'"regularMarketChangePercent":\{"raw":(-?[0-9.]+)')
SHORT_NAME_PATTERN = re.compile(r'"shortName":"([^"]+)"')
LONG_NAME_PATTERN = re.compile(r'"longName":"([^"]+)"')


@dataclass
class QuoteFields:
    """Raw values found so far; empty strings mean not found yet."""

    price: str = ""
    change: str = ""
    change_percent: str = ""
    name: str = ""

    def to_quote(self, symbol: str) -> StockQuote:
        if not self.price:
            return StockQuote.sentinel(symbol)
        return StockQuote(
            symbol=symbol,
            price="$" + self.price,
            change=self.change,
            change_percent=self.change_percent + "%" if self.change_percent else "",
            is_up=not self.change.startswith("-"),
            name=self.name,
        )


def brace_scope(page: str, start: int) -> Optional[str]:
    """The ``{...}`` object opening at or after ``start``, capped in size."""
    open_pos = page.find("{", start)
    if open_pos == -1:
        return None
    depth = 0
    end = None
    for index in range(open_pos, len(page)):
        char = page[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = index + 1
                break
    if end is None:
        end = len(page)
    return page[open_pos : min(end, open_pos + SCOPE_LIMIT)]


def keyed_object_scope(page: str, key: str, start: int = 0) -> Optional[str]:
    """Object value of the quoted JSON ``key`` found at or after ``start``."""
    key_pos = page.find(key, start)
    if key_pos == -1:
        return None
    colon_pos = page.find(":", key_pos + len(key))
    if colon_pos == -1:
        return None
    return brace_scope(page, colon_pos)


def symbol_marker_scope(page: str, symbol: str) -> Optional[str]:
    """Slice starting at ``"symbol":"X"``."""
    pos = page.find(f'"symbol":"{symbol}"')
    if pos == -1:
        return None
    return page[pos : pos + SCOPE_LIMIT]


def quoted_key_scope(page: str, symbol: str) -> Optional[str]:
    """Object stored under the symbol used as a key, e.g. ``"X":{...}``."""
    return keyed_object_scope(page, f'"{symbol}"')


def root_object_scope(page: str) -> Optional[str]:
    pos = page.find(ROOT_DATA_MARKER)
    if pos == -1:
        return None
    return brace_scope(page, pos)


def locate_scope(page: str, symbol: str) -> Tuple[str, bool]:
    """Return the narrowest region believed to describe ``symbol``.

    The flag tells whether the region came from the symbol-keyed object.
    """
    scope = symbol_marker_scope(page, symbol)
    if scope is not None:
        return scope, False
    if f'"{symbol}"' in page:
        scope = quoted_key_scope(page, symbol)
        return (scope if scope is not None else page), True
    scope = root_object_scope(page)
    return (scope if scope is not None else page), False


def _search(pattern: Pattern[str], text: str) -> str:
    match = pattern.search(text)
    return match.group(1) if match else ""


def extract_name(text: str) -> str:
    return _search(SHORT_NAME_PATTERN, text) or _search(LONG_NAME_PATTERN, text)


def extract_fields(scope: str) -> QuoteFields:
    return QuoteFields(
        price=_search(PRICE_PATTERN, scope),
        change=_search(CHANGE_PATTERN, scope),
        change_percent=_search(PERCENT_PATTERN, scope),
        name=extract_name(scope),
    )


def quote_data_name(page: str, symbol: str) -> str:
    """Name from the symbol's object beneath the ``quoteData`` marker."""
    marker_pos = page.find(QUOTE_DATA_MARKER)
    if marker_pos == -1:
        return ""
    scope = keyed_object_scope(page, f'"{symbol}"', marker_pos)
    return extract_name(scope) if scope else ""


def _clean_title(title: str) -> str:
    title = title.strip()
    paren = title.find(" (")
    if paren != -1:
        title = title[:paren]
    dash = title.find(" - ")
    if dash != -1:
        title = title[:dash]
    return title.strip()


def metadata_name(page: str) -> str:
    """Company name from the Open Graph title or the ``<title>`` tag."""
    document = MarkupDocument.parse(page)
    if document is None:
        return ""
    title = document.query_attribute(
        meta_content_xpath("og:title"), "content"
    ) or document.query_text("//title")
    return _clean_title(title) if title else ""


def closest_match(page: str, pattern: Pattern[str], anchor: int) -> str:
    """Captured value of the match nearest to ``anchor``."""
    best_distance = None
    best_value = ""
    for match in pattern.finditer(page):
        distance = abs(match.start() - anchor)
        if best_distance is None or distance < best_distance:
            best_distance = distance
            best_value = match.group(1)
    return best_value


def proximity_fields(page: str, symbol: str, fields: QuoteFields) -> bool:
    """Fill ``fields`` from matches nearest the first quoted symbol.

    Returns ``False`` when the symbol does not appear on the page at all.
    """
    anchor = page.find(f'"{symbol}"')
    if anchor == -1:
        return False
    price = closest_match(page, PRICE_PATTERN, anchor)
    if price:
        fields.price = price
    change = closest_match(page, CHANGE_PATTERN, anchor)
    if change:
        fields.change = change
    percent = closest_match(page, PERCENT_PATTERN, anchor)
    if percent:
        fields.change_percent = percent
    if not fields.name:
        fields.name = closest_match(page, SHORT_NAME_PATTERN, anchor) or closest_match(
            page, LONG_NAME_PATTERN, anchor
        )
    return True


def first_match_fields(page: str, fields: QuoteFields) -> None:
    price = _search(PRICE_PATTERN, page)
    if price:
        fields.price = price
    change = _search(CHANGE_PATTERN, page)
    if change:
        fields.change = change
    percent = _search(PERCENT_PATTERN, page)
    if percent:
        fields.change_percent = percent


def scrape_quote(page: str, symbol: str) -> QuoteFields:
    """Run every extraction layer over a fetched quote page."""
    scope, used_quoted_key = locate_scope(page, symbol)
    fields = extract_fields(scope)

    if not fields.name and not used_quoted_key:
        fields.name = quote_data_name(page, symbol)
    if not fields.name:
        fields.name = metadata_name(page)

    if not fields.price:
        logger.debug("No scoped price for %s, trying proximity search", symbol)
        if not proximity_fields(page, symbol, fields):
            first_match_fields(page, fields)
    return fields


class StockScraper:
    def __init__(
        self, client: Optional[HttpClient] = None, quote_url: str = QUOTE_URL
    ) -> None:
        self.client = client or HttpClient()
        self.quote_url = quote_url

    def fetch_quote(self, symbol: str) -> StockQuote:
        """Quote for ``symbol``; the sentinel quote when scraping fails."""
        symbol = symbol.strip()
        url = self.quote_url.format(symbol=quote(symbol, safe=""))
        response = self.client.get(url)
        if not response.success:
            logger.warning("Quote page for %s unavailable: %s", symbol, response.error)
            return StockQuote.sentinel(symbol)

        try:
            fields = scrape_quote(response.body, symbol)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to scrape quote for %s", symbol)
            return StockQuote.sentinel(symbol)

        quote_result = fields.to_quote(symbol)
        logger.info("Quote %s: %s (%s)", symbol, quote_result.price, quote_result.change)
        return quote_result

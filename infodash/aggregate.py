"""Concurrent fan-out/fan-in over feeds, stock symbols and weather locations."""

from __future__ import annotations

import concurrent.futures
import dataclasses
import logging
import threading
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar

from .feeds import FeedFetcher
from .models import FeedItem, FeedSource, StockQuote, WeatherSnapshot
from .stocks import StockScraper
from .weather import WeatherService

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run_task(fetch_fn: Callable[[str], Iterable[T]], identifier: str) -> List[T]:
    try:
        return list(fetch_fn(identifier) or [])
    except Exception:
        logger.exception("Fetch task failed for %s", identifier)
        return []


def fetch_all(
    identifiers: Sequence[str],
    fetch_fn: Callable[[str], Iterable[T]],
    on_complete: Callable[[List[T]], None],
    sort_key: Optional[Callable[[T], Any]] = None,
    reverse: bool = False,
) -> "concurrent.futures.Future[List[T]]":
    """Run ``fetch_fn`` once per identifier and report the merged results.

    Every identifier gets its own worker. Results are merged on a single
    coordinating thread as tasks finish and ``on_complete`` is called exactly
    once, from that thread, after the last task has reported. A task that
    raises contributes nothing. With no identifiers ``on_complete([])`` runs
    immediately in the caller.

    The returned future resolves to the same list handed to ``on_complete``.
    """
    done: "concurrent.futures.Future[List[T]]" = concurrent.futures.Future()
    identifiers = list(identifiers)

    if not identifiers:
        on_complete([])
        done.set_result([])
        return done

    def coordinate() -> None:
        results: List[T] = []
        try:
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=len(identifiers), thread_name_prefix="infodash-fetch"
            ) as executor:
                future_to_identifier = {
                    executor.submit(_run_task, fetch_fn, identifier): identifier
                    for identifier in identifiers
                }
                for future in concurrent.futures.as_completed(future_to_identifier):
                    results.extend(future.result())

            if sort_key is not None:
                results.sort(key=sort_key, reverse=reverse)
            logger.info(
                "Aggregated %d results from %d sources", len(results), len(identifiers)
            )
            on_complete(results)
        except Exception as exc:
            logger.exception("Aggregation failed")
            done.set_exception(exc)
            return
        done.set_result(results)

    threading.Thread(target=coordinate, name="infodash-aggregate", daemon=True).start()
    return done


def fetch_all_feeds(
    sources: Iterable[FeedSource],
    fetcher: FeedFetcher,
    on_complete: Callable[[List[FeedItem]], None],
) -> "concurrent.futures.Future[List[FeedItem]]":
    """Fetch every enabled feed, newest first by raw published date.

    The sort compares the unparsed date strings, so feeds using different
    date formats do not interleave correctly.
    """
    enabled = [source for source in sources if source.enabled]
    names = {source.url: source.display_name for source in enabled}

    def fetch_source(url: str) -> List[FeedItem]:
        items = fetcher.fetch(url)
        display_name = names.get(url)
        if display_name:
            items = [dataclasses.replace(item, source_name=display_name) for item in items]
        return items

    return fetch_all(
        [source.url for source in enabled],
        fetch_source,
        on_complete,
        sort_key=lambda item: item.published_date,
        reverse=True,
    )


def fetch_all_stocks(
    symbols: Iterable[str],
    scraper: StockScraper,
    on_complete: Callable[[List[StockQuote]], None],
) -> "concurrent.futures.Future[List[StockQuote]]":
    return fetch_all(
        list(symbols), lambda symbol: [scraper.fetch_quote(symbol)], on_complete
    )


def fetch_all_weather(
    locations: Iterable[str],
    service: WeatherService,
    on_complete: Callable[[List[WeatherSnapshot]], None],
) -> "concurrent.futures.Future[List[WeatherSnapshot]]":
    return fetch_all(
        list(locations), lambda location: [service.fetch_weather(location)], on_complete
    )

"""Concurrent scraping of all venues, with deduplication and ordering."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

import requests

from .models import ScrapingSettings, TheaterEvent, TheaterVenue
from .scrapers.base import PageFetcher, ScrapeCancelled, VenueExtractor
from .scrapers.registry import select_extractor

logger = logging.getLogger(__name__)

FetcherFactory = Callable[[], PageFetcher]


def scrape_settings_kwargs(settings: ScrapingSettings) -> dict:
    """Map settings onto the keyword arguments of scrape_all."""
    return {
        "max_concurrent": settings.max_concurrent_scrapes,
        "timeout": settings.timeout_seconds,
        "retry_attempts": settings.retry_attempts,
        "request_delay": settings.request_delay,
    }


def deduplicate_events(events: Sequence[TheaterEvent]) -> List[TheaterEvent]:
    """Keep the first event for each ID, preserving order."""
    seen: Dict[str, TheaterEvent] = {}
    for event in events:
        if not event.id:
            event.generate_id()
        if event.id not in seen:
            seen[event.id] = event
    return list(seen.values())


def sort_events(events: Sequence[TheaterEvent]) -> List[TheaterEvent]:
    """Sort by start time; undated events go last in their existing order."""
    return sorted(events, key=lambda e: (e.start is None, e.start or datetime.min))


def scrape_venue(
    venue: TheaterVenue,
    fetcher: PageFetcher,
    extractors: Optional[Sequence[VenueExtractor]] = None,
) -> List[TheaterEvent]:
    """Scrape a single venue. Any failure is logged and yields no events."""
    try:
        logger.info(f"Scraping venue: {venue.name}")

        extractor = select_extractor(venue, extractors)
        if extractor is None:
            logger.warning(f"No suitable scraper found for venue: {venue.name}")
            return []

        logger.info(f"Using scraper: {extractor.name} for venue: {venue.name}")
        soup = fetcher.get_soup(venue.url)
        events = extractor.extract(venue, soup, fetcher)

        logger.info(f"Successfully scraped {len(events)} events from {venue.name}")
        return events
    except ScrapeCancelled:
        raise
    except requests.RequestException as e:
        logger.error(f"Could not fetch {venue.name} ({venue.url}): {e}")
        return []
    except Exception:
        logger.exception(f"Error scraping venue: {venue.name}")
        return []
    finally:
        venue.last_scraped = datetime.now(timezone.utc)


def scrape_all(
    venues: Sequence[TheaterVenue],
    *,
    max_concurrent: int = 5,
    timeout: float = 30,
    retry_attempts: int = 3,
    request_delay: float = 1.0,
    cancel_event: Optional[threading.Event] = None,
    extractors: Optional[Sequence[VenueExtractor]] = None,
    fetcher_factory: Optional[FetcherFactory] = None,
) -> List[TheaterEvent]:
    """Scrape every active venue and return deduplicated, ordered events.

    At most ``max_concurrent`` venues are scraped at once; each venue gets its
    own fetcher so workers share no state. Results are merged in venue order
    so deduplication is deterministic.

    Raises:
        ScrapeCancelled: if ``cancel_event`` is set before the run completes.
    """
    active = [v for v in venues if v.is_active]
    logger.info(f"Starting to scrape {len(active)} venues ({len(venues)} configured)")
    if not active:
        return []

    if fetcher_factory is None:
        def fetcher_factory() -> PageFetcher:
            return PageFetcher(
                timeout=timeout,
                retry_attempts=retry_attempts,
                request_delay=request_delay,
                cancel_event=cancel_event,
            )

    def run(venue: TheaterVenue) -> List[TheaterEvent]:
        if cancel_event is not None and cancel_event.is_set():
            raise ScrapeCancelled()
        fetcher = fetcher_factory()
        try:
            return scrape_venue(venue, fetcher, extractors)
        finally:
            fetcher.close()

    workers = max(1, min(max_concurrent, len(active)))
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="scrape")
    try:
        futures = [executor.submit(run, venue) for venue in active]
        results: List[List[TheaterEvent]] = []
        for future in futures:
            results.append(future.result())
    except ScrapeCancelled:
        logger.info("Scrape cancelled; abandoning remaining venues")
        executor.shutdown(wait=False, cancel_futures=True)
        raise
    finally:
        executor.shutdown(wait=True)

    if cancel_event is not None and cancel_event.is_set():
        raise ScrapeCancelled()

    all_events = [event for events in results for event in events]
    unique_events = sort_events(deduplicate_events(all_events))
    logger.info(
        f"Scraped {len(all_events)} total events, {len(unique_events)} unique events "
        f"from {len(active)} venues"
    )
    return unique_events


@dataclass
class VenueCheckResult:
    """Outcome of checking a single venue configuration."""

    venue_name: str
    reachable: bool
    extractor: Optional[str] = None
    event_count: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.reachable and self.extractor is not None and self.error is None


def check_venue(
    venue: TheaterVenue,
    fetcher: Optional[PageFetcher] = None,
    extractors: Optional[Sequence[VenueExtractor]] = None,
) -> VenueCheckResult:
    """Check that a venue's page loads and see how many events it yields."""
    logger.info(f"Testing venue: {venue.name} at {venue.url}")
    if fetcher is None:
        fetcher = PageFetcher(retry_attempts=1, request_delay=0)
        try:
            return check_venue(venue, fetcher, extractors)
        finally:
            fetcher.close()

    extractor = select_extractor(venue, extractors)
    try:
        soup = fetcher.get_soup(venue.url)
    except requests.RequestException as e:
        logger.warning(f"Venue {venue.name} is not reachable: {e}")
        return VenueCheckResult(
            venue_name=venue.name,
            reachable=False,
            extractor=extractor.name if extractor else None,
            error=str(e),
        )

    if extractor is None:
        return VenueCheckResult(venue_name=venue.name, reachable=True, error="no matching extractor")

    try:
        events = extractor.extract(venue, soup, fetcher)
    except Exception as e:
        logger.error(f"Test failed for venue: {venue.name}: {e}")
        return VenueCheckResult(venue_name=venue.name, reachable=True, extractor=extractor.name, error=str(e))

    logger.info(f"Test successful for {venue.name}, found {len(events)} events")
    return VenueCheckResult(
        venue_name=venue.name,
        reachable=True,
        extractor=extractor.name,
        event_count=len(events),
    )

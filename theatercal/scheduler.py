"""Unattended scrape loop and the one-shot scrape cycle it runs."""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .export.ics import build_calendar, save_calendar
from .export.json_export import save_snapshot, save_statistics
from .models import ScrapingSettings, TheaterEvent, TheaterVenue
from .scraping import FetcherFactory, scrape_all, scrape_settings_kwargs
from .scrapers.base import ScrapeCancelled, VenueExtractor

logger = logging.getLogger(__name__)

VenueLoader = Callable[[], Sequence[TheaterVenue]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


class ArtifactWriter:
    """Writes the calendar, JSON snapshot and statistics for a cycle.

    Each artifact is written independently; a failure is logged and does not
    stop the others.
    """

    def __init__(self, settings: ScrapingSettings):
        self.settings = settings
        self.output_dir = Path(settings.output_directory).resolve()

    def write(self, events: Sequence[TheaterEvent]) -> Dict[str, str]:
        """Returns the paths written, keyed by artifact. Never raises for I/O errors."""
        written: Dict[str, str] = {}

        try:
            cal = build_calendar(events, self.settings.calendar_title, self.settings.timezone)
            written["calendar"] = save_calendar(cal, self.output_dir / self.settings.calendar_file_name)
        except Exception:
            logger.exception(f"Error saving calendar to {self.output_dir}")

        try:
            written["snapshot"] = save_snapshot(events, self.output_dir / self.settings.snapshot_file_name)
        except Exception:
            logger.exception(f"Error saving events as JSON to {self.output_dir}")

        try:
            written["statistics"] = save_statistics(events, self.output_dir / self.settings.statistics_file_name)
        except Exception:
            logger.exception("Error generating statistics")

        logger.info(f"Wrote {len(written)} artifacts to {self.output_dir}")
        return written


def run_scraping_cycle(
    load_venues: VenueLoader,
    settings: ScrapingSettings,
    cancel_event: Optional[threading.Event] = None,
    writer: Optional[ArtifactWriter] = None,
    extractors: Optional[Sequence[VenueExtractor]] = None,
    fetcher_factory: Optional[FetcherFactory] = None,
) -> List[TheaterEvent]:
    """Run one full scrape and write artifacts. Also the manual/one-shot entry point.

    Returns the ordered, deduplicated events. No artifacts are written when
    nothing was found or when the cycle was cancelled.

    Raises:
        ScrapeCancelled: if ``cancel_event`` was set during the cycle.
    """
    logger.info("Starting scraping cycle")

    venues = list(load_venues())
    logger.info(f"Loaded {len(venues)} venues from configuration")

    events = scrape_all(
        venues,
        cancel_event=cancel_event,
        extractors=extractors,
        fetcher_factory=fetcher_factory,
        **scrape_settings_kwargs(settings),
    )
    logger.info(f"Scraped {len(events)} total events")

    if not events:
        logger.warning("No events found during scraping cycle")
        return events

    if cancel_event is not None and cancel_event.is_set():
        raise ScrapeCancelled()

    writer = writer or ArtifactWriter(settings)
    writer.write(events)
    return events


class ScheduledScraper:
    """Runs scrape cycles forever: Running -> Sleeping -> Running ...

    A successful (or empty) cycle is followed by the normal interval; an
    unexpected error by the shorter error backoff. ``stop()`` interrupts any
    sleep immediately and cancels an in-progress cycle before it writes
    anything.
    """

    def __init__(
        self,
        load_venues: VenueLoader,
        settings: ScrapingSettings,
        writer: Optional[ArtifactWriter] = None,
        extractors: Optional[Sequence[VenueExtractor]] = None,
        fetcher_factory: Optional[FetcherFactory] = None,
    ):
        self.load_venues = load_venues
        self.settings = settings
        self.writer = writer
        self.extractors = extractors
        self.fetcher_factory = fetcher_factory
        self.state = SchedulerState.IDLE
        self.cycles_completed = 0
        self.cycles_failed = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> List[TheaterEvent]:
        return run_scraping_cycle(
            self.load_venues,
            self.settings,
            cancel_event=self._stop_event,
            writer=self.writer,
            extractors=self.extractors,
            fetcher_factory=self.fetcher_factory,
        )

    def run_forever(self):
        """Loop until stop() is called. Blocks the calling thread."""
        logger.info("Scheduled scraping service started")
        try:
            while not self._stop_event.is_set():
                self.state = SchedulerState.RUNNING
                try:
                    self.run_once()
                    self.cycles_completed += 1
                    delay = self.settings.scrape_interval_seconds
                    logger.info(f"Scraping cycle completed. Next cycle in {delay / 3600:g} hours.")
                except ScrapeCancelled:
                    logger.info("Scheduled scraping service was cancelled")
                    break
                except Exception:
                    self.cycles_failed += 1
                    delay = self.settings.error_backoff_seconds
                    logger.exception(f"Error in scheduled scraping service; retrying in {delay / 60:g} minutes")

                if self._sleep(delay):
                    break
        finally:
            self.state = SchedulerState.STOPPED
            logger.info("Scheduled scraping service stopped")

    def _sleep(self, seconds: float) -> bool:
        """Wait between cycles; returns True if stop() was called meanwhile."""
        self.state = SchedulerState.SLEEPING
        return self._stop_event.wait(seconds)

    def start(self) -> threading.Thread:
        """Run the loop on a background daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._thread = threading.Thread(target=self.run_forever, name="scheduled-scraper", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self):
        logger.info("Stopping scheduled scraping service")
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)

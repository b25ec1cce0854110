"""Shared fixtures and fakes for the test suite."""

import threading
import time
from datetime import datetime

import pytest
from bs4 import BeautifulSoup

from theatercal.models import ScrapingSettings, TheaterEvent, TheaterVenue
from theatercal.scrapers.base import finalize_event


def make_event(title, venue_name="Test Venue", start=None, **kwargs):
    return finalize_event(TheaterEvent(title=title, venue_name=venue_name, start=start, **kwargs))


class StubExtractor:
    """Returns a fixed number of dated events per venue name."""

    name = "Stub"

    def __init__(self, counts=None):
        self.counts = counts or {}

    def matches(self, venue):
        return True

    def extract(self, venue, soup, fetcher=None):
        return [
            make_event(f"{venue.name} show {i}", venue.name, datetime(2025, 3, i + 1, 19, 30))
            for i in range(self.counts.get(venue.name, 1))
        ]


class ConcurrencyTracker:
    def __init__(self):
        self.lock = threading.Lock()
        self.active = 0
        self.max_active = 0

    def enter(self):
        with self.lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)

    def exit(self):
        with self.lock:
            self.active -= 1


class FakeFetcher:
    """Stands in for PageFetcher: optional per-URL errors, fixed delay, no network."""

    def __init__(self, errors=None, delay=0.0, tracker=None):
        self.errors = errors or {}
        self.delay = delay
        self.tracker = tracker
        self.closed = False

    def get_soup(self, url):
        if self.tracker is not None:
            self.tracker.enter()
        try:
            if self.delay:
                time.sleep(self.delay)
            if url in self.errors:
                raise self.errors[url]
            return BeautifulSoup("<html><body></body></html>", "lxml")
        finally:
            if self.tracker is not None:
                self.tracker.exit()

    def close(self):
        self.closed = True


@pytest.fixture
def settings(tmp_path):
    return ScrapingSettings(
        request_delay_ms=0,
        retry_attempts=1,
        timeout_seconds=5,
        output_directory=str(tmp_path / "output"),
    )


@pytest.fixture
def venues():
    return [
        TheaterVenue(name="Venue A", url="https://a.example.org/events"),
        TheaterVenue(name="Venue B", url="https://b.example.org/events"),
        TheaterVenue(name="Venue C", url="https://c.example.org/events"),
    ]

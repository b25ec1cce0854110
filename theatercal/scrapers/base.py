"""Shared extraction toolkit and page fetching used by every extractor."""

import html
import logging
import re
import threading
import time
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Protocol
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup, NavigableString, Tag
from dateutil import parser as dateparser
import pytz

from ..models import DEFAULT_CATEGORY, DEFAULT_TIMEZONE, TheaterEvent, TheaterVenue

logger = logging.getLogger(__name__)

# Common user agent to avoid being blocked
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

# Tried in order before falling back to dateutil
DATETIME_FORMATS = [
    "%Y-%m-%d %H:%M",      # 2025-03-03 19:30
    "%Y-%m-%d %I:%M %p",   # 2025-03-03 7:30 PM
    "%m/%d/%Y %H:%M",      # 03/03/2025 19:30
    "%m/%d/%Y %I:%M %p",   # 03/03/2025 7:30 PM
    "%b %d, %Y %H:%M",     # Mar 3, 2025 19:30
    "%b %d, %Y %I:%M %p",  # Mar 3, 2025 7:30 PM
    "%B %d, %Y %H:%M",     # March 3, 2025 19:30
    "%B %d, %Y %I:%M %p",  # March 3, 2025 7:30 PM
    "%d %b %Y %H:%M",      # 3 Mar 2025 19:30
    "%d %b %Y %I:%M %p",   # 3 Mar 2025 7:30 PM
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
]

_WHITESPACE_RE = re.compile(r"\s+")
_PRICE_RE = re.compile(r"\d+(?:,\d+)*(?:\.\d+)?")

# Two defaults that differ in every date field; parts that change between
# them were not present in the text.
_DATE_CHECK_DEFAULTS = (datetime(2000, 1, 1), datetime(2004, 2, 2))


class ScrapeCancelled(Exception):
    """Raised when a scrape is interrupted by the cancellation event."""


class VenueExtractor(Protocol):
    """Anything that can turn a venue's listing page into events."""

    name: str

    def matches(self, venue: TheaterVenue) -> bool:
        ...

    def extract(
        self,
        venue: TheaterVenue,
        soup: BeautifulSoup,
        fetcher: Optional["PageFetcher"] = None,
    ) -> List[TheaterEvent]:
        ...


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def clean_text(raw: Optional[str]) -> str:
    """Decode HTML entities, collapse whitespace and trim."""
    if not raw:
        return ""
    text = html.unescape(raw)
    return _WHITESPACE_RE.sub(" ", text).strip()


def _parse_with_dateutil(text: str) -> Optional[datetime]:
    """Generic fallback. Requires an actual month and day in the text.

    A missing year is taken as the current year. Text with only a time or a
    weekday is rejected rather than being pinned to today.
    """
    first, second = (dateparser.parse(text, default=d) for d in _DATE_CHECK_DEFAULTS)
    if (first.month, first.day) != (second.month, second.day):
        return None
    return dateparser.parse(text, default=datetime(datetime.now().year, 1, 1))


def parse_datetime(
    text: Optional[str],
    time_text: Optional[str] = None,
    tz_name: str = DEFAULT_TIMEZONE,
) -> Optional[datetime]:
    """Parse a date (and optional separate time) string into a naive datetime.

    Explicit formats are tried first, then dateutil's generic parser. Input
    carrying a UTC offset is converted to ``tz_name`` so the result is always
    venue-local wall time. Returns None when nothing parses.
    """
    text = clean_text(text)
    if not text:
        return None

    time_text = clean_text(time_text)
    if time_text:
        text = f"{text} {time_text}"

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    try:
        parsed = _parse_with_dateutil(text)
    except (ValueError, OverflowError, TypeError) as e:
        logger.debug(f"dateutil could not parse {text!r}: {e}")
        parsed = None

    if parsed is None:
        logger.warning(f"Could not parse date/time: {text}")
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(pytz.timezone(tz_name)).replace(tzinfo=None)
    return parsed


def parse_price(text: Optional[str]) -> Optional[Decimal]:
    """Return the first number in text (e.g. '$1,250.00' -> 1250.00)."""
    if not text:
        return None
    match = _PRICE_RE.search(text)
    if not match:
        return None
    try:
        return Decimal(match.group().replace(",", ""))
    except InvalidOperation:
        return None


def resolve_url(base: str, relative: Optional[str]) -> str:
    """Convert a relative URL to absolute; returns the input if that fails."""
    if not relative:
        return ""
    relative = relative.strip()
    parsed = urlparse(relative)
    if parsed.scheme and parsed.netloc:
        return relative
    if not base:
        return relative
    try:
        return urljoin(base, relative)
    except ValueError:
        return relative


def is_absolute_url(url: Optional[str]) -> bool:
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


# ---------------------------------------------------------------------------
# Selector cascades
# ---------------------------------------------------------------------------


def select_first(node: Tag, selectors: Iterable[str]) -> Optional[Tag]:
    """Return the first element matched by the first selector that matches anything."""
    for selector in selectors:
        found = node.select_one(selector)
        if found is not None:
            return found
    return None


def select_all_first(node: Tag, selectors: Iterable[str]) -> List[Tag]:
    """Return all elements for the first selector that yields any."""
    for selector in selectors:
        found = node.select(selector)
        if found:
            return found
    return []


def find_text_containing(node: Tag, needle: str) -> Optional[Tag]:
    """Return the element whose own text contains needle (like XPath contains(text(), ...))."""
    for string in node.find_all(string=lambda s: isinstance(s, NavigableString) and needle in s):
        parent = string.parent
        if isinstance(parent, Tag) and parent.name not in ("script", "style"):
            return parent
    return None


def node_text(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return clean_text(node.get_text(" "))


def parse_node_datetime(
    node: Tag,
    time_text: Optional[str] = None,
    tz_name: str = DEFAULT_TIMEZONE,
) -> Optional[datetime]:
    """Parse a date element: its text first, then its datetime/content attributes."""
    candidates = [node_text(node), node.get("datetime"), node.get("content")]
    for candidate in candidates:
        if not candidate:
            continue
        if time_text:
            parsed = parse_datetime(candidate, time_text, tz_name)
            if parsed is not None:
                return parsed
        parsed = parse_datetime(candidate, tz_name=tz_name)
        if parsed is not None:
            return parsed
    return None


def finalize_event(event: TheaterEvent) -> Optional[TheaterEvent]:
    """Apply the rules every produced event must satisfy.

    Cleans the title, drops untitled events, seeds a default category and
    computes the ID.
    """
    event.title = clean_text(event.title)
    if not event.title:
        return None
    if not event.categories:
        event.add_category(DEFAULT_CATEGORY)
    event.generate_id()
    return event


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


def _wait(cancel_event: Optional[threading.Event], seconds: float):
    """Sleep for seconds unless cancelled; raises ScrapeCancelled if cancelled."""
    if cancel_event is None:
        if seconds > 0:
            time.sleep(seconds)
        return
    if seconds > 0:
        cancelled = cancel_event.wait(seconds)
    else:
        cancelled = cancel_event.is_set()
    if cancelled:
        raise ScrapeCancelled()


def fetch_with_retry(
    url: str,
    *,
    timeout: float = 30,
    retry_attempts: int = 3,
    request_delay: float = 1.0,
    session: Optional[requests.Session] = None,
    cancel_event: Optional[threading.Event] = None,
    headers: Optional[dict] = None,
) -> requests.Response:
    """Fetch a URL with a politeness delay before each attempt and retries."""
    request_headers = dict(DEFAULT_HEADERS)
    if headers:
        request_headers.update(headers)
    http = session or requests

    attempts = max(1, retry_attempts)
    last_exception: Optional[requests.RequestException] = None
    for attempt in range(attempts):
        _wait(cancel_event, request_delay)
        try:
            response = http.get(url, headers=request_headers, timeout=timeout)
            response.raise_for_status()
            return response
        except requests.RequestException as e:
            last_exception = e
            if attempt < attempts - 1:
                logger.warning(f"Request failed for {url} (attempt {attempt + 1}/{attempts}), retrying: {e}")

    logger.error(f"Giving up on {url} after {attempts} attempts: {last_exception}")
    raise last_exception


class PageFetcher:
    """Fetches pages for one scrape cycle with shared session and cancellation."""

    def __init__(
        self,
        timeout: float = 30,
        retry_attempts: int = 3,
        request_delay: float = 1.0,
        cancel_event: Optional[threading.Event] = None,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.request_delay = request_delay
        self.cancel_event = cancel_event
        self.session = session or requests.Session()

    def fetch(self, url: str) -> bytes:
        """Return the raw body; the parser decodes it using the page's declared charset."""
        logger.info(f"Loading HTML from: {url}")
        response = fetch_with_retry(
            url,
            timeout=self.timeout,
            retry_attempts=self.retry_attempts,
            request_delay=self.request_delay,
            session=self.session,
            cancel_event=self.cancel_event,
        )
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ScrapeCancelled()
        return response.content

    def get_soup(self, url: str) -> BeautifulSoup:
        """Fetch a URL and return a BeautifulSoup object."""
        return BeautifulSoup(self.fetch(url), "lxml")

    def close(self):
        self.session.close()

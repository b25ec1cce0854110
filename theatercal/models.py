"""Data models for theater venues and events."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
import hashlib

DEFAULT_CATEGORY = "Theater"
DEFAULT_TIMEZONE = "America/Chicago"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_event_id(title: str, venue_name: str, start: Optional[datetime]) -> str:
    """Generate a stable ID from title, venue and start time (to the minute)."""
    start_key = start.strftime("%Y-%m-%d-%H-%M") if start else "undated"
    key = f"{title}|{venue_name}|{start_key}"
    return hashlib.md5(key.encode("utf-8")).hexdigest()[:16]


@dataclass
class TheaterVenue:
    """A venue to scrape, as described by configuration."""

    name: str
    url: str
    address: str = ""
    scraper_type: str = ""  # extractor selector tag, e.g. "kauffman", "generic"
    scraper_config: Dict[str, str] = field(default_factory=dict)
    is_active: bool = True
    timezone: str = DEFAULT_TIMEZONE  # zone of listed times, for offset-bearing input
    last_scraped: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TheaterVenue":
        """Build a venue from a config mapping (snake_case or camelCase keys)."""
        def pick(*keys, default=None):
            for key in keys:
                if key in data:
                    return data[key]
            return default

        name = pick("name")
        url = pick("url")
        if not name or not url:
            raise ValueError(f"Venue entries need both 'name' and 'url': {data!r}")

        scraper_config = pick("scraper_config", "scraperConfig", default={}) or {}
        return cls(
            name=str(name),
            url=str(url),
            address=str(pick("address", default="") or ""),
            scraper_type=str(pick("scraper_type", "scraperType", default="") or ""),
            scraper_config={str(k): str(v) for k, v in scraper_config.items()},
            is_active=bool(pick("is_active", "isActive", "enabled", default=True)),
            timezone=str(pick("timezone", default=DEFAULT_TIMEZONE) or DEFAULT_TIMEZONE),
        )


@dataclass
class TheaterEvent:
    """A single normalized event produced by an extractor."""

    title: str
    venue_name: str
    venue_address: str = ""
    start: Optional[datetime] = None  # venue-local wall time; None = undated
    end: Optional[datetime] = None
    description: str = ""
    event_url: str = ""
    ticket_url: str = ""
    price: Optional[Decimal] = None
    price_range: str = ""
    image_url: str = ""
    categories: List[str] = field(default_factory=list)
    source: str = ""
    last_updated: datetime = field(default_factory=_utcnow)
    id: str = ""

    @property
    def is_dated(self) -> bool:
        return self.start is not None

    def add_category(self, category: str):
        """Add a category tag, ignoring blanks and duplicates."""
        category = category.strip()
        if category and category not in self.categories:
            self.categories.append(category)

    def generate_id(self) -> str:
        self.id = make_event_id(self.title, self.venue_name, self.start)
        return self.id

    def to_dict(self) -> dict:
        """Convert to the JSON snapshot representation (lowerCamelCase keys)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "venueName": self.venue_name,
            "venueAddress": self.venue_address,
            "startDateTime": self.start.isoformat() if self.start else None,
            "endDateTime": self.end.isoformat() if self.end else None,
            "eventUrl": self.event_url,
            "ticketUrl": self.ticket_url,
            "price": float(self.price) if self.price is not None else None,
            "priceRange": self.price_range,
            "categories": list(self.categories),
            "imageUrl": self.image_url,
            "source": self.source,
            "lastUpdated": self.last_updated.isoformat(),
        }

    def __str__(self) -> str:
        when = self.start.strftime("%a %b %d %I:%M %p") if self.start else "undated"
        return f"{self.title} @ {self.venue_name} - {when}"


@dataclass
class ScrapingSettings:
    """Configuration for scrape cycles and artifact output."""

    # Request settings
    max_concurrent_scrapes: int = 5
    request_delay_ms: int = 1000
    timeout_seconds: int = 30
    retry_attempts: int = 3

    # Output settings
    output_directory: str = "./output"
    calendar_file_name: str = "kc-theater-events.ics"
    snapshot_file_name: str = "kc-theater-events.json"
    statistics_file_name: str = "scraping-statistics.json"
    calendar_title: str = "Kansas City Theater Events"
    timezone: str = DEFAULT_TIMEZONE

    # Schedule settings
    scrape_interval_hours: float = 6
    error_backoff_minutes: float = 30

    @property
    def request_delay(self) -> float:
        """Politeness delay in seconds."""
        return self.request_delay_ms / 1000.0

    @property
    def scrape_interval_seconds(self) -> float:
        return self.scrape_interval_hours * 3600

    @property
    def error_backoff_seconds(self) -> float:
        return self.error_backoff_minutes * 60

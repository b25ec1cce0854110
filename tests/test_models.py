from datetime import datetime
from decimal import Decimal

import pytest

from theatercal.models import ScrapingSettings, TheaterEvent, TheaterVenue, make_event_id


def test_event_id_is_deterministic():
    start = datetime(2025, 3, 3, 19, 30)
    first = TheaterEvent(title="Hamlet", venue_name="KC Rep", start=start)
    second = TheaterEvent(title="Hamlet", venue_name="KC Rep", start=start, description="different")
    assert first.generate_id() == second.generate_id()
    assert len(first.id) == 16


def test_event_id_ignores_seconds():
    a = make_event_id("Hamlet", "KC Rep", datetime(2025, 3, 3, 19, 30, 0))
    b = make_event_id("Hamlet", "KC Rep", datetime(2025, 3, 3, 19, 30, 45))
    assert a == b


@pytest.mark.parametrize(
    "title, venue, start",
    [
        ("Macbeth", "KC Rep", datetime(2025, 3, 3, 19, 30)),
        ("Hamlet", "Kauffman Center", datetime(2025, 3, 3, 19, 30)),
        ("Hamlet", "KC Rep", datetime(2025, 3, 3, 20, 0)),
        ("Hamlet", "KC Rep", None),
    ],
)
def test_event_id_changes_with_key(title, venue, start):
    base = make_event_id("Hamlet", "KC Rep", datetime(2025, 3, 3, 19, 30))
    assert make_event_id(title, venue, start) != base


def test_add_category_ignores_duplicates_and_blanks():
    event = TheaterEvent(title="Hamlet", venue_name="KC Rep")
    event.add_category("Theater")
    event.add_category("Theater")
    event.add_category("  ")
    event.add_category("Drama")
    assert event.categories == ["Theater", "Drama"]


def test_to_dict_uses_camel_case_and_nulls():
    event = TheaterEvent(
        title="Hamlet",
        venue_name="KC Rep",
        start=datetime(2025, 3, 3, 19, 30),
        price=Decimal("45.50"),
        price_range="$45.50 - $120",
    )
    event.generate_id()
    data = event.to_dict()
    assert data["venueName"] == "KC Rep"
    assert data["startDateTime"] == "2025-03-03T19:30:00"
    assert data["endDateTime"] is None
    assert data["price"] == 45.5
    assert data["priceRange"] == "$45.50 - $120"
    assert data["id"] == event.id


def test_undated_event_serializes_null_start():
    event = TheaterEvent(title="Hamlet", venue_name="KC Rep")
    assert not event.is_dated
    assert event.to_dict()["startDateTime"] is None
    assert event.to_dict()["price"] is None


def test_venue_from_dict_accepts_camel_case():
    venue = TheaterVenue.from_dict({
        "name": "KC Rep",
        "url": "https://kcrep.org",
        "scraperType": "kcrep",
        "scraperConfig": {"enrich": False},
        "isActive": False,
    })
    assert venue.scraper_type == "kcrep"
    assert venue.scraper_config == {"enrich": "False"}
    assert venue.is_active is False
    assert venue.last_scraped is None


def test_venue_from_dict_requires_name_and_url():
    with pytest.raises(ValueError):
        TheaterVenue.from_dict({"name": "No URL"})


def test_settings_unit_conversions():
    settings = ScrapingSettings(request_delay_ms=1500, scrape_interval_hours=2, error_backoff_minutes=15)
    assert settings.request_delay == 1.5
    assert settings.scrape_interval_seconds == 7200
    assert settings.error_backoff_seconds == 900

"""Export events to .ics calendar format."""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Optional

from icalendar import Calendar, Event, vText
import pytz

from ..models import DEFAULT_TIMEZONE, TheaterEvent
from ..scrapers.base import is_absolute_url

logger = logging.getLogger(__name__)

PRODUCT_ID = "-//TheaterCal//EN"
CALENDAR_DESCRIPTION = "Theater events in the Kansas City metro area"
DEFAULT_DURATION = timedelta(hours=2)


def _localize(dt: datetime, tz) -> datetime:
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)


def build_description(event: TheaterEvent) -> str:
    """Description text: free-text description, then one line per detail."""
    lines = []
    if event.description:
        lines.append(event.description)
        lines.append("")
    if event.price_range:
        lines.append(f"Price: {event.price_range}")
    if event.event_url:
        lines.append(f"More info: {event.event_url}")
    if event.ticket_url:
        lines.append(f"Tickets: {event.ticket_url}")
    if event.source:
        lines.append(f"Source: {event.source}")
    return "\n".join(lines).strip("\n")


def create_calendar_event(event: TheaterEvent, tz=None) -> Optional[Event]:
    """Create an iCalendar event from a TheaterEvent; None when it has no start."""
    if event.start is None:
        logger.debug(f"Skipping event without date: {event.title}")
        return None

    tz = tz or pytz.timezone(DEFAULT_TIMEZONE)
    if not event.id:
        event.generate_id()

    cal_event = Event()
    cal_event.add("uid", event.id)
    cal_event.add("summary", event.title)

    if event.venue_address:
        cal_event.add("location", vText(f"{event.venue_name}, {event.venue_address}"))
    else:
        cal_event.add("location", vText(event.venue_name))

    start_dt = _localize(event.start, tz)
    cal_event.add("dtstart", start_dt)
    if event.end is not None:
        cal_event.add("dtend", _localize(event.end, tz))
    else:
        cal_event.add("dtend", start_dt + DEFAULT_DURATION)

    description = build_description(event)
    if description:
        cal_event.add("description", description)

    if event.categories:
        cal_event.add("categories", list(event.categories))

    if is_absolute_url(event.event_url):
        cal_event.add("url", event.event_url)

    cal_event.add("dtstamp", datetime.now(pytz.UTC))
    cal_event.add("created", event.last_updated)
    cal_event.add("last-modified", event.last_updated)

    return cal_event


def build_calendar(
    events: Iterable[TheaterEvent],
    calendar_title: str,
    tz_name: str = DEFAULT_TIMEZONE,
) -> Calendar:
    """Build a calendar with one component per dated event."""
    tz = pytz.timezone(tz_name)

    cal = Calendar()
    cal.add("prodid", PRODUCT_ID)
    cal.add("version", "2.0")
    cal.add("calscale", "GREGORIAN")
    cal.add("method", "PUBLISH")
    cal.add("x-wr-calname", calendar_title)
    cal.add("x-wr-caldesc", CALENDAR_DESCRIPTION)
    cal.add("x-wr-timezone", tz_name)

    added = 0
    for event in events:
        try:
            cal_event = create_calendar_event(event, tz)
        except Exception as e:
            logger.warning(f"Could not create calendar event for: {event.title}: {e}")
            continue
        if cal_event is not None:
            cal.add_component(cal_event)
            added += 1

    logger.info(f"Created calendar '{calendar_title}' with {added} events")
    return cal


def calendar_to_ical(cal: Calendar) -> bytes:
    return cal.to_ical()


def save_calendar(cal: Calendar, filepath) -> str:
    """Write a calendar to an .ics file and return its absolute path."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "wb") as f:
        f.write(calendar_to_ical(cal))

    logger.info(f"Calendar saved to: {path}")
    return str(path.absolute())

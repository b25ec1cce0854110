"""Fallback extractor that tries common event markup on any theater site."""

import json
import logging
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup, Tag

from ..models import TheaterEvent, TheaterVenue
from .base import (
    PageFetcher,
    ScrapeCancelled,
    clean_text,
    finalize_event,
    node_text,
    parse_datetime,
    parse_node_datetime,
    parse_price,
    resolve_url,
)
from .site_extractor import apply_price

logger = logging.getLogger(__name__)

EVENT_SELECTORS = [
    "div[class*=event]",
    "div[class*=show]",
    "div[class*=performance]",
    "div[class*=production]",
    "article[class*=event]",
    "li[class*=event]",
    '[itemtype="http://schema.org/Event"]',
    '[itemtype="https://schema.org/Event"]',
    "div[class*=calendar-event]",
]

TITLE_SELECTORS = [
    "h1", "h2", "h3", "h4",
    "[class*=title]",
    "[class*=name]",
    "[itemprop=name]",
    "a:not([class*=btn])",
]

DATE_SELECTORS = [
    "[class*=date]",
    "[class*=time]",
    "[class*=when]",
    "[itemprop=startDate]",
    "[datetime]",
]

DESCRIPTION_SELECTORS = [
    "[class*=description]",
    "[class*=summary]",
    "[itemprop=description]",
    "p:not([class*=date]):not([class*=time])",
]

MIN_TITLE_LENGTH = 4
MIN_DESCRIPTION_LENGTH = 11


class GenericTheaterExtractor:
    """Best-effort extractor for venues without a dedicated strategy."""

    name = "Generic Theater Scraper"

    def matches(self, venue: TheaterVenue) -> bool:
        scraper_type = (venue.scraper_type or "").strip().lower()
        return scraper_type in ("", "generic")

    def extract(
        self,
        venue: TheaterVenue,
        soup: BeautifulSoup,
        fetcher: Optional[PageFetcher] = None,
    ) -> List[TheaterEvent]:
        logger.info(f"Attempting generic scraping for {venue.name}")

        nodes: List[Tag] = []
        for selector in EVENT_SELECTORS:
            nodes = soup.select(selector)
            if nodes:
                logger.info(f"Found {len(nodes)} events using selector: {selector}")
                break

        events: List[TheaterEvent] = []
        if nodes:
            for node in nodes:
                try:
                    event = self._extract_from_node(node, venue)
                except ScrapeCancelled:
                    raise
                except Exception as e:
                    logger.warning(f"Error parsing event node with generic scraper: {e}")
                    continue
                if event is not None:
                    events.append(event)
        else:
            events = self._extract_from_json_ld(soup, venue)
            if not events:
                logger.warning(f"No events found using generic selectors for {venue.name}")

        logger.info(f"Generic scraper found {len(events)} events from {venue.name}")
        return events

    def _extract_from_node(self, node: Tag, venue: TheaterVenue) -> Optional[TheaterEvent]:
        title = ""
        title_node = None
        for selector in TITLE_SELECTORS:
            candidate = node.select_one(selector)
            if candidate is None:
                continue
            text = node_text(candidate)
            if len(text) >= MIN_TITLE_LENGTH:
                title, title_node = text, candidate
                break

        if not title:
            return None

        event = TheaterEvent(
            title=title,
            venue_name=venue.name,
            venue_address=venue.address,
            source=self.name,
        )

        for selector in DATE_SELECTORS:
            date_node = node.select_one(selector)
            if date_node is None:
                continue
            start = parse_node_datetime(date_node, tz_name=venue.timezone)
            if start is not None:
                event.start = start
                break

        link_node = node.select_one("a[href]")
        if link_node is None:
            link_node = title_node.find_parent("a", href=True)
        if link_node is not None:
            event.event_url = resolve_url(venue.url, link_node.get("href"))

        for selector in DESCRIPTION_SELECTORS:
            description_node = node.select_one(selector)
            if description_node is None:
                continue
            description = node_text(description_node)
            if len(description) >= MIN_DESCRIPTION_LENGTH:
                event.description = description
                break

        apply_price(event, node, ())

        image_node = node.select_one("img[src]")
        if image_node is not None:
            event.image_url = resolve_url(venue.url, image_node["src"])

        return finalize_event(event)

    def _extract_from_json_ld(self, soup: BeautifulSoup, venue: TheaterVenue) -> List[TheaterEvent]:
        """Read schema.org Event objects from JSON-LD script blocks."""
        events = []
        for item in _json_ld_events(soup):
            try:
                event = self._event_from_json_ld(item, venue)
            except Exception as e:
                logger.warning(f"Skipping malformed JSON-LD event for {venue.name}: {e}")
                continue
            if event is not None:
                events.append(event)
        if events:
            logger.info(f"Found {len(events)} JSON-LD events for {venue.name}")
        return events

    def _event_from_json_ld(self, data: dict, venue: TheaterVenue) -> Optional[TheaterEvent]:
        title = clean_text(str(data.get("name") or ""))
        if len(title) < MIN_TITLE_LENGTH:
            return None

        event = TheaterEvent(
            title=title,
            venue_name=venue.name,
            venue_address=venue.address,
            source=self.name,
            start=parse_datetime(data.get("startDate"), tz_name=venue.timezone),
            end=parse_datetime(data.get("endDate"), tz_name=venue.timezone),
            description=clean_text(str(data.get("description") or "")),
            event_url=resolve_url(venue.url, data.get("url")),
        )

        image = data.get("image")
        if isinstance(image, list):
            image = image[0] if image else None
        if isinstance(image, dict):
            image = image.get("url")
        if isinstance(image, str):
            event.image_url = resolve_url(venue.url, image)

        offers = data.get("offers")
        if isinstance(offers, list):
            offers = offers[0] if offers else None
        if isinstance(offers, dict):
            low = offers.get("lowPrice", offers.get("price"))
            high = offers.get("highPrice")
            if low not in (None, ""):
                event.price = parse_price(str(low))
                event.price_range = f"${low}" if not high or high == low else f"${low} - ${high}"
            if offers.get("url"):
                event.ticket_url = resolve_url(venue.url, offers["url"])

        return finalize_event(event)


def _json_ld_events(soup: BeautifulSoup) -> Iterator[dict]:
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except (json.JSONDecodeError, TypeError):
            continue
        yield from _walk_json_ld(data)


def _walk_json_ld(data) -> Iterator[dict]:
    if isinstance(data, list):
        for item in data:
            yield from _walk_json_ld(item)
    elif isinstance(data, dict):
        if "@graph" in data:
            yield from _walk_json_ld(data["@graph"])
            return
        types = data.get("@type")
        if isinstance(types, str):
            types = [types]
        if types and any(str(t).endswith("Event") for t in types):
            yield data

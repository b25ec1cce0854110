"""Selector-driven extractor used for venue-specific strategies."""

import logging
from dataclasses import dataclass, fields, replace
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from ..models import DEFAULT_CATEGORY, TheaterEvent, TheaterVenue
from .base import (
    PageFetcher,
    ScrapeCancelled,
    clean_text,
    finalize_event,
    find_text_containing,
    node_text,
    parse_node_datetime,
    parse_price,
    resolve_url,
    select_all_first,
    select_first,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SiteSelectors:
    """Ordered CSS selector cascades, one per field. The first selector that matches wins."""

    containers: Tuple[str, ...] = ()
    title: Tuple[str, ...] = ()
    date: Tuple[str, ...] = ()
    time: Tuple[str, ...] = ()
    link: Tuple[str, ...] = ("a[href]",)
    description: Tuple[str, ...] = ()
    price: Tuple[str, ...] = ()
    image: Tuple[str, ...] = ()
    ticket: Tuple[str, ...] = ()

    def with_overrides(self, config: Dict[str, str]) -> "SiteSelectors":
        """Prepend venue-configured selectors (comma-separated) to each cascade."""
        changes = {}
        for f in fields(self):
            extra = config.get(f.name)
            if not extra:
                continue
            extra_selectors = tuple(s.strip() for s in extra.split(",") if s.strip())
            changes[f.name] = extra_selectors + getattr(self, f.name)
        return replace(self, **changes) if changes else self


@dataclass
class SiteExtractor:
    """Extracts events from a known venue site using a fixed set of selectors.

    With ``multiple_showtimes`` every parseable date node inside a container
    becomes its own event (same title and URL, different start). When
    ``detail_selectors`` is set and a fetcher is available, each production's
    detail page is fetched once to fill in description, tickets, price and
    image.
    """

    name: str
    selectors: SiteSelectors
    detail_selectors: Optional[SiteSelectors] = None
    tags: Tuple[str, ...] = ()
    domains: Tuple[str, ...] = ()
    name_fragments: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = (DEFAULT_CATEGORY,)
    multiple_showtimes: bool = False

    def matches(self, venue: TheaterVenue) -> bool:
        if venue.scraper_type and venue.scraper_type.lower() in self.tags:
            return True
        url = venue.url.lower()
        if any(domain in url for domain in self.domains):
            return True
        return any(fragment in venue.name for fragment in self.name_fragments)

    def extract(
        self,
        venue: TheaterVenue,
        soup: BeautifulSoup,
        fetcher: Optional[PageFetcher] = None,
    ) -> List[TheaterEvent]:
        logger.info(f"Scraping events from {venue.name}")
        selectors = self.selectors.with_overrides(venue.scraper_config)
        enrich = (
            fetcher is not None
            and self.detail_selectors is not None
            and venue.scraper_config.get("enrich", "true").lower() != "false"
        )

        containers = select_all_first(soup, selectors.containers)
        if not containers:
            logger.warning(f"No event containers found for {venue.name}")
            return []

        events: List[TheaterEvent] = []
        detail_cache: Dict[str, Optional[dict]] = {}
        for node in containers:
            try:
                events.extend(self._extract_container(
                    node, venue, selectors, fetcher if enrich else None, detail_cache
                ))
            except ScrapeCancelled:
                raise
            except Exception as e:
                logger.warning(f"Error parsing event node for {venue.name}: {e}")

        logger.info(f"Found {len(events)} events from {venue.name}")
        return events

    def _extract_container(
        self,
        node: Tag,
        venue: TheaterVenue,
        selectors: SiteSelectors,
        fetcher: Optional[PageFetcher],
        detail_cache: Dict[str, Optional[dict]],
    ) -> List[TheaterEvent]:
        title_node = select_first(node, selectors.title)
        if title_node is None:
            return []

        link_node = select_first(node, selectors.link)
        base = TheaterEvent(
            title=node_text(title_node),
            venue_name=venue.name,
            venue_address=venue.address,
            source=self.name,
            event_url=resolve_url(venue.url, link_node.get("href")) if link_node else "",
        )

        description_node = select_first(node, selectors.description)
        if description_node is not None:
            base.description = node_text(description_node)

        apply_price(base, node, selectors.price)

        image_node = select_first(node, selectors.image)
        if image_node is not None and image_node.get("src"):
            base.image_url = resolve_url(venue.url, image_node["src"])

        time_node = select_first(node, selectors.time)
        time_text = node_text(time_node) or None

        if self.multiple_showtimes:
            date_nodes = select_all_first(node, selectors.date)
        else:
            date_node = select_first(node, selectors.date)
            date_nodes = [date_node] if date_node is not None else []

        starts = []
        for date_node in date_nodes:
            start = parse_node_datetime(date_node, time_text, venue.timezone)
            if start is not None and start not in starts:
                starts.append(start)

        if fetcher is not None and base.event_url:
            self._enrich(base, fetcher, detail_cache)

        produced = []
        for start in starts or [None]:
            event = replace(base, start=start, categories=list(base.categories))
            for category in self.categories:
                event.add_category(category)
            event = finalize_event(event)
            if event is not None:
                produced.append(event)
        return produced

    def _enrich(self, event: TheaterEvent, fetcher: PageFetcher, cache: Dict[str, Optional[dict]]):
        """Fill in details from the event's own page; failures are only logged."""
        url = event.event_url
        if url not in cache:
            try:
                cache[url] = self._parse_detail(fetcher.get_soup(url), url)
            except ScrapeCancelled:
                raise
            except Exception as e:
                logger.warning(f"Could not enrich details for event: {event.title}: {e}")
                cache[url] = None

        detail = cache[url]
        if not detail:
            return
        for key, value in detail.items():
            if value not in (None, ""):
                setattr(event, key, value)

    def _parse_detail(self, soup: BeautifulSoup, url: str) -> dict:
        selectors = self.detail_selectors
        detail: dict = {}

        description_node = select_first(soup, selectors.description)
        if description_node is not None:
            detail["description"] = node_text(description_node)

        ticket_node = select_first(soup, selectors.ticket)
        if ticket_node is not None and ticket_node.get("href"):
            detail["ticket_url"] = resolve_url(url, ticket_node["href"])

        price_holder = TheaterEvent(title="", venue_name="")
        if apply_price(price_holder, soup, selectors.price):
            detail["price"] = price_holder.price
            detail["price_range"] = price_holder.price_range

        image_node = select_first(soup, selectors.image)
        if image_node is not None and image_node.get("src"):
            detail["image_url"] = resolve_url(url, image_node["src"])

        return detail


def apply_price(event: TheaterEvent, node: Tag, selectors: Tuple[str, ...]) -> bool:
    """Set price and price range from the first price-looking element.

    Falls back to any text containing a dollar sign.
    """
    price_node = select_first(node, selectors) or find_text_containing(node, "$")
    if price_node is None:
        return False
    text = node_text(price_node)
    if not text:
        return False
    event.price = parse_price(text)
    event.price_range = clean_text(text)
    return True

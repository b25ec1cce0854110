"""Extractors for theater venue websites."""

from .base import (
    PageFetcher,
    ScrapeCancelled,
    VenueExtractor,
    clean_text,
    fetch_with_retry,
    parse_datetime,
    parse_price,
    resolve_url,
)
from .generic import GenericTheaterExtractor
from .kauffman import KAUFFMAN_CENTER
from .kcrep import KC_REP
from .registry import EXTRACTORS, get_extractor_names, select_extractor
from .site_extractor import SiteExtractor, SiteSelectors

__all__ = [
    "PageFetcher",
    "ScrapeCancelled",
    "VenueExtractor",
    "clean_text",
    "fetch_with_retry",
    "parse_datetime",
    "parse_price",
    "resolve_url",
    "GenericTheaterExtractor",
    "KAUFFMAN_CENTER",
    "KC_REP",
    "EXTRACTORS",
    "get_extractor_names",
    "select_extractor",
    "SiteExtractor",
    "SiteSelectors",
]

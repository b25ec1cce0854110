"""Ordered extractor registry.

Venue-specific extractors come first; the generic extractor is the fallback
and must stay last.
"""

import logging
from typing import List, Optional, Sequence

from ..models import TheaterVenue
from .base import VenueExtractor
from .generic import GenericTheaterExtractor
from .kauffman import KAUFFMAN_CENTER
from .kcrep import KC_REP

logger = logging.getLogger(__name__)

EXTRACTORS: Sequence[VenueExtractor] = (
    KAUFFMAN_CENTER,
    KC_REP,
    GenericTheaterExtractor(),
)


def select_extractor(
    venue: TheaterVenue,
    extractors: Optional[Sequence[VenueExtractor]] = None,
) -> Optional[VenueExtractor]:
    """Return the first extractor that can handle the venue, or None."""
    for extractor in EXTRACTORS if extractors is None else extractors:
        if extractor.matches(venue):
            logger.debug(f"Matched {venue.name} to {extractor.name}")
            return extractor
    return None


def get_extractor_names() -> List[str]:
    return [extractor.name for extractor in EXTRACTORS]

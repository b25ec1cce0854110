"""JSON snapshot and statistics output."""

import json
import logging
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from ..models import TheaterEvent

logger = logging.getLogger(__name__)


def events_to_json(events: Sequence[TheaterEvent]) -> str:
    return json.dumps([event.to_dict() for event in events], indent=2, ensure_ascii=False)


def build_statistics(events: Sequence[TheaterEvent], now: Optional[datetime] = None) -> dict:
    """Summarize a scrape: counts per venue and month, date range, categories."""
    dated = [e.start for e in events if e.start is not None]

    by_venue = Counter(e.venue_name for e in events)
    by_month = Counter(e.start.strftime("%Y-%m") for e in events if e.start is not None)

    categories = []
    for event in events:
        for category in event.categories:
            if category not in categories:
                categories.append(category)

    return {
        "totalEvents": len(events),
        "venueCount": len(by_venue),
        "dateRange": {
            "earliest": min(dated).isoformat() if dated else None,
            "latest": max(dated).isoformat() if dated else None,
        },
        "eventsByVenue": [
            {"venue": venue, "count": count}
            for venue, count in sorted(by_venue.items(), key=lambda item: (-item[1], item[0]))
        ],
        "eventsByMonth": [
            {"month": month, "count": count}
            for month, count in sorted(by_month.items())
        ],
        "categories": categories,
        "lastUpdated": (now or datetime.now(timezone.utc)).isoformat(),
    }


def _write_json(text: str, filepath) -> str:
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return str(path.absolute())


def save_snapshot(events: Sequence[TheaterEvent], filepath) -> str:
    """Write all events (dated or not) as a pretty-printed JSON array."""
    path = _write_json(events_to_json(events), filepath)
    logger.info(f"Events saved as JSON to: {path}")
    return path


def save_statistics(events: Sequence[TheaterEvent], filepath, now: Optional[datetime] = None) -> str:
    path = _write_json(json.dumps(build_statistics(events, now), indent=2, ensure_ascii=False), filepath)
    logger.info(f"Statistics saved to: {path}")
    return path

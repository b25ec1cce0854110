import json
from datetime import datetime, timezone

from conftest import make_event
from theatercal.export.json_export import build_statistics, save_snapshot, save_statistics


def events():
    return [
        make_event("Hamlet", "KC Rep", datetime(2025, 3, 3, 19, 30), categories=["Theater", "Drama"]),
        make_event("Macbeth", "KC Rep", datetime(2025, 4, 1, 19, 30)),
        make_event("Nutcracker", "Kauffman", datetime(2025, 12, 12, 19, 0), categories=["Performing Arts"]),
        make_event("Season Announcement", "Coterie"),
    ]


def test_statistics():
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    stats = build_statistics(events(), now=now)

    assert stats["totalEvents"] == 4
    assert stats["venueCount"] == 3
    assert stats["dateRange"] == {"earliest": "2025-03-03T19:30:00", "latest": "2025-12-12T19:00:00"}
    assert stats["eventsByVenue"] == [
        {"venue": "KC Rep", "count": 2},
        {"venue": "Coterie", "count": 1},
        {"venue": "Kauffman", "count": 1},
    ]
    assert stats["eventsByMonth"] == [
        {"month": "2025-03", "count": 1},
        {"month": "2025-04", "count": 1},
        {"month": "2025-12", "count": 1},
    ]
    assert stats["categories"] == ["Theater", "Drama", "Performing Arts"]
    assert stats["lastUpdated"] == now.isoformat()


def test_statistics_without_dated_events():
    stats = build_statistics([make_event("Season Announcement", "Coterie")])
    assert stats["dateRange"] == {"earliest": None, "latest": None}
    assert stats["eventsByMonth"] == []


def test_snapshot_includes_undated_events(tmp_path):
    path = save_snapshot(events(), tmp_path / "snapshot.json")
    data = json.loads(open(path, encoding="utf-8").read())

    assert len(data) == 4
    assert data[0]["title"] == "Hamlet"
    assert data[3]["startDateTime"] is None
    assert set(data[0]) >= {"id", "venueName", "startDateTime", "ticketUrl", "priceRange", "lastUpdated"}


def test_save_statistics_writes_json(tmp_path):
    path = save_statistics(events(), tmp_path / "nested" / "stats.json")
    assert json.loads(open(path, encoding="utf-8").read())["totalEvents"] == 4

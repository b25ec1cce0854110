import json
import time
from pathlib import Path

from conftest import FakeFetcher, StubExtractor
from theatercal.scheduler import ArtifactWriter, ScheduledScraper, SchedulerState, run_scraping_cycle


def output_files(settings):
    out = Path(settings.output_directory)
    return {
        "calendar": out / settings.calendar_file_name,
        "snapshot": out / settings.snapshot_file_name,
        "statistics": out / settings.statistics_file_name,
    }


def test_cycle_writes_all_artifacts(settings, venues):
    events = run_scraping_cycle(
        lambda: venues,
        settings,
        extractors=[StubExtractor({"Venue B": 2})],
        fetcher_factory=FakeFetcher,
    )

    assert len(events) == 4
    files = output_files(settings)
    assert all(path.exists() for path in files.values())
    assert len(json.loads(files["snapshot"].read_text(encoding="utf-8"))) == 4
    assert json.loads(files["statistics"].read_text(encoding="utf-8"))["venueCount"] == 3
    assert files["calendar"].read_bytes().count(b"BEGIN:VEVENT") == 4


def test_empty_cycle_writes_nothing(settings, venues):
    events = run_scraping_cycle(
        lambda: venues,
        settings,
        extractors=[StubExtractor({v.name: 0 for v in venues})],
        fetcher_factory=FakeFetcher,
    )
    assert events == []
    assert not Path(settings.output_directory).exists()


def test_writer_failure_does_not_stop_other_artifacts(settings, venues):
    # A directory where the calendar file should go makes that write fail.
    writer = ArtifactWriter(settings)
    (writer.output_dir / settings.calendar_file_name).mkdir(parents=True)

    written = writer.write(StubExtractor().extract(venues[0], None))

    assert set(written) == {"snapshot", "statistics"}


def test_successful_cycle_sleeps_full_interval(settings, venues):
    scraper = ScheduledScraper(lambda: venues, settings, extractors=[StubExtractor()], fetcher_factory=FakeFetcher)
    delays = []

    def fake_sleep(seconds):
        delays.append(seconds)
        scraper.stop()
        return True

    scraper._sleep = fake_sleep
    scraper.run_forever()

    assert delays == [settings.scrape_interval_seconds]
    assert scraper.cycles_completed == 1
    assert scraper.state == SchedulerState.STOPPED


def test_failed_cycle_uses_error_backoff(settings):
    def broken_loader():
        raise RuntimeError("config unreadable")

    scraper = ScheduledScraper(broken_loader, settings)
    delays = []

    def fake_sleep(seconds):
        delays.append(seconds)
        return len(delays) >= 2

    scraper._sleep = fake_sleep
    scraper.run_forever()

    assert delays == [settings.error_backoff_seconds] * 2
    assert scraper.cycles_failed == 2
    assert scraper.cycles_completed == 0


def test_stop_interrupts_sleep(settings, venues):
    settings.scrape_interval_hours = 1
    scraper = ScheduledScraper(lambda: venues, settings, extractors=[StubExtractor()], fetcher_factory=FakeFetcher)

    thread = scraper.start()
    deadline = time.monotonic() + 5
    while scraper.state != SchedulerState.SLEEPING and time.monotonic() < deadline:
        time.sleep(0.01)
    assert scraper.state == SchedulerState.SLEEPING

    scraper.stop()
    scraper.join(timeout=2)
    assert not thread.is_alive()
    assert scraper.state == SchedulerState.STOPPED


def test_cancel_during_cycle_writes_no_artifacts(settings, venues):
    scraper = None

    def loader():
        scraper.stop()
        return venues

    scraper = ScheduledScraper(loader, settings, extractors=[StubExtractor()], fetcher_factory=FakeFetcher)
    scraper.run_forever()

    assert scraper.cycles_completed == 0
    assert scraper.state == SchedulerState.STOPPED
    assert not Path(settings.output_directory).exists()


def test_unwritable_output_directory_is_logged_not_raised(settings, venues, tmp_path, caplog):
    blocked = tmp_path / "blocked"
    blocked.write_text("not a directory", encoding="utf-8")
    settings.output_directory = str(blocked)

    assert ArtifactWriter(settings).write(StubExtractor().extract(venues[0], None)) == {}
    assert "Error saving calendar" in caplog.text

    events = run_scraping_cycle(lambda: venues, settings, extractors=[StubExtractor()], fetcher_factory=FakeFetcher)
    assert len(events) == 3


def test_write_failure_still_counts_as_completed_cycle(settings, venues, tmp_path):
    blocked = tmp_path / "blocked"
    blocked.write_text("not a directory", encoding="utf-8")
    settings.output_directory = str(blocked)
    scraper = ScheduledScraper(lambda: venues, settings, extractors=[StubExtractor()], fetcher_factory=FakeFetcher)
    delays = []

    def fake_sleep(seconds):
        delays.append(seconds)
        return True

    scraper._sleep = fake_sleep
    scraper.run_forever()

    assert scraper.cycles_completed == 1
    assert scraper.cycles_failed == 0
    assert delays == [settings.scrape_interval_seconds]

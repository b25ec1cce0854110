#!/usr/bin/env python3
"""Main entry point for TheaterCal."""

import logging
import argparse
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from theatercal.config import ConfigError, get_settings, get_venues, load, load_venues
from theatercal.scheduler import ScheduledScraper, SchedulerState, run_scraping_cycle
from theatercal.scrapers import ScrapeCancelled, select_extractor
from theatercal.scraping import check_venue

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("theatercal")


def configure_logging(verbose=False, log_dir=None):
    """Console logging, plus a daily rotating file under log_dir if given."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        handler = TimedRotatingFileHandler(
            Path(log_dir) / "theatercal.log", when="midnight", backupCount=14, encoding="utf-8"
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(handler)


def cmd_run(cfg, config_path):
    """Run a single scrape cycle and write the output files."""
    settings = get_settings(cfg)
    events = run_scraping_cycle(lambda: load_venues(config_path), settings)
    print(f"\nScraped {len(events)} events. Output written to {Path(settings.output_directory).resolve()}")
    return 0


def cmd_schedule(cfg, config_path):
    """Scrape on an interval until interrupted."""
    settings = get_settings(cfg)
    scraper = ScheduledScraper(lambda: load_venues(config_path), settings)

    print(f"\n{'='*60}")
    print("TheaterCal scheduled scraping")
    print(f"{'='*60}")
    print(f"Interval: every {settings.scrape_interval_hours:g} hours")
    print(f"Output directory: {Path(settings.output_directory).resolve()}")
    print("Press Ctrl+C to stop")
    print(f"{'='*60}\n")

    scraper.start()
    try:
        # join with a timeout so Ctrl+C is delivered to the main thread
        while scraper.state != SchedulerState.STOPPED:
            scraper.join(timeout=1)
    except KeyboardInterrupt:
        scraper.stop()
        scraper.join()
    return 0


def cmd_list(cfg, config_path):
    """List configured venues and the extractor each one would use."""
    venues = get_venues(cfg, include_inactive=True)
    if not venues:
        print("No venues configured.")
        return 0

    print(f"\n{'Venue':<40} {'Active':<8} Extractor")
    print("-" * 72)
    for venue in venues:
        extractor = select_extractor(venue)
        print(f"{venue.name:<40} {'yes' if venue.is_active else 'no':<8} {extractor.name if extractor else '-'}")
    return 0


def cmd_test(cfg, config_path):
    """Fetch each active venue once and report how many events it yields."""
    failures = 0
    for venue in get_venues(cfg):
        result = check_venue(venue)
        if result.success:
            print(f"OK    {venue.name}: {result.event_count} events ({result.extractor})")
        else:
            failures += 1
            print(f"FAIL  {venue.name}: {result.error}")
    return 1 if failures else 0


COMMANDS = {
    "run": cmd_run,
    "schedule": cmd_schedule,
    "list": cmd_list,
    "test": cmd_test,
}


def main(argv=None):
    """Run TheaterCal."""
    parser = argparse.ArgumentParser(description="TheaterCal - Scrape Kansas City theater events and export to calendar")
    parser.add_argument(
        "command",
        nargs="?",
        choices=sorted(COMMANDS),
        default="schedule",
        help="What to do (default: schedule)"
    )
    parser.add_argument(
        "--config",
        default="config.toml",
        help="Path to the TOML config file (default: config.toml)"
    )
    parser.add_argument(
        "--log-dir",
        default=None,
        help="Also write daily rotating log files to this directory"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.log_dir)

    try:
        cfg = load(Path(args.config))
        return COMMANDS[args.command](cfg, Path(args.config))
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except (KeyboardInterrupt, ScrapeCancelled):
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())

"""TheaterCal: scrape Kansas City theater listings into a calendar feed."""

__version__ = "0.1.0"

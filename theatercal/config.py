"""Load scraping settings and venue definitions from a TOML file."""

import logging
import tomllib
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List

import pytz

from .models import DEFAULT_TIMEZONE, ScrapingSettings, TheaterVenue

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.toml")


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""


def load(path: Path = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Read the raw config mapping from TOML."""
    path = Path(path)
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def _check_type(name: str, value: Any, expected: type):
    if isinstance(value, bool):
        ok = expected is bool
    elif expected is float:
        ok = isinstance(value, (int, float))
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise ConfigError(f"{name} must be {expected.__name__}, got {value!r}")


def _check_timezone(name: str, value: str):
    try:
        pytz.timezone(value)
    except pytz.UnknownTimeZoneError as e:
        raise ConfigError(f"{name} is not a known timezone: {value!r}") from e


def get_settings(cfg: Dict[str, Any]) -> ScrapingSettings:
    """Map the [scraping] table onto ScrapingSettings; unknown keys are ignored."""
    section = cfg.get("scraping", {})
    if not isinstance(section, dict):
        raise ConfigError("[scraping] must be a table")

    known = {f.name: f.type for f in fields(ScrapingSettings)}
    unknown = sorted(set(section) - set(known))
    if unknown:
        logger.warning(f"Ignoring unknown scraping settings: {', '.join(unknown)}")

    values = {k: v for k, v in section.items() if k in known}
    for name, value in values.items():
        _check_type(name, value, known[name])

    settings = ScrapingSettings(**values)
    if settings.max_concurrent_scrapes < 1:
        raise ConfigError("max_concurrent_scrapes must be at least 1")
    if settings.retry_attempts < 1:
        raise ConfigError("retry_attempts must be at least 1")
    _check_timezone("timezone", settings.timezone)
    return settings


def get_venues(cfg: Dict[str, Any], include_inactive: bool = False) -> List[TheaterVenue]:
    """Build venues from the [[venues]] array, filtering to active ones by default.

    Venues without their own ``timezone`` use the one from [scraping].
    """
    entries = cfg.get("venues", [])
    if not isinstance(entries, list):
        raise ConfigError("venues must be an array of tables ([[venues]])")

    scraping = cfg.get("scraping", {})
    default_tz = scraping.get("timezone", DEFAULT_TIMEZONE) if isinstance(scraping, dict) else DEFAULT_TIMEZONE

    venues = []
    for entry in entries:
        try:
            venue = TheaterVenue.from_dict({"timezone": default_tz, **entry})
        except (ValueError, AttributeError, TypeError) as e:
            raise ConfigError(f"Invalid venue entry: {e}") from e
        _check_timezone(f"timezone for {venue.name}", venue.timezone)
        venues.append(venue)

    if include_inactive:
        return venues
    return [v for v in venues if v.is_active]


def load_venues(path: Path = DEFAULT_CONFIG_PATH) -> List[TheaterVenue]:
    """Re-read the config file and return the active venues."""
    return get_venues(load(path))

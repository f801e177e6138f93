"""Episode metadata normalization and assembly."""

from __future__ import annotations

import logging
import re
from email.utils import parsedate_to_datetime
from html import unescape
from html.parser import HTMLParser
from typing import List, Optional

from . import config_constants, models

logger = logging.getLogger(__name__)

# Time conversion constants
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600
MILLISECONDS_PER_SECOND = 1000

_LEADING_DIGITS = re.compile(r"\s*(\d+)")


def format_duration(raw: Optional[str]) -> str:
    """Format a feed duration for display.

    Values that already contain ``:`` are returned unchanged. A plain number of
    seconds becomes ``H:MM:SS`` (or ``M:SS`` under an hour). Anything else is
    returned as given, and a missing value becomes ``Unknown``.

    Example:
        >>> format_duration("3725")
        '1:02:05'
        >>> format_duration("59")
        '0:59'
    """
    if raw is None:
        return config_constants.UNKNOWN_VALUE
    value = str(raw).strip()
    if not value or value == config_constants.UNKNOWN_VALUE:
        return config_constants.UNKNOWN_VALUE
    if ":" in value:
        return value

    match = _LEADING_DIGITS.match(value)
    if not match:
        return value
    seconds = int(match.group(1))
    hours = seconds // SECONDS_PER_HOUR
    minutes = (seconds % SECONDS_PER_HOUR) // SECONDS_PER_MINUTE
    secs = seconds % SECONDS_PER_MINUTE
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_milliseconds(duration_ms: Optional[int]) -> str:
    """Format a millisecond duration as zero-padded ``HH:MM:SS``."""
    if duration_ms is None or duration_ms < 0:
        return config_constants.UNKNOWN_VALUE
    total = int(duration_ms) // MILLISECONDS_PER_SECOND
    hours = total // SECONDS_PER_HOUR
    minutes = (total % SECONDS_PER_HOUR) // SECONDS_PER_MINUTE
    secs = total % SECONDS_PER_MINUTE
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def normalize_release_date(raw: Optional[str]) -> Optional[str]:
    """Return an RFC 2822 date as ISO 8601; other non-empty values pass through."""
    if not raw or not raw.strip():
        return None
    value = raw.strip()
    try:
        return parsedate_to_datetime(value).isoformat()
    except (TypeError, ValueError, IndexError):
        logger.debug("Keeping unparseable release date %r", value)
        return value


class _HTMLStripper(HTMLParser):
    """HTML tag stripper that keeps a space between text runs."""

    def __init__(self) -> None:
        super().__init__()
        self.text_parts: List[str] = []

    def handle_data(self, data: str) -> None:
        if data.strip():
            self.text_parts.append(data.strip())

    def get_text(self) -> str:
        return " ".join(self.text_parts)


def clean_description(text: Optional[str]) -> str:
    """Strip HTML tags and entities from a show-notes description."""
    if not text:
        return ""
    stripper = _HTMLStripper()
    stripper.feed(unescape(text))
    stripper.close()
    return re.sub(r"\s+", " ", stripper.get_text()).strip()


def resolve_podcast_name(
    podcast: Optional[models.CatalogEntry], feed_title: Optional[str] = None
) -> str:
    """Pick the podcast display name: catalog name, then feed title, then Unknown."""
    if podcast is not None and podcast.display_name:
        return podcast.display_name
    if feed_title and feed_title.strip():
        return feed_title.strip()
    return config_constants.UNKNOWN_VALUE


def build_episode_metadata(
    item: models.FeedItem,
    episode_id: Optional[str],
    podcast: Optional[models.CatalogEntry] = None,
    feed_title: Optional[str] = None,
) -> models.EpisodeMetadata:
    """Assemble display metadata for a matched feed item."""
    return models.EpisodeMetadata(
        episode_id=episode_id or config_constants.MISSING_EPISODE_ID,
        title=item.title or config_constants.UNKNOWN_EPISODE_TITLE,
        podcast_name=resolve_podcast_name(podcast, feed_title),
        duration=format_duration(item.duration_raw),
        release_date=normalize_release_date(item.pub_date),
        description=clean_description(item.description),
    )

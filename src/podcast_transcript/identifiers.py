"""Episode URL validation and identifier extraction."""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional
from urllib.parse import parse_qs, urlparse

from . import config_constants, models
from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)

_PODCAST_ID_PATTERN = re.compile(r"id(\d+)")
_EPISODE_QUERY_PARAM = "i"


def is_allowed_host(hostname: str, allowed_hosts: Iterable[str]) -> bool:
    """Return True when hostname equals, or is a subdomain of, an allowed host."""
    host = hostname.lower().rstrip(".")
    for allowed in allowed_hosts:
        allowed = allowed.lower().strip()
        if host == allowed or host.endswith("." + allowed):
            return True
    return False


def extract_podcast_id(url: str) -> Optional[str]:
    """Extract the numeric podcast id from the ``id<digits>`` path marker."""
    path = urlparse(url).path
    match = _PODCAST_ID_PATTERN.search(path)
    return match.group(1) if match else None


def extract_episode_id(url: str) -> Optional[str]:
    """Extract the numeric episode id from the ``i`` query parameter."""
    values = parse_qs(urlparse(url).query).get(_EPISODE_QUERY_PARAM, [])
    for value in values:
        value = value.strip()
        if value.isdigit() and value.isascii():
            return value
    return None


def parse_episode_reference(
    url: str,
    allowed_hosts: Iterable[str] = config_constants.DEFAULT_ALLOWED_HOSTS,
) -> models.EpisodeReference:
    """Validate an episode URL and extract its identifiers.

    Args:
        url: Absolute podcast or episode URL from a supported catalog
        allowed_hosts: Hosts accepted as catalog URLs

    Returns:
        EpisodeReference with at least one identifier set

    Raises:
        InvalidInputError: If the URL is empty, not http/https, on an unsupported
            host, or carries neither a podcast nor an episode identifier
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidInputError("Please enter a podcast URL")

    url = url.strip()
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise InvalidInputError("Please enter a valid URL")
    if parsed.scheme.lower() not in config_constants.ALLOWED_URL_SCHEMES:
        raise InvalidInputError("Invalid URL protocol. Only http and https are allowed.")

    hostname = parsed.hostname or ""
    if not is_allowed_host(hostname, allowed_hosts):
        raise InvalidInputError(
            "Please enter a valid Apple Podcasts URL",
            hint=f"Supported hosts: {', '.join(allowed_hosts)}",
        )

    podcast_id = extract_podcast_id(url)
    episode_id = extract_episode_id(url)
    logger.debug("Extracted identifiers podcast=%s episode=%s", podcast_id, episode_id)

    if not podcast_id and not episode_id:
        raise InvalidInputError(
            "Could not extract podcast or episode ID from URL.",
            hint="Make sure you copied the complete URL.",
        )

    return models.EpisodeReference(
        source_url=url,
        podcast_id=podcast_id,
        episode_id=episode_id,
    )

"""Match a catalog episode to an item of its podcast's RSS feed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, List, Optional, Sequence, Tuple

from . import models
from .exceptions import EpisodeNotFoundError

logger = logging.getLogger(__name__)


class MatchTier(IntEnum):
    """Heuristics used to pick the feed item, strongest first."""

    LATEST = 0
    AUDIO_URL = 1
    GUID = 2
    ENCLOSURE_URL = 3
    EPISODE_NUMBER = 4
    LINK = 5


@dataclass(frozen=True)
class FeedItemMatch:
    item: models.FeedItem
    tier: MatchTier
    index: int


def strip_query(url: str) -> str:
    """Return url without its query string."""
    return url.split("?", 1)[0]


def _tier_predicates(
    episode_id: str, episode_audio_url: Optional[str]
) -> List[Tuple[MatchTier, Callable[[models.FeedItem], bool]]]:
    predicates: List[Tuple[MatchTier, Callable[[models.FeedItem], bool]]] = []
    if episode_audio_url:
        target = strip_query(episode_audio_url)
        predicates.append(
            (
                MatchTier.AUDIO_URL,
                lambda item: bool(item.enclosure_url) and strip_query(item.enclosure_url) == target,
            )
        )
    predicates.extend(
        [
            (MatchTier.GUID, lambda item: episode_id in item.guid),
            (MatchTier.ENCLOSURE_URL, lambda item: episode_id in item.enclosure_url),
            (MatchTier.EPISODE_NUMBER, lambda item: episode_id in item.episode_number),
            (MatchTier.LINK, lambda item: episode_id in item.link),
        ]
    )
    return predicates


def match_feed_item(
    items: Sequence[models.FeedItem],
    episode_id: Optional[str],
    episode_audio_url: Optional[str] = None,
) -> Optional[FeedItemMatch]:
    """Find the feed item for an episode.

    Without an episode id the first item (the latest episode) is returned.
    Otherwise tiers are tried in order and each tier scans the whole feed, so a
    stronger tier always beats a weaker one; within a tier the earliest item wins.

    Args:
        items: Feed items in feed order
        episode_id: Numeric episode identifier, if known
        episode_audio_url: Audio URL reported by the catalog, if known

    Returns:
        The match, or None when nothing matched
    """
    if not items:
        return None
    if not episode_id:
        return FeedItemMatch(item=items[0], tier=MatchTier.LATEST, index=0)

    for tier, predicate in _tier_predicates(episode_id, episode_audio_url):
        for index, item in enumerate(items):
            if predicate(item):
                return FeedItemMatch(item=item, tier=tier, index=index)
    return None


def select_feed_item(
    items: Sequence[models.FeedItem],
    episode_id: Optional[str],
    episode_audio_url: Optional[str] = None,
) -> models.FeedItem:
    """Return the matching feed item or fail.

    Raises:
        EpisodeNotFoundError: If nothing matched
    """
    match = match_feed_item(items, episode_id, episode_audio_url)
    if match is None:
        logger.warning("Episode %s not found among %s feed item(s)", episode_id, len(items))
        raise EpisodeNotFoundError(episode_id or "", len(items))
    logger.info(
        "Matched feed item %s (%r) by %s",
        match.index,
        match.item.title,
        match.tier.name.lower(),
    )
    return match.item

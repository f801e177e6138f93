"""Podcast catalog lookup: feed locations and episode audio URLs."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional
from urllib.parse import urlencode

from . import config, config_constants, downloader, models
from .exceptions import LookupFailedError, ResolutionError

logger = logging.getLogger(__name__)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_catalog_entry(raw: Mapping[str, Any]) -> models.CatalogEntry:
    """Convert one raw lookup result into a CatalogEntry."""
    return models.CatalogEntry(
        kind=_optional_str(raw.get("kind")),
        wrapper_type=_optional_str(raw.get("wrapperType")),
        collection_id=_optional_str(raw.get("collectionId")),
        collection_name=_optional_str(raw.get("collectionName")),
        track_id=_optional_str(raw.get("trackId")),
        track_name=_optional_str(raw.get("trackName")),
        feed_url=_optional_str(raw.get("feedUrl")),
        episode_url=_optional_str(raw.get("episodeUrl")),
        preview_url=_optional_str(raw.get("previewUrl")),
    )


def parse_lookup_results(payload: Any) -> List[models.CatalogEntry]:
    """Extract the catalog entries of a lookup response.

    Anything that is not a mapping with a ``results`` list yields no entries.
    """
    if not isinstance(payload, Mapping):
        return []
    results = payload.get("results")
    if not isinstance(results, list):
        return []
    return [parse_catalog_entry(r) for r in results if isinstance(r, Mapping)]


def build_lookup_url(cfg: config.Config, identifier: str, entity: Optional[str] = None) -> str:
    params = {"id": identifier}
    if entity:
        params["entity"] = entity
    return f"{cfg.catalog_lookup_url}?{urlencode(params)}"


def lookup(
    identifier: str,
    cfg: config.Config,
    rotation: downloader.EndpointRotation,
    entity: Optional[str] = None,
) -> List[models.CatalogEntry]:
    """Query the catalog for an identifier.

    Raises:
        EndpointsExhaustedError: If the lookup service is unreachable
    """
    url = build_lookup_url(cfg, identifier, entity)
    payload = downloader.fetch_json(url, cfg, rotation)
    entries = parse_lookup_results(payload)
    logger.debug("Catalog lookup id=%s entity=%s returned %s result(s)", identifier, entity, len(entries))
    return entries


def _find_podcast_entry(entries: List[models.CatalogEntry]) -> Optional[models.CatalogEntry]:
    for entry in entries:
        if entry.kind == "podcast" or (entry.wrapper_type == "track" and entry.collection_id):
            return entry
    return None


def _find_episode_audio_url(
    entries: List[models.CatalogEntry], episode_id: str
) -> Optional[str]:
    for entry in entries:
        if entry.track_id == episode_id:
            # episodeUrl is the full episode, previewUrl a short preview
            return entry.episode_url or entry.preview_url
    return None


def lookup_episode(
    episode_id: str,
    cfg: config.Config,
    rotation: downloader.EndpointRotation,
) -> models.EpisodeLookup:
    """Look up an episode to find its podcast feed and its audio URL.

    When the episode result carries no feed location, the podcast is looked up
    by the episode's collection id. A failure of that second lookup is
    logged and leaves the feed location unset.

    Raises:
        EndpointsExhaustedError: If the lookup service is unreachable
    """
    entries = lookup(episode_id, cfg, rotation, entity=config_constants.CATALOG_ENTITY_EPISODE)
    if not entries:
        return models.EpisodeLookup()

    audio_url = _find_episode_audio_url(entries, episode_id)
    podcast = _find_podcast_entry(entries)
    feed_url = podcast.feed_url if podcast else None

    if not feed_url and entries[0].collection_id:
        collection_id = entries[0].collection_id
        logger.debug("Episode found, looking up podcast by collection id %s", collection_id)
        try:
            podcast_entries = lookup(
                collection_id, cfg, rotation, entity=config_constants.CATALOG_ENTITY_PODCAST
            )
        except ResolutionError as exc:
            # audio_url is kept for matching
            logger.debug("Podcast lookup by collection id %s failed: %s", collection_id, exc)
            podcast_entries = []
        if podcast_entries:
            podcast = podcast_entries[0]
            feed_url = podcast.feed_url

    return models.EpisodeLookup(podcast=podcast, feed_url=feed_url, audio_url=audio_url)


def lookup_podcast(
    podcast_id: str,
    cfg: config.Config,
    rotation: downloader.EndpointRotation,
) -> models.CatalogEntry:
    """Look up a podcast by id.

    Raises:
        LookupFailedError: If the catalog returns no result
        EndpointsExhaustedError: If the lookup service is unreachable
    """
    entries = lookup(podcast_id, cfg, rotation, entity=config_constants.CATALOG_ENTITY_PODCAST)
    if not entries:
        raise LookupFailedError(
            "Podcast not found. Please check the URL and try again.",
            hint=f"The catalog returned no results for podcast id {podcast_id}.",
        )
    return entries[0]

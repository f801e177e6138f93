"""Episode resolution pipeline.

``resolve_episode`` walks a URL through the stages below and always returns a
``ResolutionOutcome``; no exception escapes it.

    IDENTIFIER_EXTRACTION -> VENDOR_TRANSCRIPT (optional) -> PODCAST_LOOKUP
    -> FEED_FETCH -> ITEM_MATCH -> TRANSCRIPT_LOCATE -> TRANSCRIPT_FETCH
    -> PARSE -> ASSEMBLE
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Optional

from . import (
    catalog,
    config,
    downloader,
    identifiers,
    matcher,
    metadata,
    models,
    rss_parser,
    transcript_parsers,
    vendor_api,
)
from .exceptions import (
    FeedUnavailableError,
    LookupFailedError,
    ResolutionError,
    TranscriptParseError,
    VendorApiError,
)

logger = logging.getLogger(__name__)

SOURCE_RSS = "rss"
SOURCE_VENDOR_API = "vendor_api"


class Stage(str, Enum):
    IDENTIFIER_EXTRACTION = "identifier_extraction"
    VENDOR_TRANSCRIPT = "vendor_transcript"
    PODCAST_LOOKUP = "podcast_lookup"
    FEED_FETCH = "feed_fetch"
    ITEM_MATCH = "item_match"
    TRANSCRIPT_LOCATE = "transcript_locate"
    TRANSCRIPT_FETCH = "transcript_fetch"
    PARSE = "parse"
    ASSEMBLE = "assemble"


class _Resolution:
    """State of one resolution request as it moves through the stages."""

    def __init__(self, cfg: config.Config, rotation: downloader.EndpointRotation) -> None:
        self.cfg = cfg
        self.rotation = rotation
        self.stage = Stage.IDENTIFIER_EXTRACTION

    def enter(self, stage: Stage) -> None:
        self.stage = stage
        logger.debug("Stage: %s", stage.value)

    def run(self, url: str) -> models.ResolutionOutcome:
        self.enter(Stage.IDENTIFIER_EXTRACTION)
        ref = identifiers.parse_episode_reference(url, self.cfg.allowed_hosts)

        if ref.episode_id and self.cfg.vendor_api_enabled:
            self.enter(Stage.VENDOR_TRANSCRIPT)
            try:
                result = vendor_api.fetch_vendor_transcript(ref.episode_id, self.cfg)
            except VendorApiError as exc:
                logger.warning("Vendor transcript API unavailable, using RSS feed: %s", exc)
            else:
                logger.info(
                    "Transcript retrieved from vendor API (%s segments)",
                    len(result.transcript.segments),
                )
                return models.ResolutionOutcome(
                    status=models.ResolutionStatus.SUCCESS,
                    stage=Stage.ASSEMBLE.value,
                    result=result,
                    source=SOURCE_VENDOR_API,
                )

        self.enter(Stage.PODCAST_LOOKUP)
        lookup = self._lookup_feed(ref)
        feed_url = lookup.feed_url
        if not feed_url:
            raise LookupFailedError(
                "Could not find RSS feed for this podcast.",
                hint="The podcast may not publish a public RSS feed.",
            )

        self.enter(Stage.FEED_FETCH)
        logger.info("Fetching RSS feed: %s", feed_url)
        feed_bytes = downloader.fetch_bytes(feed_url, self.cfg, self.rotation)
        feed = rss_parser.parse_feed(feed_bytes, feed_url, self.cfg.prefer_types)
        if not feed.items:
            raise FeedUnavailableError(
                "The podcast's RSS feed contains no episodes.",
                hint="The feed may be empty or in an unsupported format.",
            )

        self.enter(Stage.ITEM_MATCH)
        item = matcher.select_feed_item(feed.items, ref.episode_id, lookup.audio_url)
        episode_metadata = metadata.build_episode_metadata(
            item, ref.episode_id, lookup.podcast, feed.title
        )

        self.enter(Stage.TRANSCRIPT_LOCATE)
        reference = item.transcript_ref
        if reference is None:
            logger.warning("Episode %r has no transcript in the RSS feed", item.title)
            return models.ResolutionOutcome(
                status=models.ResolutionStatus.NO_TRANSCRIPT,
                stage=self.stage.value,
                metadata=episode_metadata,
                message=(
                    f'Episode found: "{episode_metadata.title}". Unfortunately, this episode '
                    "doesn't have a transcript available in the RSS feed."
                ),
                hint=(
                    "The podcast creator may not have provided one, or it may only be "
                    "available through the authenticated vendor API. Some podcasts include "
                    "transcripts in their show notes instead."
                ),
                source=SOURCE_RSS,
            )
        logger.debug(
            "Using transcript %s (type=%s, from %s)",
            reference.url,
            reference.mime_type,
            reference.source,
        )

        self.enter(Stage.TRANSCRIPT_FETCH)
        transcript_text = downloader.fetch_text(reference.url, self.cfg, self.rotation)

        self.enter(Stage.PARSE)
        transcript = transcript_parsers.parse_transcript(transcript_text)
        if not transcript.has_transcript:
            raise TranscriptParseError(
                "Transcript file is empty or could not be parsed.",
                hint=f"Transcript URL: {reference.url}",
            )

        self.enter(Stage.ASSEMBLE)
        result = models.ResolutionResult(metadata=episode_metadata, transcript=transcript)
        logger.info(
            "Transcript resolved for %r (%s segments)",
            episode_metadata.title,
            len(transcript.segments),
        )
        return models.ResolutionOutcome(
            status=models.ResolutionStatus.SUCCESS,
            stage=self.stage.value,
            result=result,
            source=SOURCE_RSS,
        )

    def _lookup_feed(self, ref: models.EpisodeReference) -> models.EpisodeLookup:
        lookup = models.EpisodeLookup()
        if ref.episode_id:
            try:
                lookup = catalog.lookup_episode(ref.episode_id, self.cfg, self.rotation)
            except ResolutionError as exc:
                logger.debug("Episode lookup failed, trying podcast lookup: %s", exc)
        if lookup.feed_url:
            return lookup

        if not ref.podcast_id:
            return lookup
        podcast = catalog.lookup_podcast(ref.podcast_id, self.cfg, self.rotation)
        return models.EpisodeLookup(
            podcast=podcast,
            feed_url=podcast.feed_url,
            audio_url=lookup.audio_url,
        )


def _error_kind(exc: ResolutionError) -> models.ErrorKind:
    try:
        return models.ErrorKind(exc.kind)
    except ValueError:
        return models.ErrorKind.INTERNAL


def resolve_episode(
    url: str,
    cfg: Optional[config.Config] = None,
    rotation: Optional[downloader.EndpointRotation] = None,
) -> models.ResolutionOutcome:
    """Resolve an episode URL into metadata and a transcript.

    Args:
        url: Podcast or episode URL
        cfg: Configuration (defaults to ``Config()``)
        rotation: Fetch endpoint rotation to use; pass the same instance across calls
            to keep the preferred endpoint. A fresh rotation is created otherwise.

    Returns:
        ResolutionOutcome with status ``success``, ``no_transcript`` or ``failure``
    """
    cfg = cfg or config.Config()
    rotation = rotation or downloader.EndpointRotation.from_config(cfg)
    resolution = _Resolution(cfg, rotation)
    try:
        return resolution.run(url)
    except ResolutionError as exc:
        logger.warning("Resolution failed at %s: %s", resolution.stage.value, exc.message)
        return models.ResolutionOutcome(
            status=models.ResolutionStatus.FAILURE,
            stage=resolution.stage.value,
            error_kind=_error_kind(exc),
            message=exc.message,
            hint=exc.hint,
        )
    except Exception as exc:
        logger.error("Unexpected error at %s", resolution.stage.value, exc_info=True)
        return models.ResolutionOutcome(
            status=models.ResolutionStatus.FAILURE,
            stage=resolution.stage.value,
            error_kind=models.ErrorKind.INTERNAL,
            message=f"An unexpected error occurred: {exc}",
        )


def apply_log_level(level: str, log_file: Optional[str] = None) -> None:
    """Apply logging level to root logger and configure handlers.

    Args:
        level: Log level string (e.g., 'DEBUG', 'INFO', 'WARNING')
        log_file: Optional path to log file. If provided, logs will be written to both
                  console and file.

    Raises:
        ValueError: If log level is invalid
        OSError: If log file cannot be created or written to
    """
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    root_logger = logging.getLogger()
    log_format = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    if not root_logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter(log_format))
        root_logger.addHandler(console_handler)
        root_logger.setLevel(numeric_level)
    else:
        root_logger.setLevel(numeric_level)
        for handler in root_logger.handlers:
            handler.setLevel(numeric_level)

    if log_file:
        file_handler_exists = any(
            isinstance(h, logging.FileHandler) and h.baseFilename == os.path.abspath(log_file)
            for h in root_logger.handlers
        )
        if not file_handler_exists:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(logging.Formatter(log_format))
            root_logger.addHandler(file_handler)
            logger.info("Logging to file: %s", log_file)

    logger.setLevel(numeric_level)

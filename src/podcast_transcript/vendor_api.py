"""Client for the authenticated vendor transcript API.

The API serves episode transcripts as TTML assets. Requests need a bearer token,
which expires periodically; acquiring or refreshing it is outside this package.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

import requests

from . import config, config_constants, downloader, metadata, models, transcript_parsers
from .exceptions import TranscriptParseError, VendorApiError

logger = logging.getLogger(__name__)

HTTP_UNAUTHORIZED = 401
HTTP_NOT_FOUND = 404

EPISODE_RESOURCE_TYPE = "podcast-episodes"
PODCAST_RESOURCE_TYPE = "podcasts"


@dataclass(frozen=True)
class VendorTranscriptInfo:
    """Typed view of the vendor transcript response.

    Attributes:
        ttml_url: Location of the TTML transcript asset, if any.
        title: Episode name.
        podcast_name: Podcast name when the response includes the podcast.
        podcast_id: Podcast identifier from the episode relationships.
        duration_ms: Episode duration in milliseconds.
        release_date: Release timestamp as sent by the API.
        description: Standard-length episode description.
    """

    ttml_url: Optional[str] = None
    title: Optional[str] = None
    podcast_name: Optional[str] = None
    podcast_id: Optional[str] = None
    duration_ms: Optional[int] = None
    release_date: Optional[str] = None
    description: str = ""


def _get(mapping: Any, *keys: Any) -> Any:
    """Walk nested mappings/lists; any missing step yields None."""
    current = mapping
    for key in keys:
        if isinstance(key, int):
            if not isinstance(current, list) or len(current) <= key:
                return None
        elif not isinstance(current, Mapping):
            return None
        current = current[key] if isinstance(key, int) else current.get(key)
        if current is None:
            return None
    return current


def _find_included(payload: Mapping[str, Any], resource_type: str) -> Optional[Mapping[str, Any]]:
    included = payload.get("included")
    if not isinstance(included, list):
        return None
    for entry in included:
        if isinstance(entry, Mapping) and entry.get("type") == resource_type:
            return entry
    return None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_transcript_info(payload: Any) -> VendorTranscriptInfo:
    """Convert a vendor transcript response into VendorTranscriptInfo.

    Raises:
        VendorApiError: If the response lists no transcript for the episode
    """
    if not isinstance(payload, Mapping) or _get(payload, "data", 0) is None:
        raise VendorApiError(
            "Transcript not found for this episode",
            status_code=HTTP_NOT_FOUND,
            hint="This episode may not have a transcript available, or the episode ID "
            "may be incorrect.",
        )

    episode = _find_included(payload, EPISODE_RESOURCE_TYPE) or {}
    podcast = _find_included(payload, PODCAST_RESOURCE_TYPE) or {}
    podcast_id = _get(episode, "relationships", "podcast", "data", 0, "id") or _get(
        episode, "relationships", "podcast", "data", "id"
    )
    return VendorTranscriptInfo(
        ttml_url=_get(payload, "data", 0, "attributes", "ttmlAssetUrls", "ttml"),
        title=_get(episode, "attributes", "name"),
        podcast_name=_get(podcast, "attributes", "name"),
        podcast_id=str(podcast_id) if podcast_id is not None else None,
        duration_ms=_optional_int(_get(episode, "attributes", "durationInMilliseconds")),
        release_date=_get(episode, "attributes", "releaseDateTime"),
        description=_get(episode, "attributes", "description", "standard") or "",
    )


def build_transcript_request_url(cfg: config.Config, episode_id: str) -> str:
    query = urlencode(
        {
            "fields": "ttmlToken,ttmlAssetUrls",
            "include[podcast-episodes]": "podcast",
            "l": cfg.vendor_language,
            "with": "entitlements",
        }
    )
    base = cfg.vendor_api_base.rstrip("/")
    return (
        f"{base}/v1/catalog/{cfg.vendor_storefront}/podcast-episodes/{episode_id}/transcripts"
        f"?{query}"
    )


def _request_transcript_info(episode_id: str, cfg: config.Config) -> VendorTranscriptInfo:
    url = build_transcript_request_url(cfg, episode_id)
    headers = {"Authorization": f"Bearer {cfg.apple_bearer_token}"}
    try:
        resp = downloader.http_get(
            url, config_constants.VENDOR_USER_AGENT, cfg.api_timeout, headers=headers
        )
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        if status == HTTP_UNAUTHORIZED:
            raise VendorApiError(
                "Authentication failed with the vendor transcript API",
                status_code=status,
                hint="The bearer token may have expired (tokens expire every 30 days). "
                "Please update APPLE_BEARER_TOKEN.",
            ) from exc
        if status == HTTP_NOT_FOUND:
            raise VendorApiError(
                "Episode not found or transcript not available",
                status_code=status,
                hint="The episode may not exist or may not have a transcript.",
            ) from exc
        raise VendorApiError(
            f"Vendor transcript API returned HTTP {status}", status_code=status
        ) from exc
    except requests.RequestException as exc:
        raise VendorApiError(f"Vendor transcript API request failed: {exc}") from exc

    try:
        payload = resp.json()
    except ValueError as exc:
        raise VendorApiError("Vendor transcript API returned invalid JSON") from exc
    finally:
        resp.close()
    return parse_transcript_info(payload)


def _download_ttml(ttml_url: str, cfg: config.Config) -> str:
    try:
        resp = downloader.http_get(ttml_url, cfg.user_agent, cfg.transcript_timeout, stream=True)
    except requests.RequestException as exc:
        raise VendorApiError(f"Failed to download transcript asset: {exc}") from exc
    try:
        body = downloader.read_body(resp, "Downloading transcript")
    except requests.RequestException as exc:
        raise VendorApiError(f"Failed to download transcript asset: {exc}") from exc
    finally:
        resp.close()
    return downloader.decode_text(resp, body)


def build_vendor_metadata(
    info: VendorTranscriptInfo, episode_id: str
) -> models.EpisodeMetadata:
    return models.EpisodeMetadata(
        episode_id=episode_id,
        title=info.title or config_constants.UNKNOWN_VALUE,
        podcast_name=info.podcast_name or config_constants.UNKNOWN_VALUE,
        duration=metadata.format_milliseconds(info.duration_ms),
        release_date=info.release_date or None,
        description=info.description,
    )


def fetch_vendor_transcript(episode_id: str, cfg: config.Config) -> models.ResolutionResult:
    """Fetch an episode transcript and metadata from the vendor API.

    Args:
        episode_id: Numeric episode identifier
        cfg: Configuration carrying the bearer token

    Returns:
        ResolutionResult with a non-empty transcript

    Raises:
        VendorApiError: If no token is configured, the API rejects the request, the
            episode has no transcript asset, or the asset cannot be downloaded or parsed
    """
    if not cfg.apple_bearer_token:
        raise VendorApiError(
            "Vendor transcript API token not configured.",
            hint="Set the APPLE_BEARER_TOKEN environment variable.",
        )

    info = _request_transcript_info(episode_id, cfg)
    if not info.ttml_url:
        raise VendorApiError(
            "Transcript URL not available",
            status_code=HTTP_NOT_FOUND,
            hint="The episode exists but does not have a transcript file available.",
        )

    logger.debug("Vendor API transcript asset located for episode %s", episode_id)
    ttml_text = _download_ttml(info.ttml_url, cfg)
    try:
        transcript = transcript_parsers.parse_ttml(ttml_text)
    except TranscriptParseError as exc:
        raise VendorApiError(f"Vendor transcript could not be parsed: {exc.message}") from exc
    if not transcript.has_transcript:
        raise VendorApiError("Vendor transcript contained no text segments")

    return models.ResolutionResult(
        metadata=build_vendor_metadata(info, episode_id),
        transcript=transcript,
    )

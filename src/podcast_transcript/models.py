from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class EpisodeReference:
    """Identifiers extracted from an episode URL.

    Attributes:
        source_url: The URL exactly as supplied by the caller.
        podcast_id: Numeric podcast (collection) identifier, if present.
        episode_id: Numeric episode (track) identifier, if present.
    """

    source_url: str
    podcast_id: Optional[str] = None
    episode_id: Optional[str] = None


@dataclass(frozen=True)
class CatalogEntry:
    """Typed view of one result returned by the podcast catalog lookup service.

    Every field may be absent upstream; absent fields are None.

    Attributes:
        kind: Result kind (e.g., "podcast", "podcast-episode").
        wrapper_type: Wrapper type (e.g., "track", "podcastEpisode").
        collection_id: Identifier of the podcast the result belongs to.
        collection_name: Podcast name.
        track_id: Identifier of the track (episode or podcast).
        track_name: Track name.
        feed_url: RSS feed location of the podcast.
        episode_url: Direct audio URL of a full episode.
        preview_url: Audio URL of a short preview.
    """

    kind: Optional[str] = None
    wrapper_type: Optional[str] = None
    collection_id: Optional[str] = None
    collection_name: Optional[str] = None
    track_id: Optional[str] = None
    track_name: Optional[str] = None
    feed_url: Optional[str] = None
    episode_url: Optional[str] = None
    preview_url: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        return self.collection_name or self.track_name


@dataclass(frozen=True)
class EpisodeLookup:
    """Result of the episode-level catalog lookup."""

    podcast: Optional[CatalogEntry] = None
    feed_url: Optional[str] = None
    audio_url: Optional[str] = None


@dataclass(frozen=True)
class TranscriptReference:
    """A transcript location found in a feed item.

    Attributes:
        url: Absolute transcript URL.
        mime_type: Declared MIME type, if any.
        source: Markup convention the reference came from
            ("transcript", "srt-type", or "captions").
    """

    url: str
    mime_type: Optional[str] = None
    source: str = "transcript"


@dataclass(frozen=True)
class FeedItem:
    """One episode entry of a syndication feed.

    Attributes:
        guid: Item GUID text ("" when absent).
        title: Episode title ("" when absent).
        description: Raw description text ("" when absent).
        pub_date: Raw publication date ("" when absent).
        duration_raw: Raw duration text, usually itunes:duration ("" when absent).
        enclosure_url: Media enclosure URL as written in the feed ("" when absent).
        episode_number: Explicit episode-number tag text ("" when absent).
        link: Canonical link of the item as written in the feed ("" when absent).
        transcript_refs: All recognized transcript references, in locator order.
        transcript_ref: Chosen transcript reference, or None.
    """

    guid: str = ""
    title: str = ""
    description: str = ""
    pub_date: str = ""
    duration_raw: str = ""
    enclosure_url: str = ""
    episode_number: str = ""
    link: str = ""
    transcript_refs: Tuple[TranscriptReference, ...] = ()
    transcript_ref: Optional[TranscriptReference] = None


@dataclass(frozen=True)
class Feed:
    """A parsed RSS feed: channel title plus its items in feed order."""

    title: str
    items: Tuple[FeedItem, ...]
    base_url: str


@dataclass(frozen=True)
class TranscriptSegment:
    """One timed piece of transcript text, in document order."""

    begin: str
    end: str
    text: str


@dataclass(frozen=True)
class Transcript:
    """Normalized transcript: full text plus ordered segments."""

    full_text: str
    segments: Tuple[TranscriptSegment, ...] = ()

    @property
    def has_transcript(self) -> bool:
        return bool(self.segments)

    @classmethod
    def from_segments(cls, segments: Tuple[TranscriptSegment, ...]) -> "Transcript":
        """Build a transcript whose full text is the space-joined segment texts."""
        segments = tuple(segments)
        return cls(full_text=" ".join(s.text for s in segments).strip(), segments=segments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "full_text": self.full_text,
            "segments": [asdict(s) for s in self.segments],
            "has_transcript": self.has_transcript,
        }


@dataclass(frozen=True)
class EpisodeMetadata:
    """Display metadata of a resolved episode."""

    episode_id: str
    title: str
    podcast_name: str
    duration: str
    release_date: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class ResolutionResult:
    """Terminal artifact of a successful resolution."""

    metadata: EpisodeMetadata
    transcript: Transcript


class ResolutionStatus(str, Enum):
    SUCCESS = "success"
    NO_TRANSCRIPT = "no_transcript"
    FAILURE = "failure"


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    LOOKUP_FAILED = "lookup_failed"
    FEED_UNAVAILABLE = "feed_unavailable"
    EPISODE_NOT_FOUND = "episode_not_found"
    TRANSCRIPT_PARSE = "transcript_parse"
    VENDOR_API = "vendor_api"
    INTERNAL = "internal"


@dataclass(frozen=True)
class ResolutionOutcome:
    """The single structured value returned for every resolution request.

    Exactly one of the following shapes is produced:

    - ``success``: ``result`` holds metadata and a non-empty transcript.
    - ``no_transcript``: the episode was found but publishes no transcript;
      ``metadata`` holds whatever was resolved.
    - ``failure``: ``error_kind``, ``message`` and optional ``hint`` describe why.

    Attributes:
        status: Terminal state of the resolution.
        stage: Name of the last stage entered.
        result: Assembled result (success only).
        metadata: Episode metadata (no_transcript only).
        error_kind: Error category (failure only).
        message: Human-readable message (failure and no_transcript).
        hint: Optional suggestion for the user.
        source: Upstream that produced the transcript ("rss" or "vendor_api").
    """

    status: ResolutionStatus
    stage: str
    result: Optional[ResolutionResult] = None
    metadata: Optional[EpisodeMetadata] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    hint: Optional[str] = None
    source: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is ResolutionStatus.SUCCESS

    @property
    def episode_metadata(self) -> Optional[EpisodeMetadata]:
        """Metadata regardless of whether a transcript was found."""
        if self.result is not None:
            return self.result.metadata
        return self.metadata

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable mapping of the outcome."""
        data: Dict[str, Any] = {
            "status": self.status.value,
            "stage": self.stage,
        }
        if self.source:
            data["source"] = self.source
        metadata = self.episode_metadata
        if metadata is not None:
            data["metadata"] = asdict(metadata)
        if self.result is not None:
            data["transcript"] = self.result.transcript.to_dict()
        if self.error_kind is not None:
            data["error_kind"] = self.error_kind.value
        if self.message:
            data["message"] = self.message
        if self.hint:
            data["hint"] = self.hint
        return data


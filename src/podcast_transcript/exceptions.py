"""Custom exceptions for podcast_transcript.

This module defines structured exceptions for every way an episode resolution can
fail. Using typed exceptions improves:
- Error messages with actionable hints surfaced to the end user
- Test assertions on specific failure causes
- A single conversion point into a structured outcome at the orchestrator boundary

Exception Hierarchy:
    ResolutionError (base)
    ├── InvalidInputError - URL malformed, unsupported, or without identifiers
    ├── LookupFailedError - Catalog has no matching podcast or feed
    ├── FeedUnavailableError - Upstream fetch failed or feed is unusable
    │   └── EndpointsExhaustedError - Every fetch endpoint failed
    ├── EpisodeNotFoundError - Identifier present but no feed item matches
    ├── TranscriptParseError - Transcript markup malformed or empty
    └── VendorApiError - Authenticated transcript API unusable
"""

from typing import Optional


class ResolutionError(Exception):
    """Base exception for all resolution errors.

    Attributes:
        kind: Stable machine-readable error kind (e.g., "feed_unavailable")
        message: Human-readable error message
        hint: Optional suggestion for resolving the error
    """

    kind = "resolution_error"

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        self.message = message
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message with the hint appended."""
        parts = [self.message]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        return " ".join(parts)


class InvalidInputError(ResolutionError):
    """Raised when the input URL is malformed or unsupported.

    Common causes:
    - Not an absolute http/https URL
    - Host is not a supported podcast catalog
    - Neither a podcast nor an episode identifier in the URL
    """

    kind = "invalid_input"


class LookupFailedError(ResolutionError):
    """Raised when the podcast catalog has no usable entry.

    Example:
        >>> raise LookupFailedError(
        ...     "Podcast not found. Please check the URL and try again.",
        ...     hint="Make sure you copied the complete URL",
        ... )
    """

    kind = "lookup_failed"


class FeedUnavailableError(ResolutionError):
    """Raised when an upstream document cannot be fetched or used.

    Covers unreachable feeds, transport failures on catalog or transcript
    requests, and feeds that are not well-formed XML.
    """

    kind = "feed_unavailable"


class EndpointsExhaustedError(FeedUnavailableError):
    """Raised when every configured fetch endpoint failed for a URL.

    Attributes:
        url: Target URL that could not be fetched
        attempts: Number of endpoints tried
    """

    def __init__(self, url: str, attempts: int, last_error: Optional[str] = None) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        message = f"All {attempts} fetch endpoint(s) failed for {url}"
        if last_error:
            message = f"{message} (last error: {last_error})"
        super().__init__(
            message,
            hint="Please check your internet connection and try again later.",
        )


class EpisodeNotFoundError(ResolutionError):
    """Raised when an episode identifier matches no item of the podcast feed.

    The message lists the plausible causes because it is shown to the end user.

    Attributes:
        episode_id: Identifier that was searched for
        item_count: Number of items in the feed
    """

    kind = "episode_not_found"

    def __init__(self, episode_id: str, item_count: int) -> None:
        self.episode_id = episode_id
        self.item_count = item_count
        message = (
            f"Episode {episode_id} not found in the podcast's RSS feed "
            f"({item_count} episodes searched). This could happen if:\n\n"
            "1. The episode was recently published and hasn't appeared in the RSS feed yet\n"
            "2. The episode was removed or made private\n"
            "3. The RSS feed doesn't include this episode ID in any of its fields"
        )
        super().__init__(
            message,
            hint="Please try again later or verify the episode URL is correct.",
        )


class TranscriptParseError(ResolutionError):
    """Raised when a located transcript cannot be turned into segments.

    Common causes:
    - TTML payload is not well-formed XML
    - Payload decodes to zero segments
    """

    kind = "transcript_parse"


class VendorApiError(ResolutionError):
    """Raised when the authenticated vendor transcript API cannot serve an episode.

    The orchestrator treats this as recoverable and falls back to the RSS feed.

    Attributes:
        status_code: HTTP status returned by the API, if any
    """

    kind = "vendor_api"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        hint: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, hint=hint)

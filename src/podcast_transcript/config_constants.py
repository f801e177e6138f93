"""Configuration constants for podcast_transcript.

All constants are re-exported from config.py for convenience.
"""

# General defaults
DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/119.0 Safari/537.36"
)

# Timeouts (seconds). Catalog and feed requests are small; transcript payloads
# can be several megabytes for long episodes.
DEFAULT_METADATA_TIMEOUT_SECONDS = 15
DEFAULT_TRANSCRIPT_TIMEOUT_SECONDS = 30
DEFAULT_API_TIMEOUT_SECONDS = 10
MIN_TIMEOUT_SECONDS = 1

# Fetch endpoints tried in rotation. An empty prefix is a direct request;
# any other prefix receives the percent-encoded target URL appended to it.
DIRECT_ENDPOINT = ""
DEFAULT_FETCH_ENDPOINTS = (
    DIRECT_ENDPOINT,
    "https://api.allorigins.win/raw?url=",
    "https://corsproxy.io/?",
    "https://api.codetabs.com/v1/proxy?quest=",
)

# Input URLs
DEFAULT_ALLOWED_HOSTS = ("podcasts.apple.com",)
ALLOWED_URL_SCHEMES = ("http", "https")

# Public catalog lookup service
DEFAULT_CATALOG_LOOKUP_URL = "https://itunes.apple.com/lookup"
CATALOG_ENTITY_PODCAST = "podcast"
CATALOG_ENTITY_EPISODE = "podcastEpisode"

# Authenticated vendor transcript API
DEFAULT_VENDOR_API_BASE = "https://amp-api.podcasts.apple.com"
DEFAULT_VENDOR_STOREFRONT = "us"
DEFAULT_VENDOR_LANGUAGE = "en-US"
VENDOR_USER_AGENT = "Podcasts/1.1.0 (Macintosh; OS X 15.5)"

# Transcript defaults
DEFAULT_TIMECODE = "00:00:00"
UNKNOWN_VALUE = "Unknown"
UNKNOWN_EPISODE_TITLE = "Unknown Episode"
MISSING_EPISODE_ID = "N/A"

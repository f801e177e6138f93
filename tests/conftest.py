"""Shared fixtures and test utilities for podcast_transcript tests.

This module contains:
- Test constants
- Helper functions for creating test objects and XML payloads
- MockHTTPResponse and a fake session for patching the downloader
- Network isolation for unit tests

All test files can import from this module using pytest's conftest.py mechanism.
"""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
import requests

os.environ.setdefault("TESTING", "1")

from podcast_transcript import config, models  # noqa: E402

# Test constants
TEST_PODCAST_ID = "1234567890"
TEST_EPISODE_ID = "1000654321987"
TEST_EPISODE_URL = (
    f"https://podcasts.apple.com/us/podcast/test-show/id{TEST_PODCAST_ID}?i={TEST_EPISODE_ID}"
)
TEST_PODCAST_URL = f"https://podcasts.apple.com/us/podcast/test-show/id{TEST_PODCAST_ID}"
TEST_FEED_URL = "https://feeds.example.com/show.xml"
TEST_FEED_TITLE = "Test Feed"
TEST_PODCAST_NAME = "Test Show"
TEST_EPISODE_TITLE = "Episode Title"
TEST_MEDIA_URL = "https://cdn.example.com/audio/episode.mp3"
TEST_TRANSCRIPT_URL = "https://cdn.example.com/transcripts/episode.srt"
TEST_TTML_URL = "https://cdn.example.com/transcripts/episode.ttml"
TEST_PUB_DATE = "Tue, 02 Jan 2024 10:00:00 +0000"
TEST_LOOKUP_URL = config.config_constants.DEFAULT_CATALOG_LOOKUP_URL

TEST_SRT = "1\n00:00:01,000 --> 00:00:02,000\nHi there\n\n2\n00:00:02,500 --> 00:00:04,000\nWelcome back\n"
TEST_TTML = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<tt xmlns="http://www.w3.org/ns/ttml"><body><div>'
    '<p begin="00:00:01" end="00:00:03">Hello world</p>'
    '<p begin="00:00:03" end="00:00:05"><span>Second</span> <span>line</span></p>'
    "</div></body></tt>"
)


def create_test_config(**overrides):
    """Create test Config object with defaults.

    Args:
        **overrides: Fields to override from defaults

    Returns:
        config.Config object with test defaults (direct requests only, no vendor API)
    """
    defaults = {
        "user_agent": "test-agent",
        "fetch_endpoints": [""],
        "apple_bearer_token": "",
        "use_vendor_api": False,
        "log_level": "INFO",
    }
    defaults.update(overrides)
    return config.Config(**defaults)


def create_test_item(**overrides):
    """Create test FeedItem with defaults."""
    defaults = {
        "guid": "guid-1",
        "title": TEST_EPISODE_TITLE,
        "description": "Show notes",
        "pub_date": TEST_PUB_DATE,
        "duration_raw": "3725",
        "enclosure_url": TEST_MEDIA_URL,
        "episode_number": "",
        "link": "",
    }
    defaults.update(overrides)
    return models.FeedItem(**defaults)


def build_item_xml(
    title=TEST_EPISODE_TITLE,
    guid="guid-1",
    enclosure_url=TEST_MEDIA_URL,
    transcript_url=None,
    transcript_type="application/srt",
    extra="",
):
    """Build one RSS item element as XML text."""
    parts = [f"    <item>\n      <title>{title}</title>"]
    if guid is not None:
        parts.append(f"      <guid>{guid}</guid>")
    parts.append(f"      <pubDate>{TEST_PUB_DATE}</pubDate>")
    parts.append("      <itunes:duration>3725</itunes:duration>")
    if enclosure_url:
        parts.append(f'      <enclosure url="{enclosure_url}" type="audio/mpeg" />')
    if transcript_url:
        parts.append(
            f'      <podcast:transcript url="{transcript_url}" type="{transcript_type}" />'
        )
    if extra:
        parts.append(extra)
    parts.append("    </item>")
    return "\n".join(parts)


def build_rss_xml(items, title=TEST_FEED_TITLE):
    """Build an RSS document around already-built item XML snippets."""
    return f"""<?xml version='1.0'?>
<rss xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd"
     xmlns:podcast="https://podcastindex.org/namespace/1.0">
  <channel>
    <title>{title}</title>
{chr(10).join(items)}
  </channel>
</rss>""".strip()


def build_rss_xml_with_transcript(title, transcript_url, transcript_type="application/srt"):
    """Build RSS XML with a single episode that publishes a transcript."""
    return build_rss_xml(
        [build_item_xml(transcript_url=transcript_url, transcript_type=transcript_type)],
        title=title,
    )


def build_lookup_payload(*results):
    """Build a catalog lookup JSON payload."""
    return {"resultCount": len(results), "results": list(results)}


def podcast_result(feed_url=TEST_FEED_URL, name=TEST_PODCAST_NAME):
    return {
        "wrapperType": "track",
        "kind": "podcast",
        "collectionId": int(TEST_PODCAST_ID),
        "trackId": int(TEST_PODCAST_ID),
        "collectionName": name,
        "trackName": name,
        "feedUrl": feed_url,
    }


def episode_result(episode_url=TEST_MEDIA_URL):
    return {
        "wrapperType": "podcastEpisode",
        "kind": "podcast-episode",
        "collectionId": int(TEST_PODCAST_ID),
        "collectionName": TEST_PODCAST_NAME,
        "trackId": int(TEST_EPISODE_ID),
        "trackName": TEST_EPISODE_TITLE,
        "episodeUrl": episode_url,
    }


class MockHTTPResponse:
    """Simple mock for HTTP responses returned by the patched session."""

    def __init__(
        self,
        *,
        content=b"",
        url="",
        headers=None,
        chunks=None,
        status_code=200,
        json_data=None,
    ):
        if json_data is not None:
            content = json.dumps(json_data).encode("utf-8")
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.content = content
        self.url = url
        self.headers = headers or {}
        self.status_code = status_code
        self.encoding = "utf-8" if "charset" in self.headers.get("Content-Type", "") else None
        self._chunks = chunks if chunks is not None else [content]
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error for url: {self.url}", response=self)

    def json(self):
        return json.loads(self.content.decode("utf-8"))

    def iter_content(self, chunk_size=1):
        for chunk in self._chunks:
            yield chunk

    def close(self):
        self.closed = True


class FakeSession:
    """Session stand-in that serves canned responses keyed by requested URL.

    A value may be a MockHTTPResponse or an exception instance to raise. URLs that
    are not registered raise ``requests.ConnectionError``.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, headers=None, timeout=None, stream=False):
        self.calls.append({"url": url, "headers": headers or {}, "timeout": timeout})
        for prefix, response in self.routes.items():
            if url == prefix or (prefix.endswith("*") and url.startswith(prefix[:-1])):
                if isinstance(response, Exception):
                    raise response
                return response
        raise requests.ConnectionError(f"No route for {url}")

    @property
    def requested_urls(self):
        return [c["url"] for c in self.calls]


def patch_session(session):
    """Patch the downloader so every request goes to session."""
    return patch("podcast_transcript.downloader._get_thread_request_session", return_value=session)


def json_response(payload, url=""):
    return MockHTTPResponse(
        json_data=payload, url=url, headers={"Content-Type": "application/json"}
    )


def rss_response(rss_xml, url=TEST_FEED_URL):
    return MockHTTPResponse(
        content=rss_xml.encode("utf-8"),
        url=url,
        headers={"Content-Type": "application/rss+xml"},
    )


def transcript_response(text, url=TEST_TRANSCRIPT_URL, content_type="application/srt"):
    body = text.encode("utf-8")
    return MockHTTPResponse(
        content=body,
        url=url,
        headers={"Content-Type": content_type, "Content-Length": str(len(body))},
        chunks=[body],
    )


class NetworkCallDetectedError(Exception):
    """Raised when a unit test attempts to make a real network call."""

    def __init__(self, call_type: str):
        super().__init__(
            f"Network call detected in unit test: requests.Session.{call_type}()\n"
            "Unit tests must not make network calls. Use mocks instead."
        )


def _is_unit_test(request) -> bool:
    test_file = getattr(request.node, "path", None) or getattr(request.node, "fspath", None)
    return test_file is not None and "unit" in Path(str(test_file)).parts


@pytest.fixture(autouse=True)
def block_network_in_unit_tests(request):
    """Make real HTTP requests fail loudly in unit tests."""
    if not _is_unit_test(request):
        yield
        return

    def _blocker(self, *args, **kwargs):
        raise NetworkCallDetectedError("get")

    with patch.object(requests.Session, "get", _blocker):
        yield


def pytest_collection_modifyitems(config, items):
    """Mark tests as unit or integration based on their directory."""
    for item in items:
        parts = Path(str(item.path)).parts
        if "integration" in parts:
            item.add_marker(pytest.mark.integration)
        elif "unit" in parts:
            item.add_marker(pytest.mark.unit)

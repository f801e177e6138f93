"""RSS feed parsing and transcript reference discovery."""

from __future__ import annotations

import logging

# Bandit: parsing handled via defusedxml safe APIs
import xml.etree.ElementTree as ET  # nosec B405
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urljoin

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring as safe_fromstring, ParseError as DefusedXMLParseError

from . import models
from .exceptions import FeedUnavailableError

logger = logging.getLogger(__name__)

SRT_MIME_MARKERS = ("application/srt", "application/x-subrip")
CAPTIONS_REL = "captions"

SOURCE_TRANSCRIPT = "transcript"
SOURCE_SRT_TYPE = "srt-type"
SOURCE_CAPTIONS = "captions"


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].lower()


def _find_child(parent: ET.Element, *names: str) -> Optional[ET.Element]:
    """Return the first direct child matching one of names.

    Un-namespaced children win over namespaced ones with the same local name,
    so ``<title>`` is preferred to ``<itunes:title>``.
    """
    wanted = [n.lower() for n in names]
    for name in wanted:
        for child in parent:
            if isinstance(child.tag, str) and child.tag.lower() == name:
                return child
    for name in wanted:
        for child in parent:
            if _local_name(child.tag) == name:
                return child
    return None


def _child_text(parent: ET.Element, *names: str) -> str:
    el = _find_child(parent, *names)
    if el is None or not el.text:
        return ""
    return el.text.strip()


def _reference_url(el: ET.Element, base_url: str) -> Optional[str]:
    raw = el.attrib.get("url") or el.attrib.get("href") or (el.text or "")
    raw = raw.strip()
    if not raw:
        return None
    return urljoin(base_url, raw)


def _mime_type(el: ET.Element) -> Optional[str]:
    value = el.attrib.get("type")
    if value and value.strip():
        return value.strip()
    return None


def find_transcript_references(
    item: ET.Element, base_url: str
) -> List[models.TranscriptReference]:
    """Find all transcript references in an RSS item.

    Three markup conventions are recognized, in priority order:

    1. Any element whose local name is ``transcript`` (e.g. ``podcast:transcript``)
    2. Any element whose ``type`` declares SubRip (``application/srt`` or
       ``application/x-subrip``)
    3. Any element with ``rel="captions"``

    The URL comes from the ``url`` attribute, then ``href``, then the element text,
    and relative URLs are resolved against base_url. Elements without a usable URL
    are ignored and duplicate URLs are dropped.

    Args:
        item: RSS item element
        base_url: Base URL for resolving relative URLs

    Returns:
        References in priority order, then document order
    """
    elements = [el for el in item.iter() if el is not item]
    candidates: List[models.TranscriptReference] = []

    for el in elements:
        if _local_name(el.tag) == "transcript":
            url = _reference_url(el, base_url)
            if url:
                candidates.append(models.TranscriptReference(url, _mime_type(el), SOURCE_TRANSCRIPT))

    for el in elements:
        mime = (el.attrib.get("type") or "").lower()
        if any(marker in mime for marker in SRT_MIME_MARKERS):
            url = _reference_url(el, base_url)
            if url:
                candidates.append(models.TranscriptReference(url, _mime_type(el), SOURCE_SRT_TYPE))

    for el in elements:
        if (el.attrib.get("rel") or "").strip().lower() == CAPTIONS_REL:
            url = _reference_url(el, base_url)
            if url:
                candidates.append(models.TranscriptReference(url, _mime_type(el), SOURCE_CAPTIONS))

    seen = set()
    unique: List[models.TranscriptReference] = []
    for ref in candidates:
        if ref.url in seen:
            continue
        seen.add(ref.url)
        unique.append(ref)
    return unique


def choose_transcript_reference(
    candidates: Sequence[models.TranscriptReference], prefer_types: Iterable[str] = ()
) -> Optional[models.TranscriptReference]:
    """Choose the best transcript reference based on preferred types.

    Args:
        candidates: References in locator order
        prefer_types: Preferred MIME types or file extensions, most preferred first

    Returns:
        The first candidate matching the earliest preference, the first candidate
        when nothing matches, or None when there are no candidates
    """
    if not candidates:
        return None
    prefs = [p.lower().strip() for p in prefer_types if p and p.strip()]
    if not prefs:
        return candidates[0]

    for pref in prefs:
        for ref in candidates:
            mime = (ref.mime_type or "").lower()
            if (mime and pref in mime) or ref.url.lower().endswith(pref):
                return ref
    return candidates[0]


def find_enclosure_url(item: ET.Element) -> str:
    """Return the enclosure media URL of an RSS item as written in the feed, or "".

    The value is not resolved against the feed URL: the matcher searches it for
    the episode id, and digits in the feed URL must not leak into that search.
    """
    for el in item.iter():
        if _local_name(el.tag) == "enclosure":
            url_attr = el.attrib.get("url")
            if url_attr and url_attr.strip():
                return url_attr.strip()
    return ""


def _extract_link(item: ET.Element) -> str:
    link_elem = _find_child(item, "link")
    if link_elem is None:
        return ""
    if link_elem.text and link_elem.text.strip():
        return link_elem.text.strip()
    href = link_elem.attrib.get("href")
    if href and href.strip():
        return href.strip()
    return ""


def parse_feed_item(
    item: ET.Element, base_url: str, prefer_types: Iterable[str] = ()
) -> models.FeedItem:
    """Extract the fields used for matching and metadata from an RSS item."""
    refs = find_transcript_references(item, base_url)
    return models.FeedItem(
        guid=_child_text(item, "guid", "id"),
        title=_child_text(item, "title"),
        description=_child_text(item, "description", "summary"),
        pub_date=_child_text(item, "pubDate", "published"),
        duration_raw=_child_text(item, "duration"),
        enclosure_url=find_enclosure_url(item),
        episode_number=_child_text(item, "episode"),
        link=_extract_link(item),
        transcript_refs=tuple(refs),
        transcript_ref=choose_transcript_reference(refs, prefer_types),
    )


def _find_channel(root: ET.Element) -> Optional[ET.Element]:
    if _local_name(root.tag) == "channel":
        return root
    channel = root.find("channel")
    if channel is None:
        channel = next((e for e in root.iter() if _local_name(e.tag) == "channel"), None)
    return channel


def parse_feed(
    xml_bytes: bytes, base_url: str, prefer_types: Iterable[str] = ()
) -> models.Feed:
    """Parse RSS XML into a Feed.

    Args:
        xml_bytes: Raw RSS feed XML content
        base_url: Feed URL, used to resolve relative URLs
        prefer_types: Transcript type preference passed to the locator

    Returns:
        Feed with the channel title and items in feed order

    Raises:
        FeedUnavailableError: If the document is not well-formed XML
    """
    try:
        root = safe_fromstring(xml_bytes)
    except (DefusedXMLParseError, DefusedXmlException) as exc:
        raise FeedUnavailableError(
            f"The podcast's RSS feed could not be parsed: {exc}",
            hint="The feed may be temporarily broken. Please try again later.",
        ) from exc

    prefer_types = tuple(prefer_types)
    channel = _find_channel(root)
    title = ""
    if channel is not None:
        title = _child_text(channel, "title")
        item_elements = [e for e in channel if _local_name(e.tag) in ("item", "entry")]
    else:
        item_elements = [e for e in root.iter() if _local_name(e.tag) in ("item", "entry")]

    items = tuple(parse_feed_item(el, base_url, prefer_types) for el in item_elements)
    logger.debug("Parsed feed %r with %s item(s)", title, len(items))
    return models.Feed(title=title, items=items, base_url=base_url)

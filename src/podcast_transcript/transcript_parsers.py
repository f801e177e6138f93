"""Transcript payload parsers (TTML and SRT)."""

from __future__ import annotations

import logging
import re

# Bandit: parsing handled via defusedxml safe APIs
import xml.etree.ElementTree as ET  # nosec B405
from typing import Iterator, List, Optional

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring as safe_fromstring, ParseError as DefusedXMLParseError

from . import config_constants, models
from .exceptions import TranscriptParseError

logger = logging.getLogger(__name__)

FORMAT_TTML = "ttml"
FORMAT_SRT = "srt"

SRT_TIMECODE_SEPARATOR = "-->"
SRT_MIN_BLOCK_LINES = 3

_SRT_BLOCK_SEPARATOR = re.compile(r"\n\s*\n")


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _iter_paragraphs(root: ET.Element) -> Iterator[ET.Element]:
    body = next((e for e in root.iter() if _local_name(e.tag) == "body"), None)
    scope = body if body is not None else root
    for el in scope.iter():
        if _local_name(el.tag) == "p":
            yield el


def parse_ttml(text: str) -> models.Transcript:
    """Parse a TTML document into a transcript.

    Every ``p`` element inside the document body (in any namespace) whose text,
    including nested spans, is non-empty becomes one segment. Missing ``begin`` or
    ``end`` attributes default to ``00:00:00``.

    Args:
        text: TTML document

    Returns:
        Transcript with one segment per non-empty paragraph

    Raises:
        TranscriptParseError: If the document is not well-formed XML or uses
            constructs rejected by the safe parser
    """
    payload = (text or "").lstrip("\ufeff").strip()
    try:
        root = safe_fromstring(payload)
    except (DefusedXMLParseError, DefusedXmlException) as exc:
        raise TranscriptParseError(
            f"Transcript file could not be parsed as TTML: {exc}",
            hint="The transcript file may be corrupted or in an unsupported format.",
        ) from exc

    segments: List[models.TranscriptSegment] = []
    for p in _iter_paragraphs(root):
        content = "".join(p.itertext()).strip()
        if not content:
            continue
        segments.append(
            models.TranscriptSegment(
                begin=p.attrib.get("begin") or config_constants.DEFAULT_TIMECODE,
                end=p.attrib.get("end") or config_constants.DEFAULT_TIMECODE,
                text=content,
            )
        )
    logger.debug("Parsed %s TTML segment(s)", len(segments))
    return models.Transcript.from_segments(tuple(segments))


def _parse_srt_block(block: str) -> Optional[models.TranscriptSegment]:
    lines = block.strip().split("\n")
    if len(lines) < SRT_MIN_BLOCK_LINES:
        return None
    timecode = lines[1]
    if SRT_TIMECODE_SEPARATOR not in timecode:
        return None
    begin, end = (part.strip() for part in timecode.split(SRT_TIMECODE_SEPARATOR, 1))
    content = " ".join(line.strip() for line in lines[2:]).strip()
    if not content:
        return None
    return models.TranscriptSegment(begin=begin, end=end, text=content)


def parse_srt(text: str) -> models.Transcript:
    """Parse SubRip text into a transcript.

    Blocks are separated by blank lines. A block is ``index``, ``BEGIN --> END``,
    then one or more text lines; blocks that do not have this shape are skipped.
    """
    normalized = (text or "").lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    segments: List[models.TranscriptSegment] = []
    skipped = 0
    for block in _SRT_BLOCK_SEPARATOR.split(normalized.strip()):
        segment = _parse_srt_block(block)
        if segment is None:
            if block.strip():
                skipped += 1
            continue
        segments.append(segment)
    if skipped:
        logger.debug("Skipped %s malformed SRT block(s)", skipped)
    logger.debug("Parsed %s SRT segment(s)", len(segments))
    return models.Transcript.from_segments(tuple(segments))


def detect_format(text: str) -> str:
    """Return ``ttml`` when text looks like XML, otherwise ``srt``."""
    if "<?xml" in text or "<tt" in text:
        return FORMAT_TTML
    return FORMAT_SRT


def parse_transcript(text: str) -> models.Transcript:
    """Sniff the payload format and parse it."""
    fmt = detect_format(text or "")
    logger.debug("Detected transcript format: %s", fmt)
    if fmt == FORMAT_TTML:
        return parse_ttml(text)
    return parse_srt(text)

#!/usr/bin/env python3
"""Tests for TTML/SRT transcript parsing."""

import sys
import unittest
from pathlib import Path

from podcast_transcript import models, transcript_parsers
from podcast_transcript.exceptions import TranscriptParseError

# Add tests directory to path for conftest import
tests_dir = Path(__file__).resolve().parents[2]
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from conftest import TEST_SRT, TEST_TTML  # noqa: E402


class TestParseTTML(unittest.TestCase):
    """Tests for parse_ttml."""

    def test_single_paragraph(self):
        text = (
            '<tt><body><div><p begin="00:00:01" end="00:00:03">Hello world</p>'
            "</div></body></tt>"
        )
        transcript = transcript_parsers.parse_ttml(text)
        self.assertEqual(
            transcript.segments,
            (models.TranscriptSegment(begin="00:00:01", end="00:00:03", text="Hello world"),),
        )
        self.assertEqual(transcript.full_text, "Hello world")
        self.assertTrue(transcript.has_transcript)

    def test_namespaced_document_with_spans(self):
        transcript = transcript_parsers.parse_ttml(TEST_TTML)
        self.assertEqual(len(transcript.segments), 2)
        self.assertEqual(transcript.segments[1].text, "Second line")
        self.assertEqual(transcript.full_text, "Hello world Second line")

    def test_missing_timing_defaults(self):
        transcript = transcript_parsers.parse_ttml("<tt><body><p>  Untimed  </p></body></tt>")
        segment = transcript.segments[0]
        self.assertEqual(segment.begin, "00:00:00")
        self.assertEqual(segment.end, "00:00:00")
        self.assertEqual(segment.text, "Untimed")

    def test_empty_paragraphs_skipped(self):
        text = "<tt><body><div><p begin='1'>   </p><p begin='2'>Kept</p><p/></div></body></tt>"
        transcript = transcript_parsers.parse_ttml(text)
        self.assertEqual([s.text for s in transcript.segments], ["Kept"])

    def test_paragraphs_outside_body_ignored(self):
        text = (
            "<tt><head><metadata><p>Not spoken</p></metadata></head>"
            "<body><p>Spoken</p></body></tt>"
        )
        transcript = transcript_parsers.parse_ttml(text)
        self.assertEqual(transcript.full_text, "Spoken")

    def test_no_paragraphs_yields_empty_transcript(self):
        transcript = transcript_parsers.parse_ttml("<tt><body><div/></body></tt>")
        self.assertFalse(transcript.has_transcript)
        self.assertEqual(transcript.full_text, "")

    def test_malformed_markup_raises(self):
        with self.assertRaises(TranscriptParseError):
            transcript_parsers.parse_ttml("<tt><body><p>unclosed</body></tt>")

    def test_entity_expansion_rejected(self):
        text = (
            '<?xml version="1.0"?>\n'
            '<!DOCTYPE tt [<!ENTITY boom "boom">]>\n'
            "<tt><body><p>&boom;</p></body></tt>"
        )
        with self.assertRaises(TranscriptParseError):
            transcript_parsers.parse_ttml(text)

    def test_repeated_parses_are_stable(self):
        first = transcript_parsers.parse_ttml(TEST_TTML)
        second = transcript_parsers.parse_ttml(TEST_TTML)
        self.assertEqual(first.segments, second.segments)

    def test_full_text_does_not_regain_segments(self):
        first = transcript_parsers.parse_ttml(TEST_TTML)
        reparsed = transcript_parsers.parse_ttml(
            f"<tt><body><p>{first.full_text}</p></body></tt>"
        )
        self.assertEqual(len(reparsed.segments), 1)
        self.assertEqual(reparsed.full_text, first.full_text)


class TestParseSRT(unittest.TestCase):
    """Tests for parse_srt."""

    def test_single_block(self):
        transcript = transcript_parsers.parse_srt("1\n00:00:01,000 --> 00:00:02,000\nHi there\n\n")
        self.assertEqual(
            transcript.segments,
            (models.TranscriptSegment(begin="00:00:01,000", end="00:00:02,000", text="Hi there"),),
        )
        self.assertEqual(transcript.full_text, "Hi there")

    def test_multiple_blocks_in_order(self):
        transcript = transcript_parsers.parse_srt(TEST_SRT)
        self.assertEqual([s.text for s in transcript.segments], ["Hi there", "Welcome back"])
        self.assertEqual(transcript.full_text, "Hi there Welcome back")

    def test_multiline_text_joined_with_spaces(self):
        transcript = transcript_parsers.parse_srt(
            "1\n00:00:01,000 --> 00:00:02,000\nfirst line\nsecond line\n"
        )
        self.assertEqual(transcript.segments[0].text, "first line second line")

    def test_short_blocks_skipped_without_error(self):
        text = "1\n00:00:01,000 --> 00:00:02,000\n\n2\n\n3\n00:00:03,000 --> 00:00:04,000\nKept\n"
        transcript = transcript_parsers.parse_srt(text)
        self.assertEqual([s.text for s in transcript.segments], ["Kept"])

    def test_block_without_arrow_skipped(self):
        text = "1\nnot a timecode\nignored\n\n2\n00:00:03,000 --> 00:00:04,000\nKept\n"
        transcript = transcript_parsers.parse_srt(text)
        self.assertEqual(len(transcript.segments), 1)

    def test_crlf_input(self):
        text = "1\r\n00:00:01,000 --> 00:00:02,000\r\nHi there\r\n\r\n"
        transcript = transcript_parsers.parse_srt(text)
        self.assertEqual(transcript.segments[0].end, "00:00:02,000")
        self.assertEqual(transcript.segments[0].text, "Hi there")

    def test_blank_separator_with_whitespace(self):
        text = "1\n00:00:01,000 --> 00:00:02,000\nA\n   \n2\n00:00:02,000 --> 00:00:03,000\nB"
        transcript = transcript_parsers.parse_srt(text)
        self.assertEqual([s.text for s in transcript.segments], ["A", "B"])

    def test_empty_input(self):
        transcript = transcript_parsers.parse_srt("")
        self.assertFalse(transcript.has_transcript)


class TestFormatDetection(unittest.TestCase):
    """Tests for detect_format and parse_transcript."""

    def test_xml_declaration_is_ttml(self):
        self.assertEqual(transcript_parsers.detect_format(TEST_TTML), "ttml")

    def test_tt_root_is_ttml(self):
        self.assertEqual(transcript_parsers.detect_format("<tt><body/></tt>"), "ttml")

    def test_plain_text_is_srt(self):
        self.assertEqual(transcript_parsers.detect_format(TEST_SRT), "srt")

    def test_parse_transcript_dispatches(self):
        self.assertEqual(transcript_parsers.parse_transcript(TEST_SRT).segments[0].text, "Hi there")
        self.assertEqual(
            transcript_parsers.parse_transcript(TEST_TTML).segments[0].text, "Hello world"
        )


if __name__ == "__main__":
    unittest.main()

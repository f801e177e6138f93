# This project is intended for personal, non-commercial use only.
# See README and docs/legal.md for details.

"""Podcast Transcript - Resolve podcast episode URLs into normalized transcripts.

This package turns a public podcast episode URL into episode metadata plus a
transcript (full text and timed segments):
- From the authenticated vendor transcript API when a bearer token is configured
- From transcripts published in the podcast's RSS feed (Podcasting 2.0 namespace,
  SRT enclosures, caption links)

Programmatic API Example:
    >>> import podcast_transcript
    >>>
    >>> cfg = podcast_transcript.Config()
    >>> outcome = podcast_transcript.resolve_episode(
    ...     "https://podcasts.apple.com/us/podcast/show/id123456789?i=1000123456789",
    ...     cfg,
    ... )
    >>> if outcome.succeeded:
    ...     print(outcome.result.transcript.full_text)

CLI Usage:
    $ python -m podcast_transcript.cli "https://podcasts.apple.com/...?i=1000123456789"
    $ podcast-transcript --config config.yaml "https://podcasts.apple.com/..."
"""

from __future__ import annotations

from .config import Config, load_config_file
from .models import ResolutionOutcome
from .workflow import resolve_episode

__all__ = [
    "Config",
    "ResolutionOutcome",
    "load_config_file",
    "resolve_episode",
    "__version__",
]
__version__ = "1.2.0"

"""Break-point detection between consecutive transcript sections.

The built-in detectors are keyword and pause heuristics.  Either one can be
swapped for another predicate of the same shape (for instance an
embedding-similarity detector) through ``ChunkingConfig``.
"""

from __future__ import annotations

import re
from functools import partial

from transcript_digest.chunking.tokens import estimate_tokens
from transcript_digest.ingestion.models import TranscriptSection
from transcript_digest.ingestion.timecodes import parse_timestamp
from transcript_digest.pipeline_config import DEFAULT_CONFIG, BreakDetector, ChunkingConfig

# Phrases that usually open a new topic.  Deliberately small and incomplete.
TOPIC_MARKERS: tuple[str, ...] = (
    "next",
    "now",
    "moving on",
    "let's discuss",
    "switching to",
    "下一個",
    "接下來",
    "現在討論",
)

# Latin markers match on word boundaries ("now" must not fire on "know");
# CJK has no word separators, so those match as plain substrings.
_TOPIC_RE = re.compile(
    "|".join(
        rf"\b{re.escape(m)}\b" if m.isascii() else re.escape(m) for m in TOPIC_MARKERS
    ),
    re.IGNORECASE,
)


def has_topic_marker(text: str) -> bool:
    return _TOPIC_RE.search(text) is not None


def pause_seconds(previous: TranscriptSection, current: TranscriptSection) -> float:
    """Silence between the end of *previous* and the start of *current*."""
    return parse_timestamp(current.start_time) - parse_timestamp(previous.end_time)


def detect_semantic_break(
    section: TranscriptSection,
    previous: TranscriptSection | None,
    next_section: TranscriptSection | None = None,
    *,
    config: ChunkingConfig = DEFAULT_CONFIG,
) -> bool:
    """True if *section* likely starts a new topic.

    Any of: a topic-transition phrase, a long pause, or a speaker change right
    after a long monologue.  The first section is never a break.
    """
    if previous is None:
        return False

    if has_topic_marker(section.text):
        return True
    if pause_seconds(previous, section) > config.semantic_pause_seconds:
        return True

    speaker_change = section.speaker != previous.speaker
    return speaker_change and estimate_tokens(previous.text, config) > config.monologue_tokens


def is_natural_break(
    section: TranscriptSection,
    previous: TranscriptSection | None,
    next_section: TranscriptSection | None = None,
    *,
    config: ChunkingConfig = DEFAULT_CONFIG,
) -> bool:
    """True on a semantic break, a speaker change, or a short pause."""
    if semantic_detector(config)(section, previous, next_section):
        return True
    if previous is None:
        return False
    if section.speaker != previous.speaker:
        return True
    return pause_seconds(previous, section) > config.natural_pause_seconds


def semantic_detector(config: ChunkingConfig = DEFAULT_CONFIG) -> BreakDetector:
    """The semantic-break predicate in effect for *config*."""
    if config.semantic_break_detector is not None:
        return config.semantic_break_detector
    return partial(detect_semantic_break, config=config)


def natural_detector(config: ChunkingConfig = DEFAULT_CONFIG) -> BreakDetector:
    """The natural-break predicate in effect for *config*."""
    if config.natural_break_detector is not None:
        return config.natural_break_detector
    return partial(is_natural_break, config=config)

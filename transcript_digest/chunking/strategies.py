"""Boundary strategies that partition transcript sections into chunks.

Every strategy consumes sections in their original order and emits
contiguous, non-overlapping groups, so concatenating the chunks' sections
reproduces the transcript.  Speaker-turn, semantic-break and hybrid chunks stay
within ``max_tokens``; a section that is too large on its own is split at
sentence boundaries into chunks of its own.  The time-based strategy favours
even durations over even token counts.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Sequence
from dataclasses import replace

from transcript_digest.chunking.breaks import natural_detector, semantic_detector
from transcript_digest.chunking.models import Chunk
from transcript_digest.chunking.tokens import contains_cjk, estimate_tokens
from transcript_digest.ingestion.formatter import render_content
from transcript_digest.ingestion.models import (
    FormattedTranscript,
    TranscriptMetadata,
    TranscriptSection,
)
from transcript_digest.ingestion.timecodes import duration_between, parse_timestamp
from transcript_digest.pipeline_config import DEFAULT_CONFIG, ChunkingConfig, ChunkingStrategy

Renderer = Callable[[Sequence[TranscriptSection]], str]
StrategyFn = Callable[[FormattedTranscript, int, ChunkingConfig, Renderer], list[Chunk]]

# ASCII and full-width (CJK) sentence terminators
_SENTENCE_END_RE = re.compile(r"[.!?。！？]+")


def create_chunk(
    sections: Sequence[TranscriptSection],
    metadata: TranscriptMetadata,
    render: Renderer = render_content,
) -> Chunk:
    """Build a chunk from *sections*, scoping the parent metadata to them."""
    chunk_metadata = replace(
        metadata,
        participants=list(dict.fromkeys(s.speaker for s in sections)),
        duration=duration_between(sections[0].start_time, sections[-1].end_time),
        total_entries=len(sections),
        start_time=sections[0].start_time,
        end_time=sections[-1].end_time,
    )
    return Chunk(metadata=chunk_metadata, content=render(sections), sections=list(sections))


def split_large_section(
    section: TranscriptSection,
    max_tokens: int,
    config: ChunkingConfig = DEFAULT_CONFIG,
) -> list[TranscriptSection]:
    """Split an oversized section at sentence terminators.

    Sentences are grouped greedily while the fragment stays within
    *max_tokens*.  A single sentence longer than the ceiling becomes its own
    fragment.  Fragments keep the parent's speaker and time range; there is no
    finer timing to give them.
    """
    sentences = [s.strip() for s in _SENTENCE_END_RE.split(section.text) if s.strip()]
    if not sentences:
        return [section]

    separator = "。" if contains_cjk(section.text) else ". "
    fragments: list[TranscriptSection] = []
    current = ""
    for sentence in sentences:
        candidate = f"{current}{separator}{sentence}" if current else sentence
        if current and estimate_tokens(candidate, config) > max_tokens:
            fragments.append(replace(section, text=current, is_split=True))
            current = sentence
        else:
            current = candidate

    if current:
        fragments.append(replace(section, text=current, is_split=True))
    return fragments


class _ChunkAccumulator:
    """Collects sections for the chunk under construction."""

    def __init__(
        self,
        transcript: FormattedTranscript,
        config: ChunkingConfig,
        render: Renderer,
    ) -> None:
        self.metadata = transcript.metadata
        self.config = config
        self.render = render
        self.chunks: list[Chunk] = []
        self.sections: list[TranscriptSection] = []
        self.tokens = 0

    def add(self, section: TranscriptSection, tokens: int) -> None:
        self.sections.append(section)
        self.tokens += tokens

    def flush(self) -> None:
        if self.sections:
            self.chunks.append(create_chunk(self.sections, self.metadata, self.render))
        self.sections = []
        self.tokens = 0

    def fits(self, tokens: int, limit: float) -> bool:
        return self.tokens + tokens <= limit

    def add_oversized(self, section: TranscriptSection, max_tokens: int) -> None:
        """Close the open chunk, then emit one chunk per fragment of *section*."""
        self.flush()
        for fragment in split_large_section(section, max_tokens, self.config):
            self.chunks.append(create_chunk([fragment], self.metadata, self.render))

    def finish(self) -> list[Chunk]:
        self.flush()
        return self.chunks


def _last_speaker_change(sections: Sequence[TranscriptSection]) -> int | None:
    """Index of the last section that starts a new speaker turn, if any."""
    for j in range(len(sections) - 1, 0, -1):
        if sections[j].speaker != sections[j - 1].speaker:
            return j
    return None


def chunk_by_speaker_turns(
    transcript: FormattedTranscript,
    max_tokens: int,
    config: ChunkingConfig = DEFAULT_CONFIG,
    render: Renderer = render_content,
) -> list[Chunk]:
    """Fill chunks up to the ceiling, preferring to close them at a speaker change.

    When the next section would overflow and continues the current speaker's
    turn, the chunk is closed at the start of that turn instead, and the turn
    moves to the next chunk with the new section, provided it still fits.
    """
    acc = _ChunkAccumulator(transcript, config, render)

    for section in transcript.sections:
        tokens = estimate_tokens(section.text, config)
        if tokens > max_tokens:
            acc.add_oversized(section, max_tokens)
            continue

        if acc.sections and not acc.fits(tokens, max_tokens):
            turn_start = None
            if section.speaker == acc.sections[-1].speaker:
                turn_start = _last_speaker_change(acc.sections)

            if turn_start is not None:
                carried = acc.sections[turn_start:]
                carried_tokens = sum(estimate_tokens(s.text, config) for s in carried)
                if carried_tokens + tokens <= max_tokens:
                    acc.sections = acc.sections[:turn_start]
                    acc.flush()
                    for s in carried:
                        acc.add(s, estimate_tokens(s.text, config))
                else:
                    acc.flush()
            else:
                acc.flush()

        acc.add(section, tokens)

    return acc.finish()


def chunk_by_time_intervals(
    transcript: FormattedTranscript,
    max_tokens: int,
    config: ChunkingConfig = DEFAULT_CONFIG,
    render: Renderer = render_content,
) -> list[Chunk]:
    """Split into chunks of roughly equal duration.

    The number of intervals is the number of chunks the token estimate calls
    for.  Chunk sizes in tokens are not enforced here.
    """
    sections = transcript.sections
    if not sections:
        return []

    acc = _ChunkAccumulator(transcript, config, render)
    first_start = parse_timestamp(sections[0].start_time)
    total_seconds = parse_timestamp(transcript.metadata.duration)
    if total_seconds <= 0:
        total_seconds = parse_timestamp(sections[-1].end_time) - first_start

    estimated_chunks = math.ceil(estimate_tokens(transcript.content, config) / max_tokens)
    if total_seconds <= 0 or estimated_chunks <= 1:
        for section in sections:
            acc.add(section, 0)
        return acc.finish()

    interval = total_seconds / estimated_chunks
    interval_start = first_start

    for section in sections:
        start = parse_timestamp(section.start_time)
        if acc.sections and start >= interval_start + interval:
            acc.flush()
            interval_start = start
        acc.add(section, estimate_tokens(section.text, config))

    return acc.finish()


def chunk_by_semantic_breaks(
    transcript: FormattedTranscript,
    max_tokens: int,
    config: ChunkingConfig = DEFAULT_CONFIG,
    render: Renderer = render_content,
) -> list[Chunk]:
    """Close chunks early at topic changes once they are reasonably full."""
    is_break = semantic_detector(config)
    sections = transcript.sections
    acc = _ChunkAccumulator(transcript, config, render)
    early_limit = max_tokens * config.semantic_close_ratio

    for i, section in enumerate(sections):
        tokens = estimate_tokens(section.text, config)
        if tokens > max_tokens:
            acc.add_oversized(section, max_tokens)
            continue

        previous = sections[i - 1] if i > 0 else None
        following = sections[i + 1] if i + 1 < len(sections) else None

        if acc.sections and not acc.fits(tokens, early_limit) and is_break(
            section, previous, following
        ):
            acc.flush()
        if acc.sections and not acc.fits(tokens, max_tokens):
            acc.flush()

        acc.add(section, tokens)

    return acc.finish()


def chunk_with_hybrid_strategy(
    transcript: FormattedTranscript,
    max_tokens: int,
    config: ChunkingConfig = DEFAULT_CONFIG,
    render: Renderer = render_content,
) -> list[Chunk]:
    """Enforce the ceiling strictly, but close early at a natural break near it."""
    is_break = natural_detector(config)
    sections = transcript.sections
    acc = _ChunkAccumulator(transcript, config, render)
    near_limit = max_tokens * config.hybrid_near_limit_ratio

    for i, section in enumerate(sections):
        tokens = estimate_tokens(section.text, config)
        if tokens > max_tokens:
            acc.add_oversized(section, max_tokens)
            continue

        if acc.sections:
            at_limit = not acc.fits(tokens, max_tokens)
            near = not acc.fits(tokens, near_limit)
            previous = sections[i - 1] if i > 0 else None
            following = sections[i + 1] if i + 1 < len(sections) else None
            if at_limit or (near and is_break(section, previous, following)):
                acc.flush()

        acc.add(section, tokens)

    return acc.finish()


STRATEGIES: dict[ChunkingStrategy, StrategyFn] = {
    ChunkingStrategy.SPEAKER_TURNS: chunk_by_speaker_turns,
    ChunkingStrategy.TIME_BASED: chunk_by_time_intervals,
    ChunkingStrategy.SEMANTIC_BREAKS: chunk_by_semantic_breaks,
    ChunkingStrategy.HYBRID: chunk_with_hybrid_strategy,
}

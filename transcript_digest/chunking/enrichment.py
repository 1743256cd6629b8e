"""Attach index, size, speaker and time-range metadata to chunks."""

from __future__ import annotations

import base64
from collections.abc import Sequence
from dataclasses import replace

from transcript_digest.chunking.models import Chunk, TimeRange
from transcript_digest.chunking.tokens import estimate_tokens
from transcript_digest.ingestion.models import FormattedTranscript, TranscriptSection
from transcript_digest.ingestion.timecodes import duration_between
from transcript_digest.pipeline_config import DEFAULT_CONFIG, ChunkingConfig


def generate_transcript_id(transcript: FormattedTranscript) -> str:
    """Stable 16-character identifier from the transcript's opening content and duration."""
    seed = transcript.content[:100] + transcript.metadata.duration
    return base64.urlsafe_b64encode(seed.encode("utf-8")).decode("ascii")[:16]


def chunk_time_range(sections: Sequence[TranscriptSection]) -> TimeRange:
    """First start, last end and the elapsed time between them."""
    if not sections:
        return TimeRange(start="", end="", duration="00:00:00")
    start, end = sections[0].start_time, sections[-1].end_time
    return TimeRange(start=start, end=end, duration=duration_between(start, end))


def enrich_chunk_metadata(
    chunks: Sequence[Chunk],
    original_transcript: FormattedTranscript,
    strategy: str,
    config: ChunkingConfig = DEFAULT_CONFIG,
) -> list[Chunk]:
    """Return copies of *chunks* with dense 0-based indices and descriptive metadata.

    ``token_count`` is estimated over the chunk's rendered content, so it
    includes any overlap context.
    """
    transcript_id = generate_transcript_id(original_transcript)
    total = len(chunks)

    return [
        replace(
            chunk,
            chunk_index=index,
            total_chunks=total,
            chunking_strategy=str(strategy),
            transcript_id=transcript_id,
            token_count=estimate_tokens(chunk.content, config),
            speakers=list(dict.fromkeys(s.speaker for s in chunk.sections)),
            time_range=chunk_time_range(chunk.sections),
        )
        for index, chunk in enumerate(chunks)
    ]

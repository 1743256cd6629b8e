"""Decide whether a transcript must be chunked, and how."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from transcript_digest.chunking.limits import get_context_limit, get_safe_limit
from transcript_digest.chunking.tokens import estimate_tokens
from transcript_digest.ingestion.models import FormattedTranscript
from transcript_digest.pipeline_config import (
    DEFAULT_CONFIG,
    ChunkingConfig,
    ChunkingStrategy,
    Complexity,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkingAnalysis:
    """Outcome of :func:`analyze_chunking_needs`."""

    token_count: int
    context_limit: int
    safe_limit: int
    needs_chunking: bool
    recommended_strategy: ChunkingStrategy
    estimated_chunks: int
    complexity: Complexity
    forced_chunking: bool


def assess_complexity(
    transcript: FormattedTranscript, config: ChunkingConfig = DEFAULT_CONFIG
) -> Complexity:
    """Classify a transcript as low/medium/high from speaker, token and section counts."""
    speakers = len(transcript.metadata.participants)
    tokens = estimate_tokens(transcript.content, config)
    sections = len(transcript.sections)

    med_speakers, high_speakers = config.complexity_speakers
    med_tokens, high_tokens = config.complexity_tokens
    med_sections, high_sections = config.complexity_sections

    if speakers > high_speakers or tokens > high_tokens or sections > high_sections:
        return Complexity.HIGH
    if speakers > med_speakers or tokens > med_tokens or sections > med_sections:
        return Complexity.MEDIUM
    return Complexity.LOW


def recommend_strategy(
    transcript: FormattedTranscript, config: ChunkingConfig = DEFAULT_CONFIG
) -> ChunkingStrategy:
    """Pick a default boundary strategy.

    Two-person conversations with long turns chunk cleanly on speaker changes;
    very fragmented transcripts chunk more evenly by time; everything else uses
    the hybrid strategy.
    """
    section_count = len(transcript.sections)
    if section_count == 0:
        return ChunkingStrategy.HYBRID

    speaker_count = len(transcript.metadata.participants)
    avg_section_tokens = estimate_tokens(transcript.content, config) / section_count

    if speaker_count <= config.few_speakers and avg_section_tokens > config.long_section_tokens:
        return ChunkingStrategy.SPEAKER_TURNS
    if section_count > config.many_sections:
        return ChunkingStrategy.TIME_BASED
    return ChunkingStrategy.HYBRID


def analyze_chunking_needs(
    transcript: FormattedTranscript,
    provider: str | None,
    model: str | None,
    max_tokens_per_chunk: int | None = None,
    config: ChunkingConfig = DEFAULT_CONFIG,
) -> ChunkingAnalysis:
    """Check whether *transcript* fits the model and plan the chunking.

    Args:
        transcript: The formatted transcript.
        provider: Key into the provider limit table.
        model: Key into the provider's model table.
        max_tokens_per_chunk: Explicit per-chunk ceiling.  When the transcript
            is larger than this, chunking is forced even if it would fit the
            model, trading summary quality for speed and cost.
        config: Heuristic constants.

    Returns:
        A ChunkingAnalysis.
    """
    token_count = estimate_tokens(transcript.content, config)
    context_limit = get_context_limit(provider, model)
    safe_limit = get_safe_limit(provider, model, config)

    forced = bool(max_tokens_per_chunk) and token_count > (max_tokens_per_chunk or 0)

    if forced and max_tokens_per_chunk:
        estimated_chunks = math.ceil(token_count / max_tokens_per_chunk)
    elif token_count > safe_limit:
        estimated_chunks = math.ceil(token_count / safe_limit)
    else:
        estimated_chunks = 1

    analysis = ChunkingAnalysis(
        token_count=token_count,
        context_limit=context_limit,
        safe_limit=safe_limit,
        needs_chunking=forced or token_count > safe_limit,
        recommended_strategy=recommend_strategy(transcript, config),
        estimated_chunks=estimated_chunks,
        complexity=assess_complexity(transcript, config),
        forced_chunking=forced,
    )
    logger.debug("Chunking analysis: %s", analysis)
    return analysis


def chunk_ceiling(analysis: ChunkingAnalysis, max_tokens_per_chunk: int | None) -> int | None:
    """Per-chunk ceiling to chunk with.

    The caller's ceiling applies only when it is what forced chunking.  A
    transcript chunked for exceeding the model's safe limit uses the model's
    own chunk size, however large the caller's ceiling is.
    """
    return max_tokens_per_chunk if analysis.forced_chunking else None

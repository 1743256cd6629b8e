"""End-to-end chunking: boundary strategy -> context overlap -> metadata."""

from __future__ import annotations

import logging

from transcript_digest.chunking.enrichment import enrich_chunk_metadata
from transcript_digest.chunking.limits import optimal_chunk_size
from transcript_digest.chunking.models import Chunk
from transcript_digest.chunking.overlap import add_context_overlap
from transcript_digest.chunking.strategies import STRATEGIES, Renderer
from transcript_digest.ingestion.formatter import render_content
from transcript_digest.ingestion.models import FormattedTranscript
from transcript_digest.pipeline_config import DEFAULT_CONFIG, ChunkingConfig, ChunkingStrategy

logger = logging.getLogger(__name__)


def chunk_transcript(
    transcript: FormattedTranscript,
    provider: str | None = "openai",
    model: str | None = "gpt-4.1",
    strategy: str | ChunkingStrategy = ChunkingStrategy.HYBRID,
    max_tokens_per_chunk: int | None = None,
    preserve_context: bool = True,
    config: ChunkingConfig = DEFAULT_CONFIG,
    render: Renderer = render_content,
) -> list[Chunk]:
    """Split *transcript* into enriched, optionally overlapping chunks.

    Args:
        transcript: The formatted transcript.
        provider: Provider key, used for the default per-chunk ceiling.
        model: Model key, used for the default per-chunk ceiling.
        strategy: A :class:`ChunkingStrategy` value (string or enum).
        max_tokens_per_chunk: Per-chunk ceiling; defaults to
            :func:`optimal_chunk_size` for the model.
        preserve_context: Repeat the tail of each chunk at the head of the next.
        config: Heuristic constants and break detectors.
        render: Turns a section list into chunk content.

    Returns:
        Chunks with dense ``chunk_index`` values.

    Raises:
        ValueError: If *strategy* is not a known strategy.
    """
    # Normalise to enum
    strategy = ChunkingStrategy(strategy)
    max_tokens = max_tokens_per_chunk or optimal_chunk_size(provider, model, config)

    chunks = STRATEGIES[strategy](transcript, max_tokens, config, render)

    if preserve_context and len(chunks) > 1:
        chunks = add_context_overlap(chunks, transcript, config, render)

    chunks = enrich_chunk_metadata(chunks, transcript, strategy, config)
    logger.info(
        "Created %d chunks with strategy %s (max %d tokens per chunk)",
        len(chunks),
        strategy,
        max_tokens,
    )
    return chunks

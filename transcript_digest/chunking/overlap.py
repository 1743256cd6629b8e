"""Carry the tail of each chunk into the next one as continuity context."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import replace

from transcript_digest.chunking.models import Chunk
from transcript_digest.chunking.strategies import Renderer
from transcript_digest.ingestion.formatter import render_content
from transcript_digest.ingestion.models import FormattedTranscript, TranscriptSection
from transcript_digest.pipeline_config import DEFAULT_CONFIG, ChunkingConfig

logger = logging.getLogger(__name__)

OVERLAP_PREFIX = "[Context from previous section] "


def overlap_size(section_count: int, config: ChunkingConfig = DEFAULT_CONFIG) -> int:
    """How many trailing sections of a chunk are repeated in the next one.

    At least one whenever the previous chunk has any sections.
    """
    if section_count <= 0:
        return 0
    return min(section_count, max(1, math.floor(section_count * config.overlap_ratio)))


def mark_overlap(section: TranscriptSection) -> TranscriptSection:
    """Copy of *section* tagged as repeated context."""
    return replace(section, is_overlap=True, text=f"{OVERLAP_PREFIX}{section.text}")


def add_context_overlap(
    chunks: Sequence[Chunk],
    original_transcript: FormattedTranscript | None = None,
    config: ChunkingConfig = DEFAULT_CONFIG,
    render: Renderer = render_content,
) -> list[Chunk]:
    """Prepend the tail of each chunk's predecessor to it.

    Overlap is drawn from the predecessor's own sections, never from context
    it received itself.  The first chunk is returned as is and no section is
    removed or reordered.  Input chunks are not modified.

    Args:
        chunks: Chunks in order, as produced by a boundary strategy.
        original_transcript: The transcript the chunks came from.  Unused by
            the built-in overlap policy; accepted for interface symmetry with
            :func:`enrich_chunk_metadata`.
        config: Supplies the overlap ratio.
        render: Re-renders ``content`` after injection.
    """
    result: list[Chunk] = list(chunks[:1])

    for previous, current in zip(chunks, chunks[1:]):
        own_sections = previous.original_sections
        size = overlap_size(len(own_sections), config)
        if size == 0:
            result.append(current)
            continue

        context = [mark_overlap(s) for s in own_sections[-size:]]
        sections = context + current.original_sections
        result.append(
            replace(
                current,
                sections=sections,
                content=render(sections),
                has_overlap=True,
                overlap_sections=size,
            )
        )

    logger.debug("Added context overlap to %d of %d chunks", len(result) - 1, len(result))
    return result

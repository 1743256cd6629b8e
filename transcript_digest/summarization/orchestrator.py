"""Map-reduce summarization of transcripts that exceed the model's budget.

Analyze -> (single call if it fits) -> chunk -> summarize each chunk -> combine.

Chunks are summarized strictly one after another.  The summarizer wraps a
rate-limited LLM client, and concurrent calls would defeat its own backoff and
invite provider throttling.  The combine call only starts once every chunk
call has settled.  Retries and timeouts belong to the summarizer.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from typing import Any

from transcript_digest.chunking.analysis import analyze_chunking_needs, chunk_ceiling
from transcript_digest.chunking.models import Chunk
from transcript_digest.chunking.pipeline import chunk_transcript
from transcript_digest.chunking.strategies import Renderer
from transcript_digest.errors import AllChunksFailedError, ProcessingCancelledError
from transcript_digest.ingestion.formatter import render_content
from transcript_digest.ingestion.models import FormattedTranscript, TranscriptMetadata
from transcript_digest.pipeline_config import DEFAULT_CONFIG, ChunkingConfig, PromptType
from transcript_digest.summarization.models import (
    ChunkDetail,
    ChunkingSummary,
    ChunkSummary,
    ProcessingMetadata,
    ProcessingResult,
    ProgressEvent,
    SummaryOptions,
)

logger = logging.getLogger(__name__)

# Sync or async: (transcript_or_chunk, options) -> opaque result
Summarizer = Callable[[FormattedTranscript, SummaryOptions], Any]
ProgressCallback = Callable[[ProgressEvent], None]


async def _call_summarizer(
    summarize: Summarizer, transcript: FormattedTranscript, options: SummaryOptions
) -> Any:
    """Invoke *summarize*, awaiting the result if it is a coroutine function."""
    result = summarize(transcript, options)
    if inspect.isawaitable(result):
        result = await result
    return result


def _emit(progress_callback: ProgressCallback | None, event: ProgressEvent) -> None:
    if progress_callback is not None:
        progress_callback(event)


def _check_cancelled(cancel_event: asyncio.Event | None, completed: int, total: int) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.info("Processing cancelled after %d of %d chunks", completed, total)
        raise ProcessingCancelledError(completed, total)


def summary_text(summary: Any) -> str:
    """The human-readable text of a summarizer result."""
    if isinstance(summary, Mapping) and summary.get("summary") is not None:
        return str(summary["summary"])
    return str(summary)


def build_combining_transcript(
    summaries: Sequence[ChunkSummary], original_metadata: TranscriptMetadata
) -> FormattedTranscript:
    """A synthetic transcript whose content is the numbered section summaries.

    Its ``total_entries`` counts the section summaries, not the raw entries.
    """
    blocks: list[str] = []
    for number, cs in enumerate(summaries, 1):
        start = cs.time_range.start if cs.time_range else ""
        end = cs.time_range.end if cs.time_range else ""
        speakers = ", ".join(cs.speakers)
        blocks.append(
            f"## Section {number} ({start} - {end}, Speakers: {speakers})\n"
            f"{summary_text(cs.summary)}"
        )
    return FormattedTranscript(
        metadata=replace(original_metadata, total_entries=len(summaries)),
        content="\n\n".join(blocks),
        sections=[],
    )


async def summarize_chunk(
    chunk: Chunk, summarize: Summarizer, options: SummaryOptions
) -> ChunkSummary:
    """Summarize one chunk; a failure is recorded in the summary, never raised."""
    chunk_options = options.with_updates(
        prompt_type=PromptType.SECTION,
        is_chunk=True,
        chunk_index=chunk.chunk_index,
        total_chunks=chunk.total_chunks,
    )
    try:
        summary = await _call_summarizer(summarize, chunk, chunk_options)
    except Exception as exc:
        logger.exception(
            "Error processing chunk %d of %d", chunk.chunk_index + 1, chunk.total_chunks
        )
        summary = {"error": str(exc) or type(exc).__name__}

    return ChunkSummary(
        chunk_index=chunk.chunk_index,
        time_range=chunk.time_range,
        speakers=list(chunk.speakers),
        token_count=chunk.token_count,
        summary=summary,
    )


async def combine_section_summaries(
    chunk_summaries: Sequence[ChunkSummary],
    original_metadata: TranscriptMetadata,
    summarize: Summarizer,
    options: SummaryOptions,
    strategy: str,
) -> ProcessingResult:
    """Merge the successful chunk summaries with one final summarizer call.

    Raises:
        AllChunksFailedError: If no chunk summary succeeded.
    """
    valid = [cs for cs in chunk_summaries if cs.succeeded]
    if not valid:
        raise AllChunksFailedError(len(chunk_summaries))

    combining = build_combining_transcript(valid, original_metadata)
    final_options = options.with_updates(
        prompt_type=PromptType.COMBINE,
        is_chunk=False,
        chunk_index=None,
        total_chunks=None,
        is_combining=True,
        total_sections=len(valid),
    )
    final_summary = await _call_summarizer(summarize, combining, final_options)

    total_tokens = sum(cs.token_count for cs in chunk_summaries)
    return ProcessingResult(
        summary=final_summary,
        metadata=ProcessingMetadata(
            chunks_processed=len(valid),
            chunks_failed=len(chunk_summaries) - len(valid),
            chunking_summary=ChunkingSummary(
                strategy=str(strategy),
                total_tokens=total_tokens,
                avg_chunk_size=math.floor(total_tokens / len(chunk_summaries) + 0.5),
            ),
        ),
        chunk_details=[
            ChunkDetail(
                index=cs.chunk_index,
                time_range=cs.time_range,
                speakers=cs.speakers,
                token_count=cs.token_count,
                success=cs.succeeded,
            )
            for cs in chunk_summaries
        ],
    )


async def process_large_transcript(
    transcript: FormattedTranscript,
    summarize: Summarizer,
    options: SummaryOptions | None = None,
    progress_callback: ProgressCallback | None = None,
    *,
    config: ChunkingConfig = DEFAULT_CONFIG,
    render: Renderer = render_content,
    cancel_event: asyncio.Event | None = None,
) -> Any:
    """Summarize *transcript*, chunking it first if it is too large for the model.

    Args:
        transcript: The formatted transcript.
        summarize: ``(transcript_or_chunk, options) -> result``, sync or async.
            Called once per chunk with ``prompt_type="section"`` and once more
            with ``prompt_type="combine"``.
        options: Provider/model/strategy selection; passed through to
            *summarize* with per-call fields filled in.
        progress_callback: Receives a ProgressEvent before each chunk, before
            combining and on completion.
        config: Heuristic constants and break detectors.
        render: Renders section lists into chunk content.
        cancel_event: When set, processing stops before the next chunk call.
            A call already in flight always finishes.

    Returns:
        The summarizer's own result when no chunking is needed, otherwise a
        ProcessingResult.

    Raises:
        AllChunksFailedError: If every chunk call failed.
        ProcessingCancelledError: If *cancel_event* was set.
    """
    options = options or SummaryOptions()
    analysis = analyze_chunking_needs(
        transcript, options.provider, options.model, options.max_tokens_per_chunk, config
    )

    if not analysis.needs_chunking:
        logger.info(
            "No chunking needed (%d tokens), processing as single transcript",
            analysis.token_count,
        )
        return await _call_summarizer(summarize, transcript, options)

    strategy = options.strategy or analysis.recommended_strategy
    chunks = chunk_transcript(
        transcript,
        provider=options.provider,
        model=options.model,
        strategy=strategy,
        max_tokens_per_chunk=chunk_ceiling(analysis, options.max_tokens_per_chunk),
        preserve_context=options.preserve_context,
        config=config,
        render=render,
    )
    total = len(chunks)
    logger.info("Processing %d chunks with %s complexity", total, analysis.complexity)

    chunk_summaries: list[ChunkSummary] = []
    for position, chunk in enumerate(chunks, 1):
        _check_cancelled(cancel_event, position - 1, total)
        _emit(
            progress_callback,
            ProgressEvent(
                stage="chunking",
                current=position,
                total=total,
                message=f"Processing chunk {position} of {total}",
                chunk_info={
                    "time_range": chunk.time_range,
                    "speakers": chunk.speakers,
                    "token_count": chunk.token_count,
                },
            ),
        )
        logger.info("Processing chunk %d/%d", position, total)
        chunk_summaries.append(await summarize_chunk(chunk, summarize, options))

    _check_cancelled(cancel_event, total, total)
    _emit(
        progress_callback,
        ProgressEvent(
            stage="combining",
            current=total,
            total=total,
            message="Combining section summaries into final summary...",
        ),
    )

    result = await combine_section_summaries(
        chunk_summaries, transcript.metadata, summarize, options, strategy
    )

    _emit(
        progress_callback,
        ProgressEvent(
            stage="complete",
            current=total,
            total=total,
            message="Large transcript processing complete",
            result=result,
        ),
    )
    return result

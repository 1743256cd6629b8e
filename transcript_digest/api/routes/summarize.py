"""Analyze, chunk and summarize endpoints."""

from __future__ import annotations

import logging

from anthropic import APIStatusError
from fastapi import APIRouter, HTTPException
from openai import APIStatusError as OpenAIStatusError

from transcript_digest.api.models import (
    AnalysisResponse,
    ChunkPreview,
    ChunkRequest,
    ChunksResponse,
    SummarizeRequest,
    SummarizeResponse,
    TranscriptRequest,
)
from transcript_digest.chunking.analysis import analyze_chunking_needs, chunk_ceiling
from transcript_digest.chunking.pipeline import chunk_transcript
from transcript_digest.config import settings
from transcript_digest.errors import AllChunksFailedError, InvalidTranscriptError
from transcript_digest.ingestion.formatter import (
    format_transcript,
    transcript_stats,
    validate_entries,
)
from transcript_digest.ingestion.models import FormattedTranscript, TranscriptEntry
from transcript_digest.ingestion.parsers import parse_transcript
from transcript_digest.summarization.llm import get_summarizer
from transcript_digest.summarization.models import ProcessingResult, SummaryOptions
from transcript_digest.summarization.orchestrator import process_large_transcript

logger = logging.getLogger(__name__)

router = APIRouter()


def _provider(request: TranscriptRequest) -> str:
    return request.provider or settings.default_provider


def _model(request: TranscriptRequest) -> str | None:
    # The configured default model belongs to the configured default provider.
    if request.model:
        return request.model
    if request.provider and request.provider != settings.default_provider:
        return None
    return settings.default_model


def _max_tokens(request: TranscriptRequest) -> int | None:
    return request.max_tokens_per_chunk or settings.max_tokens_per_chunk


def _strategy(request: ChunkRequest) -> str | None:
    """Requested or configured strategy; None defers to the analyzer."""
    return request.strategy or settings.chunking_strategy


def _load_entries(request: TranscriptRequest) -> list[TranscriptEntry]:
    """Raw entries from the request, checked for structural errors.

    Raises:
        HTTPException(400): Missing, unparseable or invalid transcript.
    """
    if request.entries:
        entries = [TranscriptEntry(**e.model_dump()) for e in request.entries]
    elif request.content:
        try:
            entries = parse_transcript(request.content, request.format)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
    else:
        raise HTTPException(status_code=400, detail="Provide either 'entries' or 'content'")

    report = validate_entries(entries)
    if not report["is_valid"]:
        raise HTTPException(status_code=400, detail="; ".join(report["errors"]))
    return entries


def _format(request: TranscriptRequest, entries: list[TranscriptEntry]) -> FormattedTranscript:
    try:
        return format_transcript(entries, request.language)
    except InvalidTranscriptError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _load_transcript(request: TranscriptRequest) -> FormattedTranscript:
    return _format(request, _load_entries(request))


@router.post("/api/analyze", response_model=AnalysisResponse)
async def analyze(request: TranscriptRequest) -> AnalysisResponse:
    """Report whether the transcript needs chunking for the chosen model.

    The response also carries validation warnings and transcript statistics.
    """
    entries = _load_entries(request)
    transcript = _format(request, entries)
    analysis = analyze_chunking_needs(
        transcript, _provider(request), _model(request), _max_tokens(request)
    )
    return AnalysisResponse(
        token_count=analysis.token_count,
        context_limit=analysis.context_limit,
        safe_limit=analysis.safe_limit,
        needs_chunking=analysis.needs_chunking,
        forced_chunking=analysis.forced_chunking,
        recommended_strategy=str(analysis.recommended_strategy),
        estimated_chunks=analysis.estimated_chunks,
        complexity=str(analysis.complexity),
        warnings=validate_entries(entries)["warnings"],
        stats=transcript_stats(transcript),
    )


@router.post("/api/chunks", response_model=ChunksResponse)
async def chunks(request: ChunkRequest) -> ChunksResponse:
    """Chunk the transcript the way /api/summarize would and preview each chunk."""
    transcript = _load_transcript(request)
    provider, model = _provider(request), _model(request)
    analysis = analyze_chunking_needs(transcript, provider, model, _max_tokens(request))
    strategy = _strategy(request) or analysis.recommended_strategy
    try:
        result = chunk_transcript(
            transcript,
            provider=provider,
            model=model,
            strategy=strategy,
            max_tokens_per_chunk=chunk_ceiling(analysis, _max_tokens(request)),
            preserve_context=request.preserve_context,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return ChunksResponse(
        strategy=str(strategy),
        transcript_id=result[0].transcript_id if result else None,
        chunks=[
            ChunkPreview(
                chunk_index=c.chunk_index,
                total_chunks=c.total_chunks,
                start=c.time_range.start if c.time_range else None,
                end=c.time_range.end if c.time_range else None,
                duration=c.time_range.duration if c.time_range else None,
                speakers=c.speakers,
                token_count=c.token_count,
                section_count=len(c.sections),
                overlap_sections=c.overlap_sections,
            )
            for c in result
        ],
    )


@router.post("/api/summarize", response_model=SummarizeResponse)
async def summarize(request: SummarizeRequest) -> SummarizeResponse:
    """Summarize the transcript, chunking it first when it is too large."""
    transcript = _load_transcript(request)
    provider = _provider(request)
    try:
        summarizer = get_summarizer(provider)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    options = SummaryOptions(
        provider=provider,
        model=_model(request),
        language=request.language or transcript.metadata.language or settings.default_language,
        strategy=_strategy(request),
        max_tokens_per_chunk=_max_tokens(request),
        preserve_context=request.preserve_context,
        custom_prompt=request.custom_prompt,
    )

    try:
        result = await process_large_transcript(
            transcript,
            summarizer,
            options,
            lambda event: logger.info("%s: %s", event.stage, event.message),
        )
    except AllChunksFailedError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except (APIStatusError, OpenAIStatusError) as exc:
        # Upstream overload or auth failure; keep the JSON response so CORS
        # headers are still attached.
        raise HTTPException(status_code=503, detail=f"LLM unavailable: {exc.message}") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if isinstance(result, ProcessingResult):
        data = result.to_dict()
        return SummarizeResponse(
            summary=data.pop("summary", None),
            chunked=True,
            metadata=data.get("metadata", {}),
            chunk_details=data.get("chunk_details", []),
        )

    metadata = result.get("metadata", {}) if isinstance(result, dict) else {}
    summary = result.get("summary") if isinstance(result, dict) else result
    return SummarizeResponse(summary=summary, chunked=False, metadata=metadata or {})

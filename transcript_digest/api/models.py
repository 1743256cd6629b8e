"""Pydantic request/response schemas for the Transcript Digest API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from transcript_digest.pipeline_config import ChunkingStrategy


class EntryModel(BaseModel):
    """A single raw caption entry."""

    speaker: str | None = None
    text: str
    start_offset: str = "00:00:00"
    end_offset: str = "00:00:00"
    confidence: float = 1.0
    language: str | None = None


class TranscriptRequest(BaseModel):
    """A transcript given either as structured entries or as raw file content."""

    entries: list[EntryModel] | None = None
    content: str | None = None
    format: str = "json"
    language: str | None = None
    provider: str | None = None
    model: str | None = None
    max_tokens_per_chunk: int | None = Field(default=None, gt=0)


class ChunkRequest(TranscriptRequest):
    """Request body for the /api/chunks endpoint."""

    strategy: ChunkingStrategy | None = None
    preserve_context: bool = True


class SummarizeRequest(ChunkRequest):
    """Request body for the /api/summarize endpoint."""

    custom_prompt: str | None = None


class AnalysisResponse(BaseModel):
    """Response body for the /api/analyze endpoint."""

    token_count: int
    context_limit: int
    safe_limit: int
    needs_chunking: bool
    forced_chunking: bool
    recommended_strategy: str
    estimated_chunks: int
    complexity: str
    warnings: list[str] = Field(default_factory=list)
    stats: dict[str, Any] = Field(default_factory=dict)


class ChunkPreview(BaseModel):
    """Summary of one chunk, without its content."""

    chunk_index: int
    total_chunks: int
    start: str | None = None
    end: str | None = None
    duration: str | None = None
    speakers: list[str]
    token_count: int
    section_count: int
    overlap_sections: int = 0


class ChunksResponse(BaseModel):
    """Response body for the /api/chunks endpoint."""

    strategy: str
    transcript_id: str | None = None
    chunks: list[ChunkPreview]


class SummarizeResponse(BaseModel):
    """Response body for the /api/summarize endpoint."""

    summary: Any
    chunked: bool
    metadata: dict[str, Any] = Field(default_factory=dict)
    chunk_details: list[dict[str, Any]] = Field(default_factory=list)

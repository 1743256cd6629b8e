"""Data models for summarization options, progress and results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from typing import Any

from transcript_digest.chunking.models import TimeRange
from transcript_digest.pipeline_config import PromptType

PROCESSING_METHOD_CHUNKED = "large_transcript_chunked"


@dataclass(frozen=True)
class SummaryOptions:
    """Options forwarded to every summarization call.

    The orchestrator reads ``provider``, ``model``, ``strategy``,
    ``max_tokens_per_chunk`` and ``preserve_context``.  ``language`` and
    ``custom_prompt`` pass through untouched.  The per-call fields below them
    are set by the orchestrator.
    """

    provider: str | None = None
    model: str | None = None
    language: str | None = None
    strategy: str | None = None
    max_tokens_per_chunk: int | None = None
    preserve_context: bool = True
    custom_prompt: str | None = None

    prompt_type: PromptType = PromptType.DEFAULT
    is_chunk: bool = False
    chunk_index: int | None = None
    total_chunks: int | None = None
    is_combining: bool = False
    total_sections: int | None = None

    def with_updates(self, **changes: Any) -> SummaryOptions:
        return replace(self, **changes)


@dataclass
class ChunkSummary:
    """The summarizer's output for one chunk, or the error that replaced it."""

    chunk_index: int
    time_range: TimeRange | None
    speakers: list[str]
    token_count: int
    summary: Any

    @property
    def succeeded(self) -> bool:
        if self.summary is None:
            return False
        if isinstance(self.summary, Mapping):
            return self.summary.get("error") is None
        return True


@dataclass
class ChunkDetail:
    """Per-chunk bookkeeping reported with the final result."""

    index: int
    time_range: TimeRange | None
    speakers: list[str]
    token_count: int
    success: bool


@dataclass
class ChunkingSummary:
    strategy: str
    total_tokens: int
    avg_chunk_size: int


@dataclass
class ProcessingMetadata:
    chunks_processed: int
    chunks_failed: int
    chunking_summary: ChunkingSummary
    processing_method: str = PROCESSING_METHOD_CHUNKED


@dataclass
class ProcessingResult:
    """Combined summary of a chunked transcript plus processing bookkeeping.

    ``summary`` is whatever the combine call returned.
    """

    summary: Any
    metadata: ProcessingMetadata
    chunk_details: list[ChunkDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Flatten into one mapping.

        A mapping summary is spread into the top level and its own
        ``metadata`` is merged with the processing metadata; any other summary
        is placed under ``"summary"``.
        """
        if isinstance(self.summary, Mapping):
            data = dict(self.summary)
        else:
            data = {"summary": self.summary}

        summary_metadata = data.get("metadata")
        merged = dict(summary_metadata) if isinstance(summary_metadata, Mapping) else {}
        merged.update(asdict(self.metadata))

        data["metadata"] = merged
        data["chunk_details"] = [asdict(d) for d in self.chunk_details]
        return data


@dataclass
class ProgressEvent:
    """Progress notification sent to the caller's callback."""

    stage: str  # "chunking" | "combining" | "complete"
    current: int
    total: int
    message: str
    chunk_info: dict[str, Any] | None = None
    result: ProcessingResult | None = None

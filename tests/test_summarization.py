"""Tests for the map-reduce summarization orchestrator (no LLM calls)."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from transcript_digest.chunking.limits import get_safe_limit, optimal_chunk_size
from transcript_digest.chunking.models import TimeRange
from transcript_digest.chunking.tokens import estimate_tokens
from transcript_digest.errors import AllChunksFailedError, ProcessingCancelledError
from transcript_digest.ingestion.formatter import render_content
from transcript_digest.ingestion.models import (
    FormattedTranscript,
    TranscriptMetadata,
    TranscriptSection,
)
from transcript_digest.ingestion.timecodes import format_timestamp
from transcript_digest.pipeline_config import PromptType
from transcript_digest.summarization.models import (
    PROCESSING_METHOD_CHUNKED,
    ChunkSummary,
    ProcessingResult,
    ProgressEvent,
    SummaryOptions,
)
from transcript_digest.summarization.orchestrator import (
    build_combining_transcript,
    process_large_transcript,
)


def _transcript(speakers: str = "ABA", chars: int = 175) -> FormattedTranscript:
    sections = [
        TranscriptSection(
            sp, format_timestamp(i * 10), format_timestamp((i + 1) * 10), sp.lower() * chars
        )
        for i, sp in enumerate(speakers)
    ]
    metadata = TranscriptMetadata(
        participants=sorted(set(speakers)),
        duration=sections[-1].end_time,
        language="en",
        total_entries=len(sections),
        start_time=sections[0].start_time,
        end_time=sections[-1].end_time,
    )
    return FormattedTranscript(metadata=metadata, content=render_content(sections), sections=sections)


CHUNKED = SummaryOptions(provider="openai", strategy="speaker_turns", max_tokens_per_chunk=60)


class RecordingSummarizer:
    """Fake summarizer that records each call and can fail selected chunks."""

    def __init__(self, fail_chunks: set[int] | None = None, result: Any = "ok") -> None:
        self.fail_chunks = fail_chunks or set()
        self.result = result
        self.calls: list[tuple[FormattedTranscript, SummaryOptions]] = []

    def __call__(self, transcript: FormattedTranscript, options: SummaryOptions) -> Any:
        self.calls.append((transcript, options))
        if options.is_chunk and options.chunk_index in self.fail_chunks:
            raise RuntimeError(f"chunk {options.chunk_index} exploded")
        if options.prompt_type is PromptType.COMBINE:
            return {"summary": "final summary", "metadata": {"model": "fake"}}
        if options.is_chunk:
            return {"summary": f"summary of chunk {options.chunk_index}"}
        return self.result


def _run(transcript: FormattedTranscript, summarize: Any, options: SummaryOptions, **kwargs: Any) -> Any:
    return asyncio.run(process_large_transcript(transcript, summarize, options, **kwargs))


class TestPassthrough:
    def test_small_transcript_single_call(self) -> None:
        sentinel = {"summary": "whole", "extra": object()}
        summarize = RecordingSummarizer(result=sentinel)
        options = SummaryOptions(provider="openai", model="gpt-4.1", language="en")

        result = _run(_transcript(), summarize, options)

        assert result is sentinel
        assert len(summarize.calls) == 1
        transcript, passed = summarize.calls[0]
        assert passed is options
        assert passed.prompt_type is PromptType.DEFAULT

    def test_default_options(self) -> None:
        summarize = RecordingSummarizer(result="plain")
        assert asyncio.run(process_large_transcript(_transcript(), summarize)) == "plain"


class TestChunkedProcessing:
    def test_three_turn_example(self) -> None:
        summarize = RecordingSummarizer()
        result = _run(_transcript(), summarize, CHUNKED)

        assert isinstance(result, ProcessingResult)
        assert len(summarize.calls) == 4
        chunk_calls = summarize.calls[:3]
        assert [o.chunk_index for _, o in chunk_calls] == [0, 1, 2]
        assert all(o.prompt_type is PromptType.SECTION and o.total_chunks == 3 for _, o in chunk_calls)
        assert [c.overlap_sections for c, _ in chunk_calls] == [0, 1, 1]

        combining, final = summarize.calls[3]
        assert final.prompt_type is PromptType.COMBINE
        assert final.is_combining is True
        assert final.total_sections == 3
        assert combining.sections == []
        assert combining.content.count("## Section") == 3
        assert combining.metadata.total_entries == 3

        assert result.summary == {"summary": "final summary", "metadata": {"model": "fake"}}
        assert result.metadata.chunks_processed == 3
        assert result.metadata.chunks_failed == 0
        assert result.metadata.processing_method == PROCESSING_METHOD_CHUNKED
        assert result.metadata.chunking_summary.strategy == "speaker_turns"
        assert [d.index for d in result.chunk_details] == [0, 1, 2]
        assert all(d.success for d in result.chunk_details)

    def test_options_pass_through(self) -> None:
        summarize = RecordingSummarizer()
        options = SummaryOptions(
            provider="openai",
            language="zh-TW",
            custom_prompt="Be brief.",
            strategy="speaker_turns",
            max_tokens_per_chunk=60,
        )
        _run(_transcript(), summarize, options)
        assert {o.language for _, o in summarize.calls} == {"zh-TW"}
        assert {o.custom_prompt for _, o in summarize.calls} == {"Be brief."}

    def test_chunk_calls_are_sequential(self) -> None:
        running = 0
        peak = 0

        async def summarize(transcript: FormattedTranscript, options: SummaryOptions) -> str:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0)
            running -= 1
            return "section"

        _run(_transcript(), summarize, CHUNKED)
        assert peak == 1

    def test_large_ceiling_does_not_override_model_chunk_size(self) -> None:
        # ~20k tokens: over gpt-3.5-turbo's 12k safe limit, under the 50k ceiling
        transcript = _transcript("AB" * 20, chars=1750)
        options = SummaryOptions(
            provider="openai",
            model="gpt-3.5-turbo",
            strategy="speaker_turns",
            max_tokens_per_chunk=50_000,
        )
        summarize = RecordingSummarizer()
        _run(transcript, summarize, options)

        chunks = [c for c, o in summarize.calls if o.is_chunk]
        limit = optimal_chunk_size("openai", "gpt-3.5-turbo")
        assert len(chunks) > 1
        for chunk in chunks:
            assert sum(estimate_tokens(s.text) for s in chunk.original_sections) <= limit
            assert chunk.token_count <= get_safe_limit("openai", "gpt-3.5-turbo")

    def test_average_chunk_size(self) -> None:
        result = _run(_transcript(), RecordingSummarizer(), CHUNKED)
        total = sum(d.token_count for d in result.chunk_details)
        summary = result.metadata.chunking_summary
        assert summary.total_tokens == total
        assert summary.avg_chunk_size == round(total / 3)


class TestFailureIsolation:
    def test_one_failed_chunk(self) -> None:
        summarize = RecordingSummarizer(fail_chunks={1})
        result = _run(_transcript(), summarize, CHUNKED)

        assert result.metadata.chunks_processed == 2
        assert result.metadata.chunks_failed == 1
        assert [d.success for d in result.chunk_details] == [True, False, True]

        combining, final = summarize.calls[-1]
        assert final.total_sections == 2
        assert "summary of chunk 0" in combining.content
        assert "summary of chunk 2" in combining.content
        assert "exploded" not in combining.content

    def test_none_summary_counts_as_failure(self) -> None:
        def summarize(transcript: FormattedTranscript, options: SummaryOptions) -> Any:
            if options.is_chunk and options.chunk_index == 0:
                return None
            return "text"

        result = _run(_transcript(), summarize, CHUNKED)
        assert result.metadata.chunks_failed == 1
        assert [d.success for d in result.chunk_details] == [False, True, True]

    def test_all_chunks_failed(self) -> None:
        summarize = RecordingSummarizer(fail_chunks={0, 1, 2})
        with pytest.raises(AllChunksFailedError, match=r"All chunk processing failed \(3 chunks\)"):
            _run(_transcript(), summarize, CHUNKED)
        assert all(o.prompt_type is PromptType.SECTION for _, o in summarize.calls)

    def test_combine_failure_propagates(self) -> None:
        def summarize(transcript: FormattedTranscript, options: SummaryOptions) -> str:
            if options.is_combining:
                raise RuntimeError("combine down")
            return "text"

        with pytest.raises(RuntimeError, match="combine down"):
            _run(_transcript(), summarize, CHUNKED)


class TestProgressAndCancellation:
    def test_progress_events(self) -> None:
        events: list[ProgressEvent] = []
        result = _run(_transcript(), RecordingSummarizer(), CHUNKED, progress_callback=events.append)

        assert [e.stage for e in events] == ["chunking", "chunking", "chunking", "combining", "complete"]
        assert [e.current for e in events[:3]] == [1, 2, 3]
        assert all(e.total == 3 for e in events)
        assert events[0].chunk_info is not None
        assert set(events[0].chunk_info) == {"time_range", "speakers", "token_count"}
        assert events[-1].result is result

    def test_no_events_without_chunking(self) -> None:
        events: list[ProgressEvent] = []
        _run(
            _transcript(),
            RecordingSummarizer(),
            SummaryOptions(provider="openai"),
            progress_callback=events.append,
        )
        assert events == []

    def test_cancel_between_chunks(self) -> None:
        cancel = asyncio.Event()

        def summarize(transcript: FormattedTranscript, options: SummaryOptions) -> str:
            cancel.set()
            return "text"

        async def run() -> None:
            await process_large_transcript(_transcript(), summarize, CHUNKED, cancel_event=cancel)

        with pytest.raises(ProcessingCancelledError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.completed == 1
        assert exc_info.value.total == 3


class TestResultShape:
    def test_to_dict_merges_metadata(self) -> None:
        data = _run(_transcript(), RecordingSummarizer(), CHUNKED).to_dict()
        assert data["summary"] == "final summary"
        assert data["metadata"]["model"] == "fake"
        assert data["metadata"]["chunks_processed"] == 3
        assert data["metadata"]["processing_method"] == PROCESSING_METHOD_CHUNKED
        assert len(data["chunk_details"]) == 3
        assert data["chunk_details"][0]["time_range"]["start"] == "00:00:00"

    def test_to_dict_plain_summary(self) -> None:
        def summarize(transcript: FormattedTranscript, options: SummaryOptions) -> str:
            return "plain"

        data = _run(_transcript(), summarize, CHUNKED).to_dict()
        assert data["summary"] == "plain"
        assert data["metadata"]["chunks_failed"] == 0

    def test_combining_transcript_format(self) -> None:
        summaries = [
            ChunkSummary(0, TimeRange("00:00:00", "00:05:00", "00:05:00"), ["A", "B"], 10, {"summary": "one"}),
            ChunkSummary(1, TimeRange("00:05:00", "00:09:00", "00:04:00"), ["B"], 10, "two"),
        ]
        combining = build_combining_transcript(summaries, TranscriptMetadata(participants=["A", "B"]))
        assert combining.content == (
            "## Section 1 (00:00:00 - 00:05:00, Speakers: A, B)\none\n\n"
            "## Section 2 (00:05:00 - 00:09:00, Speakers: B)\ntwo"
        )
        assert combining.metadata.participants == ["A", "B"]
        assert combining.metadata.total_entries == 2

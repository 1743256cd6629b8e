"""Tests for API endpoints (no external API keys required)."""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from transcript_digest.api.main import app
from transcript_digest.config import settings
from transcript_digest.ingestion.timecodes import format_timestamp
from transcript_digest.summarization.models import SummaryOptions

client = TestClient(app)

ENTRIES = [
    {
        "speaker": speaker,
        "text": speaker.lower() * 175,
        "start_offset": f"00:00:{i * 10:02d}",
        "end_offset": f"00:00:{(i + 1) * 10:02d}",
    }
    for i, speaker in enumerate("ABA")
]


def _fake_summarizer(fail: bool = False) -> Any:
    def summarize(transcript: Any, options: SummaryOptions) -> dict[str, Any]:
        if fail and options.is_chunk:
            raise RuntimeError("provider down")
        return {"summary": f"{options.prompt_type} summary", "metadata": {"model": "fake"}}

    return summarize


def test_health() -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestAnalyze:
    def test_entries(self) -> None:
        response = client.post(
            "/api/analyze",
            json={"entries": ENTRIES, "provider": "openai", "model": "gpt-4.1"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["needs_chunking"] is False
        assert body["context_limit"] == 1_000_000
        assert body["estimated_chunks"] == 1

    def test_forced_by_max_tokens(self) -> None:
        response = client.post(
            "/api/analyze", json={"entries": ENTRIES, "max_tokens_per_chunk": 60}
        )
        body = response.json()
        assert body["needs_chunking"] is True
        assert body["forced_chunking"] is True

    def test_raw_content(self) -> None:
        content = "[00:00:01] Alice: Hello.\n[00:00:05] Bob: Hi."
        response = client.post("/api/analyze", json={"content": content, "format": "text"})
        assert response.status_code == 200

    def test_missing_transcript(self) -> None:
        response = client.post("/api/analyze", json={})
        assert response.status_code == 400

    def test_empty_entries(self) -> None:
        response = client.post("/api/analyze", json={"content": "   ", "format": "text"})
        assert response.status_code == 400

    def test_bad_format(self) -> None:
        response = client.post("/api/analyze", json={"content": "x", "format": "docx"})
        assert response.status_code == 400
        assert "Unknown transcript format" in response.json()["detail"]


class TestChunks:
    def test_preview(self) -> None:
        response = client.post(
            "/api/chunks",
            json={"entries": ENTRIES, "strategy": "speaker_turns", "max_tokens_per_chunk": 60},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["strategy"] == "speaker_turns"
        assert [c["chunk_index"] for c in body["chunks"]] == [0, 1, 2]
        assert [c["overlap_sections"] for c in body["chunks"]] == [0, 1, 1]
        assert body["chunks"][0]["start"] == "00:00:00"

    def test_invalid_strategy(self) -> None:
        response = client.post("/api/chunks", json={"entries": ENTRIES, "strategy": "naive"})
        assert response.status_code == 422


class TestSummarize:
    @patch("transcript_digest.api.routes.summarize.get_summarizer")
    def test_single_pass(self, mock_get: Any) -> None:
        mock_get.return_value = _fake_summarizer()
        response = client.post("/api/summarize", json={"entries": ENTRIES, "provider": "openai"})
        assert response.status_code == 200
        body = response.json()
        assert body["chunked"] is False
        assert body["summary"] == "default summary"
        mock_get.assert_called_once_with("openai")

    @patch("transcript_digest.api.routes.summarize.get_summarizer")
    def test_chunked(self, mock_get: Any) -> None:
        mock_get.return_value = _fake_summarizer()
        response = client.post(
            "/api/summarize",
            json={"entries": ENTRIES, "strategy": "speaker_turns", "max_tokens_per_chunk": 60},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["chunked"] is True
        assert body["summary"] == "combine summary"
        assert body["metadata"]["chunks_processed"] == 3
        assert body["metadata"]["model"] == "fake"
        assert len(body["chunk_details"]) == 3

    @patch("transcript_digest.api.routes.summarize.get_summarizer")
    def test_all_chunks_failed_returns_502(self, mock_get: Any) -> None:
        mock_get.return_value = _fake_summarizer(fail=True)
        response = client.post(
            "/api/summarize", json={"entries": ENTRIES, "max_tokens_per_chunk": 60}
        )
        assert response.status_code == 502
        assert "All chunk processing failed" in response.json()["detail"]

    def test_unknown_provider_returns_400(self) -> None:
        response = client.post("/api/summarize", json={"entries": ENTRIES, "provider": "cohere"})
        assert response.status_code == 400


def _turns(speakers: str, chars: int) -> list[dict[str, Any]]:
    return [
        {
            "speaker": speaker,
            "text": speaker.lower() * chars,
            "start_offset": format_timestamp(i * 10),
            "end_offset": format_timestamp((i + 1) * 10),
        }
        for i, speaker in enumerate(speakers)
    ]


# Two speakers with 150-token turns: the analyzer recommends speaker_turns
LONG_TURNS = _turns("ABAB", 525)


class TestValidation:
    def test_missing_timestamp_rejected(self) -> None:
        entries = [dict(ENTRIES[0], start_offset=""), *ENTRIES[1:]]
        response = client.post("/api/analyze", json={"entries": entries})
        assert response.status_code == 400
        assert "Entry 0 missing timestamp information" in response.json()["detail"]

    def test_warnings_and_stats(self) -> None:
        entries = [dict(ENTRIES[0], confidence=0.2), *ENTRIES[1:]]
        response = client.post("/api/analyze", json={"entries": entries})
        assert response.status_code == 200
        body = response.json()
        assert body["warnings"] == ["Entry 0 has low confidence (0.2)"]
        assert body["stats"]["total_sections"] == 3
        assert body["stats"]["total_participants"] == 2
        assert body["stats"]["speaking_time"] == {"A": "00:00:20", "B": "00:00:10"}


class TestStrategyDefault:
    """Preview and summarize pick the same strategy when none is requested."""

    @patch("transcript_digest.api.routes.summarize.get_summarizer")
    def test_analyzer_recommendation(self, mock_get: Any) -> None:
        mock_get.return_value = _fake_summarizer()
        request = {"entries": LONG_TURNS, "max_tokens_per_chunk": 200}

        preview = client.post("/api/chunks", json=request).json()
        summary = client.post("/api/summarize", json=request).json()

        assert preview["strategy"] == "speaker_turns"
        assert summary["metadata"]["chunking_summary"]["strategy"] == "speaker_turns"

    @patch("transcript_digest.api.routes.summarize.get_summarizer")
    def test_configured_strategy(self, mock_get: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "chunking_strategy", "time_based")
        mock_get.return_value = _fake_summarizer()
        request = {"entries": LONG_TURNS, "max_tokens_per_chunk": 200}

        preview = client.post("/api/chunks", json=request).json()
        summary = client.post("/api/summarize", json=request).json()

        assert preview["strategy"] == "time_based"
        assert summary["metadata"]["chunking_summary"]["strategy"] == "time_based"

    def test_model_chunk_size_when_not_forced(self) -> None:
        # The ceiling is above the token count, so the model's safe limit drives chunking
        request = {
            "entries": _turns("AB" * 60, 525),
            "provider": "openai",
            "model": "gpt-3.5-turbo",
            "max_tokens_per_chunk": 50_000,
        }
        analysis = client.post("/api/analyze", json=request).json()
        preview = client.post("/api/chunks", json=request).json()

        assert analysis["needs_chunking"] is True
        assert analysis["forced_chunking"] is False
        assert len(preview["chunks"]) > 1
        assert all(c["token_count"] <= analysis["safe_limit"] for c in preview["chunks"])

"""Data models for transcript chunks."""

from __future__ import annotations

from dataclasses import dataclass, field

from transcript_digest.ingestion.models import FormattedTranscript, TranscriptSection


@dataclass(frozen=True)
class TimeRange:
    """Start/end of a chunk plus the derived ``HH:MM:SS`` duration."""

    start: str
    end: str
    duration: str


@dataclass
class Chunk(FormattedTranscript):
    """A token-bounded, chronologically contiguous slice of a transcript.

    Structurally a FormattedTranscript, so summarizers can treat chunks and
    whole transcripts alike.  The enrichment fields are filled in after the
    boundary strategy has run.
    """

    chunk_index: int = 0
    total_chunks: int = 0
    chunking_strategy: str | None = None
    token_count: int = 0
    speakers: list[str] = field(default_factory=list)
    time_range: TimeRange | None = None
    transcript_id: str | None = None
    has_overlap: bool = False
    overlap_sections: int = 0

    @property
    def original_sections(self) -> list[TranscriptSection]:
        """Sections that belong to this chunk, excluding repeated context."""
        return [s for s in self.sections if not s.is_overlap]

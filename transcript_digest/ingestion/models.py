"""Data models for raw transcript entries and formatted transcripts."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TranscriptEntry:
    """One raw caption entry as delivered by the transcript source."""

    speaker: str | None
    text: str
    start_offset: str  # HH:MM:SS or HH:MM:SS.fffffff
    end_offset: str
    confidence: float = 1.0
    language: str | None = None


@dataclass(frozen=True)
class TranscriptSection:
    """A contiguous block of speech by one speaker.

    Sections are never mutated; overlap and split copies are derived with
    :func:`dataclasses.replace`.
    """

    speaker: str
    start_time: str  # HH:MM:SS
    end_time: str
    text: str
    confidence: float = 1.0
    is_overlap: bool = False  # repeated context from the previous chunk
    is_split: bool = False  # fragment of an oversized section


@dataclass
class TranscriptMetadata:
    """Descriptive metadata for a transcript or a chunk of one."""

    participants: list[str] = field(default_factory=list)
    duration: str = "00:00:00"
    language: str = "en"
    total_entries: int = 0
    start_time: str = "00:00:00"
    end_time: str = "00:00:00"


@dataclass
class FormattedTranscript:
    """An AI-ready transcript: metadata, rendered content and ordered sections."""

    metadata: TranscriptMetadata
    content: str
    sections: list[TranscriptSection]

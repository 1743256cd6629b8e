"""Turn raw transcript entries into an AI-ready FormattedTranscript.

Consecutive entries by the same speaker are merged into one section, timestamps
are reduced to ``HH:MM:SS`` and the sections are rendered as
``[start] speaker: text`` lines.  :func:`render_content` is the default renderer
handed to the chunking core.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from transcript_digest.errors import InvalidTranscriptError
from transcript_digest.ingestion.models import (
    FormattedTranscript,
    TranscriptEntry,
    TranscriptMetadata,
    TranscriptSection,
)
from transcript_digest.ingestion.timecodes import (
    duration_between,
    format_timestamp,
    parse_timestamp,
    strip_fraction,
)

DEFAULT_LANGUAGE = "zh-tw"
UNKNOWN_SPEAKER = "Unknown"
LOW_CONFIDENCE = 0.5


def render_content(sections: Sequence[TranscriptSection]) -> str:
    """Render sections as newline-joined ``[HH:MM:SS] Speaker: text`` lines."""
    return "\n".join(f"[{s.start_time}] {s.speaker}: {s.text}" for s in sections)


def extract_participants(entries: Sequence[TranscriptEntry]) -> list[str]:
    """Unique, sorted speaker names; blank names are ignored."""
    return sorted({e.speaker.strip() for e in entries if e.speaker and e.speaker.strip()})


def group_by_speaker(entries: Sequence[TranscriptEntry]) -> list[TranscriptSection]:
    """Merge consecutive entries by the same speaker into sections.

    The merged confidence is the running pairwise average, so later entries
    weigh more than earlier ones.
    """
    sections: list[TranscriptSection] = []
    speaker: str | None = None
    start = end = ""
    texts: list[str] = []
    confidence = 0.0

    for entry in entries:
        entry_speaker = entry.speaker or UNKNOWN_SPEAKER
        if texts and entry_speaker == speaker:
            texts.append(entry.text)
            end = strip_fraction(entry.end_offset)
            confidence = (confidence + entry.confidence) / 2
            continue

        if texts and speaker is not None:
            sections.append(TranscriptSection(speaker, start, end, " ".join(texts), confidence))
        speaker = entry_speaker
        start = strip_fraction(entry.start_offset)
        end = strip_fraction(entry.end_offset)
        texts = [entry.text]
        confidence = entry.confidence

    if texts and speaker is not None:
        sections.append(TranscriptSection(speaker, start, end, " ".join(texts), confidence))

    return sections


def format_transcript(
    entries: Sequence[TranscriptEntry],
    language: str | None = None,
) -> FormattedTranscript:
    """Format raw entries for AI processing.

    Args:
        entries: Chronological transcript entries.
        language: Overrides the language tag of the first entry.

    Returns:
        A FormattedTranscript with metadata, content and speaker sections.

    Raises:
        InvalidTranscriptError: If there are no entries.
    """
    if not entries:
        raise InvalidTranscriptError("Invalid transcript: no entries found")

    first, last = entries[0], entries[-1]
    sections = group_by_speaker(entries)

    metadata = TranscriptMetadata(
        participants=extract_participants(entries),
        duration=duration_between(first.start_offset, last.end_offset),
        language=language or first.language or DEFAULT_LANGUAGE,
        total_entries=len(entries),
        start_time=strip_fraction(first.start_offset),
        end_time=strip_fraction(last.end_offset),
    )
    return FormattedTranscript(metadata=metadata, content=render_content(sections), sections=sections)


def validate_entries(entries: Sequence[TranscriptEntry] | None) -> dict[str, Any]:
    """Check raw entries for structural problems before formatting.

    Returns:
        ``{"is_valid": bool, "errors": [...], "warnings": [...]}``.  Missing
        timestamps are errors; empty text, missing speakers and low confidence
        are warnings.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if entries is None:
        errors.append("Transcript is missing")
        return {"is_valid": False, "errors": errors, "warnings": warnings}
    if not entries:
        warnings.append("Transcript contains no entries")

    for index, entry in enumerate(entries):
        if not entry.text or not entry.text.strip():
            warnings.append(f"Entry {index} has empty text")
        if not entry.speaker:
            warnings.append(f"Entry {index} missing speaker name")
        if not entry.start_offset or not entry.end_offset:
            errors.append(f"Entry {index} missing timestamp information")
        if entry.confidence < LOW_CONFIDENCE:
            warnings.append(f"Entry {index} has low confidence ({entry.confidence})")

    return {"is_valid": not errors, "errors": errors, "warnings": warnings}


def transcript_stats(transcript: FormattedTranscript) -> dict[str, Any]:
    """Summary statistics: counts, average confidence and speaking time per speaker."""
    speaking: dict[str, float] = {}
    for section in transcript.sections:
        elapsed = parse_timestamp(section.end_time) - parse_timestamp(section.start_time)
        speaking[section.speaker] = speaking.get(section.speaker, 0.0) + elapsed

    sections = transcript.sections
    avg_confidence = sum(s.confidence for s in sections) / len(sections) if sections else 0.0

    return {
        "total_sections": len(sections),
        "total_participants": len(transcript.metadata.participants),
        "word_count": len(transcript.content.split()),
        "average_confidence": round(avg_confidence, 2),
        "speaking_time": {name: format_timestamp(secs) for name, secs in speaking.items()},
        "duration": transcript.metadata.duration,
    }

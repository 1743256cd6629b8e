"""Transcript parsers for VTT, Stream JSON, and timestamped plain text."""

from __future__ import annotations

import json
import re
from collections.abc import Callable

from transcript_digest.ingestion.models import TranscriptEntry

_TIMESTAMP_RE = re.compile(
    r"(\d{1,2}:\d{2}:\d{2}[.,]\d{3})\s*-->\s*(\d{1,2}:\d{2}:\d{2}[.,]\d{3})"
)
_SPEAKER_RE = re.compile(r"^(.+?):\s+(.+)$")
# Teams <v SpeakerName> tag; the closing </v> is optional in WebVTT.
_TEAMS_VOICE_RE = re.compile(r"^<v ([^>]+)>(.*?)(?:</v>)?$", re.DOTALL)
_PLAIN_LINE_RE = re.compile(r"^\[(\d{1,2}:\d{2}:\d{2}(?:\.\d+)?)\]\s*(.*)$")


def parse_vtt(content: str) -> list[TranscriptEntry]:
    """Parse a WebVTT file into transcript entries.

    Handles timestamps like ``00:01:23.456 --> 00:01:30.789`` and speaker labels
    in two formats:

    - Standard colon-style: ``Speaker 1: Hello``
    - Microsoft Teams inline voice tags: ``<v SpeakerName>Hello</v>``

    Teams ``<v SpeakerName>`` tags take precedence over colon-style labels.
    """
    entries: list[TranscriptEntry] = []

    lines = content.strip().splitlines()
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        match = _TIMESTAMP_RE.search(line)
        if not match:
            i += 1
            continue

        start = match.group(1).replace(",", ".")
        end = match.group(2).replace(",", ".")

        # Collect text lines until blank line or next timestamp / end
        text_lines: list[str] = []
        i += 1
        while i < len(lines) and lines[i].strip() and not _TIMESTAMP_RE.search(lines[i]):
            text_lines.append(lines[i].strip())
            i += 1

        full_text = " ".join(text_lines)
        speaker: str | None = None

        teams_match = _TEAMS_VOICE_RE.match(full_text)
        if teams_match:
            speaker = teams_match.group(1).strip()
            full_text = teams_match.group(2).strip()
        else:
            speaker_match = _SPEAKER_RE.match(full_text)
            if speaker_match:
                speaker = speaker_match.group(1)
                full_text = speaker_match.group(2)

        if full_text:
            entries.append(
                TranscriptEntry(
                    speaker=speaker,
                    text=full_text,
                    start_offset=start,
                    end_offset=end,
                )
            )

    return entries


def parse_stream_json(content: str) -> list[TranscriptEntry]:
    """Parse a Stream transcript API response.

    Expected shape::

        {"entries": [{"speakerDisplayName": "...", "text": "...",
                      "startOffset": "00:00:01.2000000",
                      "endOffset": "00:00:04.5000000",
                      "confidence": 0.93, "spokenLanguageTag": "en-us"}]}

    A bare list of entry objects is accepted too.
    """
    data = json.loads(content)
    if isinstance(data, dict):
        if "entries" not in data:
            msg = f"Unrecognized JSON transcript format. Keys: {list(data.keys())}"
            raise ValueError(msg)
        raw_entries = data["entries"]
    else:
        raw_entries = data

    entries: list[TranscriptEntry] = []
    for item in raw_entries:
        entries.append(
            TranscriptEntry(
                speaker=item.get("speakerDisplayName"),
                text=item.get("text", ""),
                start_offset=item.get("startOffset", "00:00:00"),
                end_offset=item.get("endOffset", "00:00:00"),
                confidence=float(item.get("confidence", 1.0)),
                language=item.get("spokenLanguageTag"),
            )
        )
    return entries


def parse_plain_text(content: str) -> list[TranscriptEntry]:
    """Parse ``[HH:MM:SS] Speaker: text`` lines.

    Each entry ends where the next one starts; the last entry is zero-length.
    Lines without a leading timestamp continue the previous entry.
    """
    entries: list[TranscriptEntry] = []

    for line in content.strip().splitlines():
        line = line.strip()
        if not line:
            continue

        match = _PLAIN_LINE_RE.match(line)
        if not match:
            if entries:
                entries[-1].text = f"{entries[-1].text} {line}"
            continue

        timestamp, rest = match.group(1), match.group(2)
        speaker: str | None = None
        speaker_match = _SPEAKER_RE.match(rest)
        if speaker_match:
            speaker, rest = speaker_match.group(1), speaker_match.group(2)

        if entries:
            entries[-1].end_offset = timestamp
        entries.append(
            TranscriptEntry(speaker=speaker, text=rest, start_offset=timestamp, end_offset=timestamp)
        )

    return entries


def parse_transcript(content: str, format: str) -> list[TranscriptEntry]:
    """Dispatch to the correct parser based on *format*.

    Args:
        content: Raw transcript text.
        format: One of ``"vtt"``, ``"json"`` / ``"stream"``, or
                ``"text"`` / ``"txt"``.

    Returns:
        Parsed transcript entries.

    Raises:
        ValueError: If *format* is not recognized.
    """
    dispatch: dict[str, Callable[[str], list[TranscriptEntry]]] = {
        "vtt": parse_vtt,
        "json": parse_stream_json,
        "stream": parse_stream_json,
        "text": parse_plain_text,
        "txt": parse_plain_text,
    }

    parser = dispatch.get(format)
    if parser is None:
        msg = f"Unknown transcript format: {format!r}. Supported: {list(dispatch.keys())}"
        raise ValueError(msg)

    return parser(content)

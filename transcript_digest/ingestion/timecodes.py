"""Helpers for ``HH:MM:SS[.fff]`` timestamps."""

from __future__ import annotations


def parse_timestamp(ts: str) -> float:
    """Convert ``HH:MM:SS`` (optionally with a fraction) to seconds.

    ``MM:SS`` is accepted as well; anything else parses to ``0.0``.
    """
    parts = ts.strip().replace(",", ".").split(":")
    if len(parts) == 3:
        hours, minutes, seconds = parts
    elif len(parts) == 2:
        hours = "0"
        minutes, seconds = parts
    else:
        return 0.0
    try:
        return int(hours) * 3600 + int(minutes) * 60 + float(seconds)
    except ValueError:
        return 0.0


def format_timestamp(total_seconds: float) -> str:
    """Format seconds as ``HH:MM:SS`` (fractions are truncated)."""
    total = max(0, int(total_seconds))
    hours = total // 3600
    minutes = (total % 3600) // 60
    seconds = total % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def strip_fraction(ts: str) -> str:
    """Drop the fractional part: ``00:01:02.5000000`` -> ``00:01:02``."""
    return ts.strip().split(".")[0]


def duration_between(start: str, end: str) -> str:
    """Elapsed time between two timestamps as ``HH:MM:SS``."""
    return format_timestamp(parse_timestamp(end) - parse_timestamp(start))

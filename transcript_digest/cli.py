"""Command-line entry point for analyzing, chunking and summarizing transcripts.

Run as a module::

    python -m transcript_digest.cli summarize meeting.json \\
        --provider anthropic --strategy hybrid --output summary.json

Use ``--help`` for full argument documentation.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from transcript_digest.chunking.analysis import analyze_chunking_needs, chunk_ceiling
from transcript_digest.chunking.pipeline import chunk_transcript
from transcript_digest.config import settings
from transcript_digest.errors import InvalidTranscriptError, TranscriptDigestError
from transcript_digest.ingestion.formatter import (
    format_transcript,
    transcript_stats,
    validate_entries,
)
from transcript_digest.ingestion.models import FormattedTranscript, TranscriptEntry
from transcript_digest.ingestion.parsers import parse_transcript
from transcript_digest.pipeline_config import ChunkingStrategy, Provider
from transcript_digest.summarization.llm import get_summarizer
from transcript_digest.summarization.models import ProcessingResult, ProgressEvent, SummaryOptions
from transcript_digest.summarization.orchestrator import process_large_transcript

logger = logging.getLogger(__name__)

# File extension -> parser format
FORMAT_BY_SUFFIX = {".vtt": "vtt", ".json": "json", ".txt": "text"}


def _detect_format(path: Path, explicit: str | None) -> str:
    if explicit:
        return explicit
    return FORMAT_BY_SUFFIX.get(path.suffix.lower(), "text")


def load_entries(path: Path, fmt: str | None = None) -> list[TranscriptEntry]:
    """Read and parse a transcript file, rejecting structurally invalid entries.

    Raises:
        InvalidTranscriptError: If any entry lacks timestamps.
    """
    content = path.read_text(encoding="utf-8")
    entries = parse_transcript(content, _detect_format(path, fmt))
    report = validate_entries(entries)
    if not report["is_valid"]:
        raise InvalidTranscriptError("; ".join(report["errors"]))
    for warning in report["warnings"]:
        logger.warning("%s: %s", path, warning)
    return entries


def load_transcript(path: Path, fmt: str | None = None, language: str | None = None) -> FormattedTranscript:
    """Read, validate and format a transcript file."""
    return format_transcript(load_entries(path, fmt), language)


def _model(args: argparse.Namespace) -> str | None:
    if args.model:
        return args.model
    return settings.default_model if args.provider == settings.default_provider else None


def _strategy(args: argparse.Namespace) -> str | None:
    # None defers to the analyzer's recommendation
    return args.strategy or settings.chunking_strategy


def run_analyze(args: argparse.Namespace) -> dict[str, Any]:
    entries = load_entries(args.file, args.format)
    transcript = format_transcript(entries, args.language)
    analysis = analyze_chunking_needs(transcript, args.provider, _model(args), args.max_tokens)
    return {
        **asdict(analysis),
        "warnings": validate_entries(entries)["warnings"],
        "stats": transcript_stats(transcript),
    }


def run_chunk(args: argparse.Namespace) -> dict[str, Any]:
    transcript = load_transcript(args.file, args.format, args.language)
    analysis = analyze_chunking_needs(transcript, args.provider, _model(args), args.max_tokens)
    strategy = _strategy(args) or analysis.recommended_strategy
    chunks = chunk_transcript(
        transcript,
        provider=args.provider,
        model=_model(args),
        strategy=strategy,
        max_tokens_per_chunk=chunk_ceiling(analysis, args.max_tokens),
        preserve_context=not args.no_overlap,
    )
    return {
        "strategy": str(strategy),
        "chunks": [
            {
                "chunk_index": c.chunk_index,
                "time_range": asdict(c.time_range) if c.time_range else None,
                "speakers": c.speakers,
                "token_count": c.token_count,
                "overlap_sections": c.overlap_sections,
                "content": c.content,
            }
            for c in chunks
        ],
    }


def _log_progress(event: ProgressEvent) -> None:
    logger.info("[%s %d/%d] %s", event.stage, event.current, event.total, event.message)


def run_summarize(args: argparse.Namespace) -> dict[str, Any]:
    transcript = load_transcript(args.file, args.format, args.language)
    options = SummaryOptions(
        provider=args.provider,
        model=_model(args),
        language=args.language or transcript.metadata.language,
        strategy=_strategy(args),
        max_tokens_per_chunk=args.max_tokens,
        preserve_context=not args.no_overlap,
    )
    result = asyncio.run(
        process_large_transcript(transcript, get_summarizer(args.provider), options, _log_progress)
    )
    if isinstance(result, ProcessingResult):
        return result.to_dict()
    return result if isinstance(result, dict) else {"summary": result}


COMMANDS = {
    "analyze": run_analyze,
    "chunk": run_chunk,
    "summarize": run_summarize,
}


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="python -m transcript_digest.cli",
        description=(
            "Transcript Digest\n\n"
            "analyze    report token count, limits and the recommended strategy\n"
            "chunk      split the transcript and print each chunk\n"
            "summarize  summarize with an LLM, chunking first when needed"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", choices=sorted(COMMANDS))
    parser.add_argument("file", type=Path, metavar="FILE", help="Transcript file (.vtt, .json, .txt).")
    parser.add_argument(
        "--format",
        choices=["vtt", "json", "stream", "text", "txt"],
        default=None,
        help="Transcript format. Detected from the file extension when omitted.",
    )
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=settings.default_provider,
        help=f"LLM provider (default: {settings.default_provider}).",
    )
    parser.add_argument("--model", default=None, help="Model name; sets the context limit.")
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in ChunkingStrategy],
        default=None,
        help="Chunking strategy. Defaults to the analyzer's recommendation.",
    )
    parser.add_argument(
        "--max-tokens",
        type=int,
        default=settings.max_tokens_per_chunk,
        metavar="N",
        help="Per-chunk token ceiling. Forces chunking when the transcript exceeds it.",
    )
    parser.add_argument("--language", default=None, help="Output language tag, e.g. en, zh-TW.")
    parser.add_argument(
        "--no-overlap",
        action="store_true",
        default=not settings.preserve_context,
        help="Do not repeat the tail of each chunk at the head of the next.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write JSON output to PATH instead of stdout.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        output = COMMANDS[args.command](args)
    except (TranscriptDigestError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    text = json.dumps(output, indent=2, ensure_ascii=False, default=str)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(text + "\n", encoding="utf-8")
        logger.info("Wrote %s", args.output)
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())

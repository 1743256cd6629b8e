"""Exception types raised by the chunking and summarization pipeline."""

from __future__ import annotations


class TranscriptDigestError(Exception):
    """Base class for pipeline errors."""


class InvalidTranscriptError(TranscriptDigestError, ValueError):
    """The transcript has no usable entries and cannot be formatted."""


class AllChunksFailedError(TranscriptDigestError):
    """Every chunk summary failed, so there is nothing to combine."""

    def __init__(self, total_chunks: int) -> None:
        self.total_chunks = total_chunks
        super().__init__(
            f"All chunk processing failed ({total_chunks} chunks) - "
            "cannot generate combined summary"
        )


class ProcessingCancelledError(TranscriptDigestError):
    """Processing was cancelled between two chunk calls."""

    def __init__(self, completed: int, total: int) -> None:
        self.completed = completed
        self.total = total
        super().__init__(f"Processing cancelled after {completed} of {total} chunks")

"""Pipeline configuration: strategy enums and the ChunkingConfig dataclass."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from transcript_digest.ingestion.models import TranscriptSection

# (section, previous, next) -> is this a good place to cut?
BreakDetector = Callable[
    ["TranscriptSection", "TranscriptSection | None", "TranscriptSection | None"], bool
]


class ChunkingStrategy(StrEnum):
    """Available boundary strategies for splitting a transcript into chunks."""

    SPEAKER_TURNS = "speaker_turns"
    TIME_BASED = "time_based"
    SEMANTIC_BREAKS = "semantic_breaks"
    HYBRID = "hybrid"


class Provider(StrEnum):
    """LLM providers with a known context-window table."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class PromptType(StrEnum):
    """Which system prompt a summarization call should use."""

    DEFAULT = "default"
    SECTION = "section"
    COMBINE = "combine"


class Complexity(StrEnum):
    """Coarse transcript complexity, used only to pick a default strategy."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class ChunkingConfig:
    """Immutable heuristics for token budgeting and boundary selection.

    Every ratio and threshold here is a tuning knob for summary quality.  None
    of them is load-bearing for correctness: the partition and token-ceiling
    guarantees hold for any positive values.

    ``semantic_break_detector`` and ``natural_break_detector`` replace the
    built-in keyword/pause heuristics when set.
    """

    # Token estimation
    default_chars_per_token: float = 3.5
    cjk_chars_per_token: float = 2.5

    # Budgeting
    safety_margin: float = 0.8  # share of the context window usable for input
    chunk_size_ratio: float = 0.75  # default per-chunk ceiling vs context window
    overlap_ratio: float = 0.15  # share of the previous chunk repeated as context

    # Break detection
    semantic_pause_seconds: float = 30.0
    natural_pause_seconds: float = 10.0
    monologue_tokens: int = 200
    semantic_close_ratio: float = 0.7
    hybrid_near_limit_ratio: float = 0.8

    # Strategy recommendation
    few_speakers: int = 2
    long_section_tokens: float = 100.0
    many_sections: int = 100

    # Complexity thresholds: (medium, high)
    complexity_speakers: tuple[int, int] = (2, 5)
    complexity_tokens: tuple[int, int] = (50_000, 100_000)
    complexity_sections: tuple[int, int] = (100, 200)

    semantic_break_detector: BreakDetector | None = None
    natural_break_detector: BreakDetector | None = None


DEFAULT_CONFIG = ChunkingConfig()

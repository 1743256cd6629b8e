"""Approximate token counting."""

from __future__ import annotations

import math
import re

from transcript_digest.pipeline_config import DEFAULT_CONFIG, ChunkingConfig

_CJK_RE = re.compile(r"[\u4e00-\u9fff]")


def contains_cjk(text: str) -> bool:
    """True if *text* contains at least one CJK unified ideograph."""
    return _CJK_RE.search(text) is not None


def estimate_tokens(text: str, config: ChunkingConfig = DEFAULT_CONFIG) -> int:
    """Rough token estimate from character count.

    Dense scripts pack more meaning per character, so any CJK ideograph in the
    text switches to the lower characters-per-token divisor.  This is a
    heuristic, not a tokenizer; callers keep a safety margin on top of it.
    """
    if not text:
        return 0
    divisor = config.cjk_chars_per_token if contains_cjk(text) else config.default_chars_per_token
    return math.ceil(len(text) / divisor)

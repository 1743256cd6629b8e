"""Context-window sizes per provider and model.

Adding a provider or model is a data-only change to :data:`PROVIDER_LIMITS`.
Values are conservative: already below the advertised window.
"""

from __future__ import annotations

import math

from transcript_digest.pipeline_config import DEFAULT_CONFIG, ChunkingConfig

PROVIDER_LIMITS: dict[str, dict[str, int]] = {
    "openai": {
        "gpt-4.1": 1_000_000,
        "gpt-4o": 120_000,
        "gpt-4": 120_000,
        "gpt-3.5-turbo": 15_000,
    },
    "anthropic": {
        "claude-sonnet-4-20250514": 180_000,
        "claude-3-5-sonnet-20241022": 180_000,
        "claude-3-opus-20240229": 180_000,
        "claude-3-haiku-20240307": 180_000,
    },
}

# Fallback model per provider when the requested model is not in the table
PROVIDER_DEFAULT_MODELS: dict[str, str] = {
    "openai": "gpt-4",
    "anthropic": "claude-3-haiku-20240307",
}

FALLBACK_LIMIT = PROVIDER_LIMITS["openai"]["gpt-4"]


def get_context_limit(provider: str | None, model: str | None) -> int:
    """Look up the context window, falling back to a conservative default."""
    models = PROVIDER_LIMITS.get(provider or "")
    if models is None:
        return FALLBACK_LIMIT
    if model in models:
        return models[model]
    default_model = PROVIDER_DEFAULT_MODELS.get(provider or "")
    return models.get(default_model or "", FALLBACK_LIMIT)


def get_safe_limit(
    provider: str | None, model: str | None, config: ChunkingConfig = DEFAULT_CONFIG
) -> int:
    """Context window minus room for the system prompt and the response."""
    return math.floor(get_context_limit(provider, model) * config.safety_margin)


def optimal_chunk_size(
    provider: str | None, model: str | None, config: ChunkingConfig = DEFAULT_CONFIG
) -> int:
    """Per-chunk token ceiling used when the caller does not set one."""
    return math.floor(get_context_limit(provider, model) * config.chunk_size_ratio)

"""LLM-backed summarizers for the map-reduce orchestrator.

Each summarizer takes ``(transcript, options)`` and returns
``{"summary": text, "metadata": {...}}``.  The SDK clients are synchronous, so
calls run in a worker thread to keep the event loop free.  Retries and backoff
are left to the SDKs' own ``max_retries`` handling.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from anthropic import Anthropic
from anthropic.types import TextBlock
from openai import OpenAI

from transcript_digest.config import settings
from transcript_digest.ingestion.models import FormattedTranscript
from transcript_digest.pipeline_config import Provider
from transcript_digest.summarization.models import SummaryOptions
from transcript_digest.summarization.prompts import build_system_prompt, build_user_message

DEFAULT_MODELS: dict[Provider, str] = {
    Provider.ANTHROPIC: "claude-sonnet-4-20250514",
    Provider.OPENAI: "gpt-4.1",
}


def _result(text: str, model: str, usage: dict[str, Any], options: SummaryOptions) -> dict[str, Any]:
    return {
        "summary": text,
        "metadata": {
            "generated_at": datetime.now(UTC).isoformat(),
            "model": model,
            "usage": usage,
            "prompt_type": str(options.prompt_type),
        },
    }


def _claude_summary(transcript: FormattedTranscript, options: SummaryOptions) -> dict[str, Any]:
    client = Anthropic(api_key=settings.anthropic_api_key)
    response = client.messages.create(
        model=options.model or DEFAULT_MODELS[Provider.ANTHROPIC],
        max_tokens=settings.llm_max_output_tokens,
        system=build_system_prompt(options.prompt_type, options.language, options.custom_prompt),
        messages=[{"role": "user", "content": build_user_message(transcript)}],
    )

    # We always request plain text so the first block should be a TextBlock.
    block = response.content[0]
    if not isinstance(block, TextBlock):
        raise ValueError(f"Expected TextBlock from Claude, got {type(block).__name__}")

    return _result(
        block.text,
        response.model,
        {
            "input_tokens": response.usage.input_tokens,
            "output_tokens": response.usage.output_tokens,
        },
        options,
    )


def _openai_summary(transcript: FormattedTranscript, options: SummaryOptions) -> dict[str, Any]:
    client = OpenAI(api_key=settings.openai_api_key or None)
    response = client.chat.completions.create(
        model=options.model or DEFAULT_MODELS[Provider.OPENAI],
        max_tokens=settings.llm_max_output_tokens,
        messages=[
            {
                "role": "system",
                "content": build_system_prompt(
                    options.prompt_type, options.language, options.custom_prompt
                ),
            },
            {"role": "user", "content": build_user_message(transcript)},
        ],
    )

    usage: dict[str, Any] = {}
    if response.usage is not None:
        usage = {
            "input_tokens": response.usage.prompt_tokens,
            "output_tokens": response.usage.completion_tokens,
        }
    return _result(response.choices[0].message.content or "", response.model, usage, options)


async def summarize_with_claude(
    transcript: FormattedTranscript, options: SummaryOptions
) -> dict[str, Any]:
    """Summarize with Anthropic Claude."""
    return await asyncio.to_thread(_claude_summary, transcript, options)


async def summarize_with_openai(
    transcript: FormattedTranscript, options: SummaryOptions
) -> dict[str, Any]:
    """Summarize with an OpenAI chat model."""
    return await asyncio.to_thread(_openai_summary, transcript, options)


def get_summarizer(
    provider: str | Provider,
) -> Callable[[FormattedTranscript, SummaryOptions], Awaitable[dict[str, Any]]]:
    """Return the summarizer for *provider*.

    Raises:
        ValueError: If *provider* is not supported.
    """
    dispatch: dict[Provider, Callable[[FormattedTranscript, SummaryOptions], Awaitable[dict[str, Any]]]] = {
        Provider.ANTHROPIC: summarize_with_claude,
        Provider.OPENAI: summarize_with_openai,
    }
    try:
        return dispatch[Provider(provider)]
    except ValueError:
        msg = f"Unknown provider: {provider!r}. Supported: {[p.value for p in Provider]}"
        raise ValueError(msg) from None

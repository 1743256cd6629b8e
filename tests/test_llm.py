"""Tests for prompt building and the LLM summarizers (clients are mocked)."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from anthropic.types import TextBlock

from transcript_digest.ingestion.models import FormattedTranscript, TranscriptMetadata
from transcript_digest.pipeline_config import PromptType, Provider
from transcript_digest.summarization.llm import (
    get_summarizer,
    summarize_with_claude,
    summarize_with_openai,
)
from transcript_digest.summarization.models import SummaryOptions
from transcript_digest.summarization.prompts import (
    COMBINE_PROMPT,
    SECTION_PROMPT,
    build_system_prompt,
    build_user_message,
    language_instruction,
)


def _transcript() -> FormattedTranscript:
    metadata = TranscriptMetadata(
        participants=["Alice", "Bob"], duration="00:10:00", language="en", total_entries=4
    )
    return FormattedTranscript(
        metadata=metadata, content="[00:00:00] Alice: Let's start.", sections=[]
    )


class TestPrompts:
    def test_prompt_by_type(self) -> None:
        assert build_system_prompt(PromptType.SECTION).startswith(SECTION_PROMPT)
        assert build_system_prompt("combine").startswith(COMBINE_PROMPT)

    def test_custom_prompt_wins(self) -> None:
        prompt = build_system_prompt(PromptType.SECTION, "en", "Only list decisions.")
        assert prompt.startswith("Only list decisions.")
        assert prompt.endswith("Please provide the summary in English.")

    def test_language_instruction(self) -> None:
        assert language_instruction("zh-TW") == "請用繁體中文提供摘要。"
        assert language_instruction("en-us") == "Please provide the summary in English."
        assert language_instruction("fr-CA").startswith("Veuillez")
        assert language_instruction("xx") == "Please provide the summary in English."
        assert language_instruction(None) == "Please provide the summary in English."

    def test_user_message(self) -> None:
        message = build_user_message(_transcript())
        assert "- Duration: 00:10:00" in message
        assert "- Participants: Alice, Bob" in message
        assert "- Total Entries: 4" in message
        assert message.endswith("Transcript Content:\n[00:00:00] Alice: Let's start.")


class TestClaudeSummarizer:
    @patch("transcript_digest.summarization.llm.Anthropic")
    def test_calls_claude(self, mock_anthropic_cls: MagicMock) -> None:
        mock_client = MagicMock()
        mock_anthropic_cls.return_value = mock_client
        response = MagicMock()
        response.content = [TextBlock(type="text", text="## Section Summary\nAll good.")]
        response.model = "claude-sonnet-4-20250514"
        response.usage.input_tokens = 100
        response.usage.output_tokens = 20
        mock_client.messages.create.return_value = response

        options = SummaryOptions(prompt_type=PromptType.SECTION, language="en")
        result = asyncio.run(summarize_with_claude(_transcript(), options))

        assert result["summary"] == "## Section Summary\nAll good."
        assert result["metadata"]["model"] == "claude-sonnet-4-20250514"
        assert result["metadata"]["usage"] == {"input_tokens": 100, "output_tokens": 20}
        assert result["metadata"]["prompt_type"] == "section"

        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-20250514"
        assert kwargs["system"].startswith(SECTION_PROMPT)
        assert kwargs["messages"][0]["role"] == "user"

    @patch("transcript_digest.summarization.llm.Anthropic")
    def test_non_text_block_raises(self, mock_anthropic_cls: MagicMock) -> None:
        response = MagicMock()
        response.content = [MagicMock()]
        mock_anthropic_cls.return_value.messages.create.return_value = response

        with pytest.raises(ValueError, match="Expected TextBlock"):
            asyncio.run(summarize_with_claude(_transcript(), SummaryOptions()))


class TestOpenAISummarizer:
    @patch("transcript_digest.summarization.llm.OpenAI")
    def test_calls_openai(self, mock_openai_cls: MagicMock) -> None:
        mock_client = MagicMock()
        mock_openai_cls.return_value = mock_client
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = "Summary text"
        response.model = "gpt-4.1"
        response.usage.prompt_tokens = 50
        response.usage.completion_tokens = 10
        mock_client.chat.completions.create.return_value = response

        options = SummaryOptions(model="gpt-4o", prompt_type=PromptType.COMBINE)
        result = asyncio.run(summarize_with_openai(_transcript(), options))

        assert result["summary"] == "Summary text"
        assert result["metadata"]["usage"] == {"input_tokens": 50, "output_tokens": 10}
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"][0]["role"] == "system"
        assert kwargs["messages"][0]["content"].startswith(COMBINE_PROMPT)


class TestGetSummarizer:
    def test_known_providers(self) -> None:
        assert get_summarizer("anthropic") is summarize_with_claude
        assert get_summarizer(Provider.OPENAI) is summarize_with_openai

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown provider"):
            get_summarizer("cohere")

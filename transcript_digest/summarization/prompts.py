"""System prompts and message builders for meeting summarization."""

from __future__ import annotations

from transcript_digest.ingestion.models import FormattedTranscript
from transcript_digest.pipeline_config import PromptType

DEFAULT_PROMPT = """\
You are an expert meeting summarizer. Please analyze the provided meeting \
transcript and generate a comprehensive summary.

Structure your response as follows:

## Meeting Summary
[Brief overview of the meeting purpose and outcome]

## Key Discussion Points
- [Main topics discussed with context]

## Decisions Made
- [Important decisions reached during the meeting]

## Action Items
- [Specific tasks assigned with responsible parties if mentioned]

## Follow-up Required
- [Items that need future attention]

Please maintain the original context and speaker attributions where relevant. \
Be concise but comprehensive."""

SECTION_PROMPT = """\
You are a meeting section summarizer. Please analyze this portion of a meeting \
transcript and provide a focused summary for this section.

Lines tagged "[Context from previous section]" repeat the end of the previous \
portion. Use them only to follow the conversation; do not summarize them again.

Structure your response as follows:

## Section Summary
[Brief overview of what was discussed in this section]

## Key Points
- [Main topics covered in this section]

## Decisions or Outcomes
- [Any decisions made or conclusions reached in this section]

## Action Items
- [Tasks or follow-ups identified in this section]

## Context for Next Section
- [Important context that carries forward]

This is part of a larger meeting, so focus on this section while maintaining continuity."""

COMBINE_PROMPT = """\
You are a meeting summary combiner. Please analyze the provided section \
summaries and create a cohesive final meeting summary.

Structure your response as follows:

## Executive Summary
[High-level overview of the entire meeting]

## Key Discussion Points
- [Main topics discussed across all sections]

## Major Decisions
- [Important decisions reached during the meeting]

## Action Items
- [All actionable tasks identified with responsible parties]

## Follow-up Required
- [Items that need future attention]

## Meeting Outcomes
- [Overall results and next steps]

Ensure the final summary flows naturally and avoids repetition while capturing \
all important information from the section summaries."""

PROMPTS: dict[PromptType, str] = {
    PromptType.DEFAULT: DEFAULT_PROMPT,
    PromptType.SECTION: SECTION_PROMPT,
    PromptType.COMBINE: COMBINE_PROMPT,
}

LANGUAGE_INSTRUCTIONS: dict[str, str] = {
    "en": "Please provide the summary in English.",
    "zh-tw": "請用繁體中文提供摘要。",
    "zh-cn": "请用简体中文提供摘要。",
    "ja": "日本語で要約を提供してください。",
    "ko": "한국어로 요약을 제공해 주세요.",
    "es": "Por favor, proporciona el resumen en español.",
    "fr": "Veuillez fournir le résumé en français.",
    "de": "Bitte stellen Sie die Zusammenfassung auf Deutsch zur Verfügung.",
}


def language_instruction(language: str | None) -> str:
    """Instruction for the output language; English when unknown."""
    key = (language or "en").lower()
    if key not in LANGUAGE_INSTRUCTIONS:
        key = key.split("-")[0]
    return LANGUAGE_INSTRUCTIONS.get(key, LANGUAGE_INSTRUCTIONS["en"])


def build_system_prompt(
    prompt_type: str | PromptType = PromptType.DEFAULT,
    language: str | None = None,
    custom_prompt: str | None = None,
) -> str:
    """Base prompt for *prompt_type* (or *custom_prompt*) plus the language instruction."""
    base = custom_prompt or PROMPTS.get(PromptType(prompt_type), DEFAULT_PROMPT)
    return f"{base}\n\n{language_instruction(language)}"


def build_user_message(transcript: FormattedTranscript) -> str:
    """Meeting information header followed by the transcript content."""
    metadata = transcript.metadata
    return (
        "Meeting Information:\n"
        f"- Duration: {metadata.duration}\n"
        f"- Participants: {', '.join(metadata.participants)}\n"
        f"- Language: {metadata.language}\n"
        f"- Total Entries: {metadata.total_entries}\n\n"
        f"Transcript Content:\n{transcript.content}"
    )

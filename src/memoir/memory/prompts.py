"""Prompt text and response parsing shared by the memory jobs."""

import json
import logging
import re
from typing import Any, Iterable, Sequence

from .models import Fact

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = """You are a concise profile summarizer. Given a list of memory entries about a user,
write a single paragraph (maximum 200 words) that captures the most important facts
an AI assistant should know about this person. Focus on: preferences, expertise,
current projects, communication style, and relevant personal context.

Write in third person using the user's name if available, otherwise say "This user".
Be factual and concise. Do not add speculation or filler. Do not use bullet points
or lists. Write flowing prose. Do not mention that you are summarizing memories."""

SUMMARY_USER_PROMPT = """User: {username}

Memory entries:
{memory_text}

Write the profile summary paragraph now."""

CONSOLIDATION_SYSTEM_PROMPT = """You are a memory consolidation assistant. Your job is to review a collection of
memory entries about a user and produce a cleaned-up, non-redundant set.

Rules:
1. Merge redundant or overlapping entries into single entries.
2. Remove clearly outdated entries if a newer entry contradicts them.
3. Preserve all unique, important facts.
4. Keep each memory as an atomic, distinct fact.
5. Use clear, concise key names (snake_case, descriptive).
6. Values should be concise but complete.
7. Target approximately {target} memories in the output.
8. Respond with ONLY a valid JSON array of objects, each with "key" and "value" fields.
9. No markdown, no explanation, no preamble. Just the JSON array."""

CONSOLIDATION_USER_PROMPT = """User: {username}

Current memory entries ({count} total, needs consolidation to ~{target}):

{memory_text}

Produce the consolidated JSON array now."""

_FENCE_OPEN_RE = re.compile(r"\A```[\w-]*[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?[ \t]*```\Z")


class ConsolidationParseError(ValueError):
    """The completion was not a JSON array."""


def format_facts(facts: Iterable[Fact]) -> str:
    """Format facts as a bullet list of ``key: value`` lines."""
    return "\n".join(f"- {fact.key}: {fact.value}" for fact in facts)


def normalize_completion(result: str | Sequence[str] | None) -> str:
    """Join chunked completion output and trim it."""
    if result is None:
        return ""
    if not isinstance(result, str):
        result = "".join(str(chunk) for chunk in result)
    return result.strip()


def strip_code_fence(text: str) -> str:
    """Remove a markdown code fence wrapping the whole text, if any.

    The model may ignore the "no markdown" instruction.
    """
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = _FENCE_OPEN_RE.sub("", text, count=1)
    text = _FENCE_CLOSE_RE.sub("", text, count=1)
    return text.strip()


def _present(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return value is True
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return True


def parse_fact_array(text: str, limit: int) -> list[dict[str, Any]]:
    """Parse a consolidation response into validated entries.

    Args:
        text: Normalized completion text, optionally fenced.
        limit: Maximum number of entries kept.

    Returns:
        Entries having both a non-empty key and value, at most ``limit``
        of them. Items repeating a key (compared after trimming) collapse
        into one: the last value wins, at the position the key first
        appeared.

    Raises:
        ConsolidationParseError: The text is not JSON or not an array.
    """
    try:
        data = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ConsolidationParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise ConsolidationParseError(f"Expected a JSON array, got {type(data).__name__}")

    entries: dict[str, dict[str, Any]] = {}
    for item in data:
        if isinstance(item, dict) and _present(item.get("key")) and _present(item.get("value")):
            entries[str(item["key"]).strip()] = item
        else:
            logger.debug("Skipping invalid consolidation item: %r", item)
    return list(entries.values())[:limit]

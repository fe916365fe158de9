"""
Output formatting utilities for chat messages and research payloads.
"""

import json
import re
from typing import Any, Optional

from pydantic import BaseModel

from copysensei.models.chat import MessageRole
from copysensei.models.records import MessageRecord

# [1], [12], [1, 2], [1][2]
CITATION_PATTERN = re.compile(r"\s?\[\d+(?:\s*,\s*\d+)*\]")
FENCED_JSON_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


class TranscriptEntry(BaseModel):
    """A message shaped for display."""
    id: str
    role: MessageRole
    align: str  # "end" for user, "center" for system, "start" for assistant
    content: str
    footnote: Optional[str] = None


def strip_citations(text: str) -> str:
    """Remove bracketed numeric citation markers left by search-grounded models."""
    return CITATION_PATTERN.sub("", text or "").strip()


def research_to_text(research: Any, limit: Optional[int] = None) -> str:
    """Flatten a research payload (text or JSON) into prompt text."""
    if research is None:
        return ""
    text = research if isinstance(research, str) else json.dumps(research, ensure_ascii=False)
    return text[:limit] if limit else text


def extract_json_payload(raw: str) -> Any:
    """
    Pull a JSON object out of model output.

    Strips markdown fences, then takes the outermost {...}. Returns the parsed
    object, or the original text when nothing parses.
    """
    candidate = raw
    fenced = FENCED_JSON_PATTERN.search(candidate)
    if fenced:
        candidate = fenced.group(1)

    obj = JSON_OBJECT_PATTERN.search(candidate)
    if obj:
        candidate = obj.group(0)

    try:
        return json.loads(candidate)
    except (TypeError, ValueError):
        return raw


def _align(role: MessageRole) -> str:
    if role == MessageRole.USER:
        return "end"
    if role == MessageRole.SYSTEM:
        return "center"
    return "start"


def render_transcript(messages: list[MessageRecord]) -> list[TranscriptEntry]:
    """
    Shape a persisted message log for display, in creation order.

    Pure: the same log always renders to the same entries.
    """
    ordered = sorted(enumerate(messages), key=lambda pair: (pair[1].created_at, pair[0]))
    entries = []
    for _, message in ordered:
        footnote = None
        if message.credits_used > 0:
            footnote = f"{message.credits_used} credit used"
        entries.append(
            TranscriptEntry(
                id=message.id,
                role=message.role,
                align=_align(message.role),
                content=message.content,
                footnote=footnote,
            )
        )
    return entries

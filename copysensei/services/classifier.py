"""
Message classification for credit metering.

Keyword tables decide whether an outgoing message requests copy generation
(billable), edits project details (free) or is plain small talk that gets
blocked with an advisory. Matching is case-insensitive substring search.
"""

from copysensei.models.chat import MessageType

GENERATION_KEYWORDS: tuple[str, ...] = (
    "generate",
    "write",
    "draft",
    "compose",
    "create a",
    "craft",
    "come up with",
)

PROJECT_UPDATE_KEYWORDS: tuple[str, ...] = (
    "change",
    "update",
    "tone",
    "notes",
    "research",
    "document",
    "switch",
)

SMALL_TALK_PHRASES: tuple[str, ...] = (
    "hello",
    "hi there",
    "how are you",
    "what's up",
    "whats up",
    "good morning",
    "good afternoon",
    "good evening",
    "thank you",
    "thanks",
    "who are you",
    "tell me a joke",
)

LOW_VALUE_ADVISORY = (
    "CopySensei is tuned for copywriting. Ask for copy (1 credit) or ask to "
    "change the project's tone, notes or research (free)."
)


def _normalize(text: str) -> str:
    return (text or "").strip().lower()


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def is_billable(text: str) -> bool:
    """True when the message asks for copy to be generated."""
    normalized = _normalize(text)
    if not normalized:
        return False
    return _contains_any(normalized, GENERATION_KEYWORDS)


def is_project_update(text: str) -> bool:
    """True when the message mentions editing project details."""
    normalized = _normalize(text)
    if not normalized:
        return False
    return _contains_any(normalized, PROJECT_UPDATE_KEYWORDS)


def is_low_value_chat(text: str) -> bool:
    """Small talk with no generation or project-update intent."""
    normalized = _normalize(text)
    if not normalized or is_billable(normalized) or is_project_update(normalized):
        return False
    return _contains_any(normalized, SMALL_TALK_PHRASES)


def classify(text: str) -> MessageType:
    """Billing category for an outgoing user message."""
    if is_billable(text):
        return MessageType.COPY_GENERATION
    if is_project_update(text):
        return MessageType.DATABASE_UPDATE
    return MessageType.CHAT

"""Database models and cache records"""

from copysensei.models.profile import Profile
from copysensei.models.project import Document, Project, ToneOfVoice
from copysensei.models.chat import ChatMessage, CopyGeneration, MessageRole, MessageType

__all__ = [
    "Profile",
    "Project",
    "Document",
    "ToneOfVoice",
    "ChatMessage",
    "CopyGeneration",
    "MessageRole",
    "MessageType",
]

"""
Services layer for CopySensei.
Contains message classification, the chat send flow and database access.
"""

from copysensei.services.project_service import ProjectService, project_service
from copysensei.services.functions_client import FunctionsClient
from copysensei.services.remote_data import RemoteDataService
from copysensei.services.chat_orchestrator import (
    ChatOrchestrator,
    ChatSessionRegistry,
    ChatState,
    SendResult,
    chat_sessions,
)

__all__ = [
    "ProjectService",
    "project_service",
    "FunctionsClient",
    "RemoteDataService",
    "ChatOrchestrator",
    "ChatSessionRegistry",
    "ChatState",
    "SendResult",
    "chat_sessions",
]

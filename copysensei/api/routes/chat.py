"""
Chat endpoints - the project conversation and the copy generation flow.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from copysensei.api.deps import (
    get_chat_orchestrator,
    get_current_user_id,
    get_local_store,
    resolve_project,
    to_http_error,
)
from copysensei.core.cache import LocalCacheStore
from copysensei.core.config import settings
from copysensei.core.database import get_db
from copysensei.core.exceptions import CopySenseiError
from copysensei.models.records import MessageRecord
from copysensei.services.chat_orchestrator import ChatOrchestrator
from copysensei.services.project_service import project_service
from copysensei.utils.formatters import TranscriptEntry, render_transcript

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["chat"])


class ChatRequest(BaseModel):
    """Chat request payload."""
    message: str = Field(..., min_length=1, max_length=10000)

    class Config:
        json_schema_extra = {
            "example": {
                "message": "Write a tagline for our sourdough launch",
            }
        }


class ChatResponse(BaseModel):
    """Chat response payload."""
    response: str
    message_type: str
    credits_used: int
    credits_remaining: int
    messages: list[TranscriptEntry]


class TranscriptResponse(BaseModel):
    project_id: str
    messages: list[TranscriptEntry]


@router.get("/projects/{project_id}/messages", response_model=TranscriptResponse)
async def get_messages(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> TranscriptResponse:
    """
    Transcript for a project.

    An empty local log is hydrated from the database.
    """
    await resolve_project(project_id, user_id, store, db)

    messages = await store.get_project_messages(project_id)
    if not messages:
        rows = await project_service.get_messages(project_id, db=db)
        messages = [MessageRecord.model_validate(row) for row in rows]
        for message in messages:
            await store.save_message(message)

    return TranscriptResponse(project_id=project_id, messages=render_transcript(messages))


@router.post("/projects/{project_id}/chat", response_model=ChatResponse)
async def send_message(
    project_id: str,
    request: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    orchestrator: ChatOrchestrator = Depends(get_chat_orchestrator),
    db: AsyncSession = Depends(get_db),
) -> ChatResponse:
    """
    Send a message in a project's conversation.

    Copy generation requests cost one credit. Small talk is rejected with
    an advisory and nothing is stored.
    """
    logger.info(
        "Chat request received",
        user_id=user_id,
        project_id=project_id,
        message_length=len(request.message),
    )

    await resolve_project(project_id, user_id, store, db)

    try:
        result = await orchestrator.send(request.message, project_id)
    except CopySenseiError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error("Chat request failed", error=str(e), project_id=project_id)
        detail = str(e) if settings.environment == "development" else "Internal server error"
        raise HTTPException(status_code=500, detail=detail)

    transcript = render_transcript([result.user_message, result.assistant_message])
    return ChatResponse(
        response=result.assistant_message.content,
        message_type=result.message_type.value,
        credits_used=result.assistant_message.credits_used,
        credits_remaining=result.credits_remaining,
        messages=transcript,
    )

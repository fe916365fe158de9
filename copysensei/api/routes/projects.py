"""
Project API routes.

Projects, their documents and their research, mirrored between the
database and the user's local cache store.
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from copysensei.agents.researcher import researcher
from copysensei.api.deps import (
    get_current_user_id,
    get_local_store,
    get_remote_data_service,
    resolve_project,
    to_http_error,
)
from copysensei.core.cache import LocalCacheStore
from copysensei.core.config import settings
from copysensei.core.database import get_db
from copysensei.core.exceptions import CopySenseiError
from copysensei.models.chat import MessageRole, MessageType
from copysensei.models.project import ToneOfVoice
from copysensei.models.records import DocumentRecord, MessageRecord, ProjectRecord
from copysensei.services.project_service import project_service
from copysensei.services.remote_data import RemoteDataService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["projects"])

WELCOME_MESSAGE = (
    "Project created! Refresh research to analyze the website, add documents, "
    "or generate your first copy."
)


class CreateProjectRequest(BaseModel):
    """Request to create a project."""
    name: str = Field(..., max_length=255)
    website_url: str = Field(..., max_length=500)
    tone_of_voice: ToneOfVoice = ToneOfVoice.PROFESSIONAL

    @field_validator("name", "website_url")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please fill in all fields")
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Corner Bakery",
                "website_url": "https://cornerbakery.example",
                "tone_of_voice": "friendly",
            }
        }


class UpdateProjectRequest(BaseModel):
    """Side panel edits. Omitted fields are left alone."""
    tone_of_voice: Optional[ToneOfVoice] = None
    custom_notes: Optional[str] = Field(default=None, max_length=20000)


class AddDocumentRequest(BaseModel):
    """Pasted reference document."""
    filename: str = Field(..., max_length=255)
    content: str

    @field_validator("filename", "content")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please provide document name and content")
        return v


class ProjectDetailResponse(BaseModel):
    """Project with its documents."""
    project: dict
    documents: list[dict]


class ResearchResponse(BaseModel):
    project: dict
    research_data: Any
    strategy_brief: Optional[str] = None


def _server_error(e: Exception, action: str, **context) -> HTTPException:
    logger.error(f"Failed to {action}", error=str(e), **context)
    detail = str(e) if settings.environment == "development" else "Internal server error"
    return HTTPException(status_code=500, detail=detail)


async def _project_documents(project_id: str, store: LocalCacheStore, db: AsyncSession) -> list[DocumentRecord]:
    """Local documents; an empty local list is hydrated from the database."""
    documents = await store.get_project_documents(project_id)
    if not documents:
        rows = await project_service.list_documents(project_id, db=db)
        documents = [DocumentRecord.model_validate(row) for row in rows]
        for document in documents:
            await store.save_document(document)
    return documents


@router.get("/projects")
async def list_projects(
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """
    List projects for the sidebar.

    An empty local cache is hydrated from the database.
    """
    try:
        projects = await store.get_projects()
        if not projects:
            rows = await project_service.list_projects(user_id, db=db)
            projects = [ProjectRecord.model_validate(row) for row in rows]
            for project in projects:
                await store.save_project(project)

        user = await store.get_user()
        return {
            "projects": [p.to_cache() for p in projects],
            "current_project_id": await store.get_current_project_id(),
            "credits": user.credits if user else 0,
        }
    except Exception as e:
        raise _server_error(e, "list projects", user_id=user_id)


@router.post("/projects", status_code=201)
async def create_project(
    request: CreateProjectRequest,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Create a project, select it and post the welcome message."""
    logger.info("Create project request", user_id=user_id, name=request.name[:50])

    try:
        project = ProjectRecord(
            user_id=user_id,
            name=request.name,
            website_url=request.website_url,
            tone_of_voice=request.tone_of_voice,
        )
        await project_service.create_project(project, db=db)
        await store.save_project(project)
        await store.set_current_project_id(project.id)

        welcome = MessageRecord(
            project_id=project.id,
            role=MessageRole.SYSTEM,
            content=WELCOME_MESSAGE,
            message_type=MessageType.DATABASE_UPDATE,
        )
        await project_service.add_message(welcome, db=db)
        await store.save_message(welcome)

        return project.to_cache()
    except Exception as e:
        raise _server_error(e, "create project", user_id=user_id)


@router.get("/projects/{project_id}", response_model=ProjectDetailResponse)
async def get_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> ProjectDetailResponse:
    """Project details for the side panel."""
    project = await resolve_project(project_id, user_id, store, db)
    documents = await _project_documents(project_id, store, db)
    return ProjectDetailResponse(
        project=project.to_cache(),
        documents=[d.to_cache() for d in documents],
    )


@router.patch("/projects/{project_id}")
async def update_project(
    project_id: str,
    request: UpdateProjectRequest,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Change tone of voice and/or custom notes."""
    project = await resolve_project(project_id, user_id, store, db)
    changes = request.model_dump(exclude_none=True)
    if not changes:
        return project.to_cache()

    try:
        row = await project_service.update_project(project_id, user_id, changes, db=db)
        if row is None:
            raise HTTPException(status_code=404, detail="Project not found")

        updated = project.model_copy(update={**changes, "updated_at": row.updated_at})
        await store.save_project(updated)

        logger.info("Project updated", project_id=project_id, fields=sorted(changes))
        return updated.to_cache()
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error(e, "update project", project_id=project_id)


@router.delete("/projects/{project_id}")
async def delete_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Delete a project with its documents, messages and generations."""
    try:
        deleted = await project_service.delete_project(project_id, user_id, db=db)
        local = await store.get_project(project_id)
        if not deleted and local is None:
            raise HTTPException(status_code=404, detail="Project not found")

        await store.delete_project(project_id)
        return {"message": "Project deleted", "project_id": project_id}
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error(e, "delete project", project_id=project_id)


@router.post("/projects/{project_id}/select")
async def select_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Point the current-project pointer at a project."""
    project = await resolve_project(project_id, user_id, store, db)
    await store.set_current_project_id(project.id)
    return {"current_project_id": project.id}


@router.post("/projects/{project_id}/research/refresh", response_model=ResearchResponse)
async def refresh_research(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    remote: RemoteDataService = Depends(get_remote_data_service),
    db: AsyncSession = Depends(get_db),
) -> ResearchResponse:
    """
    Re-run website research and store it on the project.

    A strategy brief is synthesized from the new research when enabled; a
    failure there keeps the research and leaves the previous brief.
    """
    project = await resolve_project(project_id, user_id, store, db)
    if not project.website_url:
        raise HTTPException(status_code=400, detail="Project has no website URL")

    logger.info("Research refresh request", project_id=project_id, website_url=project.website_url)

    try:
        research = await remote.fetch_research(project.website_url, project.name)
    except CopySenseiError as e:
        raise to_http_error(e)

    changes: dict[str, Any] = {"research_data": research}
    if settings.synthesize_strategy_brief:
        try:
            changes["strategy_brief"] = await researcher.synthesize_strategy(
                research, project.name, project.tone_of_voice.value
            )
        except Exception as e:
            logger.warning("Strategy brief synthesis failed", project_id=project_id, error=str(e))

    try:
        row = await project_service.update_project(project_id, user_id, changes, db=db)
        if row is None:
            raise HTTPException(status_code=404, detail="Project not found")

        updated = project.model_copy(update={**changes, "updated_at": row.updated_at})
        await store.save_project(updated)
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error(e, "store research", project_id=project_id)

    return ResearchResponse(
        project=updated.to_cache(),
        research_data=research,
        strategy_brief=updated.strategy_brief,
    )


@router.get("/projects/{project_id}/documents")
async def list_documents(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await resolve_project(project_id, user_id, store, db)
    documents = await _project_documents(project_id, store, db)
    return {"documents": [d.to_cache() for d in documents]}


@router.post("/projects/{project_id}/documents", status_code=201)
async def add_document(
    project_id: str,
    request: AddDocumentRequest,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Attach pasted text to a project."""
    await resolve_project(project_id, user_id, store, db)

    document = DocumentRecord(
        project_id=project_id,
        filename=request.filename.strip(),
        content=request.content,
        file_size=len(request.content),
    )
    try:
        await project_service.add_document(document, db=db)
        await store.save_document(document)
    except Exception as e:
        raise _server_error(e, "add document", project_id=project_id)

    return document.to_cache()


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: str,
    user_id: str = Depends(get_current_user_id),
    store: LocalCacheStore = Depends(get_local_store),
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        deleted = await project_service.delete_document(document_id, user_id, db=db)
        if not deleted:
            raise HTTPException(status_code=404, detail="Document not found")
        await store.delete_document(document_id)
        return {"message": "Document deleted", "document_id": document_id}
    except HTTPException:
        raise
    except Exception as e:
        raise _server_error(e, "delete document", document_id=document_id)

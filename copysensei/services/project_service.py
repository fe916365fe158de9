"""
Project Service.

Database CRUD for profiles, projects, documents, chat messages and the
copy generation ledger.
"""

import uuid
from typing import Any, Optional

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from copysensei.core.config import settings
from copysensei.core.database import get_db_context
from copysensei.core.exceptions import InsufficientCreditsError
from copysensei.models.chat import ChatMessage, CopyGeneration
from copysensei.models.profile import Profile
from copysensei.models.project import Document, Project
from copysensei.models.records import (
    DocumentRecord,
    GenerationRecord,
    MessageRecord,
    ProjectRecord,
    utcnow,
)

logger = structlog.get_logger(__name__)

UPDATABLE_PROJECT_FIELDS = {
    "name",
    "website_url",
    "tone_of_voice",
    "research_data",
    "strategy_brief",
    "custom_notes",
}


def _message_row(message: MessageRecord) -> ChatMessage:
    return ChatMessage(
        id=message.id,
        project_id=message.project_id,
        role=message.role.value,
        content=message.content,
        message_type=message.message_type.value,
        credits_used=message.credits_used,
        created_at=message.created_at,
    )


class ProjectService:
    """
    Service for the hosted project database.

    Every method accepts an optional session; without one it opens its own.
    """

    # ==================== Profiles ====================

    async def get_profile(
        self,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> Optional[Profile]:
        """Get a profile by auth user id."""
        async def _get(session: AsyncSession) -> Optional[Profile]:
            result = await session.execute(select(Profile).where(Profile.user_id == user_id))
            return result.scalar_one_or_none()

        if db:
            return await _get(db)

        async with get_db_context() as session:
            return await _get(session)

    async def ensure_profile(
        self,
        user_id: str,
        email: str,
        db: Optional[AsyncSession] = None,
    ) -> Profile:
        """
        Get the profile, creating it with the default credit grant if missing.
        """
        async def _run(session: AsyncSession) -> Profile:
            profile = await self.get_profile(user_id, db=session)
            if profile:
                return profile

            profile = Profile(
                id=str(uuid.uuid4()),
                user_id=user_id,
                email=email,
                credits=settings.default_credits,
            )
            session.add(profile)
            await session.commit()
            await session.refresh(profile)
            logger.info("Profile created", user_id=user_id, credits=profile.credits)
            return profile

        if db:
            return await _run(db)

        async with get_db_context() as session:
            return await _run(session)

    async def set_credits(
        self,
        user_id: str,
        credits: int,
        db: Optional[AsyncSession] = None,
    ) -> None:
        """Overwrite a profile's balance."""
        async def _set(session: AsyncSession) -> None:
            await session.execute(
                update(Profile).where(Profile.user_id == user_id).values(credits=max(credits, 0))
            )
            await session.commit()

        if db:
            return await _set(db)

        async with get_db_context() as session:
            return await _set(session)

    # ==================== Projects ====================

    async def create_project(
        self,
        project: ProjectRecord,
        db: Optional[AsyncSession] = None,
    ) -> ProjectRecord:
        """Insert a project row from a record."""
        async def _create(session: AsyncSession) -> ProjectRecord:
            row = Project(
                id=project.id,
                user_id=project.user_id,
                name=project.name,
                website_url=project.website_url,
                tone_of_voice=project.tone_of_voice.value,
                research_data=project.research_data,
                strategy_brief=project.strategy_brief,
                custom_notes=project.custom_notes,
                created_at=project.created_at,
                updated_at=project.updated_at,
            )
            session.add(row)
            await session.commit()
            return project

        if db:
            return await _create(db)

        async with get_db_context() as session:
            return await _create(session)

    async def get_project(
        self,
        project_id: str,
        user_id: Optional[str] = None,
        db: Optional[AsyncSession] = None,
    ) -> Optional[Project]:
        """Get a project, optionally restricted to an owner."""
        async def _get(session: AsyncSession) -> Optional[Project]:
            stmt = select(Project).where(Project.id == project_id)
            if user_id:
                stmt = stmt.where(Project.user_id == user_id)
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

        if db:
            return await _get(db)

        async with get_db_context() as session:
            return await _get(session)

    async def list_projects(
        self,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> list[Project]:
        """List a user's projects, oldest first."""
        async def _list(session: AsyncSession) -> list[Project]:
            stmt = (
                select(Project)
                .where(Project.user_id == user_id)
                .order_by(Project.created_at.asc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

        if db:
            return await _list(db)

        async with get_db_context() as session:
            return await _list(session)

    async def update_project(
        self,
        project_id: str,
        user_id: str,
        changes: dict[str, Any],
        db: Optional[AsyncSession] = None,
    ) -> Optional[Project]:
        """
        Apply field changes to a project. Last write wins.

        Args:
            project_id: Project identifier
            user_id: Owner identifier
            changes: Column values keyed by field name
            db: Optional database session

        Returns:
            Updated project or None
        """
        unknown = set(changes) - UPDATABLE_PROJECT_FIELDS
        if unknown:
            raise ValueError(f"Cannot update project fields: {sorted(unknown)}")

        async def _update(session: AsyncSession) -> Optional[Project]:
            project = await self.get_project(project_id, user_id, session)
            if not project:
                return None

            for field, value in changes.items():
                setattr(project, field, getattr(value, "value", value))
            project.updated_at = utcnow()

            await session.commit()
            await session.refresh(project)
            return project

        if db:
            return await _update(db)

        async with get_db_context() as session:
            return await _update(session)

    async def delete_project(
        self,
        project_id: str,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> bool:
        """Delete a project and, explicitly, everything that references it."""
        async def _delete(session: AsyncSession) -> bool:
            project = await self.get_project(project_id, user_id, session)
            if not project:
                return False

            for model in (ChatMessage, Document, CopyGeneration):
                await session.execute(delete(model).where(model.project_id == project_id))
            await session.execute(delete(Project).where(Project.id == project_id))

            await session.commit()
            logger.info("Project deleted", project_id=project_id, user_id=user_id)
            return True

        if db:
            return await _delete(db)

        async with get_db_context() as session:
            return await _delete(session)

    # ==================== Documents ====================

    async def add_document(
        self,
        document: DocumentRecord,
        db: Optional[AsyncSession] = None,
    ) -> DocumentRecord:
        async def _add(session: AsyncSession) -> DocumentRecord:
            session.add(Document(
                id=document.id,
                project_id=document.project_id,
                filename=document.filename,
                content=document.content,
                file_size=document.file_size,
                uploaded_at=document.uploaded_at,
            ))
            await session.commit()
            return document

        if db:
            return await _add(db)

        async with get_db_context() as session:
            return await _add(session)

    async def list_documents(
        self,
        project_id: str,
        db: Optional[AsyncSession] = None,
    ) -> list[Document]:
        async def _list(session: AsyncSession) -> list[Document]:
            stmt = (
                select(Document)
                .where(Document.project_id == project_id)
                .order_by(Document.uploaded_at.asc())
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

        if db:
            return await _list(db)

        async with get_db_context() as session:
            return await _list(session)

    async def delete_document(
        self,
        document_id: str,
        user_id: str,
        db: Optional[AsyncSession] = None,
    ) -> bool:
        """Delete a document the user owns through its project."""
        async def _delete(session: AsyncSession) -> bool:
            owned = (
                select(Document.id)
                .join(Project, Project.id == Document.project_id)
                .where(Document.id == document_id, Project.user_id == user_id)
            )
            result = await session.execute(owned)
            if result.scalar_one_or_none() is None:
                return False

            await session.execute(delete(Document).where(Document.id == document_id))
            await session.commit()
            return True

        if db:
            return await _delete(db)

        async with get_db_context() as session:
            return await _delete(session)

    # ==================== Messages ====================

    async def add_message(
        self,
        message: MessageRecord,
        db: Optional[AsyncSession] = None,
    ) -> MessageRecord:
        """Append a chat message."""
        async def _add(session: AsyncSession) -> MessageRecord:
            session.add(_message_row(message))
            await session.commit()
            return message

        if db:
            return await _add(db)

        async with get_db_context() as session:
            return await _add(session)

    async def get_messages(
        self,
        project_id: str,
        limit: int = 200,
        db: Optional[AsyncSession] = None,
    ) -> list[ChatMessage]:
        """The latest `limit` messages for a project, in creation order."""
        async def _get(session: AsyncSession) -> list[ChatMessage]:
            stmt = (
                select(ChatMessage)
                .where(ChatMessage.project_id == project_id)
                .order_by(ChatMessage.created_at.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(reversed(result.scalars().all()))

        if db:
            return await _get(db)

        async with get_db_context() as session:
            return await _get(session)

    async def commit_billable_reply(
        self,
        user_id: str,
        reply: MessageRecord,
        generation: GenerationRecord,
        db: Optional[AsyncSession] = None,
    ) -> int:
        """
        Charge credits and store a billable reply in one transaction.

        The decrement is conditional on the balance covering the charge, so the
        balance never goes negative and the reply is never stored unpaid.

        Returns:
            The balance after the charge
        """
        amount = generation.credits_used

        async def _commit(session: AsyncSession) -> int:
            result = await session.execute(
                update(Profile)
                .where(Profile.user_id == user_id, Profile.credits >= amount)
                .values(credits=Profile.credits - amount, updated_at=utcnow())
                .returning(Profile.credits)
            )
            balance = result.scalar_one_or_none()
            if balance is None:
                await session.rollback()
                raise InsufficientCreditsError("Not enough credits to generate copy")

            session.add(_message_row(reply))
            session.add(CopyGeneration(
                id=generation.id,
                project_id=generation.project_id,
                prompt=generation.prompt,
                generated_copy=generation.generated_copy,
                credits_used=amount,
                created_at=generation.created_at,
            ))
            await session.commit()

            logger.info("Credit charged", user_id=user_id, balance=balance, project_id=reply.project_id)
            return balance

        if db:
            return await _commit(db)

        async with get_db_context() as session:
            return await _commit(session)


# Global instance
project_service = ProjectService()

"""
Remote Data Service.

The facade the chat orchestrator talks to: the hosted database (through
project_service) plus the generate-copy / fetch-research functions.
"""

from typing import Any, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from copysensei.core.config import settings
from copysensei.core.exceptions import RemoteServiceError
from copysensei.models.records import GenerationRecord, MessageRecord, UserRecord
from copysensei.services.functions_client import FunctionsClient
from copysensei.services.project_service import ProjectService, project_service

logger = structlog.get_logger(__name__)


class RemoteDataService:
    """
    Remote side of a chat session.

    Without a session factory the database is treated as unavailable: message
    writes become no-ops and billable replies cannot be committed atomically.
    """

    def __init__(
        self,
        functions: Optional[FunctionsClient] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        projects: Optional[ProjectService] = None,
    ):
        self.functions = functions or FunctionsClient()
        self.session_factory = session_factory
        self.projects = projects or project_service

    @property
    def has_database(self) -> bool:
        return self.session_factory is not None

    async def generate_copy(self, messages: list[dict], context: dict) -> str:
        return await self.functions.generate_copy(messages, context)

    async def fetch_research(self, website_url: str, project_name: Optional[str] = None) -> Any:
        return await self.functions.fetch_research(website_url, project_name)

    async def load_user(self, user_id: str, email: str) -> UserRecord:
        """Profile for a user, created with the default grant on first contact."""
        if not self.has_database:
            return UserRecord(id=user_id, email=email, credits=settings.default_credits)

        try:
            async with self.session_factory() as session:
                profile = await self.projects.ensure_profile(user_id, email, db=session)
                return UserRecord(
                    id=profile.user_id,
                    email=profile.email,
                    credits=profile.credits,
                    created_at=profile.created_at,
                )
        except SQLAlchemyError as e:
            logger.error("Failed to load profile", user_id=user_id, error=str(e))
            raise RemoteServiceError(f"Could not load profile: {e}")

    async def save_message(self, message: MessageRecord) -> None:
        if not self.has_database:
            return

        try:
            async with self.session_factory() as session:
                await self.projects.add_message(message, db=session)
        except SQLAlchemyError as e:
            logger.error("Failed to persist message", message_id=message.id, error=str(e))
            raise RemoteServiceError(f"Could not persist message: {e}")

    async def commit_billable_reply(
        self,
        user_id: str,
        reply: MessageRecord,
        generation: GenerationRecord,
    ) -> int:
        """Charge and store a billable reply atomically. Returns the new balance."""
        if not self.has_database:
            raise RemoteServiceError("Database is not configured")

        try:
            async with self.session_factory() as session:
                return await self.projects.commit_billable_reply(
                    user_id, reply, generation, db=session
                )
        except SQLAlchemyError as e:
            logger.error("Failed to commit billable reply", user_id=user_id, error=str(e))
            raise RemoteServiceError(f"Could not record generation: {e}")

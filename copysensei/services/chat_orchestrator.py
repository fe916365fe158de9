"""
Chat Orchestrator.

Coordinates one chat send: classify the message, check credits, persist the
user turn, call generate-copy with bounded project context, persist the reply
and charge the credit. One send is outstanding per session at a time.

States: idle -> awaiting_response -> delivered | failed -> idle
"""

import asyncio
from enum import Enum
from typing import Callable, Optional

import structlog
from pydantic import BaseModel

from copysensei.core.cache import LocalCacheStore
from copysensei.core.config import settings
from copysensei.core.exceptions import (
    InsufficientCreditsError,
    InvalidRequestError,
    LowValueMessageError,
    NotFoundError,
    RemoteServiceError,
    SessionBusyError,
)
from copysensei.core.observability import capture_exception
from copysensei.models.chat import MessageRole, MessageType
from copysensei.models.records import GenerationRecord, MessageRecord, ProjectRecord, UserRecord
from copysensei.services import classifier
from copysensei.services.remote_data import RemoteDataService
from copysensei.utils.formatters import strip_citations
from copysensei.utils.prompts import GenerationContext

logger = structlog.get_logger(__name__)

CONTEXT_ROLES = (MessageRole.USER, MessageRole.ASSISTANT)


class ChatState(str, Enum):
    """Lifecycle of a single send."""
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    DELIVERED = "delivered"
    FAILED = "failed"


class SendResult(BaseModel):
    """Outcome of a delivered send."""
    state: ChatState
    message_type: MessageType
    user_message: MessageRecord
    assistant_message: MessageRecord
    credits_remaining: int


class ChatOrchestrator:
    """
    Runs the send flow for one user's chat session.

    Args:
        store: Local cache store scoped to the user
        remote: Database and remote functions
        context_window: Prior turns sent with each request
    """

    def __init__(
        self,
        store: LocalCacheStore,
        remote: RemoteDataService,
        context_window: Optional[int] = None,
    ):
        self.store = store
        self.remote = remote
        self.context_window = context_window or settings.conversation_context_window
        self.state = ChatState.IDLE
        self.last_outcome: Optional[ChatState] = None
        self._lock = asyncio.Lock()

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def _transition(self, state: ChatState, **log_context) -> None:
        logger.debug("Chat state change", previous=self.state.value, state=state.value, **log_context)
        self.state = state

    async def send(self, text: str, project_id: Optional[str]) -> SendResult:
        """
        Send a user message and wait for the assistant's reply.

        Raises:
            SessionBusyError: a previous send is still awaiting its response
            InvalidRequestError: empty text
            NotFoundError: user or project not in the local store
            LowValueMessageError: small talk, blocked with an advisory
            InsufficientCreditsError: billable request without credits
            RemoteServiceError: generation or persistence failed
        """
        if self.is_busy:
            raise SessionBusyError("A message is already awaiting a response")

        async with self._lock:
            try:
                return await self._send(text, project_id)
            finally:
                self._transition(ChatState.IDLE)

    async def _send(self, text: str, project_id: Optional[str]) -> SendResult:
        if not text or not text.strip():
            raise InvalidRequestError("Message cannot be empty")
        if not project_id:
            raise InvalidRequestError("A project must be selected")

        user = await self.store.get_user()
        if user is None:
            raise NotFoundError("User not found")
        project = await self.store.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found")

        if classifier.is_low_value_chat(text):
            logger.info("Low-value message blocked", project_id=project_id)
            raise LowValueMessageError(classifier.LOW_VALUE_ADVISORY)

        message_type = classifier.classify(text)
        billable = message_type == MessageType.COPY_GENERATION
        credits_used = settings.credits_per_generation if billable else 0

        if billable and user.credits < credits_used:
            raise InsufficientCreditsError("Not enough credits to generate copy", balance=user.credits)

        history = await self.store.get_project_messages(project_id)

        user_message = MessageRecord(
            project_id=project_id,
            role=MessageRole.USER,
            content=text,
            message_type=message_type,
        )
        await self.store.save_message(user_message)
        self._transition(ChatState.AWAITING_RESPONSE, project_id=project_id, message_type=message_type.value)

        try:
            await self.remote.save_message(user_message)

            generated = await self.remote.generate_copy(
                self.build_conversation(history, user_message),
                self.build_context(project),
            )
            content = strip_citations(generated)
            if not content:
                raise RemoteServiceError("generate-copy returned no generatedCopy")

            reply = MessageRecord(
                project_id=project_id,
                role=MessageRole.ASSISTANT,
                content=content,
                message_type=message_type,
                credits_used=credits_used,
            )

            if billable:
                balance = await self._deliver_billable(user, text, reply)
            else:
                await self.remote.save_message(reply)
                await self.store.save_message(reply)
                balance = user.credits

        except (RemoteServiceError, InsufficientCreditsError) as e:
            self._transition(ChatState.FAILED, project_id=project_id, error=str(e))
            self.last_outcome = ChatState.FAILED
            capture_exception(e, {"project_id": project_id, "message_type": message_type.value})
            logger.warning("Chat send failed", project_id=project_id, error=str(e))
            raise

        self._transition(ChatState.DELIVERED, project_id=project_id)
        self.last_outcome = ChatState.DELIVERED

        logger.info(
            "Chat send delivered",
            project_id=project_id,
            message_type=message_type.value,
            credits_used=credits_used,
            credits_remaining=balance,
        )
        return SendResult(
            state=ChatState.DELIVERED,
            message_type=message_type,
            user_message=user_message,
            assistant_message=reply,
            credits_remaining=balance,
        )

    async def _deliver_billable(
        self,
        user: UserRecord,
        prompt: str,
        reply: MessageRecord,
    ) -> int:
        """
        Persist a billable reply and charge for it.

        With a database the charge and the reply commit together. Without one
        the reply is stored first and then the local balance is charged.
        """
        generation = GenerationRecord(
            project_id=reply.project_id,
            prompt=prompt,
            generated_copy=reply.content,
            credits_used=reply.credits_used,
        )

        if self.remote.has_database:
            try:
                balance = await self.remote.commit_billable_reply(user.id, reply, generation)
            except InsufficientCreditsError:
                await self._refresh_balance(user)
                raise
            await self.store.save_message(reply)
            await self.store.save_generation(generation)
        else:
            await self.store.save_message(reply)
            await self.store.save_generation(generation)
            balance = user.credits - reply.credits_used

        await self.store.update_user_credits(balance)
        return balance

    async def _refresh_balance(self, user: UserRecord) -> None:
        """Replace a stale local balance with the database one after a refused charge."""
        try:
            profile = await self.remote.load_user(user.id, user.email)
        except RemoteServiceError as e:
            logger.warning("Could not refresh balance", user_id=user.id, error=str(e))
            return

        await self.store.update_user_credits(profile.credits)
        logger.info("Local balance refreshed", user_id=user.id, credits=profile.credits)

    def build_conversation(self, history: list[MessageRecord], message: MessageRecord) -> list[dict]:
        """Last N user/assistant turns followed by the new message."""
        turns = [m for m in history if m.role in CONTEXT_ROLES]
        recent = turns[-self.context_window:] if self.context_window > 0 else []
        return [
            {"role": m.role.value, "content": m.content}
            for m in [*recent, message]
        ]

    def build_context(self, project: ProjectRecord) -> dict:
        return GenerationContext(
            tone_of_voice=project.tone_of_voice.value,
            research_data=project.research_data,
            custom_notes=project.custom_notes,
            strategy_brief=project.strategy_brief,
        ).model_dump(by_alias=True)


class ChatSessionRegistry:
    """One orchestrator per user, so sends are serialized per session."""

    def __init__(self):
        self._sessions: dict[str, ChatOrchestrator] = {}

    def get_or_create(self, user_id: str, factory: Callable[[], ChatOrchestrator]) -> ChatOrchestrator:
        session = self._sessions.get(user_id)
        if session is None:
            session = factory()
            self._sessions[user_id] = session
        return session

    def clear(self) -> None:
        self._sessions.clear()


chat_sessions = ChatSessionRegistry()

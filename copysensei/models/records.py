"""
Pydantic records shared by the local cache store, the API and the functions.
Serialized with camelCase keys, matching what the web client stores.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from copysensei.models.chat import MessageRole, MessageType
from copysensei.models.project import ToneOfVoice


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Record(BaseModel):
    """Base for cached entities."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_cache(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class UserRecord(Record):
    id: str
    email: str
    credits: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)


class ProjectRecord(Record):
    id: str = Field(default_factory=new_id)
    user_id: str
    name: str
    website_url: Optional[str] = None
    tone_of_voice: ToneOfVoice = ToneOfVoice.PROFESSIONAL
    research_data: Optional[Any] = None
    strategy_brief: Optional[str] = None
    custom_notes: Optional[str] = ""
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class DocumentRecord(Record):
    id: str = Field(default_factory=new_id)
    project_id: str
    filename: str
    content: str
    file_size: int = 0
    uploaded_at: datetime = Field(default_factory=utcnow)


class MessageRecord(Record):
    id: str = Field(default_factory=new_id)
    project_id: str
    role: MessageRole
    content: str
    message_type: MessageType = MessageType.CHAT
    credits_used: int = Field(default=0, ge=0, le=1)
    created_at: datetime = Field(default_factory=utcnow)


class GenerationRecord(Record):
    id: str = Field(default_factory=new_id)
    project_id: str
    prompt: str
    generated_copy: str
    credits_used: int = 1
    created_at: datetime = Field(default_factory=utcnow)

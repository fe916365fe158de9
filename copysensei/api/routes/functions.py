"""
Function routes - generate-copy and fetch-research.

These are the endpoints the functions client invokes. Bodies use the
camelCase keys of the web client. Any failure answers HTTP 500 with an
{"error": ...} body.

Auth: when FUNCTIONS_API_KEY is set, callers must send it as a bearer token
or in the `apikey` header.
"""

import hmac
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Header, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from copysensei.agents.copywriter import copywriter
from copysensei.agents.researcher import researcher
from copysensei.core.config import settings
from copysensei.utils.prompts import GenerationContext

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["functions"])


class ConversationTurn(BaseModel):
    role: str
    content: str


class GenerateCopyPayload(BaseModel):
    """
    Example:
    {
        "messages": [{"role": "user", "content": "Write a tagline"}],
        "context": {"toneOfVoice": "friendly", "researchData": {...}}
    }
    """
    messages: Optional[list[ConversationTurn]] = None
    prompt: Optional[str] = None
    context: GenerationContext = Field(default_factory=GenerationContext)


class FetchResearchPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    website_url: Optional[str] = None
    project_name: Optional[str] = None


def _verify_api_key(authorization: Optional[str], apikey: Optional[str]) -> None:
    expected = settings.functions_api_key
    if not expected:
        return

    supplied = apikey or ""
    if authorization and authorization.lower().startswith("bearer "):
        supplied = authorization[7:]

    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def _error(e: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(e) or type(e).__name__})


@router.post("/generate-copy")
async def generate_copy(
    payload: GenerateCopyPayload,
    authorization: Optional[str] = Header(None),
    apikey: Optional[str] = Header(None),
) -> Any:
    _verify_api_key(authorization, apikey)

    try:
        generated = await copywriter.generate(
            payload.context,
            messages=[m.model_dump() for m in payload.messages] if payload.messages else None,
            prompt=payload.prompt,
        )
    except Exception as e:
        logger.error("generate-copy failed", error=str(e))
        return _error(e)

    return {"generatedCopy": generated}


@router.post("/fetch-research")
async def fetch_research(
    payload: FetchResearchPayload,
    authorization: Optional[str] = Header(None),
    apikey: Optional[str] = Header(None),
) -> Any:
    _verify_api_key(authorization, apikey)

    if not payload.website_url:
        return _error(ValueError("Website URL is required"))

    try:
        research = await researcher.fetch(payload.website_url, payload.project_name)
    except Exception as e:
        logger.error("fetch-research failed", website_url=payload.website_url, error=str(e))
        return _error(e)

    return {"researchData": research}

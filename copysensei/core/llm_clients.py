"""
LLM client abstraction for OpenAI and Perplexity.
Both speak the OpenAI chat-completions protocol; Perplexity is reached
through its OpenAI-compatible base URL. Provides retry logic and token tracking.
"""

import asyncio
from enum import Enum
from typing import Optional

import structlog
from openai import APIConnectionError, APITimeoutError, AsyncOpenAI
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from copysensei.core.config import settings

logger = structlog.get_logger(__name__)


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    PERPLEXITY = "perplexity"


class LLMMessage(BaseModel):
    """Message format for LLM conversations."""
    role: str  # "system", "user", "assistant"
    content: str


class LLMResponse(BaseModel):
    """Standardized LLM response."""
    content: str
    model: str
    provider: LLMProvider
    tokens_used: int
    prompt_tokens: int
    completion_tokens: int
    estimated_cost: float


class OpenAIClient:
    """OpenAI API client with retry logic."""

    provider = LLMProvider.OPENAI

    # Pricing per 1K tokens
    PRICING = {
        "gpt-4o": {"input": 0.0025, "output": 0.01},
        "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    }
    DEFAULT_PRICING = "gpt-4o-mini"

    def __init__(self):
        self.client = AsyncOpenAI(api_key=settings.openai_api_key)
        self.default_model = settings.openai_model_copy

    def _estimate_cost(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        """Estimate cost based on token usage."""
        pricing = self.PRICING.get(model, self.PRICING[self.DEFAULT_PRICING])
        input_cost = (prompt_tokens / 1000) * pricing["input"]
        output_cost = (completion_tokens / 1000) * pricing["output"]
        return round(input_cost + output_cost, 6)

    @retry(
        retry=retry_if_exception_type(
            (TimeoutError, ConnectionError, APIConnectionError, APITimeoutError)
        ),
        stop=stop_after_attempt(settings.llm_max_retries),
        wait=wait_exponential(multiplier=1, min=2, max=10),
    )
    async def generate(
        self,
        messages: list[LLMMessage],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        **extra_params,
    ) -> LLMResponse:
        """Generate a completion."""
        model = model or self.default_model
        temperature = temperature if temperature is not None else settings.llm_temperature
        max_tokens = max_tokens or settings.llm_max_tokens

        request_params = {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
            **extra_params,
        }

        logger.debug("LLM request", provider=self.provider.value, model=model, message_count=len(messages))

        response = await asyncio.wait_for(
            self.client.chat.completions.create(**request_params),
            timeout=settings.llm_timeout,
        )

        usage = response.usage
        prompt_tokens = usage.prompt_tokens if usage else 0
        completion_tokens = usage.completion_tokens if usage else 0

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=model,
            provider=self.provider,
            tokens_used=prompt_tokens + completion_tokens,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            estimated_cost=self._estimate_cost(model, prompt_tokens, completion_tokens),
        )


class PerplexityClient(OpenAIClient):
    """Perplexity client over the OpenAI-compatible endpoint."""

    provider = LLMProvider.PERPLEXITY

    PRICING = {
        "sonar": {"input": 0.001, "output": 0.001},
        "sonar-pro": {"input": 0.003, "output": 0.015},
    }
    DEFAULT_PRICING = "sonar"

    def __init__(self):
        self.client = AsyncOpenAI(
            api_key=settings.perplexity_api_key,
            base_url=settings.perplexity_base_url,
        )
        self.default_model = settings.perplexity_model_research


class LLMClient:
    """
    Routes copy generation to OpenAI and research to Perplexity.
    Clients are created lazily so a missing key only fails the call that needs it.
    """

    def __init__(self):
        self._openai: Optional[OpenAIClient] = None
        self._perplexity: Optional[PerplexityClient] = None

    @property
    def openai(self) -> OpenAIClient:
        """Lazy load OpenAI client."""
        if self._openai is None:
            if not settings.openai_api_key:
                raise RuntimeError("OPENAI_API_KEY is not configured")
            self._openai = OpenAIClient()
        return self._openai

    @property
    def perplexity(self) -> PerplexityClient:
        """Lazy load Perplexity client."""
        if self._perplexity is None:
            if not settings.perplexity_api_key:
                raise RuntimeError("PERPLEXITY_API_KEY is not configured")
            self._perplexity = PerplexityClient()
        return self._perplexity

    async def generate_copy(self, messages: list[LLMMessage]) -> LLMResponse:
        """Chat/copy completion with the copy model."""
        return await self.openai.generate(messages)

    async def research(self, messages: list[LLMMessage]) -> LLMResponse:
        """Web-grounded research completion."""
        return await self.perplexity.generate(
            messages,
            temperature=settings.research_temperature,
            max_tokens=settings.research_max_tokens,
            top_p=0.9,
            extra_body={
                "return_images": False,
                "return_related_questions": False,
                "search_recency_filter": "month",
            },
        )


# Global LLM client instance
llm_client = LLMClient()

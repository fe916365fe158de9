"""
Copywriter agent behind the generate-copy function.
Turns project context plus conversation into a single completion.
"""

import time
from typing import Optional

import structlog

from copysensei.core.llm_clients import LLMClient, LLMMessage, llm_client
from copysensei.utils.prompts import GenerationContext, build_copy_system_prompt

logger = structlog.get_logger(__name__)

CONVERSATION_ROLES = {"user", "assistant"}


class CopywriterAgent:
    """Generates copy and chat replies for a project."""

    name = "copywriter"

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client or llm_client

    def build_messages(
        self,
        context: GenerationContext,
        messages: Optional[list[dict]] = None,
        prompt: Optional[str] = None,
    ) -> list[LLMMessage]:
        """
        System prompt followed by the conversation.

        A conversation array wins over the single-prompt form.
        """
        llm_messages = [LLMMessage(role="system", content=build_copy_system_prompt(context))]

        if messages:
            for message in messages:
                role = message.get("role")
                content = message.get("content")
                if role in CONVERSATION_ROLES and content:
                    llm_messages.append(LLMMessage(role=role, content=content))
        elif prompt:
            llm_messages.append(LLMMessage(role="user", content=prompt))

        if len(llm_messages) == 1:
            raise ValueError("Either messages or prompt is required")
        return llm_messages

    async def generate(
        self,
        context: GenerationContext,
        messages: Optional[list[dict]] = None,
        prompt: Optional[str] = None,
    ) -> str:
        start_time = time.time()
        llm_messages = self.build_messages(context, messages=messages, prompt=prompt)

        logger.info("Generating copy", turns=len(llm_messages) - 1, tone=context.tone_of_voice)

        response = await self.client.generate_copy(llm_messages)
        if not response.content.strip():
            raise ValueError("Model returned an empty completion")

        logger.info(
            "Copy generation completed",
            model=response.model,
            tokens=response.tokens_used,
            cost=response.estimated_cost,
            execution_time_ms=int((time.time() - start_time) * 1000),
        )
        return response.content


copywriter = CopywriterAgent()

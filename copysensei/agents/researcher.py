"""
Research agent behind the fetch-research function, plus strategy brief synthesis.
"""

from typing import Any, Optional

import structlog

from copysensei.core.llm_clients import LLMClient, LLMMessage, llm_client
from copysensei.utils.formatters import extract_json_payload, research_to_text, strip_citations
from copysensei.utils.prompts import (
    RESEARCH_SYSTEM_PROMPT,
    STRATEGY_SYSTEM_PROMPT,
    build_research_prompt,
)

logger = structlog.get_logger(__name__)


class ResearchAgent:
    """Analyzes a website and its market for copywriting."""

    name = "researcher"

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client or llm_client

    async def fetch(self, website_url: str, project_name: Optional[str] = None) -> Any:
        """
        Research a website.

        Returns the parsed JSON analysis, or the raw model text when it is not
        valid JSON.
        """
        if not website_url or not website_url.strip():
            raise ValueError("Website URL is required")

        logger.info("Fetching research", website_url=website_url)

        response = await self.client.research([
            LLMMessage(role="system", content=RESEARCH_SYSTEM_PROMPT),
            LLMMessage(role="user", content=build_research_prompt(website_url, project_name)),
        ])

        research = extract_json_payload(response.content)
        if isinstance(research, str):
            logger.warning("Research response was not valid JSON, keeping raw text")

        logger.info("Research completed", website_url=website_url, tokens=response.tokens_used)
        return research

    async def synthesize_strategy(self, research: Any, project_name: str, tone: Optional[str] = None) -> str:
        """Condense research into a short strategy brief."""
        research_text = research_to_text(research)
        if not research_text:
            raise ValueError("Research data is required to build a strategy brief")

        response = await self.client.generate_copy([
            LLMMessage(role="system", content=STRATEGY_SYSTEM_PROMPT),
            LLMMessage(
                role="user",
                content=f"Project: {project_name}\n"
                        f"Tone of voice: {tone or 'professional'}\n\n"
                        f"Research:\n{research_text}",
            ),
        ])
        return strip_citations(response.content)


researcher = ResearchAgent()

"""
Prompt templates for copy generation, research and strategy synthesis.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from copysensei.core.config import settings
from copysensei.utils.formatters import research_to_text


class GenerationContext(BaseModel):
    """Project context sent along with a generation request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tone_of_voice: Optional[str] = None
    research_data: Optional[Any] = None
    custom_notes: Optional[str] = None
    strategy_brief: Optional[str] = None


COPY_SYSTEM_PROMPT = """You are CopySensei, an expert copywriting assistant. You help users create compelling marketing copy and provide strategic marketing advice.
{context}
Your capabilities:
1. Generate marketing copy (when explicitly requested)
2. Answer questions about copywriting best practices
3. Provide feedback on existing copy
4. Help with marketing strategy

Be helpful, professional, and concise. When generating copy, make it compelling and aligned with the tone of voice."""

RESEARCH_SYSTEM_PROMPT = (
    "You are a business research assistant. You MUST respond with ONLY valid JSON, "
    "no additional text or formatting."
)

RESEARCH_USER_PROMPT = """You are an elite copywriting researcher combining consumer psychology, market analysis, conversion optimization and persuasive writing.

Goal: gather everything needed to write high-converting copy for {url}{project_line}.

Process:
1. Visit {url}: capture the current headline, value proposition, call-to-action, page type and goal, strengths, weaknesses and missing elements.
2. Research 3-5 direct competitors, customer reviews and forum discussions.
3. Identify the target audience, pain points, desires, objections and the exact language customers use.
4. Synthesize specific, evidence-based copywriting recommendations.

Respond with ONLY valid JSON using these top-level keys:
{{
  "page_snapshot": {{}},
  "audience_intelligence": {{}},
  "voice_of_customer": {{}},
  "competitive_intelligence": {{}},
  "conversion_psychology": {{}},
  "copywriting_blueprint": {{}},
  "messaging_guidelines": {{}},
  "page_structure_recommendation": {{}},
  "evidence_and_sources": {{}}
}}

Be ruthlessly specific to {url}. Quote real examples and cite competitor URLs."""

STRATEGY_SYSTEM_PROMPT = """You are a senior conversion copywriter. Condense research into a strategy brief a copywriter can work from.
Use short sections: Audience, Core Message, Proof Points, Objections & Rebuttals, Voice, Calls to Action.
Plain text, no more than 400 words."""


def build_copy_system_prompt(context: GenerationContext) -> str:
    """System prompt carrying tone, research, notes and strategy."""
    parts = []
    if context.tone_of_voice:
        parts.append(f"Tone of Voice: {context.tone_of_voice}")
    if context.strategy_brief:
        parts.append(f"\nStrategy Brief:\n{context.strategy_brief}")
    research = research_to_text(context.research_data, limit=settings.research_context_chars)
    if research:
        parts.append(f"\nBusiness Context:\n{research}")
    if context.custom_notes:
        parts.append(f"\nCustom Notes:\n{context.custom_notes}")

    block = "\n".join(parts)
    return COPY_SYSTEM_PROMPT.format(context=f"\n{block}\n" if block else "")


def build_research_prompt(url: str, project_name: Optional[str] = None) -> str:
    project_line = f" (project: {project_name})" if project_name else ""
    return RESEARCH_USER_PROMPT.format(url=url, project_line=project_line)

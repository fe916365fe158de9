"""
LLM agents behind the generate-copy and fetch-research functions.
"""

from copysensei.agents.copywriter import CopywriterAgent, copywriter
from copysensei.agents.researcher import ResearchAgent, researcher

__all__ = ["CopywriterAgent", "copywriter", "ResearchAgent", "researcher"]

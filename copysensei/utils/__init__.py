"""Utility functions and helpers"""

from copysensei.utils.formatters import (
    extract_json_payload,
    render_transcript,
    research_to_text,
    strip_citations,
)

__all__ = [
    "extract_json_payload",
    "render_transcript",
    "research_to_text",
    "strip_citations",
]

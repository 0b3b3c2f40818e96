"""
LLM Tool Definitions

This module defines the authoritative tool/function schemas exposed to the LLM.
These definitions must remain strictly synchronized with:

- tools/base.py (TOOL_REGISTRY)
- tools/search_tools.py (CVSearchInput)

Only tools defined here can ever be invoked by the LLM.
"""

from __future__ import annotations

from typing import Dict, List, Any, Final


# ---------------------------------------------------------------------
# Tool Name Constants (Single Source of Truth)
# ---------------------------------------------------------------------

TOOL_SEARCH_CV: Final[str] = "searchCV"

MAX_SEARCH_RESULTS: Final[int] = 10


SEARCH_CV_DESCRIPTION: Final[str] = """Search Chris Saunders' CV database for relevant professional information.

USE THIS TOOL WHEN the user asks about:
- Work experience, employment history, or career progression
- Technical skills, programming languages, tools, or technologies
- Projects, systems built, or technical achievements
- Education, degrees, qualifications, or certifications
- Quantifiable metrics, impact numbers, or business outcomes
- Specific companies, roles, or job responsibilities

DO NOT USE THIS TOOL for:
- General greetings or small talk
- Questions unrelated to professional background
- Follow-up clarifications that don't need new data

The tool returns relevant CV sections with similarity scores. Higher similarity indicates better relevance."""


# ---------------------------------------------------------------------
# Tool Definitions
# ---------------------------------------------------------------------

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    {
        "type": "function",
        "function": {
            "name": TOOL_SEARCH_CV,
            "description": SEARCH_CV_DESCRIPTION,
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The search query to find relevant CV information",
                        "minLength": 1,
                    },
                    "maxResults": {
                        "type": "integer",
                        "description": "Maximum number of results to return (default: 5)",
                        "minimum": 1,
                        "maximum": MAX_SEARCH_RESULTS,
                    },
                },
                "required": ["query"],
                "additionalProperties": False,
            },
        },
    },
]

"""
Agent Configuration

Immutable record of the knobs that shape a single CV agent: which models
to call, how many tool steps the model may take, how search is bounded,
and the wall-clock budget of a request.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..config import Settings


class AgentConfig(BaseModel):
    """
    Constructed once per process (or per request) and never mutated.
    """

    model_id: str = Field(default="anthropic/claude-opus-4-5", min_length=1)
    embedding_model_id: str = Field(default="openai/text-embedding-3-small", min_length=1)
    max_tool_steps: int = Field(default=5, ge=1)
    default_search_limit: int = Field(default=5, ge=1, le=10)
    similarity_threshold: float = Field(default=0.3, ge=-1.0, le=1.0)
    request_timeout_ms: int = Field(default=60000, gt=0)

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )

    @property
    def request_timeout_s(self) -> float:
        return self.request_timeout_ms / 1000.0

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "AgentConfig":
        """
        Build a config from process settings; keyword overrides win.
        """
        values = {
            "model_id": settings.chat_model,
            "embedding_model_id": settings.embedding_model,
            "max_tool_steps": settings.max_tool_steps,
            "default_search_limit": settings.default_search_limit,
            "similarity_threshold": settings.similarity_threshold,
            "request_timeout_ms": settings.request_timeout_ms,
        }
        values.update(overrides)
        return cls(**values)


DEFAULT_AGENT_CONFIG = AgentConfig()

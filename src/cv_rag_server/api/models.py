"""
API Models

Pydantic models for request/response validation on the chat, search and
health endpoints. Tool input/output contracts live in tools/search_tools.py
and are reused here unchanged.
"""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, Field, ConfigDict


class ChatRequest(BaseModel):
    """
    Chat request payload.

    Each message is kept as raw JSON: per-message shape checking belongs to
    the message adapter, which drops malformed entries instead of failing
    the whole request.
    """
    messages: List[Any] = Field(..., min_length=1)

    model_config = ConfigDict(extra="ignore")


class HealthResponse(BaseModel):
    status: str = "ok"
    configured: bool
    missing: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

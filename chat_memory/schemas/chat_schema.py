"""Memory-aware generation request and response schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    """Prompt sent against a session's remembered context."""

    prompt: str = Field(..., min_length=1, max_length=8000)
    settings: dict[str, Any] | None = None
    variants: int = Field(default=1, ge=1, le=10)


class GenerateResponse(BaseModel):
    """Generated text and the variants produced alongside it."""

    session_id: str
    response: str
    variants: list[str]
    context_size: int
    created_at: datetime

"""Memory-aware generation API router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from chat_memory.core.config import settings
from chat_memory.core.rate_limit import limiter
from chat_memory.dependencies import get_chat_service
from chat_memory.schemas.chat_schema import GenerateRequest, GenerateResponse
from chat_memory.schemas.response_schema import (
    ERROR_RESPONSES,
    ApiResponse,
    success_response,
)
from chat_memory.services.chat_service import ChatService

router = APIRouter(
    prefix="/api/v1/chat",
    tags=["chat"],
    responses=ERROR_RESPONSES,
)

ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]


@router.post("/{session_id}/generate", response_model=ApiResponse[GenerateResponse])
@limiter.limit(settings.memory.generate_rate_limit)
async def generate(
    request: Request,
    session_id: str,
    body: GenerateRequest,
    chat_service: ChatServiceDep,
) -> dict:
    """Generate a response using the session's remembered context."""
    result = await chat_service.generate(
        session_id,
        body.prompt,
        settings=body.settings,
        variants=body.variants,
    )
    return success_response(result.unwrap())

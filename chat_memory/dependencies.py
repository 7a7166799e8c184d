"""Global dependencies for the application."""

from functools import lru_cache

from fastapi import Depends, Request
from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from chat_memory.core.config import settings
from chat_memory.core.database import get_async_session
from chat_memory.core.exceptions import AuthenticationError
from chat_memory.repositories.record_store import RecordStore, SqlRecordStore
from chat_memory.services.chat_service import ChatService
from chat_memory.services.context_window import ContextWindow
from chat_memory.services.session_manager import SessionManager


@lru_cache
def get_llm() -> BaseChatModel:
    """Get the LLM instance based on the configured provider."""
    llm_config = settings.llm
    match llm_config.provider:
        case "openai":
            return ChatOpenAI(
                model=llm_config.openai_model,
                api_key=llm_config.openai_api_key,
                temperature=llm_config.temperature,
            )
        case "anthropic":
            return ChatAnthropic(  # type: ignore[call-arg]
                model_name=llm_config.anthropic_model,
                api_key=llm_config.anthropic_api_key,
                temperature=llm_config.temperature,
            )
        case _:
            raise ValueError(f"Unsupported LLM provider: {llm_config.provider}")


# --- Principal ---


class CurrentOwner(BaseModel):
    """Authenticated principal extracted from request state."""

    model_config = ConfigDict(frozen=True)

    id: str


def get_current_owner(request: Request) -> CurrentOwner:
    """Extract the authenticated owner from middleware-populated state."""
    owner_id = getattr(request.state, "owner_id", None)
    if not owner_id:
        raise AuthenticationError(message="Not authenticated")
    return CurrentOwner(id=owner_id)


# --- Store and services ---


def get_record_store(
    session: AsyncSession = Depends(get_async_session),
) -> RecordStore:
    """Get a RecordStore bound to the request's database session."""
    return SqlRecordStore(session)


def get_session_manager(
    store: RecordStore = Depends(get_record_store),
    owner: CurrentOwner = Depends(get_current_owner),
) -> SessionManager:
    """Get the SessionManager acting for the authenticated owner."""
    return SessionManager(
        store,
        owner.id,
        ttl=settings.memory.session_ttl,
        timeout=settings.memory.store_timeout_seconds,
        default_context_window=settings.memory.default_context_window,
    )


def get_context_window(
    store: RecordStore = Depends(get_record_store),
    owner: CurrentOwner = Depends(get_current_owner),
) -> ContextWindow:
    """Get the ContextWindow engine acting for the authenticated owner."""
    return ContextWindow(
        store,
        owner.id,
        ttl=settings.memory.session_ttl,
        timeout=settings.memory.store_timeout_seconds,
    )


def get_chat_service(
    memory: ContextWindow = Depends(get_context_window),
    llm: BaseChatModel = Depends(get_llm),
) -> ChatService:
    """Get ChatService wired to the configured model and the owner's memory."""
    return ChatService(
        llm=llm,
        memory=memory,
        max_variants=settings.memory.max_variants,
    )

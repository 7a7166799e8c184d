"""Chat session database model."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from chat_memory.core.database import Base


class ChatSession(Base):
    """Persistent conversational memory owned by a single principal.

    The message log is stored inline as a JSON array: it is bounded by the
    context window, always read and written as a whole, and ordered by
    insertion.
    """

    __tablename__ = "chat_sessions"
    __table_args__ = (
        Index("ix_chat_sessions_owner_id_updated_at", "owner_id", "updated_at"),
        Index("ix_chat_sessions_owner_id_expires_at", "owner_id", "expires_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    memory_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    context_window: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    messages: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    settings: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

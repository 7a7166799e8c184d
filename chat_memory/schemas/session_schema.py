"""Session and message schemas."""

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

Role = Literal["system", "user", "assistant"]


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Message(BaseModel):
    """One entry of a session's message log."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime | None = None
    settings: dict[str, Any] | None = None

    def to_record(self) -> dict[str, Any]:
        """JSON-safe mapping stored in the session's message column."""
        return self.model_dump(mode="json", exclude_none=True)


class SessionSummary(BaseModel):
    """Session metadata without the message body."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    owner_id: str
    name: str
    memory_enabled: bool
    context_window: int
    settings: dict[str, Any] | None = None
    version: int = 1
    created_at: datetime
    updated_at: datetime
    expires_at: datetime

    @field_validator("created_at", "updated_at", "expires_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)  # type: ignore[return-value]


class Session(SessionSummary):
    """Full session including its ordered message log."""

    messages: list[Message] = Field(default_factory=list)

    def visible(self) -> "Session":
        """Copy as shown to readers: the log is withheld while memory is off."""
        if self.memory_enabled:
            return self
        return self.model_copy(update={"messages": []})


# --- Request bodies ---


class CreateSessionRequest(BaseModel):
    """Request to create a session."""

    memory_enabled: bool = False
    context_window: int | None = Field(default=None, ge=1)
    settings: dict[str, Any] | None = None


class RenameSessionRequest(BaseModel):
    """Request to rename a session."""

    name: str = Field(..., min_length=1, max_length=255)


class UpdateMemoryRequest(BaseModel):
    """Request to toggle memory on a session."""

    enabled: bool


class UpdateSettingsRequest(BaseModel):
    """Request to replace a session's attached settings."""

    settings: dict[str, Any] | None = None


class UpdateContextWindowRequest(BaseModel):
    """Request to resize a session's context window."""

    context_window: int = Field(..., ge=1)


class AppendMessageRequest(BaseModel):
    """Request to append one message to a session."""

    message: Message
    context_window: int | None = Field(default=None, ge=1)


class DeleteAllResponse(BaseModel):
    """Number of sessions removed by a bulk delete."""

    deleted_count: int

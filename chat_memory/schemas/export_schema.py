"""Export document schemas."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from chat_memory.schemas.session_schema import Message

ExportFormat = Literal["txt", "json"]
ExportView = Literal["messages", "takes"]


class EditRecord(BaseModel):
    """A single line edit made to generated output before export."""

    model_config = ConfigDict(frozen=True)

    line_number: int
    timestamp: datetime


class ExportMetadata(BaseModel):
    """Descriptive fields written alongside exported content."""

    model_config = ConfigDict(frozen=True)

    session_id: str | None = None
    name: str | None = None
    memory_enabled: bool | None = None
    exported_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    edit_history: list[EditRecord] = Field(default_factory=list)


class ExportDocument(BaseModel):
    """Structured export, suitable for re-import."""

    model_config = ConfigDict(frozen=True)

    session_id: str | None = None
    name: str | None = None
    memory_enabled: bool | None = None
    edit_history: list[EditRecord] = Field(default_factory=list)
    messages: list[Message]
    exported_at: datetime


class ExportRequest(BaseModel):
    """Export options, including line edits made to the output by the caller."""

    format: ExportFormat = "json"
    view: ExportView = "messages"
    edit_history: list[EditRecord] = Field(default_factory=list)

"""Render message logs and Takes into portable export documents."""

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import structlog

from chat_memory.core.exceptions import ExportError
from chat_memory.schemas.export_schema import (
    ExportDocument,
    ExportFormat,
    ExportMetadata,
)
from chat_memory.schemas.session_schema import Message
from chat_memory.schemas.take_schema import Take

logger = structlog.get_logger()

HEADER = "=== Conversation Export ==="
RULE_WIDTH = 50

ROLE_LABELS = {"user": "You", "assistant": "Assistant", "system": "System"}

MEDIA_TYPES: dict[str, str] = {
    "txt": "text/plain; charset=utf-8",
    "json": "application/json",
}


def _format_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _header(metadata: ExportMetadata) -> list[str]:
    lines = [HEADER, "", f"Exported: {_format_time(metadata.exported_at)}"]
    if metadata.session_id:
        lines.append(f"Session ID: {metadata.session_id}")
    if metadata.name:
        lines.append(f"Project: {metadata.name}")
    if metadata.memory_enabled is not None:
        lines.append(f"Memory: {'Enabled' if metadata.memory_enabled else 'Disabled'}")
    lines += ["", "=" * RULE_WIDTH, ""]
    return lines


def _edit_history(metadata: ExportMetadata) -> list[str]:
    if not metadata.edit_history:
        return []
    lines = ["", "=== Edit History ===", ""]
    for number, edit in enumerate(metadata.edit_history, start=1):
        lines += [
            f"Edit {number}:",
            f"  Line: {edit.line_number}",
            f"  Time: {_format_time(edit.timestamp)}",
            "",
        ]
    return lines


def to_text(messages: Sequence[Message], metadata: ExportMetadata) -> str:
    """Plain-text transcript, one labelled block per message."""
    lines = _header(metadata)
    for message in messages:
        lines += [
            f"[{ROLE_LABELS[message.role]}]",
            message.content,
            "",
            "-" * RULE_WIDTH,
            "",
        ]
    lines += _edit_history(metadata)
    return "\n".join(lines) + "\n"


def takes_to_text(takes: Sequence[Take], metadata: ExportMetadata) -> str:
    """Plain-text rendering of reconstructed Takes."""
    lines = _header(metadata)
    for take in takes:
        lines += [
            f"Take {take.index + 1}",
            "Prompt:",
            take.prompt,
            "",
            "Response:",
            take.response if take.response is not None else "(awaiting response)",
            "",
            "-" * RULE_WIDTH,
            "",
        ]
    lines += _edit_history(metadata)
    return "\n".join(lines) + "\n"


def to_document(messages: Sequence[Message], metadata: ExportMetadata) -> ExportDocument:
    """Structured export carrying metadata and the raw message list."""
    return ExportDocument(
        session_id=metadata.session_id,
        name=metadata.name,
        memory_enabled=metadata.memory_enabled,
        edit_history=metadata.edit_history,
        messages=list(messages),
        exported_at=metadata.exported_at,
    )


def export_filename(fmt: ExportFormat, exported_at: datetime) -> str:
    return f"conversation-{exported_at:%Y-%m-%d}.{fmt}"


def render(
    fmt: ExportFormat,
    messages: Sequence[Message],
    metadata: ExportMetadata,
    takes: Sequence[Take] | None = None,
) -> str:
    """Render to the requested format; ``takes`` selects the Take view for text."""
    if fmt == "json":
        return to_document(messages, metadata).model_dump_json(indent=2)
    if takes is not None:
        return takes_to_text(takes, metadata)
    return to_text(messages, metadata)


def write_export(path: Path, content: str) -> Path:
    """Write a rendered export to ``path``. Failures are reported, not retried."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        logger.error("Failed to write export", path=str(path), error=str(exc))
        raise ExportError(f"Failed to write export to {path}") from exc
    logger.info("Export written", path=str(path), size=len(content))
    return path

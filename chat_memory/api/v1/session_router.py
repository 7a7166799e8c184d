"""Session, message log, Takes and export API router."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from chat_memory.dependencies import get_context_window, get_session_manager
from chat_memory.schemas.export_schema import (
    EditRecord,
    ExportFormat,
    ExportMetadata,
    ExportRequest,
    ExportView,
)
from chat_memory.schemas.response_schema import (
    ERROR_RESPONSES,
    ApiResponse,
    success_response,
)
from chat_memory.schemas.session_schema import (
    AppendMessageRequest,
    CreateSessionRequest,
    DeleteAllResponse,
    Message,
    RenameSessionRequest,
    Session,
    SessionSummary,
    UpdateContextWindowRequest,
    UpdateMemoryRequest,
    UpdateSettingsRequest,
)
from chat_memory.schemas.take_schema import Take
from chat_memory.services import export_service
from chat_memory.services.context_window import ContextWindow
from chat_memory.services.session_manager import SessionManager
from chat_memory.services.takes import reconstruct

router = APIRouter(
    prefix="/api/v1/sessions",
    tags=["sessions"],
    responses=ERROR_RESPONSES,
)

SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]
ContextWindowDep = Annotated[ContextWindow, Depends(get_context_window)]


# --- Lifecycle ---


@router.post(
    "",
    response_model=ApiResponse[Session],
    status_code=status.HTTP_201_CREATED,
)
async def create_session(
    body: CreateSessionRequest,
    manager: SessionManagerDep,
) -> dict:
    """Create a session for the current owner."""
    result = await manager.create(
        memory_enabled=body.memory_enabled,
        context_window=body.context_window,
        initial_settings=body.settings,
    )
    return success_response(result.unwrap(), status=201)


@router.get("", response_model=ApiResponse[list[SessionSummary]])
async def list_sessions(manager: SessionManagerDep) -> dict:
    """List non-expired sessions, most recently updated first."""
    result = await manager.list_active()
    return success_response(result.unwrap())


@router.delete("", response_model=ApiResponse[DeleteAllResponse])
async def delete_all_sessions(manager: SessionManagerDep) -> dict:
    """Delete every session of the current owner."""
    result = await manager.delete_all()
    return success_response(
        DeleteAllResponse(deleted_count=result.unwrap()),
        message="Sessions deleted",
    )


@router.post("/current", response_model=ApiResponse[Session])
async def get_or_create_session(manager: SessionManagerDep) -> dict:
    """Return the latest live session, creating one if none exists."""
    result = await manager.get_or_create()
    return success_response(result.unwrap())


@router.get("/{session_id}", response_model=ApiResponse[Session])
async def get_session(session_id: str, manager: SessionManagerDep) -> dict:
    result = await manager.get(session_id)
    return success_response(result.unwrap())


@router.delete("/{session_id}", response_model=ApiResponse[None])
async def delete_session(session_id: str, manager: SessionManagerDep) -> dict:
    (await manager.delete(session_id)).unwrap()
    return success_response(None, message="Session deleted")


@router.patch("/{session_id}/name", response_model=ApiResponse[None])
async def rename_session(
    session_id: str,
    body: RenameSessionRequest,
    manager: SessionManagerDep,
) -> dict:
    (await manager.rename(session_id, body.name)).unwrap()
    return success_response(None, message="Session renamed")


@router.patch("/{session_id}/memory", response_model=ApiResponse[None])
async def update_memory(
    session_id: str,
    body: UpdateMemoryRequest,
    manager: SessionManagerDep,
) -> dict:
    """Enable or disable memory for a session."""
    (await manager.update_memory_flag(session_id, body.enabled)).unwrap()
    return success_response(None, message="Memory setting updated")


@router.put("/{session_id}/settings", response_model=ApiResponse[None])
async def replace_settings(
    session_id: str,
    body: UpdateSettingsRequest,
    manager: SessionManagerDep,
) -> dict:
    (await manager.update_settings(session_id, body.settings)).unwrap()
    return success_response(None, message="Settings updated")


@router.patch("/{session_id}/context-window", response_model=ApiResponse[None])
async def resize_context_window(
    session_id: str,
    body: UpdateContextWindowRequest,
    manager: SessionManagerDep,
) -> dict:
    (await manager.update_context_window(session_id, body.context_window)).unwrap()
    return success_response(None, message="Context window updated")


# --- Message log ---


@router.get("/{session_id}/messages", response_model=ApiResponse[list[Message]])
async def read_messages(session_id: str, memory: ContextWindowDep) -> dict:
    """Stored messages; empty while memory is disabled."""
    result = await memory.read(session_id)
    return success_response(result.unwrap())


@router.post(
    "/{session_id}/messages",
    response_model=ApiResponse[Session],
    status_code=status.HTTP_201_CREATED,
)
async def append_message(
    session_id: str,
    body: AppendMessageRequest,
    memory: ContextWindowDep,
) -> dict:
    """Append a message and return the trimmed session."""
    result = await memory.append(session_id, body.message, body.context_window)
    return success_response(result.unwrap(), status=201)


@router.delete("/{session_id}/messages", response_model=ApiResponse[None])
async def clear_messages(session_id: str, memory: ContextWindowDep) -> dict:
    (await memory.clear(session_id)).unwrap()
    return success_response(None, message="History cleared")


@router.get("/{session_id}/takes", response_model=ApiResponse[list[Take]])
async def list_takes(session_id: str, memory: ContextWindowDep) -> dict:
    """Prompt/response pairs reconstructed from the readable log."""
    messages = (await memory.read(session_id)).unwrap()
    return success_response(reconstruct(messages))


# --- Export ---


async def _export_response(
    session_id: str,
    manager: SessionManager,
    memory: ContextWindow,
    fmt: ExportFormat,
    view: ExportView,
    edit_history: list[EditRecord],
) -> Response:
    session = (await manager.get(session_id)).unwrap()
    messages = (await memory.read(session_id)).unwrap()

    metadata = ExportMetadata(
        session_id=session.id,
        name=session.name,
        memory_enabled=session.memory_enabled,
        edit_history=edit_history,
    )
    takes = reconstruct(messages) if view == "takes" else None
    content = export_service.render(fmt, messages, metadata, takes=takes)
    filename = export_service.export_filename(fmt, metadata.exported_at)
    return Response(
        content=content,
        media_type=export_service.MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{session_id}/export")
async def export_session(
    session_id: str,
    manager: SessionManagerDep,
    memory: ContextWindowDep,
    fmt: ExportFormat = Query(default="json", alias="format"),
    view: ExportView = Query(default="messages"),
) -> Response:
    """Download the readable log as a text transcript or JSON document."""
    return await _export_response(session_id, manager, memory, fmt, view, [])


@router.post("/{session_id}/export")
async def export_session_with_edits(
    session_id: str,
    body: ExportRequest,
    manager: SessionManagerDep,
    memory: ContextWindowDep,
) -> Response:
    """Download an export that also records the caller's line edits."""
    return await _export_response(
        session_id, manager, memory, body.format, body.view, body.edit_history
    )

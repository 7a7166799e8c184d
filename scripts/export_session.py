"""Export a session's conversation to a file.

Usage:
    python -m scripts.export_session --owner user-1 --session <id> \
        --format txt --view takes --output exports/
"""

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path

from pydantic import TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chat_memory.core.database import async_session_factory, engine
from chat_memory.repositories.record_store import SqlRecordStore
from chat_memory.schemas.export_schema import (
    EditRecord,
    ExportFormat,
    ExportMetadata,
    ExportView,
)
from chat_memory.services import export_service
from chat_memory.services.context_window import ContextWindow
from chat_memory.services.session_manager import SessionManager
from chat_memory.services.takes import reconstruct


async def export_session(
    owner_id: str,
    session_id: str,
    fmt: ExportFormat,
    view: ExportView,
    output: Path,
    session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
    edit_history: Sequence[EditRecord] = (),
) -> Path:
    """Render the session's readable log and write it under ``output``.

    ``output`` may be a directory (a dated file name is chosen) or a file path.
    ``edit_history`` lists line edits made to the output, recorded in the export.
    """
    async with session_factory() as db_session:
        store = SqlRecordStore(db_session)
        session = (await SessionManager(store, owner_id).get(session_id)).unwrap()
        messages = (await ContextWindow(store, owner_id).read(session_id)).unwrap()

    metadata = ExportMetadata(
        session_id=session.id,
        name=session.name,
        memory_enabled=session.memory_enabled,
        edit_history=list(edit_history),
    )
    takes = reconstruct(messages) if view == "takes" else None
    content = export_service.render(fmt, messages, metadata, takes=takes)

    if output.suffix:
        target = output
    else:
        target = output / export_service.export_filename(fmt, metadata.exported_at)
    return export_service.write_export(target, content)


def load_edit_history(path: str) -> list[EditRecord]:
    """Read edit records from a JSON file."""
    return TypeAdapter(list[EditRecord]).validate_json(Path(path).read_bytes())


async def _run(args: argparse.Namespace) -> None:
    try:
        path = await export_session(
            owner_id=args.owner,
            session_id=args.session,
            fmt=args.format,
            view=args.view,
            output=Path(args.output),
            edit_history=load_edit_history(args.edits) if args.edits else (),
        )
        print(f"Exported session {args.session} to {path}")
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Export a chat session")
    parser.add_argument("--owner", required=True, help="Owner id of the session")
    parser.add_argument("--session", required=True, help="Session id")
    parser.add_argument("--format", choices=["txt", "json"], default="txt")
    parser.add_argument("--view", choices=["messages", "takes"], default="messages")
    parser.add_argument("--output", default=".", help="Target file or directory")
    parser.add_argument(
        "--edits",
        help="JSON file with a list of {line_number, timestamp} edit records",
    )
    args = parser.parse_args()

    asyncio.run(_run(args))


if __name__ == "__main__":
    main()

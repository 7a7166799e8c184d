"""Session lifecycle: creation, lookup, rename, settings and deletion."""

import uuid
from typing import Any

import structlog

from chat_memory.core.exceptions import InvalidParameterError
from chat_memory.core.result import as_result
from chat_memory.repositories.record_store import eq, gt
from chat_memory.schemas.session_schema import Session, SessionSummary
from chat_memory.services.base import SESSIONS_TABLE, OwnedSessionService, utcnow

logger = structlog.get_logger()

DEFAULT_CONTEXT_WINDOW = 10

SUMMARY_COLUMNS = tuple(SessionSummary.model_fields)


def validate_context_window(context_window: int) -> None:
    if context_window < 1:
        raise InvalidParameterError(
            f"context_window must be at least 1, got {context_window}"
        )


class SessionManager(OwnedSessionService):
    """Owns the lifecycle of one principal's sessions.

    Concurrent ``get_or_create`` calls for an owner without a live session may
    each create one; later reads pick the most recently updated.
    """

    def __init__(
        self,
        *args: Any,
        default_context_window: int = DEFAULT_CONTEXT_WINDOW,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._default_context_window = default_context_window

    @as_result
    async def create(
        self,
        memory_enabled: bool = False,
        context_window: int | None = None,
        initial_settings: dict[str, Any] | None = None,
    ) -> Session:
        """Create a session owned by the current principal."""
        if context_window is None:
            context_window = self._default_context_window
        validate_context_window(context_window)

        now = utcnow()
        name = (initial_settings or {}).get("name") or f"New Project {now:%Y-%m-%d}"
        record = await self._store.insert(
            SESSIONS_TABLE,
            {
                "id": str(uuid.uuid4()),
                "owner_id": self._owner_id,
                "name": str(name),
                "memory_enabled": memory_enabled,
                "context_window": context_window,
                "messages": [],
                "settings": initial_settings,
                "version": 1,
                "created_at": now,
                "updated_at": now,
                "expires_at": now + self._ttl,
            },
        )
        session = Session.model_validate(record)
        logger.info(
            "Session created",
            session_id=session.id,
            owner_id=self._owner_id,
            memory_enabled=memory_enabled,
            context_window=context_window,
        )
        return session

    @as_result
    async def get(self, session_id: str) -> Session:
        """Fetch a session; the message log is empty while memory is off."""
        return (await self._load(session_id)).visible()

    @as_result
    async def rename(self, session_id: str, name: str) -> None:
        if not name.strip():
            raise InvalidParameterError("name must not be blank")
        session = await self._load(session_id)
        await self._write(session, {"name": name.strip(), "updated_at": utcnow()})

    @as_result
    async def update_memory_flag(self, session_id: str, enabled: bool) -> None:
        """Toggle memory. Stored messages and expiry are left untouched."""
        session = await self._load(session_id)
        await self._write(session, {"memory_enabled": enabled, "updated_at": utcnow()})

    @as_result
    async def update_settings(
        self, session_id: str, settings: dict[str, Any] | None
    ) -> None:
        """Replace the attached settings wholesale."""
        session = await self._load(session_id)
        await self._write(session, {"settings": settings, "updated_at": utcnow()})

    @as_result
    async def update_context_window(self, session_id: str, context_window: int) -> None:
        """Resize the window. Existing messages are trimmed on the next append."""
        validate_context_window(context_window)
        session = await self._load(session_id)
        await self._write(
            session, {"context_window": context_window, "updated_at": utcnow()}
        )

    @as_result
    async def delete(self, session_id: str) -> None:
        await self._load(session_id)
        deleted = await self._store.delete_where(
            SESSIONS_TABLE, [eq("id", session_id), eq("owner_id", self._owner_id)]
        )
        logger.info("Session deleted", session_id=session_id, deleted=len(deleted))

    @as_result
    async def delete_all(self) -> int:
        """Delete every session of the owner and return how many were removed."""
        deleted = await self._store.delete_where(
            SESSIONS_TABLE, [eq("owner_id", self._owner_id)]
        )
        logger.info("All sessions deleted", owner_id=self._owner_id, count=len(deleted))
        return len(deleted)

    @as_result
    async def list_active(self) -> list[SessionSummary]:
        """Non-expired sessions, most recently updated first, without messages."""
        rows = await self._store.select_many(
            SESSIONS_TABLE,
            [eq("owner_id", self._owner_id), gt("expires_at", utcnow())],
            order_by=("updated_at", "desc"),
            columns=SUMMARY_COLUMNS,
        )
        return [SessionSummary.model_validate(row) for row in rows]

    @as_result
    async def get_or_create(self) -> Session:
        """Latest non-expired session of the owner, or a fresh default one."""
        rows = await self._store.select_many(
            SESSIONS_TABLE,
            [eq("owner_id", self._owner_id), gt("expires_at", utcnow())],
            order_by=("updated_at", "desc"),
            limit=1,
        )
        if rows:
            return Session.model_validate(rows[0]).visible()
        return (await self.create()).unwrap()

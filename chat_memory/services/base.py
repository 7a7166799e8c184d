"""Shared access rules for services operating on owned sessions."""

from datetime import UTC, datetime, timedelta
from typing import Any

from chat_memory.core.exceptions import (
    AuthorizationError,
    ConflictError,
    SessionNotFoundError,
)
from chat_memory.models.chat_session import ChatSession
from chat_memory.repositories.record_store import RecordStore, eq
from chat_memory.schemas.session_schema import Session

SESSIONS_TABLE = ChatSession.__tablename__
DEFAULT_TTL = timedelta(days=7)


def utcnow() -> datetime:
    return datetime.now(UTC)


class OwnedSessionService:
    """Base for services acting on behalf of a single owner.

    Every load and every write is checked against ``owner_id``. Writes are
    conditional on the version that was read; a concurrent change makes the
    write fail with ``ConflictError`` instead of overwriting it.
    """

    def __init__(
        self,
        store: RecordStore,
        owner_id: str,
        ttl: timedelta = DEFAULT_TTL,
        timeout: float | None = None,
    ) -> None:
        self._store = store
        self._owner_id = owner_id
        self._ttl = ttl
        self._timeout = timeout

    @property
    def owner_id(self) -> str:
        return self._owner_id

    async def _load(self, session_id: str) -> Session:
        record = await self._store.select_one(SESSIONS_TABLE, [eq("id", session_id)])
        if record is None:
            raise SessionNotFoundError(session_id)
        if record["owner_id"] != self._owner_id:
            raise AuthorizationError()
        return Session.model_validate(record)

    async def _write(self, session: Session, patch: dict[str, Any]) -> int:
        """Persist ``patch`` against the version read; return the new version."""
        new_version = session.version + 1
        updated = await self._store.update(
            SESSIONS_TABLE,
            [
                eq("id", session.id),
                eq("owner_id", self._owner_id),
                eq("version", session.version),
            ],
            {**patch, "version": new_version},
        )
        if updated == 0:
            raise ConflictError()
        return new_version

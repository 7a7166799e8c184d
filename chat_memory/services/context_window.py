"""Bounded message retention with protected system messages and TTL renewal."""

from collections.abc import Sequence

import structlog

from chat_memory.core.result import as_result
from chat_memory.schemas.session_schema import Message, Session
from chat_memory.services.base import OwnedSessionService, utcnow

logger = structlog.get_logger()


def trim_messages(messages: Sequence[Message], context_window: int) -> list[Message]:
    """Apply the retention rule to a message log.

    When the log is longer than ``context_window``, every system message is
    kept, followed by the ``context_window`` most recent non-system messages.
    Each group keeps its relative order; system messages are placed first and
    are not re-interleaved with the tail. A non-positive window keeps only
    system messages once trimming triggers.
    """
    if len(messages) <= context_window:
        return list(messages)

    protected = [m for m in messages if m.role == "system"]
    evictable = [m for m in messages if m.role != "system"]
    recent = evictable[-context_window:] if context_window > 0 else []
    return [*protected, *recent]


class ContextWindow(OwnedSessionService):
    """Appends to, reads and clears a session's message log.

    Every append rewrites the whole log in one conditional update, so a
    failed or cancelled append leaves the stored log as it was. The window is
    a message count, not a token budget.
    """

    @as_result
    async def append(
        self,
        session_id: str,
        message: Message,
        context_window: int | None = None,
    ) -> Session:
        """Append ``message``, trim to the window and renew the session's expiry.

        ``context_window`` defaults to the window stored on the session. The
        returned session hides its log while memory is off.
        """
        return await self._append(session_id, [message], context_window)

    @as_result
    async def append_many(
        self,
        session_id: str,
        messages: Sequence[Message],
        context_window: int | None = None,
    ) -> Session:
        """Append ``messages`` in order as one write; all are stored or none."""
        return await self._append(session_id, messages, context_window)

    async def _append(
        self,
        session_id: str,
        messages: Sequence[Message],
        context_window: int | None,
    ) -> Session:
        session = await self._load(session_id)
        window = session.context_window if context_window is None else context_window

        appended = [*session.messages, *messages]
        kept = trim_messages(appended, window)

        now = utcnow()
        expires_at = max(now + self._ttl, session.expires_at)
        version = await self._write(
            session,
            {
                "messages": [m.to_record() for m in kept],
                "updated_at": now,
                "expires_at": expires_at,
            },
        )
        evicted = len(appended) - len(kept)
        if evicted:
            logger.debug(
                "Context window trimmed",
                session_id=session_id,
                kept=len(kept),
                evicted=evicted,
                context_window=window,
            )
        return session.model_copy(
            update={
                "messages": kept,
                "updated_at": now,
                "expires_at": expires_at,
                "version": version,
            }
        ).visible()

    @as_result
    async def read(self, session_id: str) -> list[Message]:
        """Stored messages, or an empty list while memory is disabled."""
        session = await self._load(session_id)
        if not session.memory_enabled:
            return []
        return list(session.messages)

    @as_result
    async def clear(self, session_id: str) -> None:
        """Drop all messages; memory flag, window and expiry are kept."""
        session = await self._load(session_id)
        await self._write(session, {"messages": [], "updated_at": utcnow()})
        logger.info("Session history cleared", session_id=session_id)

"""Unit tests for the context window engine."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from chat_memory.core.exceptions import (
    AuthorizationError,
    ConflictError,
    SessionNotFoundError,
    StoreError,
)
from chat_memory.schemas.session_schema import Message
from chat_memory.services.base import SESSIONS_TABLE
from chat_memory.services.context_window import ContextWindow, trim_messages
from chat_memory.services.session_manager import SessionManager
from tests.fakes import InMemoryRecordStore

OWNER = "owner-1"


def _msg(role: str, content: str) -> Message:
    return Message(role=role, content=content)  # type: ignore[arg-type]


async def _new_session(
    store: InMemoryRecordStore,
    context_window: int = 10,
    memory_enabled: bool = True,
) -> str:
    result = await SessionManager(store, OWNER).create(
        memory_enabled=memory_enabled, context_window=context_window
    )
    return result.unwrap().id


def _stored(store: InMemoryRecordStore, session_id: str) -> list[tuple[str, str]]:
    return [
        (m["role"], m["content"])
        for m in store.raw(SESSIONS_TABLE, session_id)["messages"]
    ]


class TestTrimMessages:
    """Tests for the pure retention rule."""

    def test_under_window_unchanged(self) -> None:
        messages = [_msg("user", "a"), _msg("assistant", "b")]
        assert trim_messages(messages, 3) == messages

    def test_exactly_window_unchanged(self) -> None:
        messages = [_msg("user", "a"), _msg("assistant", "b"), _msg("user", "c")]
        assert trim_messages(messages, 3) == messages

    def test_keeps_most_recent_non_system(self) -> None:
        messages = [_msg("user", c) for c in "ABCDE"]
        kept = trim_messages(messages, 3)
        assert [m.content for m in kept] == ["C", "D", "E"]

    def test_system_messages_protected_and_placed_first(self) -> None:
        messages = [
            _msg("user", "A"),
            _msg("system", "S1"),
            _msg("assistant", "B"),
            _msg("user", "C"),
            _msg("system", "S2"),
            _msg("assistant", "D"),
        ]
        kept = trim_messages(messages, 2)
        assert [(m.role, m.content) for m in kept] == [
            ("system", "S1"),
            ("system", "S2"),
            ("user", "C"),
            ("assistant", "D"),
        ]

    def test_system_messages_not_reordered_when_not_trimming(self) -> None:
        messages = [_msg("user", "A"), _msg("system", "S")]
        assert [m.content for m in trim_messages(messages, 5)] == ["A", "S"]

    def test_zero_window_keeps_only_system(self) -> None:
        messages = [_msg("system", "S"), _msg("user", "A")]
        kept = trim_messages(messages, 0)
        assert [m.content for m in kept] == ["S"]

    def test_negative_window_keeps_only_system(self) -> None:
        messages = [_msg("user", "A"), _msg("assistant", "B")]
        assert trim_messages(messages, -1) == []

    def test_does_not_mutate_input(self) -> None:
        messages = [_msg("user", c) for c in "ABCD"]
        snapshot = list(messages)
        trim_messages(messages, 2)
        assert messages == snapshot


class TestAppend:
    """Tests for ContextWindow.append."""

    @pytest.fixture
    def engine(self, memory_store: InMemoryRecordStore) -> ContextWindow:
        return ContextWindow(memory_store, OWNER)

    async def test_evicts_oldest_beyond_window(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, context_window=3)
        for role, content in [
            ("user", "A"),
            ("assistant", "B"),
            ("user", "C"),
            ("assistant", "D"),
            ("user", "E"),
        ]:
            (await engine.append(session_id, _msg(role, content), 3)).unwrap()

        assert _stored(memory_store, session_id) == [
            ("user", "C"),
            ("assistant", "D"),
            ("user", "E"),
        ]

    async def test_system_message_survives_long_conversation(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, context_window=10)
        (await engine.append(session_id, _msg("system", "steer"), 10)).unwrap()
        for i in range(12):
            role = "user" if i % 2 == 0 else "assistant"
            (await engine.append(session_id, _msg(role, f"m{i}"), 10)).unwrap()

        stored = _stored(memory_store, session_id)
        assert len(stored) == 11
        assert stored[0] == ("system", "steer")
        assert [content for _, content in stored[1:]] == [f"m{i}" for i in range(2, 12)]

    async def test_non_system_count_bounded_after_every_append(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        window = 4
        session_id = await _new_session(memory_store, context_window=window)
        roles = ["system", "user", "assistant", "user", "system", "assistant"] * 3
        systems_seen = 0
        for i, role in enumerate(roles):
            (await engine.append(session_id, _msg(role, f"{role}{i}"), window)).unwrap()
            systems_seen += role == "system"
            stored = _stored(memory_store, session_id)
            assert sum(1 for r, _ in stored if r != "system") <= window
            assert sum(1 for r, _ in stored if r == "system") == systems_seen

    async def test_uses_session_window_when_not_given(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, context_window=2)
        for content in "ABC":
            (await engine.append(session_id, _msg("user", content))).unwrap()
        assert [c for _, c in _stored(memory_store, session_id)] == ["B", "C"]

    async def test_window_reduction_converges_on_next_append(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, context_window=10)
        for content in "ABCDEF":
            (await engine.append(session_id, _msg("user", content))).unwrap()

        (await SessionManager(memory_store, OWNER).update_context_window(session_id, 2)).unwrap()
        assert len(_stored(memory_store, session_id)) == 6

        (await engine.append(session_id, _msg("user", "G"))).unwrap()
        assert [c for _, c in _stored(memory_store, session_id)] == ["F", "G"]

    async def test_renews_expiry_and_updated_at(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        record = memory_store.raw(SESSIONS_TABLE, session_id)
        old = datetime(2020, 1, 1, tzinfo=UTC)
        memory_store.set_field(
            SESSIONS_TABLE, session_id, expires_at=old, updated_at=old
        )

        before = datetime.now(UTC)
        session = (await engine.append(session_id, _msg("user", "hi"))).unwrap()
        after = datetime.now(UTC)

        assert before + timedelta(days=7) <= record["expires_at"] <= after + timedelta(days=7)
        assert before <= record["updated_at"] <= after
        assert session.expires_at == record["expires_at"]

    async def test_expiry_strictly_increases_across_appends(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        first = (await engine.append(session_id, _msg("user", "a"))).unwrap()
        await asyncio.sleep(0.001)
        second = (await engine.append(session_id, _msg("assistant", "b"))).unwrap()
        assert second.expires_at > first.expires_at
        assert second.updated_at > first.updated_at

    async def test_expiry_never_moves_backwards(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        far_future = datetime.now(UTC) + timedelta(days=30)
        memory_store.set_field(SESSIONS_TABLE, session_id, expires_at=far_future)

        engine = ContextWindow(memory_store, OWNER, ttl=timedelta(days=7))
        session = (await engine.append(session_id, _msg("user", "a"))).unwrap()
        assert session.expires_at == far_future

    async def test_append_while_memory_disabled_still_stores(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, memory_enabled=False)
        (await engine.append(session_id, _msg("user", "kept"))).unwrap()
        assert _stored(memory_store, session_id) == [("user", "kept")]

    async def test_append_hides_log_in_result_when_memory_disabled(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, memory_enabled=False)

        session = (await engine.append(session_id, _msg("user", "secret"))).unwrap()

        assert session.messages == []
        assert _stored(memory_store, session_id) == [("user", "secret")]

    async def test_keeps_timestamp_and_settings(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        stamp = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        message = Message(
            role="user", content="hi", timestamp=stamp, settings={"style": "noir"}
        )
        session = (await engine.append(session_id, message)).unwrap()
        assert session.messages[-1] == message

    async def test_missing_session(self, engine: ContextWindow) -> None:
        result = await engine.append("nope", _msg("user", "a"))
        assert not result.ok
        assert isinstance(result.error, SessionNotFoundError)

    async def test_other_owner_forbidden(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        intruder = ContextWindow(memory_store, "owner-2")

        result = await intruder.append(session_id, _msg("user", "x"))

        assert isinstance(result.error, AuthorizationError)
        assert _stored(memory_store, session_id) == []

    async def test_store_failure_leaves_log_unchanged(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, context_window=1)
        (await engine.append(session_id, _msg("user", "A"))).unwrap()
        memory_store.fail_on.add("update")

        result = await engine.append(session_id, _msg("user", "B"))

        assert isinstance(result.error, StoreError)
        assert _stored(memory_store, session_id) == [("user", "A")]

    async def test_concurrent_appends_conflict_instead_of_losing_update(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        memory_store.delay = 0.01

        first, second = await asyncio.gather(
            engine.append(session_id, _msg("user", "one")),
            engine.append(session_id, _msg("user", "two")),
        )

        assert first.ok
        assert isinstance(second.error, ConflictError)
        assert _stored(memory_store, session_id) == [("user", "one")]

    async def test_cancelled_append_persists_nothing(
        self, engine: ContextWindow, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        memory_store.delay = 1.0

        task = asyncio.create_task(engine.append(session_id, _msg("user", "late")))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert _stored(memory_store, session_id) == []

    async def test_timeout_reported_as_store_error(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        memory_store.delay = 1.0
        engine = ContextWindow(memory_store, OWNER, timeout=0.01)

        result = await engine.append(session_id, _msg("user", "slow"))

        assert isinstance(result.error, StoreError)
        assert _stored(memory_store, session_id) == []

class TestAppendMany:
    """Tests for ContextWindow.append_many."""

    async def test_stores_all_in_one_write(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, context_window=3)
        engine = ContextWindow(memory_store, OWNER)
        (await engine.append(session_id, _msg("user", "A"))).unwrap()
        memory_store.calls.clear()

        session = (
            await engine.append_many(
                session_id,
                [_msg("user", "B"), _msg("assistant", "C"), _msg("user", "D")],
            )
        ).unwrap()

        assert memory_store.calls.count("update") == 1
        assert _stored(memory_store, session_id) == [
            ("user", "B"),
            ("assistant", "C"),
            ("user", "D"),
        ]
        assert session.version == 3

    async def test_failed_write_stores_none(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        engine = ContextWindow(memory_store, OWNER)
        memory_store.fail_on.add("update")

        result = await engine.append_many(
            session_id, [_msg("user", "q"), _msg("assistant", "a")]
        )

        assert isinstance(result.error, StoreError)
        assert _stored(memory_store, session_id) == []


class TestRead:
    """Tests for ContextWindow.read."""

    async def test_returns_log_when_memory_enabled(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, memory_enabled=True)
        engine = ContextWindow(memory_store, OWNER)
        (await engine.append(session_id, _msg("user", "a"))).unwrap()
        (await engine.append(session_id, _msg("assistant", "b"))).unwrap()

        messages = (await engine.read(session_id)).unwrap()
        assert [m.content for m in messages] == ["a", "b"]

    async def test_empty_when_memory_disabled(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, memory_enabled=False)
        engine = ContextWindow(memory_store, OWNER)
        (await engine.append(session_id, _msg("user", "a"))).unwrap()

        assert (await engine.read(session_id)).unwrap() == []

    async def test_history_resumes_when_memory_reenabled(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, memory_enabled=False)
        engine = ContextWindow(memory_store, OWNER)
        manager = SessionManager(memory_store, OWNER)
        (await engine.append(session_id, _msg("user", "a"))).unwrap()

        (await manager.update_memory_flag(session_id, True)).unwrap()

        messages = (await engine.read(session_id)).unwrap()
        assert [m.content for m in messages] == ["a"]

    async def test_missing_session(self, memory_store: InMemoryRecordStore) -> None:
        result = await ContextWindow(memory_store, OWNER).read("nope")
        assert isinstance(result.error, SessionNotFoundError)


class TestClear:
    """Tests for ContextWindow.clear."""

    async def test_clears_messages_only(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store, context_window=5)
        engine = ContextWindow(memory_store, OWNER)
        (await engine.append(session_id, _msg("system", "s"))).unwrap()
        before = dict(memory_store.raw(SESSIONS_TABLE, session_id))

        (await engine.clear(session_id)).unwrap()

        after = memory_store.raw(SESSIONS_TABLE, session_id)
        assert after["messages"] == []
        assert after["memory_enabled"] == before["memory_enabled"]
        assert after["context_window"] == before["context_window"]
        assert after["expires_at"] == before["expires_at"]

    async def test_other_owner_forbidden(
        self, memory_store: InMemoryRecordStore
    ) -> None:
        session_id = await _new_session(memory_store)
        result = await ContextWindow(memory_store, "owner-2").clear(session_id)
        assert isinstance(result.error, AuthorizationError)

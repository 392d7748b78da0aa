"""Unit tests for the SQLAlchemy persistence backend."""

from __future__ import annotations

from datetime import timezone

import pytest

from grounded_chat.errors import PersistenceError
from grounded_chat.retrieval.models import Chunk
from grounded_chat.store.models import Sender
from grounded_chat.store.sql_store import ChunkRow, SQLChatStore


class TestChats:
    def test_create_and_get(self, store: SQLChatStore) -> None:
        chat = store.create_chat("alice")
        fetched = store.get_chat(chat.id, "alice")
        assert fetched is not None
        assert fetched.id == chat.id
        assert fetched.title is None
        assert fetched.created_at.tzinfo is timezone.utc

    def test_get_requires_owner(self, store: SQLChatStore) -> None:
        chat = store.create_chat("alice")
        assert store.get_chat(chat.id, "bob") is None
        assert store.get_chat("missing", "alice") is None

    def test_list_chats_newest_first(self, store: SQLChatStore) -> None:
        first = store.create_chat("alice")
        second = store.create_chat("alice")
        store.create_chat("bob")
        assert [c.id for c in store.list_chats("alice")] == [second.id, first.id]

    def test_set_title(self, store: SQLChatStore) -> None:
        chat = store.create_chat("alice")
        assert store.set_title(chat.id, "alice", "Travel plans") == 1
        assert store.get_chat(chat.id, "alice").title == "Travel plans"

    def test_set_title_only_if_unset_never_overwrites(self, store: SQLChatStore) -> None:
        chat = store.create_chat("alice", title="Human title")
        assert store.set_title(chat.id, "alice", "Derived", only_if_unset=True) == 0
        assert store.get_chat(chat.id, "alice").title == "Human title"

    def test_set_title_wrong_owner_affects_nothing(self, store: SQLChatStore) -> None:
        chat = store.create_chat("alice")
        assert store.set_title(chat.id, "bob", "Hijacked") == 0


class TestMessages:
    def test_append_assigns_id_and_timestamp(self, store: SQLChatStore) -> None:
        chat = store.create_chat("alice")
        msg = store.append_message(chat.id, Sender.USER, "hello")
        assert msg.id
        assert msg.timestamp is not None
        assert msg.sender is Sender.USER
        assert msg.negative_feedback is False

    def test_ordering(self, store: SQLChatStore) -> None:
        chat = store.create_chat("alice")
        for i in range(4):
            store.append_message(chat.id, Sender.USER if i % 2 == 0 else Sender.MODEL, f"m{i}")

        assert [m.content for m in store.all_messages(chat.id)] == ["m0", "m1", "m2", "m3"]
        assert [m.content for m in store.recent_messages(chat.id, 2)] == ["m3", "m2"]
        assert [m.content for m in store.all_messages(chat.id, limit=2, offset=1)] == ["m1", "m2"]

    def test_feedback_requires_owned_chat(self, store: SQLChatStore) -> None:
        chat = store.create_chat("alice")
        msg = store.append_message(chat.id, Sender.MODEL, "answer")

        assert store.set_feedback(msg.id, "bob", True) == 0
        assert store.set_feedback(msg.id, "alice", True) == 1
        assert store.all_messages(chat.id)[0].negative_feedback is True

    def test_feedback_unknown_message(self, store: SQLChatStore) -> None:
        assert store.set_feedback("missing", "alice", True) == 0


class TestChunks:
    def test_round_trip(self, store: SQLChatStore) -> None:
        stored = store.add_chunk("fact", [0.25, -0.5])
        assert stored.id is not None
        assert store.all_chunks() == [Chunk(id=stored.id, text="fact", embedding=[0.25, -0.5])]

    def test_clear(self, store: SQLChatStore) -> None:
        store.add_chunk("fact", [1.0])
        store.clear_chunks()
        assert store.all_chunks() == []

    def test_replace_chunks(self, store: SQLChatStore) -> None:
        store.add_chunk("old", [1.0])
        count = store.replace_chunks([Chunk(text="a", embedding=[1.0]), Chunk(text="b", embedding=[0.5])])
        assert count == 2
        assert [c.text for c in store.all_chunks()] == ["a", "b"]

    @pytest.mark.parametrize("raw", ["not json", '{"a": 1}', '["x", "y"]', "[NaN, 1.0]", "[Infinity, 0.0]", "", None])
    def test_undecodable_embedding_loads_as_none(self, store: SQLChatStore, raw: str | None) -> None:
        with store._engine.begin() as conn:
            conn.execute(ChunkRow.__table__.insert().values(content="broken", embedding_json=raw))
        store.add_chunk("fine", [1.0, 0.0])

        chunks = store.all_chunks()
        assert [(c.text, c.embedding) for c in chunks] == [("broken", None), ("fine", [1.0, 0.0])]


class TestLifecycle:
    def test_health_check(self, store: SQLChatStore) -> None:
        assert store.health_check() is True

    def test_in_memory_database_is_shared_across_sessions(self) -> None:
        s = SQLChatStore("sqlite://")
        chat = s.create_chat("alice")
        assert s.get_chat(chat.id, "alice") is not None
        s.close()

    def test_errors_are_wrapped(self, store: SQLChatStore) -> None:
        chat = store.create_chat("alice")
        with pytest.raises(PersistenceError):
            # Violates the NOT NULL constraint on content
            store.append_message(chat.id, Sender.USER, None)  # type: ignore[arg-type]

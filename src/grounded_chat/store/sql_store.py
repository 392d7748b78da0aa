"""SQLAlchemy implementation of the persistence abstraction.

SQLite is the default backend (``sqlite:///grounded_chat.db``); any URL
SQLAlchemy understands works as long as the driver is installed. Tables
are created on first use.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    or_,
    select,
    text as sql_text,
    update,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from grounded_chat.config import settings
from grounded_chat.errors import PersistenceError
from grounded_chat.retrieval.models import Chunk
from grounded_chat.store.base import ChatStore
from grounded_chat.store.models import Chat, Message, Sender

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on the way back; re-attach UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# ORM tables
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


class ChatRow(Base):
    __tablename__ = "chats"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    owner: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def to_model(self) -> Chat:
        return Chat(id=self.id, owner=self.owner, title=self.title, created_at=_as_utc(self.created_at))


class MessageRow(Base):
    __tablename__ = "messages"
    __table_args__ = (CheckConstraint("sender IN ('user', 'model')", name="ck_messages_sender"),)

    # Surrogate key keeps insertion order when timestamps collide.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, index=True, nullable=False)
    chat_id: Mapped[str] = mapped_column(ForeignKey("chats.id"), index=True, nullable=False)
    sender: Mapped[str] = mapped_column(String(8), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    negative_feedback: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def to_model(self) -> Message:
        return Message(
            id=self.id,
            chat_id=self.chat_id,
            sender=Sender(self.sender),
            content=self.content,
            timestamp=_as_utc(self.timestamp),
            negative_feedback=self.negative_feedback,
        )


class ChunkRow(Base):
    __tablename__ = "data_chunks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    # JSON array of floats
    embedding_json: Mapped[str | None] = mapped_column(Text, nullable=True)


def _decode_embedding(row: ChunkRow) -> list[float] | None:
    if not row.embedding_json:
        logger.warning("Empty embedding for chunk %d; it will not be ranked", row.id)
        return None
    try:
        values = json.loads(row.embedding_json)
        if not isinstance(values, list):
            raise TypeError(f"expected a JSON array, got {type(values).__name__}")
        vector = [float(v) for v in values]
        if not all(math.isfinite(v) for v in vector):
            raise ValueError("embedding contains NaN or infinite values")
        return vector
    except (ValueError, TypeError) as exc:
        logger.warning(
            "Failed to decode embedding for chunk %d (content: %.50s...): %s. Embedding will be empty.",
            row.id,
            row.content,
            exc,
        )
        return None


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


def create_store_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine, adapting SQLite to multi-threaded use."""
    url = make_url(database_url)
    kwargs: dict = {"echo": echo, "pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every session sees a fresh empty DB
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


class SQLChatStore(ChatStore):
    """Relational :class:`ChatStore` backed by SQLAlchemy.

    Parameters
    ----------
    database_url:
        SQLAlchemy URL of the database.
    engine:
        Pre-built engine; takes precedence over *database_url*.
    """

    def __init__(self, database_url: str = settings.database_url, *, engine: Engine | None = None) -> None:
        self._engine = engine if engine is not None else create_store_engine(database_url)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"failed to initialize schema: {exc}") from exc

    @contextmanager
    def _transaction(self, action: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError(f"failed to {action}: {exc}") from exc
        finally:
            session.close()

    # -- chats ----------------------------------------------------------------

    def create_chat(self, owner: str, title: str | None = None) -> Chat:
        row = ChatRow(id=str(uuid.uuid4()), owner=owner, title=title, created_at=_utcnow())
        with self._transaction("insert chat") as session:
            session.add(row)
        return row.to_model()

    def get_chat(self, chat_id: str, owner: str) -> Chat | None:
        with self._transaction("get chat") as session:
            row = session.scalars(
                select(ChatRow).where(ChatRow.id == chat_id, ChatRow.owner == owner)
            ).one_or_none()
            return row.to_model() if row is not None else None

    def list_chats(self, owner: str) -> list[Chat]:
        with self._transaction("query chats") as session:
            rows = session.scalars(
                select(ChatRow).where(ChatRow.owner == owner).order_by(ChatRow.created_at.desc())
            ).all()
            return [r.to_model() for r in rows]

    def set_title(self, chat_id: str, owner: str, title: str, *, only_if_unset: bool = False) -> int:
        stmt = update(ChatRow).where(ChatRow.id == chat_id, ChatRow.owner == owner)
        if only_if_unset:
            stmt = stmt.where(or_(ChatRow.title.is_(None), ChatRow.title == ""))
        with self._transaction("update chat title") as session:
            result = session.execute(
                stmt.values(title=title).execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

    # -- messages -------------------------------------------------------------

    def append_message(self, chat_id: str, sender: Sender, content: str) -> Message:
        row = MessageRow(
            id=str(uuid.uuid4()),
            chat_id=chat_id,
            sender=Sender(sender).value,
            content=content,
            timestamp=_utcnow(),
            negative_feedback=False,
        )
        with self._transaction("insert message") as session:
            session.add(row)
        return row.to_model()

    def recent_messages(self, chat_id: str, n: int) -> list[Message]:
        with self._transaction("query recent messages") as session:
            rows = session.scalars(
                select(MessageRow)
                .where(MessageRow.chat_id == chat_id)
                .order_by(MessageRow.timestamp.desc(), MessageRow.seq.desc())
                .limit(n)
            ).all()
            return [r.to_model() for r in rows]

    def all_messages(self, chat_id: str, limit: int = 100, offset: int = 0) -> list[Message]:
        with self._transaction("query messages") as session:
            rows = session.scalars(
                select(MessageRow)
                .where(MessageRow.chat_id == chat_id)
                .order_by(MessageRow.timestamp.asc(), MessageRow.seq.asc())
                .limit(limit)
                .offset(offset)
            ).all()
            return [r.to_model() for r in rows]

    def set_feedback(self, message_id: str, owner: str, negative: bool) -> int:
        owned_chats = select(ChatRow.id).where(ChatRow.owner == owner)
        stmt = (
            update(MessageRow)
            .where(MessageRow.id == message_id, MessageRow.chat_id.in_(owned_chats))
            .values(negative_feedback=negative)
            .execution_options(synchronize_session=False)
        )
        with self._transaction("update message feedback") as session:
            result = session.execute(stmt)
            return result.rowcount or 0

    # -- chunks ---------------------------------------------------------------

    def all_chunks(self) -> list[Chunk]:
        with self._transaction("query data chunks") as session:
            rows = session.scalars(select(ChunkRow).order_by(ChunkRow.id)).all()
            return [Chunk(id=r.id, text=r.content, embedding=_decode_embedding(r)) for r in rows]

    def clear_chunks(self) -> None:
        with self._transaction("delete data chunks") as session:
            session.execute(delete(ChunkRow))

    def add_chunk(self, text: str, embedding: Sequence[float]) -> Chunk:
        values = [float(v) for v in embedding]
        row = ChunkRow(content=text, embedding_json=json.dumps(values))
        with self._transaction("insert data chunk") as session:
            session.add(row)
            session.flush()
            chunk_id = row.id
        return Chunk(id=chunk_id, text=text, embedding=values)

    # -- lifecycle ------------------------------------------------------------

    def health_check(self) -> bool:
        try:
            with self._engine.connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("Database health-check failed", exc_info=True)
            return False

    def close(self) -> None:
        self._engine.dispose()

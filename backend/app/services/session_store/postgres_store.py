from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.therapy_session import TherapySession
from app.services.exceptions import StorageWriteFailed
from app.services.session_store.base import SessionRecord, SessionStore

logger = logging.getLogger(__name__)

# asyncpg connection failures (refused, DNS, timeout) are OSError subclasses
# that SQLAlchemy does not wrap. ValueError covers bad rows.
_DB_ERRORS = (SQLAlchemyError, OSError, ValueError)


class PostgresSessionStore(SessionStore):
    """Stores sessions in the ``therapy_sessions`` table with a pgvector embedding column."""

    name = "postgres"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        similarity_threshold: float = 0.7,
    ) -> None:
        self.session_factory = session_factory
        self.similarity_threshold = similarity_threshold

    async def insert(self, record: SessionRecord) -> None:
        try:
            row = TherapySession(
                id=uuid.UUID(record.id),
                timestamp=record.timestamp,
                original_filename=record.original_filename,
                mimetype=record.mimetype,
                file_size=record.size,
                audio_path=record.audio_path,
                raw_transcript=record.raw_transcript,
                transcript=record.transcript,
                summary=record.summary,
                embedding=list(record.embedding),
            )
            async with self.session_factory() as session:
                session.add(row)
                await session.commit()
        except _DB_ERRORS as exc:
            logger.exception("Database save failed for session %s", record.id)
            raise StorageWriteFailed(f"Failed to save session {record.id}") from exc

    async def list_all(self) -> list[SessionRecord]:
        stmt = select(TherapySession).order_by(TherapySession.timestamp.desc())
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
                return [self._row_to_record(r) for r in rows]
        except _DB_ERRORS:
            logger.exception("Database retrieval of sessions failed")
            return []

    async def get_by_id(self, session_id: str) -> SessionRecord | None:
        try:
            key = uuid.UUID(session_id)
        except (ValueError, TypeError):
            return None

        stmt = select(TherapySession).where(TherapySession.id == key)
        try:
            async with self.session_factory() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
                return self._row_to_record(row) if row else None
        except _DB_ERRORS:
            logger.exception("Database retrieval of session %s failed", session_id)
            return None

    async def find_similar(
        self, query_embedding: list[float], limit: int = 5
    ) -> list[SessionRecord]:
        distance = TherapySession.embedding.cosine_distance(query_embedding)
        stmt = (
            select(TherapySession)
            .where(1 - distance > self.similarity_threshold)
            .order_by(distance)
            .limit(limit)
        )
        try:
            async with self.session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
                return [self._row_to_record(r) for r in rows]
        except _DB_ERRORS:
            logger.exception("Similarity search failed")
            return []

    def _row_to_record(self, row: TherapySession) -> SessionRecord:
        fields: dict[str, Any] = {
            "id": str(row.id),
            "timestamp": row.timestamp,
            "original_filename": row.original_filename,
            "mimetype": row.mimetype,
            "size": row.file_size,
            "audio_path": row.audio_path,
            "raw_transcript": row.raw_transcript,
            "transcript": row.transcript,
            "summary": row.summary,
            "embedding": [float(v) for v in row.embedding],
        }
        return SessionRecord(**fields)

from __future__ import annotations

from app.config import Settings
from app.services.session_store.base import SessionRecord, SessionStore, cosine_similarity
from app.services.session_store.file_store import FileSessionStore
from app.services.session_store.postgres_store import PostgresSessionStore


def build_session_store(settings: Settings) -> SessionStore:
    """Create the backend named by ``settings.session_store_backend``."""
    if settings.session_store_backend == "file":
        return FileSessionStore(
            settings.sessions_dir,
            similarity_threshold=settings.similarity_threshold,
        )

    from app.db.postgres import async_session_factory

    return PostgresSessionStore(
        async_session_factory,
        similarity_threshold=settings.similarity_threshold,
    )


__all__ = [
    "FileSessionStore",
    "PostgresSessionStore",
    "SessionRecord",
    "SessionStore",
    "build_session_store",
    "cosine_similarity",
]

"""JSON-file session backend.

Layout inside ``sessions_dir``::

    sessions-index.json   array of every record, used for listing/similarity
    <id>.json             one record per file, used for lookup by id

The index is rewritten on every insert. The read-modify-write cycle runs
under a store-wide asyncio.Lock so concurrent uploads in the same process
never drop each other's records.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from app.services.exceptions import StorageWriteFailed
from app.services.session_store.base import SessionRecord, SessionStore, cosine_similarity

logger = logging.getLogger(__name__)

INDEX_FILENAME = "sessions-index.json"


class FileSessionStore(SessionStore):
    name = "file"

    def __init__(self, sessions_dir: str | Path, similarity_threshold: float = 0.7) -> None:
        self.sessions_dir = Path(sessions_dir)
        self.similarity_threshold = similarity_threshold
        self._write_lock = asyncio.Lock()

    @property
    def index_path(self) -> Path:
        return self.sessions_dir / INDEX_FILENAME

    def _record_path(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    async def insert(self, record: SessionRecord) -> None:
        async with self._write_lock:
            try:
                await asyncio.to_thread(self._insert_sync, record)
            except StorageWriteFailed:
                raise
            except (OSError, ValueError, ValidationError) as exc:
                logger.exception("Failed to write session %s to %s", record.id, self.sessions_dir)
                raise StorageWriteFailed(f"Failed to save session {record.id}") from exc

    def _insert_sync(self, record: SessionRecord) -> None:
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        index = self._read_index() if self.index_path.exists() else []

        for existing in index:
            if existing.get("id") == record.id:
                raise StorageWriteFailed(f"Session {record.id} already exists")
        if index:
            expected = len(index[0].get("embedding") or [])
            if expected and len(record.embedding) != expected:
                raise StorageWriteFailed(
                    f"Embedding has {len(record.embedding)} dimensions, store holds {expected}"
                )

        payload = record.to_json_dict()
        record_path = self._record_path(record.id)
        _write_json(record_path, payload)
        index.append(payload)
        try:
            _write_json(self.index_path, index)
        except OSError:
            record_path.unlink(missing_ok=True)
            raise

    async def list_all(self) -> list[SessionRecord]:
        try:
            raw = await asyncio.to_thread(self._read_index_if_present)
            records = [SessionRecord.model_validate(item) for item in raw]
        except (OSError, ValueError, ValidationError):
            logger.exception("Failed to read session index %s", self.index_path)
            return []
        return sorted(records, key=lambda r: r.timestamp, reverse=True)

    async def get_by_id(self, session_id: str) -> SessionRecord | None:
        try:
            canonical_id = str(uuid.UUID(session_id))
        except (ValueError, TypeError, AttributeError):
            return None

        path = self._record_path(canonical_id)
        try:
            data = await asyncio.to_thread(_read_json, path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.exception("Failed to read session file %s", path)
            return None

        try:
            return SessionRecord.model_validate(data)
        except ValidationError:
            logger.warning("Session file %s is not a valid record", path)
            return None

    async def find_similar(
        self, query_embedding: list[float], limit: int = 5
    ) -> list[SessionRecord]:
        scored: list[tuple[float, SessionRecord]] = []
        for record in await self.list_all():
            similarity = cosine_similarity(query_embedding, record.embedding)
            if similarity > self.similarity_threshold:
                scored.append((similarity, record))
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [record for _, record in scored[:limit]]

    def _read_index_if_present(self) -> list[dict[str, Any]]:
        if not self.index_path.exists():
            return []
        return self._read_index()

    def _read_index(self) -> list[dict[str, Any]]:
        data = _read_json(self.index_path)
        if not isinstance(data, list):
            raise ValueError(f"{self.index_path} does not contain a JSON array")
        return data


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, data: Any) -> None:
    temp_path = path.with_name(f"{path.name}.tmp")
    with temp_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    os.replace(temp_path, path)

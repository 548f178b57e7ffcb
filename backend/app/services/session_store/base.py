from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SessionRecord(BaseModel):
    """A processed session. Immutable once created."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    timestamp: datetime
    original_filename: str
    mimetype: str
    size: int
    audio_path: str
    raw_transcript: str
    transcript: str
    summary: str
    embedding: list[float]

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class SessionStore(ABC):
    """Persistence contract shared by every session backend.

    Writes raise StorageWriteFailed. Reads never raise: failures are logged
    and reported as an empty list or None.
    """

    name: str = ""

    @abstractmethod
    async def insert(self, record: SessionRecord) -> None:
        ...

    @abstractmethod
    async def list_all(self) -> list[SessionRecord]:
        """Return every record, newest first."""
        ...

    @abstractmethod
    async def get_by_id(self, session_id: str) -> SessionRecord | None:
        ...

    @abstractmethod
    async def find_similar(
        self, query_embedding: list[float], limit: int = 5
    ) -> list[SessionRecord]:
        """Return records above the similarity threshold, most similar first."""
        ...

    async def close(self) -> None:
        return None


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if not norm_a or not norm_b:
        return 0.0
    return dot / (norm_a * norm_b)

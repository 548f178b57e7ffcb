from __future__ import annotations

import logging

from openai import AsyncOpenAI

from app.config import settings
from app.services.exceptions import EmbeddingFailed

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Turns session text (by convention the summary) into a fixed-length vector."""

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        self.client = client
        self.model = model or settings.openai_embedding_model
        self.dimensions = dimensions if dimensions is not None else settings.openai_embedding_dimensions

    async def embed_text(self, text: str) -> list[float]:
        try:
            resp = await self.client.embeddings.create(
                model=self.model,
                input=text.strip(),
                dimensions=self.dimensions,
            )
            embedding = [float(v) for v in resp.data[0].embedding]
        except Exception as exc:
            logger.exception("Embedding request failed (model=%s)", self.model)
            raise EmbeddingFailed() from exc

        if len(embedding) != self.dimensions:
            logger.error(
                "Embedding has %d dimensions, expected %d (model=%s)",
                len(embedding), self.dimensions, self.model,
            )
            raise EmbeddingFailed("Embedding failed: unexpected vector size")

        return embedding

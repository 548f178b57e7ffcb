from __future__ import annotations

import logging
from dataclasses import dataclass

from openai import AsyncOpenAI

from app.config import settings
from app.services.exceptions import TranscriptionFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioUpload:
    """An uploaded recording held in memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class TranscriptionService:
    def __init__(self, client: AsyncOpenAI, model: str | None = None) -> None:
        self.client = client
        self.model = model or settings.openai_transcription_model

    async def transcribe(self, upload: AudioUpload) -> str:
        """Send the recording to the speech-to-text model and return plain text."""
        try:
            transcription = await self.client.audio.transcriptions.create(
                model=self.model,
                file=(upload.filename, upload.data, upload.content_type),
            )
        except Exception as exc:
            logger.exception(
                "Transcription request failed for %s (%s, %d bytes)",
                upload.filename, upload.content_type, upload.size,
            )
            raise TranscriptionFailed() from exc

        return (transcription.text or "").strip()

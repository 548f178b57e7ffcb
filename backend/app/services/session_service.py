"""Upload orchestration for therapy session recordings.

One upload runs through these stages in order, each awaiting the previous:

    received -> transcribing -> labeling -> summarizing -> embedding -> storing -> done

Any error moves the upload to ``failed`` and propagates unchanged, so the
caller can tell which stage broke. Nothing is stored unless every stage
succeeded, and the archived audio file is removed on failure.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from app.services.embedding_service import EmbeddingService
from app.services.exceptions import (
    InvalidUpload,
    NoFileProvided,
    SessionNotFound,
    StorageWriteFailed,
)
from app.services.session_store import SessionRecord, SessionStore
from app.services.speaker_labeling_service import SpeakerLabelingService
from app.services.summarization_service import SummarizationService
from app.services.transcription_service import AudioUpload, TranscriptionService

logger = logging.getLogger(__name__)

_EXTRA_ALLOWED_TYPES = {"video/mp4", "video/webm"}


class UploadStage(str, Enum):
    RECEIVED = "received"
    TRANSCRIBING = "transcribing"
    LABELING = "labeling"
    SUMMARIZING = "summarizing"
    EMBEDDING = "embedding"
    STORING = "storing"
    DONE = "done"
    FAILED = "failed"


class SessionService:
    def __init__(
        self,
        transcriber: TranscriptionService,
        labeler: SpeakerLabelingService,
        summarizer: SummarizationService,
        embedder: EmbeddingService,
        store: SessionStore,
        upload_dir: str | Path,
        max_upload_bytes: int = 25 * 1024 * 1024,
        similarity_limit: int = 5,
    ) -> None:
        self.transcriber = transcriber
        self.labeler = labeler
        self.summarizer = summarizer
        self.embedder = embedder
        self.store = store
        self.upload_dir = Path(upload_dir)
        self.max_upload_bytes = max_upload_bytes
        self.similarity_limit = similarity_limit

    async def handle_upload(self, upload: AudioUpload | None) -> dict[str, Any]:
        if upload is None:
            raise NoFileProvided()

        content_type = self._validate_upload(upload)
        upload = AudioUpload(filename=upload.filename, content_type=content_type, data=upload.data)

        session_id = str(uuid.uuid4())
        start = time.monotonic()
        stage = UploadStage.RECEIVED
        audio_path = await self._archive_audio(session_id, upload)
        logger.info(
            "Session %s %s: %s (%s, %d bytes)",
            session_id, stage.value, upload.filename, upload.content_type, upload.size,
        )

        def advance(next_stage: UploadStage) -> UploadStage:
            logger.info(
                "Session %s %s (%dms)",
                session_id, next_stage.value, int((time.monotonic() - start) * 1000),
            )
            return next_stage

        try:
            stage = advance(UploadStage.TRANSCRIBING)
            raw_transcript = await self.transcriber.transcribe(upload)

            stage = advance(UploadStage.LABELING)
            transcript = await self.labeler.label_speakers(raw_transcript)

            stage = advance(UploadStage.SUMMARIZING)
            summary = await self.summarizer.summarize(transcript)

            # Similarity search measures summaries, not full transcripts.
            stage = advance(UploadStage.EMBEDDING)
            embedding = await self.embedder.embed_text(summary)

            stage = advance(UploadStage.STORING)
            record = SessionRecord(
                id=session_id,
                timestamp=datetime.now(timezone.utc),
                original_filename=upload.filename,
                mimetype=upload.content_type,
                size=upload.size,
                audio_path=str(audio_path),
                raw_transcript=raw_transcript,
                transcript=transcript,
                summary=summary,
                embedding=embedding,
            )
            await self.store.insert(record)
        except Exception as exc:
            logger.error(
                "Session %s failed during %s after %dms: %s",
                session_id, stage.value, int((time.monotonic() - start) * 1000), exc,
            )
            await self._discard_audio(audio_path)
            raise

        advance(UploadStage.DONE)
        return {
            **self._record_to_summary_dict(record),
            "path": record.audio_path,
            "status": "transcribed",
            "rawTranscript": record.raw_transcript,
            "transcript": record.transcript,
        }

    async def list_sessions(self) -> list[dict[str, Any]]:
        records = await self.store.list_all()
        return [self._record_to_summary_dict(r) for r in records]

    async def get_session(self, session_id: str) -> dict[str, Any]:
        record = await self.store.get_by_id(session_id)
        if record is None:
            raise SessionNotFound(session_id)
        return self._record_to_detail_dict(record)

    async def find_similar_sessions(
        self, session_id: str, limit: int | None = None
    ) -> list[dict[str, Any]]:
        record = await self.store.get_by_id(session_id)
        if record is None:
            raise SessionNotFound(session_id)

        if limit is None:
            limit = self.similarity_limit
        if limit <= 0:
            return []
        # Ask for one extra row: the session itself is always its best match.
        matches = await self.store.find_similar(record.embedding, limit=limit + 1)
        return [self._record_to_summary_dict(m) for m in matches if m.id != record.id][:limit]

    def _validate_upload(self, upload: AudioUpload) -> str:
        if not upload.data:
            raise InvalidUpload("Uploaded audio file is empty")
        if upload.size > self.max_upload_bytes:
            raise InvalidUpload(
                f"Uploaded audio file exceeds the {self.max_upload_bytes // (1024 * 1024)} MB limit"
            )

        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        if not content_type or content_type == "application/octet-stream":
            guessed, _ = mimetypes.guess_type(upload.filename or "")
            content_type = guessed or content_type

        if not content_type.startswith("audio/") and content_type not in _EXTRA_ALLOWED_TYPES:
            raise InvalidUpload(f"Unsupported file type: {content_type or 'unknown'}")
        return content_type

    async def _archive_audio(self, session_id: str, upload: AudioUpload) -> Path:
        suffix = Path(upload.filename or "").suffix or mimetypes.guess_extension(upload.content_type) or ""
        path = self.upload_dir / f"{session_id}{suffix.lower()}"

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(upload.data)

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            logger.exception("Failed to archive upload %s to %s", upload.filename, path)
            raise StorageWriteFailed(f"Failed to save audio file {upload.filename}") from exc
        return path

    async def _discard_audio(self, path: Path) -> None:
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError:
            logger.warning("Could not remove archived audio %s", path)

    def _record_to_summary_dict(self, r: SessionRecord) -> dict[str, Any]:
        return {
            "id": r.id,
            "timestamp": r.timestamp.isoformat(),
            "originalFilename": r.original_filename,
            "mimetype": r.mimetype,
            "size": r.size,
            "summary": r.summary,
            "embeddingDimensions": len(r.embedding),
        }

    def _record_to_detail_dict(self, r: SessionRecord) -> dict[str, Any]:
        d = self._record_to_summary_dict(r)
        d["audioPath"] = r.audio_path
        d["rawTranscript"] = r.raw_transcript
        d["transcript"] = r.transcript
        return d

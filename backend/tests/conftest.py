"""Shared fixtures: a fake OpenAI client and a SessionService backed by a file store."""

from __future__ import annotations

import io
import wave
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_session_service
from app.main import app
from app.services.embedding_service import EmbeddingService
from app.services.session_service import SessionService
from app.services.session_store import FileSessionStore
from app.services.speaker_labeling_service import LABELING_SYSTEM_PROMPT, SpeakerLabelingService
from app.services.summarization_service import SummarizationService
from app.services.transcription_service import AudioUpload, TranscriptionService

RAW_TRANSCRIPT = "hello there"
LABELED_TRANSCRIPT = "Speaker A (Therapist): hello there"
SUMMARY = "Brief greeting exchanged."
EMBEDDING = [0.1, 0.2, 0.3]


def make_wav(seconds: float = 2.0, rate: int = 16000) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(b"\x00\x00" * int(seconds * rate))
    return buf.getvalue()


def chat_response(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def embedding_response(vector: list[float]) -> SimpleNamespace:
    return SimpleNamespace(data=[SimpleNamespace(embedding=vector)])


def make_chat(labeled: str | None = LABELED_TRANSCRIPT, summary: str | None = SUMMARY):
    """Chat side effect answering by system prompt: labeling or summarization."""

    def _create(**kwargs):
        if kwargs["messages"][0]["content"] == LABELING_SYSTEM_PROMPT:
            return chat_response(labeled)
        return chat_response(summary)

    return _create


@pytest.fixture
def wav_bytes() -> bytes:
    return make_wav()


@pytest.fixture
def wav_upload(wav_bytes) -> AudioUpload:
    return AudioUpload(filename="session.wav", content_type="audio/wav", data=wav_bytes)


@pytest.fixture
def openai_client() -> MagicMock:
    client = MagicMock()
    client.audio.transcriptions.create = AsyncMock(
        return_value=SimpleNamespace(text=RAW_TRANSCRIPT)
    )
    client.chat.completions.create = AsyncMock(side_effect=make_chat())
    client.embeddings.create = AsyncMock(return_value=embedding_response(EMBEDDING))
    return client


@pytest.fixture
def file_store(tmp_path) -> FileSessionStore:
    return FileSessionStore(tmp_path / "sessions", similarity_threshold=0.7)


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def session_service(openai_client, file_store, upload_dir) -> SessionService:
    return SessionService(
        transcriber=TranscriptionService(openai_client, model="whisper-1"),
        labeler=SpeakerLabelingService(openai_client, model="gpt-4o"),
        summarizer=SummarizationService(openai_client, model="gpt-4o"),
        embedder=EmbeddingService(openai_client, model="text-embedding-3-small", dimensions=3),
        store=file_store,
        upload_dir=upload_dir,
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture
def client(session_service):
    app.dependency_overrides[get_session_service] = lambda: session_service
    yield TestClient(app)
    app.dependency_overrides.clear()

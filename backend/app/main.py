import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from app.api.routes import sessions
from app.config import settings
from app.services.embedding_service import EmbeddingService
from app.services.session_service import SessionService
from app.services.session_store import build_session_store
from app.services.speaker_labeling_service import SpeakerLabelingService
from app.services.summarization_service import SummarizationService
from app.services.transcription_service import TranscriptionService

logger = logging.getLogger(__name__)


def build_session_service(openai_client: AsyncOpenAI) -> SessionService:
    store = build_session_store(settings)
    logger.info("Session store backend: %s", store.name)

    return SessionService(
        transcriber=TranscriptionService(openai_client),
        labeler=SpeakerLabelingService(openai_client),
        summarizer=SummarizationService(openai_client),
        embedder=EmbeddingService(openai_client),
        store=store,
        upload_dir=settings.upload_dir,
        max_upload_bytes=settings.max_upload_mb * 1024 * 1024,
        similarity_limit=settings.similarity_limit,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; uploads will fail at the transcription stage")

    # Every external call is attempted exactly once per request.
    openai_client = AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0)
    app.state.session_service = build_session_service(openai_client)

    yield

    await openai_client.close()
    if settings.session_store_backend == "postgres":
        from app.db.postgres import dispose_engine

        await dispose_engine()


app = FastAPI(
    title="Therapy Session Processor",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions.router, prefix="/sessions", tags=["sessions"])


@app.get("/health")
async def health_check():
    return {"status": "ok"}

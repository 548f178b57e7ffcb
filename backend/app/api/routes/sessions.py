from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from app.api.dependencies import get_session_service
from app.api.schemas.common import ErrorResponse
from app.api.schemas.sessions import (
    SessionDetailResponse,
    SessionSummaryResponse,
    UploadResponse,
)
from app.services.exceptions import (
    ClientInputError,
    SessionNotFound,
    StorageError,
    UpstreamProviderError,
)
from app.services.session_service import SessionService
from app.services.transcription_service import AudioUpload

router = APIRouter()


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def upload_session(
    audio: UploadFile | None = File(None),
    service: SessionService = Depends(get_session_service),
):
    """Transcribe, label, summarize and embed an uploaded session recording."""
    upload = None
    if audio is not None:
        data = await audio.read()
        await audio.close()
        upload = AudioUpload(
            filename=audio.filename or "recording",
            content_type=audio.content_type or "",
            data=data,
        )

    try:
        return await service.handle_upload(upload)
    except ClientInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UpstreamProviderError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("", response_model=list[SessionSummaryResponse])
async def list_sessions(service: SessionService = Depends(get_session_service)):
    return await service.list_sessions()


@router.get(
    "/{session_id}",
    response_model=SessionDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    try:
        return await service.get_session(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")


@router.get(
    "/{session_id}/similar",
    response_model=list[SessionSummaryResponse],
    responses={404: {"model": ErrorResponse}},
)
async def get_similar_sessions(
    session_id: str,
    limit: int = Query(5, ge=1, le=50),
    service: SessionService = Depends(get_session_service),
):
    """Sessions whose summaries are semantically close to this one."""
    try:
        return await service.find_similar_sessions(session_id, limit=limit)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail="Session not found")

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionSummaryResponse(_CamelModel):
    id: str
    timestamp: datetime
    original_filename: str
    mimetype: str
    size: int
    summary: str
    embedding_dimensions: int


class SessionDetailResponse(SessionSummaryResponse):
    audio_path: str
    raw_transcript: str
    transcript: str


class UploadResponse(SessionSummaryResponse):
    path: str
    status: Literal["transcribed"] = "transcribed"
    raw_transcript: str
    transcript: str

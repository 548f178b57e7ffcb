"""Error taxonomy for the session upload pipeline.

Client input errors map to 4xx responses, upstream provider errors to 502
and storage errors to 500. Each provider error carries the pipeline stage
that raised it so callers can tell which step failed.
"""

from __future__ import annotations


class SessionPipelineError(Exception):
    """Base class for every error raised by the session pipeline."""


class ClientInputError(SessionPipelineError):
    pass


class NoFileProvided(ClientInputError):
    def __init__(self, message: str = 'No audio file provided. Expected field name "audio" with multipart/form-data.') -> None:
        super().__init__(message)


class InvalidUpload(ClientInputError):
    pass


class SessionNotFound(ClientInputError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class UpstreamProviderError(SessionPipelineError):
    stage: str = "provider"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or f"{self.stage.capitalize()} failed")


class TranscriptionFailed(UpstreamProviderError):
    stage = "transcription"


class LabelingFailed(UpstreamProviderError):
    stage = "labeling"


class SummarizationFailed(UpstreamProviderError):
    stage = "summarization"


class EmbeddingFailed(UpstreamProviderError):
    stage = "embedding"


class StorageError(SessionPipelineError):
    pass


class StorageWriteFailed(StorageError):
    pass

"""Data shapes shared by the processing session, the Gemini client and the API."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GeneratedContent(BaseModel):
    """Social-media copy produced for one video."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    titles: list[str]
    description: str
    tags: list[str]
    search_tags: list[str] = Field(alias="searchTags")


class InferenceResult(BaseModel):
    """Parsed Gemini answer: the transcript plus the generated copy."""

    model_config = ConfigDict(frozen=True)

    transcription: str
    result: GeneratedContent


class MediaAsset(BaseModel):
    name: str
    size: int
    mime_type: str
    preview_path: Optional[str] = None
    transcript: Optional[str] = None
    result: Optional[GeneratedContent] = None

    @property
    def size_label(self) -> str:
        return f"{self.size / (1024 * 1024):.1f} MB"


class ProcessingStatus(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    GENERATING = "generating"
    READY = "ready"
    ERROR = "error"

    @property
    def in_flight(self) -> bool:
        return self in (ProcessingStatus.UPLOADING, ProcessingStatus.TRANSCRIBING, ProcessingStatus.GENERATING)


class ProcessingState(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ProcessingStatus = ProcessingStatus.IDLE
    progress: float = 0.0
    error: Optional[str] = None

    @field_validator("progress")
    @classmethod
    def _clamp_progress(cls, value: float) -> float:
        return min(100.0, max(0.0, value))


class AssetView(BaseModel):
    """What the page needs to render the chosen file and its results."""

    name: str
    size: int
    size_label: str
    mime_type: str
    has_preview: bool
    transcript: Optional[str] = None
    result: Optional[GeneratedContent] = None
    # tags with exactly one leading "#", as they are copied
    hashtags: list[str] = []


class SessionSnapshot(BaseModel):
    status: ProcessingStatus
    progress: float
    error: Optional[str] = None
    asset: Optional[AssetView] = None
    copied_field: Optional[str] = None
    generation: int = 0

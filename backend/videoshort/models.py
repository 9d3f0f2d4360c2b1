# backend/videoshort/models.py
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VideoStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AssetStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class RenderedAsset(BaseModel):
    status: AssetStatus = AssetStatus.PENDING
    url: Optional[str] = None

    @property
    def is_usable(self) -> bool:
        return self.status == AssetStatus.COMPLETED and bool(self.url)


class Scene(BaseModel):
    scene_number: int
    narration_text: str = ""
    start_time_seconds: Optional[float] = None
    end_time_seconds: Optional[float] = None
    videos: List[RenderedAsset] = Field(default_factory=list)

    @property
    def asset(self) -> Optional[RenderedAsset]:
        """First completed asset with a url, if any"""
        return next((video for video in self.videos if video.is_usable), None)

    @property
    def duration(self) -> float:
        return self.end_time_seconds - self.start_time_seconds


class ContentItem(BaseModel):
    id: str
    title: str = ""
    script: Optional[str] = None
    video_status: VideoStatus = VideoStatus.PENDING
    video_file_path: Optional[str] = None
    scenes: Optional[List[Scene]] = None


class PipelineOutcome(BaseModel):
    storage_path: str
    scenes_processed: int
    total_duration: float


class CreateVideoRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content_item_id: Optional[str] = Field(default=None, alias="contentItemId")
    voice_id: str = Field(default="Aria", alias="voiceId")

    @field_validator("voice_id", mode="before")
    @classmethod
    def _lenient_voice(cls, value: Any) -> str:
        # Anything that is not a name is left to the default preset
        return value if isinstance(value, str) else "Aria"


class CreateVideoResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    video_path: str = Field(alias="videoPath")
    content_item_id: str = Field(alias="contentItemId")
    scenes_processed: int = Field(alias="scenesProcessed")
    title: str
    total_duration: float = Field(alias="totalDuration")


class CreateVideoFailure(BaseModel):
    success: bool = False
    error: str
    details: str

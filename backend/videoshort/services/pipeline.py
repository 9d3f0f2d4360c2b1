"""Turns a content item into a narrated video and records the result."""
import logging
import time
from typing import Callable

from ..errors import EmptyResult, PipelineFailed, StorageError
from ..models import ContentItem, PipelineOutcome, VideoStatus
from .audio_service import condition_audio
from .db_service import DatabaseService
from .file_service import FileProcessor, build_video_file_name
from .narration_service import NarrationProcessor, resolve_voice_id
from .scene_service import select_scenes
from .video_service import VideoProcessor, build_render_request

logger = logging.getLogger(__name__)

FALLBACK_DURATION_SECONDS = 30


def _now_ms() -> int:
    return int(time.time() * 1000)


class VideoPipeline:
    def __init__(
        self,
        db: DatabaseService,
        narration: NarrationProcessor,
        renderer: VideoProcessor,
        files: FileProcessor,
        clock: Callable[[], int] = _now_ms,
    ):
        self.db = db
        self.narration = narration
        self.renderer = renderer
        self.files = files
        self.clock = clock

    async def process(self, content_item: ContentItem, voice_name: str = "Aria") -> PipelineOutcome:
        """Run every stage in order and mark the item completed.

        Any stage failure is re-raised as PipelineFailed chained to the
        original error. The stored status is only written on success.
        """
        logger.info("Starting video processing for content item %s (%s), voice %s",
                    content_item.id, content_item.title, voice_name)
        try:
            scenes = select_scenes(content_item)

            voice_id = resolve_voice_id(voice_name)
            logger.info("Using ElevenLabs voice ID %s for voice %s", voice_id, voice_name)
            audio_data = await self.narration.generate_voiceover(content_item.script, voice_id)
            if not audio_data:
                raise EmptyResult("Failed to generate audio: no audio data received")

            conditioned = condition_audio(audio_data)
            request = build_render_request(scenes, conditioned, content_item.title)

            video_data = await self.renderer.create_video(request)
            if not video_data:
                raise EmptyResult("Failed to create video: no video data received from FFmpeg service")

            file_name = build_video_file_name(content_item.id, self.clock())
            storage_path = await self.files.upload_video(video_data, file_name)
            if not storage_path:
                raise StorageError("Failed to upload video to storage: no storage path returned")

            total_duration = FALLBACK_DURATION_SECONDS
            if scenes:
                total_duration = scenes[-1].end_time_seconds or FALLBACK_DURATION_SECONDS

            outcome = PipelineOutcome(
                storage_path=storage_path,
                scenes_processed=len(scenes),
                total_duration=total_duration,
            )

            await self.db.update_video_result(content_item.id, VideoStatus.COMPLETED, storage_path)
            content_item.video_status = VideoStatus.COMPLETED
            content_item.video_file_path = storage_path
        except Exception as e:
            logger.error("Error in video processing for %s: %s", content_item.id, e)
            raise PipelineFailed(f"Video processing failed: {e}") from e

        logger.info("Video processing completed successfully: %s", outcome)
        return outcome

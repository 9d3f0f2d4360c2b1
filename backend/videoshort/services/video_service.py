import json
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import httpx

from ..config import Settings
from ..errors import (
    ConfigMissing,
    EmptyResult,
    InvalidInput,
    MalformedRequest,
    NoValidScenes,
    UpstreamError,
)
from ..models import Scene

logger = logging.getLogger(__name__)

AUDIO_FIELD = "audioFile"
AUDIO_FILENAME = "narration.mp3"
AUDIO_MEDIA_TYPE = "audio/mpeg"
AUDIO_TYPE = "mp3"

TRANSITION = "none"
FPS = "24"
RESOLUTION = "720x1280"


def _format_number(value: float) -> str:
    """Render 5.0 as "5" so durations read the same as the stored seconds"""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _json_number(value: float):
    return int(value) if float(value).is_integer() else value


@dataclass
class RenderRequest:
    """Multipart body for the rendering service's /create-video endpoint"""

    fields: List[Tuple[str, str]] = field(default_factory=list)
    audio: Optional[Tuple[str, bytes, str]] = None
    image_urls: List[str] = field(default_factory=list)
    durations: List[float] = field(default_factory=list)

    def add(self, name: str, value: str) -> None:
        self.fields.append((name, value))

    def add_array(self, name: str, values: Iterable) -> None:
        """Append values as name[i] fields and again as one JSON array field"""
        values = list(values)
        for index, value in enumerate(values):
            text = _format_number(value) if isinstance(value, (int, float)) else str(value)
            self.add(f"{name}[{index}]", text)
        self.add(
            name,
            json.dumps([_json_number(v) if isinstance(v, (int, float)) else v for v in values]),
        )

    def has(self, name: str) -> bool:
        if name == AUDIO_FIELD:
            return self.audio is not None
        return any(key == name for key, _ in self.fields)

    def get(self, name: str) -> Optional[str]:
        return next((value for key, value in self.fields if key == name), None)

    def validate(self) -> None:
        has_audio_file = self.has(AUDIO_FIELD)
        has_audio_type = self.has("audioType")
        has_image_urls = self.has("imageUrls[0]") or self.has("imageUrls")
        has_durations = self.has("durations[0]") or self.has("durations")
        if not (has_audio_file and has_audio_type and has_image_urls and has_durations):
            raise MalformedRequest(
                f"FormData validation failed: audioFile={has_audio_file}, audioType={has_audio_type}, "
                f"imageUrls={has_image_urls}, durations={has_durations}"
            )

    def describe(self) -> List[str]:
        lines = [f"{key}: {value}" for key, value in self.fields]
        if self.audio is not None:
            filename, data, media_type = self.audio
            lines.append(f"{AUDIO_FIELD}: [{filename}] size={len(data)}, type={media_type}")
        return lines


def build_render_request(scenes: List[Scene], audio_data: bytes, title: str) -> RenderRequest:
    """Assemble the multipart body for the rendering service"""
    image_urls = []
    durations = []
    for scene in scenes:
        asset = scene.asset
        if asset is None:
            logger.warning("No image URL found for scene %s", scene.scene_number)
            continue
        image_urls.append(asset.url)
        durations.append(scene.duration)
        logger.info("Scene %s: %s (%ss)", scene.scene_number, asset.url, _format_number(scene.duration))

    if not image_urls:
        raise NoValidScenes("No valid scenes with images found")
    if not audio_data:
        raise InvalidInput("No audio data provided")

    logger.info("Prepared %d image URLs and durations for '%s'", len(image_urls), title)

    request = RenderRequest(image_urls=image_urls, durations=durations)
    request.audio = (AUDIO_FILENAME, audio_data, AUDIO_MEDIA_TYPE)
    request.add("audioType", AUDIO_TYPE)
    request.add_array("imageUrls", image_urls)
    request.add_array("durations", durations)
    request.add("transition", TRANSITION)
    request.add("fps", FPS)
    request.add("resolution", RESOLUTION)

    for line in request.describe():
        logger.debug("  %s", line)

    request.validate()
    return request


def classify_render_failure(status_code: int, error_text: str, audio_size: int) -> UpstreamError:
    """Turn a failed /create-video response into an actionable error"""
    if status_code == 400:
        message = (
            f"FFmpeg service bad request (400). The service says: {error_text}. "
            "This might be a FormData parsing issue on the service side."
        )
    elif status_code == 413:
        message = (
            f"FFmpeg service payload too large (413). Audio size: {audio_size} bytes. "
            f"Error: {error_text}"
        )
    elif status_code == 403:
        message = f"FFmpeg service authentication failed (403): {error_text}"
    elif status_code == 500:
        message = f"FFmpeg service internal error (500). Service may be experiencing issues: {error_text}"
    elif status_code == 503:
        message = f"FFmpeg service unavailable (503). Service may be down: {error_text}"
    else:
        message = f"FFmpeg service failed with status {status_code}: {error_text}"
    return UpstreamError(message, status_code=status_code, body=error_text)


class VideoProcessor:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.service_url = settings.FFMPEG_SERVICE_URL
        self.transport = transport

    async def create_video(self, request: RenderRequest) -> bytes:
        """
        Send the assembled request to the rendering service and return the
        rendered mp4 bytes. One attempt, no retry.
        """
        if not self.service_url:
            raise ConfigMissing("FFMPEG_SERVICE_URL environment variable not set")

        url = f"{self.service_url.rstrip('/')}/create-video"
        filename, audio_data, media_type = request.audio
        logger.info("Sending request to FFmpeg service at %s", url)

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=None) as client:
                response = await client.post(
                    url,
                    data=dict(request.fields),
                    files={AUDIO_FIELD: (filename, audio_data, media_type)},
                )
        except httpx.TransportError as e:
            raise UpstreamError(f"FFmpeg service request failed: {e}") from e

        logger.info("Response received - Status: %d", response.status_code)

        if not response.is_success:
            error_text = response.text
            logger.error(
                "FFmpeg service error %d: %s (audio %d bytes, %d images, %d durations)",
                response.status_code,
                error_text,
                len(audio_data),
                len(request.image_urls),
                len(request.durations),
            )
            if response.status_code == 400:
                for line in request.describe():
                    logger.error("   - %s", line)
            raise classify_render_failure(response.status_code, error_text, len(audio_data))

        video_data = response.content
        if not video_data:
            raise EmptyResult("FFmpeg service returned empty video data")

        logger.info("Video received from FFmpeg service, size: %d bytes", len(video_data))
        return video_data

import asyncio
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import Settings
from ..errors import ConfigMissing, StorageError

logger = logging.getLogger(__name__)

VIDEO_CONTENT_TYPE = "video/mp4"
CACHE_CONTROL = "max-age=3600"


def build_video_file_name(content_item_id: str, timestamp_ms: int) -> str:
    return f"{content_item_id}-{timestamp_ms}.mp4"


class FileProcessor:
    def __init__(self, settings: Settings, s3_client=None):
        self.bucket_name = settings.R2_BUCKET_NAME
        self.endpoint_url = settings.R2_ENDPOINT_URL
        if s3_client is None:
            s3_client = boto3.client(
                's3',
                endpoint_url=settings.R2_ENDPOINT_URL or None,
                aws_access_key_id=settings.R2_ACCESS_KEY_ID,
                aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
                config=Config(signature_version='s3v4'),
                region_name=settings.R2_REGION,
            )
        self.s3_client = s3_client

    async def upload_video(self, video_data: bytes, file_name: str) -> str:
        """Upload the rendered video and return its path inside the bucket.

        Existing objects are never overwritten; the timestamp in the file
        name keeps repeated runs for one content item apart.
        """
        if not self.bucket_name or not self.endpoint_url:
            raise ConfigMissing("R2 bucket or endpoint is not configured")

        logger.info("Uploading video to storage with filename: %s (%d bytes)", file_name, len(video_data))

        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=file_name,
                Body=video_data,
                ContentType=VIDEO_CONTENT_TYPE,
                CacheControl=CACHE_CONTROL,
                IfNoneMatch='*',
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Error uploading video to storage: %s", e)
            raise StorageError(f"Failed to upload video: {e}") from e

        logger.info("Video uploaded to storage: %s", file_name)
        return file_name

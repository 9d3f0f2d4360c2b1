import pytest

from videoshort.config import Settings
from videoshort.models import AssetStatus, ContentItem, RenderedAsset, Scene
from videoshort.services.db_service import DatabaseService


def make_scene(number, start, end, url="https://img.example.com/{n}.png", status=AssetStatus.COMPLETED):
    videos = []
    if status is not None:
        videos.append(RenderedAsset(status=status, url=url.format(n=number) if url else url))
    return Scene(
        scene_number=number,
        narration_text=f"scene {number}",
        start_time_seconds=start,
        end_time_seconds=end,
        videos=videos,
    )


def make_item(scenes, script="Once upon a time, in 1492.", item_id="item-1", title="Columbus"):
    return ContentItem(id=item_id, title=title, script=script, scenes=scenes)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        ELEVEN_API_KEY="eleven-key",
        FFMPEG_SERVICE_URL="https://render.example.com",
        R2_ACCESS_KEY_ID="access",
        R2_SECRET_ACCESS_KEY="secret",
        R2_BUCKET_NAME="generated-videos",
        R2_ENDPOINT_URL="https://account.r2.cloudflarestorage.com",
        R2_REGION="us-east-1",
        DATABASE_PATH="unused.db",
    )


@pytest.fixture
def db(tmp_path):
    return DatabaseService(str(tmp_path / "content.db"))


class FakeNarration:
    def __init__(self, audio=b"\xff\xfb" * 1000):
        self.audio = audio
        self.calls = []

    async def generate_voiceover(self, text, voice_id):
        self.calls.append((text, voice_id))
        return self.audio


class FakeRenderer:
    def __init__(self, video=b"mp4-bytes", error=None):
        self.video = video
        self.error = error
        self.requests = []

    async def create_video(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.video


class FakeFiles:
    def __init__(self):
        self.uploads = []

    async def upload_video(self, video_data, file_name):
        self.uploads.append((video_data, file_name))
        return file_name

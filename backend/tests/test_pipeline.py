import asyncio
import json
import logging
import re
from types import SimpleNamespace

import boto3
import httpx
import pytest
from botocore.stub import ANY, Stubber

from conftest import FakeFiles, FakeNarration, FakeRenderer, make_item, make_scene
from videoshort.errors import (
    EmptyResult,
    InvalidSceneTiming,
    InvalidScript,
    NoRenderableScenes,
    PipelineFailed,
    UpstreamError,
)
from videoshort.models import AssetStatus, VideoStatus
from videoshort.services.file_service import FileProcessor
from videoshort.services.narration_service import VOICE_IDS, NarrationProcessor
from videoshort.services.pipeline import VideoPipeline
from videoshort.services.video_service import VideoProcessor

TIMESTAMP = 1700000000123


def make_pipeline(db, narration=None, renderer=None, files=None):
    return VideoPipeline(
        db=db,
        narration=narration or FakeNarration(),
        renderer=renderer or FakeRenderer(),
        files=files or FakeFiles(),
        clock=lambda: TIMESTAMP,
    )


def stored(db, item):
    asyncio.run(db.save_content_item(item))
    return asyncio.run(db.get_content_item(item.id))


def test_success_marks_item_completed(db):
    item = stored(db, make_item([make_scene(2, 5, 15), make_scene(1, 0, 5)]))
    narration, renderer, files = FakeNarration(), FakeRenderer(), FakeFiles()

    outcome = asyncio.run(make_pipeline(db, narration, renderer, files).process(item, "Roger"))

    assert outcome.storage_path == f"item-1-{TIMESTAMP}.mp4"
    assert outcome.scenes_processed == 2
    assert outcome.total_duration == 15
    assert narration.calls == [(item.script, VOICE_IDS["Roger"])]
    assert files.uploads == [(b"mp4-bytes", f"item-1-{TIMESTAMP}.mp4")]

    reloaded = asyncio.run(db.get_content_item("item-1"))
    assert reloaded.video_status == VideoStatus.COMPLETED
    assert reloaded.video_file_path == outcome.storage_path
    assert item.video_status == VideoStatus.COMPLETED


def test_unknown_voice_uses_default(db):
    item = stored(db, make_item([make_scene(1, 0, 5)]))
    narration = FakeNarration()

    asyncio.run(make_pipeline(db, narration=narration).process(item, "Zephyr"))

    assert narration.calls[0][1] == VOICE_IDS["Aria"]


def test_no_renderable_scenes_makes_no_calls(db):
    item = stored(db, make_item([make_scene(1, 0, 5, status=AssetStatus.PENDING)]))
    narration, renderer, files = FakeNarration(), FakeRenderer(), FakeFiles()

    with pytest.raises(PipelineFailed) as excinfo:
        asyncio.run(make_pipeline(db, narration, renderer, files).process(item))

    assert isinstance(excinfo.value.__cause__, NoRenderableScenes)
    assert str(excinfo.value).startswith("Video processing failed: No generated images found")
    assert narration.calls == [] and renderer.requests == [] and files.uploads == []


def test_blank_script_fails_before_narration(db):
    item = stored(db, make_item([make_scene(1, 0, 5)], script="   "))
    narration = FakeNarration()

    with pytest.raises(PipelineFailed) as excinfo:
        asyncio.run(make_pipeline(db, narration=narration).process(item))

    assert isinstance(excinfo.value.__cause__, InvalidScript)
    assert narration.calls == []


def test_bad_timing_fails_before_narration(db):
    item = stored(db, make_item([make_scene(1, 0, 5), make_scene(2, 9, 6)]))
    narration = FakeNarration()

    with pytest.raises(PipelineFailed) as excinfo:
        asyncio.run(make_pipeline(db, narration=narration).process(item))

    assert isinstance(excinfo.value.__cause__, InvalidSceneTiming)
    assert narration.calls == []


def test_empty_video_aborts_before_upload(db):
    item = stored(db, make_item([make_scene(1, 0, 5)]))
    files = FakeFiles()

    with pytest.raises(PipelineFailed) as excinfo:
        asyncio.run(make_pipeline(db, renderer=FakeRenderer(video=b""), files=files).process(item))

    assert isinstance(excinfo.value.__cause__, EmptyResult)
    assert files.uploads == []


def test_failure_leaves_status_untouched(db):
    item = stored(db, make_item([make_scene(1, 0, 5)]))
    renderer = FakeRenderer(error=UpstreamError("FFmpeg service unavailable (503). Service may be down: x", 503))

    with pytest.raises(PipelineFailed) as excinfo:
        asyncio.run(make_pipeline(db, renderer=renderer).process(item))

    assert "unavailable (503)" in str(excinfo.value)
    reloaded = asyncio.run(db.get_content_item("item-1"))
    assert reloaded.video_status == VideoStatus.PENDING
    assert reloaded.video_file_path is None


def test_large_narration_is_truncated_before_render(db):
    item = stored(db, make_item([make_scene(1, 0, 5)]))
    renderer = FakeRenderer()

    asyncio.run(make_pipeline(db, narration=FakeNarration(audio=bytes(350_000)), renderer=renderer).process(item))

    assert len(renderer.requests[0].audio[1]) == 300_000


def test_end_to_end_with_real_clients(db, settings):
    item = stored(db, make_item([make_scene(1, 0, 5), make_scene(2, 5, 15)], item_id="abc"))

    tts = SimpleNamespace(convert=lambda **kwargs: iter([b"ID3", b"narration"]))
    narration = NarrationProcessor(settings, client=SimpleNamespace(text_to_speech=tts))

    rendered = {}

    def handler(request):
        rendered["body"] = request.content
        return httpx.Response(200, content=b"\x00\x00\x00\x18ftypmp42")

    renderer = VideoProcessor(settings, transport=httpx.MockTransport(handler))

    s3 = boto3.client(
        "s3",
        region_name="us-east-1",
        endpoint_url=settings.R2_ENDPOINT_URL,
        aws_access_key_id="access",
        aws_secret_access_key="secret",
    )
    files = FileProcessor(settings, s3_client=s3)
    pipeline = VideoPipeline(db=db, narration=narration, renderer=renderer, files=files)

    with Stubber(s3) as stubber:
        stubber.add_response(
            "put_object",
            {},
            expected_params={
                "Bucket": "generated-videos",
                "Key": ANY,
                "Body": b"\x00\x00\x00\x18ftypmp42",
                "ContentType": "video/mp4",
                "CacheControl": "max-age=3600",
                "IfNoneMatch": "*",
            },
        )
        outcome = asyncio.run(pipeline.process(item, "Laura"))

    assert re.fullmatch(r"abc-\d{13}\.mp4", outcome.storage_path)
    assert outcome.scenes_processed == 2
    assert outcome.total_duration == 15
    assert b"ID3narration" in rendered["body"]
    assert json.dumps([5, 10]).encode() in rendered["body"]
    assert asyncio.run(db.get_content_item("abc")).video_file_path == outcome.storage_path


def test_stage_failure_logged_without_traceback(db, caplog):
    item = stored(db, make_item([make_scene(1, 0, 5)]))
    renderer = FakeRenderer(error=UpstreamError("FFmpeg service internal error (500)", 500))

    with caplog.at_level(logging.ERROR, logger="videoshort.services.pipeline"):
        with pytest.raises(PipelineFailed):
            asyncio.run(make_pipeline(db, renderer=renderer).process(item))

    [record] = [r for r in caplog.records if r.name == "videoshort.services.pipeline"]
    assert record.levelno == logging.ERROR
    assert record.exc_info is None
    assert "internal error (500)" in record.getMessage()

import logging
from collections.abc import Sequence
from typing import List

from ..errors import InvalidInput, InvalidSceneTiming, InvalidScript, NoRenderableScenes
from ..models import ContentItem, Scene

logger = logging.getLogger(__name__)


def _describe_assets(scene: Scene) -> List[dict]:
    return [{"status": video.status.value, "has_url": bool(video.url)} for video in scene.videos]


def _has_valid_timing(scene: Scene) -> bool:
    start, end = scene.start_time_seconds, scene.end_time_seconds
    if start is None or end is None:
        return False
    return start >= 0 and end > start


def select_scenes(content_item: ContentItem) -> List[Scene]:
    """Return the scenes that can be rendered, sorted by scene number.

    A scene is kept when one of its assets is completed and has a url.
    Raises when nothing is renderable, when the script is blank or when a
    kept scene has unusable timing.
    """
    scenes = content_item.scenes
    if scenes is None or isinstance(scenes, (str, bytes)) or not isinstance(scenes, Sequence):
        raise InvalidInput("Invalid content item: missing or invalid scenes array")

    logger.info("Total scenes in content item %s: %d", content_item.id, len(scenes))

    eligible = []
    for scene in scenes:
        if scene.asset is None:
            logger.warning(
                "Scene %s has no completed images: %s",
                scene.scene_number,
                _describe_assets(scene),
            )
            continue
        eligible.append(scene)

    if not eligible:
        raise NoRenderableScenes("No generated images found. Please generate scene images first.")

    logger.info("Found %d scenes with generated images", len(eligible))

    script = content_item.script
    if not isinstance(script, str) or not script.strip():
        raise InvalidScript("Invalid or missing script content")

    # sorted() is stable, equal scene numbers keep their stored order
    ordered = sorted(eligible, key=lambda scene: scene.scene_number)

    invalid = [scene for scene in ordered if scene.asset is None or not _has_valid_timing(scene)]
    if invalid:
        logger.error(
            "Found invalid scenes: %s",
            [
                {
                    "scene_number": scene.scene_number,
                    "timing": f"{scene.start_time_seconds}-{scene.end_time_seconds}",
                }
                for scene in invalid
            ],
        )
        raise InvalidSceneTiming(
            f"Found {len(invalid)} scenes with invalid data (missing images or invalid timing): "
            f"{[scene.scene_number for scene in invalid]}",
            scene_numbers=[scene.scene_number for scene in invalid],
        )

    return ordered

import logging
import traceback
from functools import lru_cache

from botocore.exceptions import BotoCoreError
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings
from .errors import (
    ConfigMissing,
    ContentItemNotFound,
    InvalidInput,
    NoRenderableScenes,
    VideoPipelineError,
)
from .logger import setup_logging
from .models import CreateVideoFailure, CreateVideoRequest, CreateVideoResponse
from .services.db_service import DatabaseService
from .services.file_service import FileProcessor
from .services.narration_service import NarrationProcessor
from .services.pipeline import VideoPipeline
from .services.video_service import VideoProcessor

logger = logging.getLogger(__name__)

setup_logging(settings)

app = FastAPI()

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


def get_settings() -> Settings:
    return settings


@lru_cache
def get_db() -> DatabaseService:
    return DatabaseService(settings.DATABASE_PATH)


def build_pipeline(app_settings: Settings, db: DatabaseService) -> VideoPipeline:
    try:
        return VideoPipeline(
            db=db,
            narration=NarrationProcessor(app_settings),
            renderer=VideoProcessor(app_settings),
            files=FileProcessor(app_settings),
        )
    except (ValueError, BotoCoreError) as e:
        raise ConfigMissing(f"Invalid service configuration: {e}") from e


@lru_cache
def get_pipeline() -> VideoPipeline:
    return build_pipeline(settings, get_db())


def _failure(error: Exception) -> JSONResponse:
    details = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    body = CreateVideoFailure(error=str(error) or "Unknown error occurred", details=details)
    return JSONResponse(status_code=500, content=body.model_dump())


@app.exception_handler(VideoPipelineError)
async def pipeline_exception_handler(request: Request, exc: VideoPipelineError):
    # Failures raised while resolving dependencies, before the route runs
    logger.error("Video creation error: %s", exc, exc_info=exc)
    return _failure(exc)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    try:
        raise InvalidInput(f"Invalid request body: {exc.errors()}") from exc
    except InvalidInput as error:
        return _failure(error)


@app.post("/api/create-video-short")
async def create_video_short(
    payload: CreateVideoRequest,
    app_settings: Settings = Depends(get_settings),
    db: DatabaseService = Depends(get_db),
    pipeline: VideoPipeline = Depends(get_pipeline),
):
    try:
        content_item_id = payload.content_item_id
        if not content_item_id:
            raise InvalidInput("Content item ID is required and must be a string")

        missing = app_settings.missing()
        logger.info("Environment check, missing settings: %s", missing or "none")
        if missing:
            raise ConfigMissing(f"Missing configuration: {', '.join(missing)}")

        logger.info("Starting video creation for content item: %s", content_item_id)
        content_item = await db.get_content_item(content_item_id)
        if content_item is None:
            raise ContentItemNotFound("Content item not found")
        if not content_item.scenes:
            raise NoRenderableScenes("No scenes found for this content item")

        result = await pipeline.process(content_item, payload.voice_id)

        response = CreateVideoResponse(
            video_path=result.storage_path,
            content_item_id=content_item_id,
            scenes_processed=result.scenes_processed,
            title=content_item.title,
            total_duration=result.total_duration,
        )
        return response.model_dump(by_alias=True)

    except Exception as e:
        logger.exception("Video creation error")
        return _failure(e)

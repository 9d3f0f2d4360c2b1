from typing import Any, Optional


class VideoPipelineError(Exception):
    """Base class for every failure raised while building a video"""


class ConfigMissing(VideoPipelineError):
    pass


class CredentialMissing(ConfigMissing):
    pass


class InvalidInput(VideoPipelineError):
    pass


class InvalidScript(InvalidInput):
    pass


class InvalidSceneTiming(InvalidInput):
    def __init__(self, message: str, scene_numbers: list):
        super().__init__(message)
        self.scene_numbers = scene_numbers


class NoRenderableScenes(VideoPipelineError):
    pass


class NoValidScenes(VideoPipelineError):
    pass


class UpstreamError(VideoPipelineError):
    """A backend answered with a non-success status (or not at all)"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EmptyResult(VideoPipelineError):
    pass


class MalformedRequest(VideoPipelineError):
    pass


class StorageError(VideoPipelineError):
    pass


class StoreError(VideoPipelineError):
    pass


class ContentItemNotFound(VideoPipelineError):
    pass


class PipelineFailed(VideoPipelineError):
    pass
